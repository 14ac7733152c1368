"""
Image Sequence Source — Frames from pre-decoded subtitle images.

Reads a YAML manifest that lists one image per subtitle packet along
with its presentation timestamps (90 kHz pts):

    frames:
      - image: sub-0001.png
        start: 0
        end: 9000          # optional, unknown when missing
        packet_pts: 0      # optional, decoder-reported pts

Image paths are resolved relative to the manifest.
"""

import yaml
import logging
import numpy as np
from pathlib import Path
from typing import List, Optional
from PIL import Image

from .frames import Frame, FrameSource, UNKNOWN_PTS

logger = logging.getLogger(__name__)


class ImageSequenceSource(FrameSource):
    """FrameSource backed by a manifest of grayscale subtitle images."""

    def __init__(self, manifest_path: Path):
        self.manifest_path = Path(manifest_path)
        if not self.manifest_path.exists():
            raise FileNotFoundError(f"Frame manifest not found: {self.manifest_path}")

        with open(self.manifest_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        self._entries: List[dict] = list(raw.get("frames") or [])
        self._position = 0

        logger.info(f"Manifest {self.manifest_path.name}: {len(self._entries)} frames")

    def __len__(self):
        return len(self._entries)

    def next_frame(self) -> Optional[Frame]:
        if self._position >= len(self._entries):
            return None
        entry = self._entries[self._position]
        self._position += 1
        return self._load(entry)

    def _load(self, entry: dict) -> Frame:
        image_path = self.manifest_path.parent / entry["image"]
        with Image.open(image_path) as img:
            pixels = np.array(img.convert("L"), dtype=np.uint8)

        height, width = pixels.shape
        end = entry.get("end")
        return Frame(
            start_pts=int(entry["start"]),
            end_pts=UNKNOWN_PTS if end is None else int(end),
            pixels=pixels,
            width=width,
            height=height,
            stride=width,
            packet_pts=entry.get("packet_pts"),
        )
