"""
Frame Preprocessor — Prepares subtitle bitmaps for Tesseract.

DVD-style subpictures are light text on a dark or transparent
background. Tesseract 4+ expects dark text on a light background, so
every bitmap is inverted and binarised before recognition.
"""

import logging
import numpy as np
from pathlib import Path
from typing import Optional
from PIL import Image

logger = logging.getLogger(__name__)


def invert(pixels: np.ndarray) -> np.ndarray:
    """
    Return an inverted, binarised copy of an 8-bit grayscale buffer.

    A pixel becomes white (0xFF) when its inverse is brighter than 0x80,
    black otherwise. The input array is left untouched.
    """
    inverse = 255 - pixels.astype(np.int16)
    return np.where(inverse > 0x80, 0xFF, 0).astype(np.uint8)


class FramePreprocessor:
    """
    Produces the bitmap handed to the OCR engine for each frame.

    When a dump base is given, the original (pre-inversion) bitmap of
    every frame is written to <dump_base>-<counter>.pgm for inspection.
    """

    def __init__(self, dump_base: Optional[Path] = None):
        self.dump_base = Path(dump_base) if dump_base else None

    def prepare(self, frame) -> np.ndarray:
        """
        Args:
            frame: Accepted Frame (counter already assigned).

        Returns:
            New uint8 array with the same (height, stride) shape.
        """
        if self.dump_base is not None:
            self.dump(frame)
        return invert(frame.pixels)

    def dump_path(self, counter: int) -> Path:
        return self.dump_base.with_name(f"{self.dump_base.name}-{counter:04d}.pgm")

    def dump(self, frame) -> Path:
        """Write the visible part of the frame as a binary PGM (P5)."""
        path = self.dump_path(frame.counter)
        path.parent.mkdir(parents=True, exist_ok=True)

        visible = np.ascontiguousarray(frame.pixels[:frame.height, :frame.width])
        Image.fromarray(visible).save(path, format="PPM")

        logger.debug(f"Dumped frame {frame.counter} → {path}")
        return path
