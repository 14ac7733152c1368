"""
Frames — Decoded subtitle bitmaps and the gate in front of the OCR pool.

A frame source hands over decoded bitmaps with their presentation
timestamps (pts, 90 kHz clock). The gate drops duplicate packets of the
same subtitle, skips subpictures too small to hold text, and numbers the
accepted frames in stream order.
"""

import logging
import numpy as np
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

logger = logging.getLogger(__name__)

# End pts reported for subtitles whose duration is not known yet
UNKNOWN_PTS = 0xFFFFFFFF


@dataclass
class Frame:
    """One decoded subtitle bitmap with timing metadata."""
    start_pts: int
    end_pts: int
    pixels: np.ndarray        # uint8, shape (height, stride)
    width: int
    height: int
    stride: int
    counter: int = 0          # assigned by FrameGate
    packet_pts: Optional[int] = None

    def __repr__(self):
        return (f"Frame#{self.counter}(pts {self.start_pts}–{self.end_pts}, "
                f"{self.width}x{self.height})")


class FrameSource:
    """
    Base class for frame producers.

    Subclasses implement next_frame(), returning None at end of stream.
    Iterating a source yields frames until then.
    """

    def next_frame(self) -> Optional[Frame]:
        raise NotImplementedError

    def __iter__(self) -> Iterator[Frame]:
        while True:
            frame = self.next_frame()
            if frame is None:
                return
            yield frame


class FrameGate:
    """
    Filters the raw frame stream before it reaches the OCR pool.

    Rules, applied in order:
      1. A frame with the same start pts as the previous one is another
         packet of an already seen subtitle and is dropped.
      2. Frames narrower than min_width or lower than min_height are
         skipped with a warning and do not consume a counter.
      3. In verbose mode a mismatch between the decoder's packet pts and
         the frame's start pts is reported; the frame is kept.
    """

    def __init__(self, config, verbose: bool = False):
        self.min_width = getattr(config, "min_width", 9)
        self.min_height = getattr(config, "min_height", 1)
        self.verbose = verbose

        self.duplicates = 0
        self.too_small = 0

    def filter(self, frames: Iterable[Frame]) -> Iterator[Frame]:
        """
        Yield accepted frames numbered 1, 2, 3, ... in stream order.

        Args:
            frames: Raw frames in non-decreasing start pts order.
        """
        last_start_pts = None
        counter = 1

        for frame in frames:
            if frame.start_pts == last_start_pts:
                self.duplicates += 1
                continue
            last_start_pts = frame.start_pts

            if frame.width < self.min_width or frame.height < self.min_height:
                self.too_small += 1
                logger.warning(
                    f"Image too small {counter}, size: {frame.pixels.nbytes} bytes, "
                    f"{frame.width}x{frame.height} pixels, expected at least "
                    f"{self.min_width}x{self.min_height}"
                )
                continue

            if (self.verbose and frame.packet_pts is not None
                    and frame.packet_pts != frame.start_pts):
                logger.warning(
                    f"{counter}: packet pts ({frame.packet_pts}) doesn't match "
                    f"subtitle start pts ({frame.start_pts})"
                )

            frame.counter = counter
            counter += 1
            yield frame
