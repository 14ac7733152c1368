"""
Timeline Reconciler — Restores sequence order and repairs end timestamps.

OCR tasks finish in arbitrary order. Once the pool has drained, results
are sorted back into sequence order and subtitles whose end time was not
known are closed at the start of the following subtitle.
"""

import logging
from operator import attrgetter
from typing import List

from .frames import UNKNOWN_PTS

logger = logging.getLogger(__name__)


class TimelineReconciler:
    """
    Orders OCR results by sequence counter and fixes end pts.

    Repair rules (single pass, left to right):
      1. An unknown end becomes the start of the next subtitle.
      2. With force_next_start, every end becomes the start of the next
         subtitle.
      3. The last subtitle has no successor and is never repaired.
    """

    def __init__(self, force_next_start: bool = False):
        self.force_next_start = force_next_start

    def reconcile(self, results: List) -> List:
        """
        Args:
            results: OCRResult objects in any order, unique counters.

        Returns:
            New list sorted by counter, end pts repaired in place.
        """
        ordered = sorted(results, key=attrgetter("counter"))

        for current, following in zip(ordered, ordered[1:]):
            if current.counter == following.counter:
                raise ValueError(f"Duplicate OCR result for counter {current.counter}")

        repaired = 0
        for current, following in zip(ordered, ordered[1:]):
            if current.end_pts == UNKNOWN_PTS or self.force_next_start:
                current.end_pts = following.start_pts
                repaired += 1

        if ordered and ordered[-1].end_pts == UNKNOWN_PTS:
            logger.warning(
                f"Last subtitle ({ordered[-1].counter}) has no end time; "
                f"writing it unchanged"
            )

        logger.debug(f"Reconciled {len(ordered)} results, repaired {repaired} end times")
        return ordered
