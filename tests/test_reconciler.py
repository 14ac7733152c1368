"""
Tests for the Timeline Reconciler module.
"""

import random
import pytest
from ocr_pipeline.frames import UNKNOWN_PTS
from ocr_pipeline.pool import OCRResult
from ocr_pipeline.reconciler import TimelineReconciler
from ocr_pipeline.srt_writer import SRTWriter


@pytest.fixture
def reconciler():
    return TimelineReconciler()


class TestOrdering:
    """Results come back in counter order regardless of completion order."""

    def test_sorted_by_counter(self, reconciler):
        results = [
            OCRResult(3, 18000, 27000, "three"),
            OCRResult(1, 0, 9000, "one"),
            OCRResult(2, 9000, 18000, "two"),
        ]
        ordered = reconciler.reconcile(results)
        assert [r.counter for r in ordered] == [1, 2, 3]

    def test_shuffled_large_set(self, reconciler):
        results = [OCRResult(i, i * 9000, i * 9000 + 4500, f"{i}") for i in range(1, 201)]
        random.Random(7).shuffle(results)
        ordered = reconciler.reconcile(results)
        counters = [r.counter for r in ordered]
        assert counters == sorted(set(counters))
        assert len(counters) == 200

    def test_empty(self, reconciler):
        assert reconciler.reconcile([]) == []

    def test_duplicate_counter_rejected(self, reconciler):
        results = [OCRResult(1, 0, 9000, "a"), OCRResult(1, 0, 9000, "b")]
        with pytest.raises(ValueError):
            reconciler.reconcile(results)


class TestEndRepair:
    """Unknown end timestamps are closed at the next subtitle's start."""

    def test_example_timeline(self, reconciler):
        results = [
            OCRResult(2, 9000, UNKNOWN_PTS, "two"),
            OCRResult(3, 18000, 27000, "three"),
            OCRResult(1, 0, UNKNOWN_PTS, "one"),
        ]
        ordered = reconciler.reconcile(results)
        assert [r.end_pts for r in ordered] == [9000, 18000, 27000]
        assert SRTWriter.format_timestamp(ordered[1].start_pts) == "00:00:00,100"

    def test_known_end_kept(self, reconciler):
        results = [OCRResult(1, 0, 4500, "a"), OCRResult(2, 9000, 13500, "b")]
        ordered = reconciler.reconcile(results)
        assert ordered[0].end_pts == 4500

    def test_last_unknown_end_left_alone(self, reconciler):
        results = [OCRResult(1, 0, UNKNOWN_PTS, "a"), OCRResult(2, 9000, UNKNOWN_PTS, "b")]
        ordered = reconciler.reconcile(results)
        assert ordered[0].end_pts == 9000
        assert ordered[1].end_pts == UNKNOWN_PTS

    def test_single_unknown_end(self, reconciler):
        ordered = reconciler.reconcile([OCRResult(1, 0, UNKNOWN_PTS, "a")])
        assert ordered[0].end_pts == UNKNOWN_PTS

    def test_failed_results_repaired_too(self, reconciler):
        results = [OCRResult(1, 0, UNKNOWN_PTS, None), OCRResult(2, 9000, 18000, "b")]
        ordered = reconciler.reconcile(results)
        assert ordered[0].end_pts == 9000


class TestForcedNextStart:
    """With force_next_start every end except the last follows the next start."""

    def test_all_but_last_forced(self):
        reconciler = TimelineReconciler(force_next_start=True)
        results = [
            OCRResult(1, 0, 4500, "a"),
            OCRResult(2, 9000, 10000, "b"),
            OCRResult(3, 18000, 20000, "c"),
        ]
        ordered = reconciler.reconcile(results)
        assert [r.end_pts for r in ordered] == [9000, 18000, 20000]

    def test_last_sentinel_kept_when_forced(self):
        reconciler = TimelineReconciler(force_next_start=True)
        results = [OCRResult(1, 0, 4500, "a"), OCRResult(2, 9000, UNKNOWN_PTS, "b")]
        ordered = reconciler.reconcile(results)
        assert ordered[-1].end_pts == UNKNOWN_PTS
