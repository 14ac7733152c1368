"""
OCR Pool — Fans subtitle frames out to a fixed set of OCR engines.

Each worker slot owns one EngineHandle and runs at most one recognition
at a time. Slots are created on demand until the pool reaches its size
and are then reused for the rest of the run. Results arrive in
completion order; the reconciler restores sequence order afterwards.
"""

import logging
import threading
import numpy as np
import psutil
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import List, Optional

from .engine import EngineHandle, RecognitionError

logger = logging.getLogger(__name__)


@dataclass
class OCRResult:
    """Recognized text of one frame. text is None when OCR failed."""
    counter: int
    start_pts: int
    end_pts: int
    text: Optional[str]

    @property
    def failed(self) -> bool:
        return self.text is None

    @property
    def display_text(self) -> str:
        return self.text or ""

    def __repr__(self):
        text = "<failed>" if self.text is None else repr(self.text[:40])
        return f"OCRResult#{self.counter}({self.start_pts}–{self.end_pts}, {text})"


@dataclass
class OCRJob:
    """A frame's inverted bitmap on its way to one engine."""
    counter: int
    start_pts: int
    end_pts: int
    bitmap: Optional[np.ndarray]
    width: int
    height: int
    stride: int

    def release(self):
        self.bitmap = None


class ResultAggregator:
    """
    Thread-safe, append-only collection of OCR results.

    Only read it (drain) after every task has been joined.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._results: List[OCRResult] = []

    def append(self, result: OCRResult):
        with self._lock:
            self._results.append(result)

    def drain(self) -> List[OCRResult]:
        """Hand over all results in completion order and start empty."""
        with self._lock:
            results, self._results = self._results, []
        return results

    def __len__(self):
        with self._lock:
            return len(self._results)


class WorkerSlot:
    """One engine and the task currently (or last) running on it."""

    def __init__(self, index: int, handle: EngineHandle):
        self.index = index
        self.handle = handle
        self.future: Optional[Future] = None

    @property
    def state(self) -> str:
        if self.future is None:
            return "idle"
        return "done" if self.future.done() else "busy"

    def reclaim(self):
        """Join the finished task and make the slot idle again."""
        if self.future is not None:
            self.future.result()
            self.future = None

    def __repr__(self):
        return f"WorkerSlot#{self.index}({self.state})"


def detect_pool_size(requested: int = 0) -> int:
    """Pool size to use: requested if positive, else the CPU count."""
    if requested > 0:
        return requested
    cores = psutil.cpu_count(logical=True) or 1
    logger.info(f"Auto-detected {cores} CPU threads")
    return cores


class RecognitionPool:
    """
    Bounded pool of OCR engines.

    Dispatch rules for each submitted frame:
      1. Pool below capacity: create a slot with a new engine and use it.
      2. Pool size 1: recognize inline on the single slot, no threads.
      3. Pool full: reuse the first slot (in slot order) whose task has
         finished, waiting for any task to complete if none has.

    Usage:
        with RecognitionPool(config.engine, size=4, aggregator=agg) as pool:
            for frame in frames:
                pool.submit(frame, bitmap)
            pool.drain()
    """

    def __init__(
        self,
        engine_config,
        size: int = 0,
        aggregator: Optional[ResultAggregator] = None,
        engine_factory=None,
        verbose: bool = False,
    ):
        self.engine_config = engine_config
        self.size = detect_pool_size(size)
        self.aggregator = aggregator if aggregator is not None else ResultAggregator()
        self.engine_factory = engine_factory
        self.verbose = verbose

        self._slots: List[WorkerSlot] = []
        self._executor: Optional[ThreadPoolExecutor] = None
        if self.size > 1:
            self._executor = ThreadPoolExecutor(
                max_workers=self.size, thread_name_prefix="ocr"
            )

        self.submitted = 0
        self.failures = 0
        self._failures_lock = threading.Lock()

    @property
    def slots(self) -> List[WorkerSlot]:
        return list(self._slots)

    def submit(self, frame, bitmap: np.ndarray):
        """
        Start OCR of one frame on a free slot.

        Args:
            frame: Accepted Frame; its pixel buffer is not used.
            bitmap: Preprocessed copy owned by the job from here on.

        Raises:
            EngineInitError: if a new slot's engine cannot be created.
        """
        job = OCRJob(
            counter=frame.counter,
            start_pts=frame.start_pts,
            end_pts=frame.end_pts,
            bitmap=bitmap,
            width=frame.width,
            height=frame.height,
            stride=frame.stride,
        )

        if len(self._slots) < self.size:
            slot = self._new_slot()
        elif self.size == 1:
            slot = self._slots[0]
        else:
            slot = self._acquire_slot()

        self.submitted += 1
        if self._executor is None:
            self._recognize(slot.handle, job)
        else:
            slot.future = self._executor.submit(self._recognize, slot.handle, job)

    def _new_slot(self) -> WorkerSlot:
        handle = EngineHandle.create(self.engine_config, self.engine_factory)
        slot = WorkerSlot(len(self._slots), handle)
        self._slots.append(slot)
        logger.debug(f"Started OCR slot {slot.index + 1}/{self.size}")
        return slot

    def _acquire_slot(self) -> WorkerSlot:
        """Return the first finished slot, blocking until one finishes."""
        while True:
            for slot in self._slots:
                if slot.state != "busy":
                    slot.reclaim()
                    return slot
            pending = [s.future for s in self._slots if s.future is not None]
            wait(pending, return_when=FIRST_COMPLETED)

    def _recognize(self, handle: EngineHandle, job: OCRJob):
        """Task body: OCR one job and record the result."""
        text = None
        try:
            text = handle.recognize(job.bitmap, job.width, job.height, job.stride)
        except RecognitionError as e:
            logger.error(f"OCR failed for {job.counter}: {e}")
            with self._failures_lock:
                self.failures += 1
        finally:
            job.release()

        if self.verbose and text is not None:
            logger.info(f"{job.counter} Text: {text}")

        self.aggregator.append(
            OCRResult(job.counter, job.start_pts, job.end_pts, text)
        )

    def drain(self):
        """Block until every running task has finished."""
        for slot in self._slots:
            slot.reclaim()

    def close(self):
        """Join outstanding work and release every engine."""
        try:
            self.drain()
        finally:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
            for slot in self._slots:
                slot.handle.release()
        logger.debug(f"Released {len(self._slots)} OCR engine(s)")

    def abort(self):
        """Stop without waiting for running recognitions."""
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.close()
        else:
            self.abort()
        return False
