"""
Pipeline Orchestrator — Coordinates one subtitle OCR run.

Stages:
  1. Frame gating (duplicates, undersized subpictures)
  2. Preprocessing (inversion, optional PGM dump)
  3. Parallel OCR (Tesseract engine pool)
  4. Timeline reconciliation + SRT output
"""

import time
import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from .frames import Frame, FrameGate
from .preprocess import FramePreprocessor
from .pool import OCRResult, RecognitionPool, ResultAggregator
from .reconciler import TimelineReconciler
from .srt_writer import SRTWriter

logger = logging.getLogger(__name__)

# Type alias for progress callbacks: (message: str, percent: int) -> None
ProgressCallback = Optional[Callable[[str, int], None]]


class SubtitleOCRPipeline:
    """
    Main pipeline orchestrator for bitmap subtitle OCR.

    Usage:
        config = load_config()
        pipeline = SubtitleOCRPipeline(config)
        pipeline.process(ImageSequenceSource("subs.yaml"), "subs.srt")
    """

    def __init__(self, config, engine_factory=None):
        self.config = config
        self.engine_factory = engine_factory

        self.reconciler = TimelineReconciler(
            force_next_start=config.output.force_next_start
        )
        self.writer = SRTWriter()

    def process(
        self,
        source: Iterable[Frame],
        output_path: Path,
        progress_cb: ProgressCallback = None
    ) -> List[OCRResult]:
        """
        Run OCR over every frame of a source and write the SRT file.

        Args:
            source: FrameSource (or any iterable of Frames) in stream order.
            output_path: Path for the output .srt file.
            progress_cb: Optional callback for progress updates.

        Returns:
            Reconciled OCRResult objects in sequence order.

        Raises:
            OSError: if the output file cannot be opened.
            EngineInitError: if an OCR engine cannot be created.
        """
        output_path = Path(output_path)
        start_time = time.monotonic()

        logger.info(f"{'='*60}")
        logger.info(f"Bitmap Subtitle OCR")
        logger.info(f"Output: {output_path}")
        logger.info(f"OCR:    tesseract {self.config.engine.language} (oem {self.config.engine.oem})")
        logger.info(f"{'='*60}")

        # Fail before any OCR work if the output cannot be written
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as out:
            gate = FrameGate(self.config.gate, verbose=self.config.verbose)
            dump_base = output_path.with_suffix("") if self.config.output.dump_images else None
            preprocessor = FramePreprocessor(dump_base)
            aggregator = ResultAggregator()

            # ── Stage 1-3: Gate, preprocess and dispatch ──
            self._report(progress_cb, "Recognizing subtitle images...", 5)
            with RecognitionPool(
                self.config.engine,
                size=self.config.pool.size,
                aggregator=aggregator,
                engine_factory=self.engine_factory,
                verbose=self.config.verbose,
            ) as pool:
                logger.info(f"OCR pool: {pool.size} engine(s)")
                for frame in gate.filter(source):
                    bitmap = preprocessor.prepare(frame)
                    pool.submit(frame, bitmap)
                    if pool.submitted % 50 == 0:
                        self._report(
                            progress_cb,
                            f"Dispatched {pool.submitted} subtitles...",
                            5 + min(80, pool.submitted // 10)
                        )
                pool.drain()
            failures = pool.failures

            # ── Stage 4: Reconcile and write SRT ──
            self._report(progress_cb, "Ordering subtitles and writing SRT...", 90)
            results = self.reconciler.reconcile(aggregator.drain())
            self.writer.write_stream(results, out)

        elapsed = time.monotonic() - start_time
        self._report(progress_cb, f"Done! ({elapsed:.1f}s)", 100)

        logger.info(f"{'='*60}")
        logger.info(f"OCR complete in {elapsed:.1f}s")
        logger.info(f"  Subtitles: {len(results)} entries")
        logger.info(f"  OCR failures: {failures}")
        logger.info(f"  Duplicate packets: {gate.duplicates}")
        logger.info(f"  Skipped (too small): {gate.too_small}")
        logger.info(f"  Output: {output_path}")
        logger.info(f"{'='*60}")

        preview = self.writer.write_preview(results, max_entries=5)
        if preview:
            logger.info(f"Preview:\n{preview}")

        return results

    # ── Utilities ──

    @staticmethod
    def _report(cb: ProgressCallback, msg: str, pct: int):
        """Report progress to logger and optional callback."""
        logger.info(f"[{pct:3d}%] {msg}")
        if cb:
            cb(msg, pct)
