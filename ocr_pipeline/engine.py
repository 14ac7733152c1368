"""
OCR Engine — Tesseract recognition via tesserocr.

Each EngineHandle owns exactly one tesseract API instance. Tesseract
instances are not thread-safe, so a handle accepts a single recognize
call at a time; parallelism comes from running several handles.
"""

import logging
import threading
import unicodedata
import numpy as np
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class EngineInitError(RuntimeError):
    """An OCR engine could not be created. Fatal for the run."""


class RecognitionError(RuntimeError):
    """OCR failed for a single bitmap."""


def strip_trailing(text: str) -> str:
    """Remove trailing whitespace and control characters."""
    end = len(text)
    while end > 0 and (text[end - 1].isspace()
                       or unicodedata.category(text[end - 1]) == "Cc"):
        end -= 1
    return text[:end]


class TesseractEngine:
    """
    Thin adapter over tesserocr.PyTessBaseAPI.

    Features:
      - Optional tessdata path (falls back to tesseract's default)
      - Engine mode (OEM) selection
      - Character blacklist via tessedit_char_blacklist
      - DPI hint via user_defined_dpi
      - Recognition directly from a strided 8-bit buffer
    """

    def __init__(self, config):
        from tesserocr import PyTessBaseAPI

        data_path = getattr(config, "data_path", None)
        language = getattr(config, "language", "eng")
        oem = getattr(config, "oem", 3)
        blacklist = getattr(config, "blacklist", "")
        dpi = getattr(config, "dpi", 72)

        kwargs = {"lang": language, "oem": oem}
        if data_path:
            kwargs["path"] = data_path

        try:
            self._api = PyTessBaseAPI(**kwargs)
        except RuntimeError as e:
            raise EngineInitError(
                f"Failed to initialize tesseract (lang={language}, oem={oem}): {e}"
            ) from e

        if blacklist:
            self._api.SetVariable("tessedit_char_blacklist", blacklist)
        self._api.SetVariable("user_defined_dpi", str(dpi))

    def recognize(self, data: bytes, width: int, height: int, stride: int) -> str:
        self._api.SetImageBytes(data, width, height, 1, stride)
        text = self._api.GetUTF8Text()
        if text is None:
            raise RecognitionError("tesseract returned no text")
        return text

    def end(self):
        self._api.End()


EngineFactory = Callable[[object], object]


class EngineHandle:
    """
    One owned OCR engine plus the configuration it was built with.

    Usage:
        handle = EngineHandle.create(config.engine)
        text = handle.recognize(bitmap, width, height, stride)
        handle.release()
    """

    def __init__(self, engine, config):
        self._engine = engine
        self.config = config
        self._busy = threading.Lock()

    @classmethod
    def create(cls, config, factory: Optional[EngineFactory] = None) -> "EngineHandle":
        """
        Build an engine from the run's engine configuration.

        Raises:
            EngineInitError: if the engine cannot be constructed.
        """
        factory = factory or TesseractEngine
        try:
            engine = factory(config)
        except EngineInitError:
            raise
        except (ImportError, RuntimeError, OSError) as e:
            raise EngineInitError(f"Failed to initialize OCR engine: {e}") from e

        logger.debug(
            f"OCR engine ready (lang={getattr(config, 'language', '?')}, "
            f"oem={getattr(config, 'oem', '?')})"
        )
        return cls(engine, config)

    @property
    def released(self) -> bool:
        return self._engine is None

    def recognize(self, bitmap: np.ndarray, width: int, height: int, stride: int) -> str:
        """
        Run OCR on one bitmap.

        Args:
            bitmap: uint8 buffer of height rows, stride bytes each.
            width: Visible width in pixels.
            height: Number of rows.
            stride: Bytes per row.

        Returns:
            Recognized text with trailing whitespace and control
            characters removed.

        Raises:
            RecognitionError: if the engine fails on this bitmap.
            RuntimeError: if the handle is already in use or released.
        """
        if not self._busy.acquire(blocking=False):
            raise RuntimeError("OCR engine handle is already in use")
        try:
            if self._engine is None:
                raise RuntimeError("OCR engine handle has been released")
            data = np.ascontiguousarray(bitmap, dtype=np.uint8).tobytes()
            try:
                text = self._engine.recognize(data, width, height, stride)
            except RecognitionError:
                raise
            except Exception as e:
                raise RecognitionError(f"{type(e).__name__}: {e}") from e
            if text is None:
                raise RecognitionError("engine returned no text")
            return strip_trailing(text)
        finally:
            self._busy.release()

    def release(self):
        """End the engine. Safe to call more than once."""
        if self._engine is None:
            return
        self._engine.end()
        self._engine = None
