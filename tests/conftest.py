"""
Shared fixtures: synthetic frames and a fake OCR engine.
"""

import threading
import time
import numpy as np
import pytest

from ocr_pipeline.frames import Frame, UNKNOWN_PTS


class FakeEngine:
    """Stands in for tesseract; 'recognizes' the bitmap width."""

    def __init__(self, factory, config):
        self.factory = factory
        self.config = config
        self.ended = False

    def recognize(self, data, width, height, stride):
        factory = self.factory
        with factory.lock:
            factory.active += 1
            factory.max_active = max(factory.max_active, factory.active)
            factory.calls.append((width, threading.current_thread().name))
        try:
            time.sleep(factory.delays.get(width, factory.delay))
            if width in factory.fail_widths:
                raise factory.fail_exc(f"cannot read {width}")
            return f"line {width}\n \n"
        finally:
            with factory.lock:
                factory.active -= 1

    def end(self):
        self.ended = True


class FakeEngineFactory:
    """Callable engine factory that tracks concurrency across engines."""

    def __init__(self, delay=0.0, delays=None, fail_widths=(), fail_init=False,
                 fail_exc=RuntimeError):
        self.delay = delay
        self.delays = dict(delays or {})
        self.fail_widths = set(fail_widths)
        self.fail_init = fail_init
        self.fail_exc = fail_exc

        self.lock = threading.Lock()
        self.active = 0
        self.max_active = 0
        self.calls = []
        self.engines = []

    def __call__(self, config):
        if self.fail_init:
            raise RuntimeError("no traineddata for language")
        engine = FakeEngine(self, config)
        self.engines.append(engine)
        return engine


def make_frame(start, end=UNKNOWN_PTS, width=20, height=10, stride=None,
               counter=0, packet_pts=None, fill=255):
    stride = stride or width
    pixels = np.zeros((height, stride), dtype=np.uint8)
    pixels[:, :width] = fill
    return Frame(
        start_pts=start,
        end_pts=end,
        pixels=pixels,
        width=width,
        height=height,
        stride=stride,
        counter=counter,
        packet_pts=packet_pts,
    )


@pytest.fixture
def engine_factory():
    return FakeEngineFactory()


@pytest.fixture(name="make_frame")
def make_frame_fixture():
    return make_frame
