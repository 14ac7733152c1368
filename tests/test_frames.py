"""
Tests for the frame gate, frame sources and the preprocessor.
"""

import logging
import numpy as np
import pytest
import yaml
from PIL import Image

from config import GateConfig
from ocr_pipeline.frames import FrameGate, FrameSource, UNKNOWN_PTS
from ocr_pipeline.image_source import ImageSequenceSource
from ocr_pipeline.preprocess import FramePreprocessor, invert


class ListSource(FrameSource):
    def __init__(self, frames):
        self._frames = list(frames)

    def next_frame(self):
        return self._frames.pop(0) if self._frames else None


@pytest.fixture
def gate():
    return FrameGate(GateConfig(min_width=9, min_height=1))


class TestFrameGate:
    """Test duplicate suppression, the size gate and counter assignment."""

    def test_duplicate_start_suppressed(self, gate, make_frame):
        frames = [make_frame(0), make_frame(0), make_frame(9000)]
        accepted = list(gate.filter(frames))
        assert [f.start_pts for f in accepted] == [0, 9000]
        assert gate.duplicates == 1

    def test_counters_consecutive_from_one(self, gate, make_frame):
        frames = [make_frame(0), make_frame(9000), make_frame(18000)]
        assert [f.counter for f in gate.filter(frames)] == [1, 2, 3]

    def test_narrow_frame_skipped(self, gate, make_frame, caplog):
        frames = [make_frame(0), make_frame(9000, width=8), make_frame(18000)]
        with caplog.at_level(logging.WARNING):
            accepted = list(gate.filter(frames))
        assert [f.start_pts for f in accepted] == [0, 18000]
        assert [f.counter for f in accepted] == [1, 2]
        assert gate.too_small == 1
        assert "Image too small" in caplog.text

    def test_min_height_gate(self, make_frame):
        gate = FrameGate(GateConfig(min_width=9, min_height=5))
        accepted = list(gate.filter([make_frame(0, height=4), make_frame(9000, height=5)]))
        assert [f.start_pts for f in accepted] == [9000]

    def test_duplicate_of_skipped_frame_still_dropped(self, gate, make_frame):
        frames = [make_frame(0, width=4), make_frame(0, width=40)]
        assert list(gate.filter(frames)) == []
        assert gate.duplicates == 1

    def test_pts_mismatch_warned_when_verbose(self, make_frame, caplog):
        gate = FrameGate(GateConfig(), verbose=True)
        with caplog.at_level(logging.WARNING):
            accepted = list(gate.filter([make_frame(9000, packet_pts=8990)]))
        assert len(accepted) == 1
        assert "doesn't match" in caplog.text

    def test_pts_mismatch_silent_by_default(self, gate, make_frame, caplog):
        with caplog.at_level(logging.WARNING):
            list(gate.filter([make_frame(9000, packet_pts=8990)]))
        assert "doesn't match" not in caplog.text

    def test_accepts_frame_source(self, gate, make_frame):
        source = ListSource([make_frame(0), make_frame(0), make_frame(90)])
        assert len(list(gate.filter(source))) == 2


class TestPreprocessor:
    """Test inversion and debug dumps."""

    def test_invert_binarises(self):
        pixels = np.array([[0, 100, 126, 127, 128, 255]], dtype=np.uint8)
        assert invert(pixels).tolist() == [[255, 255, 255, 0, 0, 0]]

    def test_prepare_does_not_mutate(self, make_frame):
        frame = make_frame(0, fill=255)
        before = frame.pixels.copy()
        bitmap = FramePreprocessor().prepare(frame)
        assert np.array_equal(frame.pixels, before)
        assert bitmap is not frame.pixels
        assert bitmap.shape == frame.pixels.shape
        assert bitmap.dtype == np.uint8

    def test_light_text_becomes_dark(self, make_frame):
        frame = make_frame(0, width=10, stride=16, fill=255)
        bitmap = FramePreprocessor().prepare(frame)
        assert (bitmap[:, :10] == 0).all()
        assert (bitmap[:, 10:] == 255).all()

    def test_dump_writes_pre_inversion_pgm(self, make_frame, tmp_path):
        frame = make_frame(0, width=12, stride=16, height=3, fill=200)
        frame.counter = 7
        preprocessor = FramePreprocessor(tmp_path / "movie")
        preprocessor.prepare(frame)

        path = tmp_path / "movie-0007.pgm"
        assert path.exists()
        assert path.read_bytes().startswith(b"P5")
        with Image.open(path) as img:
            assert img.size == (12, 3)
            assert np.array(img).max() == 200

    def test_no_dump_by_default(self, make_frame, tmp_path):
        FramePreprocessor().prepare(make_frame(0))
        assert list(tmp_path.iterdir()) == []


class TestImageSequenceSource:
    """Test the YAML manifest frame source."""

    def _write_image(self, path, width, height, value=255):
        Image.fromarray(np.full((height, width), value, dtype=np.uint8)).save(path)

    def test_reads_frames_in_order(self, tmp_path):
        self._write_image(tmp_path / "a.png", 30, 10)
        self._write_image(tmp_path / "b.png", 40, 12)
        manifest = tmp_path / "subs.yaml"
        manifest.write_text(yaml.safe_dump({"frames": [
            {"image": "a.png", "start": 0, "end": 9000},
            {"image": "b.png", "start": 18000, "packet_pts": 17990},
        ]}))

        source = ImageSequenceSource(manifest)
        frames = list(source)

        assert len(source) == 2
        assert [(f.width, f.height, f.stride) for f in frames] == [(30, 10, 30), (40, 12, 40)]
        assert frames[0].end_pts == 9000
        assert frames[1].end_pts == UNKNOWN_PTS
        assert frames[1].packet_pts == 17990
        assert frames[0].pixels.dtype == np.uint8
        assert source.next_frame() is None

    def test_missing_manifest(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ImageSequenceSource(tmp_path / "missing.yaml")

    def test_empty_manifest(self, tmp_path):
        manifest = tmp_path / "empty.yaml"
        manifest.write_text("")
        assert list(ImageSequenceSource(manifest)) == []
