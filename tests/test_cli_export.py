from __future__ import annotations

import logging

import imageio.v2 as imageio
import numpy as np

from realtimebos.cli import process_video, run_main
from realtimebos.config import PipelineConfig, ReferenceMode
from realtimebos.export import PngExportSink
from realtimebos.utils import to_display


class FakeReader:
    def __init__(self, frames):
        self.frames = frames

    def get_length(self):
        return len(self.frames)

    def get_data(self, index):
        if index >= len(self.frames):
            raise IndexError(index)
        return self.frames[index]

    def close(self):
        pass


class FakeWriter:
    def __init__(self):
        self.frames = []
        self.closed = False

    def append_data(self, frame):
        self.frames.append(frame.copy())

    def close(self):
        self.closed = True


def test_process_video_writes_presented_stream(monkeypatch, tmp_path):
    T = 5
    frames = np.zeros((T, 8, 8, 3), dtype=np.uint8)
    frames[:] = 100
    frames[3, 2:4, 2:4] = 180
    writer = FakeWriter()

    monkeypatch.setattr("realtimebos.sources.imageio.get_reader", lambda path: FakeReader(list(frames)))
    monkeypatch.setattr("realtimebos.cli.imageio.get_writer", lambda path, fps=30: writer)

    written = process_video(
        str(tmp_path / "in.mp4"),
        str(tmp_path / "out.mp4"),
        PipelineConfig(average_output=False),
        export_dir=str(tmp_path / "png"),
    )

    assert written == T
    assert writer.closed
    assert np.array_equal(writer.frames[0], frames[0])
    assert np.all(writer.frames[1] == 0)
    assert np.all(writer.frames[3][2:4, 2:4] == 80)
    assert np.all(writer.frames[3][:2] == 0)
    assert sorted(p.name for p in (tmp_path / "png").iterdir()) == ["0.png", "1.png", "2.png", "3.png"]


def test_process_video_capture_at_recalibrates(monkeypatch, tmp_path):
    frames = [np.full((4, 4, 3), v, dtype=np.uint8) for v in (10, 60, 60, 60)]
    writer = FakeWriter()
    monkeypatch.setattr("realtimebos.sources.imageio.get_reader", lambda path: FakeReader(frames))
    monkeypatch.setattr("realtimebos.cli.imageio.get_writer", lambda path, fps=30: writer)

    process_video("in.mp4", "out.mp4", PipelineConfig(average_output=False), capture_at=[1])

    assert np.all(writer.frames[1] == 50)
    assert np.all(writer.frames[2] == 0)


def test_png_sink_numbers_frames(tmp_path):
    sink = PngExportSink(tmp_path / "out", start_index=7)
    frame = np.full((3, 5, 3), -0.5, dtype=np.float32)
    assert sink.write(frame) == 7
    assert sink.write(frame) == 8
    img = imageio.imread(sink.path_for(7))
    assert img.shape == (3, 5, 3)
    assert np.array_equal(img, to_display(frame))
    assert np.all(img == 128)


def test_run_entry_point_configures_logging(monkeypatch, tmp_path):
    clip = tmp_path / "in.mp4"
    clip.write_bytes(b"")
    calls = {}

    monkeypatch.setattr("realtimebos.cli.logging.basicConfig", lambda **kw: calls.setdefault("logging", kw))
    monkeypatch.setattr(
        "realtimebos.cli.process_video", lambda *args, **kwargs: calls.setdefault("config", args[2])
    )

    run_main(["-v", str(clip), str(tmp_path / "out.mp4"), "--reference-mode", "previous_frame"])

    assert calls["logging"]["level"] == logging.DEBUG
    assert calls["config"].reference_mode is ReferenceMode.PREVIOUS_FRAME
