from __future__ import annotations

import numpy as np

from realtimebos.sources import LiveStreamSource, MediaStreamSource


class FakeReader:
    def __init__(self, frames):
        self.frames = frames
        self.closed = False

    def get_length(self):
        return len(self.frames)

    def get_data(self, index):
        if index >= len(self.frames):
            raise IndexError(index)
        return self.frames[index]

    def close(self):
        self.closed = True


def _frames(n: int) -> list[np.ndarray]:
    return [np.full((4, 4, 3), i, dtype=np.uint8) for i in range(n)]


def test_media_source_flags_each_new_index_once():
    src = MediaStreamSource(FakeReader(_frames(3)))
    assert src.current_frame() is None
    assert not src.has_new_frame()
    assert src.advance()
    assert src.has_new_frame()
    assert not src.has_new_frame()
    assert src.current_frame()[0, 0, 0] == 0
    assert src.advance()
    assert src.has_new_frame()
    assert src.observed_frame == 1


def test_media_source_pause_and_end():
    reader = FakeReader(_frames(2))
    src = MediaStreamSource(reader)
    src.advance()
    src.has_new_frame()
    src.pause()
    assert not src.advance()
    assert not src.has_new_frame()
    src.toggle_pause()
    assert src.advance()
    assert not src.advance()
    assert src.ended
    assert src.current_frame()[0, 0, 0] == 1
    src.close()
    assert reader.closed


def test_media_source_seek_back_is_new_frame():
    src = MediaStreamSource(FakeReader(_frames(4)))
    src.seek(3)
    assert src.has_new_frame()
    assert src.seek(1)
    assert src.has_new_frame()
    assert not src.seek(9)


def test_live_source_flag_follows_grabs():
    src = LiveStreamSource(iter(_frames(2)))
    assert not src.has_new_frame()
    assert src.advance()
    assert src.has_new_frame()
    assert src.advance()
    assert not src.advance()
    assert not src.has_new_frame()
    assert src.exhausted
    # last delivered frame stays available
    assert src.current_frame()[0, 0, 0] == 1
