from __future__ import annotations

import time
from typing import Callable, Dict, List, Optional, Sequence

import cv2
import numpy as np
import pytest

from wastecam.camera_interface import Frame


class FakeModel:
    """Stands in for the trained network: returns canned score vectors."""

    def __init__(self, outputs: Optional[Sequence[object]] = None,
                 input_shape: tuple = (1, 224, 224, 3)) -> None:
        self.outputs: List[object] = list(outputs) if outputs else [[0.1, 0.9, 0.05, 0.05]]
        self.input_shape = input_shape
        self.calls = 0
        self.closed = False

    def predict(self, tensor: np.ndarray) -> np.ndarray:
        output = self.outputs[self.calls % len(self.outputs)]
        self.calls += 1
        if isinstance(output, Exception):
            raise output
        return np.asarray([output], dtype=np.float32)

    def close(self) -> None:
        self.closed = True


class ListSource:
    """Frame source that hands out a fixed list of frames, then nothing."""

    def __init__(self, frames: Sequence[Frame]) -> None:
        self.frames = list(frames)
        self.frames_received = len(self.frames)
        self.frames_dropped = 0
        self.running = True

    def next_frame(self, timeout: Optional[float] = None) -> Optional[Frame]:
        if self.frames:
            return self.frames.pop(0)
        self.running = False
        return None


@pytest.fixture
def make_frame() -> Callable[..., Frame]:
    def _make(value: int = 128, size: int = 224, frame_id: int = 1) -> Frame:
        pixels = np.full((size, size, 3), value, dtype=np.uint8)
        return Frame(data=pixels, frame_id=frame_id, timestamp=0.0)
    return _make


@pytest.fixture
def fake_model() -> FakeModel:
    return FakeModel()


@pytest.fixture
def loader_for() -> Callable[[FakeModel], Callable[[str], FakeModel]]:
    def _loader(model: FakeModel) -> Callable[[str], FakeModel]:
        return lambda _path: model
    return _loader


@pytest.fixture
def gui_calls(monkeypatch) -> Dict[str, int]:
    """Replace the OpenCV window functions; destroyWindow fails like a headless build."""
    calls = {"imshow": 0, "waitKey": 0, "destroyWindow": 0}

    def imshow(name, image) -> None:
        calls["imshow"] += 1

    def wait_key(delay) -> int:
        calls["waitKey"] += 1
        time.sleep(0.001)
        return -1

    def destroy_window(name) -> None:
        calls["destroyWindow"] += 1
        raise cv2.error("The function is not implemented")

    monkeypatch.setattr(cv2, "imshow", imshow)
    monkeypatch.setattr(cv2, "waitKey", wait_key)
    monkeypatch.setattr(cv2, "destroyWindow", destroy_window)
    return calls
