"""Shared fixtures: synthetic images and fake collaborators (no model files needed)."""

from __future__ import annotations

import threading
from typing import Callable, List, Optional

import numpy as np
import pytest

from liveness_core.pipeline import FaceImage, FacePresence


def solid_image(color=(128, 128, 128), size=(200, 200)) -> FaceImage:
    h, w = size
    pixels = np.empty((h, w, 3), dtype=np.uint8)
    pixels[...] = np.array(color, dtype=np.uint8)
    return FaceImage.from_array(pixels)


def checkerboard_image(size=(200, 200), block: int = 2) -> FaceImage:
    h, w = size
    ys, xs = np.indices((h, w))
    board = (((ys // block) + (xs // block)) % 2 * 255).astype(np.uint8)
    return FaceImage.from_array(np.stack([board, board, board], axis=-1))


class FakeFaceDetector:
    def __init__(self, present: bool = True, error: Optional[Exception] = None, close_error: Optional[Exception] = None):
        self.present = present
        self.error = error
        self.close_error = close_error
        self.calls = 0
        self.closed = 0

    def detect(self, image: FaceImage) -> FacePresence:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return FacePresence(present=self.present, count=1 if self.present else 0)

    def close(self) -> None:
        self.closed += 1
        if self.close_error is not None:
            raise self.close_error


class FakeModel:
    """Classifier double. ``output`` may be an array or a callable of the input tensor."""

    def __init__(self, output=None, available: bool = True, error: Optional[Exception] = None,
                 release_error: Optional[Exception] = None):
        self.output = output
        self._available = available
        self.error = error
        self.release_error = release_error
        self.inputs: List[np.ndarray] = []
        self.released = 0
        self._lock = threading.Lock()

    @property
    def available(self) -> bool:
        return self._available

    def infer(self, tensor: np.ndarray) -> np.ndarray:
        with self._lock:
            self.inputs.append(tensor)
        if self.error is not None:
            raise self.error
        out = self.output(tensor) if callable(self.output) else self.output
        return np.asarray(out, dtype=np.float32)

    @property
    def calls(self) -> int:
        return len(self.inputs)

    def release(self) -> None:
        self.released += 1
        if self.release_error is not None:
            raise self.release_error


@pytest.fixture
def gray_image() -> FaceImage:
    return solid_image((128, 128, 128))


@pytest.fixture
def dark_image() -> FaceImage:
    return solid_image((0, 0, 0))


@pytest.fixture
def face_detector() -> FakeFaceDetector:
    return FakeFaceDetector(present=True)


@pytest.fixture
def normal_occlusion_model() -> FakeModel:
    return FakeModel(output=[[0.05, 0.90, 0.05]])


@pytest.fixture
def live_model() -> FakeModel:
    return FakeModel(output=[[2.0]])


@pytest.fixture
def make_image() -> Callable[..., FaceImage]:
    return solid_image
