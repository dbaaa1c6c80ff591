"""Face presence detection wrapper.

The quality scorer only needs to know whether a face is present and how many.
This wrapper supports:
1) ``mediapipe`` face detection (BlazeFace), imported on first use.
2) ``stub`` backend that reports no faces (useful for wiring and tests).

Any other detector can be injected into the pipeline as long as it exposes
``detect(image) -> FacePresence`` and ``close()``.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Literal

from .contracts import FaceImage
from .errors import ModelUnavailable


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FaceDetectorConfig:
    backend: Literal["mediapipe", "stub"] = "mediapipe"
    min_confidence: float = 0.5
    # 0 = short range (selfie distance), 1 = full range
    model_selection: int = 0


@dataclass(frozen=True)
class FacePresence:
    present: bool
    count: int = 0


class FaceBackendUnavailable(ModelUnavailable):
    """The configured detector backend cannot be loaded."""


class FacePresenceDetector:
    """Face presence detector with explicit one-time backend acquisition."""

    def __init__(self, cfg: FaceDetectorConfig = FaceDetectorConfig()):
        self.cfg = cfg
        self._detector = None
        self._init_lock = threading.Lock()
        # MediaPipe graphs are not re-entrant
        self._run_lock = threading.Lock()

    def _ensure_backend(self):
        if self._detector is not None:
            return self._detector
        with self._init_lock:
            if self._detector is None:
                try:
                    import mediapipe as mp
                except ImportError as e:
                    raise FaceBackendUnavailable(
                        "mediapipe is required for FaceDetectorConfig(backend='mediapipe'). "
                        "Install with: pip install mediapipe==0.10.9"
                    ) from e
                self._detector = mp.solutions.face_detection.FaceDetection(
                    model_selection=self.cfg.model_selection,
                    min_detection_confidence=self.cfg.min_confidence,
                )
                logger.debug("MediaPipe face detector initialized")
        return self._detector

    def detect(self, image: FaceImage) -> FacePresence:
        if self.cfg.backend == "stub":
            return FacePresence(present=False, count=0)

        if self.cfg.backend != "mediapipe":
            raise ValueError(f"Unknown backend: {self.cfg.backend}")

        detector = self._ensure_backend()
        with self._run_lock:
            # mediapipe expects RGB
            results = detector.process(image.pixels)

        count = 0
        if results and results.detections:
            count = sum(
                1 for det in results.detections
                if det.score and float(det.score[0]) >= self.cfg.min_confidence
            )
        return FacePresence(present=count > 0, count=count)

    def close(self) -> None:
        """Release backend resources. Safe to call more than once."""
        with self._init_lock:
            detector, self._detector = self._detector, None
        if detector is not None:
            detector.close()
