"""Pipeline contracts: the records passed between stages and returned to callers.

All records are immutable once built. ``FaceImage`` is the one exception: the
caller owns it and may ``release()`` it, which the validator then rejects.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

import numpy as np


BRIGHTNESS_WEIGHT = 0.3
SHARPNESS_WEIGHT = 0.3
FACE_WEIGHT = 0.4

# Minimum acceptable overall score
ACCEPTABLE_SCORE_THRESHOLD = 0.5


class Prediction(Enum):
    LIVE = "Live"
    SPOOF = "Spoof"


@dataclass(frozen=True)
class PipelineConfig:
    """Behavioural switches fixed for the lifetime of one pipeline instance."""

    # Verbosity only, no behaviour change
    debug_logging: bool = False
    # Bypass the quality scorer and synthesize a passing score
    skip_quality_check: bool = False
    # Bypass the occlusion stage entirely
    skip_occlusion_check: bool = False


@dataclass
class FaceImage:
    """Caller-owned RGB uint8 image (H, W, 3)."""

    pixels: Optional[np.ndarray]
    released: bool = False

    @classmethod
    def from_array(cls, array: np.ndarray) -> "FaceImage":
        return cls(pixels=np.ascontiguousarray(array, dtype=np.uint8))

    @property
    def height(self) -> int:
        if self.pixels is None or self.pixels.ndim < 2:
            return 0
        return int(self.pixels.shape[0])

    @property
    def width(self) -> int:
        if self.pixels is None or self.pixels.ndim < 2:
            return 0
        return int(self.pixels.shape[1])

    def release(self) -> None:
        self.pixels = None
        self.released = True


@dataclass(frozen=True)
class QualityScore:
    """Quality sub-scores; ``overall`` and ``acceptable`` are derived."""

    brightness: float = 0.0
    sharpness: float = 0.0
    face_score: float = 0.0
    has_face: bool = False

    @classmethod
    def skipped(cls) -> "QualityScore":
        """Placeholder used when quality was never evaluated. Never acceptable."""
        return cls(brightness=0.0, sharpness=0.0, face_score=0.0, has_face=False)

    @classmethod
    def passing(cls) -> "QualityScore":
        """Synthetic score used when the quality check is configured off."""
        return cls(brightness=1.0, sharpness=1.0, face_score=1.0, has_face=True)

    @property
    def overall(self) -> float:
        # Face absence is a hard gate
        if not self.has_face:
            return 0.0
        score = (
            self.brightness * BRIGHTNESS_WEIGHT
            + self.sharpness * SHARPNESS_WEIGHT
            + self.face_score * FACE_WEIGHT
        )
        return float(min(max(score, 0.0), 1.0))

    @property
    def acceptable(self) -> bool:
        return self.has_face and self.overall >= ACCEPTABLE_SCORE_THRESHOLD

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall,
            "brightness": self.brightness,
            "sharpness": self.sharpness,
            "face_score": self.face_score,
            "has_face": self.has_face,
            "acceptable": self.acceptable,
        }

    def __str__(self) -> str:
        return (
            f"Quality: {self.overall:.2f} (Brightness: {self.brightness:.2f}, "
            f"Sharpness: {self.sharpness:.2f}, Face: {self.face_score:.2f})"
        )


@dataclass(frozen=True)
class ClassificationResult:
    """A label and the confidence in *that* label."""

    label: str
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Verdict:
    """Final decision emitted by ``detect_liveness``."""

    prediction: Prediction
    confidence: float
    quality: QualityScore = field(default_factory=QualityScore.skipped)
    failure_reason: Optional[str] = None
    reason_code: Optional[str] = None

    @property
    def is_live(self) -> bool:
        return self.prediction is Prediction.LIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prediction": self.prediction.value,
            "confidence": self.confidence,
            "quality": self.quality.to_dict(),
            "failure_reason": self.failure_reason,
            "reason_code": self.reason_code,
        }
