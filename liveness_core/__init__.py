"""liveness_core: single-image face liveness and presentation-attack detection.

This package is the single source of truth for:
- input validation and image decoding
- image quality scoring (brightness, sharpness, face presence)
- the tensor contract fed to the occlusion and liveness classifiers
- occlusion and liveness decision rules
- the staged pipeline that turns one image into a Verdict
"""

from .api import __version__, check_image_quality, create_pipeline, detect_liveness, get_version, release
from .config import LivenessSettings, ModelSettings, load_settings
from .pipeline import (
    FaceImage,
    InferenceFailure,
    InvalidImage,
    LivenessError,
    LivenessPipeline,
    ModelUnavailable,
    PipelineCancelled,
    PipelineConfig,
    Prediction,
    QualityScore,
    Verdict,
)

__all__ = [
    "__version__",
    "check_image_quality",
    "create_pipeline",
    "detect_liveness",
    "get_version",
    "release",
    "LivenessSettings",
    "ModelSettings",
    "load_settings",
    "FaceImage",
    "InferenceFailure",
    "InvalidImage",
    "LivenessError",
    "LivenessPipeline",
    "ModelUnavailable",
    "PipelineCancelled",
    "PipelineConfig",
    "Prediction",
    "QualityScore",
    "Verdict",
]
