"""Pipeline package: validation, quality, encoding, decision logic, orchestration.

This package is the authoritative implementation of the liveness decision
pipeline and of the tensor contract the classifier models consume.
"""

from .contracts import (
    ClassificationResult,
    FaceImage,
    PipelineConfig,
    Prediction,
    QualityScore,
    Verdict,
)
from .decode import decode_image_bytes, load_image
from .errors import InferenceFailure, InvalidImage, LivenessError, ModelUnavailable, PipelineCancelled
from .face import FaceDetectorConfig, FacePresence, FacePresenceDetector
from .liveness import LivenessDetector, decide_liveness
from .occlusion import OcclusionDetector, decide_occlusion
from .orchestrator import LivenessPipeline, ReleaseReport
from .preprocess import PreprocessConfig, TensorEncoder
from .quality import QualityScorer, brightness_curve, sharpness_curve
from .reason_codes import CODES, ReasonCodes
from .validate import is_valid, validate

__all__ = [
    "ClassificationResult",
    "FaceImage",
    "PipelineConfig",
    "Prediction",
    "QualityScore",
    "Verdict",
    "decode_image_bytes",
    "load_image",
    "InferenceFailure",
    "InvalidImage",
    "LivenessError",
    "ModelUnavailable",
    "PipelineCancelled",
    "FaceDetectorConfig",
    "FacePresence",
    "FacePresenceDetector",
    "LivenessDetector",
    "decide_liveness",
    "OcclusionDetector",
    "decide_occlusion",
    "LivenessPipeline",
    "ReleaseReport",
    "PreprocessConfig",
    "TensorEncoder",
    "QualityScorer",
    "brightness_curve",
    "sharpness_curve",
    "CODES",
    "ReasonCodes",
    "is_valid",
    "validate",
]
