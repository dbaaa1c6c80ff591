"""Public surface: build a pipeline handle and call it.

    pipeline = create_pipeline(PipelineConfig(skip_quality_check=True))
    verdict = detect_liveness(pipeline, image)
    release(pipeline)
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor
from typing import Optional, Union

from .config import LivenessSettings
from .logging_config import gated_logger
from .models import OnnxClassifierModel
from .pipeline.contracts import FaceImage, PipelineConfig, QualityScore, Verdict
from .pipeline.face import FacePresenceDetector
from .pipeline.orchestrator import LivenessPipeline, ReleaseReport
from .pipeline.preprocess import TensorEncoder


__version__ = "1.0.0"

logger = logging.getLogger(__name__)


def create_pipeline(
    config: Optional[PipelineConfig] = None,
    settings: Optional[LivenessSettings] = None,
    *,
    face_detector=None,
    occlusion_model=None,
    liveness_model=None,
    logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
    executor: Optional[Executor] = None,
) -> LivenessPipeline:
    """Build a pipeline handle.

    Collaborators not passed explicitly are built from ``settings``: a
    MediaPipe face detector and ONNX Runtime sessions for the two classifiers.
    Sessions are opened lazily on first use, so a missing model file only
    surfaces when its stage runs.

    Args:
        config: Behavioural switches; defaults to ``settings.pipeline``
        settings: Model/detector settings; defaults to ``LivenessSettings()``
    """
    settings = settings or LivenessSettings()
    config = config or settings.pipeline
    model_logger = gated_logger(config.debug_logging, logger)

    if face_detector is None:
        face_detector = FacePresenceDetector(settings.face_detector)
    if occlusion_model is None and not config.skip_occlusion_check:
        occlusion_model = OnnxClassifierModel(
            settings.models.occlusion_model_path,
            name="occlusion",
            providers=settings.models.providers,
            logger=model_logger,
        )
    if liveness_model is None:
        liveness_model = OnnxClassifierModel(
            settings.models.liveness_model_path,
            name="liveness",
            providers=settings.models.providers,
            logger=model_logger,
        )

    return LivenessPipeline(
        config=config,
        face_detector=face_detector,
        occlusion_model=occlusion_model,
        liveness_model=liveness_model,
        encoder=TensorEncoder(settings.preprocess),
        logger=logger,
        executor=executor,
    )


def detect_liveness(handle: LivenessPipeline, image: FaceImage) -> Verdict:
    return handle.detect_liveness(image)


def check_image_quality(handle: LivenessPipeline, image: FaceImage) -> QualityScore:
    return handle.check_image_quality(image)


def get_version() -> str:
    return __version__


def release(handle: Optional[LivenessPipeline]) -> ReleaseReport:
    """Best-effort teardown; never raises past this call."""
    if handle is None:
        return ReleaseReport()
    try:
        return handle.release()
    except Exception as e:
        logger.error("Error releasing pipeline: %s", e)
        return ReleaseReport(outcomes={"pipeline": str(e) or type(e).__name__})
