"""Liveness pipeline orchestrator.

Pipeline:
1. Validate input (InvalidImage propagates untouched)
2. Occlusion check (optional) → non-normal label short-circuits to Spoof
3. Quality check (optional, synthesized pass when skipped) → unacceptable short-circuits to Spoof
4. Liveness inference → final Verdict

Stages are strictly sequential: each one runs only after the previous stage
has decided to continue. When an executor is supplied every stage is submitted
as its own future so the caller's thread is not the one doing the work. A
cancel event returns control to the caller while a stage is running, but a
stage that has already started cannot be interrupted: it finishes in its
worker and its result is discarded.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, TypeVar, Union

from ..logging_config import gated_logger
from .contracts import FaceImage, PipelineConfig, Prediction, QualityScore, Verdict
from .errors import LivenessError, PipelineCancelled
from .liveness import LivenessDetector
from .occlusion import NORMAL_LABEL, OcclusionDetector
from .preprocess import TensorEncoder
from .quality import QualityScorer
from .reason_codes import CODES
from .validate import validate


T = TypeVar("T")

# Fixed confidence reported for quality rejections
QUALITY_REJECTION_CONFIDENCE = 0.9

# Seconds between cancel-event checks while a stage future is running
CANCEL_POLL_INTERVAL = 0.05


@dataclass
class ReleaseReport:
    """Per-resource teardown outcome: None on success, else the error message."""

    outcomes: Dict[str, Optional[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return all(err is None for err in self.outcomes.values())

    @property
    def failures(self) -> Dict[str, str]:
        return {name: err for name, err in self.outcomes.items() if err is not None}


class LivenessPipeline:
    """One pipeline handle: config, collaborators and their lifetimes."""

    def __init__(
        self,
        config: PipelineConfig = PipelineConfig(),
        face_detector=None,
        occlusion_model=None,
        liveness_model=None,
        encoder: Optional[TensorEncoder] = None,
        logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
        executor: Optional[Executor] = None,
    ):
        """
        Args:
            config: Behavioural switches, fixed for this instance
            face_detector: Object with ``detect(image) -> FacePresence`` and ``close()``
            occlusion_model: Classifier with ``available``, ``infer`` and ``release``
            liveness_model: Classifier with ``available``, ``infer`` and ``release``
            encoder: Tensor encoder shared by both classifier stages
            logger: Logging sink; DEBUG records pass only if config.debug_logging
            executor: Optional executor each stage is submitted to
        """
        self.config = config
        self.logger = gated_logger(config.debug_logging, logger)
        self.executor = executor

        self.encoder = encoder or TensorEncoder()
        self.face_detector = face_detector
        self.quality_scorer = QualityScorer(face_detector, logger=self.logger)
        self.occlusion_detector = OcclusionDetector(occlusion_model, self.encoder, logger=self.logger)
        self.liveness_detector = LivenessDetector(liveness_model, self.encoder, logger=self.logger)

        self._released = False
        self._release_lock = threading.Lock()

        self.logger.info(
            "LivenessPipeline initialized with config: debug_logging=%s, skip_quality_check=%s, "
            "skip_occlusion_check=%s",
            config.debug_logging,
            config.skip_quality_check,
            config.skip_occlusion_check,
        )

    def __enter__(self) -> "LivenessPipeline":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    @property
    def released(self) -> bool:
        return self._released

    def _ensure_open(self) -> None:
        if self._released:
            raise LivenessError("Pipeline has been released")

    def _run_stage(
        self,
        name: str,
        fn: Callable[[FaceImage], T],
        image: FaceImage,
        cancel_event: Optional[threading.Event],
    ) -> T:
        """Run one stage, on the executor when there is one.

        Cancelling while the stage runs raises ``PipelineCancelled`` at once.
        ``future.cancel()`` only prevents a stage that has not started yet.
        """
        if cancel_event is not None and cancel_event.is_set():
            raise PipelineCancelled(f"Cancelled before {name} stage")

        if self.executor is None:
            return fn(image)

        future = self.executor.submit(fn, image)
        if cancel_event is None:
            return future.result()

        while True:
            try:
                return future.result(timeout=CANCEL_POLL_INTERVAL)
            except FutureTimeoutError:
                if cancel_event.is_set():
                    future.cancel()
                    raise PipelineCancelled(f"Cancelled during {name} stage")

    def detect_liveness(self, image: FaceImage, cancel_event: Optional[threading.Event] = None) -> Verdict:
        """Run the full pipeline on one image.

        Raises:
            InvalidImage: image failed validation (no Verdict produced)
            LivenessError: model/inference failure, cancellation, or any other
                stage failure (normalized to this base kind)
        """
        self.logger.debug("Starting face liveness detection process")
        validate(image)
        self._ensure_open()

        try:
            return self._detect(image, cancel_event)
        except LivenessError as e:
            self.logger.error("Liveness detection failed [%s]: %s", e.reason_code, e)
            raise
        except Exception as e:
            self.logger.error("Error in liveness detection pipeline: %s", e, exc_info=True)
            raise LivenessError(f"Pipeline error: {e}") from e

    def _detect(self, image: FaceImage, cancel_event: Optional[threading.Event]) -> Verdict:
        if not self.config.skip_occlusion_check:
            occlusion = self._run_stage("occlusion", self.occlusion_detector.detect, image, cancel_event)
            self.logger.debug("Face occlusion check result: %s with confidence %.4f", occlusion.label, occlusion.confidence)

            if occlusion.label != NORMAL_LABEL:
                self.logger.debug("Face is occluded: %s, skipping further checks", occlusion.label)
                return Verdict(
                    prediction=Prediction.SPOOF,
                    confidence=occlusion.confidence,
                    quality=QualityScore.skipped(),
                    failure_reason=f"occluded: {occlusion.label}",
                    reason_code=CODES.OCCLUDED,
                )
        else:
            self.logger.debug("Face occlusion check skipped as per configuration")

        if self.config.skip_quality_check:
            self.logger.debug("Image quality check skipped as per configuration")
            quality = QualityScore.passing()
        else:
            quality = self._run_stage("quality", self.quality_scorer.score, image, cancel_event)
            self.logger.debug("Quality check result: %s", quality)

            if not quality.acceptable:
                self.logger.debug("Image quality not acceptable, skipping liveness detection")
                return Verdict(
                    prediction=Prediction.SPOOF,
                    confidence=QUALITY_REJECTION_CONFIDENCE,
                    quality=quality,
                    failure_reason=f"quality insufficient: {quality.overall:.2f}",
                    reason_code=CODES.LOW_QUALITY,
                )

        liveness = self._run_stage("liveness", self.liveness_detector.detect, image, cancel_event)
        verdict = Verdict(
            prediction=Prediction(liveness.label),
            confidence=liveness.confidence,
            quality=quality,
        )
        self.logger.debug("Detection complete: %s", verdict)
        return verdict

    def check_image_quality(self, image: FaceImage) -> QualityScore:
        """Quality diagnostic only. Runs even if the pipeline skips quality checks."""
        self.logger.debug("Performing standalone image quality check")
        validate(image)
        self._ensure_open()
        return self.quality_scorer.score(image)

    def _close_face_detector(self) -> None:
        if self.face_detector is not None and hasattr(self.face_detector, "close"):
            self.face_detector.close()

    def release(self) -> ReleaseReport:
        """Release every resource independently. Never raises.

        A second call does nothing and returns an empty report.
        """
        with self._release_lock:
            if self._released:
                self.logger.debug("LivenessPipeline already released")
                return ReleaseReport()
            self._released = True

        self.logger.debug("Closing LivenessPipeline resources")
        report = ReleaseReport()
        resources = (
            ("occlusion_model", self.occlusion_detector.release),
            ("liveness_model", self.liveness_detector.release),
            ("face_detector", self._close_face_detector),
        )
        for name, closer in resources:
            try:
                closer()
                report.outcomes[name] = None
            except Exception as e:
                self.logger.error("Error releasing %s: %s", name, e)
                report.outcomes[name] = str(e) or type(e).__name__

        if not report.ok:
            self.logger.warning("Pipeline released with %d failure(s): %s", len(report.failures), report.failures)
        return report
