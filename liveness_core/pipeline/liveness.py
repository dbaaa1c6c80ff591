"""Liveness classification from a single logit.

``Live`` iff sigmoid(logit) > 0.5 (exactly 0.5 is ``Spoof``). The returned
confidence is always in the returned label: p for Live, 1 - p for Spoof.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Union

import numpy as np

from .contracts import ClassificationResult, FaceImage, Prediction
from .errors import InferenceFailure, ModelUnavailable
from .preprocess import TensorEncoder


LIVE_THRESHOLD = 0.5


def sigmoid(x: float) -> float:
    # Stable for large |x|
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def decide_liveness(
    logit: float,
    logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
) -> ClassificationResult:
    log = logger if logger is not None else logging.getLogger(__name__)

    logit = float(logit)
    if not math.isfinite(logit):
        raise InferenceFailure(f"Liveness logit is not finite: {logit}")

    conf = sigmoid(logit)
    log.debug("Raw logit: %.4f, sigmoid: %.4f", logit, conf)

    if conf > LIVE_THRESHOLD:
        return ClassificationResult(label=Prediction.LIVE.value, confidence=conf)
    return ClassificationResult(label=Prediction.SPOOF.value, confidence=1.0 - conf)


class LivenessDetector:
    """Liveness stage. Unlike occlusion there is no degraded mode."""

    def __init__(
        self,
        model,
        encoder: Optional[TensorEncoder] = None,
        logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
    ):
        self.model = model
        self.encoder = encoder or TensorEncoder()
        self.logger = logger if logger is not None else logging.getLogger(__name__)

    def detect(self, image: FaceImage) -> ClassificationResult:
        if self.model is None:
            raise ModelUnavailable("No liveness model configured")

        tensor = self.encoder.encode(image)
        output = np.asarray(self.model.infer(tensor)).reshape(-1)
        if output.size == 0:
            raise InferenceFailure("Liveness model returned an empty output")

        result = decide_liveness(output[0], self.logger)
        self.logger.debug("Liveness result: %s (%.4f)", result.label, result.confidence)
        return result

    def release(self) -> None:
        if self.model is not None:
            self.model.release()
