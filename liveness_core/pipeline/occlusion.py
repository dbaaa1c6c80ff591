"""Occlusion classification: hand over face, normal, or mask.

The classifier emits probabilities over three fixed class indices. A ``normal``
arg-max below 0.7 is not trusted: it is reassigned to the more probable of the
two occlusion classes (``with_mask`` only if strictly greater, otherwise
``hand_over_face``). When the classifier is unavailable the stage fails open
with ``("normal", 0.7)`` so the rest of the pipeline can still run.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Union

import numpy as np

from .contracts import ClassificationResult, FaceImage
from .errors import InferenceFailure
from .preprocess import TensorEncoder


HAND_OVER_FACE_INDEX = 0
NORMAL_INDEX = 1
WITH_MASK_INDEX = 2

CLASS_NAMES = ("hand_over_face", "normal", "with_mask")
NORMAL_LABEL = CLASS_NAMES[NORMAL_INDEX]

NORMAL_CONFIDENCE_THRESHOLD = 0.7

# Returned when the classifier cannot be loaded
UNAVAILABLE_RESULT = ClassificationResult(label=NORMAL_LABEL, confidence=0.7)


def decide_occlusion(
    probabilities: Optional[Sequence[float]],
    logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
) -> ClassificationResult:
    """Turn the classifier's probability triple into a label.

    Args:
        probabilities: [hand_over_face, normal, with_mask], or None when the
            classifier is unavailable

    Returns:
        ClassificationResult with confidence relative to the returned label
    """
    log = logger if logger is not None else logging.getLogger(__name__)

    if probabilities is None:
        log.warning("Occlusion model not available, assuming normal face with low confidence")
        return UNAVAILABLE_RESULT

    probs = np.asarray(probabilities, dtype=np.float64).reshape(-1)
    if probs.size != len(CLASS_NAMES):
        raise InferenceFailure(f"Expected {len(CLASS_NAMES)} occlusion probabilities, got {probs.size}")
    if not np.all(np.isfinite(probs)):
        raise InferenceFailure("Occlusion probabilities contain non-finite values")

    for name, prob in zip(CLASS_NAMES, probs):
        log.debug("Class %s: %.4f", name, prob)

    max_index = int(np.argmax(probs))
    max_prob = float(probs[max_index])

    if max_index == NORMAL_INDEX and max_prob < NORMAL_CONFIDENCE_THRESHOLD:
        log.debug("Normal class detected with low confidence: %.4f, reassigning", max_prob)
        mask_prob = float(probs[WITH_MASK_INDEX])
        hand_prob = float(probs[HAND_OVER_FACE_INDEX])
        if mask_prob > hand_prob:
            return ClassificationResult(label=CLASS_NAMES[WITH_MASK_INDEX], confidence=mask_prob)
        return ClassificationResult(label=CLASS_NAMES[HAND_OVER_FACE_INDEX], confidence=hand_prob)

    return ClassificationResult(label=CLASS_NAMES[max_index], confidence=max_prob)


class OcclusionDetector:
    """Occlusion stage: encode, run the (optional) classifier, decide."""

    def __init__(
        self,
        model=None,
        encoder: Optional[TensorEncoder] = None,
        logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
    ):
        self.model = model
        self.encoder = encoder or TensorEncoder()
        self.logger = logger if logger is not None else logging.getLogger(__name__)

    def detect(self, image: FaceImage) -> ClassificationResult:
        if self.model is None or not self.model.available:
            return decide_occlusion(None, self.logger)

        tensor = self.encoder.encode(image)
        probabilities = self.model.infer(tensor)
        result = decide_occlusion(probabilities, self.logger)
        self.logger.debug("Occlusion result: %s (%.4f)", result.label, result.confidence)
        return result

    def release(self) -> None:
        if self.model is not None:
            self.model.release()
