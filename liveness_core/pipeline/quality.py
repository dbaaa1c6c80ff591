"""Image quality scoring.

Three sub-scores feed ``QualityScore``:
- brightness: mean luminance on an adaptive grid, mapped through a five-band curve
- sharpness: mean Sobel gradient magnitude on an adaptive grid, four-band curve
- face presence: from the injected face detector (hard gate on ``overall``)

Sampling strides grow with image size so the cost stays bounded while still
approximating a full-image statistic. Per-sample values are truncated to
integers before averaging.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

import numpy as np

from .contracts import FaceImage, QualityScore
from .errors import ModelUnavailable


# Brightness bands (mean luminance, 0..255)
BRIGHTNESS_TOO_DARK = 40.0
BRIGHTNESS_SOMEWHAT_DARK = 80.0
BRIGHTNESS_GOOD_UPPER = 180.0
BRIGHTNESS_SOMEWHAT_BRIGHT = 220.0

# Sharpness bands (mean Sobel magnitude)
SHARPNESS_VERY_BLURRY = 5.0
SHARPNESS_SOMEWHAT_BLURRY = 10.0
SHARPNESS_GOOD_UPPER = 50.0
SHARPNESS_TOO_DETAILED = 100.0

BRIGHTNESS_GRID_DIVISOR = 50
SHARPNESS_GRID_DIVISOR = 40
SHARPNESS_BORDER = 2
MIN_SHARPNESS_SIZE = 10
NEUTRAL_SHARPNESS = 0.5


def _clamp01(x: float) -> float:
    return float(min(max(x, 0.0), 1.0))


def luminance(rgb_uint8: np.ndarray) -> np.ndarray:
    """Integer luminance (0.299R + 0.587G + 0.114B), truncated."""
    rgb = rgb_uint8.astype(np.float64)
    gray = 0.299 * rgb[..., 0] + 0.587 * rgb[..., 1] + 0.114 * rgb[..., 2]
    return gray.astype(np.int32)


def brightness_curve(avg: float) -> float:
    """Map mean luminance to a score; [80, 180) is the optimal band."""
    if avg < BRIGHTNESS_TOO_DARK:
        score = 0.5 * avg / BRIGHTNESS_TOO_DARK
    elif avg < BRIGHTNESS_SOMEWHAT_DARK:
        score = 0.5 + (avg - BRIGHTNESS_TOO_DARK) / 80.0
    elif avg < BRIGHTNESS_GOOD_UPPER:
        score = 1.0
    elif avg < BRIGHTNESS_SOMEWHAT_BRIGHT:
        score = 1.0 - (avg - BRIGHTNESS_GOOD_UPPER) / 80.0
    else:
        score = 0.5 - (avg - BRIGHTNESS_SOMEWHAT_BRIGHT) / 70.0
    return _clamp01(score)


def sharpness_curve(avg_grad: float) -> float:
    """Map mean gradient magnitude to a score; [10, 50) is ideal."""
    if avg_grad < SHARPNESS_VERY_BLURRY:
        score = 0.5 * avg_grad / SHARPNESS_VERY_BLURRY
    elif avg_grad < SHARPNESS_SOMEWHAT_BLURRY:
        score = 0.5 + (avg_grad - SHARPNESS_VERY_BLURRY) / 10.0
    elif avg_grad < SHARPNESS_GOOD_UPPER:
        score = 1.0
    elif avg_grad < SHARPNESS_TOO_DETAILED:
        score = 1.0 - (avg_grad - SHARPNESS_GOOD_UPPER) / 100.0
    else:
        # Extremely noisy or artificially sharpened
        score = 0.5
    return _clamp01(score)


def mean_luminance(rgb_uint8: np.ndarray) -> float:
    h, w = rgb_uint8.shape[:2]
    step = max(1, min(w, h) // BRIGHTNESS_GRID_DIVISOR)
    samples = luminance(rgb_uint8[::step, ::step])
    return float(samples.mean())


def mean_sobel_magnitude(rgb_uint8: np.ndarray) -> Optional[float]:
    """Mean Sobel magnitude over the sampled interior, or None if nothing sampled."""
    h, w = rgb_uint8.shape[:2]
    step = max(1, min(w, h) // SHARPNESS_GRID_DIVISOR)
    ys = np.arange(SHARPNESS_BORDER, h - SHARPNESS_BORDER, step)
    xs = np.arange(SHARPNESS_BORDER, w - SHARPNESS_BORDER, step)
    if ys.size == 0 or xs.size == 0:
        return None

    gray = luminance(rgb_uint8)
    rows = ys[:, None]
    cols = xs[None, :]

    def at(dy: int, dx: int) -> np.ndarray:
        return gray[np.clip(rows + dy, 0, h - 1), np.clip(cols + dx, 0, w - 1)]

    gx = at(-1, 1) + 2 * at(0, 1) + at(1, 1) - at(-1, -1) - 2 * at(0, -1) - at(1, -1)
    gy = at(1, -1) + 2 * at(1, 0) + at(1, 1) - at(-1, -1) - 2 * at(-1, 0) - at(-1, 1)

    magnitude = np.sqrt(gx.astype(np.float64) ** 2 + gy.astype(np.float64) ** 2).astype(np.int64)
    return float(magnitude.mean())


class QualityScorer:
    """Scores brightness, sharpness and face presence of a validated image."""

    def __init__(self, face_detector=None, logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None):
        self.face_detector = face_detector
        self.logger = logger if logger is not None else logging.getLogger(__name__)

    def brightness(self, image: FaceImage) -> float:
        avg = mean_luminance(image.pixels)
        self.logger.debug("Mean luminance: %.2f", avg)
        return brightness_curve(avg)

    def sharpness(self, image: FaceImage) -> float:
        if image.width < MIN_SHARPNESS_SIZE or image.height < MIN_SHARPNESS_SIZE:
            self.logger.warning("Image too small for reliable sharpness calculation")
            return NEUTRAL_SHARPNESS

        avg = mean_sobel_magnitude(image.pixels)
        if avg is None:
            return NEUTRAL_SHARPNESS
        self.logger.debug("Mean gradient magnitude: %.2f", avg)
        return sharpness_curve(avg)

    def detect_face(self, image: FaceImage) -> bool:
        """Ask the detector for a face.

        A failed detection call counts as no face. A detector backend that
        cannot be loaded raises ``ModelUnavailable``.
        """
        if self.face_detector is None:
            self.logger.warning("No face detector configured, treating image as faceless")
            return False
        try:
            presence = self.face_detector.detect(image)
        except ModelUnavailable:
            raise
        except Exception as e:
            self.logger.error("Face detection failed: %s", e)
            return False
        self.logger.debug("Faces detected: %d", presence.count)
        return bool(presence.present)

    def score(self, image: FaceImage, face_present: Optional[bool] = None) -> QualityScore:
        """Compute the quality score.

        Args:
            image: Validated image
            face_present: Known face presence; when None the detector is asked

        Returns:
            QualityScore (detection call failures count as no face)
        """
        self.logger.debug("Checking image quality for %dx%d image", image.width, image.height)

        has_face = self.detect_face(image) if face_present is None else bool(face_present)
        result = QualityScore(
            brightness=self.brightness(image),
            sharpness=self.sharpness(image),
            face_score=1.0 if has_face else 0.0,
            has_face=has_face,
        )
        self.logger.debug("%s", result)
        return result
