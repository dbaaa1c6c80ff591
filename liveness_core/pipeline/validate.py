"""Input image validation.

Runs before any processing; rejects malformed or out-of-range images with
``InvalidImage``. Pure and deterministic.
"""

from __future__ import annotations

import logging
from typing import Optional

from .contracts import FaceImage
from .errors import InvalidImage
from .reason_codes import CODES


logger = logging.getLogger(__name__)

# Exclusive bounds, in pixels
MIN_IMAGE_SIZE = 64
MAX_IMAGE_SIZE = 4096


def validate(image: Optional[FaceImage]) -> None:
    """Raise ``InvalidImage`` unless ``image`` can enter the pipeline."""
    if image is None:
        raise InvalidImage("Input image is None", CODES.EMPTY_IMAGE)

    if not isinstance(image, FaceImage):
        raise InvalidImage(f"Expected a FaceImage, got {type(image).__name__}", CODES.BAD_LAYOUT)

    if image.released:
        raise InvalidImage("Input image has been released", CODES.RELEASED_IMAGE)

    pixels = image.pixels
    if pixels is None or pixels.size == 0:
        raise InvalidImage("Input image buffer is empty", CODES.EMPTY_IMAGE)

    if pixels.ndim != 3 or pixels.shape[2] != 3:
        raise InvalidImage(f"Expected an (H, W, 3) RGB buffer, got shape {pixels.shape}", CODES.BAD_LAYOUT)

    w, h = image.width, image.height
    if w <= MIN_IMAGE_SIZE or h <= MIN_IMAGE_SIZE:
        logger.debug("Rejecting image: too small (%dx%d)", w, h)
        raise InvalidImage(f"Image too small: {w}x{h}", CODES.TOO_SMALL)

    if w >= MAX_IMAGE_SIZE or h >= MAX_IMAGE_SIZE:
        logger.debug("Rejecting image: too large (%dx%d)", w, h)
        raise InvalidImage(f"Image too large: {w}x{h}", CODES.TOO_LARGE)


def is_valid(image: Optional[FaceImage]) -> bool:
    try:
        validate(image)
    except InvalidImage:
        return False
    return True
