"""Load encoded images (JPEG, PNG, WebP, BMP) into ``FaceImage``.

EXIF orientation is applied and transparent pixels are flattened onto white,
so the pipeline always receives an upright RGB buffer. Size limits are left to
the validator.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image, ImageOps

from .contracts import FaceImage
from .errors import InvalidImage
from .reason_codes import CODES


# PIL format names; MPO is what some cameras write for JPEG
SUPPORTED_FORMATS = frozenset({"JPEG", "MPO", "PNG", "WEBP", "BMP"})

WHITE = (255, 255, 255, 255)


def _to_rgb(img: Image.Image) -> Image.Image:
    has_alpha = img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info)
    if not has_alpha:
        return img.convert("RGB")
    rgba = img.convert("RGBA")
    return Image.alpha_composite(Image.new("RGBA", rgba.size, WHITE), rgba).convert("RGB")


def decode_image_bytes(data: bytes) -> FaceImage:
    """Decode encoded bytes; raises ``InvalidImage`` with a reason code on failure."""
    if not data:
        raise InvalidImage("Empty image payload", CODES.EMPTY_IMAGE)

    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except Exception as e:
        raise InvalidImage(f"Could not decode image: {e}", CODES.CORRUPT_FILE) from e

    if img.format not in SUPPORTED_FORMATS:
        raise InvalidImage(f"Unsupported format: {img.format}", CODES.UNSUPPORTED_FORMAT)

    img = _to_rgb(ImageOps.exif_transpose(img))
    return FaceImage.from_array(np.array(img, dtype=np.uint8))


def load_image(path: Union[str, Path]) -> FaceImage:
    path = Path(path)
    if not path.is_file():
        raise InvalidImage(f"Image file not found: {path}", CODES.EMPTY_IMAGE)
    return decode_image_bytes(path.read_bytes())
