"""Tensor encoding for the classifier models.

This module is the input contract of the occlusion and liveness models:
resize to 224x224 (bilinear), scale to [0, 1], standardize per channel with the
ImageNet statistics the models were trained with, and lay out as a planar
(1, 3, H, W) float32 buffer. Any deviation produces silently wrong model inputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Tuple

import numpy as np
from PIL import Image

from .contracts import FaceImage


@dataclass(frozen=True)
class PreprocessConfig:
    resize_hw: Tuple[int, int] = (224, 224)
    resize_kernel: Literal["bilinear", "bicubic"] = "bilinear"

    # normalization mean/std in RGB order (ImageNet)
    mean: Tuple[float, float, float] = (0.485, 0.456, 0.406)
    std: Tuple[float, float, float] = (0.229, 0.224, 0.225)


def _pil_resample(kernel: str) -> int:
    if kernel == "bilinear":
        return Image.BILINEAR
    if kernel == "bicubic":
        return Image.BICUBIC
    raise ValueError(f"Unsupported resize kernel: {kernel}")


def resize_rgb_uint8(rgb: np.ndarray, cfg: PreprocessConfig) -> np.ndarray:
    """Resize RGB uint8 (H,W,3) to cfg.resize_hw; a no-op when already that size."""
    if rgb.shape[:2] == tuple(cfg.resize_hw):
        return rgb
    img = Image.fromarray(np.ascontiguousarray(rgb, dtype=np.uint8))
    img = img.resize(cfg.resize_hw[::-1], resample=_pil_resample(cfg.resize_kernel))
    return np.array(img, dtype=np.uint8)


def normalize_rgb_uint8(resized_rgb: np.ndarray, cfg: PreprocessConfig) -> np.ndarray:
    """Normalize to a float32 CHW tensor."""
    x = resized_rgb.astype(np.float32) / np.float32(255.0)
    mean = np.array(cfg.mean, dtype=np.float32)
    std = np.array(cfg.std, dtype=np.float32)
    x = (x - mean) / std
    # HWC -> CHW
    return np.ascontiguousarray(np.transpose(x, (2, 0, 1)), dtype=np.float32)


class TensorEncoder:
    """Encodes a validated image into a fresh (1, 3, H, W) float32 buffer per call."""

    def __init__(self, cfg: PreprocessConfig = PreprocessConfig()):
        self.cfg = cfg

    @property
    def input_shape(self) -> Tuple[int, int, int, int]:
        h, w = self.cfg.resize_hw
        return (1, 3, h, w)

    def encode(self, image: FaceImage) -> np.ndarray:
        resized = resize_rgb_uint8(image.pixels, self.cfg)
        return normalize_rgb_uint8(resized, self.cfg)[np.newaxis, ...]
