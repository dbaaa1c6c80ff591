"""Classifier model adapters (ONNX Runtime sessions)."""

from .onnx_model import OnnxClassifierModel, default_session_factory

__all__ = ["OnnxClassifierModel", "default_session_factory"]
