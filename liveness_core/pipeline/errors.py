"""Error kinds raised by the liveness pipeline.

``LivenessError`` is the base kind: any unexpected failure inside a pipeline
stage is normalized into it at the orchestrator boundary. The subclasses are
domain errors that pass through unchanged.
"""

from __future__ import annotations

from typing import Optional

from .reason_codes import CODES


class LivenessError(Exception):
    def __init__(self, message: str, reason_code: Optional[str] = None):
        super().__init__(message)
        self.reason_code = reason_code or CODES.PIPELINE_FAILURE


class InvalidImage(LivenessError, ValueError):
    """Input image failed validation. Never converted into another kind."""

    def __init__(self, message: str, reason_code: Optional[str] = None):
        super().__init__(message, reason_code or CODES.BAD_LAYOUT)


class ModelUnavailable(LivenessError):
    """A classifier session could not be loaded."""

    def __init__(self, message: str, reason_code: Optional[str] = None):
        super().__init__(message, reason_code or CODES.MODEL_UNAVAILABLE)


class InferenceFailure(LivenessError):
    """A loaded classifier failed (or returned garbage) during one call."""

    def __init__(self, message: str, reason_code: Optional[str] = None):
        super().__init__(message, reason_code or CODES.INFERENCE_FAILED)


class PipelineCancelled(LivenessError):
    def __init__(self, message: str = "Pipeline call cancelled", reason_code: Optional[str] = None):
        super().__init__(message, reason_code or CODES.CANCELLED)
