"""Reason code taxonomy.

Codes are attached to policy rejections (``Verdict.reason_code``) and to
raised errors (``LivenessError.reason_code``) so callers can branch on a
stable identifier instead of parsing messages.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ReasonCodes:
    # Input policy / integrity
    EMPTY_IMAGE: str = "IN-001"
    TOO_SMALL: str = "IN-002"
    TOO_LARGE: str = "IN-003"
    RELEASED_IMAGE: str = "IN-004"
    BAD_LAYOUT: str = "IN-005"
    CORRUPT_FILE: str = "IN-006"
    UNSUPPORTED_FORMAT: str = "IN-007"

    # Policy rejections
    OCCLUDED: str = "PL-001"
    LOW_QUALITY: str = "PL-002"

    # Model behavior
    MODEL_UNAVAILABLE: str = "MD-001"
    INFERENCE_FAILED: str = "MD-002"

    # System
    CANCELLED: str = "SYS-001"
    PIPELINE_FAILURE: str = "SYS-002"


CODES = ReasonCodes()
