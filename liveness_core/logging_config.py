"""Logging bootstrap and the debug-gated adapter handed to pipeline components."""

from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Optional, Union


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO") -> None:
    """Console logging for the CLI and scripts. Libraries should not call this."""
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "level": level,
                }
            },
            "root": {"level": level, "handlers": ["console"]},
        }
    )


class DebugGatedLogger(logging.LoggerAdapter):
    """Drops DEBUG records unless this pipeline instance was built with debug logging.

    Each pipeline owns one, so two pipelines with different settings never
    affect each other.
    """

    def __init__(self, logger: logging.Logger, debug_enabled: bool = False):
        super().__init__(logger, {})
        self.debug_enabled = debug_enabled

    def isEnabledFor(self, level: int) -> bool:
        if level <= logging.DEBUG and not self.debug_enabled:
            return False
        return self.logger.isEnabledFor(level)


def gated_logger(
    debug_enabled: bool,
    logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
    name: str = "liveness_core",
) -> DebugGatedLogger:
    base = logger if logger is not None else logging.getLogger(name)
    if isinstance(base, logging.LoggerAdapter):
        base = base.logger
    return DebugGatedLogger(base, debug_enabled)


__all__ = ["configure_logging", "DebugGatedLogger", "gated_logger"]
