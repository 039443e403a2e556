"""Structured logging primitives for the variantio core package."""

from .log_events import LogEvents
from .logger import (
    DEFAULT_LOG_LEVEL,
    MANDATORY_FIELDS,
    LogConfig,
    LogFormat,
    UnifiedLogger,
    configure_logging,
    get_logger,
)

__all__ = [
    "DEFAULT_LOG_LEVEL",
    "LogConfig",
    "LogFormat",
    "MANDATORY_FIELDS",
    "UnifiedLogger",
    "configure_logging",
    "get_logger",
    "LogEvents",
]
