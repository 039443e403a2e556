"""Shared error types and structured logging for variantio."""

from __future__ import annotations

from .errors import ConfigurationError, OutputIOError, RecordValidationError, VariantIOError
from .logging import (
    DEFAULT_LOG_LEVEL,
    MANDATORY_FIELDS,
    LogConfig,
    LogEvents,
    LogFormat,
    UnifiedLogger,
    configure_logging,
    get_logger,
)

__all__ = [
    "ConfigurationError",
    "DEFAULT_LOG_LEVEL",
    "LogConfig",
    "LogEvents",
    "LogFormat",
    "MANDATORY_FIELDS",
    "OutputIOError",
    "RecordValidationError",
    "UnifiedLogger",
    "VariantIOError",
    "configure_logging",
    "get_logger",
]
