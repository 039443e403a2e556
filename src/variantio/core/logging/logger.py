"""Structured logging setup shared by the builder, the writers and the CLI.

Events go through structlog into a single stdlib handler on stderr and are
rendered as JSON or as key/value pairs with writer context first.
"""
from __future__ import annotations

import logging
from collections.abc import MutableMapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Final, cast

import structlog
from structlog.exceptions import DropEvent
from structlog.stdlib import BoundLogger

__all__ = [
    "LogFormat",
    "LogConfig",
    "DEFAULT_LOG_LEVEL",
    "MANDATORY_FIELDS",
    "configure_logging",
    "get_logger",
    "UnifiedLogger",
]


class LogFormat(str, Enum):
    """Renderer used for log lines."""

    JSON = "json"
    KEY_VALUE = "key_value"


DEFAULT_LOG_LEVEL = logging.INFO

MANDATORY_FIELDS: Sequence[str] = ("component",)
"""Every event is expected to name the component that emitted it."""

_DEFAULT_LOGGER_NAME: Final[str] = "variantio"

# Methods called on loggers in this package.
_METHOD_LEVELS: Final[dict[str, int]] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

# Context keys bound by the builder, the writers and the CLI.
_KEY_ORDER: Final[tuple[str, ...]] = (
    "timestamp",
    "level",
    "component",
    "message",
    "command",
    "output_type",
    "path",
    "layer",
    "error",
)


@dataclass(frozen=True, slots=True)
class LogConfig:
    level: int | str = DEFAULT_LOG_LEVEL
    format: LogFormat = LogFormat.JSON


def _level_number(level: int | str) -> int:
    if isinstance(level, int):
        return level
    number = logging.getLevelName(level.upper())
    if not isinstance(number, int):
        raise ValueError(f"Unsupported log level: {level}")
    return number


def _flag_missing_context(
    _: Any, __: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    missing = [key for key in MANDATORY_FIELDS if key not in event_dict]
    if missing:
        event_dict.setdefault("missing_context", missing)
    return event_dict


def _drop_below_level(
    logger: logging.Logger | None, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    target = logger or logging.getLogger(_DEFAULT_LOGGER_NAME)
    if target.isEnabledFor(_METHOD_LEVELS.get(method_name, logging.INFO)):
        return event_dict
    raise DropEvent


def _renderer(format: LogFormat) -> Any:
    if format is LogFormat.KEY_VALUE:
        return structlog.processors.KeyValueRenderer(
            key_order=list(_KEY_ORDER), sort_keys=False, drop_missing=True
        )
    return structlog.processors.JSONRenderer(sort_keys=True, ensure_ascii=False)


def configure_logging(config: LogConfig | None = None) -> None:
    """Install the structlog pipeline and a stderr handler on the root logger."""

    cfg = config or LogConfig()
    processors: list[Any] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        _flag_missing_context,
        structlog.processors.EventRenamer("message"),
        structlog.processors.format_exc_info,
    ]
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[*processors, _drop_below_level],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(cfg.format),
        ],
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    logging.basicConfig(handlers=[handler], level=_level_number(cfg.level), force=True)

    structlog.configure(
        processors=[
            *processors,
            _drop_below_level,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = _DEFAULT_LOGGER_NAME) -> BoundLogger:
    return cast(BoundLogger, structlog.get_logger(name))


class UnifiedLogger:
    """Entry point used throughout the package to obtain loggers."""

    @staticmethod
    def configure(config: LogConfig | None = None) -> None:
        configure_logging(config)

    @staticmethod
    def get(name: str | None = None, **context: Any) -> BoundLogger:
        """Return a logger for ``name`` with ``context`` already bound."""

        logger = get_logger(name or _DEFAULT_LOGGER_NAME)
        return logger.bind(**context) if context else logger
