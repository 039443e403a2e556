"""Shared CLI error codes and emission helpers."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, MutableMapping, NoReturn

import typer

from variantio.core.logging import LogEvents, UnifiedLogger

__all__ = [
    "CliErrorCode",
    "CliErrorTemplate",
    "CLI_ERROR_INTERNAL",
    "CLI_ERROR_CONFIG",
    "CLI_ERROR_OUTPUT",
    "EXIT_CONFIG",
    "EXIT_OUTPUT",
    "emit_cli_error",
    "emit_cli_error_and_exit",
    "format_cli_error",
]


class CliErrorCode(str, Enum):
    """Canonical CLI error codes."""

    INTERNAL = "E001"
    CONFIG = "E002"
    OUTPUT = "E003"


@dataclass(frozen=True)
class CliErrorTemplate:
    """Descriptor bundling an error code with a human-readable label."""

    code: CliErrorCode
    label: str


CLI_ERROR_INTERNAL = CliErrorTemplate(CliErrorCode.INTERNAL, "internal_error")
CLI_ERROR_CONFIG = CliErrorTemplate(CliErrorCode.CONFIG, "configuration_error")
CLI_ERROR_OUTPUT = CliErrorTemplate(CliErrorCode.OUTPUT, "output_error")

EXIT_CONFIG = 1
EXIT_OUTPUT = 2

_CLI_ERROR_PREFIX = "[variantio-cli]"


def format_cli_error(template: CliErrorTemplate, message: str) -> str:
    """Return a deterministic string representation for stderr."""

    return f"{_CLI_ERROR_PREFIX} ERROR {template.code.value}: {message}"


def emit_cli_error(
    *,
    template: CliErrorTemplate,
    message: str,
    context: Mapping[str, Any] | None = None,
) -> None:
    """Emit a structured log record and deterministic stderr message."""

    log = UnifiedLogger.get(__name__, component="cli")
    bound_context: MutableMapping[str, Any] = dict(context) if context else {}
    bound_context.setdefault("error_code", template.code.value)
    bound_context.setdefault("error_label", template.label)
    bound_context.setdefault("error_message", message)
    log.error(LogEvents.CLI_RUN_ERROR, **bound_context)
    typer.echo(format_cli_error(template, message), err=True)


def emit_cli_error_and_exit(
    *,
    template: CliErrorTemplate,
    message: str,
    exit_code: int,
    context: Mapping[str, Any] | None = None,
    cause: BaseException | None = None,
) -> NoReturn:
    """Emit a CLI error event and terminate the command."""

    emit_cli_error(template=template, message=message, context=context)
    raise typer.Exit(code=exit_code) from cause
