"""Main Typer application for the variantio CLI.

Commands:

- ``resolve`` prints the output type a path would be written as;
- ``write`` converts JSON-lines variant records through a configured builder.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Iterator
from pathlib import Path
from typing import Any, TextIO

import typer

from variantio.config import load_writer_config
from variantio.core.errors import (
    ConfigurationError,
    OutputIOError,
    RecordValidationError,
    VariantIOError,
)
from variantio.core.logging import LogConfig, LogEvents, LogFormat, UnifiedLogger
from variantio.model import SequenceDictionary, VariantHeader, VariantRecord
from variantio.writer import OutputType, VariantWriterBuilder, WriterOption, determine_output_type

from .errors import (
    CLI_ERROR_CONFIG,
    CLI_ERROR_INTERNAL,
    CLI_ERROR_OUTPUT,
    EXIT_CONFIG,
    EXIT_OUTPUT,
    emit_cli_error_and_exit,
)

__all__ = ["app", "create_app", "run"]

STDIN_SOURCE = "-"
STDOUT_TARGET = "-"


class _StdoutSink:
    """Binary stdout adapter that flushes instead of closing the process stream."""

    def __init__(self, stream: Any) -> None:
        self._stream = stream

    def write(self, data: bytes) -> int:
        self._stream.write(data)
        return len(data)

    def flush(self) -> None:
        self._stream.flush()

    def close(self) -> None:
        self._stream.flush()


def _read_input(handle: TextIO) -> tuple[VariantHeader, Iterator[VariantRecord]]:
    """Split JSON-lines input into an optional leading header and records."""

    lines = (
        (number, line.strip()) for number, line in enumerate(handle, start=1) if line.strip()
    )

    def _decode(number: int, line: str) -> dict[str, Any]:
        try:
            payload = json.loads(line)
        except json.JSONDecodeError as exc:
            raise RecordValidationError(f"line {number}: invalid JSON: {exc.msg}") from exc
        if not isinstance(payload, dict):
            raise RecordValidationError(f"line {number}: expected a JSON object")
        return payload

    first = next(lines, None)
    header = VariantHeader()
    pending: dict[str, Any] | None = None
    if first is not None:
        payload = _decode(*first)
        if "header" in payload:
            header = VariantHeader.from_mapping(payload["header"])
        else:
            pending = payload

    def _records() -> Iterator[VariantRecord]:
        if pending is not None:
            yield VariantRecord.from_mapping(pending)
        for number, line in lines:
            yield VariantRecord.from_mapping(_decode(number, line))

    return header, _records()


def _configure_builder(
    *,
    output: str,
    config: Path | None,
    output_type: OutputType | None,
    index: bool | None,
    md5: bool | None,
    async_io: bool,
    force_bcf: bool,
    allow_missing_fields: bool,
    buffer_size: int | None,
    dictionary: Path | None,
) -> VariantWriterBuilder:
    if config is not None:
        builder = VariantWriterBuilder.from_config(load_writer_config(config))
    else:
        builder = VariantWriterBuilder()

    if output == STDOUT_TARGET:
        builder.set_output_vcf_stream(_StdoutSink(sys.stdout.buffer))  # type: ignore[arg-type]
    else:
        builder.set_output_file(output)
    if output_type is not None:
        builder.set_output_file_type(output_type)
    if dictionary is not None:
        builder.set_reference_dictionary(SequenceDictionary.from_tsv(dictionary))
    if index is not None:
        builder.modify_option(WriterOption.INDEX_ON_THE_FLY, index)
    if md5 is not None:
        builder.set_create_md5(md5)
    if async_io:
        builder.set_option(WriterOption.USE_ASYNC_IO)
    if force_bcf:
        builder.set_option(WriterOption.FORCE_BCF)
    if allow_missing_fields:
        builder.set_option(WriterOption.ALLOW_MISSING_FIELDS_IN_HEADER)
    if buffer_size is not None:
        builder.set_buffer(buffer_size)
    return builder


def create_app() -> typer.Typer:
    """Create and configure the Typer application."""
    app = typer.Typer(
        name="variantio",
        help="Write genomic variant records as VCF, BCF or block-compressed VCF.",
        add_completion=False,
    )

    @app.callback()
    def main(
        log_level: str = typer.Option("WARNING", "--log-level", help="Logging level."),
        log_format: LogFormat = typer.Option(
            LogFormat.KEY_VALUE, "--log-format", help="Render logs as JSON or key/value pairs."
        ),
    ) -> None:
        """Configure logging for every command."""
        UnifiedLogger.configure(LogConfig(level=log_level, format=log_format))

    @app.command(name="resolve")
    def resolve(
        path: Path = typer.Argument(..., help="Output path to inspect."),
    ) -> None:
        """Print the output type inferred from PATH."""
        try:
            output_type = determine_output_type(path)
        except ConfigurationError as exc:
            emit_cli_error_and_exit(
                template=CLI_ERROR_CONFIG, message=str(exc), exit_code=EXIT_CONFIG, cause=exc
            )
        except OutputIOError as exc:
            emit_cli_error_and_exit(
                template=CLI_ERROR_OUTPUT, message=str(exc), exit_code=EXIT_OUTPUT, cause=exc
            )
        typer.echo(output_type.value)

    @app.command(name="write")
    def write(
        input_path: str = typer.Argument(..., metavar="INPUT", help="JSON-lines records, or - for stdin."),
        output: str = typer.Argument(..., metavar="OUTPUT", help="Output path, or - for stdout."),
        output_type: OutputType | None = typer.Option(
            None, "--type", help="Override the output type inferred from OUTPUT."
        ),
        index: bool | None = typer.Option(
            None, "--index/--no-index", help="Create an index while writing."
        ),
        md5: bool | None = typer.Option(
            None, "--md5/--no-md5", help="Write an MD5 digest next to the output."
        ),
        async_io: bool = typer.Option(False, "--async-io", help="Write on a background thread."),
        force_bcf: bool = typer.Option(False, "--force-bcf", help="Always write binary output."),
        allow_missing_fields: bool = typer.Option(
            False,
            "--allow-missing-fields",
            help="Accept INFO/FORMAT keys that the header does not declare.",
        ),
        buffer_size: int | None = typer.Option(
            None, "--buffer-size", min=0, help="Output buffer size in bytes; 0 disables buffering."
        ),
        dictionary: Path | None = typer.Option(
            None, "--dict", help="Two-column TSV of contig names and lengths."
        ),
        config: Path | None = typer.Option(
            None, "--config", "-c", help="YAML writer configuration."
        ),
    ) -> None:
        """Write JSON-lines records from INPUT to OUTPUT."""
        log = UnifiedLogger.get(__name__, component="cli", command="write")
        log.info(LogEvents.CLI_RUN_START, input=input_path, output=output)
        try:
            builder = _configure_builder(
                output=output,
                config=config,
                output_type=output_type,
                index=index,
                md5=md5,
                async_io=async_io,
                force_bcf=force_bcf,
                allow_missing_fields=allow_missing_fields,
                buffer_size=buffer_size,
                dictionary=dictionary,
            )
            if input_path == STDIN_SOURCE:
                count = _write_records(builder, sys.stdin)
            else:
                with open(input_path, encoding="utf-8") as handle:
                    count = _write_records(builder, handle)
        except (ConfigurationError, RecordValidationError) as exc:
            emit_cli_error_and_exit(
                template=CLI_ERROR_CONFIG, message=str(exc), exit_code=EXIT_CONFIG, cause=exc
            )
        except OSError as exc:
            emit_cli_error_and_exit(
                template=CLI_ERROR_OUTPUT, message=str(exc), exit_code=EXIT_OUTPUT, cause=exc
            )
        except VariantIOError as exc:
            emit_cli_error_and_exit(
                template=CLI_ERROR_INTERNAL, message=str(exc), exit_code=EXIT_CONFIG, cause=exc
            )

        log.info(LogEvents.CLI_RUN_FINISH, records=count)
        if output != STDOUT_TARGET:
            typer.echo(f"Wrote {count} records to {output}")

    return app


def _write_records(builder: VariantWriterBuilder, handle: TextIO) -> int:
    header, records = _read_input(handle)
    with builder.build() as writer:
        writer.write_header(header)
        return writer.add_all(records)


app = create_app()


def run() -> None:
    """Entry point for the ``variantio`` console script."""
    app()


if __name__ == "__main__":
    run()
