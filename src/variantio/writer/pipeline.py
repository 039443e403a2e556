"""Compose stream layers onto a raw sink in a fixed, type-dependent order.

Order of wrap steps, innermost first:

1. buffering: freshly opened files only, ``buffer_size`` bytes (``0`` disables);
2. MD5 side-channel: path targets with checksum creation enabled;
3. BGZF compression: whenever the type being built is block-compressed.

Asynchronous forwarding wraps the finished backend writer and therefore
lives in the builder, not here.
"""

from __future__ import annotations

import io
import os
from collections.abc import Callable
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO

from variantio.core.errors import ConfigurationError, OutputIOError
from variantio.core.logging import LogEvents, UnifiedLogger

from .bgzf import BgzfSink
from .checksum import Md5CalculatingSink, md5_sidecar_path
from .sinks import ByteSink, UnbufferedFileSink
from .types import OpenOption, OutputType, open_mode_for

__all__ = ["AssembledSink", "StreamPipelineAssembler", "FileOpener"]

FileOpener = Callable[[Path, str], Any]


def _open_raw(path: Path, mode: str) -> Any:
    return open(path, mode, buffering=0)


@dataclass(frozen=True)
class AssembledSink:
    """Outermost sink plus the names of the layers applied, innermost first."""

    sink: ByteSink
    layers: tuple[str, ...]


@dataclass(frozen=True)
class _WrapStep:
    name: str
    wrap: Callable[[ByteSink], ByteSink]


class StreamPipelineAssembler:
    """Open or adopt a raw sink and apply the configured wrap steps.

    ``opener`` takes ``(path, mode)`` and must return an unbuffered binary
    handle; it defaults to :func:`open` with ``buffering=0``.
    """

    def __init__(
        self,
        *,
        buffer_size: int,
        create_md5: bool,
        compression_level: int = 5,
        opener: FileOpener | None = None,
    ) -> None:
        if buffer_size < 0:
            raise ConfigurationError(f"Buffer size must be >= 0, got {buffer_size}")
        self.buffer_size = buffer_size
        self.create_md5 = create_md5
        self.compression_level = compression_level
        self._opener = opener or _open_raw

    def assemble(
        self,
        output_type: OutputType,
        *,
        path: Path | None = None,
        stream: BinaryIO | None = None,
        open_options: tuple[OpenOption, ...] = (),
    ) -> AssembledSink:
        """Return the composed sink for ``output_type``.

        Exactly one of ``path`` and ``stream`` must be given. If any step
        fails, everything opened during this call is closed before the error
        propagates.
        """

        if (path is None) == (stream is None):
            raise ConfigurationError("Exactly one of an output path or an output stream is required")

        log = UnifiedLogger.get(__name__, component="pipeline", output_type=output_type.value)
        steps = self._plan(output_type, path=path)
        layers: list[str] = []

        with ExitStack() as cleanup:
            if path is not None:
                sink: ByteSink = self._open(path, open_options)
                cleanup.callback(sink.close)
                layers.append("file")
            else:
                sink = stream  # type: ignore[assignment]
                layers.append("stream")

            try:
                for step in steps:
                    sink = step.wrap(sink)
                    if isinstance(sink, Md5CalculatingSink):
                        cleanup.callback(sink.discard)
                    layers.append(step.name)
                    log.debug(LogEvents.PIPELINE_LAYER_APPLIED, layer=step.name)
            except Exception as exc:
                log.error(LogEvents.PIPELINE_ASSEMBLY_ERROR, layers=list(layers), error=str(exc))
                raise

            cleanup.pop_all()

        return AssembledSink(sink=sink, layers=tuple(layers))

    def _plan(self, output_type: OutputType, *, path: Path | None) -> list[_WrapStep]:
        steps: list[_WrapStep] = []
        if path is not None:
            if self.buffer_size > 0:
                steps.append(_WrapStep("buffer", self._buffer))
            else:
                steps.append(_WrapStep("unbuffered", UnbufferedFileSink))
            if self.create_md5:
                digest_path = md5_sidecar_path(path)
                steps.append(
                    _WrapStep("md5", lambda sink: Md5CalculatingSink(sink, digest_path))
                )
        if output_type is OutputType.BLOCK_COMPRESSED_VCF:
            steps.append(
                _WrapStep(
                    "bgzf",
                    lambda sink: BgzfSink(sink, path=path, compresslevel=self.compression_level),
                )
            )
        return steps

    def _buffer(self, raw: ByteSink) -> ByteSink:
        return io.BufferedWriter(raw, buffer_size=self.buffer_size)  # type: ignore[arg-type]

    def _open(self, path: Path, open_options: tuple[OpenOption, ...]) -> ByteSink:
        mode = open_mode_for(open_options)
        try:
            return self._opener(path, mode)
        except OSError as exc:
            raise OutputIOError(f"Cannot open output file {os.fspath(path)}: {exc}") from exc
