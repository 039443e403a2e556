"""Fluent construction of variant writers.

A builder accumulates a target, an output type and an option set, then
``build()`` turns that state into a ready writer:

1. apply the ``FORCE_BCF`` override to get the effective type;
2. validate the request (no file is touched if this fails);
3. open the target and stack the stream layers;
4. bind the composed sink to the text or binary backend;
5. wrap the backend in the asynchronous forwarder when requested.

Example::

    writer = (
        VariantWriterBuilder()
        .set_output_file("calls.vcf.gz")
        .set_reference_dictionary(dictionary)
        .build()
    )
    with writer:
        writer.write_header(header)
        writer.add_all(records)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, Iterable

from variantio.config.defaults import get_writer_defaults
from variantio.core.errors import ConfigurationError
from variantio.core.logging import LogEvents, UnifiedLogger
from variantio.model.dictionary import SequenceDictionary

from . import options as _options
from .async_writer import AsyncVariantContextWriter
from .backends.base import VariantContextWriter
from .factory import WriterFactory
from .index import IndexCreator
from .options import OptionSet, WriterOption, effective_output_type
from .pipeline import FileOpener, StreamPipelineAssembler
from .resolver import determine_output_type
from .types import FILE_TYPES, OpenOption, OutputType

if TYPE_CHECKING:
    from variantio.config.models import WriterConfig

__all__ = ["VariantWriterBuilder"]


class VariantWriterBuilder:
    """Accumulate writer configuration; every mutator returns ``self``.

    The option set starts as a copy of the process-wide defaults, plus
    ``USE_ASYNC_IO`` when ``VARIANTIO_USE_ASYNC_IO`` is enabled. Buffer size
    and checksum creation start from :class:`~variantio.config.WriterDefaults`.
    """

    def __init__(self, *, opener: FileOpener | None = None) -> None:
        defaults = get_writer_defaults()
        self._options = _options.default_options()
        if defaults.use_async_io:
            self._options.add(WriterOption.USE_ASYNC_IO)
        self._buffer_size = defaults.buffer_size
        self._create_md5 = defaults.create_md5
        self._async_queue_size = defaults.async_queue_size
        self._compression_level = defaults.compression_level
        self._reference_dictionary: SequenceDictionary | None = None
        self._output_path: Path | None = None
        self._output_stream: BinaryIO | None = None
        self._output_type = OutputType.UNSPECIFIED
        self._index_creator: IndexCreator | None = None
        self._opener = opener
        self._factory = WriterFactory()

    # -- configuration -------------------------------------------------

    def set_reference_dictionary(
        self, dictionary: SequenceDictionary | None
    ) -> VariantWriterBuilder:
        self._reference_dictionary = dictionary
        return self

    def set_output_file(self, path: str | os.PathLike[str]) -> VariantWriterBuilder:
        """Target ``path``; the output type is inferred from it right away."""

        return self.set_output_path(Path(path))

    def set_output_path(self, path: Path) -> VariantWriterBuilder:
        output_type = determine_output_type(path)
        UnifiedLogger.get(__name__, component="builder").debug(
            LogEvents.RESOLVER_TYPE_RESOLVED,
            path=str(path),
            output_type=output_type.value,
        )
        self._output_path = Path(path)
        self._output_stream = None
        self._output_type = output_type
        return self

    def set_output_stream(self, stream: BinaryIO) -> VariantWriterBuilder:
        """Alias of :meth:`set_output_vcf_stream`."""

        return self.set_output_vcf_stream(stream)

    def set_output_vcf_stream(self, stream: BinaryIO) -> VariantWriterBuilder:
        return self._set_stream(stream, OutputType.VCF_STREAM)

    def set_output_bcf_stream(self, stream: BinaryIO) -> VariantWriterBuilder:
        return self._set_stream(stream, OutputType.BCF_STREAM)

    def _set_stream(self, stream: BinaryIO, output_type: OutputType) -> VariantWriterBuilder:
        if stream is None:
            raise ConfigurationError("Output stream must not be None")
        self._output_stream = stream
        self._output_path = None
        self._output_type = output_type
        return self

    def set_output_file_type(self, output_type: OutputType | str) -> VariantWriterBuilder:
        """Override the inferred type of a path target with a file type."""

        output_type = OutputType(output_type)
        if self._output_path is None:
            raise ConfigurationError(
                "Output type can only be set when the target is a file; set an output file first"
            )
        if output_type not in FILE_TYPES:
            allowed = ", ".join(sorted(item.value for item in FILE_TYPES))
            raise ConfigurationError(
                f"Output type {output_type.value} is not a file type; expected one of {allowed}"
            )
        self._output_type = output_type
        return self

    def set_index_creator(self, creator: IndexCreator) -> VariantWriterBuilder:
        self._index_creator = creator
        return self

    def clear_index_creator(self) -> VariantWriterBuilder:
        self._index_creator = None
        return self

    def set_buffer(self, buffer_size: int) -> VariantWriterBuilder:
        """Buffer freshly opened files with ``buffer_size`` bytes; ``0`` disables."""

        if buffer_size < 0:
            raise ConfigurationError(f"Buffer size must be >= 0, got {buffer_size}")
        self._buffer_size = buffer_size
        return self

    def unset_buffering(self) -> VariantWriterBuilder:
        self._buffer_size = 0
        return self

    def set_create_md5(self, flag: bool = True) -> VariantWriterBuilder:
        self._create_md5 = flag
        return self

    def unset_create_md5(self) -> VariantWriterBuilder:
        return self.set_create_md5(False)

    def set_options(self, options: Iterable[WriterOption | str]) -> VariantWriterBuilder:
        """Replace the whole option set."""

        self._options.replace(options)
        return self

    def set_option(self, option: WriterOption | str) -> VariantWriterBuilder:
        self._options.add(option)
        return self

    def unset_option(self, option: WriterOption | str) -> VariantWriterBuilder:
        self._options.discard(option)
        return self

    def modify_option(self, option: WriterOption | str, enabled: bool) -> VariantWriterBuilder:
        self._options.modify(option, enabled)
        return self

    def clear_options(self) -> VariantWriterBuilder:
        self._options.clear()
        return self

    def is_option_set(self, option: WriterOption | str) -> bool:
        return option in self._options

    @staticmethod
    def set_default_option(option: WriterOption | str) -> None:
        """Add ``option`` for builders constructed from now on."""

        _options.set_default_option(option)

    @staticmethod
    def unset_default_option(option: WriterOption | str) -> None:
        """Remove ``option`` for builders constructed from now on."""

        _options.unset_default_option(option)

    @classmethod
    def from_config(cls, config: WriterConfig) -> VariantWriterBuilder:
        """Create a builder from a validated :class:`~variantio.config.WriterConfig`."""

        builder = cls()
        if config.output is not None:
            builder.set_output_file(config.output)
        if config.output_type is not None:
            builder.set_output_file_type(config.output_type)
        if config.options is not None:
            builder.set_options(config.options)
        if config.buffer_size is not None:
            builder.set_buffer(config.buffer_size)
        if config.create_md5 is not None:
            builder.set_create_md5(config.create_md5)
        if config.reference_dictionary is not None:
            builder.set_reference_dictionary(
                SequenceDictionary.from_tsv(config.reference_dictionary)
            )
        return builder

    # -- inspection ----------------------------------------------------

    @property
    def output_type(self) -> OutputType:
        """The stored type; ``FORCE_BCF`` is applied only inside :meth:`build`."""

        return self._output_type

    @property
    def output_path(self) -> Path | None:
        return self._output_path

    @property
    def options(self) -> OptionSet:
        return self._options.copy()

    @property
    def buffer_size(self) -> int:
        return self._buffer_size

    @property
    def create_md5(self) -> bool:
        return self._create_md5

    # -- build ---------------------------------------------------------

    def build(self, *open_options: OpenOption) -> VariantContextWriter:
        """Create a new, independently owned writer from the current state."""

        output_type = effective_output_type(self._output_type, self._options)
        log = UnifiedLogger.get(
            __name__,
            component="builder",
            output_type=output_type.value,
            path=None if self._output_path is None else str(self._output_path),
        )
        log.debug(LogEvents.WRITER_BUILD_START, options=[flag.value for flag in self._options])

        try:
            build_options = self._factory.validate(
                output_type,
                self._options,
                reference_dictionary=self._reference_dictionary,
            )
            if self._output_path is None and self._output_stream is None:
                raise ConfigurationError("No output target: set an output file or stream")

            assembler = StreamPipelineAssembler(
                buffer_size=self._buffer_size,
                create_md5=self._create_md5,
                compression_level=self._compression_level,
                opener=self._opener,
            )
            assembled = assembler.assemble(
                output_type,
                path=self._output_path,
                stream=self._output_stream,
                open_options=tuple(open_options),
            )
            try:
                writer: VariantContextWriter = self._factory.create(
                    output_type,
                    assembled.sink,
                    options=build_options,
                    output_path=self._output_path,
                    reference_dictionary=self._reference_dictionary,
                    index_creator=self._index_creator,
                )
                if WriterOption.USE_ASYNC_IO in build_options:
                    writer = AsyncVariantContextWriter(writer, queue_size=self._async_queue_size)
            except BaseException:
                assembled.sink.close()
                raise
        except Exception as exc:
            log.debug(LogEvents.WRITER_BUILD_ERROR, error=str(exc))
            raise

        log.debug(
            LogEvents.WRITER_BUILD_FINISH,
            layers=list(assembled.layers),
            writer=type(writer).__name__,
        )
        return writer
