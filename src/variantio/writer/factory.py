"""Validate a build request and construct the matching backend writer."""

from __future__ import annotations

from pathlib import Path

from variantio.core.errors import ConfigurationError
from variantio.core.logging import LogEvents, UnifiedLogger
from variantio.model.dictionary import SequenceDictionary

from .backends import BCFWriter, VCFWriter
from .backends.base import IndexingVariantContextWriter
from .index import IndexCreator, LinearIndexCreator, TabixIndexCreator
from .options import OptionSet, WriterOption
from .sinks import ByteSink
from .types import VCF_EXTENSIONS, OutputType

__all__ = ["WriterFactory", "default_index_creator"]


def default_index_creator(output_type: OutputType) -> IndexCreator:
    """Return a fresh creator: tabix-style for block-compressed text, linear otherwise."""

    if output_type is OutputType.BLOCK_COMPRESSED_VCF:
        return TabixIndexCreator()
    return LinearIndexCreator()


class WriterFactory:
    """Select and instantiate the backend for an effective output type."""

    def validate(
        self,
        output_type: OutputType,
        options: OptionSet,
        *,
        reference_dictionary: SequenceDictionary | None,
    ) -> OptionSet:
        """Check the request before anything is opened.

        Returns the options to use for this build. For stream types the
        on-the-fly indexing flag is dropped from the returned copy with a
        warning; ``options`` itself is never modified.
        """

        if output_type is OutputType.UNSPECIFIED:
            extensions = ", ".join(VCF_EXTENSIONS)
            raise ConfigurationError(
                "Must specify file or stream output type: cannot infer it from the output "
                f"name; recognized extensions are {extensions}"
            )

        if WriterOption.INDEX_ON_THE_FLY not in options:
            return options

        if output_type.is_stream:
            UnifiedLogger.get(__name__, component="writer_factory").warning(
                LogEvents.WRITER_INDEX_UNSUPPORTED,
                output_type=output_type.value,
                detail="Index creation is not supported when writing a stream; indexing disabled",
            )
            return options.without(WriterOption.INDEX_ON_THE_FLY)

        if output_type in (OutputType.VCF, OutputType.BCF) and reference_dictionary is None:
            raise ConfigurationError(
                "A reference dictionary is required for creating an index on the fly for "
                f"{output_type.value} output"
            )
        return options

    def create(
        self,
        output_type: OutputType,
        sink: ByteSink,
        *,
        options: OptionSet,
        output_path: Path | None = None,
        reference_dictionary: SequenceDictionary | None = None,
        index_creator: IndexCreator | None = None,
    ) -> IndexingVariantContextWriter:
        """Bind ``sink`` to the text or binary backend.

        ``options`` must be the set returned by :meth:`validate`. An explicit
        ``index_creator`` takes precedence over the default for the type.
        """

        index_on_the_fly = WriterOption.INDEX_ON_THE_FLY in options
        creator: IndexCreator | None = None
        if index_on_the_fly:
            creator = index_creator if index_creator is not None else default_index_creator(output_type)

        common = {
            "output_path": output_path,
            "reference_dictionary": reference_dictionary,
            "index_creator": creator,
            "enable_on_the_fly_indexing": index_on_the_fly,
            "do_not_write_genotypes": WriterOption.DO_NOT_WRITE_GENOTYPES in options,
            "allow_missing_fields_in_header": WriterOption.ALLOW_MISSING_FIELDS_IN_HEADER in options,
        }
        if output_type in (OutputType.VCF, OutputType.BLOCK_COMPRESSED_VCF, OutputType.VCF_STREAM):
            return VCFWriter(
                sink,
                write_full_format_field=WriterOption.WRITE_FULL_FORMAT_FIELD in options,
                **common,  # type: ignore[arg-type]
            )
        if output_type in (OutputType.BCF, OutputType.BCF_STREAM):
            return BCFWriter(sink, **common)  # type: ignore[arg-type]
        raise ConfigurationError(f"Unsupported output type {output_type.value}")
