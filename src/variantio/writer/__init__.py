"""Variant writer construction: type resolution, stream layers and backends."""

from __future__ import annotations

from .async_writer import DEFAULT_QUEUE_SIZE, AsyncVariantContextWriter
from .backends import BCFWriter, VariantContextWriter, VCFWriter
from .builder import VariantWriterBuilder
from .factory import WriterFactory, default_index_creator
from .index import IndexCreator, LinearIndexCreator, TabixIndexCreator, VariantIndex
from .options import (
    OptionSet,
    WriterOption,
    default_options,
    effective_output_type,
    set_default_option,
    unset_default_option,
)
from .pipeline import AssembledSink, StreamPipelineAssembler
from .resolver import MAX_LINK_DEPTH, determine_output_type
from .types import FILE_TYPES, STREAM_TYPES, VCF_EXTENSIONS, OpenOption, OutputType

__all__ = [
    "DEFAULT_QUEUE_SIZE",
    "FILE_TYPES",
    "MAX_LINK_DEPTH",
    "STREAM_TYPES",
    "VCF_EXTENSIONS",
    "AssembledSink",
    "AsyncVariantContextWriter",
    "BCFWriter",
    "IndexCreator",
    "LinearIndexCreator",
    "OpenOption",
    "OptionSet",
    "OutputType",
    "StreamPipelineAssembler",
    "TabixIndexCreator",
    "VCFWriter",
    "VariantContextWriter",
    "VariantIndex",
    "VariantWriterBuilder",
    "WriterFactory",
    "WriterOption",
    "default_index_creator",
    "default_options",
    "determine_output_type",
    "effective_output_type",
    "set_default_option",
    "unset_default_option",
]
