"""Build writers that serialize genomic variant records to VCF, BCF or BGZF."""

from __future__ import annotations

from variantio.core.errors import (
    ConfigurationError,
    OutputIOError,
    RecordValidationError,
    VariantIOError,
)
from variantio.model import (
    FieldDeclaration,
    Genotype,
    SequenceDictionary,
    SequenceRecord,
    VariantHeader,
    VariantRecord,
)
from variantio.writer import (
    OpenOption,
    OutputType,
    VariantContextWriter,
    VariantWriterBuilder,
    WriterOption,
    determine_output_type,
)

__all__ = [
    "ConfigurationError",
    "FieldDeclaration",
    "Genotype",
    "OpenOption",
    "OutputIOError",
    "OutputType",
    "RecordValidationError",
    "SequenceDictionary",
    "SequenceRecord",
    "VariantContextWriter",
    "VariantHeader",
    "VariantIOError",
    "VariantRecord",
    "VariantWriterBuilder",
    "WriterOption",
    "determine_output_type",
]

__version__ = "0.1.0"
