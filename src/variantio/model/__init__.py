"""Domain types handed to variant writers."""

from .dictionary import SequenceDictionary, SequenceRecord
from .header import DEFAULT_FILE_FORMAT, FieldDeclaration, VariantHeader
from .record import GENOTYPE_KEY, Genotype, VariantRecord

__all__ = [
    "DEFAULT_FILE_FORMAT",
    "FieldDeclaration",
    "GENOTYPE_KEY",
    "Genotype",
    "SequenceDictionary",
    "SequenceRecord",
    "VariantHeader",
    "VariantRecord",
]
