"""Serialization backends for variant writers."""

from __future__ import annotations

from .base import IndexingVariantContextWriter, VariantContextWriter
from .binary import BCF_MAGIC, BCFWriter
from .text import VCFWriter

__all__ = [
    "BCF_MAGIC",
    "BCFWriter",
    "IndexingVariantContextWriter",
    "VCFWriter",
    "VariantContextWriter",
]
