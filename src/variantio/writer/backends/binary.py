"""Binary (BCF) backend.

Layout: magic ``BCF\\2\\2``, a little-endian ``uint32`` header length, the text
header terminated by NUL, then one block per record. Each record block starts
with the byte lengths of its shared (site) and per-sample parts followed by
those parts. Strings are typed character vectors; contigs, filters and field
keys are referenced through their position in the header dictionaries.
"""

from __future__ import annotations

import math
import struct
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Final

from variantio.core.errors import RecordValidationError
from variantio.model.dictionary import SequenceDictionary
from variantio.model.header import VariantHeader
from variantio.model.record import VariantRecord

from ..index import IndexCreator
from ..sinks import ByteSink
from .base import IndexingVariantContextWriter
from .text import genotype_keys, render_header

__all__ = ["BCFWriter", "BCF_MAGIC"]

BCF_MAGIC: Final[bytes] = b"BCF\x02\x02"

_TYPE_MISSING: Final[int] = 0
_TYPE_INT32: Final[int] = 3
_TYPE_FLOAT: Final[int] = 5
_TYPE_CHAR: Final[int] = 7
_MISSING_FLOAT_BITS: Final[int] = 0x7F800001
_PASS: Final[str] = "PASS"


def _type_descriptor(type_code: int, length: int) -> bytes:
    if length < 15:
        return bytes(((length << 4) | type_code,))
    return bytes(((15 << 4) | type_code,)) + _typed_ints((length,))


def _typed_ints(values: Sequence[int]) -> bytes:
    return _type_descriptor(_TYPE_INT32, len(values)) + struct.pack(f"<{len(values)}i", *values)


def _typed_floats(values: Sequence[float]) -> bytes:
    payload = b"".join(_pack_float(value) for value in values)
    return _type_descriptor(_TYPE_FLOAT, len(values)) + payload


def _typed_string(text: str) -> bytes:
    encoded = text.encode("utf-8")
    return _type_descriptor(_TYPE_CHAR, len(encoded)) + encoded


def _pack_float(value: float | None) -> bytes:
    if value is None or math.isnan(value):
        return struct.pack("<I", _MISSING_FLOAT_BITS)
    return struct.pack("<f", value)


def _typed_value(value: Any) -> bytes:
    if value is None or value is True:
        return _type_descriptor(_TYPE_MISSING, 0)
    if isinstance(value, (list, tuple)):
        items = list(value)
        if items and all(isinstance(item, int) and not isinstance(item, bool) for item in items):
            return _typed_ints(items)
        if items and all(isinstance(item, (int, float)) and not isinstance(item, bool) for item in items):
            return _typed_floats([float(item) for item in items])
        return _typed_string(",".join("." if item is None else str(item) for item in items))
    if isinstance(value, bool):
        return _typed_ints((int(value),))
    if isinstance(value, int):
        return _typed_ints((value,))
    if isinstance(value, float):
        return _typed_floats((value,))
    return _typed_string(str(value))


def _present_keys(record: VariantRecord) -> list[str]:
    return genotype_keys(record) if record.genotypes else []


def _string_dictionary(header: VariantHeader) -> dict[str, int]:
    """``PASS`` first, then FILTER, INFO and FORMAT ids in header order."""

    entries: dict[str, int] = {_PASS: 0}
    for declaration in (*header.filters, *header.info, *header.formats):
        entries.setdefault(declaration.id, len(entries))
    return entries


class BCFWriter(IndexingVariantContextWriter):
    """Write records in the binary layout described in the module docstring.

    Field keys are stored as dictionary offsets, so every INFO/FORMAT key and
    filter must be declared in the header even when missing header fields are
    otherwise allowed.
    """

    def __init__(
        self,
        sink: ByteSink,
        *,
        output_path: Path | None = None,
        reference_dictionary: SequenceDictionary | None = None,
        index_creator: IndexCreator | None = None,
        enable_on_the_fly_indexing: bool = False,
        do_not_write_genotypes: bool = False,
        allow_missing_fields_in_header: bool = False,
    ) -> None:
        super().__init__(
            sink,
            output_path=output_path,
            reference_dictionary=reference_dictionary,
            index_creator=index_creator,
            enable_on_the_fly_indexing=enable_on_the_fly_indexing,
            do_not_write_genotypes=do_not_write_genotypes,
            allow_missing_fields_in_header=allow_missing_fields_in_header,
        )
        self._strings: dict[str, int] = {}

    def set_header(self, header: VariantHeader) -> None:
        super().set_header(header)
        self._strings = _string_dictionary(header)

    def _encode_header(self, header: VariantHeader) -> bytes:
        self._strings = _string_dictionary(header)
        text = render_header(
            header,
            self.reference_dictionary,
            include_genotypes=not self.do_not_write_genotypes,
        ).encode("utf-8") + b"\x00"
        return BCF_MAGIC + struct.pack("<I", len(text)) + text

    def _encode_record(self, record: VariantRecord, header: VariantHeader) -> bytes:
        shared = self._encode_site(record, header)
        samples = b""
        if not self.do_not_write_genotypes and header.samples:
            samples = self._encode_samples(record, header)
        return struct.pack("<II", len(shared), len(samples)) + shared + samples

    def _contig_offset(self, record: VariantRecord, header: VariantHeader) -> int:
        contigs = self._contig_source(header)
        offset = -1 if contigs is None else contigs.index_of(record.contig)
        if offset < 0:
            raise RecordValidationError(
                f"{record.contig}:{record.position}: binary output requires the contig to be "
                "declared in the header or the reference dictionary"
            )
        return offset

    def _key_offset(self, record: VariantRecord, key: str) -> int:
        try:
            return self._strings[key]
        except KeyError:
            raise RecordValidationError(
                f"{record.contig}:{record.position}: {key} has no header declaration; binary "
                "output cannot encode it"
            ) from None

    def _encode_site(self, record: VariantRecord, header: VariantHeader) -> bytes:
        info = [(key, value) for key, value in record.info.items() if value is not False]
        n_samples = 0 if self.do_not_write_genotypes else len(header.samples)
        n_formats = len(_present_keys(record)) if n_samples else 0
        parts = [
            struct.pack(
                "<iii",
                self._contig_offset(record, header),
                record.position - 1,
                record.end - record.position + 1,
            ),
            _pack_float(record.qual),
            struct.pack(
                "<II",
                (len(record.alleles) << 16) | len(info),
                (n_formats << 24) | n_samples,
            ),
            _typed_string(record.id or "."),
        ]
        parts.extend(_typed_string(allele) for allele in record.alleles)
        parts.append(_typed_ints([self._key_offset(record, name) for name in record.filters]))
        for key, value in info:
            parts.append(_typed_ints((self._key_offset(record, key),)))
            parts.append(_typed_value(value))
        return b"".join(parts)

    def _encode_samples(self, record: VariantRecord, header: VariantHeader) -> bytes:
        parts: list[bytes] = []
        for key in _present_keys(record):
            values: list[bytes] = []
            for sample in header.samples:
                genotype = record.genotype_for(sample)
                value = None if genotype is None else genotype.fields.get(key)
                values.append(b"." if value is None else str(value).encode("utf-8"))
            width = max(len(value) for value in values)
            parts.append(_typed_ints((self._key_offset(record, key),)))
            parts.append(_type_descriptor(_TYPE_CHAR, width))
            parts.extend(value.ljust(width, b"\x00") for value in values)
        return b"".join(parts)
