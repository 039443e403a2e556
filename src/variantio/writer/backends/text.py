"""Line-oriented text (VCF) backend."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Final

from variantio.model.dictionary import SequenceDictionary
from variantio.model.header import FieldDeclaration, VariantHeader
from variantio.model.record import GENOTYPE_KEY, VariantRecord

from ..index import IndexCreator
from ..sinks import ByteSink
from .base import IndexingVariantContextWriter

__all__ = ["VCFWriter", "render_header", "format_number"]

MISSING: Final[str] = "."
_FIXED_COLUMNS: Final[tuple[str, ...]] = (
    "#CHROM",
    "POS",
    "ID",
    "REF",
    "ALT",
    "QUAL",
    "FILTER",
    "INFO",
)


def format_number(value: float) -> str:
    """Render ``value`` without a trailing ``.0`` for whole numbers."""

    if math.isnan(value):
        return MISSING
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


def _format_value(value: Any) -> str:
    if value is None:
        return MISSING
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float):
        return format_number(value)
    if isinstance(value, (list, tuple)):
        if not value:
            return MISSING
        return ",".join(_format_value(item) for item in value)
    return str(value)


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def _declaration_line(kind: str, declaration: FieldDeclaration) -> str:
    description = _escape(declaration.description)
    if kind == "FILTER":
        return f'##FILTER=<ID={declaration.id},Description="{description}">'
    return (
        f"##{kind}=<ID={declaration.id},Number={declaration.number},"
        f'Type={declaration.type},Description="{description}">'
    )


def render_header(
    header: VariantHeader,
    dictionary: SequenceDictionary | None,
    *,
    include_genotypes: bool,
) -> str:
    """Return the complete header text, ending with the column line."""

    lines = [f"##fileformat={header.file_format}"]
    lines.extend(f"##{key}={value}" for key, value in header.meta)
    lines.extend(_declaration_line("FILTER", item) for item in header.filters)
    lines.extend(_declaration_line("INFO", item) for item in header.info)
    if include_genotypes:
        lines.extend(_declaration_line("FORMAT", item) for item in header.formats)
    contigs = header.contigs if header.contigs is not None and len(header.contigs) else dictionary
    if contigs is not None:
        for contig in contigs:
            if contig.length is None:
                lines.append(f"##contig=<ID={contig.name}>")
            else:
                lines.append(f"##contig=<ID={contig.name},length={contig.length}>")
    columns = list(_FIXED_COLUMNS)
    if include_genotypes and header.samples:
        columns.append("FORMAT")
        columns.extend(header.samples)
    lines.append("\t".join(columns))
    return "\n".join(lines) + "\n"


def format_info(info: Mapping[str, Any]) -> str:
    parts: list[str] = []
    for key, value in info.items():
        if value is True:
            parts.append(key)
        elif value is False:
            continue
        else:
            parts.append(f"{key}={_format_value(value)}")
    return ";".join(parts) if parts else MISSING


def genotype_keys(record: VariantRecord) -> list[str]:
    """FORMAT keys in first-seen order with ``GT`` first."""

    keys: list[str] = []
    for genotype in record.genotypes:
        for key in genotype.keys:
            if key not in keys:
                keys.append(key)
    if GENOTYPE_KEY in keys:
        keys.remove(GENOTYPE_KEY)
        keys.insert(0, GENOTYPE_KEY)
    return keys or [GENOTYPE_KEY]


def format_sample(
    record: VariantRecord,
    sample: str,
    keys: Sequence[str],
    *,
    full_format: bool,
) -> str:
    genotype = record.genotype_for(sample)
    values = [
        MISSING if genotype is None else _format_value(genotype.fields.get(key)) for key in keys
    ]
    if not full_format:
        while len(values) > 1 and values[-1] == MISSING:
            values.pop()
    return ":".join(values)


class VCFWriter(IndexingVariantContextWriter):
    """Write records as tab-separated text lines."""

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
        write_full_format_field: bool = False,
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
        self.write_full_format_field = write_full_format_field

    def _encode_header(self, header: VariantHeader) -> bytes:
        text = render_header(
            header,
            self.reference_dictionary,
            include_genotypes=not self.do_not_write_genotypes,
        )
        return text.encode("utf-8")

    def _encode_record(self, record: VariantRecord, header: VariantHeader) -> bytes:
        columns = [
            record.contig,
            str(record.position),
            record.id or MISSING,
            record.ref,
            ",".join(record.alts) if record.alts else MISSING,
            MISSING if record.qual is None else format_number(record.qual),
            ";".join(record.filters) if record.filters else MISSING,
            format_info(record.info),
        ]
        if not self.do_not_write_genotypes and header.samples:
            keys = genotype_keys(record)
            columns.append(":".join(keys))
            columns.extend(
                format_sample(record, sample, keys, full_format=self.write_full_format_field)
                for sample in header.samples
            )
        return ("\t".join(columns) + "\n").encode("utf-8")
