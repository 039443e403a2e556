"""Tests for the text and binary serialization backends."""

from __future__ import annotations

import io
import math
import struct
from pathlib import Path
from typing import Any

import pytest

from variantio.core.errors import OutputIOError, RecordValidationError
from variantio.model import Genotype, SequenceDictionary, VariantHeader, VariantRecord
from variantio.writer import BCFWriter, LinearIndexCreator, VCFWriter
from variantio.writer.backends.binary import BCF_MAGIC
from variantio.writer.backends.text import format_number

EXPECTED_HEADER = (
    "##fileformat=VCFv4.2\n"
    '##FILTER=<ID=q10,Description="Quality below 10">\n'
    '##INFO=<ID=DP,Number=1,Type=Integer,Description="Total depth">\n'
    '##FORMAT=<ID=GT,Number=1,Type=String,Description="Genotype">\n'
    '##FORMAT=<ID=DP,Number=1,Type=Integer,Description="Read depth">\n'
    "##contig=<ID=chr1,length=1000000>\n"
    "##contig=<ID=chr2,length=500000>\n"
    "#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\tFORMAT\tNA1\tNA2\n"
)


class FailingSink:
    def write(self, data: bytes) -> int:
        raise OSError("disk full")

    def flush(self) -> None:
        return None

    def close(self) -> None:
        return None


def _text_lines(stream: Any) -> list[str]:
    return stream.final.decode("utf-8").splitlines()


@pytest.mark.unit
@pytest.mark.parametrize(
    ("value", "expected"),
    [(50.0, "50"), (12.5, "12.5"), (0.125, "0.12"), (float("nan"), ".")],
)
def test_format_number(value: float, expected: str) -> None:
    assert format_number(value) == expected


@pytest.mark.unit
def test_text_writer_output(
    capture_stream: Any,
    header: VariantHeader,
    dictionary: SequenceDictionary,
    records: list[VariantRecord],
) -> None:
    writer = VCFWriter(capture_stream, reference_dictionary=dictionary)
    writer.write_header(header)
    writer.add_all(records)
    writer.close()

    text = capture_stream.final.decode("utf-8")
    assert text.startswith(EXPECTED_HEADER)
    assert text[len(EXPECTED_HEADER):].splitlines() == [
        "chr1\t100\trs1\tA\tG\t50\tPASS\tDP=30\tGT:DP\t0/1:12\t1/1",
        "chr1\t20000\t.\tC\tT\t.\t.\tDP=7\tGT\t.\t.",
        "chr2\t50\t.\tGT\tG\t12.5\t.\t.\tGT\t.\t.",
    ]


@pytest.mark.unit
def test_full_format_field_keeps_trailing_missing_values(
    capture_stream: Any, header: VariantHeader, records: list[VariantRecord]
) -> None:
    writer = VCFWriter(capture_stream, write_full_format_field=True)
    writer.write_header(header)
    writer.add(records[0])
    writer.close()

    assert _text_lines(capture_stream)[-1].endswith("\tGT:DP\t0/1:12\t1/1:.")


@pytest.mark.unit
def test_do_not_write_genotypes_drops_sample_columns(
    capture_stream: Any, header: VariantHeader, records: list[VariantRecord]
) -> None:
    writer = VCFWriter(capture_stream, do_not_write_genotypes=True)
    writer.write_header(header)
    writer.add(records[0])
    writer.close()

    lines = _text_lines(capture_stream)
    assert lines[-2] == "#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO"
    assert lines[-1] == "chr1\t100\trs1\tA\tG\t50\tPASS\tDP=30"
    assert not any(line.startswith("##FORMAT") for line in lines)


@pytest.mark.unit
def test_info_flags_and_lists(capture_stream: Any) -> None:
    header = VariantHeader.from_mapping(
        {"info": [{"id": "DB", "type": "Flag"}, {"id": "AF", "type": "Float"}, {"id": "SOMATIC", "type": "Flag"}]}
    )
    writer = VCFWriter(capture_stream)
    writer.write_header(header)
    writer.add(VariantRecord("chr1", 5, "A", alts=("C", "T"), info={"DB": True, "AF": [0.5, 0.25], "SOMATIC": False}))
    writer.close()

    assert _text_lines(capture_stream)[-1] == "chr1\t5\t.\tA\tC,T\t.\t.\tDB;AF=0.5,0.25"


@pytest.mark.unit
def test_undeclared_fields_are_rejected_unless_allowed(
    header: VariantHeader,
) -> None:
    record = VariantRecord("chr1", 1, "A", info={"AF": 0.5})
    strict = VCFWriter(io.BytesIO())
    strict.write_header(header)
    with pytest.raises(RecordValidationError, match="INFO field AF"):
        strict.add(record)

    genotyped = VariantRecord("chr1", 1, "A", genotypes=(Genotype("NA1", {"GQ": 30}),))
    with pytest.raises(RecordValidationError, match="FORMAT field GQ"):
        strict.add(genotyped)

    lenient = VCFWriter(io.BytesIO(), allow_missing_fields_in_header=True)
    lenient.write_header(header)
    lenient.add(record)
    lenient.add(genotyped)


@pytest.mark.unit
def test_unknown_contig_and_sample_are_rejected(
    header: VariantHeader, dictionary: SequenceDictionary
) -> None:
    writer = VCFWriter(io.BytesIO(), reference_dictionary=dictionary)
    writer.write_header(header)

    with pytest.raises(RecordValidationError, match="contig"):
        writer.add(VariantRecord("chrUn", 1, "A"))
    with pytest.raises(RecordValidationError, match="sample NA9"):
        writer.add(VariantRecord("chr1", 1, "A", genotypes=(Genotype("NA9", {"GT": "0/0"}),)))


@pytest.mark.unit
def test_header_required_before_records(records: list[VariantRecord]) -> None:
    writer = VCFWriter(io.BytesIO())

    with pytest.raises(RecordValidationError, match="header"):
        writer.add(records[0])


@pytest.mark.unit
def test_set_header_adopts_without_writing(capture_stream: Any, header: VariantHeader) -> None:
    writer = VCFWriter(capture_stream)
    writer.set_header(header)
    writer.add(VariantRecord("chr1", 1, "A"))
    writer.close()

    assert capture_stream.final == b"chr1\t1\t.\tA\t.\t.\t.\t.\tGT\t.\t.\n"


@pytest.mark.unit
def test_write_failure_sets_error_flag(header: VariantHeader) -> None:
    writer = VCFWriter(FailingSink())  # type: ignore[arg-type]
    assert not writer.check_error()

    with pytest.raises(OutputIOError, match="disk full"):
        writer.write_header(header)
    assert writer.check_error()


@pytest.mark.unit
def test_closed_writer_rejects_records(header: VariantHeader) -> None:
    writer = VCFWriter(io.BytesIO())
    writer.write_header(header)
    writer.close()
    writer.close()

    with pytest.raises(ValueError, match="closed"):
        writer.add(VariantRecord("chr1", 1, "A"))


@pytest.mark.unit
def test_indexing_requires_path_and_creator() -> None:
    with pytest.raises(ValueError, match="output path"):
        VCFWriter(io.BytesIO(), enable_on_the_fly_indexing=True)


@pytest.mark.unit
def test_index_needs_final_position_on_close(tmp_path: Path, header: VariantHeader) -> None:
    class PositionlessSink:
        def write(self, data: bytes) -> int:
            return len(data)

        def flush(self) -> None:
            return None

        def close(self) -> None:
            return None

    output = tmp_path / "calls.vcf"
    writer = VCFWriter(
        PositionlessSink(),
        output_path=output,
        index_creator=LinearIndexCreator(),
        enable_on_the_fly_indexing=True,
    )
    writer.write_header(header)

    with pytest.raises(OutputIOError, match="position"):
        writer.close()
    assert writer.check_error()
    assert not (tmp_path / "calls.vcf.idx").exists()


@pytest.mark.unit
def test_binary_writer_layout(
    capture_stream: Any,
    header: VariantHeader,
    dictionary: SequenceDictionary,
    records: list[VariantRecord],
) -> None:
    writer = BCFWriter(capture_stream, reference_dictionary=dictionary)
    writer.write_header(header)
    writer.add(records[2])
    writer.close()

    data = capture_stream.final
    assert data.startswith(BCF_MAGIC)
    (header_length,) = struct.unpack_from("<I", data, len(BCF_MAGIC))
    header_end = len(BCF_MAGIC) + 4 + header_length
    header_text = data[len(BCF_MAGIC) + 4 : header_end]
    assert header_text.endswith(b"\x00")
    assert header_text[:-1].decode("utf-8") == EXPECTED_HEADER

    shared_length, sample_length = struct.unpack_from("<II", data, header_end)
    assert sample_length == 0
    assert len(data) == header_end + 8 + shared_length
    contig, position, rlen = struct.unpack_from("<iii", data, header_end + 8)
    (qual,) = struct.unpack_from("<f", data, header_end + 20)
    assert (contig, position, rlen) == (1, 49, 2)
    assert qual == pytest.approx(12.5)


@pytest.mark.unit
def test_binary_writer_encodes_genotypes_and_missing_qual(
    capture_stream: Any,
    header: VariantHeader,
    dictionary: SequenceDictionary,
    records: list[VariantRecord],
) -> None:
    writer = BCFWriter(capture_stream, reference_dictionary=dictionary)
    writer.write_header(header)
    writer.add(records[1])
    writer.add(records[0])
    writer.close()

    data = capture_stream.final
    (header_length,) = struct.unpack_from("<I", data, len(BCF_MAGIC))
    offset = len(BCF_MAGIC) + 4 + header_length
    shared_length, sample_length = struct.unpack_from("<II", data, offset)
    (qual,) = struct.unpack_from("<f", data, offset + 20)
    assert math.isnan(qual)
    assert sample_length == 0

    offset += 8 + shared_length
    shared_length, sample_length = struct.unpack_from("<II", data, offset)
    assert sample_length > 0
    samples = data[offset + 8 + shared_length : offset + 8 + shared_length + sample_length]
    assert b"0/1" in samples and b"1/1" in samples


@pytest.mark.unit
def test_binary_writer_requires_declared_contig(header: VariantHeader) -> None:
    writer = BCFWriter(io.BytesIO(), allow_missing_fields_in_header=True)
    writer.write_header(header)

    with pytest.raises(RecordValidationError, match="contig"):
        writer.add(VariantRecord("chr1", 1, "A"))
