"""End-to-end tests for the variant writer builder."""

from __future__ import annotations

import gzip
import hashlib
import json
from pathlib import Path
from typing import Any

import pytest
from structlog.testing import capture_logs

from variantio.config import WriterConfig, reset_writer_defaults
from variantio.core.errors import ConfigurationError, OutputIOError
from variantio.model import SequenceDictionary, VariantHeader, VariantRecord
from variantio.writer import (
    AsyncVariantContextWriter,
    BCFWriter,
    LinearIndexCreator,
    OpenOption,
    OutputType,
    VariantWriterBuilder,
    VCFWriter,
    WriterOption,
)
from variantio.writer.backends.binary import BCF_MAGIC


def _write(writer: Any, header: VariantHeader, records: list[VariantRecord]) -> None:
    with writer:
        writer.write_header(header)
        writer.add_all(records)


@pytest.mark.unit
def test_mutators_chain_and_defaults(tmp_path: Path) -> None:
    builder = VariantWriterBuilder()

    assert builder.options == {WriterOption.INDEX_ON_THE_FLY}
    assert builder.buffer_size == 128 * 1024
    assert not builder.create_md5
    assert builder.output_type is OutputType.UNSPECIFIED
    assert (
        builder.set_output_file(tmp_path / "a.vcf")
        .set_buffer(10)
        .unset_buffering()
        .set_create_md5()
        .unset_create_md5()
        .set_option(WriterOption.FORCE_BCF)
        .unset_option(WriterOption.FORCE_BCF)
        .modify_option(WriterOption.USE_ASYNC_IO, True)
        .clear_options()
        .set_options([WriterOption.DO_NOT_WRITE_GENOTYPES])
        .clear_index_creator()
        is builder
    )
    assert builder.is_option_set(WriterOption.DO_NOT_WRITE_GENOTYPES)
    assert not builder.is_option_set(WriterOption.INDEX_ON_THE_FLY)
    assert builder.buffer_size == 0


@pytest.mark.unit
def test_default_changes_only_affect_new_builders() -> None:
    before = VariantWriterBuilder()
    VariantWriterBuilder.set_default_option(WriterOption.DO_NOT_WRITE_GENOTYPES)
    after = VariantWriterBuilder()
    VariantWriterBuilder.unset_default_option(WriterOption.INDEX_ON_THE_FLY)
    latest = VariantWriterBuilder()

    assert not before.is_option_set(WriterOption.DO_NOT_WRITE_GENOTYPES)
    assert after.is_option_set(WriterOption.DO_NOT_WRITE_GENOTYPES)
    assert after.is_option_set(WriterOption.INDEX_ON_THE_FLY)
    assert not latest.is_option_set(WriterOption.INDEX_ON_THE_FLY)


@pytest.mark.unit
def test_environment_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("VARIANTIO_USE_ASYNC_IO", "yes")
    monkeypatch.setenv("VARIANTIO_BUFFER_SIZE", "4096")
    monkeypatch.setenv("VARIANTIO_CREATE_MD5", "1")
    reset_writer_defaults()

    builder = VariantWriterBuilder()

    assert builder.is_option_set(WriterOption.USE_ASYNC_IO)
    assert builder.buffer_size == 4096
    assert builder.create_md5


@pytest.mark.unit
def test_target_switching(tmp_path: Path, capture_stream: Any) -> None:
    builder = VariantWriterBuilder().set_output_file(str(tmp_path / "calls.vcf.gz"))
    assert builder.output_type is OutputType.BLOCK_COMPRESSED_VCF
    assert builder.output_path == tmp_path / "calls.vcf.gz"

    builder.set_output_bcf_stream(capture_stream)
    assert builder.output_type is OutputType.BCF_STREAM
    assert builder.output_path is None

    builder.set_output_stream(capture_stream)
    assert builder.output_type is OutputType.VCF_STREAM


@pytest.mark.unit
def test_set_output_file_type_rules(tmp_path: Path, capture_stream: Any) -> None:
    builder = VariantWriterBuilder()
    with pytest.raises(ConfigurationError, match="set an output file first"):
        builder.set_output_file_type(OutputType.VCF)

    builder.set_output_vcf_stream(capture_stream)
    with pytest.raises(ConfigurationError, match="set an output file first"):
        builder.set_output_file_type(OutputType.BCF)

    builder.set_output_file(tmp_path / "calls.out")
    assert builder.output_type is OutputType.UNSPECIFIED
    with pytest.raises(ConfigurationError, match="not a file type"):
        builder.set_output_file_type(OutputType.VCF_STREAM)
    builder.set_output_file_type("BCF")
    assert builder.output_type is OutputType.BCF


@pytest.mark.integration
def test_unspecified_type_fails_before_opening(tmp_path: Path) -> None:
    builder = VariantWriterBuilder().set_output_file(tmp_path / "calls.txt")

    with pytest.raises(ConfigurationError, match="recognized extensions"):
        builder.build()
    assert not (tmp_path / "calls.txt").exists()


@pytest.mark.integration
def test_missing_dictionary_fails_before_opening(tmp_path: Path) -> None:
    builder = VariantWriterBuilder().set_output_file(tmp_path / "calls.vcf")

    with pytest.raises(ConfigurationError, match="reference dictionary"):
        builder.build()
    assert not (tmp_path / "calls.vcf").exists()

    writer = builder.unset_option(WriterOption.INDEX_ON_THE_FLY).build()
    writer.close()
    assert (tmp_path / "calls.vcf").exists()


@pytest.mark.integration
def test_linear_index_written_next_to_text_output(
    tmp_path: Path,
    header: VariantHeader,
    dictionary: SequenceDictionary,
    records: list[VariantRecord],
) -> None:
    output = tmp_path / "calls.vcf"
    writer = VariantWriterBuilder().set_output_file(output).set_reference_dictionary(dictionary).build()
    assert isinstance(writer, VCFWriter)
    _write(writer, header, records)

    index = json.loads((tmp_path / "calls.vcf.idx").read_text(encoding="utf-8"))
    assert index["kind"] == "linear"
    assert index["source"] == "calls.vcf"
    assert index["final_offset"] == output.stat().st_size
    assert index["sequences"]["chr1"]["features"] == 2
    assert index["sequences"]["chr2"]["features"] == 1


@pytest.mark.integration
def test_compressed_output_with_tabix_index_and_md5(
    tmp_path: Path,
    header: VariantHeader,
    records: list[VariantRecord],
) -> None:
    output = tmp_path / "calls.vcf.gz"
    writer = VariantWriterBuilder().set_output_file(output).set_create_md5().build()
    _write(writer, header, records)

    data = output.read_bytes()
    text = gzip.decompress(data).decode("utf-8")
    assert text.splitlines()[-1].startswith("chr2\t50\t")
    index = json.loads((tmp_path / "calls.vcf.gz.tbi").read_text(encoding="utf-8"))
    assert index["kind"] == "tabix"
    assert set(index["sequences"]) == {"chr1", "chr2"}
    digest = (tmp_path / "calls.vcf.gz.md5").read_text(encoding="ascii")
    assert digest == hashlib.md5(data).hexdigest()


@pytest.mark.integration
def test_force_bcf_keeps_declared_type(
    tmp_path: Path,
    header: VariantHeader,
    dictionary: SequenceDictionary,
    records: list[VariantRecord],
) -> None:
    output = tmp_path / "calls.vcf"
    builder = (
        VariantWriterBuilder()
        .set_output_file(output)
        .set_reference_dictionary(dictionary)
        .set_option(WriterOption.FORCE_BCF)
    )

    writer = builder.build()

    assert isinstance(writer, BCFWriter)
    assert builder.output_type is OutputType.VCF
    _write(writer, header, records)
    assert output.read_bytes().startswith(BCF_MAGIC)

    builder.unset_option(WriterOption.FORCE_BCF)
    rebuilt = builder.build(OpenOption.TRUNCATE_EXISTING)
    rebuilt.close()
    assert isinstance(rebuilt, VCFWriter)
    assert output.read_bytes() == b""


@pytest.mark.integration
def test_force_bcf_on_stream(capture_stream: Any, header: VariantHeader) -> None:
    writer = (
        VariantWriterBuilder()
        .set_output_vcf_stream(capture_stream)
        .set_option(WriterOption.FORCE_BCF)
        .build()
    )
    _write(writer, header, [])

    assert isinstance(writer, BCFWriter)
    assert capture_stream.final.startswith(BCF_MAGIC)


@pytest.mark.integration
def test_stream_with_index_warns_and_skips_index(
    tmp_path: Path,
    capture_stream: Any,
    header: VariantHeader,
    records: list[VariantRecord],
) -> None:
    builder = VariantWriterBuilder().set_output_vcf_stream(capture_stream)

    with capture_logs() as logs:
        writer = builder.build()

    assert not writer.indexing  # type: ignore[attr-defined]
    assert builder.is_option_set(WriterOption.INDEX_ON_THE_FLY)
    assert [entry["event"] for entry in logs if entry["log_level"] == "warning"] == [
        "writer.index.unsupported_stream"
    ]
    _write(writer, header, records)
    assert capture_stream.final.decode("utf-8").count("\n") == header_line_count(header) + 3
    assert list(tmp_path.iterdir()) == []


def header_line_count(header: VariantHeader) -> int:
    return 1 + len(header.filters) + len(header.info) + len(header.formats) + 1


@pytest.mark.integration
def test_closing_writer_closes_caller_stream(capture_stream: Any) -> None:
    writer = VariantWriterBuilder().clear_options().set_output_stream(capture_stream).build()
    writer.write_header(VariantHeader())
    writer.close()

    assert capture_stream.closed
    assert capture_stream.final.endswith(b"#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\n")


@pytest.mark.integration
@pytest.mark.parametrize("buffer_size", [0, 16, 1 << 16])
def test_buffering_does_not_change_bytes(
    tmp_path: Path,
    buffer_size: int,
    header: VariantHeader,
    records: list[VariantRecord],
    capture_stream: Any,
) -> None:
    output = tmp_path / "calls.vcf"
    writer = VariantWriterBuilder().clear_options().set_output_file(output).set_buffer(buffer_size).build()
    _write(writer, header, records)

    reference = VariantWriterBuilder().clear_options().set_output_stream(capture_stream).build()
    _write(reference, header, records)

    assert output.read_bytes() == capture_stream.final


@pytest.mark.integration
def test_async_writer_wraps_backend(
    tmp_path: Path,
    header: VariantHeader,
    records: list[VariantRecord],
) -> None:
    output = tmp_path / "calls.vcf.gz"
    writer = VariantWriterBuilder().set_output_file(output).set_option(WriterOption.USE_ASYNC_IO).build()

    assert isinstance(writer, AsyncVariantContextWriter)
    _write(writer, header, records)
    assert len(gzip.decompress(output.read_bytes()).decode("utf-8").splitlines()) == header_line_count(header) + 3
    assert (tmp_path / "calls.vcf.gz.tbi").exists()


@pytest.mark.integration
def test_each_build_is_independent(
    tmp_path: Path, header: VariantHeader, records: list[VariantRecord]
) -> None:
    builder = VariantWriterBuilder()

    first = builder.set_output_file(tmp_path / "one.vcf.gz").build()
    second = builder.set_output_file(tmp_path / "two.vcf.gz").build()
    _write(second, header, records[:1])
    _write(first, header, records)

    assert first is not second
    for name, count in (("one.vcf.gz", 3), ("two.vcf.gz", 1)):
        index = json.loads((tmp_path / f"{name}.tbi").read_text(encoding="utf-8"))
        assert index["source"] == name
        body = gzip.decompress((tmp_path / name).read_bytes()).decode("utf-8").splitlines()
        assert len(body) == header_line_count(header) + count


@pytest.mark.integration
def test_explicit_index_creator_is_used(
    tmp_path: Path, header: VariantHeader, records: list[VariantRecord]
) -> None:
    creator = LinearIndexCreator(bin_width=1000)
    writer = (
        VariantWriterBuilder()
        .set_output_file(tmp_path / "calls.vcf.gz")
        .set_index_creator(creator)
        .build()
    )
    _write(writer, header, records)

    assert not (tmp_path / "calls.vcf.gz.tbi").exists()
    index = json.loads((tmp_path / "calls.vcf.gz.idx").read_text(encoding="utf-8"))
    assert index["parameters"] == {"bin_width": 1000}


@pytest.mark.integration
def test_failed_build_leaves_no_open_handles(tmp_path: Path) -> None:
    (tmp_path / "calls.vcf.gz.md5").mkdir()
    handles: list[Any] = []

    def opener(path: Path, mode: str) -> Any:
        handle = open(path, mode, buffering=0)
        handles.append(handle)
        return handle

    builder = VariantWriterBuilder(opener=opener).set_output_file(tmp_path / "calls.vcf.gz").set_create_md5()

    with pytest.raises(OutputIOError):
        builder.build()
    assert [handle.closed for handle in handles] == [True]


@pytest.mark.integration
def test_failed_async_start_closes_output(
    capture_stream: Any, monkeypatch: pytest.MonkeyPatch
) -> None:
    def no_threads(*_: Any, **__: Any) -> Any:
        raise RuntimeError("can't start new thread")

    monkeypatch.setattr("variantio.writer.builder.AsyncVariantContextWriter", no_threads)
    builder = (
        VariantWriterBuilder()
        .set_output_vcf_stream(capture_stream)
        .set_option(WriterOption.USE_ASYNC_IO)
    )

    with pytest.raises(RuntimeError, match="new thread"):
        builder.build()
    assert capture_stream.closed


@pytest.mark.integration
def test_from_config(tmp_path: Path) -> None:
    contigs = tmp_path / "contigs.tsv"
    contigs.write_text("chr1\t100\n", encoding="utf-8")
    config = WriterConfig(
        output=tmp_path / "calls.out",
        output_type=OutputType.BCF,
        options=[WriterOption.INDEX_ON_THE_FLY],
        buffer_size=0,
        create_md5=True,
        reference_dictionary=contigs,
    )

    builder = VariantWriterBuilder.from_config(config)
    writer = builder.build()
    _write(writer, VariantHeader(), [VariantRecord("chr1", 5, "A")])

    assert builder.output_type is OutputType.BCF
    assert builder.buffer_size == 0
    assert (tmp_path / "calls.out.idx").exists()
    assert (tmp_path / "calls.out.md5").exists()
