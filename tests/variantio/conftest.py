"""Variant fixtures shared by the variantio test modules."""

from __future__ import annotations

import io

import pytest

from variantio.model import (
    FieldDeclaration,
    Genotype,
    SequenceDictionary,
    VariantHeader,
    VariantRecord,
)


class CapturingBytesIO(io.BytesIO):
    """BytesIO that keeps its content after being closed by a writer."""

    def __init__(self) -> None:
        super().__init__()
        self.final: bytes | None = None

    def close(self) -> None:
        if not self.closed:
            self.final = self.getvalue()
        super().close()


@pytest.fixture
def capture_stream() -> CapturingBytesIO:
    return CapturingBytesIO()


@pytest.fixture
def dictionary() -> SequenceDictionary:
    return SequenceDictionary.from_pairs([("chr1", 1_000_000), ("chr2", 500_000)])


@pytest.fixture
def header() -> VariantHeader:
    return VariantHeader(
        info=(FieldDeclaration("DP", "1", "Integer", "Total depth"),),
        formats=(
            FieldDeclaration("GT", "1", "String", "Genotype"),
            FieldDeclaration("DP", "1", "Integer", "Read depth"),
        ),
        filters=(FieldDeclaration("q10", description="Quality below 10"),),
        samples=("NA1", "NA2"),
    )


@pytest.fixture
def records() -> list[VariantRecord]:
    return [
        VariantRecord(
            contig="chr1",
            position=100,
            ref="A",
            alts=("G",),
            id="rs1",
            qual=50.0,
            filters=("PASS",),
            info={"DP": 30},
            genotypes=(
                Genotype("NA1", {"GT": "0/1", "DP": 12}),
                Genotype("NA2", {"GT": "1/1"}),
            ),
        ),
        VariantRecord(contig="chr1", position=20_000, ref="C", alts=("T",), info={"DP": 7}),
        VariantRecord(contig="chr2", position=50, ref="GT", alts=("G",), qual=12.5),
    ]
