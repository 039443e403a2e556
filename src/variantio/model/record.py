"""In-memory variant record."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from variantio.core.errors import RecordValidationError

__all__ = ["Genotype", "VariantRecord", "GENOTYPE_KEY"]

GENOTYPE_KEY = "GT"


@dataclass(frozen=True, slots=True)
class Genotype:
    """Per-sample FORMAT values; ``GT`` is kept first when serialized."""

    sample: str
    fields: Mapping[str, Any] = field(default_factory=dict)

    @property
    def keys(self) -> tuple[str, ...]:
        keys = list(self.fields)
        if GENOTYPE_KEY in keys:
            keys.remove(GENOTYPE_KEY)
            keys.insert(0, GENOTYPE_KEY)
        return tuple(keys)


@dataclass(frozen=True)
class VariantRecord:
    """A single site with optional per-sample genotypes.

    ``position`` is 1-based. An empty ``filters`` tuple means the site was
    not filtered (``.``); ``("PASS",)`` means it passed all filters.
    """

    contig: str
    position: int
    ref: str
    alts: tuple[str, ...] = ()
    id: str | None = None
    qual: float | None = None
    filters: tuple[str, ...] = ()
    info: Mapping[str, Any] = field(default_factory=dict)
    genotypes: tuple[Genotype, ...] = ()

    def __post_init__(self) -> None:
        if not self.contig:
            raise RecordValidationError("Variant record requires a contig")
        if self.position < 1:
            raise RecordValidationError(
                f"Variant position must be 1-based and positive, got {self.position}"
            )
        if not self.ref:
            raise RecordValidationError(f"{self.contig}:{self.position}: REF allele must not be empty")

    @property
    def end(self) -> int:
        """Last reference base covered, honouring an ``END`` INFO value."""

        declared_end = self.info.get("END")
        if declared_end is not None and not isinstance(declared_end, bool):
            return int(declared_end)
        return self.position + len(self.ref) - 1

    @property
    def alleles(self) -> tuple[str, ...]:
        return (self.ref, *self.alts)

    def genotype_for(self, sample: str) -> Genotype | None:
        for genotype in self.genotypes:
            if genotype.sample == sample:
                return genotype
        return None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> VariantRecord:
        """Build a record from a JSON-lines style mapping.

        Genotype entries are mappings with a ``sample`` key; every other key
        becomes a FORMAT field.
        """

        try:
            contig = str(payload["contig"])
            position = int(payload["position"])
            ref = str(payload["ref"])
        except KeyError as exc:
            raise RecordValidationError(f"Variant record is missing field {exc.args[0]!r}") from exc
        except (TypeError, ValueError) as exc:
            raise RecordValidationError(f"Invalid variant record: {exc}") from exc

        alts_payload: Sequence[Any] | str = payload.get("alts") or ()
        if isinstance(alts_payload, str):
            alts_payload = alts_payload.split(",")
        filters_payload: Sequence[Any] | str = payload.get("filters") or ()
        if isinstance(filters_payload, str):
            filters_payload = filters_payload.split(";")

        genotypes: list[Genotype] = []
        for entry in payload.get("genotypes") or ():
            values = dict(entry)
            sample = values.pop("sample", None)
            if sample is None:
                raise RecordValidationError(f"{contig}:{position}: genotype entry without a sample name")
            genotypes.append(Genotype(sample=str(sample), fields=values))

        qual = payload.get("qual")
        return cls(
            contig=contig,
            position=position,
            ref=ref,
            alts=tuple(str(alt) for alt in alts_payload),
            id=payload.get("id"),
            qual=None if qual is None else float(qual),
            filters=tuple(str(value) for value in filters_payload),
            info=dict(payload.get("info") or {}),
            genotypes=tuple(genotypes),
        )
