"""Variant header: field declarations and sample names."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from variantio.core.errors import ConfigurationError

from .dictionary import SequenceDictionary

__all__ = ["FieldDeclaration", "VariantHeader", "DEFAULT_FILE_FORMAT"]

DEFAULT_FILE_FORMAT = "VCFv4.2"
_FIELD_TYPES = frozenset({"Integer", "Float", "Flag", "Character", "String"})


@dataclass(frozen=True, slots=True)
class FieldDeclaration:
    """``##INFO``/``##FORMAT``/``##FILTER`` header declaration."""

    id: str
    number: str = "1"
    type: str = "String"
    description: str = ""

    def __post_init__(self) -> None:
        if self.type not in _FIELD_TYPES:
            allowed = ", ".join(sorted(_FIELD_TYPES))
            raise ConfigurationError(f"Field {self.id}: type must be one of {allowed}, got {self.type!r}")

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> FieldDeclaration:
        return cls(
            id=str(payload["id"]),
            number=str(payload.get("number", "1")),
            type=str(payload.get("type", "String")),
            description=str(payload.get("description", "")),
        )


def _index_declarations(declarations: Iterable[FieldDeclaration]) -> dict[str, FieldDeclaration]:
    return {declaration.id: declaration for declaration in declarations}


@dataclass(frozen=True)
class VariantHeader:
    """Metadata written ahead of the records.

    ``contigs`` is optional; writers fall back to the reference dictionary
    supplied to the builder when the header does not declare any.
    """

    info: tuple[FieldDeclaration, ...] = ()
    formats: tuple[FieldDeclaration, ...] = ()
    filters: tuple[FieldDeclaration, ...] = ()
    samples: tuple[str, ...] = ()
    contigs: SequenceDictionary | None = None
    file_format: str = DEFAULT_FILE_FORMAT
    meta: tuple[tuple[str, str], ...] = ()
    _info_index: dict[str, FieldDeclaration] = field(init=False, repr=False, compare=False)
    _format_index: dict[str, FieldDeclaration] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if len(set(self.samples)) != len(self.samples):
            raise ConfigurationError("Sample names in a variant header must be unique")
        object.__setattr__(self, "_info_index", _index_declarations(self.info))
        object.__setattr__(self, "_format_index", _index_declarations(self.formats))

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> VariantHeader:
        """Build a header from a JSON/YAML style mapping."""

        contigs_payload: Sequence[Mapping[str, Any]] = payload.get("contigs") or ()
        contigs = None
        if contigs_payload:
            contigs = SequenceDictionary.from_pairs(
                (str(item["id"]), item.get("length")) for item in contigs_payload
            )
        return cls(
            info=tuple(FieldDeclaration.from_mapping(item) for item in payload.get("info", ())),
            formats=tuple(FieldDeclaration.from_mapping(item) for item in payload.get("formats", ())),
            filters=tuple(FieldDeclaration.from_mapping(item) for item in payload.get("filters", ())),
            samples=tuple(str(sample) for sample in payload.get("samples", ())),
            contigs=contigs,
            file_format=str(payload.get("file_format", DEFAULT_FILE_FORMAT)),
            meta=tuple((str(key), str(value)) for key, value in payload.get("meta", {}).items()),
        )

    def has_info(self, key: str) -> bool:
        return key in self._info_index

    def has_format(self, key: str) -> bool:
        return key in self._format_index

    def info_declaration(self, key: str) -> FieldDeclaration | None:
        return self._info_index.get(key)

    @property
    def has_genotypes(self) -> bool:
        return bool(self.samples)
