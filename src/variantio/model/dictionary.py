"""Reference sequence dictionary used to validate and order variant records."""

from __future__ import annotations

import os
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from variantio.core.errors import ConfigurationError

__all__ = ["SequenceRecord", "SequenceDictionary"]


@dataclass(frozen=True, slots=True)
class SequenceRecord:
    """One named contig of the reference."""

    name: str
    length: int | None = None


@dataclass(frozen=True)
class SequenceDictionary:
    """Ordered catalog of reference contigs.

    The order of ``sequences`` defines the sort order expected by indexes
    built on the fly.
    """

    sequences: tuple[SequenceRecord, ...] = ()
    _positions: Mapping[str, int] = field(
        init=False, repr=False, compare=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        positions: dict[str, int] = {}
        for position, record in enumerate(self.sequences):
            if record.name in positions:
                raise ConfigurationError(f"Duplicate contig in sequence dictionary: {record.name}")
            positions[record.name] = position
        object.__setattr__(self, "_positions", positions)

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, int | None]]) -> SequenceDictionary:
        """Build a dictionary from ``(name, length)`` pairs in reference order."""

        return cls(
            tuple(SequenceRecord(name=name, length=length) for name, length in pairs)
        )

    @classmethod
    def from_tsv(cls, path: str | os.PathLike[str]) -> SequenceDictionary:
        """Load a two column ``name<TAB>length`` file; ``#`` lines are skipped."""

        pairs: list[tuple[str, int | None]] = []
        with Path(path).open("r", encoding="utf-8") as handle:
            for line_no, raw_line in enumerate(handle, start=1):
                line = raw_line.strip()
                if not line or line.startswith("#"):
                    continue
                parts = line.split("\t")
                length: int | None = None
                if len(parts) > 1 and parts[1]:
                    try:
                        length = int(parts[1])
                    except ValueError as exc:
                        msg = f"{path}:{line_no}: contig length must be an integer, got {parts[1]!r}"
                        raise ConfigurationError(msg) from exc
                pairs.append((parts[0], length))
        return cls.from_pairs(pairs)

    def __contains__(self, name: object) -> bool:
        return name in self._positions

    def __iter__(self) -> Iterator[SequenceRecord]:
        return iter(self.sequences)

    def __len__(self) -> int:
        return len(self.sequences)

    def get(self, name: str) -> SequenceRecord | None:
        position = self._positions.get(name)
        return None if position is None else self.sequences[position]

    def index_of(self, name: str) -> int:
        """Return the position of ``name`` in reference order, or ``-1``."""

        return self._positions.get(name, -1)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(record.name for record in self.sequences)
