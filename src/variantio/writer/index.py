"""Positional indexes built while records are written.

Two strategies are provided:

* :class:`LinearIndexCreator`: fixed-width bins per contig holding the file
  offset of the first feature overlapping each bin (``<path>.idx``).
* :class:`TabixIndexCreator`: hierarchical UCSC bins with chunk lists of
  virtual offsets plus a 16 kb linear index (``<path>.tbi``), intended for
  block-compressed output.

Both require features in reference order; an out-of-order feature raises
:class:`RecordValidationError`.
"""

from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar

from variantio.core.errors import RecordValidationError
from variantio.model.dictionary import SequenceDictionary

__all__ = [
    "IndexCreator",
    "LinearIndexCreator",
    "TabixIndexCreator",
    "VariantIndex",
    "reg2bin",
]

_TABIX_LINEAR_SHIFT = 14


@dataclass(frozen=True)
class VariantIndex:
    """Finalised index, serialised as canonical JSON."""

    kind: str
    source: str
    final_offset: int
    sequences: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    parameters: Mapping[str, Any] = field(default_factory=dict)

    def to_mapping(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "source": self.source,
            "final_offset": self.final_offset,
            "parameters": dict(self.parameters),
            "sequences": {name: dict(payload) for name, payload in self.sequences.items()},
        }

    def write(self, path: Path) -> None:
        """Write the index via an atomic replace."""

        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(
                self.to_mapping(),
                handle,
                ensure_ascii=False,
                sort_keys=True,
                separators=(",", ":"),
            )
        os.replace(tmp_path, path)


class IndexCreator(ABC):
    """Incrementally collects feature offsets for one output file."""

    kind: ClassVar[str]
    extension: ClassVar[str]

    def __init__(self) -> None:
        self._output_path: Path | None = None
        self._dictionary: SequenceDictionary | None = None
        self._current_contig: str | None = None
        self._current_rank = -1
        self._last_start = 0
        self._finished_contigs: set[str] = set()

    def initialize(self, output_path: Path, dictionary: SequenceDictionary | None) -> None:
        """Reset state for a new output; a creator may be reused across builds."""

        self._output_path = output_path
        self._dictionary = dictionary
        self._current_contig = None
        self._current_rank = -1
        self._last_start = 0
        self._finished_contigs = set()
        self._reset()

    def index_path(self, output_path: Path) -> Path:
        return output_path.with_name(output_path.name + self.extension)

    def add_feature(self, contig: str, start: int, end: int, offset: int) -> None:
        """Record a feature spanning 1-based ``[start, end]`` at file ``offset``."""

        self._check_order(contig, start)
        self._add(contig, start, max(start, end), offset)

    def finalize(self, final_offset: int) -> VariantIndex:
        source = "" if self._output_path is None else self._output_path.name
        return VariantIndex(
            kind=self.kind,
            source=source,
            final_offset=final_offset,
            sequences=self._sequences(final_offset),
            parameters=self._parameters(),
        )

    def _check_order(self, contig: str, start: int) -> None:
        if contig == self._current_contig:
            if start < self._last_start:
                raise RecordValidationError(
                    f"Input must be sorted to index on the fly: {contig}:{start} "
                    f"follows {contig}:{self._last_start}"
                )
            self._last_start = start
            return

        if contig in self._finished_contigs:
            raise RecordValidationError(
                f"Input must be sorted to index on the fly: contig {contig} appears again "
                f"after {self._current_contig}"
            )
        if self._dictionary is not None:
            rank = self._dictionary.index_of(contig)
            if rank < 0:
                raise RecordValidationError(f"Contig {contig} is not in the sequence dictionary")
            if rank < self._current_rank:
                raise RecordValidationError(
                    f"Input must be sorted to index on the fly: contig {contig} precedes "
                    f"{self._current_contig} in the sequence dictionary"
                )
            self._current_rank = rank
        if self._current_contig is not None:
            self._finished_contigs.add(self._current_contig)
        self._current_contig = contig
        self._last_start = start

    @abstractmethod
    def _reset(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def _add(self, contig: str, start: int, end: int, offset: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def _sequences(self, final_offset: int) -> dict[str, dict[str, Any]]:
        raise NotImplementedError

    def _parameters(self) -> dict[str, Any]:
        return {}


class LinearIndexCreator(IndexCreator):
    """Generic on-the-fly index with fixed-width bins."""

    kind = "linear"
    extension = ".idx"
    DEFAULT_BIN_WIDTH: ClassVar[int] = 8000

    def __init__(self, bin_width: int = DEFAULT_BIN_WIDTH) -> None:
        if bin_width <= 0:
            raise ValueError("bin_width must be positive")
        super().__init__()
        self.bin_width = bin_width
        self._bins: dict[str, list[int | None]] = {}
        self._counts: dict[str, int] = {}
        self._longest: dict[str, int] = {}

    def _reset(self) -> None:
        self._bins = {}
        self._counts = {}
        self._longest = {}

    def _add(self, contig: str, start: int, end: int, offset: int) -> None:
        bins = self._bins.setdefault(contig, [])
        first_bin = (start - 1) // self.bin_width
        last_bin = (end - 1) // self.bin_width
        if len(bins) <= last_bin:
            bins.extend([None] * (last_bin + 1 - len(bins)))
        for bin_number in range(first_bin, last_bin + 1):
            if bins[bin_number] is None:
                bins[bin_number] = offset
        self._counts[contig] = self._counts.get(contig, 0) + 1
        self._longest[contig] = max(self._longest.get(contig, 0), end - start + 1)

    def _sequences(self, final_offset: int) -> dict[str, dict[str, Any]]:
        sequences: dict[str, dict[str, Any]] = {}
        for contig, bins in self._bins.items():
            # Empty bins point at the next populated bin so seeks never skip data.
            filled: list[int] = []
            following = final_offset
            for value in reversed(bins):
                if value is not None:
                    following = value
                filled.append(following)
            filled.reverse()
            sequences[contig] = {
                "bins": filled,
                "features": self._counts[contig],
                "longest_feature": self._longest[contig],
            }
        return sequences

    def _parameters(self) -> dict[str, Any]:
        return {"bin_width": self.bin_width}


def reg2bin(begin: int, end: int) -> int:
    """UCSC/tabix bin for the 0-based half-open interval ``[begin, end)``."""

    end -= 1
    if begin >> 14 == end >> 14:
        return ((1 << 15) - 1) // 7 + (begin >> 14)
    if begin >> 17 == end >> 17:
        return ((1 << 12) - 1) // 7 + (begin >> 17)
    if begin >> 20 == end >> 20:
        return ((1 << 9) - 1) // 7 + (begin >> 20)
    if begin >> 23 == end >> 23:
        return ((1 << 6) - 1) // 7 + (begin >> 23)
    if begin >> 26 == end >> 26:
        return ((1 << 3) - 1) // 7 + (begin >> 26)
    return 0


class TabixIndexCreator(IndexCreator):
    """Tabix-style index over (virtual) file offsets."""

    kind = "tabix"
    extension = ".tbi"

    def __init__(self, preset: str = "vcf") -> None:
        super().__init__()
        self.preset = preset
        self._chunks: dict[str, dict[int, list[list[int]]]] = {}
        self._linear: dict[str, list[int | None]] = {}
        self._pending: tuple[str, int, int] | None = None

    def _reset(self) -> None:
        self._chunks = {}
        self._linear = {}
        self._pending = None

    def _close_pending(self, end_offset: int) -> None:
        if self._pending is None:
            return
        contig, bin_number, begin_offset = self._pending
        chunks = self._chunks.setdefault(contig, {}).setdefault(bin_number, [])
        if chunks and chunks[-1][1] == begin_offset:
            chunks[-1][1] = end_offset
        else:
            chunks.append([begin_offset, end_offset])
        self._pending = None

    def _add(self, contig: str, start: int, end: int, offset: int) -> None:
        self._close_pending(offset)
        begin = start - 1
        self._pending = (contig, reg2bin(begin, end), offset)

        windows = self._linear.setdefault(contig, [])
        first_window = begin >> _TABIX_LINEAR_SHIFT
        last_window = (end - 1) >> _TABIX_LINEAR_SHIFT
        if len(windows) <= last_window:
            windows.extend([None] * (last_window + 1 - len(windows)))
        for window in range(first_window, last_window + 1):
            if windows[window] is None:
                windows[window] = offset

    def _sequences(self, final_offset: int) -> dict[str, dict[str, Any]]:
        self._close_pending(final_offset)
        sequences: dict[str, dict[str, Any]] = {}
        for contig, bins in self._chunks.items():
            windows = self._linear.get(contig, [])
            # Empty windows inherit the previous offset, as tabix does.
            linear: list[int] = []
            previous = 0
            for value in windows:
                if value is not None:
                    previous = value
                linear.append(previous)
            sequences[contig] = {
                "bins": {str(bin_number): chunks for bin_number, chunks in sorted(bins.items())},
                "linear": linear,
            }
        return sequences

    def _parameters(self) -> dict[str, Any]:
        return {"preset": self.preset, "linear_shift": _TABIX_LINEAR_SHIFT}
