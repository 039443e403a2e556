"""Writer option flags and the process-wide default option set.

Flag combinations are never validated here; ``build()`` is the single place
that checks them. The default set is shared, unsynchronized process state:
builders copy it when they are constructed, so mutating it only affects
builders created afterwards. Callers that mutate defaults from several
threads must serialize those calls themselves.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import Enum

from .types import FILE_TYPES, STREAM_TYPES, OutputType

__all__ = [
    "WriterOption",
    "OptionSet",
    "default_options",
    "set_default_option",
    "unset_default_option",
    "effective_output_type",
]


class WriterOption(str, Enum):
    """Boolean switches understood by the builder and the backends."""

    INDEX_ON_THE_FLY = "INDEX_ON_THE_FLY"
    FORCE_BCF = "FORCE_BCF"
    DO_NOT_WRITE_GENOTYPES = "DO_NOT_WRITE_GENOTYPES"
    ALLOW_MISSING_FIELDS_IN_HEADER = "ALLOW_MISSING_FIELDS_IN_HEADER"
    WRITE_FULL_FORMAT_FIELD = "WRITE_FULL_FORMAT_FIELD"
    USE_ASYNC_IO = "USE_ASYNC_IO"

    def __str__(self) -> str:
        return self.value


class OptionSet:
    """Mutable set of :class:`WriterOption` flags.

    Members may be given as enum values or their names.
    """

    __slots__ = ("_flags",)

    def __init__(self, flags: Iterable[WriterOption | str] = ()) -> None:
        self._flags: set[WriterOption] = {WriterOption(flag) for flag in flags}

    def add(self, flag: WriterOption | str) -> None:
        self._flags.add(WriterOption(flag))

    def discard(self, flag: WriterOption | str) -> None:
        self._flags.discard(WriterOption(flag))

    def modify(self, flag: WriterOption | str, enabled: bool) -> None:
        if enabled:
            self.add(flag)
        else:
            self.discard(flag)

    def toggle(self, flag: WriterOption | str) -> None:
        self.modify(flag, flag not in self)

    def replace(self, flags: Iterable[WriterOption | str]) -> None:
        self._flags = {WriterOption(flag) for flag in flags}

    def clear(self) -> None:
        self._flags.clear()

    def copy(self) -> OptionSet:
        return OptionSet(self._flags)

    def without(self, flag: WriterOption | str) -> OptionSet:
        """Return a copy with ``flag`` removed, leaving ``self`` untouched."""

        trimmed = self.copy()
        trimmed.discard(flag)
        return trimmed

    def __contains__(self, flag: object) -> bool:
        try:
            return WriterOption(flag) in self._flags  # type: ignore[arg-type]
        except ValueError:
            return False

    def __iter__(self) -> Iterator[WriterOption]:
        return iter(sorted(self._flags, key=lambda flag: flag.value))

    def __len__(self) -> int:
        return len(self._flags)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, OptionSet):
            return self._flags == other._flags
        if isinstance(other, (set, frozenset)):
            return self._flags == {WriterOption(flag) for flag in other}
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        names = ", ".join(flag.value for flag in self)
        return f"OptionSet({{{names}}})"


# Initialised at import time; environment driven additions are applied by the
# builder at construction, never by mutating this set.
_DEFAULT_OPTIONS = OptionSet({WriterOption.INDEX_ON_THE_FLY})


def default_options() -> OptionSet:
    """Return a copy of the current process-wide default option set."""

    return _DEFAULT_OPTIONS.copy()


def set_default_option(flag: WriterOption | str) -> None:
    """Add ``flag`` to the defaults seen by builders constructed afterwards."""

    _DEFAULT_OPTIONS.add(flag)


def unset_default_option(flag: WriterOption | str) -> None:
    """Remove ``flag`` from the defaults seen by builders constructed afterwards."""

    _DEFAULT_OPTIONS.discard(flag)


def effective_output_type(declared: OutputType, options: OptionSet) -> OutputType:
    """Apply the ``FORCE_BCF`` override without touching the declared type."""

    if WriterOption.FORCE_BCF not in options:
        return declared
    if declared in FILE_TYPES:
        return OutputType.BCF
    if declared in STREAM_TYPES:
        return OutputType.BCF_STREAM
    return declared
