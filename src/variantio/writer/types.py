"""Output representations and the filename conventions that identify them."""

from __future__ import annotations

from enum import Enum
from typing import Final

from variantio.core.errors import ConfigurationError

__all__ = [
    "OutputType",
    "FILE_TYPES",
    "STREAM_TYPES",
    "VCF_EXTENSION",
    "BCF_EXTENSION",
    "BLOCK_COMPRESSED_EXTENSIONS",
    "VCF_EXTENSIONS",
    "MD5_EXTENSION",
    "OpenOption",
    "open_mode_for",
]


class OutputType(str, Enum):
    """Representation a writer produces."""

    UNSPECIFIED = "UNSPECIFIED"
    VCF = "VCF"
    BCF = "BCF"
    BLOCK_COMPRESSED_VCF = "BLOCK_COMPRESSED_VCF"
    VCF_STREAM = "VCF_STREAM"
    BCF_STREAM = "BCF_STREAM"

    def __str__(self) -> str:
        return self.value

    @property
    def is_file(self) -> bool:
        return self in FILE_TYPES

    @property
    def is_stream(self) -> bool:
        return self in STREAM_TYPES

    @property
    def is_binary(self) -> bool:
        return self in (OutputType.BCF, OutputType.BCF_STREAM)


FILE_TYPES: Final[frozenset[OutputType]] = frozenset(
    {OutputType.VCF, OutputType.BCF, OutputType.BLOCK_COMPRESSED_VCF}
)
STREAM_TYPES: Final[frozenset[OutputType]] = frozenset(
    {OutputType.VCF_STREAM, OutputType.BCF_STREAM}
)

VCF_EXTENSION: Final[str] = ".vcf"
BCF_EXTENSION: Final[str] = ".bcf"
# Matched case-insensitively against the whole file name.
BLOCK_COMPRESSED_EXTENSIONS: Final[tuple[str, ...]] = (".gz", ".gzip", ".bgz", ".bgzf")
VCF_EXTENSIONS: Final[tuple[str, ...]] = (VCF_EXTENSION, ".vcf.gz", ".vcf.bgz", BCF_EXTENSION)
MD5_EXTENSION: Final[str] = ".md5"


class OpenOption(str, Enum):
    """How ``build()`` opens a path target."""

    TRUNCATE_EXISTING = "TRUNCATE_EXISTING"
    CREATE_NEW = "CREATE_NEW"
    APPEND = "APPEND"


def open_mode_for(options: tuple[OpenOption, ...]) -> str:
    """Translate open options into a binary ``open()`` mode."""

    selected = frozenset(OpenOption(option) for option in options)
    if OpenOption.APPEND in selected and OpenOption.TRUNCATE_EXISTING in selected:
        raise ConfigurationError("APPEND and TRUNCATE_EXISTING cannot be combined")
    if OpenOption.CREATE_NEW in selected:
        return "xb"
    if OpenOption.APPEND in selected:
        return "ab"
    return "wb"
