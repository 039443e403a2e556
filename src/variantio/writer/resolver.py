"""Infer the output representation from a path.

The logical file name is checked first; when it carries no recognized
extension, symbolic links are resolved and the canonical path is checked
again. A path that exists but is neither a regular file nor a directory
(named pipe, character device) is treated as a text stream.
"""

from __future__ import annotations

import errno
import os
import stat
from pathlib import Path
from typing import Final

from variantio.core.errors import ConfigurationError, OutputIOError

from .types import (
    BCF_EXTENSION,
    BLOCK_COMPRESSED_EXTENSIONS,
    VCF_EXTENSION,
    OutputType,
)

__all__ = [
    "MAX_LINK_DEPTH",
    "determine_output_type",
    "has_block_compressed_extension",
    "is_bcf",
    "is_vcf",
]

MAX_LINK_DEPTH: Final[int] = 40


def is_vcf(path: Path) -> bool:
    return path.name.endswith(VCF_EXTENSION)


def is_bcf(path: Path) -> bool:
    return path.name.endswith(BCF_EXTENSION)


def has_block_compressed_extension(path: Path) -> bool:
    name = path.name.lower()
    return any(name.endswith(extension) for extension in BLOCK_COMPRESSED_EXTENSIONS)


def _type_from_name(path: Path) -> OutputType | None:
    if is_vcf(path):
        return OutputType.VCF
    if has_block_compressed_extension(path):
        return OutputType.BLOCK_COMPRESSED_VCF
    if is_bcf(path):
        return OutputType.BCF
    return None


def _canonicalize(path: Path) -> Path:
    """Return the real path, or ``path`` itself when its target is missing."""

    try:
        return path.resolve(strict=True)
    except (FileNotFoundError, NotADirectoryError):
        return path
    except RuntimeError as exc:
        # Python < 3.13 reports symlink loops as RuntimeError.
        raise ConfigurationError(f"Symbolic link loop while resolving {path}") from exc
    except OSError as exc:
        if exc.errno == errno.ELOOP:
            raise ConfigurationError(f"Symbolic link loop while resolving {path}") from exc
        raise OutputIOError(f"Cannot resolve output path {path}: {exc}") from exc


def _is_special_file(path: Path) -> bool:
    try:
        mode = os.stat(path).st_mode
    except (FileNotFoundError, NotADirectoryError):
        return False
    except OSError as exc:
        raise OutputIOError(f"Cannot inspect output path {path}: {exc}") from exc
    return not stat.S_ISREG(mode) and not stat.S_ISDIR(mode)


def determine_output_type(path: str | os.PathLike[str], *, _depth: int = 0) -> OutputType:
    """Return the :class:`OutputType` implied by ``path``; never ``None``.

    Raises :class:`ConfigurationError` when link resolution exceeds
    :data:`MAX_LINK_DEPTH` hops or the OS reports a symlink loop.
    """

    candidate = Path(path)
    by_name = _type_from_name(candidate)
    if by_name is not None:
        return by_name

    if _depth >= MAX_LINK_DEPTH:
        raise ConfigurationError(
            f"Too many levels of symbolic links while resolving {candidate} "
            f"(limit {MAX_LINK_DEPTH})"
        )

    canonical = _canonicalize(candidate)
    if canonical != candidate:
        return determine_output_type(canonical, _depth=_depth + 1)

    if _is_special_file(candidate):
        return OutputType.VCF_STREAM
    return OutputType.UNSPECIFIED
