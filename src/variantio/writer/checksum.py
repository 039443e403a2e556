"""MD5 side-channel that records a digest of every byte written."""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import TextIO

from variantio.core.errors import OutputIOError
from variantio.core.logging import LogEvents, UnifiedLogger

from .sinks import ByteSink, SinkLayer
from .types import MD5_EXTENSION

__all__ = ["Md5CalculatingSink", "md5_sidecar_path"]


def md5_sidecar_path(path: Path) -> Path:
    """Return ``<path>.md5``."""

    return path.with_name(path.name + MD5_EXTENSION)


class Md5CalculatingSink(SinkLayer):
    """Hash bytes on their way to ``sink``; write the hex digest on close.

    The digest file is opened at construction so an unwritable location fails
    while the pipeline is being assembled rather than after all records have
    been written.
    """

    def __init__(self, sink: ByteSink, digest_path: Path) -> None:
        super().__init__(sink)
        self.digest_path = digest_path
        self._digest = hashlib.md5()
        try:
            self._digest_handle: TextIO | None = digest_path.open("w", encoding="ascii")
        except OSError as exc:
            raise OutputIOError(f"Cannot create checksum file {digest_path}: {exc}") from exc

    def write(self, data: bytes) -> int:
        self._check_open()
        self._digest.update(data)
        self._sink.write(data)
        return len(data)

    def hexdigest(self) -> str:
        return self._digest.hexdigest()

    def discard(self) -> None:
        """Close and remove the digest file without writing a digest."""

        if self._digest_handle is None:
            return
        self._digest_handle.close()
        self._digest_handle = None
        self.digest_path.unlink(missing_ok=True)

    def close(self) -> None:
        if self._closed:
            return
        try:
            super().close()
        except BaseException:
            self.discard()
            raise
        handle = self._digest_handle
        if handle is None:
            return
        self._digest_handle = None
        digest = self.hexdigest()
        try:
            with handle:
                handle.write(digest)
        except OSError as exc:
            raise OutputIOError(f"Cannot write checksum file {self.digest_path}: {exc}") from exc
        UnifiedLogger.get(__name__, component="checksum").debug(
            LogEvents.CHECKSUM_DIGEST_WRITTEN,
            path=str(self.digest_path),
            md5=digest,
        )
