"""BGZF block compression layer.

Each block is a complete gzip member whose ``BC`` extra subfield stores the
compressed block size, which makes the stream seekable through virtual file
offsets (``compressed_block_offset << 16 | offset_within_block``). An empty
end-of-file block terminates the stream.
"""

from __future__ import annotations

import struct
import zlib
from pathlib import Path
from typing import Final

from .sinks import ByteSink, SinkLayer

__all__ = ["BgzfSink", "BGZF_EOF", "MAX_BLOCK_INPUT", "make_virtual_offset"]

# Uncompressed payload per block; leaves room for incompressible data to fit
# in the 64 KiB block limit.
MAX_BLOCK_INPUT: Final[int] = 0xFF00
_MAX_BLOCK_SIZE: Final[int] = 0x10000
_HEADER: Final[bytes] = b"\x1f\x8b\x08\x04\x00\x00\x00\x00\x00\xff\x06\x00BC\x02\x00"
_HEADER_SIZE: Final[int] = len(_HEADER) + 2
_FOOTER_SIZE: Final[int] = 8

BGZF_EOF: Final[bytes] = bytes.fromhex("1f8b08040000000000ff0600424302001b0003000000000000000000")


def make_virtual_offset(block_offset: int, within_block: int) -> int:
    if not 0 <= within_block < _MAX_BLOCK_SIZE:
        raise ValueError(f"offset within block out of range: {within_block}")
    return (block_offset << 16) | within_block


def _compress_block(data: bytes, level: int) -> bytes:
    compressor = zlib.compressobj(level, zlib.DEFLATED, -15)
    deflated = compressor.compress(data) + compressor.flush()
    block_size = _HEADER_SIZE + len(deflated) + _FOOTER_SIZE
    if block_size > _MAX_BLOCK_SIZE:
        raise OverflowError(block_size)
    return b"".join(
        (
            _HEADER,
            struct.pack("<H", block_size - 1),
            deflated,
            struct.pack("<II", zlib.crc32(data) & 0xFFFFFFFF, len(data)),
        )
    )


class BgzfSink(SinkLayer):
    """Compress bytes into BGZF blocks before passing them to ``sink``.

    ``path`` is informational only (used in error messages).
    """

    def __init__(self, sink: ByteSink, path: Path | None = None, compresslevel: int = 5) -> None:
        if not 0 <= compresslevel <= 9:
            raise ValueError(f"compresslevel must be between 0 and 9, got {compresslevel}")
        super().__init__(sink)
        self.path = path
        self.compresslevel = compresslevel
        self._buffer = bytearray()
        self._block_offset = 0

    def write(self, data: bytes) -> int:
        self._check_open()
        self._buffer.extend(data)
        while len(self._buffer) >= MAX_BLOCK_INPUT:
            chunk = bytes(self._buffer[:MAX_BLOCK_INPUT])
            del self._buffer[:MAX_BLOCK_INPUT]
            self._emit(chunk)
        return len(data)

    def tell(self) -> int:
        """Virtual offset of the next byte to be written."""

        return make_virtual_offset(self._block_offset, len(self._buffer))

    def flush(self) -> None:
        self._check_open()
        if self._buffer:
            chunk = bytes(self._buffer)
            self._buffer.clear()
            self._emit(chunk)
        self._sink.flush()

    def close(self) -> None:
        if self._closed:
            return
        try:
            self.flush()
            self._sink.write(BGZF_EOF)
            self._block_offset += len(BGZF_EOF)
        finally:
            self._closed = True
            self._sink.close()

    def _emit(self, data: bytes) -> None:
        try:
            block = _compress_block(data, self.compresslevel)
        except OverflowError:
            half = len(data) // 2
            self._emit(data[:half])
            self._emit(data[half:])
            return
        self._sink.write(block)
        self._block_offset += len(block)
