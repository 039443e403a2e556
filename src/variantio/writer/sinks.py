"""Minimal write/flush/close capability shared by every pipeline layer."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

__all__ = ["ByteSink", "SinkLayer", "UnbufferedFileSink"]


@runtime_checkable
class ByteSink(Protocol):
    """Anything bytes can be pushed into."""

    def write(self, data: bytes, /) -> int | None: ...

    def flush(self) -> None: ...

    def close(self) -> None: ...


class SinkLayer:
    """Base for a layer that owns the sink it wraps.

    ``close()`` flushes this layer, then closes the wrapped sink; calling it
    twice is a no-op.
    """

    def __init__(self, sink: ByteSink) -> None:
        self._sink = sink
        self._closed = False

    @property
    def inner(self) -> ByteSink:
        return self._sink

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, data: bytes) -> int:
        self._check_open()
        self._sink.write(data)
        return len(data)

    def flush(self) -> None:
        self._check_open()
        self._sink.flush()

    def tell(self) -> int:
        return self._sink.tell()  # type: ignore[attr-defined]

    def close(self) -> None:
        if self._closed:
            return
        try:
            self.flush()
        finally:
            self._closed = True
            self._sink.close()

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError(f"I/O operation on closed {type(self).__name__}")

    def __enter__(self) -> SinkLayer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class UnbufferedFileSink(SinkLayer):
    """Raw file handle that retries short writes until every byte is out."""

    def write(self, data: bytes) -> int:
        self._check_open()
        view = memoryview(data)
        while view:
            written = self._sink.write(view)
            if written is None:
                continue
            view = view[written:]
        return len(data)
