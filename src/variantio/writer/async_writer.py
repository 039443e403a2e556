"""Forward records to a backend writer on a background thread."""

from __future__ import annotations

import queue
import threading
from typing import Final

from variantio.core.errors import OutputIOError
from variantio.core.logging import LogEvents, UnifiedLogger
from variantio.model.header import VariantHeader
from variantio.model.record import VariantRecord

from .backends.base import VariantContextWriter

__all__ = ["AsyncVariantContextWriter", "DEFAULT_QUEUE_SIZE"]

DEFAULT_QUEUE_SIZE: Final[int] = 2000
_SENTINEL: Final[object] = object()


class AsyncVariantContextWriter(VariantContextWriter):
    """Queue records for a single worker thread that feeds ``delegate``.

    The queue is bounded, so ``add`` blocks while it is full. The header is
    written synchronously. A fault in the worker is recorded and raised as
    :class:`OutputIOError` from the next ``add`` and from ``close``.
    """

    def __init__(self, delegate: VariantContextWriter, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        if queue_size < 1:
            raise ValueError(f"queue_size must be positive, got {queue_size}")
        self.delegate = delegate
        self._queue: queue.Queue[object] = queue.Queue(maxsize=queue_size)
        self._fault: BaseException | None = None
        self._closed = False
        self._log = UnifiedLogger.get(__name__, component="async_writer")
        self._thread = threading.Thread(
            target=self._drain,
            name=f"variantio-writer-{id(self):x}",
            daemon=True,
        )
        self._thread.start()
        self._log.debug(LogEvents.ASYNC_WORKER_START, queue_size=queue_size)

    def write_header(self, header: VariantHeader) -> None:
        self._check_usable()
        self.delegate.write_header(header)

    def set_header(self, header: VariantHeader) -> None:
        self._check_usable()
        self.delegate.set_header(header)

    def add(self, record: VariantRecord) -> None:
        self._check_usable()
        self._queue.put(record)

    def check_error(self) -> bool:
        return self._fault is not None or self.delegate.check_error()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put(_SENTINEL)
        self._thread.join()
        try:
            self.delegate.close()
        finally:
            self._log.debug(LogEvents.ASYNC_WORKER_FINISH, failed=self._fault is not None)
        self._raise_fault()

    def _drain(self) -> None:
        while True:
            item = self._queue.get()
            if item is _SENTINEL:
                return
            if self._fault is not None:
                # Keep draining so a blocked producer is released.
                continue
            try:
                self.delegate.add(item)  # type: ignore[arg-type]
            except Exception as exc:
                self._log.error(LogEvents.ASYNC_WORKER_ERROR, error=str(exc), exc_info=True)
                self._fault = exc

    def _check_usable(self) -> None:
        if self._closed:
            raise ValueError("AsyncVariantContextWriter is closed")
        self._raise_fault()

    def _raise_fault(self) -> None:
        fault = self._fault
        if fault is not None:
            raise OutputIOError(f"Asynchronous variant writer failed: {fault}") from fault
