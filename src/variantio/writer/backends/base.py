"""Common behaviour of the text and binary variant writers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from variantio.core.errors import OutputIOError, RecordValidationError
from variantio.core.logging import LogEvents, UnifiedLogger
from variantio.model.dictionary import SequenceDictionary
from variantio.model.header import VariantHeader
from variantio.model.record import VariantRecord

from ..index import IndexCreator
from ..sinks import ByteSink

__all__ = ["VariantContextWriter", "IndexingVariantContextWriter"]


class VariantContextWriter(ABC):
    """Writer contract shared by every backend and the async forwarder."""

    @abstractmethod
    def write_header(self, header: VariantHeader) -> None:
        """Serialize ``header``; must precede the first :meth:`add`."""

    @abstractmethod
    def set_header(self, header: VariantHeader) -> None:
        """Adopt ``header`` without writing it (already present in the output)."""

    @abstractmethod
    def add(self, record: VariantRecord) -> None:
        """Serialize one record."""

    @abstractmethod
    def check_error(self) -> bool:
        """Return ``True`` if a previous write to the sink failed."""

    @abstractmethod
    def close(self) -> None:
        """Flush and close every layer; write companion index files."""

    def add_all(self, records: Iterable[VariantRecord]) -> int:
        count = 0
        for record in records:
            self.add(record)
            count += 1
        return count

    def __enter__(self) -> VariantContextWriter:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class IndexingVariantContextWriter(VariantContextWriter):
    """Backend skeleton: header bookkeeping, validation and on-the-fly indexing.

    Subclasses only encode headers and records into bytes.
    """

    def __init__(
        self,
        sink: ByteSink,
        *,
        output_path: Path | None = None,
        reference_dictionary: SequenceDictionary | None = None,
        index_creator: IndexCreator | None = None,
        enable_on_the_fly_indexing: bool = False,
        do_not_write_genotypes: bool = False,
        allow_missing_fields_in_header: bool = False,
    ) -> None:
        self._sink = sink
        self.output_path = output_path
        self.reference_dictionary = reference_dictionary
        self.do_not_write_genotypes = do_not_write_genotypes
        self.allow_missing_fields_in_header = allow_missing_fields_in_header
        self._header: VariantHeader | None = None
        self._closed = False
        self._error: BaseException | None = None
        self._log = UnifiedLogger.get(
            __name__,
            component=type(self).__name__,
            path=None if output_path is None else str(output_path),
        )

        self._index_creator: IndexCreator | None = None
        if enable_on_the_fly_indexing:
            if output_path is None:
                raise ValueError("On-the-fly indexing requires an output path")
            if index_creator is None:
                raise ValueError("On-the-fly indexing requires an index creator")
            index_creator.initialize(output_path, reference_dictionary)
            self._index_creator = index_creator

    @property
    def header(self) -> VariantHeader | None:
        return self._header

    @property
    def indexing(self) -> bool:
        return self._index_creator is not None

    @property
    def sink(self) -> ByteSink:
        return self._sink

    def write_header(self, header: VariantHeader) -> None:
        self._check_open()
        self._header = header
        self._write_bytes(self._encode_header(header))

    def set_header(self, header: VariantHeader) -> None:
        self._check_open()
        self._header = header

    def add(self, record: VariantRecord) -> None:
        self._check_open()
        header = self._header
        if header is None:
            raise RecordValidationError("The header must be written before adding records")
        self._validate(record, header)
        payload = self._encode_record(record, header)
        if self._index_creator is not None:
            self._index_creator.add_feature(
                record.contig, record.position, record.end, self._position()
            )
        self._write_bytes(payload)

    def check_error(self) -> bool:
        return self._error is not None

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        creator = self._index_creator
        output_path = self.output_path
        final_offset = 0
        try:
            try:
                self._sink.flush()
                if creator is not None:
                    final_offset = self._position()
            finally:
                self._sink.close()
        except OSError as exc:
            self._error = exc
            raise OutputIOError(f"Failed to close variant output: {exc}") from exc

        if creator is not None and output_path is not None:
            index_path = creator.index_path(output_path)
            try:
                creator.finalize(final_offset).write(index_path)
            except OSError as exc:
                raise OutputIOError(f"Failed to write index {index_path}: {exc}") from exc
            self._log.debug(LogEvents.WRITER_INDEX_WRITTEN, index=str(index_path))
        self._log.debug(LogEvents.WRITER_CLOSE_FINISH)

    def _validate(self, record: VariantRecord, header: VariantHeader) -> None:
        dictionary = self._contig_source(header)
        if dictionary is not None and record.contig not in dictionary:
            raise RecordValidationError(
                f"{record.contig}:{record.position}: contig is not declared in the "
                "sequence dictionary"
            )
        if not self.do_not_write_genotypes:
            samples = set(header.samples)
            for genotype in record.genotypes:
                if genotype.sample not in samples:
                    raise RecordValidationError(
                        f"{record.contig}:{record.position}: sample {genotype.sample} is not "
                        "declared in the header"
                    )
        if self.allow_missing_fields_in_header:
            return
        for key in record.info:
            if not header.has_info(key):
                raise RecordValidationError(
                    f"{record.contig}:{record.position}: INFO field {key} is not declared "
                    "in the header"
                )
        if self.do_not_write_genotypes:
            return
        for genotype in record.genotypes:
            for key in genotype.fields:
                if not header.has_format(key):
                    raise RecordValidationError(
                        f"{record.contig}:{record.position}: FORMAT field {key} is not "
                        "declared in the header"
                    )

    def _contig_source(self, header: VariantHeader) -> SequenceDictionary | None:
        if header.contigs is not None and len(header.contigs):
            return header.contigs
        return self.reference_dictionary

    def _position(self) -> int:
        try:
            return int(self._sink.tell())  # type: ignore[attr-defined]
        except (AttributeError, OSError) as exc:
            raise OutputIOError(f"Output does not report a position for indexing: {exc}") from exc

    def _write_bytes(self, payload: bytes) -> None:
        try:
            self._sink.write(payload)
        except OSError as exc:
            self._error = exc
            raise OutputIOError(f"Failed to write variant output: {exc}") from exc

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError(f"{type(self).__name__} is closed")

    @abstractmethod
    def _encode_header(self, header: VariantHeader) -> bytes:
        raise NotImplementedError

    @abstractmethod
    def _encode_record(self, record: VariantRecord, header: VariantHeader) -> bytes:
        raise NotImplementedError

    def __repr__(self) -> str:
        target: Any = self.output_path if self.output_path is not None else "<stream>"
        return f"{type(self).__name__}({target})"
