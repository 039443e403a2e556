"""Registry of structured logging event identifiers."""

from __future__ import annotations

from enum import Enum, auto

__all__ = ["LogEvents"]


class LogEvents(str, Enum):
    """Strongly typed registry of writer events.

    Member names follow ``<namespace>_<action...>_<suffix>`` and map to dotted
    identifiers, e.g. ``WRITER_BUILD_START`` -> ``writer.build.start``.
    """

    @staticmethod
    def _generate_next_value_(name: str, start: int, count: int, _last_values: list[str]) -> str:
        """Produce a dotted event identifier based on enum member naming."""
        parts = name.lower().split("_")
        namespace = parts[0] if parts else "event"
        suffix = parts[-1] if len(parts) > 1 else "event"
        action_parts = parts[1:-1] if len(parts) > 2 else []
        if not action_parts:
            action_parts = ["event"]
        action = ".".join(action_parts)
        return ".".join((namespace, action, suffix))

    def __str__(self) -> str:
        return str(self.value)

    WRITER_BUILD_START = auto()
    WRITER_BUILD_FINISH = auto()
    WRITER_BUILD_ERROR = auto()
    WRITER_INDEX_UNSUPPORTED = "writer.index.unsupported_stream"
    WRITER_INDEX_WRITTEN = auto()
    WRITER_CLOSE_FINISH = auto()
    PIPELINE_LAYER_APPLIED = auto()
    PIPELINE_ASSEMBLY_ERROR = auto()
    CHECKSUM_DIGEST_WRITTEN = auto()
    ASYNC_WORKER_START = auto()
    ASYNC_WORKER_ERROR = auto()
    ASYNC_WORKER_FINISH = auto()
    RESOLVER_TYPE_RESOLVED = auto()
    CLI_RUN_START = auto()
    CLI_RUN_FINISH = auto()
    CLI_RUN_ERROR = auto()
