"""Environment-driven writer defaults.

Responsibilities:

- read ``VARIANTIO_*`` variables (and an optional ``.env``) through
  :class:`WriterDefaults`;
- cache one instance per process for builders to consult at construction.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["WriterDefaults", "get_writer_defaults", "reset_writer_defaults"]

DEFAULT_BUFFER_SIZE = 128 * 1024


class WriterDefaults(BaseSettings):
    """Typed view of the ``VARIANTIO_`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="VARIANTIO_",
        env_file=(".env",),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    buffer_size: int = Field(default=DEFAULT_BUFFER_SIZE, ge=0)
    create_md5: bool = False
    use_async_io: bool = False
    async_queue_size: int = Field(default=2000, ge=1)
    compression_level: int = Field(default=5, ge=0, le=9)

    @field_validator("create_md5", "use_async_io", mode="before")
    @classmethod
    def _coerce_bool(cls, value: Any) -> bool:
        """Coerce environment values into booleans."""
        if isinstance(value, bool):
            return value
        if value is None:
            return False
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized in {"1", "true", "yes", "on"}:
                return True
            if normalized in {"0", "false", "no", "off", ""}:
                return False
        return bool(value)


@lru_cache(maxsize=1)
def get_writer_defaults() -> WriterDefaults:
    """Return the process-wide defaults, loading them on first use."""

    return WriterDefaults()


def reset_writer_defaults() -> None:
    """Forget cached defaults so the next lookup re-reads the environment."""

    get_writer_defaults.cache_clear()
