"""Shared pytest fixtures for variantio tests."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest
import structlog

from variantio.config import reset_writer_defaults
from variantio.writer import options as writer_options

_ENV_KEYS = (
    "VARIANTIO_BUFFER_SIZE",
    "VARIANTIO_CREATE_MD5",
    "VARIANTIO_USE_ASYNC_IO",
    "VARIANTIO_ASYNC_QUEUE_SIZE",
    "VARIANTIO_COMPRESSION_LEVEL",
)


@pytest.fixture(autouse=True)
def isolated_writer_state(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Give every test pristine defaults, environment and logging setup."""

    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    reset_writer_defaults()
    saved_defaults = writer_options.default_options()
    yield
    writer_options._DEFAULT_OPTIONS.replace(saved_defaults)
    reset_writer_defaults()
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()
