"""Writer configuration: environment defaults and YAML documents."""

from __future__ import annotations

from .defaults import WriterDefaults, get_writer_defaults, reset_writer_defaults
from .loader import load_writer_config
from .models import WriterConfig

__all__ = [
    "WriterConfig",
    "WriterDefaults",
    "get_writer_defaults",
    "load_writer_config",
    "reset_writer_defaults",
]
