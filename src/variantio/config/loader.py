"""Load :class:`WriterConfig` documents from YAML."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from variantio.core.errors import ConfigurationError

from .models import WriterConfig

__all__ = ["load_writer_config"]


def _load_yaml(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    return {} if data is None else data


def load_writer_config(path: str | os.PathLike[str]) -> WriterConfig:
    """Read and validate a writer configuration file.

    Relative ``output`` and ``reference_dictionary`` paths are resolved
    against the directory holding the configuration file.
    """

    config_path = Path(path)
    try:
        payload = _load_yaml(config_path)
    except OSError as exc:
        raise ConfigurationError(f"Cannot read writer config {config_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in writer config {config_path}: {exc}") from exc

    if not isinstance(payload, dict):
        raise ConfigurationError(f"Writer config {config_path} must contain a mapping")

    try:
        config = WriterConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid writer config {config_path}: {exc}") from exc

    updates: dict[str, Path] = {}
    for field_name in ("output", "reference_dictionary"):
        value = getattr(config, field_name)
        if value is not None and not value.is_absolute():
            updates[field_name] = config_path.parent / value
    return config.model_copy(update=updates) if updates else config
