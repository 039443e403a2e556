"""Declarative writer configuration."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from variantio.writer.options import WriterOption
from variantio.writer.types import FILE_TYPES, OutputType

__all__ = ["WriterConfig"]


class WriterConfig(BaseModel):
    """Builder settings as they appear in a YAML configuration file.

    ``options`` replaces the builder's default option set when given;
    ``None`` keeps the defaults. ``output_type`` may only name a file type.
    """

    model_config = ConfigDict(extra="forbid")

    output: Path | None = Field(default=None, description="Output path.")
    output_type: OutputType | None = Field(
        default=None, description="Overrides the type inferred from the output name."
    )
    options: list[WriterOption] | None = Field(default=None)
    buffer_size: int | None = Field(default=None, ge=0)
    create_md5: bool | None = None
    reference_dictionary: Path | None = Field(
        default=None, description="Two-column TSV of contig names and lengths."
    )

    @field_validator("output_type")
    @classmethod
    def _require_file_type(cls, value: OutputType | None) -> OutputType | None:
        if value is not None and value not in FILE_TYPES:
            allowed = ", ".join(sorted(item.value for item in FILE_TYPES))
            msg = f"output_type must be one of: {allowed}"
            raise ValueError(msg)
        return value
