"""Command-line interface for variantio."""

from __future__ import annotations

from .app import app, create_app, run

__all__ = ["app", "create_app", "run"]
