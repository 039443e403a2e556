"""Common domain-specific exceptions for variantio."""

from __future__ import annotations

__all__ = [
    "VariantIOError",
    "ConfigurationError",
    "OutputIOError",
    "RecordValidationError",
]


class VariantIOError(Exception):
    """Base class for variantio domain errors."""

    pass


class ConfigurationError(VariantIOError, ValueError):
    """Invalid or incompatible writer configuration.

    Raised synchronously by builder setters or by ``build()``; never deferred
    to write time.
    """


class OutputIOError(VariantIOError, OSError):
    """Failure of the underlying filesystem or stream.

    The originating exception is always attached as ``__cause__``.
    """


class RecordValidationError(VariantIOError, ValueError):
    """A record was rejected by a serialization backend."""
