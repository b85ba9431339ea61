"""Exception taxonomy for ingestion and compilation failures.

Row-scoped errors (``SchemaMismatch``) are recoverable: the streaming
controller logs them and skips the offending row. Configuration-scoped errors
(``MissingFieldBinding``, ``UnknownChartFamily``) surface to the caller before
any data is touched.
"""

from __future__ import annotations

from typing import Any


class StreamVizError(Exception):
    """Base class for all library errors."""


class SchemaMismatch(StreamVizError, ValueError):
    """A positional row does not line up with the declared column schema.

    Parameters
    ----------
    expected : int
        Number of declared columns.
    actual : int
        Length of the offending positional row.
    row : Any, optional
        The rejected row, kept for diagnostics.
    """

    def __init__(self, expected: int, actual: int, row: Any = None) -> None:
        self.expected = expected
        self.actual = actual
        self.row = row
        super().__init__(
            f"Positional row has {actual} values but the schema declares {expected} columns."
        )


class InvalidRowShape(SchemaMismatch, TypeError):
    """A row is neither a positional sequence nor a keyed mapping.

    Row-scoped like its parent, so batch ingestion logs and skips it; it is
    also a ``TypeError`` for callers of ``normalize_row``.
    """

    def __init__(self, row: Any) -> None:
        self.expected = None
        self.actual = None
        self.row = row
        super(SchemaMismatch, self).__init__(
            f"Rows must be sequences or mappings, got {type(row).__name__}"
        )


class ConfigurationError(StreamVizError, ValueError):
    """Base class for chart-configuration mistakes detected at compile time."""


class MissingFieldBinding(ConfigurationError):
    """A required field role is absent from a chart configuration."""

    def __init__(self, family: str, role: str) -> None:
        self.family = family
        self.role = role
        super().__init__(
            f"{family!r} chart requires a field bound to {role!r}; "
            f"set {role}=... in the configuration."
        )


class UnknownChartFamily(ConfigurationError):
    """The chart-family tag is not one of the supported families."""

    def __init__(self, family: Any, supported: tuple[str, ...] = ()) -> None:
        self.family = family
        self.supported = supported
        message = f"Unknown chart family {family!r}."
        if supported:
            message += f" Expected one of: {', '.join(supported)}."
        super().__init__(message)


__all__ = [
    "ConfigurationError",
    "InvalidRowShape",
    "MissingFieldBinding",
    "SchemaMismatch",
    "StreamVizError",
    "UnknownChartFamily",
]
