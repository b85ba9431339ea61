"""Row normalization helpers for the streaming pipeline.

Purpose
-------
This module isolates the positional-versus-keyed row handling used by the
streaming controller. It converts every accepted row form into one canonical
keyed ``dict`` so nothing deeper in the pipeline branches on row shape.

Architecture
------------
The normalizer is stateless and side-effect free. ``normalize_row`` is the
strict single-row contract and raises :class:`~streamviz.errors.SchemaMismatch`;
``normalize_rows`` applies the batch policy (log and skip rejected rows) used
by ingestion entry points.

Examples
--------
>>> from streamviz.stream_schema import ColumnDescriptor
>>> from streamviz.stream_normalization import normalize_row
>>> cols = (ColumnDescriptor("ts", "datetime"), ColumnDescriptor("v", "float64"))
>>> normalize_row(cols, [1, 2.5])
{'ts': 1, 'v': 2.5}
>>> normalize_row(cols, {"ts": 1, "v": 2.5, "extra": True})
{'ts': 1, 'v': 2.5, 'extra': True}

Discoverability
---------------
Buffer lifecycle lives in ``stream_buffer.py``; ingestion entry points live in
``stream_controller.py``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

from .errors import InvalidRowShape, SchemaMismatch
from .stream_schema import CanonicalRow, ColumnDescriptor, Row

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


def is_positional_row(row: object) -> bool:
    """Return ``True`` when ``row`` is a positional (sequence) row."""
    return isinstance(row, Sequence) and not isinstance(row, (str, bytes, bytearray))


def normalize_row(columns: Sequence[ColumnDescriptor], row: Row) -> CanonicalRow:
    """Return ``row`` as a canonical keyed row.

    Parameters
    ----------
    columns : Sequence[ColumnDescriptor]
        Ordered column schema.
    row : Sequence or Mapping
        Positional values aligned with ``columns`` or a field mapping.

    Returns
    -------
    dict
        A fresh ``field -> value`` mapping. Keyed input is copied; fields
        outside the schema are passed through unchanged.

    Raises
    ------
    SchemaMismatch
        If a positional row length differs from the column count.
    InvalidRowShape
        If ``row`` is neither a sequence nor a mapping (also a ``TypeError``).

    Notes
    -----
    ``nullable`` is advisory: a keyed row missing a non-nullable column is
    still accepted and the gap is logged at DEBUG.
    """
    if isinstance(row, Mapping):
        missing = [
            col.name for col in columns if not col.nullable and row.get(col.name) is None
        ]
        if missing and logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Keyed row lacks non-nullable columns {missing}")
        return dict(row)
    if is_positional_row(row):
        if len(row) != len(columns):
            raise SchemaMismatch(expected=len(columns), actual=len(row), row=row)
        return {col.name: value for col, value in zip(columns, row)}
    raise InvalidRowShape(row)


def normalize_rows(
    columns: Sequence[ColumnDescriptor],
    rows: Iterable[Row],
) -> tuple[list[CanonicalRow], int]:
    """Normalize a batch, skipping rows that do not fit the schema.

    Returns
    -------
    tuple
        ``(accepted_rows, rejected_count)``. Accepted rows keep the relative
        order of the input batch.
    """
    accepted: list[CanonicalRow] = []
    rejected = 0
    for index, row in enumerate(rows):
        try:
            accepted.append(normalize_row(columns, row))
        except SchemaMismatch as exc:
            rejected += 1
            logger.warning(f"Skipping row {index}: {exc}")
    return accepted, rejected


__all__ = ["is_positional_row", "normalize_row", "normalize_rows"]
