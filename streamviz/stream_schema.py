"""Column schema primitives for streaming data sources.

Purpose
-------
This module defines the closed set of column semantic types, the immutable
column descriptor, and the ``StreamSource`` snapshot handed to the streaming
controller. Semantic types double as NumPy dtypes where a direct counterpart
exists, so numeric/temporal classification stays in one place.

Examples
--------
>>> from streamviz.stream_schema import ColumnDescriptor, ColumnType
>>> col = ColumnDescriptor("ts", "DateTime64")
>>> col.semantic_type is ColumnType.DATETIME
True
>>> ColumnType.INT32.numpy_dtype
dtype('int32')
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeAlias

import numpy as np

FieldName: TypeAlias = str
PositionalRow: TypeAlias = Sequence[Any]
KeyedRow: TypeAlias = Mapping[str, Any]
Row: TypeAlias = PositionalRow | KeyedRow
CanonicalRow: TypeAlias = dict[str, Any]


class ColumnType(str, Enum):
    """Closed enumeration of column semantic types."""

    STRING = "string"
    BOOLEAN = "boolean"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    DATETIME = "datetime"
    ARRAY = "array"
    OBJECT = "object"

    @classmethod
    def parse(cls, value: ColumnType | str) -> ColumnType:
        """Return the member named by ``value``, accepting common aliases.

        Raises
        ------
        ValueError
            If ``value`` names no known semantic type.
        """
        if isinstance(value, ColumnType):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Column type must be a string, got {type(value).__name__}")
        key = value.strip().lower()
        if key in _BY_VALUE:
            return _BY_VALUE[key]
        if key in _ALIASES:
            return _ALIASES[key]
        raise ValueError(
            f"Unknown column type {value!r}. Expected one of: "
            f"{', '.join(member.value for member in cls)}."
        )

    @property
    def numpy_dtype(self) -> np.dtype:
        """NumPy dtype used to hold values of this type."""
        return _NUMPY_DTYPES[self]

    @property
    def is_numeric(self) -> bool:
        return self in _NUMERIC

    @property
    def is_temporal(self) -> bool:
        return self is ColumnType.DATETIME

    @property
    def is_categorical(self) -> bool:
        return self in (ColumnType.STRING, ColumnType.BOOLEAN)


_BY_VALUE: dict[str, ColumnType] = {member.value: member for member in ColumnType}

_ALIASES: dict[str, ColumnType] = {
    "number": ColumnType.FLOAT64,
    "float": ColumnType.FLOAT64,
    "double": ColumnType.FLOAT64,
    "bool": ColumnType.BOOLEAN,
    "datetime64": ColumnType.DATETIME,
    "date": ColumnType.DATETIME,
    "date32": ColumnType.DATETIME,
    "timestamp": ColumnType.DATETIME,
    "text": ColumnType.STRING,
    "varchar": ColumnType.STRING,
    "char": ColumnType.STRING,
    "fixedstring": ColumnType.STRING,
}

_NUMERIC = frozenset(
    {
        ColumnType.INT8,
        ColumnType.INT16,
        ColumnType.INT32,
        ColumnType.INT64,
        ColumnType.UINT8,
        ColumnType.UINT16,
        ColumnType.UINT32,
        ColumnType.UINT64,
        ColumnType.FLOAT32,
        ColumnType.FLOAT64,
    }
)

_NUMPY_DTYPES: dict[ColumnType, np.dtype] = {
    ColumnType.STRING: np.dtype(object),
    ColumnType.BOOLEAN: np.dtype(np.bool_),
    ColumnType.INT8: np.dtype(np.int8),
    ColumnType.INT16: np.dtype(np.int16),
    ColumnType.INT32: np.dtype(np.int32),
    ColumnType.INT64: np.dtype(np.int64),
    ColumnType.UINT8: np.dtype(np.uint8),
    ColumnType.UINT16: np.dtype(np.uint16),
    ColumnType.UINT32: np.dtype(np.uint32),
    ColumnType.UINT64: np.dtype(np.uint64),
    ColumnType.FLOAT32: np.dtype(np.float32),
    ColumnType.FLOAT64: np.dtype(np.float64),
    ColumnType.DATETIME: np.dtype("datetime64[ms]"),
    ColumnType.ARRAY: np.dtype(object),
    ColumnType.OBJECT: np.dtype(object),
}


@dataclass(frozen=True)
class ColumnDescriptor:
    """One declared column of a stream.

    Parameters
    ----------
    name : str
        Field name used in canonical keyed rows.
    semantic_type : ColumnType or str
        Semantic type; strings are parsed with :meth:`ColumnType.parse`.
    nullable : bool
        Whether the field may be absent or ``None`` in keyed rows.
    """

    name: FieldName
    semantic_type: ColumnType
    nullable: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("Column name must be a non-empty string")
        object.__setattr__(self, "semantic_type", ColumnType.parse(self.semantic_type))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ColumnDescriptor:
        """Build a descriptor from ``{name, type|semanticType, nullable}``."""
        semantic = data.get("semanticType", data.get("type"))
        if semantic is None:
            raise ValueError(f"Column {data.get('name')!r} does not declare a type")
        return cls(
            name=data["name"],
            semantic_type=semantic,
            nullable=bool(data.get("nullable", False)),
        )


def coerce_columns(
    columns: Sequence[ColumnDescriptor | Mapping[str, Any]],
) -> tuple[ColumnDescriptor, ...]:
    """Return ``columns`` as a tuple of :class:`ColumnDescriptor`."""
    out: list[ColumnDescriptor] = []
    for col in columns:
        if isinstance(col, ColumnDescriptor):
            out.append(col)
        elif isinstance(col, Mapping):
            out.append(ColumnDescriptor.from_mapping(col))
        else:
            raise TypeError(
                f"Columns must be ColumnDescriptor or mapping, got {type(col).__name__}"
            )
    return tuple(out)


@dataclass(frozen=True)
class StreamSource:
    """Caller-owned snapshot of a stream handed over in one ingestion call.

    Parameters
    ----------
    columns : tuple[ColumnDescriptor, ...]
        Ordered column schema.
    rows : tuple[Row, ...]
        Rows in either positional or keyed form.
    is_live : bool
        Whether more rows are expected to follow.
    """

    columns: tuple[ColumnDescriptor, ...]
    rows: tuple[Row, ...] = field(default_factory=tuple)
    is_live: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "columns", coerce_columns(self.columns))
        object.__setattr__(self, "rows", tuple(self.rows))

    def column_names(self) -> tuple[FieldName, ...]:
        return tuple(col.name for col in self.columns)


__all__ = [
    "CanonicalRow",
    "ColumnDescriptor",
    "ColumnType",
    "FieldName",
    "KeyedRow",
    "PositionalRow",
    "Row",
    "StreamSource",
    "coerce_columns",
]
