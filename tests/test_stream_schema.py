from __future__ import annotations

import numpy as np
import pytest

from streamviz.stream_schema import ColumnDescriptor, ColumnType, StreamSource, coerce_columns


def test_column_type_parses_members_and_aliases() -> None:
    assert ColumnType.parse("int32") is ColumnType.INT32
    assert ColumnType.parse("Float64") is ColumnType.FLOAT64
    assert ColumnType.parse("number") is ColumnType.FLOAT64
    assert ColumnType.parse("DateTime64") is ColumnType.DATETIME
    assert ColumnType.parse(ColumnType.STRING) is ColumnType.STRING
    with pytest.raises(ValueError, match="Unknown column type"):
        ColumnType.parse("decimal256")
    with pytest.raises(ValueError):
        ColumnType.parse(3)


def test_column_type_classification_and_dtypes() -> None:
    assert ColumnType.UINT16.is_numeric
    assert not ColumnType.STRING.is_numeric
    assert ColumnType.DATETIME.is_temporal
    assert ColumnType.STRING.is_categorical
    assert ColumnType.INT8.numpy_dtype == np.dtype(np.int8)
    assert ColumnType.OBJECT.numpy_dtype == np.dtype(object)


def test_column_descriptor_parses_type_and_rejects_blank_names() -> None:
    col = ColumnDescriptor("cpu", "float32", nullable=True)
    assert col.semantic_type is ColumnType.FLOAT32
    with pytest.raises(ValueError):
        ColumnDescriptor("", "string")


def test_coerce_columns_from_wire_mappings() -> None:
    cols = coerce_columns([{"name": "ts", "semanticType": "datetime"}, {"name": "v", "type": "int64"}])
    assert cols == (ColumnDescriptor("ts", "datetime"), ColumnDescriptor("v", "int64"))
    with pytest.raises(ValueError, match="does not declare a type"):
        coerce_columns([{"name": "x"}])
    with pytest.raises(TypeError):
        coerce_columns(["ts"])


def test_stream_source_freezes_columns_and_rows() -> None:
    source = StreamSource(columns=[{"name": "a", "type": "string"}], rows=[["x"], ["y"]], is_live=True)
    assert source.column_names() == ("a",)
    assert source.rows == (["x"], ["y"])
    assert source.is_live
