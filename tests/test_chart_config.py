from __future__ import annotations

from datetime import timedelta

import pytest

from streamviz.chart_config import (
    CHART_CONFIG_OPTIONS,
    CHART_FAMILIES,
    FAMILY_CONFIGS,
    AxisRange,
    BarColumnConfig,
    ColumnStyle,
    GeoConfig,
    OHLCConfig,
    StreamingPolicy,
    TableConfig,
    TimeSeriesConfig,
    Unit,
    config_from_mapping,
)
from streamviz.errors import UnknownChartFamily
from streamviz.temporal import TemporalBinding


def test_every_family_has_a_config_class() -> None:
    assert set(FAMILY_CONFIGS) == set(CHART_FAMILIES)
    assert FAMILY_CONFIGS["area"] is TimeSeriesConfig
    assert FAMILY_CONFIGS["bar"] is BarColumnConfig
    assert FAMILY_CONFIGS["ohlc"] is OHLCConfig


def test_config_from_mapping_reads_camel_case_and_ignores_unknown_keys() -> None:
    cfg = config_from_mapping(
        {
            "chartType": "line",
            "xAxis": "ts",
            "yAxis": "value",
            "lineStyle": "curve",
            "yRange": {"min": 0, "max": 100},
            "unit": {"position": "right", "value": "ms"},
            "temporal": {"mode": "axis", "field": "ts", "range": 5},
            "someFutureOption": 1,
        }
    )
    assert isinstance(cfg, TimeSeriesConfig)
    assert cfg.x_axis == "ts"
    assert cfg.line_style == "curve"
    assert cfg.y_range == AxisRange(0, 100)
    assert cfg.unit == Unit("right", "ms")
    assert cfg.temporal == TemporalBinding("axis", "ts", range=5)


def test_config_from_mapping_accepts_family_alias_and_dataclasses() -> None:
    cfg = config_from_mapping({"family": "geo", "longitude": "lng", "latitude": "lat"})
    assert isinstance(cfg, GeoConfig)
    assert cfg.chart_type == "geo"
    assert config_from_mapping(cfg) is cfg


def test_config_from_mapping_rejects_unknown_families_and_non_mappings() -> None:
    with pytest.raises(UnknownChartFamily):
        config_from_mapping({"chartType": "radar"})
    with pytest.raises(TypeError):
        config_from_mapping(["line"])


def test_config_class_rejects_family_outside_its_set() -> None:
    with pytest.raises(UnknownChartFamily):
        TimeSeriesConfig(chart_type="bar")


def test_config_validation_errors() -> None:
    with pytest.raises(ValueError, match="group_type"):
        BarColumnConfig(x_axis="x", y_axis="y", group_type="overlap")
    with pytest.raises(ValueError, match="line_style"):
        TimeSeriesConfig(x_axis="x", y_axis="y", line_style="wiggly")
    with pytest.raises(ValueError, match="max_items"):
        TimeSeriesConfig(x_axis="x", y_axis="y", max_items=0)
    with pytest.raises(ValueError, match="point_opacity"):
        GeoConfig(longitude="a", latitude="b", point_opacity=2)
    with pytest.raises(ValueError):
        Unit("middle", "%")
    with pytest.raises(TypeError, match="y_range"):
        TimeSeriesConfig(x_axis="x", y_axis="y", y_range=[0, 1])


def test_streaming_policy_validation_and_throttle_units() -> None:
    assert StreamingPolicy().to_dict() == {"maxItems": 1000, "mode": "append", "throttle": 0.0}
    assert StreamingPolicy(throttle=timedelta(seconds=0.25)).throttle == 250.0
    assert StreamingPolicy.from_mapping({"maxItems": 5, "mode": "replace"}) == StreamingPolicy(5, "replace")
    with pytest.raises(ValueError, match="streaming mode"):
        StreamingPolicy(mode="prepend")
    with pytest.raises(ValueError, match="throttle"):
        StreamingPolicy(throttle=-1)
    with pytest.raises(ValueError, match="max_items"):
        StreamingPolicy(max_items=0)


def test_streaming_override_wins_over_max_items() -> None:
    cfg = TimeSeriesConfig(x_axis="x", y_axis="y", max_items=10, streaming={"maxItems": 3})
    assert cfg.streaming_policy() == StreamingPolicy(max_items=3)
    assert TimeSeriesConfig(x_axis="x", y_axis="y", max_items=10).streaming_policy().max_items == 10
    assert TimeSeriesConfig(x_axis="x", y_axis="y").streaming_policy().max_items == 1000


def test_table_styles_are_coerced() -> None:
    cfg = TableConfig(table_styles={"cpu": {"miniChart": "sparkline"}, "host": ColumnStyle(name="Host")})
    assert cfg.table_styles["cpu"] == ColumnStyle(mini_chart="sparkline")
    assert cfg.table_styles["host"].name == "Host"


def test_option_table_documents_core_keys() -> None:
    for key in ("chartType", "xAxis", "yAxis", "color", "groupType", "temporal", "streaming"):
        assert key in CHART_CONFIG_OPTIONS
