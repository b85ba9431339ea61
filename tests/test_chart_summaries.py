from __future__ import annotations

import pytest

from streamviz.chart_config import (
    BarColumnConfig,
    GeoConfig,
    OHLCConfig,
    SingleValueConfig,
    TableConfig,
    TimeSeriesConfig,
)
from streamviz.chart_summaries import SingleValueSummary, summarize_single_value, suggest_chart_config
from streamviz.errors import UnknownChartFamily
from streamviz.spec_compiler import compile_chart
from streamviz.temporal import TemporalBinding

METRICS = [
    {"name": "ts", "type": "datetime"},
    {"name": "host", "type": "string"},
    {"name": "region", "type": "string"},
    {"name": "cpu", "type": "float64"},
]


def test_summary_of_empty_or_non_numeric_rows() -> None:
    assert summarize_single_value([], "v") == SingleValueSummary(None, None, None, "stable", ())
    assert summarize_single_value([{"v": "n/a"}, {"v": None}, {}], "v").value is None


def test_summary_tracks_value_previous_and_trend() -> None:
    rows = [{"v": 1}, {"v": "skip"}, {"v": 4.5}, {"v": 3}]
    summary = summarize_single_value(rows, "v")
    assert summary.value == 3.0
    assert summary.previous == 4.5
    assert summary.delta == -1.5
    assert summary.trend == "down"
    assert summary.sparkline == (1.0, 4.5, 3.0)


def test_summary_delta_keeps_last_non_zero_change() -> None:
    summary = summarize_single_value([{"v": 1}, {"v": 2}, {"v": 2}], "v")
    assert summary.delta == 1.0
    assert summary.trend == "up"

    flat = summarize_single_value([{"v": 2}, {"v": 2}], "v")
    assert flat.delta is None
    assert flat.trend == "stable"


def test_summary_sparkline_limit() -> None:
    rows = [{"v": i} for i in range(30)]
    assert summarize_single_value(rows, "v").sparkline == tuple(float(i) for i in range(10, 30))
    assert summarize_single_value(rows, "v", sparkline_limit=3).sparkline == (27.0, 28.0, 29.0)
    assert summarize_single_value(rows, "v", sparkline_limit=0).sparkline == ()
    with pytest.raises(ValueError):
        summarize_single_value(rows, "v", sparkline_limit=-1)


def test_suggest_time_series() -> None:
    cfg = suggest_chart_config(METRICS, "area")
    assert isinstance(cfg, TimeSeriesConfig)
    assert (cfg.chart_type, cfg.x_axis, cfg.y_axis, cfg.color) == ("area", "ts", "cpu", "host")
    assert cfg.legend is True
    assert cfg.temporal == TemporalBinding("axis")
    assert compile_chart(cfg).temporal.field == "ts"


def test_suggest_bar_uses_categories_and_second_string_as_color() -> None:
    cfg = suggest_chart_config(METRICS, "bar")
    assert isinstance(cfg, BarColumnConfig)
    assert (cfg.x_axis, cfg.y_axis, cfg.color, cfg.group_type) == ("host", "cpu", "region", "stack")


def test_suggest_single_value_and_table() -> None:
    single = suggest_chart_config(METRICS, "singleValue")
    assert isinstance(single, SingleValueConfig)
    assert single.y_axis == "cpu"
    assert isinstance(suggest_chart_config(METRICS, "table"), TableConfig)


def test_suggest_geo_and_ohlc_by_column_names() -> None:
    geo = suggest_chart_config(
        [{"name": "Lat", "type": "float64"}, {"name": "lng", "type": "float64"}], "geo"
    )
    assert isinstance(geo, GeoConfig)
    assert (geo.longitude, geo.latitude) == ("lng", "Lat")

    prices = [{"name": n, "type": "float64"} for n in ("open", "high", "low", "close")]
    ohlc = suggest_chart_config([{"name": "t", "type": "datetime"}, *prices], "candlestick")
    assert isinstance(ohlc, OHLCConfig)
    assert (ohlc.time, ohlc.open, ohlc.close) == ("t", "open", "close")


def test_suggest_returns_none_when_schema_cannot_support_family() -> None:
    strings_only = [{"name": "host", "type": "string"}]
    assert suggest_chart_config(strings_only, "line") is None
    assert suggest_chart_config(strings_only, "column") is None
    assert suggest_chart_config(strings_only, "singleValue") is None
    assert suggest_chart_config(strings_only, "geo") is None
    assert suggest_chart_config(strings_only, "ohlc") is None
    assert suggest_chart_config([], "table") is None


def test_suggest_unknown_family_raises() -> None:
    with pytest.raises(UnknownChartFamily):
        suggest_chart_config(METRICS, "pie")
