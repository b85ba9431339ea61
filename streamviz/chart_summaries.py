"""Derived values for single-value charts and default chart suggestions.

Purpose
-------
Renderers of ``singleValue`` charts need the latest value, the change from
the previous value and a short history for the sparkline. Playground-style
callers also want a sensible starting configuration for a given schema.
Both are pure functions of rows or columns and live here so the compiler and
controller stay free of presentation heuristics.

Examples
--------
>>> from streamviz.chart_summaries import summarize_single_value
>>> summary = summarize_single_value([{"v": 1}, {"v": 3}], "v")
>>> summary.value, summary.delta, summary.trend
(3.0, 2.0, 'up')
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal, Optional, Union

from .chart_config import (
    CHART_FAMILIES,
    BarColumnConfig,
    ChartConfigBase,
    GeoConfig,
    OHLCConfig,
    SingleValueConfig,
    TableConfig,
    TimeSeriesConfig,
)
from .errors import UnknownChartFamily
from .stream_schema import CanonicalRow, ColumnDescriptor, coerce_columns
from .temporal import TemporalBinding

Trend = Literal["up", "down", "stable"]

_LONGITUDE_NAMES = ("longitude", "lng", "lon", "long")
_LATITUDE_NAMES = ("latitude", "lat")


@dataclass(frozen=True)
class SingleValueSummary:
    """Display values for a ``singleValue`` chart.

    Parameters
    ----------
    value : float or None
        Latest numeric value.
    previous : float or None
        Numeric value before ``value``.
    delta : float or None
        Most recent non-zero change between consecutive values, so the delta
        indicator keeps showing the last movement while the value is flat.
    trend : {"up", "down", "stable"}
        Sign of ``delta``.
    sparkline : tuple[float, ...]
        The last ``sparkline_limit`` numeric values, oldest first.
    """

    value: Optional[float]
    previous: Optional[float]
    delta: Optional[float]
    trend: Trend
    sparkline: tuple[float, ...]


def _as_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def summarize_single_value(
    rows: Iterable[CanonicalRow],
    field: str,
    sparkline_limit: int = 20,
) -> SingleValueSummary:
    """Summarize ``field`` over arrival-ordered ``rows``.

    Non-numeric and missing values are skipped.
    """
    if sparkline_limit < 0:
        raise ValueError("sparkline_limit must be >= 0")
    values = [
        number
        for number in (_as_number(row.get(field)) for row in rows)
        if number is not None
    ]
    if not values:
        return SingleValueSummary(None, None, None, "stable", ())

    delta: Optional[float] = None
    for later, earlier in zip(reversed(values), reversed(values[:-1])):
        if later != earlier:
            delta = later - earlier
            break

    if delta is None or delta == 0:
        trend: Trend = "stable"
    else:
        trend = "up" if delta > 0 else "down"

    sparkline = tuple(values[-sparkline_limit:]) if sparkline_limit else ()
    return SingleValueSummary(
        value=values[-1],
        previous=values[-2] if len(values) > 1 else None,
        delta=delta,
        trend=trend,
        sparkline=sparkline,
    )


def _named(columns: Sequence[ColumnDescriptor], names: Sequence[str]) -> Optional[str]:
    lookup = {col.name.lower(): col.name for col in columns}
    for name in names:
        if name in lookup:
            return lookup[name]
    return None


def suggest_chart_config(
    columns: Sequence[Union[ColumnDescriptor, Mapping[str, Any]]],
    family: str,
) -> Optional[ChartConfigBase]:
    """Return a starting configuration for ``family`` given a column schema.

    The first temporal column becomes the time axis, the first numeric column
    the value, and the first string column the series/color field. Geo and
    OHLC charts look their roles up by column name. Returns ``None`` when the
    schema cannot support the family.

    Raises
    ------
    UnknownChartFamily
        If ``family`` is not a supported chart family.
    """
    if family not in CHART_FAMILIES:
        raise UnknownChartFamily(family, CHART_FAMILIES)
    cols = coerce_columns(columns)
    if not cols:
        return None

    temporal = [c.name for c in cols if c.semantic_type.is_temporal]
    numeric = [c.name for c in cols if c.semantic_type.is_numeric]
    strings = [c.name for c in cols if c.semantic_type.value == "string"]

    if family in ("line", "area"):
        if not temporal or not numeric:
            return None
        color = strings[0] if strings else None
        return TimeSeriesConfig(
            chart_type=family,
            x_axis=temporal[0],
            y_axis=numeric[0],
            color=color,
            legend=color is not None,
            line_style="curve",
            fraction_digits=2,
            temporal=TemporalBinding(mode="axis"),
        )

    if family in ("bar", "column"):
        categories = strings or temporal
        if not categories or not numeric:
            return None
        color = strings[1] if len(strings) > 1 else None
        return BarColumnConfig(
            chart_type=family,
            x_axis=categories[0],
            y_axis=numeric[0],
            color=color,
            group_type="stack" if color else None,
            legend=color is not None,
            fraction_digits=2,
        )

    if family == "singleValue":
        if not numeric:
            return None
        return SingleValueConfig(y_axis=numeric[0], fraction_digits=2)

    if family == "table":
        return TableConfig()

    if family == "geo":
        longitude = _named(cols, _LONGITUDE_NAMES)
        latitude = _named(cols, _LATITUDE_NAMES)
        if longitude is None or latitude is None:
            return None
        return GeoConfig(longitude=longitude, latitude=latitude, color=strings[0] if strings else None)

    roles = {role: _named(cols, (role,)) for role in ("open", "high", "low", "close")}
    if not temporal or None in roles.values():
        return None
    return OHLCConfig(chart_type=family, time=temporal[0], **roles)


__all__ = ["SingleValueSummary", "summarize_single_value", "suggest_chart_config"]
