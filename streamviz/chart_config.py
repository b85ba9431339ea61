"""High-level chart configuration contracts.

Purpose
-------
This module defines the caller-facing configuration shapes, one frozen
dataclass per chart family, plus the streaming policy and the small value
objects they embed. Configurations are immutable inputs to
:mod:`streamviz.spec_compiler`; they hold no behavior beyond validation and
coercion of nested mappings.

Concepts and structure
----------------------
- ``TimeSeriesConfig``: ``line`` / ``area``.
- ``BarColumnConfig``: ``bar`` / ``column``.
- ``SingleValueConfig``: ``singleValue``.
- ``TableConfig``: ``table``.
- ``GeoConfig``: ``geo``.
- ``OHLCConfig``: ``ohlc`` / ``candlestick``.

Field roles (``x_axis``, ``y_axis``, ...) default to ``None`` so a missing
role is reported by the compiler as ``MissingFieldBinding`` rather than as a
``TypeError`` from the constructor.

Wire format
-----------
:func:`config_from_mapping` accepts the camelCase mapping used by existing
callers (``{"chartType": "line", "xAxis": "ts", "yAxis": "value", ...}``).
Unknown keys are ignored so newer callers stay compatible.

Examples
--------
>>> from streamviz.chart_config import config_from_mapping
>>> cfg = config_from_mapping({"chartType": "area", "xAxis": "t", "yAxis": "v"})
>>> cfg.chart_type, cfg.x_axis
('area', 't')
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, fields
from datetime import timedelta
from typing import Any, ClassVar, Literal, Optional, Union

from .errors import UnknownChartFamily
from .temporal import TemporalBinding

DEFAULT_MAX_ITEMS = 1000
DEFAULT_THEME = "dark"
THEMES: tuple[str, ...] = ("dark", "light")

StreamingMode = Literal["append", "replace"]
STREAMING_MODES: tuple[str, ...] = ("append", "replace")

CHART_FAMILIES: tuple[str, ...] = (
    "line",
    "area",
    "bar",
    "column",
    "singleValue",
    "table",
    "geo",
    "ohlc",
    "candlestick",
)

CHART_CONFIG_OPTIONS: dict[str, str] = {
    "chartType": "Chart family: line, area, bar, column, singleValue, table, geo, ohlc, candlestick.",
    "xAxis": "Field bound to the x channel (time field for line/area, category for bar/column).",
    "yAxis": "Field bound to the y channel (numeric value).",
    "color": "Series/grouping field for line/area/bar/column/geo; a color name for singleValue.",
    "groupType": "Bar/column grouping for a bound color field: stack or dodge (default dodge).",
    "lineStyle": "curve (smooth shape) or straight.",
    "points": "Overlay point marks on a line chart.",
    "dataLabel": "Attach value labels to the primary mark.",
    "showAll": "Show every data label instead of only the most recent one.",
    "legend": "False disables the legend; a mapping may override its position.",
    "gridlines": "Y-axis grid lines (default True).",
    "xGridlines": "X-axis grid lines (default False).",
    "xTitle": "X-axis title; empty or False hides it.",
    "yTitle": "Y-axis title; empty or False hides it.",
    "yRange": "Explicit y domain {min, max}; applied only when both bounds are set.",
    "xFormat": "Date-format mask written to the time x-scale.",
    "fractionDigits": "Decimal places used when formatting labels and values.",
    "unit": "Unit affix {position: left|right, value}.",
    "temporal": "Temporal binding {mode: axis|frame|key, field, range}.",
    "colors": "Custom palette; becomes the color-scale range of families with a color channel.",
    "tileProvider": "Geo base-map tile provider, written to the geo coordinate.",
    "maxItems": "Buffer capacity shortcut (default 1000).",
    "streaming": "Streaming policy override {maxItems, mode, throttle}.",
}


def _coerce(value: Any, cls: type, label: str) -> Any:
    """Return ``value`` as ``cls``, building it from a mapping when needed."""
    if value is None or isinstance(value, cls):
        return value
    if isinstance(value, Mapping):
        return cls.from_mapping(value)
    raise TypeError(f"{label} must be a {cls.__name__} or mapping, got {type(value).__name__}")


def _tick_label(value: Any) -> Optional[int]:
    """Normalize ``{maxChar: n}`` / ``n`` tick-label settings to ``n``."""
    if value is None:
        return None
    if isinstance(value, Mapping):
        value = value.get("maxChar", value.get("max_char"))
        if value is None:
            return None
    return int(value)


@dataclass(frozen=True)
class StreamingPolicy:
    """Buffer lifecycle policy.

    Parameters
    ----------
    max_items : int
        Buffer capacity.
    mode : {"append", "replace"}
        How an ingested ``StreamSource`` is merged into the buffer.
    throttle : float or datetime.timedelta
        Minimum interval between render notifications, in milliseconds.
        ``0`` notifies after every mutation.
    """

    max_items: int = DEFAULT_MAX_ITEMS
    mode: StreamingMode = "append"
    throttle: float = 0.0

    def __post_init__(self) -> None:
        if isinstance(self.max_items, bool) or not isinstance(self.max_items, int) or self.max_items < 1:
            raise ValueError(f"max_items must be a positive integer, got {self.max_items!r}")
        if self.mode not in STREAMING_MODES:
            raise ValueError(f"Invalid streaming mode {self.mode!r}, must be one of {STREAMING_MODES}")
        throttle = self.throttle
        if isinstance(throttle, timedelta):
            throttle = throttle.total_seconds() * 1000.0
        if throttle is None:
            throttle = 0.0
        throttle = float(throttle)
        if throttle < 0:
            raise ValueError(f"throttle must be >= 0 ms, got {self.throttle!r}")
        object.__setattr__(self, "throttle", throttle)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> StreamingPolicy:
        return cls(
            max_items=int(data.get("maxItems", data.get("max_items", DEFAULT_MAX_ITEMS))),
            mode=data.get("mode", "append"),
            throttle=data.get("throttle", 0.0),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"maxItems": self.max_items, "mode": self.mode, "throttle": self.throttle}


@dataclass(frozen=True)
class AxisRange:
    """Explicit numeric axis bounds; either bound may be ``None``."""

    min: Optional[float] = None
    max: Optional[float] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> AxisRange:
        return cls(min=data.get("min"), max=data.get("max"))

    @property
    def is_complete(self) -> bool:
        return self.min is not None and self.max is not None


@dataclass(frozen=True)
class Unit:
    """Unit affix attached to formatted values."""

    position: Literal["left", "right"] = "left"
    value: str = ""

    def __post_init__(self) -> None:
        if self.position not in ("left", "right"):
            raise ValueError(f"Unit position must be 'left' or 'right', got {self.position!r}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Unit:
        return cls(position=data.get("position", "left"), value=str(data.get("value", "")))


@dataclass(frozen=True)
class SizeEncoding:
    """Geo point size: data field plus output range in pixels."""

    key: Optional[str] = None
    min: Optional[float] = None
    max: Optional[float] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> SizeEncoding:
        return cls(key=data.get("key"), min=data.get("min"), max=data.get("max"))


@dataclass(frozen=True)
class ColumnStyle:
    """Display settings for one table column."""

    name: Optional[str] = None
    show: bool = True
    width: Optional[float] = None
    mini_chart: Literal["none", "sparkline"] = "none"
    color: Optional[Mapping[str, Any]] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ColumnStyle:
        return cls(
            name=data.get("name"),
            show=bool(data.get("show", True)),
            width=data.get("width"),
            mini_chart=data.get("miniChart", data.get("mini_chart", "none")),
            color=data.get("color"),
        )


LegendSetting = Union[bool, Mapping[str, Any], None]


@dataclass(frozen=True)
class ChartConfigBase:
    """Fields shared by every chart family.

    Parameters
    ----------
    chart_type : str
        Family tag; must belong to the subclass's ``FAMILIES``.
    colors : tuple[str, ...] or None
        Custom palette, compiled into the color-scale range (line, area,
        bar, column, geo).
    temporal : TemporalBinding or None
        Temporal binding; a blank field falls back to the family's primary
        field at compile time.
    max_items : int or None
        Buffer capacity shortcut; ``streaming`` wins when both are given.
    streaming : StreamingPolicy or None
        Full streaming policy override.
    """

    FAMILIES: ClassVar[tuple[str, ...]] = ()

    chart_type: str = ""
    colors: Optional[tuple[str, ...]] = None
    temporal: Optional[TemporalBinding] = None
    max_items: Optional[int] = None
    streaming: Optional[StreamingPolicy] = None

    def __post_init__(self) -> None:
        if self.chart_type not in self.FAMILIES:
            raise UnknownChartFamily(self.chart_type, self.FAMILIES)
        if self.colors is not None:
            object.__setattr__(self, "colors", tuple(self.colors))
        object.__setattr__(self, "temporal", _coerce(self.temporal, TemporalBinding, "temporal"))
        object.__setattr__(self, "streaming", _coerce(self.streaming, StreamingPolicy, "streaming"))
        if self.max_items is not None and (
            isinstance(self.max_items, bool) or not isinstance(self.max_items, int) or self.max_items < 1
        ):
            raise ValueError(f"max_items must be a positive integer, got {self.max_items!r}")

    def streaming_policy(self) -> StreamingPolicy:
        """Return the effective streaming policy for this configuration."""
        if self.streaming is not None:
            return self.streaming
        return StreamingPolicy(max_items=self.max_items or DEFAULT_MAX_ITEMS)


@dataclass(frozen=True)
class TimeSeriesConfig(ChartConfigBase):
    """Line or area chart over a time x-axis."""

    FAMILIES: ClassVar[tuple[str, ...]] = ("line", "area")

    chart_type: str = "line"
    x_axis: Optional[str] = None
    y_axis: Optional[str] = None
    color: Optional[str] = None
    x_title: Union[str, bool, None] = None
    y_title: Union[str, bool, None] = None
    y_range: Optional[AxisRange] = None
    data_label: bool = False
    show_all: bool = False
    legend: LegendSetting = None
    gridlines: Optional[bool] = None
    x_gridlines: Optional[bool] = None
    points: bool = False
    line_style: Optional[Literal["curve", "straight"]] = None
    fraction_digits: Optional[int] = None
    unit: Optional[Unit] = None
    x_format: Optional[str] = None
    y_tick_label: Optional[int] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "y_range", _coerce(self.y_range, AxisRange, "y_range"))
        object.__setattr__(self, "unit", _coerce(self.unit, Unit, "unit"))
        object.__setattr__(self, "y_tick_label", _tick_label(self.y_tick_label))
        if self.line_style not in (None, "curve", "straight"):
            raise ValueError(f"line_style must be 'curve' or 'straight', got {self.line_style!r}")


@dataclass(frozen=True)
class BarColumnConfig(ChartConfigBase):
    """Bar (horizontal) or column (vertical) interval chart."""

    FAMILIES: ClassVar[tuple[str, ...]] = ("bar", "column")

    chart_type: str = "column"
    x_axis: Optional[str] = None
    y_axis: Optional[str] = None
    color: Optional[str] = None
    group_type: Optional[Literal["stack", "dodge"]] = None
    x_title: Union[str, bool, None] = None
    y_title: Union[str, bool, None] = None
    y_range: Optional[AxisRange] = None
    data_label: bool = False
    show_all: bool = False
    legend: LegendSetting = None
    gridlines: Optional[bool] = None
    x_gridlines: Optional[bool] = None
    fraction_digits: Optional[int] = None
    unit: Optional[Unit] = None
    x_tick_label: Optional[int] = None
    y_tick_label: Optional[int] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "y_range", _coerce(self.y_range, AxisRange, "y_range"))
        object.__setattr__(self, "unit", _coerce(self.unit, Unit, "unit"))
        object.__setattr__(self, "x_tick_label", _tick_label(self.x_tick_label))
        object.__setattr__(self, "y_tick_label", _tick_label(self.y_tick_label))
        if self.group_type not in (None, "stack", "dodge"):
            raise ValueError(f"group_type must be 'stack' or 'dodge', got {self.group_type!r}")


@dataclass(frozen=True)
class SingleValueConfig(ChartConfigBase):
    """One prominent metric with optional sparkline and delta indicator."""

    FAMILIES: ClassVar[tuple[str, ...]] = ("singleValue",)

    chart_type: str = "singleValue"
    y_axis: Optional[str] = None
    font_size: int = 64
    color: str = "blue"
    fraction_digits: int = 2
    sparkline: bool = False
    sparkline_color: str = "purple"
    delta: bool = False
    increase_color: str = "green"
    decrease_color: str = "red"
    unit: Optional[Unit] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "unit", _coerce(self.unit, Unit, "unit"))


@dataclass(frozen=True)
class TableConfig(ChartConfigBase):
    """Tabular view of the resolved rows."""

    FAMILIES: ClassVar[tuple[str, ...]] = ("table",)

    chart_type: str = "table"
    table_styles: Optional[Mapping[str, ColumnStyle]] = None
    table_wrap: bool = False

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.table_styles is not None:
            styles = {
                str(name): _coerce(style, ColumnStyle, f"table_styles[{name!r}]")
                for name, style in self.table_styles.items()
            }
            object.__setattr__(self, "table_styles", styles)


@dataclass(frozen=True)
class GeoConfig(ChartConfigBase):
    """Points placed by longitude/latitude."""

    FAMILIES: ClassVar[tuple[str, ...]] = ("geo",)

    chart_type: str = "geo"
    longitude: Optional[str] = None
    latitude: Optional[str] = None
    color: Optional[str] = None
    size: Optional[SizeEncoding] = None
    center: Optional[tuple[float, float]] = None
    zoom: Optional[int] = None
    tile_provider: Optional[str] = None
    point_opacity: Optional[float] = None
    point_color: Optional[str] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "size", _coerce(self.size, SizeEncoding, "size"))
        if self.center is not None:
            lat, lng = self.center
            object.__setattr__(self, "center", (float(lat), float(lng)))
        if self.point_opacity is not None and not 0.0 <= float(self.point_opacity) <= 1.0:
            raise ValueError(f"point_opacity must be within [0, 1], got {self.point_opacity!r}")


@dataclass(frozen=True)
class OHLCConfig(ChartConfigBase):
    """Open/high/low/close price chart."""

    FAMILIES: ClassVar[tuple[str, ...]] = ("ohlc", "candlestick")

    chart_type: str = "candlestick"
    time: Optional[str] = None
    open: Optional[str] = None
    high: Optional[str] = None
    low: Optional[str] = None
    close: Optional[str] = None
    bullish_color: str = "green"
    bearish_color: str = "red"


ChartConfig = Union[
    TimeSeriesConfig,
    BarColumnConfig,
    SingleValueConfig,
    TableConfig,
    GeoConfig,
    OHLCConfig,
]

FAMILY_CONFIGS: dict[str, type[ChartConfigBase]] = {
    family: cls
    for cls in (TimeSeriesConfig, BarColumnConfig, SingleValueConfig, TableConfig, GeoConfig, OHLCConfig)
    for family in cls.FAMILIES
}

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")
_KEY_ALIASES: dict[str, str] = {"family": "chart_type", "chartType": "chart_type"}


def _snake_case(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def config_from_mapping(data: Mapping[str, Any] | ChartConfigBase) -> ChartConfigBase:
    """Build the family-specific configuration from a wire-format mapping.

    Raises
    ------
    UnknownChartFamily
        If ``chartType`` (or ``family``) is missing or not a supported family.
    """
    if isinstance(data, ChartConfigBase):
        return data
    if not isinstance(data, Mapping):
        raise TypeError(f"Chart configuration must be a mapping, got {type(data).__name__}")
    family = data.get("chartType", data.get("family", data.get("chart_type")))
    cls = FAMILY_CONFIGS.get(family) if isinstance(family, str) else None
    if cls is None:
        raise UnknownChartFamily(family, CHART_FAMILIES)
    names = {f.name for f in fields(cls)}
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        name = _KEY_ALIASES.get(key) or _snake_case(key)
        if name in names:
            kwargs[name] = value
    kwargs["chart_type"] = family
    return cls(**kwargs)


__all__ = [
    "AxisRange",
    "BarColumnConfig",
    "CHART_CONFIG_OPTIONS",
    "CHART_FAMILIES",
    "ChartConfig",
    "ChartConfigBase",
    "ColumnStyle",
    "DEFAULT_MAX_ITEMS",
    "DEFAULT_THEME",
    "FAMILY_CONFIGS",
    "GeoConfig",
    "OHLCConfig",
    "SingleValueConfig",
    "SizeEncoding",
    "StreamingPolicy",
    "TableConfig",
    "THEMES",
    "TimeSeriesConfig",
    "Unit",
    "config_from_mapping",
]
