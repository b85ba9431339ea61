"""Compilation of high-level chart configurations into a ``CompiledSpec``.

Purpose
-------
Each chart family has one pure compile function that lowers its configuration
dataclass into the canonical, renderer-agnostic :class:`CompiledSpec`.
:func:`compile_chart` is the single entry point: it accepts a configuration
dataclass or a wire-format mapping and dispatches on the family tag.

Shared rules
------------
- Required field roles are checked before anything else is built; a missing
  role raises :class:`~streamviz.errors.MissingFieldBinding`.
- Grouping: bar/column with a color field dodge by default (``dodgeX``) and
  stack when ``group_type="stack"`` (``stackY``); area with a color field
  always stacks.
- Scales: time x-scale for time series, ``linear``/``nice`` y-scale unless both
  bounds of ``y_range`` are given, in which case the domain is fixed instead.
- Axes: x grid off, y grid on, both overridable; ``False``/empty titles hide.
- Legend: ``False`` disables it; anything else is bottom/interactive unless a
  mapping overrides the position.
- Labels: ``data_label`` binds a label to the y field with overlap hiding and,
  unless ``show_all``, only the latest point labeled.
- Temporal fields left blank fall back to the family's primary field; the
  streaming policy defaults to ``DEFAULT_MAX_ITEMS``.

Compilation keeps no state and builds every object afresh, so compiling the
same configuration twice yields ``==`` specs.

Examples
--------
>>> from streamviz.spec_compiler import compile_chart
>>> spec = compile_chart({"chartType": "area", "xAxis": "t", "yAxis": "v", "color": "s"})
>>> spec.transforms
({'type': 'stackY'},)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, Optional, Union

from .chart_config import (
    DEFAULT_THEME,
    THEMES,
    AxisRange,
    BarColumnConfig,
    ChartConfigBase,
    GeoConfig,
    LegendSetting,
    OHLCConfig,
    SingleValueConfig,
    TableConfig,
    TimeSeriesConfig,
    Unit,
    config_from_mapping,
)
from .CompiledSpec import AxisSpec, CompiledSpec, ComputedFn, LabelSpec, LegendSpec, Mark
from .errors import ConfigurationError, MissingFieldBinding, UnknownChartFamily
from .temporal import FieldSpec, TemporalBinding

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

LEGEND_POSITIONS: tuple[str, ...] = ("top", "bottom", "left", "right")


# ---------------------------------------------------------------------------
# Computed encodings (module-level so compiled specs compare equal)
# ---------------------------------------------------------------------------


def format_value(value: Any, fraction_digits: Optional[int], unit: Optional[Unit]) -> str:
    """Format a numeric label value with fixed decimals and a unit affix."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return "-" if value is None else str(value)
    text = f"{number:.{fraction_digits or 0}f}"
    if unit is None or not unit.value:
        return text
    return f"{text}{unit.value}" if unit.position == "right" else f"{unit.value}{text}"


def candle_color(
    row: Mapping[str, Any],
    open_field: str,
    close_field: str,
    bullish_color: str,
    bearish_color: str,
) -> str:
    """Bullish color when the candle closes at or above its open."""
    try:
        rising = float(row[close_field]) >= float(row[open_field])
    except (KeyError, TypeError, ValueError):
        return bearish_color
    return bullish_color if rising else bearish_color


# ---------------------------------------------------------------------------
# Shared rule helpers
# ---------------------------------------------------------------------------


def _require(config: ChartConfigBase, *roles: str) -> None:
    for role in roles:
        if not getattr(config, role, None):
            raise MissingFieldBinding(config.chart_type, role)


def _legend(setting: LegendSetting) -> Union[LegendSpec, bool]:
    if setting is False:
        return False
    if isinstance(setting, Mapping):
        position = setting.get("position", "bottom")
        if position not in LEGEND_POSITIONS:
            raise ConfigurationError(
                f"Legend position must be one of {LEGEND_POSITIONS}, got {position!r}"
            )
        return LegendSpec(position=position, interactive=bool(setting.get("interactive", True)))
    return LegendSpec()


def _title(value: Union[str, bool, None]) -> Union[str, bool]:
    if not value or value is True:
        return False
    return str(value)


def _axes(
    config: Union[TimeSeriesConfig, BarColumnConfig],
    *,
    x_label_max_length: Optional[int] = None,
) -> dict[str, AxisSpec]:
    return {
        "x": AxisSpec(
            title=_title(config.x_title),
            grid=False if config.x_gridlines is None else bool(config.x_gridlines),
            label_max_length=x_label_max_length,
        ),
        "y": AxisSpec(
            title=_title(config.y_title),
            grid=True if config.gridlines is None else bool(config.gridlines),
            label_max_length=config.y_tick_label,
        ),
    }


def _y_scale(y_range: Optional[AxisRange]) -> dict[str, Any]:
    if y_range is not None and y_range.is_complete:
        return {"type": "linear", "domain": [y_range.min, y_range.max]}
    return {"type": "linear", "nice": True}


def _labels(
    config: Union[TimeSeriesConfig, BarColumnConfig], y_field: str
) -> tuple[LabelSpec, ...]:
    if not config.data_label:
        return ()
    formatter = None
    if config.fraction_digits is not None or config.unit is not None:
        formatter = ComputedFn("format_value", format_value, (config.fraction_digits, config.unit))
    return (
        LabelSpec(
            text=y_field,
            overlap_hide=True,
            selector=None if config.show_all else "last",
            format=formatter,
        ),
    )


def _temporal(config: ChartConfigBase, default_field: FieldSpec | None) -> Optional[TemporalBinding]:
    if config.temporal is None:
        return None
    binding = config.temporal.with_default_field(default_field)
    if not binding.is_bound:
        raise MissingFieldBinding(config.chart_type, "temporal.field")
    return binding


def _with_palette(config: ChartConfigBase, scales: dict[str, Any]) -> dict[str, Any]:
    """Add the custom palette as the color-scale range."""
    if config.colors:
        scales["color"] = {"range": list(config.colors)}
    return scales


def _channels(**channels: Any) -> dict[str, Any]:
    """Drop unbound channels while keeping keyword order."""
    return {name: value for name, value in channels.items() if value}


# ---------------------------------------------------------------------------
# Family compilers
# ---------------------------------------------------------------------------


def compile_time_series(config: TimeSeriesConfig, theme: str = DEFAULT_THEME) -> CompiledSpec:
    """Compile a ``line``/``area`` configuration."""
    _require(config, "x_axis", "y_axis")
    x, y, color = config.x_axis, config.y_axis, config.color
    is_area = config.chart_type == "area"

    style: dict[str, Any] = {"connect": True}
    if config.line_style == "curve":
        style["shape"] = "smooth"
    elif not is_area:
        style["shape"] = "line"

    marks = [
        Mark(
            type=config.chart_type,
            encode=_channels(x=x, y=y, color=color),
            style=style,
            labels=_labels(config, y),
        )
    ]
    if config.points and not is_area:
        marks.append(Mark(type="point", encode=_channels(x=x, y=y, color=color), tooltip=False))

    transforms = ({"type": "stackY"},) if is_area and color else ()

    x_scale: dict[str, Any] = {"type": "time"}
    if config.x_format:
        x_scale["mask"] = config.x_format

    return CompiledSpec(
        marks=tuple(marks),
        scales=_with_palette(config, {"x": x_scale, "y": _y_scale(config.y_range)}),
        transforms=transforms,
        axes=_axes(config),
        legend=_legend(config.legend),
        streaming=config.streaming_policy(),
        temporal=_temporal(config, x),
        theme=theme,
        animate=False,
    )


def compile_bar_column(config: BarColumnConfig, theme: str = DEFAULT_THEME) -> CompiledSpec:
    """Compile a ``bar``/``column`` configuration.

    Both families use one ``interval`` mark with the category on x; ``bar``
    transposes the coordinate system to lay the intervals out horizontally.
    """
    _require(config, "x_axis", "y_axis")
    x, y, color = config.x_axis, config.y_axis, config.color

    mark = Mark(
        type="interval",
        encode=_channels(x=x, y=y, color=color),
        labels=_labels(config, y),
    )
    transforms: tuple[dict[str, Any], ...] = ()
    if color:
        transforms = ({"type": "stackY" if config.group_type == "stack" else "dodgeX"},)

    coordinate = {"transforms": [{"type": "transpose"}]} if config.chart_type == "bar" else None

    return CompiledSpec(
        marks=(mark,),
        scales=_with_palette(
            config, {"x": {"type": "band", "padding": 0.5}, "y": _y_scale(config.y_range)}
        ),
        transforms=transforms,
        coordinate=coordinate,
        axes=_axes(config, x_label_max_length=config.x_tick_label),
        legend=_legend(config.legend),
        streaming=config.streaming_policy(),
        temporal=_temporal(config, x),
        theme=theme,
        animate=False,
    )


def compile_single_value(config: SingleValueConfig, theme: str = DEFAULT_THEME) -> CompiledSpec:
    """Compile a ``singleValue`` configuration."""
    _require(config, "y_axis")
    y = config.y_axis

    style: dict[str, Any] = {"fontSize": config.font_size, "fill": config.color}
    if config.delta:
        style["delta"] = {
            "increaseColor": config.increase_color,
            "decreaseColor": config.decrease_color,
        }
    text_mark = Mark(
        type="text",
        encode={"text": y},
        style=style,
        labels=(
            LabelSpec(
                text=y,
                selector="last",
                format=ComputedFn("format_value", format_value, (config.fraction_digits, config.unit)),
            ),
        ),
    )
    marks = [text_mark]
    if config.sparkline:
        marks.append(
            Mark(type="line", encode={"y": y}, style={"stroke": config.sparkline_color}, tooltip=False)
        )

    return CompiledSpec(
        marks=tuple(marks),
        scales={"y": {"type": "linear", "nice": True}},
        legend=False,
        tooltip=False,
        streaming=config.streaming_policy(),
        temporal=_temporal(config, y),
        theme=theme,
        animate=False,
    )


def compile_table(config: TableConfig, theme: str = DEFAULT_THEME) -> CompiledSpec:
    """Compile a ``table`` configuration into a single ``cell`` mark.

    Visible column settings are listed in the mark style in declaration order;
    columns with ``show=False`` are left out. Without ``table_styles`` the
    renderer shows every column.
    """
    style: dict[str, Any] = {"wrap": bool(config.table_wrap)}
    if config.table_styles:
        columns = []
        for name, column in config.table_styles.items():
            if not column.show:
                continue
            entry: dict[str, Any] = {"field": name, "title": column.name or name}
            if column.width is not None:
                entry["width"] = column.width
            if column.mini_chart != "none":
                entry["miniChart"] = column.mini_chart
            if column.color is not None:
                entry["color"] = dict(column.color)
            columns.append(entry)
        style["columns"] = columns

    return CompiledSpec(
        marks=(Mark(type="cell", style=style),),
        legend=False,
        streaming=config.streaming_policy(),
        temporal=_temporal(config, None),
        theme=theme,
        animate=False,
    )


def compile_geo(config: GeoConfig, theme: str = DEFAULT_THEME) -> CompiledSpec:
    """Compile a ``geo`` configuration into a point mark on a geo coordinate."""
    _require(config, "longitude", "latitude")
    size_field = config.size.key if config.size is not None else None

    style: dict[str, Any] = {}
    if config.point_opacity is not None:
        style["opacity"] = float(config.point_opacity)
    if config.point_color and not config.color:
        style["fill"] = config.point_color

    scales: dict[str, Any] = {}
    if size_field:
        size_scale: dict[str, Any] = {"type": "linear"}
        if config.size.min is not None and config.size.max is not None:
            size_scale["range"] = [config.size.min, config.size.max]
        scales["size"] = size_scale
    _with_palette(config, scales)

    coordinate: dict[str, Any] = {"type": "geo"}
    if config.center is not None:
        coordinate["center"] = list(config.center)
    if config.zoom is not None:
        coordinate["zoom"] = int(config.zoom)
    if config.tile_provider:
        coordinate["tileProvider"] = config.tile_provider

    mark = Mark(
        type="point",
        encode=_channels(
            longitude=config.longitude,
            latitude=config.latitude,
            color=config.color,
            size=size_field,
        ),
        style=style,
    )
    return CompiledSpec(
        marks=(mark,),
        scales=scales,
        coordinate=coordinate,
        legend=_legend(None) if config.color else False,
        streaming=config.streaming_policy(),
        temporal=_temporal(config, config.longitude),
        theme=theme,
        animate=False,
    )


def compile_ohlc(config: OHLCConfig, theme: str = DEFAULT_THEME) -> CompiledSpec:
    """Compile an ``ohlc``/``candlestick`` configuration.

    Both variants draw a ``link`` wick from low to high. Candlesticks add an
    ``interval`` body from open to close; OHLC bars add open/close tick points.
    The color channel is computed per row from the open/close direction.
    """
    _require(config, "time", "open", "high", "low", "close")
    t = config.time
    color = ComputedFn(
        "candle_color",
        candle_color,
        (config.open, config.close, config.bullish_color, config.bearish_color),
    )

    marks = [Mark(type="link", encode={"x": t, "y": config.low, "y1": config.high, "color": color})]
    if config.chart_type == "candlestick":
        marks.append(
            Mark(type="interval", encode={"x": t, "y": config.open, "y1": config.close, "color": color})
        )
    else:
        marks.append(
            Mark(type="point", encode={"x": t, "y": config.open, "color": color},
                 style={"shape": "tick-left"}, tooltip=False)
        )
        marks.append(
            Mark(type="point", encode={"x": t, "y": config.close, "color": color},
                 style={"shape": "tick-right"}, tooltip=False)
        )

    return CompiledSpec(
        marks=tuple(marks),
        scales={"x": {"type": "time"}, "y": {"type": "linear", "nice": True}},
        axes={"x": AxisSpec(title=False, grid=False), "y": AxisSpec(title=False, grid=True)},
        legend=False,
        streaming=config.streaming_policy(),
        temporal=_temporal(config, t),
        theme=theme,
        animate=False,
    )


COMPILERS: dict[str, Callable[..., CompiledSpec]] = {
    "line": compile_time_series,
    "area": compile_time_series,
    "bar": compile_bar_column,
    "column": compile_bar_column,
    "singleValue": compile_single_value,
    "table": compile_table,
    "geo": compile_geo,
    "ohlc": compile_ohlc,
    "candlestick": compile_ohlc,
}


def compile_chart(
    config: Union[ChartConfigBase, Mapping[str, Any]],
    theme: str = DEFAULT_THEME,
) -> CompiledSpec:
    """Compile any supported chart configuration.

    Parameters
    ----------
    config : ChartConfigBase or Mapping
        Configuration dataclass or camelCase wire-format mapping.
    theme : {"dark", "light"}
        Theme name recorded in the spec.

    Raises
    ------
    UnknownChartFamily
        If the family tag is not supported.
    MissingFieldBinding
        If a required field role is unset.
    """
    if theme not in THEMES:
        raise ConfigurationError(f"Theme must be one of {THEMES}, got {theme!r}")
    config = config_from_mapping(config)
    compiler = COMPILERS.get(config.chart_type)
    if compiler is None:
        raise UnknownChartFamily(config.chart_type, tuple(COMPILERS))
    spec = compiler(config, theme)
    logger.debug(f"compiled {config.chart_type} chart: {spec!r}")
    return spec


__all__ = [
    "COMPILERS",
    "candle_color",
    "compile_bar_column",
    "compile_chart",
    "compile_geo",
    "compile_ohlc",
    "compile_single_value",
    "compile_table",
    "compile_time_series",
    "format_value",
]
