"""Top-level public API for the ``streamviz`` package.

This module re-exports the streaming data path and the chart compiler so
callers can import from a single namespace, for example:

>>> from streamviz import StreamingController, compile_chart  # doctest: +SKIP

It exposes both the high-level controller and the lower-level building blocks
(normalizer, buffer, temporal resolver, compiled spec types) for integrations
that drive their own render loop.
"""

from .chart_config import (
    CHART_CONFIG_OPTIONS,
    CHART_FAMILIES,
    DEFAULT_MAX_ITEMS,
    DEFAULT_THEME,
    AxisRange,
    BarColumnConfig,
    ChartConfig,
    ChartConfigBase,
    ColumnStyle,
    GeoConfig,
    OHLCConfig,
    SingleValueConfig,
    SizeEncoding,
    StreamingPolicy,
    TableConfig,
    TimeSeriesConfig,
    Unit,
    config_from_mapping,
)
from .chart_summaries import SingleValueSummary, summarize_single_value, suggest_chart_config
from .CompiledSpec import AxisSpec, CompiledSpec, ComputedFn, LabelSpec, LegendSpec, Mark
from .errors import (
    ConfigurationError,
    InvalidRowShape,
    MissingFieldBinding,
    SchemaMismatch,
    StreamVizError,
    UnknownChartFamily,
)
from .spec_compiler import compile_chart
from .stream_buffer import BoundedStreamBuffer
from .stream_controller import IngestResult, RenderFrame, StreamingController
from .stream_normalization import normalize_row, normalize_rows
from .stream_schema import ColumnDescriptor, ColumnType, StreamSource
from .temporal import UNDEFINED, TemporalBinding, resolve, time_mask, time_window, to_epoch_ms
from .throttling import ThrottledNotifier

__all__ = [
    "AxisRange",
    "AxisSpec",
    "BarColumnConfig",
    "BoundedStreamBuffer",
    "CHART_CONFIG_OPTIONS",
    "CHART_FAMILIES",
    "ChartConfig",
    "ChartConfigBase",
    "ColumnDescriptor",
    "ColumnStyle",
    "ColumnType",
    "CompiledSpec",
    "ComputedFn",
    "ConfigurationError",
    "DEFAULT_MAX_ITEMS",
    "DEFAULT_THEME",
    "GeoConfig",
    "IngestResult",
    "InvalidRowShape",
    "LabelSpec",
    "LegendSpec",
    "Mark",
    "MissingFieldBinding",
    "OHLCConfig",
    "RenderFrame",
    "SchemaMismatch",
    "SingleValueConfig",
    "SingleValueSummary",
    "SizeEncoding",
    "StreamSource",
    "StreamVizError",
    "StreamingController",
    "StreamingPolicy",
    "TableConfig",
    "TemporalBinding",
    "ThrottledNotifier",
    "TimeSeriesConfig",
    "UNDEFINED",
    "Unit",
    "UnknownChartFamily",
    "compile_chart",
    "config_from_mapping",
    "normalize_row",
    "normalize_rows",
    "resolve",
    "suggest_chart_config",
    "summarize_single_value",
    "time_mask",
    "time_window",
    "to_epoch_ms",
]
