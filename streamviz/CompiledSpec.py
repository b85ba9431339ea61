"""Immutable, renderer-agnostic description of a compiled chart.

A ``CompiledSpec`` captures everything a renderer needs besides the rows
themselves: marks and their channel encodings, shared scales, visual
transforms, the coordinate system, axes, legend, tooltip, and the streaming
and temporal settings the data path runs under. Specs compare by value, so two
compilations of the same configuration are ``==``.

Channel encodings are either a field name (``str``) or a :class:`ComputedFn`,
a named pure function of the row. ``ComputedFn`` equality is by name, function
object and bound arguments, which keeps compiled specs comparable as long as
the wrapped function is defined at module level.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Tuple, Union

from .chart_config import StreamingPolicy
from .temporal import TemporalBinding


@dataclass(frozen=True)
class ComputedFn:
    """Named pure function used in place of a field name.

    Parameters
    ----------
    name : str
        Stable identifier shown in ``repr`` and in serialized specs.
    fn : Callable
        Called as ``fn(datum, *args)``; must not touch engine state.
    args : tuple
        Extra positional arguments bound at compile time.
    """

    name: str
    fn: Callable[..., Any]
    args: Tuple[Any, ...] = ()

    def __call__(self, datum: Any) -> Any:
        return self.fn(datum, *self.args)

    def __repr__(self) -> str:
        return f"ComputedFn({self.name!r}, args={self.args!r})"


Encoding = Union[str, ComputedFn]


@dataclass(frozen=True)
class LabelSpec:
    """Label attached to a mark.

    Parameters
    ----------
    text : str or ComputedFn
        Field (or function) providing the label text.
    overlap_hide : bool
        Hide labels that would overlap.
    selector : str or None
        Which labeled data points to show; ``"last"`` keeps only the latest.
    format : ComputedFn or None
        Value formatter applied to the label text.
    """

    text: Encoding
    overlap_hide: bool = False
    selector: Optional[str] = None
    format: Optional[ComputedFn] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"text": self.text, "overlapHide": self.overlap_hide}
        if self.selector is not None:
            out["selector"] = self.selector
        if self.format is not None:
            out["format"] = self.format
        return out


@dataclass(frozen=True)
class Mark:
    """One geometric element type with its channel bindings."""

    type: str
    encode: Mapping[str, Encoding] = field(default_factory=dict)
    style: Mapping[str, Any] = field(default_factory=dict)
    labels: Tuple[LabelSpec, ...] = ()
    tooltip: Union[bool, Mapping[str, Any], None] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type, "encode": dict(self.encode)}
        if self.style:
            out["style"] = dict(self.style)
        if self.labels:
            out["labels"] = [label.to_dict() for label in self.labels]
        if self.tooltip is not None:
            out["tooltip"] = self.tooltip if isinstance(self.tooltip, bool) else dict(self.tooltip)
        return out


@dataclass(frozen=True)
class AxisSpec:
    """Configuration of one axis channel."""

    title: Union[str, Literal[False]] = False
    grid: bool = False
    label_max_length: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"title": self.title, "grid": self.grid}
        if self.label_max_length is not None:
            out["labels"] = {"maxLength": self.label_max_length}
        return out


@dataclass(frozen=True)
class LegendSpec:
    position: Literal["top", "bottom", "left", "right"] = "bottom"
    interactive: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"position": self.position, "interactive": self.interactive}


@dataclass(frozen=True)
class CompiledSpec:
    """Canonical compiled chart specification.

    Parameters
    ----------
    marks : tuple[Mark, ...]
        Marks in drawing order.
    scales : Mapping[str, Mapping[str, Any]]
        Scale settings keyed by channel.
    transforms : tuple[Mapping[str, Any], ...]
        Visual transforms (``stackY``, ``dodgeX``) applied to every mark.
    coordinate : Mapping[str, Any] or None
        Coordinate system, e.g. ``{"transforms": [{"type": "transpose"}]}``.
    axes : Mapping[str, AxisSpec]
        Axis settings keyed by channel; empty for families without axes.
    legend : LegendSpec, False or None
        ``False`` disables the legend; ``None`` leaves the renderer default.
    tooltip : Mapping, False or None
        Chart-level tooltip; ``None`` leaves the renderer default.
    streaming : StreamingPolicy
        Buffer policy the data path runs under.
    temporal : TemporalBinding or None
        Temporal binding with its field filled in.
    theme : {"dark", "light"}
    animate : bool
    """

    marks: Tuple[Mark, ...]
    scales: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    transforms: Tuple[Mapping[str, Any], ...] = ()
    coordinate: Optional[Mapping[str, Any]] = None
    axes: Mapping[str, AxisSpec] = field(default_factory=dict)
    legend: Union[LegendSpec, Literal[False], None] = None
    tooltip: Union[Mapping[str, Any], Literal[False], None] = None
    streaming: StreamingPolicy = field(default_factory=StreamingPolicy)
    temporal: Optional[TemporalBinding] = None
    theme: Literal["dark", "light"] = "dark"
    animate: bool = False

    def scale(self, channel: str) -> Mapping[str, Any]:
        """Return the scale for ``channel`` (empty mapping if unset)."""
        return self.scales.get(channel, {})

    def to_dict(self) -> dict[str, Any]:
        """Return the renderer wire format (camelCase keys, unset keys omitted)."""
        out: dict[str, Any] = {
            "marks": [mark.to_dict() for mark in self.marks],
            "scales": {channel: dict(scale) for channel, scale in self.scales.items()},
        }
        if self.transforms:
            out["transforms"] = [dict(t) for t in self.transforms]
        if self.coordinate is not None:
            out["coordinate"] = dict(self.coordinate)
        if self.axes:
            out["axes"] = {channel: axis.to_dict() for channel, axis in self.axes.items()}
        if self.legend is not None:
            out["legend"] = False if self.legend is False else self.legend.to_dict()
        if self.tooltip is not None:
            out["tooltip"] = False if self.tooltip is False else dict(self.tooltip)
        out["streaming"] = self.streaming.to_dict()
        if self.temporal is not None:
            out["temporal"] = self.temporal.to_dict()
        out["theme"] = self.theme
        out["animate"] = self.animate
        return out

    def __repr__(self) -> str:
        kinds = ", ".join(mark.type for mark in self.marks)
        return f"CompiledSpec(marks=[{kinds}], theme={self.theme!r})"


__all__ = [
    "AxisSpec",
    "CompiledSpec",
    "ComputedFn",
    "Encoding",
    "LabelSpec",
    "LegendSpec",
    "Mark",
]
