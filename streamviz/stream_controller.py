"""Streaming controller tying ingestion, buffering, resolution and rendering.

Purpose
-------
``StreamingController`` is the glue a chart instance owns: it compiles the
chart configuration once, normalizes inbound rows against the column schema,
keeps them in a :class:`~streamviz.stream_buffer.BoundedStreamBuffer`, and
produces :class:`RenderFrame` objects (resolved rows plus compiled spec) for
the renderer.

Architecture
------------
Mutations are applied immediately under a lock; data is never dropped because
of throttling. After each mutation the controller pokes a
:class:`~streamviz.throttling.ThrottledNotifier`, whose callback resolves the
buffer at fire time and hands the frame to ``on_render``. Timer callbacks may
run on a timer thread, so resolution takes the same lock as mutation.

``clear()`` empties the buffer, discards any pending throttled notification
and notifies immediately with the empty view.

Examples
--------
>>> from streamviz import StreamingController
>>> ctrl = StreamingController(
...     [{"name": "ts", "type": "datetime"}, {"name": "v", "type": "float64"}],
...     {"chartType": "line", "xAxis": "ts", "yAxis": "v"},
... )
>>> ctrl.append([[1_000, 1.0], [2_000, 2.0]]).accepted
2
>>> len(ctrl.resolve().rows)
2
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Optional, Union

from .chart_config import DEFAULT_THEME, ChartConfigBase, StreamingPolicy
from .CompiledSpec import CompiledSpec
from .spec_compiler import compile_chart
from .stream_buffer import BoundedStreamBuffer
from .stream_normalization import normalize_rows
from .stream_schema import CanonicalRow, ColumnDescriptor, Row, StreamSource, coerce_columns
from .temporal import resolve as resolve_rows
from .temporal import time_mask, time_window
from .throttling import ThrottledNotifier

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


@dataclass(frozen=True)
class RenderFrame:
    """Outbound payload handed to the renderer.

    Parameters
    ----------
    rows : tuple[dict, ...]
        Resolved view of the buffer.
    spec : CompiledSpec
        Compiled chart specification.
    time_domain : tuple[float, float] or None
        Axis-mode x domain in epoch milliseconds.
    time_mask : str or None
        Date-format mask for the x-axis; an explicit ``x_format`` wins over
        the mask derived from ``time_domain``.
    """

    rows: tuple[CanonicalRow, ...]
    spec: CompiledSpec
    time_domain: Optional[tuple[float, float]] = None
    time_mask: Optional[str] = None


@dataclass(frozen=True)
class IngestResult:
    """Counts reported by one mutation call."""

    accepted: int
    rejected: int = 0
    evicted: int = 0


class StreamingController:
    """Own the buffer and render pipeline of one chart instance.

    Parameters
    ----------
    columns : Sequence[ColumnDescriptor or Mapping]
        Ordered column schema.
    config : ChartConfigBase, Mapping or CompiledSpec
        Chart configuration, compiled once; a ``CompiledSpec`` is used as is.
    on_render : Callable[[RenderFrame], Any], optional
        Receives frames at most once per throttle window.
    policy : StreamingPolicy or Mapping, optional
        Overrides the streaming policy carried by the compiled spec.
    theme : {"dark", "light"}
        Theme used when compiling ``config``.
    """

    def __init__(
        self,
        columns: Sequence[Union[ColumnDescriptor, Mapping[str, Any]]],
        config: Union[ChartConfigBase, Mapping[str, Any], CompiledSpec],
        on_render: Optional[Callable[[RenderFrame], Any]] = None,
        policy: Union[StreamingPolicy, Mapping[str, Any], None] = None,
        theme: str = DEFAULT_THEME,
    ) -> None:
        self._columns = coerce_columns(columns)
        spec = config if isinstance(config, CompiledSpec) else compile_chart(config, theme)
        if policy is not None:
            if isinstance(policy, Mapping):
                policy = StreamingPolicy.from_mapping(policy)
            spec = dataclasses.replace(spec, streaming=policy)
        self._spec = spec
        self._on_render = on_render
        self._lock = threading.Lock()
        self._buffer = BoundedStreamBuffer(spec.streaming.max_items)
        self._notifier = ThrottledNotifier(self._emit, spec.streaming.throttle)
        self._closed = False
        self._render_info_last_log_t = 0.0
        self._render_debug_last_log_t = 0.0

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def spec(self) -> CompiledSpec:
        return self._spec

    @property
    def columns(self) -> tuple[ColumnDescriptor, ...]:
        return self._columns

    @property
    def policy(self) -> StreamingPolicy:
        return self._spec.streaming

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)

    def __repr__(self) -> str:
        return (
            f"StreamingController(spec={self._spec!r}, rows={len(self)}, "
            f"max_items={self.policy.max_items})"
        )

    def snapshot(self) -> tuple[CanonicalRow, ...]:
        """Return the raw buffer contents in arrival order."""
        with self._lock:
            return self._buffer.snapshot()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def append(self, rows: Iterable[Row]) -> IngestResult:
        """Normalize ``rows`` and append them, evicting the oldest overflow."""
        self._check_open()
        accepted, rejected = normalize_rows(self._columns, rows)
        with self._lock:
            evicted = self._buffer.append(accepted)
        self._notifier()
        return IngestResult(accepted=len(accepted), rejected=rejected, evicted=evicted)

    def replace(self, rows: Iterable[Row]) -> IngestResult:
        """Normalize ``rows`` and make them the entire buffer contents."""
        self._check_open()
        accepted, rejected = normalize_rows(self._columns, rows)
        with self._lock:
            dropped = self._buffer.replace(accepted)
        self._notifier()
        return IngestResult(accepted=len(accepted) - dropped, rejected=rejected, evicted=dropped)

    def clear(self) -> None:
        """Empty the buffer and notify at once with the empty view.

        The notification counts as the throttle window's fire: a pending
        trailing fire is dropped and the window restarts, so an append right
        after ``clear`` is coalesced rather than delivered immediately.
        """
        self._check_open()
        with self._lock:
            self._buffer.clear()
        self._notifier.reset_window()
        self._emit()

    def ingest(self, source: StreamSource) -> IngestResult:
        """Apply a ``StreamSource`` according to the streaming policy mode.

        The source's own column schema is used to align its positional rows.
        """
        self._check_open()
        accepted, rejected = normalize_rows(source.columns, source.rows)
        with self._lock:
            if self.policy.mode == "replace":
                evicted = self._buffer.replace(accepted)
                kept = len(accepted) - evicted
            else:
                evicted = self._buffer.append(accepted)
                kept = len(accepted)
        self._notifier()
        logger.debug(
            f"ingested {kept} rows (mode={self.policy.mode}, live={source.is_live}, rejected={rejected})"
        )
        return IngestResult(accepted=kept, rejected=rejected, evicted=evicted)

    # ------------------------------------------------------------------
    # Resolution and delivery
    # ------------------------------------------------------------------

    def resolve(self) -> RenderFrame:
        """Resolve the current buffer into a :class:`RenderFrame`."""
        with self._lock:
            snapshot = self._buffer.snapshot()
        binding = self._spec.temporal
        rows = resolve_rows(snapshot, binding)
        domain = time_window(snapshot, binding)
        mask = self._spec.scale("x").get("mask")
        if mask is None and domain is not None:
            mask = time_mask(*domain)
        return RenderFrame(rows=rows, spec=self._spec, time_domain=domain, time_mask=mask)

    def flush(self) -> RenderFrame:
        """Deliver a frame now in place of any pending throttled notification."""
        self._notifier.reset_window()
        return self._emit()

    def close(self) -> None:
        """Stop notifications; later mutations raise ``RuntimeError``."""
        self._notifier.cancel()
        self._closed = True

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("StreamingController is closed")

    def _emit(self) -> RenderFrame:
        frame = self.resolve()
        self._log_render(frame)
        if self._on_render is not None:
            self._on_render(frame)
        return frame

    def _log_render(self, frame: RenderFrame) -> None:
        now = time.monotonic()
        if logger.isEnabledFor(logging.INFO) and (now - self._render_info_last_log_t) > 1.0:
            self._render_info_last_log_t = now
            logger.info(f"render rows={len(frame.rows)} marks={len(frame.spec.marks)}")

        if logger.isEnabledFor(logging.DEBUG) and (now - self._render_debug_last_log_t) > 0.5:
            self._render_debug_last_log_t = now
            logger.debug(f"time_domain={frame.time_domain} mask={frame.time_mask}")


__all__ = ["IngestResult", "RenderFrame", "StreamingController"]
