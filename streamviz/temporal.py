"""Temporal binding and resolution of buffered rows into a finite view.

Purpose
-------
A streaming buffer grows without bound in time even though its length is
capped. This module decides which rows a renderer should draw for a given
buffer snapshot, under three temporal semantics:

- ``axis``: sliding time window ending at the latest observed timestamp.
- ``frame``: only the rows sharing the single latest timestamp.
- ``key``: one row per distinct key (last seen wins).

Concepts and structure
----------------------
``TemporalBinding`` is the immutable declaration (mode, field(s), range).
``resolve`` is a pure function of ``(snapshot, binding)``; it never raises for
data anomalies. Rows with a missing or unparseable temporal value are left out
of the max computation, of finite axis windows and of frame results.
Timestamps are handled as float epoch milliseconds in NumPy arrays so window
masks are vectorized.

Important gotchas
-----------------
- Numeric ``range`` values are minutes; numeric row timestamps are epoch
  milliseconds.
- Naive ``datetime`` values are interpreted as UTC.
- Key mode groups by arrival order unless ``order_field`` is given.
- An infinite axis range keeps every row, sorted by time; rows without a
  timestamp trail the view in arrival order.

Examples
--------
>>> from streamviz.temporal import TemporalBinding, resolve
>>> rows = ({"t": 0, "v": 1}, {"t": 1000, "v": 2}, {"t": 1000, "v": 3})
>>> [r["v"] for r in resolve(rows, TemporalBinding("frame", "t"))]
[2, 3]
"""

from __future__ import annotations

import logging
import math
from collections.abc import Hashable, Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta, timezone
from typing import Any, Literal, Optional, Union

import numpy as np

from .stream_schema import CanonicalRow, FieldName

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

TemporalMode = Literal["axis", "frame", "key"]
TEMPORAL_MODES: tuple[str, ...] = ("axis", "frame", "key")

INFINITE = "infinite"
_INFINITE_TOKENS = frozenset({"infinite", "infinity", "inf"})

RangeLike = Union[int, float, timedelta, str, None]
FieldSpec = Union[FieldName, tuple[FieldName, ...]]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MS_PER_MINUTE = 60_000.0


class _UndefinedKey:
    """Sentinel for a key component that is absent from a row."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "UNDEFINED"


UNDEFINED = _UndefinedKey()


def _normalize_range(value: RangeLike) -> float | str:
    """Return ``value`` as minutes, or :data:`INFINITE`."""
    if value is None:
        return INFINITE
    if isinstance(value, str):
        if value.strip().lower() in _INFINITE_TOKENS:
            return INFINITE
        raise ValueError(f"Unsupported temporal range {value!r}; use minutes or 'infinite'")
    if isinstance(value, timedelta):
        minutes = value.total_seconds() / 60.0
    elif isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
        raise ValueError(f"Unsupported temporal range {value!r}; use minutes or 'infinite'")
    else:
        minutes = float(value)
    if math.isinf(minutes) and minutes > 0:
        return INFINITE
    if math.isnan(minutes) or minutes < 0:
        raise ValueError(f"Temporal range must be >= 0 minutes, got {value!r}")
    return minutes


def _normalize_field(value: Any) -> FieldSpec | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value or None
    if isinstance(value, Sequence):
        fields = tuple(str(item) for item in value if item)
        return fields or None
    raise ValueError(f"Temporal field must be a name or a sequence of names, got {value!r}")


@dataclass(frozen=True)
class TemporalBinding:
    """Declaration of how a chart binds to time.

    Parameters
    ----------
    mode : {"axis", "frame", "key"}
        Temporal semantics.
    field : str or tuple[str, ...] or None
        Temporal field for axis/frame (the first entry is used when a sequence
        is given), or the key field(s) for key mode. ``None`` leaves the
        binding unbound; the compiler fills it from the chart's primary field.
    range : float or str
        Window length in minutes for axis mode, or ``"infinite"``. Accepts a
        :class:`datetime.timedelta`, ``math.inf``, ``"Infinity"`` and ``None``
        on construction.
    order_field : str or None
        Key mode only: when set, the row with the latest timestamp in this
        field wins per key instead of the latest arrival.
    """

    mode: TemporalMode
    field: Optional[FieldSpec] = None
    range: float | str = INFINITE
    order_field: Optional[FieldName] = None

    def __post_init__(self) -> None:
        if self.mode not in TEMPORAL_MODES:
            raise ValueError(
                f"Invalid temporal mode {self.mode!r}, must be one of {TEMPORAL_MODES}"
            )
        object.__setattr__(self, "field", _normalize_field(self.field))
        object.__setattr__(self, "range", _normalize_range(self.range))
        if self.order_field is not None and self.mode != "key":
            raise ValueError("order_field is only meaningful for key mode")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> TemporalBinding:
        """Build a binding from the ``{mode, field, range}`` wire format."""
        return cls(
            mode=data["mode"],
            field=data.get("field"),
            range=data.get("range"),
            order_field=data.get("orderField", data.get("order_field")),
        )

    @property
    def is_bound(self) -> bool:
        return self.field is not None

    @property
    def is_infinite(self) -> bool:
        return self.range == INFINITE

    @property
    def key_fields(self) -> tuple[FieldName, ...]:
        if self.field is None:
            return ()
        if isinstance(self.field, str):
            return (self.field,)
        return self.field

    @property
    def time_field(self) -> FieldName | None:
        fields = self.key_fields
        return fields[0] if fields else None

    @property
    def window_ms(self) -> float | None:
        """Axis window length in milliseconds, ``None`` when infinite."""
        if self.is_infinite:
            return None
        return float(self.range) * _MS_PER_MINUTE

    def with_default_field(self, default: FieldSpec | None) -> TemporalBinding:
        """Return a copy whose blank field falls back to ``default``."""
        if self.is_bound or default is None:
            return self
        return replace(self, field=default)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "mode": self.mode,
            "field": list(self.field) if isinstance(self.field, tuple) else self.field,
        }
        if self.mode == "axis":
            out["range"] = self.range
        if self.order_field is not None:
            out["orderField"] = self.order_field
        return out


# -----------------------------
# Timestamp parsing
# -----------------------------


def to_epoch_ms(value: Any) -> float | None:
    """Return ``value`` as float epoch milliseconds, or ``None`` if unusable.

    Numbers are taken as epoch milliseconds. ``datetime``/``date``,
    ``numpy.datetime64`` and ISO-8601 strings are converted; naive datetimes
    are treated as UTC. Booleans, NaN/NaT and unparseable values are ``None``.
    """
    if value is None or isinstance(value, (bool, np.bool_)):
        return None
    if isinstance(value, np.datetime64):
        if np.isnat(value):
            return None
        return float(value.astype("datetime64[ms]").astype(np.int64))
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        delta = value - _EPOCH
        return (delta.days * 86_400 + delta.seconds) * 1000.0 + delta.microseconds / 1000.0
    if isinstance(value, date):
        return to_epoch_ms(datetime(value.year, value.month, value.day))
    if isinstance(value, (int, float, np.integer, np.floating)):
        out = float(value)
        return out if math.isfinite(out) else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text[-1] in "Zz":
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return to_epoch_ms(parsed)
    return None


def _timestamps(rows: Sequence[CanonicalRow], field: FieldName) -> np.ndarray:
    """Return epoch-ms timestamps for ``field`` with NaN where missing."""

    def _one(row: CanonicalRow) -> float:
        stamp = to_epoch_ms(row.get(field))
        return math.nan if stamp is None else stamp

    return np.fromiter((_one(row) for row in rows), dtype=float, count=len(rows))


def _freeze(value: Any) -> Hashable:
    """Return a hashable stand-in with the same structural equality."""
    if value is None:
        return UNDEFINED
    if isinstance(value, np.ndarray):
        return tuple(_freeze(item) for item in value.tolist())
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    if isinstance(value, Mapping):
        return frozenset((key, _freeze(item)) for key, item in value.items())
    if isinstance(value, (set, frozenset)):
        return frozenset(_freeze(item) for item in value)
    try:
        hash(value)
    except TypeError:
        return ("__unhashable__", type(value).__name__, repr(value))
    return value


def key_of(row: CanonicalRow, fields: Sequence[FieldName]) -> tuple[Hashable, ...]:
    """Composite key of ``row``; absent or null components become ``UNDEFINED``."""
    return tuple(_freeze(row[f]) if f in row else UNDEFINED for f in fields)


# -----------------------------
# Resolution
# -----------------------------


def _resolve_axis(
    snapshot: tuple[CanonicalRow, ...], binding: TemporalBinding
) -> tuple[CanonicalRow, ...]:
    stamps = _timestamps(snapshot, binding.time_field)
    if binding.is_infinite:
        # NaN sorts last, so rows without a timestamp trail in buffer order.
        return tuple(snapshot[i] for i in np.argsort(stamps, kind="stable"))
    valid = ~np.isnan(stamps)
    if not valid.any():
        return ()
    ref = stamps[valid].max()
    lower = ref - binding.window_ms
    mask = valid & (stamps >= lower) & (stamps <= ref)
    idx = np.flatnonzero(mask)
    order = idx[np.argsort(stamps[idx], kind="stable")]
    return tuple(snapshot[i] for i in order)


def _resolve_frame(
    snapshot: tuple[CanonicalRow, ...], binding: TemporalBinding
) -> tuple[CanonicalRow, ...]:
    stamps = _timestamps(snapshot, binding.time_field)
    valid = ~np.isnan(stamps)
    if not valid.any():
        return ()
    ref = stamps[valid].max()
    idx = np.flatnonzero(valid & (stamps == ref))
    return tuple(snapshot[i] for i in idx)


def _resolve_key(
    snapshot: tuple[CanonicalRow, ...], binding: TemporalBinding
) -> tuple[CanonicalRow, ...]:
    fields = binding.key_fields
    # dict insertion order gives first-appearance order; reassignment keeps it
    winners: dict[tuple[Hashable, ...], int] = {}
    if binding.order_field is None:
        for i, row in enumerate(snapshot):
            winners[key_of(row, fields)] = i
    else:
        stamps = _timestamps(snapshot, binding.order_field)
        for i, row in enumerate(snapshot):
            key = key_of(row, fields)
            current = winners.get(key)
            if current is None or _supersedes(stamps[i], stamps[current]):
                winners[key] = i
    return tuple(snapshot[i] for i in winners.values())


def _supersedes(candidate: float, current: float) -> bool:
    """Whether a later-arriving row replaces the current key winner.

    Ties go to the later arrival; a row without a timestamp never replaces one
    that has a timestamp.
    """
    if math.isnan(candidate):
        return math.isnan(current)
    if math.isnan(current):
        return True
    return candidate >= current


_RESOLVERS = {
    "axis": _resolve_axis,
    "frame": _resolve_frame,
    "key": _resolve_key,
}


def resolve(
    snapshot: Sequence[CanonicalRow],
    binding: TemporalBinding | None,
) -> tuple[CanonicalRow, ...]:
    """Return the rows a renderer should draw for ``snapshot``.

    Parameters
    ----------
    snapshot : Sequence[dict]
        Arrival-ordered canonical rows.
    binding : TemporalBinding or None
        Temporal declaration. ``None`` or an unbound field passes the snapshot
        through unchanged.

    Returns
    -------
    tuple[dict, ...]
        The resolved view. Row objects are shared with the snapshot, not
        copied. Empty snapshots resolve to an empty view in every mode.
    """
    rows = tuple(snapshot)
    if binding is None or not rows:
        return rows
    if not binding.is_bound:
        logger.debug(f"temporal binding for mode={binding.mode} has no field; passing through")
        return rows
    return _RESOLVERS[binding.mode](rows, binding)


def time_window(
    snapshot: Sequence[CanonicalRow],
    binding: TemporalBinding | None,
) -> tuple[float, float] | None:
    """Return the sliding ``(min_ms, max_ms)`` domain for axis mode.

    A finite range yields ``[ref - range, ref]``; an infinite range yields the
    data extent. Other modes, unbound bindings and snapshots without any
    parseable timestamp return ``None``.
    """
    if binding is None or binding.mode != "axis" or not binding.is_bound or not snapshot:
        return None
    stamps = _timestamps(tuple(snapshot), binding.time_field)
    stamps = stamps[~np.isnan(stamps)]
    if stamps.size == 0:
        return None
    ref = float(stamps.max())
    if binding.is_infinite:
        return float(stamps.min()), ref
    return ref - binding.window_ms, ref


def time_mask(min_ms: float, max_ms: float) -> str:
    """Pick a date-format mask that suits the span ``[min_ms, max_ms]``."""
    start = _EPOCH + timedelta(milliseconds=min_ms)
    end = _EPOCH + timedelta(milliseconds=max_ms)
    if start.year != end.year:
        return "YY/MM/DD"
    if start.month != end.month:
        return "MM/DD"
    if start.day != end.day:
        return "MM/DD" if abs(start.day - end.day) > 1 else "MM/DD HH:mm:ss"
    return "HH:mm:ss"


__all__ = [
    "INFINITE",
    "TEMPORAL_MODES",
    "TemporalBinding",
    "TemporalMode",
    "UNDEFINED",
    "key_of",
    "resolve",
    "time_mask",
    "time_window",
    "to_epoch_ms",
]
