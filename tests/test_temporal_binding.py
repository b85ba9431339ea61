from __future__ import annotations

import math
from datetime import date, datetime, timedelta, timezone

import numpy as np
import pytest

from streamviz.temporal import INFINITE, TemporalBinding, time_mask, time_window, to_epoch_ms

DAY_MS = 86_400_000


def test_binding_normalizes_range_spellings() -> None:
    assert TemporalBinding("axis", "t").range == INFINITE
    assert TemporalBinding("axis", "t", range=None).is_infinite
    assert TemporalBinding("axis", "t", range="Infinity").is_infinite
    assert TemporalBinding("axis", "t", range=math.inf).is_infinite
    assert TemporalBinding("axis", "t", range=timedelta(minutes=5)).range == 5.0
    assert TemporalBinding("axis", "t", range=2).window_ms == 120_000.0


@pytest.mark.parametrize("bad", [-1, float("nan"), "soon", True])
def test_binding_rejects_invalid_ranges(bad) -> None:
    with pytest.raises(ValueError):
        TemporalBinding("axis", "t", range=bad)


def test_binding_rejects_unknown_mode_and_misplaced_order_field() -> None:
    with pytest.raises(ValueError, match="Invalid temporal mode"):
        TemporalBinding("window", "t")
    with pytest.raises(ValueError, match="order_field"):
        TemporalBinding("axis", "t", order_field="t")


def test_binding_field_forms() -> None:
    assert TemporalBinding("frame", "").field is None
    assert not TemporalBinding("frame", "").is_bound
    composite = TemporalBinding("key", ["a", "b"])
    assert composite.field == ("a", "b")
    assert composite.key_fields == ("a", "b")
    assert composite.time_field == "a"


def test_binding_with_default_field_only_fills_blank() -> None:
    blank = TemporalBinding("axis", range=1)
    assert blank.with_default_field("ts").field == "ts"
    assert blank.with_default_field("ts").range == 1.0
    bound = TemporalBinding("axis", "time")
    assert bound.with_default_field("ts") is bound


def test_binding_from_mapping_and_to_dict() -> None:
    binding = TemporalBinding.from_mapping({"mode": "axis", "field": "ts", "range": 10})
    assert binding == TemporalBinding("axis", "ts", range=10)
    assert binding.to_dict() == {"mode": "axis", "field": "ts", "range": 10.0}

    keyed = TemporalBinding.from_mapping({"mode": "key", "field": ["a", "b"], "orderField": "t"})
    assert keyed.to_dict() == {"mode": "key", "field": ["a", "b"], "orderField": "t"}


def test_to_epoch_ms_accepts_common_time_representations() -> None:
    assert to_epoch_ms(1_500) == 1_500.0
    assert to_epoch_ms(np.int64(2_000)) == 2_000.0
    assert to_epoch_ms(datetime(1970, 1, 1, 0, 0, 1)) == 1_000.0
    assert to_epoch_ms(datetime(1970, 1, 1, 1, 0, 0, tzinfo=timezone(timedelta(hours=1)))) == 0.0
    assert to_epoch_ms(date(1970, 1, 2)) == float(DAY_MS)
    assert to_epoch_ms("1970-01-01T00:00:01Z") == 1_000.0
    assert to_epoch_ms("1970-01-01T00:00:01.500") == 1_500.0
    assert to_epoch_ms(np.datetime64("1970-01-01T00:00:02")) == 2_000.0


@pytest.mark.parametrize(
    "value",
    [None, True, False, float("nan"), float("inf"), "", "yesterday", object(), np.datetime64("NaT")],
)
def test_to_epoch_ms_rejects_unusable_values(value) -> None:
    assert to_epoch_ms(value) is None


def test_time_window_for_finite_and_infinite_axis() -> None:
    rows = ({"t": 30_000}, {"t": None}, {"t": 90_000})
    assert time_window(rows, TemporalBinding("axis", "t", range=1)) == (30_000.0, 90_000.0)
    assert time_window(rows, TemporalBinding("axis", "t", range=0.5)) == (60_000.0, 90_000.0)
    assert time_window(rows, TemporalBinding("axis", "t")) == (30_000.0, 90_000.0)


def test_time_window_is_none_outside_axis_mode() -> None:
    rows = ({"t": 1},)
    assert time_window(rows, None) is None
    assert time_window(rows, TemporalBinding("frame", "t")) is None
    assert time_window((), TemporalBinding("axis", "t")) is None
    assert time_window(({"t": None},), TemporalBinding("axis", "t")) is None


def test_time_mask_follows_span() -> None:
    assert time_mask(0, 3_600_000) == "HH:mm:ss"
    assert time_mask(0, DAY_MS + 1) == "MM/DD HH:mm:ss"
    assert time_mask(0, 4 * DAY_MS) == "MM/DD"
    assert time_mask(0, 40 * DAY_MS) == "MM/DD"
    assert time_mask(0, 400 * DAY_MS) == "YY/MM/DD"
