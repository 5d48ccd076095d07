"""Tests for bucket indexing, running means and neighbour approximation."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from batch_tuner.measurements import (
    MeasurementSlot,
    MeasurementTable,
    OperationKind,
    SlotState,
    bucket_index,
)


def _table() -> MeasurementTable:
    # 10 buckets of 100 bytes
    return MeasurementTable(step=100, max_size=1000)


def _measure(table: MeasurementTable, index: int, bps: float) -> None:
    size = (index + 1) * table.step
    table.add(size, size / bps)


def test_bucket_index_rounds_and_clamps():
    assert bucket_index(250, 100, 1000) == 1
    assert bucket_index(100, 100, 1000) == 0
    assert bucket_index(1, 100, 1000) == 0
    assert bucket_index(0, 100, 1000) == 0
    assert bucket_index(1000, 100, 1000) == 9
    assert bucket_index(50_000, 100, 1000) == 9


def test_bucket_index_is_monotonic():
    previous = bucket_index(0, 64, 4096)
    for size in range(1, 6000, 7):
        current = bucket_index(size, 64, 4096)
        assert current >= previous
        assert 0 <= current <= 63
        previous = current


def test_table_length_follows_config():
    assert len(_table()) == 10
    assert len(MeasurementTable(step=3, max_size=10)) == 3


def test_running_mean_over_samples():
    table = _table()
    for elapsed in (1.0, 0.5, 0.25):
        table.add(200, elapsed)
    slot = table[1]
    assert slot.state is SlotState.MEASURED
    assert slot.count == 3
    assert slot.mean == pytest.approx((200 + 400 + 800) / 3)


def test_scenario_a_recorded_bucket_is_returned_as_is():
    table = _table()
    table.add(250, 1.0)
    assert table[1].mean == pytest.approx(250.0)
    assert table.approximate(1) == pytest.approx(250.0)


def test_scenario_b_first_miss_marks_then_interpolates_nothing():
    table = _table()
    assert table.approximate(3) == 0.0
    assert table[3].state is SlotState.TRIED_ONCE
    assert table[3].value == -1.0
    assert table[3].count == 0
    assert table.approximate(3) == 0.0
    assert table[3].state is SlotState.TRIED_ONCE


def test_second_lookup_averages_nearest_neighbours():
    table = _table()
    _measure(table, 1, 100.0)
    _measure(table, 5, 300.0)
    assert table.approximate(3) == 0.0
    assert table.approximate(3) == pytest.approx(200.0)
    # Stays marked, no new side effect
    assert table.approximate(3) == pytest.approx(200.0)
    assert table[3].state is SlotState.TRIED_ONCE


def test_nearby_takes_closest_side_when_only_one_has_data():
    table = _table()
    _measure(table, 2, 500.0)
    _measure(table, 9, 10.0)
    table.approximate(5)
    # Left neighbour at distance 3 wins before the right one at distance 4
    assert table.approximate(5) == pytest.approx(500.0)


def test_nearby_skips_tried_once_slots():
    table = _table()
    _measure(table, 1, 120.0)
    table.approximate(2)  # marks 2
    table.approximate(3)
    assert table.approximate(3) == pytest.approx(120.0)


def test_nearby_at_table_edges():
    table = _table()
    _measure(table, 8, 42.0)
    table.approximate(0)
    assert table.approximate(0) == pytest.approx(42.0)
    assert table.approximate_nearby(9) == pytest.approx(42.0)


def test_recording_into_tried_slot_starts_from_zero_mean():
    table = _table()
    table.approximate(4)
    table.add(500, 2.0)
    assert table[4].state is SlotState.MEASURED
    assert table[4].count == 1
    assert table[4].mean == pytest.approx(250.0)


def test_direct_lookup_never_marks():
    table = _table()
    assert table.direct(6) == 0.0
    assert table[6].state is SlotState.UNMEASURED


def test_measured_iterates_only_real_data():
    table = _table()
    _measure(table, 0, 10.0)
    _measure(table, 7, 70.0)
    table.approximate(3)
    assert [i for i, _ in table.measured()] == [0, 7]


def test_slot_value_encoding():
    slot = MeasurementSlot()
    assert slot.value == 0.0
    slot.state = SlotState.TRIED_ONCE
    assert slot.value == -1.0
    slot.add(64.0)
    assert slot.value == 64.0


def test_operation_kind_parse():
    assert OperationKind.parse("raw-insert") is OperationKind.RAW_INSERT
    assert OperationKind.parse("RAW_INSERT") is OperationKind.RAW_INSERT
    assert OperationKind.parse(OperationKind.WRITE) is OperationKind.WRITE
    with pytest.raises(ValueError):
        OperationKind.parse("compress")
