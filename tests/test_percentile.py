from __future__ import annotations

import math

import pytest

from fabest.baselines import Baseline, FiveNumberSummary
from fabest.models import CostTotals
from fabest.percentile import compute_positions, in_band, percentile_position

SUMMARY = FiveNumberSummary(2000.0, 2500.0, 3000.0, 3500.0, 4000.0)


def test_anchors_and_bounds():
    assert percentile_position(2000.0, SUMMARY) == 1.0
    assert percentile_position(1500.0, SUMMARY) == 1.0
    assert percentile_position(4000.0, SUMMARY) == 99.0
    assert percentile_position(10_000.0, SUMMARY) == 99.0
    assert percentile_position(3000.0, SUMMARY) == 50.0
    assert percentile_position(2500.0, SUMMARY) == pytest.approx(25.0)
    assert percentile_position(3500.0, SUMMARY) == pytest.approx(75.0)


def test_segments_interpolate_linearly():
    assert percentile_position(2250.0, SUMMARY) == pytest.approx(17.5)
    assert percentile_position(2750.0, SUMMARY) == pytest.approx(37.5)
    assert percentile_position(3250.0, SUMMARY) == pytest.approx(62.5)
    assert percentile_position(3750.0, SUMMARY) == pytest.approx(82.5)


@pytest.mark.parametrize("value", [None, 0.0, -5.0, math.nan, math.inf])
def test_missing_values_are_neutral(value):
    assert percentile_position(value, SUMMARY) == 50.0


def test_position_is_monotonic():
    values = [2001.0 + step * 25.0 for step in range(80)]
    positions = [percentile_position(v, SUMMARY) for v in values]
    assert all(later >= earlier for earlier, later in zip(positions, positions[1:]))
    assert all(1.0 <= p <= 99.0 for p in positions)


def test_in_band():
    assert in_band(50.0) == 1.0
    assert in_band(0.0) == 0.0
    assert in_band(100.0) == 0.0
    assert in_band(75.0) == pytest.approx(0.5)


def test_compute_positions_single_line_scenario():
    baseline = Baseline(
        label="test",
        cost_per_ton=SUMMARY,
        hours_per_ton=FiveNumberSummary(20.0, 25.0, 30.0, 35.0, 40.0),
        material_pct=58.0,
        labor_pct=18.0,
    )
    totals = CostTotals(material_cost=1000.0, labor_cost=500.0, total_weight_lbs=2000.0, total_labor_hours=40.0)
    assert totals.tons == 1.0
    assert totals.cost_per_ton == 1500.0
    positions = compute_positions(totals, baseline)
    assert positions.cost == 1.0
    assert positions.hours == 99.0


def test_compute_positions_without_weight_is_neutral():
    baseline = Baseline("test", SUMMARY, SUMMARY, 0.0, 0.0)
    positions = compute_positions(CostTotals(material_cost=100.0), baseline)
    assert (positions.cost, positions.hours) == (50.0, 50.0)
