from __future__ import annotations

from dataclasses import replace

import pytest

from fabest.config import DEFAULT_THRESHOLDS
from fabest.models import Coverage
from fabest.percentile import Positions
from fabest.scoring import (
    STATUS_AT_RISK,
    STATUS_HEALTHY,
    STATUS_REVIEW,
    compute_score,
    concentration_penalty,
    health_status,
)

FULL = Coverage(weight=1.0, labor=1.0, rates=1.0, coating_pricing=1.0)


def test_ideal_point_scores_100():
    assert compute_score(Positions(50.0, 50.0), FULL, 0.0) == pytest.approx(100.0)


def test_empty_estimate_scores_positions_only():
    assert compute_score(Positions(50.0, 50.0), Coverage(), 0.0) == pytest.approx(70.0)


def test_extreme_positions_leave_coverage_share():
    assert compute_score(Positions(1.0, 99.0), FULL, 0.0) == pytest.approx(30.0 + 38 * 0.02 + 32 * 0.02)


def test_concentration_penalty_scales_linearly():
    assert concentration_penalty(55.0) == 0.0
    assert concentration_penalty(40.0) == 0.0
    assert concentration_penalty(77.5) == pytest.approx(0.5)
    assert concentration_penalty(100.0) == 1.0
    assert concentration_penalty(150.0) == 1.0
    assert compute_score(Positions(50.0, 50.0), FULL, 100.0) == pytest.approx(75.0)
    assert compute_score(Positions(50.0, 50.0), FULL, 77.5) == pytest.approx(87.5)


@pytest.mark.parametrize("cost", [1.0, 20.0, 50.0, 80.0, 99.0])
@pytest.mark.parametrize("hours", [1.0, 50.0, 99.0])
@pytest.mark.parametrize("concentration", [0.0, 60.0, 100.0])
def test_score_stays_in_range(cost, hours, concentration):
    score = compute_score(Positions(cost, hours), Coverage(0.5, 0.25, 1.0, 0.0), concentration)
    assert 0.0 <= score <= 100.0


def test_weights_come_from_thresholds():
    thresholds = replace(DEFAULT_THRESHOLDS, score_price_weight=50.0, score_labor_weight=50.0, score_coverage_weight=0.0)
    assert compute_score(Positions(50.0, 50.0), Coverage(), 0.0, thresholds) == pytest.approx(100.0)


def test_health_status():
    assert health_status(100.0) == STATUS_HEALTHY
    assert health_status(70.0) == STATUS_HEALTHY
    assert health_status(69.9) == STATUS_REVIEW
    assert health_status(40.0) == STATUS_REVIEW
    assert health_status(39.9) == STATUS_AT_RISK
