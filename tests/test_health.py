from __future__ import annotations

import json
from datetime import date, datetime

import pytest

from fabest.config import MarkupSettings
from fabest.health import days_to_bid, evaluate_health
from fabest.models import EstimateLine
from fabest.winrate import WinLossRecord

AS_OF = "2025-03-01T09:00:00"


def _lines():
    return [
        EstimateLine(
            line_id=str(idx + 1),
            category=("Beams", "Columns", "Stairs", "Rails", "Plates")[idx % 5],
            weight_lbs=4000.0,
            material_cost=4408.0,
            labor_cost=1368.0,
            coating_cost=1824.0,
            labor_total=52.0,
            labor_rate=26.3,
            material_rate=1.1,
        )
        for idx in range(25)
    ]


def test_days_to_bid_rounds_up():
    assert days_to_bid("2025-03-05", "2025-03-01") == 4
    assert days_to_bid("2025-03-05", AS_OF) == 4
    assert days_to_bid(datetime(2025, 3, 1, 10), AS_OF) == 1
    assert days_to_bid(date(2025, 2, 27), AS_OF) == -2
    assert days_to_bid(None, AS_OF) is None
    assert days_to_bid("", AS_OF) is None


def test_days_to_bid_rejects_garbage():
    with pytest.raises(ValueError):
        days_to_bid("next tuesday", AS_OF)


def test_evaluate_health_end_to_end():
    report = evaluate_health(
        _lines() + [EstimateLine(line_id="99", material_cost=1e6, weight_lbs=1e6, status="Void")],
        project_type="Commercial",
        bid_due_date="2025-03-20",
        files_count=6,
        as_of=AS_OF,
        markup=MarkupSettings(overhead_pct=10.0),
        win_loss=[WinLossRecord("Commercial", "won"), WinLossRecord("Commercial", "lost")],
    )
    totals = report.metrics.totals
    assert totals.line_count == 25
    assert totals.tons == pytest.approx(50.0)
    assert totals.cost_per_ton == pytest.approx(3800.0)
    assert report.project_type == "Commercial"
    assert report.baseline.label == "Commercial • 50–150t"
    assert report.days_to_bid == 19
    assert report.win_probability.historical_win_rate == 50.0
    assert report.markup.overhead == pytest.approx(totals.direct_cost * 0.10)
    assert 0.0 <= report.score <= 100.0
    assert report.status in ("Healthy", "Needs Review", "At Risk")
    assert sum(1 for item in report.alerts if item.id in ("sched", "sched-missing")) == 1


def test_win_history_uses_unnormalized_project_type():
    report = evaluate_health(
        [],
        project_type=" Education ",
        as_of=AS_OF,
        win_loss=[
            WinLossRecord("Education", "won"),
            WinLossRecord("Education", "won"),
            WinLossRecord("Default", "lost"),
            WinLossRecord("", "lost"),
        ],
    )
    assert report.project_type == "Education"
    assert report.baseline.label == "Company • 50–150t"
    assert report.win_probability.project_type == "Education"
    assert report.win_probability.historical_win_rate == 100.0
    assert report.win_probability.overall_win_rate == 50.0
    assert report.to_dict()["project_type"] == "Education"


def test_empty_estimate_scores_without_raising():
    report = evaluate_health([], as_of=AS_OF)
    assert report.metrics.totals.line_count == 0
    assert report.positions.cost == 50.0
    assert report.score == pytest.approx(70.0)
    assert report.status == "Healthy"
    assert report.days_to_bid is None
    assert any(item.id == "sched-missing" for item in report.alerts)


def test_report_to_dict_is_json_ready():
    report = evaluate_health(_lines(), project_type="Industrial", as_of=AS_OF)
    payload = report.to_dict()
    text = json.dumps(payload)
    assert "NaN" not in text
    assert payload["thresholds_version"] == "2024.1"
    assert payload["totals"]["line_count"] == 25
    assert payload["as_of"] == "2025-03-01T09:00:00"
    assert payload["drivers"]["categories"][0]["lines"] == 5
    assert len(payload["curve"]) == 25
    assert payload["top_alerts"] == [item.as_dict() for item in report.top]


def test_zero_weight_payload_uses_null_rates():
    report = evaluate_health([EstimateLine(line_id="1", material_cost=100.0)], as_of=AS_OF)
    payload = report.to_dict()
    assert payload["totals"]["cost_per_ton"] is None
    assert payload["totals"]["hours_per_ton"] is None


def test_payload_gap_total_sums_each_gap():
    report = evaluate_health([EstimateLine(line_id="1", material_cost=100.0)], as_of=AS_OF)
    gaps = report.to_dict()["gaps"]
    parts = ("missing_weight", "missing_labor", "missing_rates", "coating_specified_no_cost")
    assert gaps["total"] == sum(gaps[name] for name in parts)
    assert gaps["total"] == report.metrics.gaps.total >= 1
