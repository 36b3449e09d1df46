from __future__ import annotations

import json
from pathlib import Path

from fabest.health import evaluate_health
from fabest.models import EstimateLine
from fabest.reporting import make_summary_text, write_report_json


def _report():
    lines = [
        EstimateLine(line_id="1", category="Beams", material_cost=1000.0, labor_cost=500.0, weight_lbs=2000.0, labor_total=40.0),
        EstimateLine(line_id="2", category="Columns", material_cost=400.0, weight_lbs=1000.0),
    ]
    return evaluate_health(lines, bid_due_date="2025-01-01", as_of="2025-01-05")


def test_summary_text_lists_score_and_drivers():
    report = _report()
    text = make_summary_text(report)
    assert text.startswith(f"Estimate health: {report.score:.0f}/100 ({report.status})")
    assert "Beams: $1.5k" in text
    assert "Columns: $400" in text
    assert report.top[0].id == "pos-cpt"
    for item in report.top:
        assert f"[{item.severity}] {item.title}: {item.value}" in text
    assert "Win rate — for Default, — overall." in text


def test_write_report_json(tmp_path: Path):
    path = write_report_json(_report(), tmp_path / "nested" / "health_report.json")
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["schedule"]["days_to_bid"] == -4
    assert payload["alerts"][0]["id"] == "pos-cpt"
