from __future__ import annotations

import json
from pathlib import Path

from .formatting import NO_DATA, format_money, format_number
from .health import HealthReport


def _pct(value) -> str:
    return NO_DATA if value is None else f"{value:.0f}%"


def make_summary_text(report: HealthReport) -> str:
    totals = report.metrics.totals
    drivers = report.metrics.top_categories[:5]
    driver_lines = "\n".join(f"  {d.key}: {format_money(d.cost)}" for d in drivers) or "  (none)"
    top = "\n".join(f"  [{a.severity}] {a.title}: {a.value}" for a in report.top) or "  (none)"
    wins = report.win_probability
    return (
        f"Estimate health: {report.score:.0f}/100 ({report.status}) against {report.baseline.label}.\n"
        f"Direct cost {format_money(totals.direct_cost)} over {format_number(totals.tons, 2)} tons "
        f"({format_money(totals.cost_per_ton)}/ton, {format_number(totals.hours_per_ton, 2)} hrs/ton, "
        f"p{report.positions.cost:.0f} / p{report.positions.hours:.0f}).\n"
        f"Data coverage {report.metrics.coverage.mean * 100:.0f}%, "
        f"top-3 concentration {report.metrics.concentration:.0f}%.\n"
        f"Bid total with markup {format_money(report.markup.total)}.\n"
        f"Win rate {_pct(wins.historical_win_rate)} for {wins.project_type}, "
        f"{_pct(wins.overall_win_rate)} overall.\n"
        f"Top cost drivers:\n{driver_lines}\n"
        f"Top alerts:\n{top}\n"
    )


def write_report_json(report: HealthReport, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report.to_dict(), indent=2), encoding="utf-8")
    return path
