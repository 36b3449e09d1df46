"""One full evaluation pass: lines and context in, immutable health report out."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence, Union

import pandas as pd

from .aggregation import aggregate
from .alerts import build_alerts, rank_alerts, top_alerts
from .baselines import Baseline, BaselineTable, select_baseline
from .config import DEFAULT_THRESHOLDS, HealthThresholds, MarkupSettings
from .markup import MarkupBreakdown, apply_markup
from .models import AggregatedMetrics, AlertItem, EstimateLine
from .percentile import Positions, compute_positions
from .project_meta import DEFAULT_PROJECT_TYPE
from .scoring import compute_score, health_status
from .winrate import WinLossRecord, WinProbability, win_probability

logger = logging.getLogger(__name__)

DateLike = Union[str, date, datetime, pd.Timestamp]

SECONDS_PER_DAY = 86400.0


def to_timestamp(value: Optional[DateLike]) -> Optional[pd.Timestamp]:
    """Parse ``value`` into a naive timestamp; aware values are converted to UTC first."""

    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    stamp = pd.Timestamp(value)
    if stamp is pd.NaT:
        return None
    if stamp.tzinfo is not None:
        stamp = stamp.tz_convert("UTC").tz_localize(None)
    return stamp


def days_to_bid(due: Optional[DateLike], as_of: Optional[DateLike] = None) -> Optional[int]:
    """Whole days until ``due``, rounded up; negative once the date has passed.

    ``None`` when there is no due date.  ``as_of`` defaults to now.
    """

    due_ts = to_timestamp(due)
    if due_ts is None:
        return None
    now_ts = to_timestamp(as_of) or to_timestamp(datetime.now())
    delta = (due_ts - now_ts).total_seconds() / SECONDS_PER_DAY
    return int(math.ceil(delta))


@dataclass(frozen=True)
class HealthReport:
    project_type: str
    baseline: Baseline
    metrics: AggregatedMetrics
    positions: Positions
    alerts: Sequence[AlertItem]
    score: float
    status: str
    markup: MarkupBreakdown
    win_probability: WinProbability
    days_to_bid: Optional[int] = None
    files_count: int = 0
    thresholds_version: str = DEFAULT_THRESHOLDS.version
    as_of: Optional[str] = None
    top: Sequence[AlertItem] = field(default_factory=tuple)

    @property
    def ranked_alerts(self) -> List[AlertItem]:
        return rank_alerts(self.alerts)

    def to_dict(self) -> Dict[str, object]:
        metrics = self.metrics
        totals = metrics.totals
        mix = metrics.mix
        return {
            "project_type": self.project_type,
            "thresholds_version": self.thresholds_version,
            "as_of": self.as_of,
            "score": round(self.score, 2),
            "status": self.status,
            "totals": {
                "material_cost": totals.material_cost,
                "labor_cost": totals.labor_cost,
                "coating_cost": totals.coating_cost,
                "hardware_cost": totals.hardware_cost,
                "direct_cost": totals.direct_cost,
                "line_cost": totals.line_cost,
                "total_weight_lbs": totals.total_weight_lbs,
                "tons": totals.tons,
                "total_labor_hours": totals.total_labor_hours,
                "line_count": totals.line_count,
                "cost_per_ton": totals.cost_per_ton,
                "hours_per_ton": totals.hours_per_ton,
            },
            "baseline": {
                "label": self.baseline.label,
                "cost_per_ton": self.baseline.cost_per_ton.as_dict(),
                "hours_per_ton": self.baseline.hours_per_ton.as_dict(),
                "material_pct": self.baseline.material_pct,
                "labor_pct": self.baseline.labor_pct,
            },
            "positions": self.positions.as_dict(),
            "coverage": metrics.coverage.as_dict(),
            "gaps": {
                "missing_weight": metrics.gaps.missing_weight,
                "missing_labor": metrics.gaps.missing_labor,
                "missing_rates": metrics.gaps.missing_rates,
                "coating_specified_no_cost": metrics.gaps.coating_specified_no_cost,
                "total": metrics.gaps.total,
            },
            "mix": {
                "material_pct": mix.material_pct,
                "labor_pct": mix.labor_pct,
                "coating_pct": mix.coating_pct,
                "hardware_pct": mix.hardware_pct,
                "total_surface_area": mix.total_surface_area,
                "coated_surface_area": mix.coated_surface_area,
                "coating_cost_per_sf": mix.coating_cost_per_sf,
                "plate_weight_pct": mix.plate_weight_pct,
                "misc_pct": mix.misc_pct,
            },
            "concentration": metrics.concentration,
            "implied_rates": {
                "blended_labor_rate": metrics.blended_labor_rate,
                "material_per_lb": metrics.material_per_lb,
            },
            "drivers": {
                "categories": [_driver_dict(d) for d in metrics.top_categories],
                "subcategories": [_driver_dict(d) for d in metrics.top_subcategories],
            },
            "labor_operations": [
                {"key": op.key, "label": op.label, "hours": op.hours} for op in metrics.labor_operations
            ],
            "curve": [
                {"x": p.x, "cost": p.cost, "cost_per_ton": p.cost_per_ton, "hours_per_ton": p.hours_per_ton}
                for p in metrics.curve
            ],
            "schedule": {"days_to_bid": self.days_to_bid, "files_count": self.files_count},
            "markup": self.markup.as_dict(),
            "win_probability": self.win_probability.as_dict(),
            "alerts": [item.as_dict() for item in self.alerts],
            "top_alerts": [item.as_dict() for item in self.top],
        }


def _driver_dict(driver) -> Dict[str, object]:
    return {
        "key": driver.key,
        "cost": driver.cost,
        "hours": driver.hours,
        "weight_lbs": driver.weight_lbs,
        "lines": driver.lines,
        "cost_per_ton": driver.cost_per_ton,
    }


def evaluate_health(
    lines: Iterable[EstimateLine],
    *,
    project_type: Optional[str] = None,
    bid_due_date: Optional[DateLike] = None,
    files_count: int = 0,
    as_of: Optional[DateLike] = None,
    baselines: Optional[BaselineTable] = None,
    thresholds: HealthThresholds = DEFAULT_THRESHOLDS,
    markup: Optional[MarkupSettings] = None,
    win_loss: Iterable[WinLossRecord] = (),
) -> HealthReport:
    """
    Aggregate ``lines`` and score them against the matching baseline.

    Void lines are ignored.  Nothing in this pass raises on empty or partial
    data; only an unparseable ``bid_due_date``/``as_of`` raises ``ValueError``.
    """

    kind = (str(project_type).strip() if project_type else "") or DEFAULT_PROJECT_TYPE
    metrics = aggregate(lines)
    totals = metrics.totals
    baseline = select_baseline(project_type, totals.tons, baselines)
    logger.debug(
        "Baseline %s selected for %s (%.2f tons, %s active lines)",
        baseline.label,
        kind,
        totals.tons,
        totals.line_count,
    )

    positions = compute_positions(totals, baseline)
    as_of_ts = to_timestamp(as_of) or to_timestamp(datetime.now())
    days = days_to_bid(bid_due_date, as_of_ts)
    files = max(0, int(files_count or 0))
    alerts = build_alerts(
        metrics,
        baseline,
        positions=positions,
        days_to_bid=days,
        files_count=files,
        thresholds=thresholds,
    )
    score = compute_score(positions, metrics.coverage, metrics.concentration, thresholds)
    status = health_status(score, thresholds)
    logger.debug("Score %.1f (%s); positions cost=p%.0f hours=p%.0f", score, status, positions.cost, positions.hours)

    return HealthReport(
        project_type=kind,
        baseline=baseline,
        metrics=metrics,
        positions=positions,
        alerts=tuple(alerts),
        score=score,
        status=status,
        markup=apply_markup(totals, markup or MarkupSettings()),
        win_probability=win_probability(win_loss, kind),
        days_to_bid=days,
        files_count=files,
        thresholds_version=thresholds.version,
        as_of=as_of_ts.isoformat() if as_of_ts is not None else None,
        top=tuple(top_alerts(alerts)),
    )


__all__ = ["HealthReport", "days_to_bid", "evaluate_health", "to_timestamp"]
