"""Threshold checks that turn aggregated metrics into severity-tagged findings."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from .baselines import Baseline
from .config import DEFAULT_THRESHOLDS, HealthThresholds
from .formatting import NO_DATA, format_money, format_number, format_signed_pct
from .models import AggregatedMetrics, AlertItem
from .percentile import Positions, compute_positions

SEVERITY_CRITICAL = "critical"
SEVERITY_WARNING = "warning"
SEVERITY_INFO = "info"
SEVERITY_OK = "ok"

SEVERITY_RANK = {
    SEVERITY_CRITICAL: 0,
    SEVERITY_WARNING: 1,
    SEVERITY_INFO: 2,
    SEVERITY_OK: 3,
}
DEFAULT_VISIBLE_SEVERITIES = frozenset({SEVERITY_CRITICAL, SEVERITY_WARNING, SEVERITY_INFO})

SCHEDULE_ALERT_TITLE = "Schedule pressure"
NO_DUE_DATE_ALERT_TITLE = "No bid due date"

_COVERAGE_ALERT_IDS = frozenset({"coverage", "coat-area", "steel", "blend", "docs"})


def _worst(*severities: str) -> str:
    return min(severities, key=lambda sev: SEVERITY_RANK[sev])


def _delta_pct(value: Optional[float], median: float) -> Optional[float]:
    if value is None or median <= 0:
        return None
    return (value - median) / median * 100.0


def _ratio_severity(ratio: float, thresholds: HealthThresholds) -> str:
    if ratio < thresholds.coverage_info_ratio:
        return SEVERITY_WARNING
    if ratio < thresholds.coverage_ok_ratio:
        return SEVERITY_INFO
    return SEVERITY_OK


def schedule_alert(days_to_bid: Optional[int], thresholds: HealthThresholds = DEFAULT_THRESHOLDS) -> AlertItem:
    """Exactly one schedule finding: pressure when a due date exists, a nudge otherwise."""

    if days_to_bid is None:
        return AlertItem(
            id="sched-missing",
            severity=SEVERITY_INFO,
            title=NO_DUE_DATE_ALERT_TITLE,
            detail="Add bid due date to enable schedule guardrails",
            value=NO_DATA,
        )
    if days_to_bid < 0:
        severity = SEVERITY_CRITICAL
    elif days_to_bid <= thresholds.schedule_warn_days:
        severity = SEVERITY_WARNING
    elif days_to_bid <= thresholds.schedule_info_days:
        severity = SEVERITY_INFO
    else:
        severity = SEVERITY_OK
    return AlertItem(
        id="sched",
        severity=severity,
        title=SCHEDULE_ALERT_TITLE,
        detail="Bid due date is past due" if days_to_bid < 0 else "Days remaining until bid due",
        value=f"{days_to_bid}d",
    )


def _gap_alerts(metrics: AggregatedMetrics, thresholds: HealthThresholds) -> List[AlertItem]:
    items: List[AlertItem] = []
    gaps = metrics.gaps
    coverage = metrics.coverage
    if gaps.missing_weight > 0:
        count_sev = SEVERITY_WARNING if gaps.missing_weight >= thresholds.gap_count_warn else SEVERITY_INFO
        items.append(
            AlertItem(
                id="gap-weight",
                severity=_worst(count_sev, _ratio_severity(coverage.weight, thresholds)),
                title="Missing weights",
                detail="Lines without computed weight distort $/ton",
                value=str(gaps.missing_weight),
            )
        )
    if gaps.missing_labor > 0:
        count_sev = SEVERITY_WARNING if gaps.missing_labor >= thresholds.gap_count_warn else SEVERITY_INFO
        items.append(
            AlertItem(
                id="gap-labor",
                severity=_worst(count_sev, _ratio_severity(coverage.labor, thresholds)),
                title="Missing labor",
                detail="Lines without labor hours distort hrs/ton",
                value=str(gaps.missing_labor),
            )
        )
    if gaps.missing_rates > 0:
        items.append(
            AlertItem(
                id="gap-rates",
                severity=_worst(SEVERITY_INFO, _ratio_severity(coverage.rates, thresholds)),
                title="Missing rates",
                detail="Lines without rates may be priced from defaults/zeros",
                value=str(gaps.missing_rates),
            )
        )
    if gaps.coating_specified_no_cost > 0:
        items.append(
            AlertItem(
                id="gap-coat",
                severity=SEVERITY_WARNING,
                title="Unpriced coating",
                detail="Coating system specified with $0 coating cost",
                value=str(gaps.coating_specified_no_cost),
            )
        )
    return items


def build_alerts(
    metrics: AggregatedMetrics,
    baseline: Baseline,
    *,
    positions: Optional[Positions] = None,
    days_to_bid: Optional[int] = None,
    files_count: int = 0,
    thresholds: HealthThresholds = DEFAULT_THRESHOLDS,
) -> List[AlertItem]:
    """Evaluate every alert rule against ``metrics`` and ``baseline``.

    Items come back in rule order; use :func:`rank_alerts` for display order.
    A rule whose inputs are missing reports ``—`` instead of raising.
    """

    t = thresholds
    totals = metrics.totals
    if positions is None:
        positions = compute_positions(totals, baseline)
    cost_per_ton = totals.cost_per_ton
    hours_per_ton = totals.hours_per_ton
    items: List[AlertItem] = []

    def _position_sev(position: float) -> str:
        return SEVERITY_WARNING if position < t.position_low or position > t.position_high else SEVERITY_OK

    items.append(
        AlertItem(
            id="pos-cpt",
            severity=_position_sev(positions.cost),
            title="Cost/Ton percentile",
            detail="Where you sit in historical distribution",
            value=f"p{positions.cost:.0f}",
        )
    )
    items.append(
        AlertItem(
            id="pos-hpt",
            severity=_position_sev(positions.hours),
            title="Hours/Ton percentile",
            detail="Labor intensity vs similar work",
            value=f"p{positions.hours:.0f}",
        )
    )

    cost_delta = _delta_pct(cost_per_ton, baseline.cost_per_ton.p50)
    hours_delta = _delta_pct(hours_per_ton, baseline.hours_per_ton.p50)
    items.append(
        AlertItem(
            id="delta-cpt",
            severity=SEVERITY_WARNING
            if cost_delta is not None and abs(cost_delta) >= t.cost_delta_warn_pct
            else SEVERITY_INFO,
            title="Cost/Ton vs median",
            detail="Median baseline comparison (not a target)",
            value=format_signed_pct(cost_delta),
        )
    )
    items.append(
        AlertItem(
            id="delta-hpt",
            severity=SEVERITY_WARNING
            if hours_delta is not None and abs(hours_delta) >= t.hours_delta_warn_pct
            else SEVERITY_INFO,
            title="Hours/Ton vs median",
            detail="Labor intensity deviation",
            value=format_signed_pct(hours_delta),
        )
    )

    mix = metrics.mix
    material_mix_delta = mix.material_pct - baseline.material_pct if baseline.material_pct else 0.0
    labor_mix_delta = mix.labor_pct - baseline.labor_pct if baseline.labor_pct else 0.0
    items.append(
        AlertItem(
            id="mix-mat",
            severity=SEVERITY_INFO if abs(material_mix_delta) >= t.material_mix_info_pct else SEVERITY_OK,
            title="Material mix",
            detail="Composition vs typical",
            value=format_signed_pct(material_mix_delta),
        )
    )
    items.append(
        AlertItem(
            id="mix-labor",
            severity=SEVERITY_INFO if abs(labor_mix_delta) >= t.labor_mix_info_pct else SEVERITY_OK,
            title="Labor mix",
            detail="Labor share vs typical",
            value=format_signed_pct(labor_mix_delta),
        )
    )

    concentration = metrics.concentration
    if concentration >= t.concentration_warn_pct:
        conc_sev = SEVERITY_WARNING
    elif concentration >= t.concentration_info_pct:
        conc_sev = SEVERITY_INFO
    else:
        conc_sev = SEVERITY_OK
    items.append(
        AlertItem(
            id="conc",
            severity=conc_sev,
            title="Category concentration",
            detail="Top 3 categories share of total",
            value=f"{concentration:.0f}%",
        )
    )

    items.append(
        AlertItem(
            id="blend",
            severity=SEVERITY_INFO if metrics.blended_labor_rate > 0 else SEVERITY_WARNING,
            title="Blended labor $/hr",
            detail="Implied from line labor costs ÷ hours",
            value=format_money(metrics.blended_labor_rate) if metrics.blended_labor_rate > 0 else NO_DATA,
        )
    )
    items.append(
        AlertItem(
            id="steel",
            severity=SEVERITY_INFO if metrics.material_per_lb > 0 else SEVERITY_WARNING,
            title="Material $/lb",
            detail="Implied steel pricing",
            value=f"${metrics.material_per_lb:.2f}" if metrics.material_per_lb > 0 else NO_DATA,
        )
    )

    coverage_mean = metrics.coverage.mean
    items.append(
        AlertItem(
            id="coverage",
            severity=_ratio_severity(coverage_mean, t),
            title="Data coverage",
            detail="Missing weights/labor/rates/coating pricing increases error",
            value=f"{coverage_mean * 100:.0f}%",
        )
    )
    items.extend(_gap_alerts(metrics, t))

    items.append(schedule_alert(days_to_bid, t))

    if files_count <= 0:
        docs_sev = SEVERITY_WARNING
    elif files_count < t.docs_info_below:
        docs_sev = SEVERITY_INFO
    else:
        docs_sev = SEVERITY_OK
    items.append(
        AlertItem(
            id="docs",
            severity=docs_sev,
            title="Docs coverage",
            detail="Files uploaded (drawings/specs/RFIs)",
            value=str(max(0, files_count)),
        )
    )

    items.append(
        AlertItem(
            id="misc",
            severity=SEVERITY_INFO if mix.misc_pct >= t.misc_info_pct else SEVERITY_OK,
            title="Misc mix",
            detail="Misc lines share (often drives labor volatility)",
            value=f"{mix.misc_pct:.0f}%",
        )
    )
    items.append(
        AlertItem(
            id="plate",
            severity=SEVERITY_INFO if mix.plate_weight_pct >= t.plate_info_pct else SEVERITY_OK,
            title="Plate weight share",
            detail="Plates often shift cutting/drilling load",
            value=f"{mix.plate_weight_pct:.0f}%",
        )
    )
    items.append(
        AlertItem(
            id="coat-area",
            severity=SEVERITY_WARNING
            if mix.coated_surface_area > 0 and mix.coating_cost_per_sf == 0
            else SEVERITY_INFO,
            title="Coating intensity",
            detail="Coating cost per coated SF (implied)",
            value=f"${mix.coating_cost_per_sf:.2f}/sf" if mix.coating_cost_per_sf > 0 else NO_DATA,
        )
    )

    # Only meaningful when both rates exist.
    if cost_delta is not None and hours_delta is not None:
        divergence = abs(cost_delta - hours_delta)
        if divergence > t.divergence_info_pct:
            items.append(
                AlertItem(
                    id="cost-labor-divergence",
                    severity=SEVERITY_WARNING if divergence > t.divergence_warn_pct else SEVERITY_INFO,
                    title="Cost/Labor divergence",
                    detail="Cost/Ton and Hours/Ton moving in opposite directions",
                    value=f"{divergence:.0f}% gap",
                )
            )

    if totals.line_count < t.thin_estimate_lines:
        items.append(
            AlertItem(
                id="thin",
                severity=SEVERITY_INFO,
                title="Thin estimate",
                detail="Signals stabilize after ~20–30 lines",
                value=f"{totals.line_count} lines",
            )
        )
    if totals.tons < t.small_tonnage_tons:
        items.append(
            AlertItem(
                id="small",
                severity=SEVERITY_INFO,
                title="Small tonnage",
                detail="Small jobs tend to run higher variance",
                value=f"{format_number(totals.tons, 1)}t",
            )
        )
    return items


def is_coverage_alert(item: AlertItem) -> bool:
    return item.id in _COVERAGE_ALERT_IDS or item.id.startswith("gap-")


def rank_alerts(items: Iterable[AlertItem]) -> List[AlertItem]:
    """Most severe first; ties ordered by id so the output is deterministic."""

    return sorted(items, key=lambda item: (SEVERITY_RANK.get(item.severity, len(SEVERITY_RANK)), item.id))


def filter_alerts(
    items: Iterable[AlertItem],
    severities: Optional[Iterable[str]] = None,
    *,
    coverage_only: bool = False,
    executive: bool = False,
    thresholds: HealthThresholds = DEFAULT_THRESHOLDS,
) -> List[AlertItem]:
    """Ranked view of ``items`` limited to ``severities`` (``ok`` hidden by default).

    The executive view keeps only the top signals.
    """

    visible = DEFAULT_VISIBLE_SEVERITIES if severities is None else frozenset(severities)
    selected = [item for item in items if item.severity in visible]
    if coverage_only:
        selected = [item for item in selected if is_coverage_alert(item)]
    ranked = rank_alerts(selected)
    if executive:
        return ranked[: max(0, int(thresholds.executive_alert_limit))]
    return ranked


def top_alerts(items: Sequence[AlertItem], limit: int = 3) -> List[AlertItem]:
    """First ``limit`` critical or warning findings in rule order."""

    return [item for item in items if item.severity in (SEVERITY_CRITICAL, SEVERITY_WARNING)][:limit]
