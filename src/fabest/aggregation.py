from __future__ import annotations

import re
import sys
from typing import Iterable, List, Sequence, Tuple

import numpy as np
import pandas as pd

from .models import (
    LABOR_OPERATIONS,
    LBS_PER_TON,
    AggregatedMetrics,
    CostDriver,
    CostTotals,
    Coverage,
    CurvePoint,
    DataGaps,
    EstimateLine,
    LaborOperation,
    MixSignals,
)

TOP_CATEGORY_LIMIT = 8
TOP_SUBCATEGORY_LIMIT = 10
CONCENTRATION_TOP_N = 3

_DIGITS = re.compile(r"\D+")

FRAME_COLUMNS: Sequence[str] = (
    "LINE_ID",
    "CATEGORY",
    "SUB_CATEGORY",
    "IS_PLATE",
    "IS_MISC",
    "WEIGHT_LBS",
    "SURFACE_AREA_SF",
    "HAS_COATING",
    "MATERIAL_COST",
    "LABOR_COST",
    "COATING_COST",
    "HARDWARE_COST",
    "LINE_COST",
    "LABOR_HOURS",
    "MATERIAL_RATE",
    "LABOR_RATE",
    *(f"LABOR_{key.upper()}" for key, _ in LABOR_OPERATIONS),
)


def active_lines(lines: Iterable[EstimateLine]) -> List[EstimateLine]:
    """Drop lines flagged ``Void``; order is preserved."""

    return [line for line in lines if not line.is_void]


def lines_frame(lines: Iterable[EstimateLine]) -> pd.DataFrame:
    """Tabulate active lines with one numeric column per metric.

    Void lines are excluded.  An empty input yields an empty frame that still
    carries every column so reductions return zero.
    """

    records = []
    for line in active_lines(lines):
        record = {
            "LINE_ID": line.line_id,
            "CATEGORY": line.category or "Uncategorized",
            "SUB_CATEGORY": line.sub_category or "",
            "IS_PLATE": line.is_plate,
            "IS_MISC": (line.work_type or "STRUCTURAL") != "STRUCTURAL",
            "WEIGHT_LBS": float(line.weight_lbs or 0.0),
            "SURFACE_AREA_SF": float(line.surface_area_sf or 0.0),
            "HAS_COATING": line.has_coating,
            "MATERIAL_COST": float(line.material_cost or 0.0),
            "LABOR_COST": float(line.labor_cost or 0.0),
            "COATING_COST": float(line.coating_cost or 0.0),
            "HARDWARE_COST": float(line.hardware_cost or 0.0),
            "LINE_COST": float(line.total_cost or 0.0),
            "LABOR_HOURS": float(line.total_labor or 0.0),
            "MATERIAL_RATE": float(line.material_rate or 0.0),
            "LABOR_RATE": float(line.labor_rate or 0.0),
        }
        for key, _ in LABOR_OPERATIONS:
            record[f"LABOR_{key.upper()}"] = float(line.labor_hours.get(key, 0.0) or 0.0)
        records.append(record)
    if not records:
        return pd.DataFrame({col: pd.Series(dtype=float) for col in FRAME_COLUMNS})
    return pd.DataFrame.from_records(records, columns=list(FRAME_COLUMNS))


def _sum(frame: pd.DataFrame, column: str) -> float:
    if frame.empty:
        return 0.0
    return float(pd.to_numeric(frame[column], errors="coerce").fillna(0.0).sum())


def safe_pct(numerator: float, denominator: float) -> float:
    """Percentage with zero/non-finite denominators reported as 0."""

    if not np.isfinite(numerator) or not np.isfinite(denominator) or denominator == 0:
        return 0.0
    return float(numerator / denominator * 100.0)


def _safe_ratio(numerator: float, denominator: float) -> float:
    if denominator <= 0 or not np.isfinite(denominator):
        return 0.0
    return float(numerator / denominator)


def aggregate_totals(frame: pd.DataFrame) -> CostTotals:
    """Reduce the line frame into cost, weight and labor totals."""

    return CostTotals(
        material_cost=_sum(frame, "MATERIAL_COST"),
        labor_cost=_sum(frame, "LABOR_COST"),
        coating_cost=_sum(frame, "COATING_COST"),
        hardware_cost=_sum(frame, "HARDWARE_COST"),
        line_cost=_sum(frame, "LINE_COST"),
        total_weight_lbs=_sum(frame, "WEIGHT_LBS"),
        total_labor_hours=_sum(frame, "LABOR_HOURS"),
        line_count=int(len(frame)),
    )


def compute_coverage(frame: pd.DataFrame) -> Tuple[Coverage, DataGaps]:
    """Coverage ratios and gap counts; an empty frame reports zero coverage."""

    count = int(len(frame))
    if count == 0:
        return Coverage(), DataGaps()
    has_weight = frame["WEIGHT_LBS"] > 0
    has_labor = frame["LABOR_HOURS"] > 0
    has_rate = (frame["LABOR_RATE"] > 0) | (frame["MATERIAL_RATE"] > 0)
    unpriced_coating = frame["HAS_COATING"].astype(bool) & (frame["COATING_COST"] == 0)

    gaps = DataGaps(
        missing_weight=int((~has_weight).sum()),
        missing_labor=int((~has_labor).sum()),
        missing_rates=int((~has_rate).sum()),
        coating_specified_no_cost=int(unpriced_coating.sum()),
    )
    coverage = Coverage(
        weight=(count - gaps.missing_weight) / count,
        labor=(count - gaps.missing_labor) / count,
        rates=(count - gaps.missing_rates) / count,
        coating_pricing=(count - gaps.coating_specified_no_cost) / count,
    )
    return coverage, gaps


def _drivers(frame: pd.DataFrame, keys: pd.Series, kind: str) -> List[CostDriver]:
    grouped = (
        frame.assign(_KEY=keys)
        .groupby("_KEY", sort=False)
        .agg(
            COST=("LINE_COST", "sum"),
            HOURS=("LABOR_HOURS", "sum"),
            WEIGHT=("WEIGHT_LBS", "sum"),
            LINES=("LINE_COST", "size"),
        )
    )
    grouped = grouped.loc[grouped["COST"] > 0].sort_values("COST", ascending=False, kind="mergesort")
    return [
        CostDriver(
            key=str(key),
            kind=kind,
            cost=float(row["COST"]),
            hours=float(row["HOURS"]),
            weight_lbs=float(row["WEIGHT"]),
            lines=int(row["LINES"]),
        )
        for key, row in grouped.iterrows()
    ]


def cost_drivers(frame: pd.DataFrame) -> Tuple[List[CostDriver], List[CostDriver]]:
    """Rank categories and ``category / sub-category`` pairs by line cost."""

    if frame.empty:
        return [], []
    category_keys = frame["CATEGORY"].astype(str)
    sub_labels = frame["SUB_CATEGORY"].astype(str).where(frame["SUB_CATEGORY"].astype(str) != "", "—")
    sub_keys = category_keys + " / " + sub_labels
    return _drivers(frame, category_keys, "category"), _drivers(frame, sub_keys, "subCategory")


def concentration_pct(categories: Sequence[CostDriver], totals: CostTotals) -> float:
    """Share of total cost (percent) held by the top three categories."""

    top = sum(driver.cost for driver in list(categories)[:CONCENTRATION_TOP_N])
    denominator = totals.line_cost or totals.direct_cost or 1.0
    return safe_pct(top, denominator)


def labor_breakdown(frame: pd.DataFrame) -> List[LaborOperation]:
    ops = [
        LaborOperation(key=key, label=label, hours=_sum(frame, f"LABOR_{key.upper()}"))
        for key, label in LABOR_OPERATIONS
    ]
    ops = [op for op in ops if op.hours > 0]
    return sorted(ops, key=lambda op: op.hours, reverse=True)


def mix_signals(frame: pd.DataFrame, totals: CostTotals) -> MixSignals:
    direct = totals.direct_cost
    total_area = _sum(frame, "SURFACE_AREA_SF")
    if frame.empty:
        coated_area = 0.0
        plate_weight = 0.0
        misc_pct = 0.0
    else:
        coated_area = float(frame.loc[frame["HAS_COATING"].astype(bool), "SURFACE_AREA_SF"].sum())
        plate_weight = float(frame.loc[frame["IS_PLATE"].astype(bool), "WEIGHT_LBS"].sum())
        misc_pct = float(frame["IS_MISC"].astype(bool).sum()) / len(frame) * 100.0
    return MixSignals(
        material_pct=safe_pct(totals.material_cost, direct),
        labor_pct=safe_pct(totals.labor_cost, direct),
        coating_pct=safe_pct(totals.coating_cost, direct),
        hardware_pct=safe_pct(totals.hardware_cost, direct),
        total_surface_area=total_area,
        coated_surface_area=coated_area,
        coating_cost_per_sf=_safe_ratio(totals.coating_cost, coated_area),
        plate_weight_pct=safe_pct(plate_weight, totals.total_weight_lbs),
        misc_pct=misc_pct,
    )


def parse_line_seq(line_id: str) -> int:
    """Numeric sequence embedded in a line id; ids without digits sort last."""

    digits = _DIGITS.sub("", str(line_id or ""))
    if not digits:
        return sys.maxsize
    return int(digits)


def build_curve(lines: Iterable[EstimateLine]) -> List[CurvePoint]:
    """Running cost and per-ton rates as lines are added in sequence order."""

    ordered = sorted(active_lines(lines), key=lambda line: parse_line_seq(line.line_id))
    points: List[CurvePoint] = []
    running_cost = 0.0
    running_hours = 0.0
    running_weight = 0.0
    for idx, line in enumerate(ordered, start=1):
        running_cost += line.total_cost or 0.0
        running_hours += line.total_labor or 0.0
        running_weight += line.weight_lbs or 0.0
        running_tons = running_weight / LBS_PER_TON if running_weight > 0 else 0.0
        points.append(
            CurvePoint(
                x=idx,
                cost=running_cost,
                cost_per_ton=running_cost / running_tons if running_tons > 0 else 0.0,
                hours_per_ton=running_hours / running_tons if running_tons > 0 else 0.0,
            )
        )
    return points


def aggregate(lines: Iterable[EstimateLine]) -> AggregatedMetrics:
    """Compute every derived metric for the current line set.

    Pure: the same lines always produce the same metrics and nothing here
    raises on empty or incomplete data.
    """

    line_list = list(lines)
    frame = lines_frame(line_list)
    totals = aggregate_totals(frame)
    coverage, gaps = compute_coverage(frame)
    categories, subcategories = cost_drivers(frame)
    return AggregatedMetrics(
        totals=totals,
        coverage=coverage,
        gaps=gaps,
        mix=mix_signals(frame, totals),
        top_categories=tuple(categories[:TOP_CATEGORY_LIMIT]),
        top_subcategories=tuple(subcategories[:TOP_SUBCATEGORY_LIMIT]),
        concentration=concentration_pct(categories, totals),
        labor_operations=tuple(labor_breakdown(frame)),
        blended_labor_rate=_safe_ratio(totals.labor_cost, totals.total_labor_hours),
        material_per_lb=_safe_ratio(totals.material_cost, totals.total_weight_lbs),
        curve=tuple(build_curve(line_list)),
    )
