"""Percentile positioning against a five-number baseline summary."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from .baselines import Baseline, FiveNumberSummary
from .models import CostTotals

NEUTRAL_POSITION = 50.0
FLOOR_POSITION = 1.0
CEILING_POSITION = 99.0

# Output range each anchor-to-anchor segment maps onto, in order
# min->p25, p25->p50, p50->p75, p75->max.
POSITION_BANDS: Tuple[Tuple[float, float], ...] = (
    (10.0, 25.0),
    (25.0, 50.0),
    (50.0, 75.0),
    (75.0, 90.0),
)


def percentile_position(value: Optional[float], summary: FiveNumberSummary) -> float:
    """
    Approximate percentile of ``value`` within ``summary``.

    Piecewise-linear between the anchors, clamped to 1 at-or-below ``min`` and
    99 at-or-above ``max``.  ``None``, non-finite and non-positive values are
    treated as missing and return the neutral 50.
    """

    if value is None:
        return NEUTRAL_POSITION
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return NEUTRAL_POSITION
    if not math.isfinite(numeric) or numeric <= 0:
        return NEUTRAL_POSITION
    if numeric <= summary.min:
        return FLOOR_POSITION
    if numeric >= summary.max:
        return CEILING_POSITION

    anchors = (summary.min, summary.p25, summary.p50, summary.p75, summary.max)
    for (lower, upper), (band_low, band_high) in zip(zip(anchors, anchors[1:]), POSITION_BANDS):
        if numeric <= upper:
            span = upper - lower
            if span <= 0:
                return band_high
            return band_low + ((numeric - lower) / span) * (band_high - band_low)
    return CEILING_POSITION


def in_band(position: float) -> float:
    """1.0 at the median falling linearly to 0.0 at either extreme."""

    return 1.0 - min(1.0, abs(position - NEUTRAL_POSITION) / NEUTRAL_POSITION)


@dataclass(frozen=True)
class Positions:
    cost: float
    hours: float

    def as_dict(self) -> dict:
        return {"cost": self.cost, "hours": self.hours}


def compute_positions(totals: CostTotals, baseline: Baseline) -> Positions:
    """Place the estimate's $/ton and hrs/ton within ``baseline``."""

    return Positions(
        cost=percentile_position(totals.cost_per_ton, baseline.cost_per_ton),
        hours=percentile_position(totals.hours_per_ton, baseline.hours_per_ton),
    )
