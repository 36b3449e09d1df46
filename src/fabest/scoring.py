"""Health score: how closely the estimate tracks its historical baseline."""

from __future__ import annotations

import numpy as np

from .config import DEFAULT_THRESHOLDS, HealthThresholds
from .models import Coverage
from .percentile import Positions, in_band

STATUS_HEALTHY = "Healthy"
STATUS_REVIEW = "Needs Review"
STATUS_AT_RISK = "At Risk"


def concentration_penalty(concentration: float, thresholds: HealthThresholds = DEFAULT_THRESHOLDS) -> float:
    """Fraction in [0, 1] of the concentration penalty that applies."""

    if not np.isfinite(concentration):
        return 0.0
    span = thresholds.concentration_penalty_span_pct
    if span <= 0:
        return 1.0 if concentration > thresholds.concentration_penalty_start_pct else 0.0
    raw = (concentration - thresholds.concentration_penalty_start_pct) / span
    return float(np.clip(raw, 0.0, 1.0))


def compute_score(
    positions: Positions,
    coverage: Coverage,
    concentration: float,
    thresholds: HealthThresholds = DEFAULT_THRESHOLDS,
) -> float:
    """
    Blend price position, labor position and data coverage into a 0-100 score.

    Each position contributes its ``in_band`` closeness to the median, coverage
    contributes its mean ratio, and the total is discounted when a few
    categories carry most of the cost.
    """

    t = thresholds
    base = (
        in_band(positions.cost) * t.score_price_weight
        + in_band(positions.hours) * t.score_labor_weight
        + coverage.mean * t.score_coverage_weight
    )
    penalty = concentration_penalty(concentration, t)
    score = base * (1.0 - penalty * t.concentration_penalty_max)
    return float(np.clip(score, 0.0, 100.0))


def health_status(score: float, thresholds: HealthThresholds = DEFAULT_THRESHOLDS) -> str:
    if score >= thresholds.healthy_score:
        return STATUS_HEALTHY
    if score >= thresholds.review_score:
        return STATUS_REVIEW
    return STATUS_AT_RISK


__all__ = [
    "STATUS_AT_RISK",
    "STATUS_HEALTHY",
    "STATUS_REVIEW",
    "compute_score",
    "concentration_penalty",
    "health_status",
]
