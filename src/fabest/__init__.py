"""Estimate aggregation and health scoring for steel fabrication bids."""

from .aggregation import aggregate
from .alerts import build_alerts
from .health import HealthReport, evaluate_health
from .models import AggregatedMetrics, AlertItem, EstimateLine
from .percentile import percentile_position
from .scoring import compute_score

__all__ = [
    "AggregatedMetrics",
    "AlertItem",
    "EstimateLine",
    "HealthReport",
    "aggregate",
    "build_alerts",
    "compute_score",
    "evaluate_health",
    "percentile_position",
]
