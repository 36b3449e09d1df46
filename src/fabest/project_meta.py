"""
Shared metadata for project-level inputs: project types and tonnage bins.
"""

from __future__ import annotations

import math
from typing import List, Optional, Tuple

DEFAULT_PROJECT_TYPE = "Default"

# Keep tuple structure to preserve order for display
PROJECT_TYPE_CHOICES: Tuple[str, ...] = (
    "Healthcare",
    "Commercial",
    "Industrial",
    "Residential",
)

# (min_tons, max_tons, label suffix); upper bound is exclusive
TONNAGE_BINS: Tuple[Tuple[float, float, str], ...] = (
    (0.0, 50.0, "<50t"),
    (50.0, 150.0, "50–150t"),
    (150.0, math.inf, "150t+"),
)

# Tonnage used to pick a bin when the estimate carries no weight yet
NEUTRAL_BIN_TONS = 100.0


def project_type_display_strings() -> List[str]:
    """Return the project types offered for selection, default last."""

    return [*PROJECT_TYPE_CHOICES, DEFAULT_PROJECT_TYPE]


def normalize_project_type(value: Optional[str]) -> str:
    """
    Normalize a project type into one of the canonical names.

    Matching ignores case and surrounding whitespace.  Anything unknown maps to
    ``Default`` so baseline lookups always resolve.
    """

    if not value:
        return DEFAULT_PROJECT_TYPE
    candidate = str(value).strip()
    if not candidate:
        return DEFAULT_PROJECT_TYPE
    lowered = candidate.lower()
    for name in PROJECT_TYPE_CHOICES:
        if lowered == name.lower():
            return name
    return DEFAULT_PROJECT_TYPE


def bin_tons(tons: float) -> float:
    """Tonnage used for bin selection; unknown or empty estimates use the neutral bin."""

    if tons is None or not math.isfinite(tons) or tons <= 0:
        return NEUTRAL_BIN_TONS
    return float(tons)
