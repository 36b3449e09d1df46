"""Display formatting shared by alerts and reports."""

from __future__ import annotations

import math
from typing import Optional

NO_DATA = "—"


def _finite(value: Optional[float]) -> bool:
    if value is None:
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def format_money(value: Optional[float]) -> str:
    """Compact currency: ``$1.25M``, ``$42k``, ``$4.2k``, ``$950``."""

    if not _finite(value):
        return NO_DATA
    n = float(value)  # type: ignore[arg-type]
    magnitude = abs(n)
    if magnitude >= 1_000_000:
        return f"${n / 1_000_000:.2f}M"
    if magnitude >= 10_000:
        return f"${n / 1000:.0f}k"
    if magnitude >= 1000:
        return f"${n / 1000:.1f}k"
    return f"${n:.0f}"


def format_number(value: Optional[float], dp: int = 1) -> str:
    if not _finite(value):
        return NO_DATA
    return f"{float(value):.{dp}f}"  # type: ignore[arg-type]


def format_signed_pct(value: Optional[float]) -> str:
    if not _finite(value):
        return NO_DATA
    n = float(value)  # type: ignore[arg-type]
    sign = "+" if n > 0 else ""
    return f"{sign}{n:.0f}%"
