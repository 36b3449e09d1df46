"""Waste, overhead and profit applied on top of direct cost."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict

from .config import MarkupSettings
from .models import CostTotals


@dataclass(frozen=True)
class MarkupBreakdown:
    direct_cost: float
    material_waste: float
    labor_waste: float
    subtotal: float
    overhead_pct: float
    overhead: float
    profit_pct: float
    profit: float
    total: float

    @property
    def markup_pct(self) -> float:
        """Total uplift over direct cost, percent (0 for an empty estimate)."""

        if self.direct_cost <= 0:
            return 0.0
        return (self.total - self.direct_cost) / self.direct_cost * 100.0

    def as_dict(self) -> Dict[str, float]:
        payload = asdict(self)
        payload["markup_pct"] = self.markup_pct
        return payload


def apply_markup(totals: CostTotals, settings: MarkupSettings) -> MarkupBreakdown:
    """Stack waste, then overhead on the subtotal, then profit on subtotal plus overhead.

    Project-level overhead/profit overrides take precedence over company
    settings; waste percentages are always company-wide.
    """

    direct = totals.direct_cost
    material_waste = totals.material_cost * (settings.material_waste_pct / 100.0)
    labor_waste = totals.labor_cost * (settings.labor_waste_pct / 100.0)
    subtotal = direct + material_waste + labor_waste
    overhead_pct = settings.effective_overhead_pct
    profit_pct = settings.effective_profit_pct
    overhead = subtotal * (overhead_pct / 100.0)
    profit = (subtotal + overhead) * (profit_pct / 100.0)
    return MarkupBreakdown(
        direct_cost=direct,
        material_waste=material_waste,
        labor_waste=labor_waste,
        subtotal=subtotal,
        overhead_pct=overhead_pct,
        overhead=overhead,
        profit_pct=profit_pct,
        profit=profit,
        total=subtotal + overhead + profit,
    )
