from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

LBS_PER_TON = 2000.0

MATERIAL_TYPES: Tuple[str, ...] = ("Material", "Plate")
LINE_STATUSES: Tuple[str, ...] = ("Active", "Void")
WORK_TYPES: Tuple[str, ...] = ("STRUCTURAL", "MISC")

# Keep tuple structure to preserve display order
LABOR_OPERATIONS: Tuple[Tuple[str, str], ...] = (
    ("unload", "Unload"),
    ("cut", "Cut"),
    ("cope", "Cope"),
    ("process_plate", "Process Plate"),
    ("drill_punch", "Drill/Punch"),
    ("fit", "Fit"),
    ("weld", "Weld"),
    ("prep_clean", "Prep/Clean"),
    ("paint", "Paint"),
    ("handle_move", "Handle/Move"),
    ("load_ship", "Load/Ship"),
)
LABOR_OPERATION_KEYS: Tuple[str, ...] = tuple(key for key, _ in LABOR_OPERATIONS)


@dataclass(frozen=True)
class EstimateLine:
    """One priced item in a bid.

    ``material_type`` tags the record as a rolled member (``Material``) or a
    ``Plate``.  Weight and surface area are already resolved for that tag by
    the ingestion layer, so computation code never branches on it for
    geometry.
    """

    line_id: str = ""
    description: str = ""
    category: str = "Uncategorized"
    sub_category: str = ""
    material_type: str = "Material"
    work_type: str = "STRUCTURAL"
    status: str = "Active"
    weight_lbs: float = 0.0
    surface_area_sf: float = 0.0
    coating_system: str = ""
    labor_hours: Mapping[str, float] = field(default_factory=dict)
    labor_total: Optional[float] = None
    material_rate: float = 0.0
    labor_rate: float = 0.0
    coating_rate: float = 0.0
    material_cost: float = 0.0
    labor_cost: float = 0.0
    coating_cost: float = 0.0
    hardware_cost: float = 0.0
    line_total: Optional[float] = None

    @property
    def is_void(self) -> bool:
        return self.status == "Void"

    @property
    def is_plate(self) -> bool:
        return self.material_type == "Plate"

    @property
    def has_coating(self) -> bool:
        system = (self.coating_system or "").strip()
        return bool(system) and system.lower() != "none"

    @property
    def total_labor(self) -> float:
        if self.labor_total is not None:
            return float(self.labor_total)
        return float(sum(self.labor_hours.get(key, 0.0) for key in LABOR_OPERATION_KEYS))

    @property
    def direct_cost(self) -> float:
        return self.material_cost + self.labor_cost + self.coating_cost + self.hardware_cost

    @property
    def total_cost(self) -> float:
        if self.line_total is not None:
            return float(self.line_total)
        return self.direct_cost


@dataclass(frozen=True)
class CostTotals:
    """Pure reduction of the active line set."""

    material_cost: float = 0.0
    labor_cost: float = 0.0
    coating_cost: float = 0.0
    hardware_cost: float = 0.0
    line_cost: float = 0.0
    total_weight_lbs: float = 0.0
    total_labor_hours: float = 0.0
    line_count: int = 0

    @property
    def direct_cost(self) -> float:
        return self.material_cost + self.labor_cost + self.coating_cost + self.hardware_cost

    @property
    def tons(self) -> float:
        if self.total_weight_lbs <= 0:
            return 0.0
        return self.total_weight_lbs / LBS_PER_TON

    @property
    def cost_per_ton(self) -> Optional[float]:
        tons = self.tons
        if tons <= 0:
            return None
        return self.direct_cost / tons

    @property
    def hours_per_ton(self) -> Optional[float]:
        tons = self.tons
        if tons <= 0:
            return None
        return self.total_labor_hours / tons


@dataclass(frozen=True)
class Coverage:
    """Fraction of active lines carrying each kind of usable data."""

    weight: float = 0.0
    labor: float = 0.0
    rates: float = 0.0
    coating_pricing: float = 0.0

    @property
    def mean(self) -> float:
        return (self.weight + self.labor + self.rates + self.coating_pricing) / 4.0

    def as_dict(self) -> Dict[str, float]:
        return {
            "weight": self.weight,
            "labor": self.labor,
            "rates": self.rates,
            "coating_pricing": self.coating_pricing,
        }


@dataclass(frozen=True)
class DataGaps:
    missing_weight: int = 0
    missing_labor: int = 0
    missing_rates: int = 0
    coating_specified_no_cost: int = 0

    @property
    def total(self) -> int:
        return self.missing_weight + self.missing_labor + self.missing_rates + self.coating_specified_no_cost


@dataclass(frozen=True)
class CostDriver:
    key: str
    kind: str  # category or subCategory
    cost: float
    hours: float
    weight_lbs: float
    lines: int

    @property
    def cost_per_ton(self) -> Optional[float]:
        if self.weight_lbs <= 0:
            return None
        return self.cost / (self.weight_lbs / LBS_PER_TON)


@dataclass(frozen=True)
class LaborOperation:
    key: str
    label: str
    hours: float


@dataclass(frozen=True)
class CurvePoint:
    x: int
    cost: float
    cost_per_ton: float
    hours_per_ton: float


@dataclass(frozen=True)
class MixSignals:
    """Cost mix percentages and geometry/work-mix context."""

    material_pct: float = 0.0
    labor_pct: float = 0.0
    coating_pct: float = 0.0
    hardware_pct: float = 0.0
    total_surface_area: float = 0.0
    coated_surface_area: float = 0.0
    coating_cost_per_sf: float = 0.0
    plate_weight_pct: float = 0.0
    misc_pct: float = 0.0


@dataclass(frozen=True)
class AggregatedMetrics:
    """Everything derived from the active line set; never persisted."""

    totals: CostTotals
    coverage: Coverage
    gaps: DataGaps
    mix: MixSignals
    top_categories: Tuple[CostDriver, ...] = ()
    top_subcategories: Tuple[CostDriver, ...] = ()
    concentration: float = 0.0
    labor_operations: Tuple[LaborOperation, ...] = ()
    blended_labor_rate: float = 0.0
    material_per_lb: float = 0.0
    curve: Tuple[CurvePoint, ...] = ()


@dataclass(frozen=True)
class AlertItem:
    """A transient severity-tagged finding."""

    id: str
    severity: str
    title: str
    detail: str
    value: str

    def as_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "severity": self.severity,
            "title": self.title,
            "detail": self.detail,
            "value": self.value,
        }
