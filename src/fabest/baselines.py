"""Historical baseline distributions by project type and tonnage bin."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from .project_meta import DEFAULT_PROJECT_TYPE, bin_tons, normalize_project_type

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"
DEFAULT_BASELINES_PATH = DATA_DIR / "baselines.json"

SUMMARY_KEYS: Tuple[str, ...] = ("min", "p25", "p50", "p75", "max")


@dataclass(frozen=True)
class FiveNumberSummary:
    min: float
    p25: float
    p50: float
    p75: float
    max: float

    def as_dict(self) -> Dict[str, float]:
        return {key: getattr(self, key) for key in SUMMARY_KEYS}


@dataclass(frozen=True)
class Baseline:
    label: str
    cost_per_ton: FiveNumberSummary
    hours_per_ton: FiveNumberSummary
    material_pct: float
    labor_pct: float


@dataclass(frozen=True)
class BaselineBin:
    min_tons: float
    max_tons: float
    baseline: Baseline

    def contains(self, tons: float) -> bool:
        return self.min_tons <= tons < self.max_tons


BaselineTable = Mapping[str, Tuple[BaselineBin, ...]]


def _parse_summary(raw: Mapping[str, object], where: str) -> FiveNumberSummary:
    values = []
    for key in SUMMARY_KEYS:
        if key not in raw:
            raise ValueError(f"{where}: missing '{key}'")
        try:
            value = float(raw[key])  # type: ignore[arg-type]
        except (TypeError, ValueError):
            raise ValueError(f"{where}: '{key}' is not numeric ({raw[key]!r})") from None
        if not math.isfinite(value):
            raise ValueError(f"{where}: '{key}' must be finite")
        values.append(value)
    if any(later <= earlier for earlier, later in zip(values, values[1:])):
        raise ValueError(f"{where}: anchors must be strictly increasing, got {values}")
    return FiveNumberSummary(*values)


def _parse_bin(raw: Mapping[str, object], where: str) -> BaselineBin:
    mix = raw.get("mix") or {}
    max_tons = raw.get("max_tons")
    baseline = Baseline(
        label=str(raw.get("label") or where),
        cost_per_ton=_parse_summary(raw.get("cost_per_ton") or {}, f"{where}.cost_per_ton"),
        hours_per_ton=_parse_summary(raw.get("hours_per_ton") or {}, f"{where}.hours_per_ton"),
        material_pct=float(mix.get("material_pct", 0.0)),
        labor_pct=float(mix.get("labor_pct", 0.0)),
    )
    return BaselineBin(
        min_tons=float(raw.get("min_tons", 0.0)),
        max_tons=math.inf if max_tons is None else float(max_tons),
        baseline=baseline,
    )


def parse_baselines(payload: Mapping[str, object]) -> Dict[str, Tuple[BaselineBin, ...]]:
    """Convert the JSON payload into a baseline table, validating every summary."""

    project_types = payload.get("project_types")
    if not isinstance(project_types, dict) or not project_types:
        raise ValueError("Baseline payload requires a non-empty 'project_types' object")
    table: Dict[str, Tuple[BaselineBin, ...]] = {}
    for name, bins in project_types.items():
        if not isinstance(bins, list) or not bins:
            raise ValueError(f"Baseline bins for {name!r} must be a non-empty list")
        parsed = [_parse_bin(entry, f"{name}[{idx}]") for idx, entry in enumerate(bins)]
        table[str(name)] = tuple(sorted(parsed, key=lambda b: b.min_tons))
    if DEFAULT_PROJECT_TYPE not in table:
        raise ValueError(f"Baseline payload must define a {DEFAULT_PROJECT_TYPE!r} project type")
    return table


def load_baselines(path: Optional[Path] = None) -> Dict[str, Tuple[BaselineBin, ...]]:
    """Load a baseline table from ``path`` (packaged defaults when omitted)."""

    if path is None:
        return dict(_load_default_baselines())
    if not path.exists():
        raise FileNotFoundError(f"Baselines file not found: {path}")
    payload = json.loads(path.read_text(encoding="utf-8"))
    table = parse_baselines(payload)
    logger.debug("Loaded %s baseline project types from %s", len(table), path)
    return table


@lru_cache(maxsize=1)
def _load_default_baselines() -> Dict[str, Tuple[BaselineBin, ...]]:
    payload = json.loads(DEFAULT_BASELINES_PATH.read_text(encoding="utf-8"))
    return parse_baselines(payload)


def select_baseline(
    project_type: Optional[str],
    tons: float,
    table: Optional[BaselineTable] = None,
) -> Baseline:
    """Pick the baseline for ``project_type`` whose tonnage bin contains ``tons``.

    Unknown project types use ``Default``; an estimate without weight is placed
    in the neutral bin.  When no bin matches, the first bin is returned.
    """

    lookup = table if table is not None else _load_default_baselines()
    candidate = str(project_type).strip() if project_type else ""
    if candidate not in lookup:
        candidate = normalize_project_type(candidate)
    bins = lookup.get(candidate) or lookup[DEFAULT_PROJECT_TYPE]
    t = bin_tons(tons)
    for entry in bins:
        if entry.contains(t):
            return entry.baseline
    return bins[0].baseline


__all__ = [
    "Baseline",
    "BaselineBin",
    "FiveNumberSummary",
    "load_baselines",
    "parse_baselines",
    "select_baseline",
]
