from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from types import SimpleNamespace
from typing import Mapping, Optional


_BOOLEAN_TRUE = {"1", "true", "yes", "on"}

THRESHOLDS_ENV_PREFIX = "HEALTH_"


@dataclass(frozen=True)
class HealthThresholds:
    """Named alert and scoring constants.

    Values are product-tuned; bump ``version`` whenever a default changes so
    reports can be traced back to the thresholds that produced them.
    """

    version: str = "2024.1"
    # percentile band considered "in range"
    position_low: float = 20.0
    position_high: float = 80.0
    # deviation from baseline median, percent
    cost_delta_warn_pct: float = 15.0
    hours_delta_warn_pct: float = 20.0
    # cost mix deviation from baseline, percentage points
    material_mix_info_pct: float = 10.0
    labor_mix_info_pct: float = 8.0
    concentration_warn_pct: float = 65.0
    concentration_info_pct: float = 55.0
    # coverage ratios in [0, 1]
    coverage_ok_ratio: float = 0.95
    coverage_info_ratio: float = 0.80
    gap_count_warn: int = 5
    schedule_warn_days: int = 3
    schedule_info_days: int = 7
    docs_info_below: int = 3
    misc_info_pct: float = 40.0
    plate_info_pct: float = 35.0
    divergence_info_pct: float = 20.0
    divergence_warn_pct: float = 30.0
    thin_estimate_lines: int = 10
    small_tonnage_tons: float = 25.0
    executive_alert_limit: int = 8
    # score blend
    score_price_weight: float = 38.0
    score_labor_weight: float = 32.0
    score_coverage_weight: float = 30.0
    concentration_penalty_start_pct: float = 55.0
    concentration_penalty_span_pct: float = 45.0
    concentration_penalty_max: float = 0.25
    healthy_score: float = 70.0
    review_score: float = 40.0


DEFAULT_THRESHOLDS = HealthThresholds()


def _to_path(value: object | None) -> Optional[Path]:
    if value is None:
        return None
    if isinstance(value, Path):
        return value.expanduser().resolve()
    text = str(value).strip()
    if not text:
        return None
    return Path(text).expanduser().resolve()


def _to_int(value: object | None) -> Optional[int]:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(float(text))
    except ValueError:
        return None


def _to_float(value: object | None) -> Optional[float]:
    if value is None:
        return None
    text = str(value).replace("$", "").replace(",", "").replace("%", "").strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def _flag(value: object | None) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _BOOLEAN_TRUE


def _namespace(cli_args: object | None) -> SimpleNamespace:
    if cli_args is None:
        return SimpleNamespace()
    if isinstance(cli_args, SimpleNamespace):
        return cli_args
    if hasattr(cli_args, "__dict__"):
        return SimpleNamespace(**{k: v for k, v in vars(cli_args).items()})
    return SimpleNamespace()


def _coerce_threshold(name: str, current: object, raw: object) -> object:
    if isinstance(current, str):
        return str(raw)
    if isinstance(current, int):
        value = _to_int(raw)
    else:
        value = _to_float(raw)
    if value is None:
        raise ValueError(f"Invalid value for threshold {name!r}: {raw!r}")
    return value


def load_thresholds(
    env: Mapping[str, str],
    path: Optional[Path] = None,
    base: HealthThresholds = DEFAULT_THRESHOLDS,
) -> HealthThresholds:
    """Build :class:`HealthThresholds` from a JSON file and environment overrides.

    Precedence is defaults < JSON file < ``HEALTH_<FIELD>`` environment
    variables.  Unknown JSON keys raise ``ValueError`` so typos never silently
    fall back to defaults.
    """

    known = {f.name for f in fields(HealthThresholds)}
    overrides: dict[str, object] = {}

    json_path = path or _to_path(env.get("HEALTH_THRESHOLDS_JSON"))
    if json_path is not None:
        if not json_path.exists():
            raise FileNotFoundError(f"Thresholds file not found: {json_path}")
        raw = json.loads(json_path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError(f"Thresholds file must hold a JSON object: {json_path}")
        unknown = sorted(set(raw) - known)
        if unknown:
            raise ValueError(f"Unknown threshold keys in {json_path}: {', '.join(unknown)}")
        for name, value in raw.items():
            overrides[name] = _coerce_threshold(name, getattr(base, name), value)

    for name in known:
        env_key = f"{THRESHOLDS_ENV_PREFIX}{name.upper()}"
        if env.get(env_key, "").strip():
            overrides[name] = _coerce_threshold(name, getattr(base, name), env[env_key])

    if not overrides:
        return base
    return replace(base, **overrides)


@dataclass(frozen=True)
class MarkupSettings:
    """Company markup settings with optional per-project overrides."""

    overhead_pct: float = 0.0
    profit_pct: float = 0.0
    material_waste_pct: float = 0.0
    labor_waste_pct: float = 0.0
    project_overhead_pct: Optional[float] = None
    project_profit_pct: Optional[float] = None

    @property
    def effective_overhead_pct(self) -> float:
        if self.project_overhead_pct is not None:
            return self.project_overhead_pct
        return self.overhead_pct

    @property
    def effective_profit_pct(self) -> float:
        if self.project_profit_pct is not None:
            return self.project_profit_pct
        return self.profit_pct


@dataclass(frozen=True)
class Config:
    """Runtime configuration assembled from environment variables and CLI options."""

    base_dir: Path
    lines_path: Optional[Path]
    baselines_path: Optional[Path]
    thresholds_path: Optional[Path]
    win_loss_path: Optional[Path]
    output_dir: Path
    output_json: Path
    output_pdf: Path
    project_type: Optional[str]
    bid_due_date: Optional[str]
    files_count: int
    markup: MarkupSettings
    as_of: Optional[str] = None
    emit_pdf: bool = True
    verbose: bool = False


def load_config(env: Mapping[str, str], cli_args: object | None = None) -> Config:
    """Build a runtime :class:`Config` from environment variables and CLI options."""

    base_dir = Path(__file__).resolve().parents[2]
    default_output_dir = (base_dir / "outputs").resolve()

    lines_path = _to_path(env.get("ESTIMATE_LINES"))
    baselines_path = _to_path(env.get("BASELINES_JSON"))
    thresholds_path = _to_path(env.get("HEALTH_THRESHOLDS_JSON"))
    win_loss_path = _to_path(env.get("WIN_LOSS_RECORDS"))
    output_dir = _to_path(env.get("OUTPUT_DIR")) or default_output_dir
    output_json = _to_path(env.get("OUTPUT_JSON")) or (output_dir / "health_report.json").resolve()
    output_pdf = _to_path(env.get("OUTPUT_PDF")) or (output_dir / "Estimate_Health.pdf").resolve()
    project_type = (env.get("PROJECT_TYPE") or "").strip() or None
    bid_due_date = (env.get("BID_DUE_DATE") or "").strip() or None
    files_count = _to_int(env.get("PROJECT_FILES_COUNT")) or 0
    as_of = (env.get("HEALTH_AS_OF") or "").strip() or None
    emit_pdf = not _flag(env.get("DISABLE_PDF"))
    markup = MarkupSettings(
        overhead_pct=_to_float(env.get("OVERHEAD_PCT")) or 0.0,
        profit_pct=_to_float(env.get("PROFIT_PCT")) or 0.0,
        material_waste_pct=_to_float(env.get("MATERIAL_WASTE_PCT")) or 0.0,
        labor_waste_pct=_to_float(env.get("LABOR_WASTE_PCT")) or 0.0,
        project_overhead_pct=_to_float(env.get("PROJECT_OVERHEAD_PCT")),
        project_profit_pct=_to_float(env.get("PROJECT_PROFIT_PCT")),
    )
    verbose = False

    cli_ns = _namespace(cli_args)
    if getattr(cli_ns, "lines", None):
        lines_path = _to_path(cli_ns.lines) or lines_path
    if getattr(cli_ns, "baselines", None):
        baselines_path = _to_path(cli_ns.baselines) or baselines_path
    if getattr(cli_ns, "thresholds", None):
        thresholds_path = _to_path(cli_ns.thresholds) or thresholds_path
    if getattr(cli_ns, "win_loss", None):
        win_loss_path = _to_path(cli_ns.win_loss) or win_loss_path
    if getattr(cli_ns, "output_dir", None):
        output_dir = _to_path(cli_ns.output_dir) or output_dir
        output_json = (output_dir / "health_report.json").resolve()
        output_pdf = (output_dir / "Estimate_Health.pdf").resolve()
    if getattr(cli_ns, "project_type", None):
        project_type = str(cli_ns.project_type).strip() or project_type
    if getattr(cli_ns, "bid_due", None):
        bid_due_date = str(cli_ns.bid_due).strip() or bid_due_date
    if getattr(cli_ns, "files_count", None) is not None:
        files_count = max(0, int(cli_ns.files_count))
    if getattr(cli_ns, "as_of", None):
        as_of = str(cli_ns.as_of).strip() or as_of
    if getattr(cli_ns, "no_pdf", False):
        emit_pdf = False
    if getattr(cli_ns, "overhead_pct", None) is not None:
        markup = replace(markup, project_overhead_pct=float(cli_ns.overhead_pct))
    if getattr(cli_ns, "profit_pct", None) is not None:
        markup = replace(markup, project_profit_pct=float(cli_ns.profit_pct))
    if getattr(cli_ns, "verbose", False):
        verbose = bool(cli_ns.verbose)

    return Config(
        base_dir=base_dir,
        lines_path=lines_path,
        baselines_path=baselines_path,
        thresholds_path=thresholds_path,
        win_loss_path=win_loss_path,
        output_dir=output_dir,
        output_json=output_json,
        output_pdf=output_pdf,
        project_type=project_type,
        bid_due_date=bid_due_date,
        files_count=files_count,
        markup=markup,
        as_of=as_of,
        emit_pdf=emit_pdf,
        verbose=verbose,
    )


__all__ = [
    "Config",
    "DEFAULT_THRESHOLDS",
    "HealthThresholds",
    "MarkupSettings",
    "load_config",
    "load_thresholds",
]
