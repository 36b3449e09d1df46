"""Load estimate line exports and win/loss history into typed records."""

from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd
from jsonschema import Draft7Validator

from .models import LABOR_OPERATION_KEYS, LINE_STATUSES, MATERIAL_TYPES, WORK_TYPES, EstimateLine
from .winrate import WIN_STATUSES, WinLossRecord

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "schema" / "estimate_line.schema.json"

EXCEL_ENGINES: Dict[str, str] = {
    ".xlsx": "openpyxl",
    ".xlsm": "openpyxl",
    ".xls": "xlrd",
}
SUPPORTED_SUFFIXES = (".csv", ".json", *EXCEL_ENGINES)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_NON_WORD = re.compile(r"[^0-9a-zA-Z]+")

# Export column names that differ from the record field they feed.
_FIELD_ALIASES: Dict[str, str] = {
    "item_description": "description",
    "total_labor": "labor_total",
    "total_cost": "line_total",
}

_TEXT_FIELDS = ("line_id", "description", "category", "sub_category", "coating_system")
_NUMERIC_FIELDS = (
    "labor_total",
    "material_rate",
    "labor_rate",
    "coating_rate",
    "material_cost",
    "labor_cost",
    "coating_cost",
    "hardware_cost",
    "line_total",
)
# Geometry source columns by material tag; the first populated column wins.
_WEIGHT_SOURCES = {
    "Material": ("total_weight", "weight_lbs"),
    "Plate": ("plate_total_weight", "weight_lbs"),
}
_AREA_SOURCES = {
    "Material": ("total_surface_area", "surface_area_sf"),
    "Plate": ("plate_surface_area", "surface_area_sf"),
}
_MATERIAL_TAGS = {name.lower(): name for name in MATERIAL_TYPES}
_MATERIAL_TAGS["rolled"] = "Material"
_STATUS_TAGS = {name.lower(): name for name in LINE_STATUSES}
_WORK_TAGS = {name.lower(): name for name in WORK_TYPES}


class LineValidationError(ValueError):
    """Raised when one or more line records violate the line schema."""

    def __init__(self, problems: Sequence[str]):
        self.problems = list(problems)
        preview = "; ".join(self.problems[:5])
        more = f" (+{len(self.problems) - 5} more)" if len(self.problems) > 5 else ""
        super().__init__(f"{len(self.problems)} invalid estimate line field(s): {preview}{more}")


def normalize_key(key: object) -> str:
    """``plateTotalWeight`` / ``Plate Total Weight`` -> ``plate_total_weight``."""

    text = _CAMEL_BOUNDARY.sub("_", str(key).strip())
    return _NON_WORD.sub("_", text).strip("_").lower()


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict, tuple)):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _number(value: object) -> object:
    """Float for anything numeric; other values pass through for the schema to reject."""

    if _is_blank(value):
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).replace("$", "").replace(",", "").strip()
    try:
        return float(text)
    except ValueError:
        return value


def _text(value: object) -> Optional[str]:
    if _is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _tag(value: object, tags: Mapping[str, str], default: str) -> object:
    text = _text(value)
    if text is None:
        return default
    return tags.get(text.lower(), text)


def normalize_record(raw: Mapping[str, object]) -> Dict[str, object]:
    """Map one exported row onto the normalized line record.

    Field names may be camelCase, snake_case or spaced headers.  The legacy
    ``Rolled`` tag is read as ``Material`` and weight/area are taken from the
    columns that belong to the record's tag.  Unrecognized columns are dropped.
    """

    source: Dict[str, object] = {}
    for key, value in raw.items():
        name = normalize_key(key)
        source[_FIELD_ALIASES.get(name, name)] = value

    material_type = _tag(source.get("material_type"), _MATERIAL_TAGS, MATERIAL_TYPES[0])
    record: Dict[str, object] = {"material_type": material_type}
    record["status"] = _tag(source.get("status"), _STATUS_TAGS, LINE_STATUSES[0])
    record["work_type"] = _tag(source.get("work_type"), _WORK_TAGS, WORK_TYPES[0])

    for name in _TEXT_FIELDS:
        text = _text(source.get(name))
        if text is not None:
            record[name] = text
    for name in _NUMERIC_FIELDS:
        number = _number(source.get(name))
        if number is not None:
            record[name] = number

    tag = material_type if material_type in _WEIGHT_SOURCES else "Material"
    for target, sources in (("weight_lbs", _WEIGHT_SOURCES[tag]), ("surface_area_sf", _AREA_SOURCES[tag])):
        for column in sources:
            number = _number(source.get(column))
            if number is not None:
                record[target] = number
                break

    labor: Dict[str, object] = {}
    for op in LABOR_OPERATION_KEYS:
        number = _number(source.get(f"labor_{op}"))
        if number is not None:
            labor[op] = number
    nested = source.get("labor_hours")
    if isinstance(nested, Mapping):
        for key, value in nested.items():
            number = _number(value)
            if number is not None:
                labor[normalize_key(key)] = number
    if labor:
        record["labor_hours"] = labor
    return record


@lru_cache(maxsize=1)
def _line_validator() -> Draft7Validator:
    schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    Draft7Validator.check_schema(schema)
    return Draft7Validator(schema)


def validate_records(records: Sequence[Mapping[str, object]]) -> None:
    """Raise :class:`LineValidationError` listing every schema violation."""

    validator = _line_validator()
    problems: List[str] = []
    for idx, record in enumerate(records):
        label = record.get("line_id") or f"row {idx + 1}"
        for error in sorted(validator.iter_errors(record), key=lambda e: list(e.absolute_path)):
            where = ".".join(str(part) for part in error.absolute_path) or "<record>"
            problems.append(f"{label}: {where}: {error.message}")
    if problems:
        raise LineValidationError(problems)


def record_to_line(record: Mapping[str, object]) -> EstimateLine:
    labor = record.get("labor_hours") or {}
    return EstimateLine(
        line_id=str(record.get("line_id", "")),
        description=str(record.get("description", "")),
        category=str(record.get("category") or "Uncategorized"),
        sub_category=str(record.get("sub_category", "")),
        material_type=str(record.get("material_type", MATERIAL_TYPES[0])),
        work_type=str(record.get("work_type", WORK_TYPES[0])),
        status=str(record.get("status", LINE_STATUSES[0])),
        weight_lbs=float(record.get("weight_lbs", 0.0)),
        surface_area_sf=float(record.get("surface_area_sf", 0.0)),
        coating_system=str(record.get("coating_system", "")),
        labor_hours={str(k): float(v) for k, v in labor.items()},
        labor_total=record.get("labor_total"),  # type: ignore[arg-type]
        material_rate=float(record.get("material_rate", 0.0)),
        labor_rate=float(record.get("labor_rate", 0.0)),
        coating_rate=float(record.get("coating_rate", 0.0)),
        material_cost=float(record.get("material_cost", 0.0)),
        labor_cost=float(record.get("labor_cost", 0.0)),
        coating_cost=float(record.get("coating_cost", 0.0)),
        hardware_cost=float(record.get("hardware_cost", 0.0)),
        line_total=record.get("line_total"),  # type: ignore[arg-type]
    )


def parse_lines(rows: Iterable[Mapping[str, object]]) -> List[EstimateLine]:
    """Normalize, validate and type a batch of exported rows."""

    records = [normalize_record(row) for row in rows]
    validate_records(records)
    return [record_to_line(record) for record in records]


def _read_rows(path: Path, list_key: str) -> List[Dict[str, object]]:
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    suffix = path.suffix.lower()
    if suffix == ".json":
        payload = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(payload, dict):
            payload = payload.get(list_key, [])
        if not isinstance(payload, list):
            raise ValueError(f"{path} must hold a JSON list or an object with a '{list_key}' list")
        problems = [
            f"row {idx + 1}: expected a JSON object, got {type(row).__name__}"
            for idx, row in enumerate(payload)
            if not isinstance(row, Mapping)
        ]
        if problems:
            raise LineValidationError(problems)
        return [dict(row) for row in payload]
    if suffix == ".csv":
        frame = pd.read_csv(path, dtype=str)
    elif suffix in EXCEL_ENGINES:
        frame = pd.read_excel(path, dtype=str, engine=EXCEL_ENGINES[suffix])
    else:
        raise ValueError(f"Unsupported file type {suffix!r}; expected one of {', '.join(SUPPORTED_SUFFIXES)}")
    frame = frame.dropna(how="all")
    return frame.to_dict(orient="records")


def load_lines(path: Path) -> List[EstimateLine]:
    """Read an estimate line export (CSV, Excel or JSON) into typed lines."""

    rows = _read_rows(path, "lines")
    lines = parse_lines(rows)
    logger.debug("Loaded %s estimate lines from %s", len(lines), path)
    return lines


def parse_win_loss(rows: Iterable[Mapping[str, object]]) -> List[WinLossRecord]:
    records: List[WinLossRecord] = []
    skipped = 0
    for row in rows:
        source = {normalize_key(k): v for k, v in row.items()}
        status = (_text(source.get("status")) or "").lower()
        if status not in WIN_STATUSES:
            skipped += 1
            continue
        records.append(WinLossRecord(project_type=_text(source.get("project_type")) or "", status=status))
    if skipped:
        logger.debug("Skipped %s win/loss rows without a won/lost status", skipped)
    return records


def load_win_loss(path: Path) -> List[WinLossRecord]:
    return parse_win_loss(_read_rows(path, "records"))


__all__ = [
    "LineValidationError",
    "load_lines",
    "load_win_loss",
    "normalize_key",
    "normalize_record",
    "parse_lines",
    "parse_win_loss",
    "validate_records",
]
