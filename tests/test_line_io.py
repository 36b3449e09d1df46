from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest

from fabest.line_io import (
    LineValidationError,
    load_lines,
    load_win_loss,
    normalize_key,
    normalize_record,
    parse_lines,
)

CSV_EXPORT = """lineId,itemDescription,category,subCategory,materialType,totalWeight,totalSurfaceArea,plateTotalWeight,plateSurfaceArea,coatingSystem,laborCut,laborWeld,materialRate,laborRate,materialCost,laborCost,coatingCost,hardwareCost,totalCost,status,drawingNumber
1,W12x65 beam,Beams,W,Rolled,"1,300",120,,,Paint,1.5,2.5,0.9,65,$1170,260,80,,1510,Active,S-101
2,Base plate,Plates,Base Plate,Plate,,,85,6,None,0.5,,1.1,65,93.5,32.5,,12,,Active,S-102
3,Removed,Beams,W,Material,500,,,,,,,,,100,,,,,Void,S-103
"""


def test_normalize_key():
    assert normalize_key("plateTotalWeight") == "plate_total_weight"
    assert normalize_key("Labor Process Plate") == "labor_process_plate"
    assert normalize_key("LINE_ID") == "line_id"
    assert normalize_key("lineID") == "line_id"


def test_load_csv_export(tmp_path: Path):
    path = tmp_path / "lines.csv"
    path.write_text(CSV_EXPORT, encoding="utf-8")
    lines = load_lines(path)
    assert len(lines) == 3

    beam, plate, void = lines
    assert beam.line_id == "1"
    assert beam.description == "W12x65 beam"
    assert beam.material_type == "Material"
    assert beam.weight_lbs == 1300.0
    assert beam.surface_area_sf == 120.0
    assert beam.labor_hours == {"cut": 1.5, "weld": 2.5}
    assert beam.total_labor == pytest.approx(4.0)
    assert beam.material_cost == 1170.0
    assert beam.total_cost == 1510.0
    assert beam.has_coating

    assert plate.is_plate
    assert plate.weight_lbs == 85.0
    assert plate.surface_area_sf == 6.0
    assert plate.hardware_cost == 12.0
    assert plate.total_cost == pytest.approx(93.5 + 32.5 + 12.0)
    assert not plate.has_coating

    assert void.is_void
    assert void.category == "Beams"


def test_load_json_wrapper(tmp_path: Path):
    path = tmp_path / "lines.json"
    payload = {
        "lines": [
            {"lineId": "7", "materialType": "Plate", "plateTotalWeight": 40, "totalWeight": 999, "materialCost": 44},
            {"lineId": 8, "labor_hours": {"drillPunch": 2}, "workType": "misc"},
        ]
    }
    path.write_text(json.dumps(payload), encoding="utf-8")
    first, second = load_lines(path)
    assert first.weight_lbs == 40.0
    assert second.line_id == "8"
    assert second.labor_hours == {"drill_punch": 2.0}
    assert second.work_type == "MISC"


def test_load_xlsx(tmp_path: Path):
    path = tmp_path / "lines.xlsx"
    pd.DataFrame(
        [
            {"Line ID": "L-1", "Category": "Columns", "Total Weight": 2000, "Material Cost": 1000, "Labor Cost": 500},
            {"Line ID": None, "Category": None, "Total Weight": None, "Material Cost": None, "Labor Cost": None},
        ]
    ).to_excel(path, index=False)
    lines = load_lines(path)
    assert len(lines) == 1
    assert lines[0].line_id == "L-1"
    assert lines[0].direct_cost == pytest.approx(1500.0)


def test_blank_category_defaults():
    (line,) = parse_lines([{"lineId": "1", "category": ""}])
    assert line.category == "Uncategorized"
    assert line.status == "Active"
    assert line.work_type == "STRUCTURAL"


def test_invalid_records_are_reported_together():
    rows = [
        {"lineId": "1", "status": "Deleted"},
        {"lineId": "2", "totalWeight": -5},
        {"lineId": "3", "materialCost": "lots"},
        {"lineId": "4", "materialType": "Pipe"},
    ]
    with pytest.raises(LineValidationError) as excinfo:
        parse_lines(rows)
    problems = excinfo.value.problems
    assert len(problems) == 4
    assert problems[0].startswith("1: status")
    assert any(p.startswith("2: weight_lbs") for p in problems)
    assert any(p.startswith("3: material_cost") for p in problems)
    assert isinstance(excinfo.value, ValueError)


def test_tags_match_case_insensitively():
    record = normalize_record({"lineId": "1", "materialType": "PLATE", "status": "void", "workType": "Misc"})
    assert record["material_type"] == "Plate"
    assert record["status"] == "Void"
    assert record["work_type"] == "MISC"


def test_non_object_json_rows_are_rejected(tmp_path: Path):
    path = tmp_path / "lines.json"
    path.write_text(json.dumps({"lines": [{"lineId": "1"}, 5, "x"]}), encoding="utf-8")
    with pytest.raises(LineValidationError) as excinfo:
        load_lines(path)
    assert excinfo.value.problems == [
        "row 2: expected a JSON object, got int",
        "row 3: expected a JSON object, got str",
    ]


def test_unknown_labor_operation_is_rejected():
    with pytest.raises(LineValidationError):
        parse_lines([{"lineId": "1", "labor_hours": {"grind": 1}}])


def test_unrecognized_columns_are_dropped():
    record = normalize_record({"lineId": "1", "notes": "check", "hashtags": "#x"})
    assert "notes" not in record
    assert record["line_id"] == "1"


def test_unsupported_and_missing_files(tmp_path: Path):
    bad = tmp_path / "lines.txt"
    bad.write_text("x", encoding="utf-8")
    with pytest.raises(ValueError, match="Unsupported file type"):
        load_lines(bad)
    with pytest.raises(FileNotFoundError):
        load_lines(tmp_path / "missing.csv")


def test_load_win_loss(tmp_path: Path):
    path = tmp_path / "history.csv"
    path.write_text(
        "projectType,status\nHealthcare,won\nHealthcare,LOST\nCommercial,pending\n,won\n",
        encoding="utf-8",
    )
    records = load_win_loss(path)
    assert [(r.project_type, r.status) for r in records] == [
        ("Healthcare", "won"),
        ("Healthcare", "lost"),
        ("", "won"),
    ]
