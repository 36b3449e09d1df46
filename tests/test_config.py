from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace

import pytest

from fabest.config import DEFAULT_THRESHOLDS, MarkupSettings, load_config, load_thresholds


def test_load_config_defaults():
    cfg = load_config({}, None)
    assert cfg.lines_path is None
    assert cfg.output_json.name == "health_report.json"
    assert cfg.output_pdf.name == "Estimate_Health.pdf"
    assert cfg.output_json.parent == cfg.output_dir
    assert cfg.files_count == 0
    assert cfg.emit_pdf is True
    assert cfg.markup == MarkupSettings()


def test_env_then_cli_precedence(tmp_path: Path):
    env = {
        "ESTIMATE_LINES": str(tmp_path / "env_lines.csv"),
        "OUTPUT_DIR": str(tmp_path / "env_out"),
        "PROJECT_TYPE": "Commercial",
        "PROJECT_FILES_COUNT": "4",
        "DISABLE_PDF": "yes",
        "OVERHEAD_PCT": "12%",
        "PROFIT_PCT": "7.5",
        "PROJECT_PROFIT_PCT": "9",
    }
    cfg = load_config(env, None)
    assert cfg.lines_path == (tmp_path / "env_lines.csv").resolve()
    assert cfg.output_json == (tmp_path / "env_out" / "health_report.json").resolve()
    assert cfg.project_type == "Commercial"
    assert cfg.files_count == 4
    assert cfg.emit_pdf is False
    assert cfg.markup.effective_overhead_pct == 12.0
    assert cfg.markup.effective_profit_pct == 9.0

    args = SimpleNamespace(
        lines=str(tmp_path / "cli_lines.csv"),
        output_dir=str(tmp_path / "cli_out"),
        project_type="Healthcare",
        files_count=0,
        overhead_pct=15.0,
        bid_due="2025-03-01",
        as_of="2025-02-25",
        verbose=True,
    )
    cfg = load_config(env, args)
    assert cfg.lines_path == (tmp_path / "cli_lines.csv").resolve()
    assert cfg.output_pdf == (tmp_path / "cli_out" / "Estimate_Health.pdf").resolve()
    assert cfg.project_type == "Healthcare"
    assert cfg.files_count == 0
    assert cfg.markup.effective_overhead_pct == 15.0
    assert cfg.markup.overhead_pct == 12.0
    assert cfg.bid_due_date == "2025-03-01"
    assert cfg.as_of == "2025-02-25"
    assert cfg.verbose is True


def test_thresholds_default_when_unset():
    assert load_thresholds({}) is DEFAULT_THRESHOLDS
    assert DEFAULT_THRESHOLDS.position_low == 20.0
    assert DEFAULT_THRESHOLDS.concentration_warn_pct == 65.0


def test_thresholds_file_then_env(tmp_path: Path):
    path = tmp_path / "thresholds.json"
    path.write_text(json.dumps({"version": "site-2", "concentration_warn_pct": 70, "gap_count_warn": 3}), encoding="utf-8")
    thresholds = load_thresholds({"HEALTH_GAP_COUNT_WARN": "8"}, path)
    assert thresholds.version == "site-2"
    assert thresholds.concentration_warn_pct == 70.0
    assert thresholds.gap_count_warn == 8
    assert thresholds.position_high == DEFAULT_THRESHOLDS.position_high

    via_env = load_thresholds({"HEALTH_THRESHOLDS_JSON": str(path)})
    assert via_env.gap_count_warn == 3


def test_thresholds_reject_unknown_and_invalid(tmp_path: Path):
    path = tmp_path / "thresholds.json"
    path.write_text(json.dumps({"concentration_warning": 70}), encoding="utf-8")
    with pytest.raises(ValueError, match="concentration_warning"):
        load_thresholds({}, path)
    with pytest.raises(ValueError, match="position_low"):
        load_thresholds({"HEALTH_POSITION_LOW": "low"})
    with pytest.raises(FileNotFoundError):
        load_thresholds({}, tmp_path / "missing.json")
