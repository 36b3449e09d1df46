from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from .cli import run as run_pipeline
from .config import load_config


@dataclass
class EvaluateOptions:
    lines: Optional[Path] = None
    baselines: Optional[Path] = None
    thresholds: Optional[Path] = None
    win_loss: Optional[Path] = None
    output_dir: Optional[Path] = None
    project_type: Optional[str] = None
    bid_due: Optional[str] = None
    as_of: Optional[str] = None
    files_count: Optional[int] = None
    emit_pdf: bool = True


def evaluate(options: EvaluateOptions) -> Dict[str, Optional[Path]]:
    """Programmatic interface to score an estimate and return artifact paths.

    Returns a dict with keys: json, pdf (``None`` when the PDF is disabled).
    """

    env = dict(os.environ)
    if options.lines:
        env["ESTIMATE_LINES"] = str(options.lines)
    if options.baselines:
        env["BASELINES_JSON"] = str(options.baselines)
    if options.thresholds:
        env["HEALTH_THRESHOLDS_JSON"] = str(options.thresholds)
    if options.win_loss:
        env["WIN_LOSS_RECORDS"] = str(options.win_loss)
    if options.output_dir:
        env["OUTPUT_DIR"] = str(options.output_dir)
        env.pop("OUTPUT_JSON", None)
        env.pop("OUTPUT_PDF", None)
    if options.project_type:
        env["PROJECT_TYPE"] = options.project_type
    if options.bid_due:
        env["BID_DUE_DATE"] = options.bid_due
    if options.as_of:
        env["HEALTH_AS_OF"] = options.as_of
    if options.files_count is not None:
        env["PROJECT_FILES_COUNT"] = str(options.files_count)
    if not options.emit_pdf:
        env["DISABLE_PDF"] = "1"

    cfg = load_config(env, None)
    rc = run_pipeline(runtime_config=cfg)
    if rc != 0:
        raise RuntimeError(f"Health evaluation failed with code {rc}")
    return {
        "json": cfg.output_json,
        "pdf": cfg.output_pdf if cfg.emit_pdf else None,
    }
