import argparse
import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence

from dotenv import load_dotenv

from .alerts import filter_alerts
from .baselines import load_baselines
from .config import Config, load_thresholds
from .config import load_config as load_runtime_config
from .health import evaluate_health
from .line_io import load_lines, load_win_loss
from .models import EstimateLine
from .policy import DEFAULT_POLICY_PATH, apply_policy_defaults
from .reporting import make_summary_text, write_report_json
from .visuals import emit_health_pdf
from .winrate import WinLossRecord

BASE_DIR = Path(__file__).resolve().parents[2]

logger = logging.getLogger(__name__)


def _policy_path(base_dir: Path) -> Path:
    explicit = os.environ.get("HEALTH_POLICY_JSON", "").strip()
    if explicit:
        return Path(explicit).expanduser().resolve()
    return (base_dir / DEFAULT_POLICY_PATH).resolve()


def run(runtime_config: Config) -> int:
    """Evaluate the configured estimate and write its report artifacts."""

    cfg = runtime_config
    stage_counter = 0

    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(message)s")

    def log_stage(message: str) -> None:
        nonlocal stage_counter
        stage_counter += 1
        logger.info("[health:%02d] %s", stage_counter, message)

    def log_detail(message: str) -> None:
        logger.info("           %s", message)

    if cfg.lines_path is None:
        raise ValueError("No estimate lines given; pass --lines or set ESTIMATE_LINES")

    log_stage(f"Loading estimate lines from {cfg.lines_path}")
    lines: List[EstimateLine] = load_lines(cfg.lines_path)
    void_count = sum(1 for line in lines if line.is_void)
    log_detail(f"lines={len(lines):,} void={void_count:,}")

    log_stage("Loading baselines and thresholds")
    table = load_baselines(cfg.baselines_path)
    thresholds = load_thresholds(os.environ, cfg.thresholds_path)
    log_detail(f"baseline_types={len(table)} thresholds_version={thresholds.version}")

    win_loss: List[WinLossRecord] = []
    if cfg.win_loss_path is not None:
        log_stage(f"Loading win/loss history from {cfg.win_loss_path}")
        win_loss = load_win_loss(cfg.win_loss_path)
        log_detail(f"records={len(win_loss):,}")

    log_stage("Scoring estimate health")
    report = evaluate_health(
        lines,
        project_type=cfg.project_type,
        bid_due_date=cfg.bid_due_date,
        files_count=cfg.files_count,
        as_of=cfg.as_of,
        baselines=table,
        thresholds=thresholds,
        markup=cfg.markup,
        win_loss=win_loss,
    )
    log_detail(f"score={report.score:.1f} status={report.status} baseline={report.baseline.label}")
    for item in filter_alerts(report.alerts, executive=True, thresholds=thresholds):
        logger.info("[alert] %s :: %s :: %s", item.severity, item.title, item.value)

    log_stage("Writing outputs")
    written = [write_report_json(report, cfg.output_json)]
    if cfg.emit_pdf:
        written.append(emit_health_pdf(report, cfg.output_pdf))
    else:
        log_detail("PDF disabled")

    logger.info("\n%s", make_summary_text(report))
    logger.info("Outputs written:")
    for path in written:
        logger.info(" - %s", path)
    return 0


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Score the health of a fabrication estimate against baselines")
    parser.add_argument("--lines", help="Estimate line export (CSV, XLSX, XLS or JSON)")
    parser.add_argument("--baselines", help="Baseline JSON overriding the packaged defaults")
    parser.add_argument("--thresholds", help="JSON file of alert/score threshold overrides")
    parser.add_argument("--win-loss", help="Win/loss history (CSV or JSON)")
    parser.add_argument("--project-type", help="Project type used to pick the baseline")
    parser.add_argument("--bid-due", help="Bid due date (ISO format)")
    parser.add_argument("--as-of", help="Evaluate schedule as of this date instead of now")
    parser.add_argument("--files-count", type=int, help="Number of project documents on file")
    parser.add_argument("--overhead-pct", type=float, help="Project overhead percent override")
    parser.add_argument("--profit-pct", type=float, help="Project profit percent override")
    parser.add_argument("--output-dir", help="Directory for generated outputs")
    parser.add_argument("--no-pdf", action="store_true", help="Skip the PDF summary")
    parser.add_argument("-v", "--verbose", action="store_true", help="Increase logging verbosity")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    load_dotenv(BASE_DIR / ".env")
    applied = apply_policy_defaults(_policy_path(BASE_DIR))
    runtime_cfg = load_runtime_config(os.environ, args)
    log_level = logging.DEBUG if runtime_cfg.verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(message)s")
    if applied:
        logger.debug("Policy defaults applied: %s", ", ".join(applied))
    try:
        return run(runtime_config=runtime_cfg)
    except Exception:
        logger.exception("Fatal error during health evaluation")
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
