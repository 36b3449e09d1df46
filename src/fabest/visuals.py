"""One-page PDF summary of an estimate health report."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Iterable, Tuple

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from .alerts import SEVERITY_CRITICAL, SEVERITY_INFO, SEVERITY_WARNING
from .formatting import format_money, format_number
from .health import HealthReport
from .scoring import STATUS_HEALTHY, STATUS_REVIEW

MARGIN = 42
LINE_HEIGHT = 13

_SEVERITY_COLORS = {
    SEVERITY_CRITICAL: colors.HexColor("#b91c1c"),
    SEVERITY_WARNING: colors.HexColor("#b45309"),
    SEVERITY_INFO: colors.HexColor("#1d4ed8"),
}
_STATUS_COLORS = {
    STATUS_HEALTHY: colors.HexColor("#15803d"),
    STATUS_REVIEW: colors.HexColor("#b45309"),
}


class _Page:
    """Top-down text cursor that starts a new page when it runs out of room."""

    def __init__(self, c: canvas.Canvas, width: float, height: float):
        self.c = c
        self.width = width
        self.height = height
        self.y = height - MARGIN

    def ensure(self, needed: float) -> None:
        if self.y - needed < MARGIN:
            self.c.showPage()
            self.y = self.height - MARGIN

    def heading(self, text: str) -> None:
        self.ensure(LINE_HEIGHT * 3)
        self.y -= LINE_HEIGHT * 0.5
        self.c.setFont("Helvetica-Bold", 12)
        self.c.setFillColor(colors.black)
        self.c.drawString(MARGIN, self.y, text)
        self.y -= LINE_HEIGHT * 1.3

    def text(self, text: str, *, indent: float = 0, color=colors.black, wrap: int = 100) -> None:
        self.c.setFont("Helvetica", 9.5)
        self.c.setFillColor(color)
        for line in textwrap.wrap(text, width=wrap) or [""]:
            self.ensure(LINE_HEIGHT)
            self.c.drawString(MARGIN + indent, self.y, line)
            self.y -= LINE_HEIGHT
        self.c.setFillColor(colors.black)

    def rows(self, rows: Iterable[Tuple[str, str]], *, value_x: float = 200) -> None:
        self.c.setFont("Helvetica", 9.5)
        for label, value in rows:
            self.ensure(LINE_HEIGHT)
            self.c.drawString(MARGIN, self.y, label)
            self.c.drawRightString(MARGIN + value_x, self.y, value)
            self.y -= LINE_HEIGHT


def _position_bar(page: _Page, label: str, position: float) -> None:
    """Horizontal 1-99 track with the interquartile band shaded and a marker at ``position``."""

    page.ensure(LINE_HEIGHT * 2)
    c = page.c
    track_x = MARGIN + 110
    track_w = 260
    y = page.y
    c.setFont("Helvetica", 9.5)
    c.drawString(MARGIN, y, label)
    c.setStrokeColor(colors.grey)
    c.setFillColor(colors.HexColor("#e5e7eb"))
    c.rect(track_x, y - 1, track_w, 8, stroke=1, fill=1)
    c.setFillColor(colors.HexColor("#bbf7d0"))
    c.rect(track_x + track_w * 0.25, y - 1, track_w * 0.5, 8, stroke=0, fill=1)
    marker_x = track_x + track_w * max(0.0, min(1.0, position / 100.0))
    c.setFillColor(colors.black)
    c.rect(marker_x - 1.5, y - 3, 3, 12, stroke=0, fill=1)
    c.drawString(track_x + track_w + 10, y, f"p{position:.0f}")
    page.y -= LINE_HEIGHT * 1.5


def emit_health_pdf(report: HealthReport, output_path: Path) -> Path:
    """Draw ``report`` into ``output_path`` and return the written path."""

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    width, height = letter
    c = canvas.Canvas(str(output_path), pagesize=letter)
    c.setTitle("Estimate Health")
    page = _Page(c, width, height)

    c.setFont("Helvetica-Bold", 18)
    c.drawString(MARGIN, page.y, "Estimate Health")
    c.setFont("Helvetica", 9)
    c.drawRightString(width - MARGIN, page.y, f"thresholds {report.thresholds_version}")
    page.y -= LINE_HEIGHT * 2

    c.setFont("Helvetica-Bold", 28)
    c.setFillColor(_STATUS_COLORS.get(report.status, colors.HexColor("#b91c1c")))
    c.drawString(MARGIN, page.y - 8, f"{report.score:.0f}")
    c.setFont("Helvetica-Bold", 13)
    c.drawString(MARGIN + 60, page.y - 4, report.status)
    c.setFillColor(colors.black)
    c.setFont("Helvetica", 9.5)
    c.drawString(MARGIN + 60, page.y - 17, f"{report.project_type} | baseline {report.baseline.label}")
    page.y -= LINE_HEIGHT * 3

    totals = report.metrics.totals
    page.heading("Totals")
    page.rows(
        [
            ("Direct cost", format_money(totals.direct_cost)),
            ("Weight (tons)", format_number(totals.tons, 2)),
            ("Labor hours", format_number(totals.total_labor_hours, 1)),
            ("Cost / ton", format_money(totals.cost_per_ton)),
            ("Hours / ton", format_number(totals.hours_per_ton, 2)),
            ("Active lines", str(totals.line_count)),
        ]
    )

    page.heading("Position vs baseline")
    _position_bar(page, "Cost / ton", report.positions.cost)
    _position_bar(page, "Hours / ton", report.positions.hours)

    page.heading("Alerts")
    visible = [item for item in report.ranked_alerts if item.severity in _SEVERITY_COLORS]
    if not visible:
        page.text("No open findings.")
    for item in visible:
        page.text(
            f"[{item.severity.upper()}] {item.title}: {item.value} ({item.detail})",
            color=_SEVERITY_COLORS[item.severity],
        )

    drivers = report.metrics.top_categories
    if drivers:
        page.heading("Top cost drivers")
        page.rows([(driver.key, format_money(driver.cost)) for driver in drivers], value_x=300)

    markup = report.markup
    page.heading("Markup stack")
    page.rows(
        [
            ("Direct cost", format_money(markup.direct_cost)),
            ("Waste", format_money(markup.material_waste + markup.labor_waste)),
            (f"Overhead ({markup.overhead_pct:g}%)", format_money(markup.overhead)),
            (f"Profit ({markup.profit_pct:g}%)", format_money(markup.profit)),
            ("Total", format_money(markup.total)),
        ]
    )

    c.showPage()
    c.save()
    return output_path


__all__ = ["emit_health_pdf"]
