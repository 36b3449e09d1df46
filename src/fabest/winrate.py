"""Historical win rates by project type."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from .project_meta import DEFAULT_PROJECT_TYPE

WIN_STATUSES: Tuple[str, ...] = ("won", "lost")
TOP_TYPE_LIMIT = 6


@dataclass(frozen=True)
class WinLossRecord:
    project_type: str
    status: str

    @property
    def won(self) -> bool:
        return self.status == "won"


@dataclass(frozen=True)
class TypeWinRate:
    project_type: str
    win_rate: float
    total: int


@dataclass(frozen=True)
class WinProbability:
    project_type: str
    historical_win_rate: Optional[float]
    overall_win_rate: Optional[float]
    by_type: Tuple[TypeWinRate, ...] = ()

    def as_dict(self) -> Dict[str, object]:
        return {
            "project_type": self.project_type,
            "historical_win_rate": self.historical_win_rate,
            "overall_win_rate": self.overall_win_rate,
            "by_type": [
                {"project_type": r.project_type, "win_rate": r.win_rate, "total": r.total} for r in self.by_type
            ],
        }


def _records_frame(records: Iterable[WinLossRecord]) -> pd.DataFrame:
    # RAW_TYPE is matched against the project; PROJECT_TYPE groups blanks under Default
    rows = [
        {
            "RAW_TYPE": r.project_type or "",
            "PROJECT_TYPE": r.project_type or DEFAULT_PROJECT_TYPE,
            "WON": r.won,
        }
        for r in records
        if r.status in WIN_STATUSES
    ]
    return pd.DataFrame(rows, columns=["RAW_TYPE", "PROJECT_TYPE", "WON"])


def _rate(frame: pd.DataFrame) -> Optional[float]:
    if frame.empty:
        return None
    return float(frame["WON"].astype(bool).mean() * 100.0)


def win_probability(records: Iterable[WinLossRecord], project_type: Optional[str]) -> WinProbability:
    """
    Win rate for ``project_type`` alongside the overall rate.

    Rates are percentages and ``None`` when there is no history to draw on.
    ``by_type`` lists the most-sampled project types (ties keep first-seen
    order).  Records with a status other than ``won``/``lost`` are ignored.
    """

    current = (str(project_type).strip() if project_type else "") or DEFAULT_PROJECT_TYPE
    frame = _records_frame(records)
    historical = _rate(frame.loc[frame["RAW_TYPE"] == current])
    overall = _rate(frame)

    by_type: List[TypeWinRate] = []
    if not frame.empty:
        grouped = frame.groupby("PROJECT_TYPE", sort=False)["WON"].agg(["sum", "size"])
        grouped = grouped.sort_values("size", ascending=False, kind="mergesort").head(TOP_TYPE_LIMIT)
        for name, row in grouped.iterrows():
            total = int(row["size"])
            by_type.append(
                TypeWinRate(
                    project_type=str(name),
                    win_rate=float(row["sum"]) / total * 100.0 if total else 0.0,
                    total=total,
                )
            )
    return WinProbability(
        project_type=current,
        historical_win_rate=historical,
        overall_win_rate=overall,
        by_type=tuple(by_type),
    )
