from __future__ import annotations

import pytest

from fabest.winrate import WinLossRecord, win_probability


def _records(rows):
    return [WinLossRecord(project_type=kind, status=status) for kind, status in rows]


def test_win_probability_by_type_and_overall():
    records = _records(
        [
            ("Healthcare", "won"),
            ("Healthcare", "lost"),
            ("Healthcare", "won"),
            ("Commercial", "lost"),
            ("", "won"),
        ]
    )
    result = win_probability(records, "Healthcare")
    assert result.historical_win_rate == pytest.approx(200.0 / 3.0)
    assert result.overall_win_rate == pytest.approx(60.0)
    assert [(r.project_type, r.total) for r in result.by_type] == [
        ("Healthcare", 3),
        ("Commercial", 1),
        ("Default", 1),
    ]
    assert result.by_type[1].win_rate == 0.0


def test_unsampled_type_has_no_rate():
    result = win_probability(_records([("Commercial", "won")]), "Industrial")
    assert result.historical_win_rate is None
    assert result.overall_win_rate == 100.0


def test_no_history():
    result = win_probability([], None)
    assert result.project_type == "Default"
    assert result.historical_win_rate is None
    assert result.overall_win_rate is None
    assert result.by_type == ()


def test_by_type_keeps_six_most_sampled():
    rows = [(f"T{i}", "won") for i in range(8) for _ in range(i + 1)]
    result = win_probability(_records(rows), "T0")
    assert [r.project_type for r in result.by_type] == ["T7", "T6", "T5", "T4", "T3", "T2"]
    assert result.historical_win_rate == 100.0


def test_blank_types_only_group_under_default():
    result = win_probability(_records([("", "won"), ("Default", "lost")]), None)
    assert result.historical_win_rate == 0.0
    assert result.overall_win_rate == 50.0
    assert [(r.project_type, r.total) for r in result.by_type] == [("Default", 2)]
