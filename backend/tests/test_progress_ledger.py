"""Tests for completion rate, day status and streak recomputation."""

import pytest

from app.core.exceptions import ValidationError
from app.core.progress_ledger import (
    StreakSummary,
    completion_rate,
    day_status,
    evaluate_tasks,
    recompute_streaks,
    resolve_day,
    validate_date,
)


def _tasks(done: int, total: int) -> list[dict]:
    return [{"id": str(i), "text": f"task {i}", "completed": i < done} for i in range(total)]


def _day(done: int, total: int) -> dict:
    return {"tasks": _tasks(done, total)}


# ---------------------------------------------------------------------------
# Completion rate and status
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "done,total,expected_rate,expected_status",
    [
        (2, 3, 67, "partial"),
        (1, 3, 33, "partial"),
        (3, 3, 100, "completed"),
        (0, 3, 0, "missed"),
        (1, 2, 50, "partial"),
        (0, 0, 0, "pending"),
    ],
)
def test_evaluate_tasks(done, total, expected_rate, expected_status):
    assert evaluate_tasks(_tasks(done, total)) == (expected_rate, expected_status)


def test_completion_rate_rounds_half_up():
    # 1/8 = 12.5% -> 13
    assert completion_rate(_tasks(1, 8)) == 13


def test_day_status_thresholds():
    assert day_status(100, True) == "completed"
    assert day_status(1, True) == "partial"
    assert day_status(0, True) == "missed"
    assert day_status(0, False) == "pending"


def test_completed_must_be_bool():
    with pytest.raises(TypeError):
        completion_rate([{"id": "1", "text": "x", "completed": "yes"}])


# ---------------------------------------------------------------------------
# Date validation
# ---------------------------------------------------------------------------


def test_validate_date_accepts_calendar_date():
    assert validate_date("2024-02-29") == "2024-02-29"


@pytest.mark.parametrize("value", ["2024-13-01", "2023-02-29", "01-03-2024", "2024/01/03", "", None])
def test_validate_date_rejects_malformed(value):
    with pytest.raises(ValidationError) as exc_info:
        validate_date(value)
    assert exc_info.value.field == "date"


# ---------------------------------------------------------------------------
# Streaks
# ---------------------------------------------------------------------------


def test_streak_example():
    days = {
        "2024-01-01": _day(2, 2),
        "2024-01-02": _day(1, 1),
        "2024-01-03": _day(3, 3),
        "2024-01-04": _day(0, 2),
        "2024-01-05": _day(1, 1),
    }
    assert recompute_streaks(days) == StreakSummary(
        current_streak=1, longest_streak=3, total_completed_days=4
    )


def test_streak_ignores_insertion_order():
    days = {
        "2024-01-05": _day(1, 1),
        "2024-01-04": _day(0, 2),
        "2024-01-01": _day(1, 1),
        "2024-01-02": _day(1, 1),
    }
    summary = recompute_streaks(days)
    assert summary.longest_streak == 2
    assert summary.current_streak == 1


def test_partial_and_pending_days_keep_streak():
    days = {
        "2024-01-01": _day(1, 1),
        "2024-01-02": _day(1, 2),
        "2024-01-03": {"tasks": []},
        "2024-01-04": _day(1, 1),
    }
    summary = recompute_streaks(days)
    assert summary.current_streak == 2
    assert summary.longest_streak == 2
    assert summary.total_completed_days == 2


def test_trailing_missed_day_resets_current_streak():
    days = {"2024-01-01": _day(1, 1), "2024-01-02": _day(0, 1)}
    summary = recompute_streaks(days)
    assert summary.current_streak == 0
    assert summary.longest_streak == 1


def test_empty_ledger():
    assert recompute_streaks({}) == StreakSummary()


def test_recompute_is_idempotent():
    days = {"2024-01-01": _day(1, 1), "2024-01-02": _day(0, 1), "2024-01-03": _day(2, 2)}
    assert recompute_streaks(days) == recompute_streaks(dict(days))


def test_status_is_rederived_not_trusted():
    days = {"2024-01-01": {"tasks": _tasks(0, 1), "status": "completed", "completion_rate": 100}}
    assert recompute_streaks(days).total_completed_days == 0


def test_malformed_day_is_pending(caplog):
    assert resolve_day("2024-01-01", {"mood": "ok"}) == (0, "pending")
    assert resolve_day("2024-01-02", {"tasks": "not a list"}) == (0, "pending")
    assert "Malformed day entry" in caplog.text


def test_malformed_day_does_not_abort_recompute():
    days = {
        "2024-01-01": _day(1, 1),
        "2024-01-02": "garbage",
        "2024-01-03": _day(1, 1),
    }
    summary = recompute_streaks(days)
    assert summary.current_streak == 2
    assert summary.total_completed_days == 2
