"""Progress ledger rules: completion rate, day status and streak recomputation.

Everything here is a pure function over plain data so that the repository
layer can recompute aggregates from the full ``days`` map on every write:

  completion_rate = round(100 * completed / total), 0 when there are no tasks
  status          = completed (100) | partial (1-99) | missed (0 with tasks)
                    | pending (no tasks)

Streaks are derived by walking the date keys in ascending order. A
``missed`` day resets the running streak; ``partial`` and ``pending`` days
leave it untouched.
"""

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any, Literal

from app.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

DayStatus = Literal["completed", "partial", "missed", "pending"]

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class StreakSummary:
    """Aggregates derived from a user's full day history."""

    current_streak: int = 0
    longest_streak: int = 0
    total_completed_days: int = 0


def validate_date(value: Any) -> str:
    """Return *value* if it is a real calendar date in ``YYYY-MM-DD`` form."""
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD", field="date")
    try:
        date.fromisoformat(value)
    except ValueError as e:
        raise ValidationError(f"Invalid date {value!r}: {e}", field="date") from e
    return value


def _is_completed(task: Any) -> bool:
    if isinstance(task, Mapping):
        value = task["completed"]
    else:
        value = task.completed
    if not isinstance(value, bool):
        raise TypeError(f"task.completed must be a bool, got {type(value).__name__}")
    return value


def completion_rate(tasks: Iterable[Any]) -> int:
    """Percentage of completed tasks, rounded half-up to an int."""
    tasks = list(tasks)
    total = len(tasks)
    if total == 0:
        return 0
    done = sum(1 for t in tasks if _is_completed(t))
    return (200 * done + total) // (2 * total)


def day_status(rate: int, has_tasks: bool) -> DayStatus:
    """Map a completion rate to a day status."""
    if not has_tasks:
        return "pending"
    if rate >= 100:
        return "completed"
    if rate > 0:
        return "partial"
    return "missed"


def evaluate_tasks(tasks: Iterable[Any]) -> tuple[int, DayStatus]:
    """Return ``(completion_rate, status)`` for a task list."""
    tasks = list(tasks)
    rate = completion_rate(tasks)
    return rate, day_status(rate, bool(tasks))


def resolve_day(day_key: str, day: Any) -> tuple[int, DayStatus]:
    """Derive ``(completion_rate, status)`` for a stored day entry.

    The status is always re-derived from the tasks. Entries that cannot be
    read count as ``pending`` with a rate of 0.
    """
    try:
        tasks = day["tasks"] if isinstance(day, Mapping) else day.tasks
        if tasks is None or isinstance(tasks, (str, bytes)):
            raise TypeError("tasks must be a list")
        return evaluate_tasks(tasks)
    except (KeyError, AttributeError, TypeError) as e:
        logger.warning("Malformed day entry %s treated as pending: %s", day_key, e)
        return 0, "pending"


def recompute_streaks(days: Mapping[str, Any]) -> StreakSummary:
    """Recompute streak aggregates from the complete ``days`` map."""
    temp_streak = 0
    longest_streak = 0
    total_completed = 0

    for day_key in sorted(days):
        _, status = resolve_day(day_key, days[day_key])
        if status == "completed":
            temp_streak += 1
            total_completed += 1
            longest_streak = max(longest_streak, temp_streak)
        elif status == "missed":
            temp_streak = 0

    return StreakSummary(
        current_streak=temp_streak,
        longest_streak=longest_streak,
        total_completed_days=total_completed,
    )
