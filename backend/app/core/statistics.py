"""Statistics aggregator: summary and weekly rollups over a progress ledger.

Read-only: nothing here mutates the ledger it is given.
"""

import logging
from datetime import date, datetime, timedelta

from app.core.progress_ledger import resolve_day
from app.models.progress import ProgressLedger, ProgressStats, WeeklyCompletion

logger = logging.getLogger(__name__)

WEEKS_IN_SUMMARY = 5


def week_start(day: date) -> date:
    """Monday of the ISO week containing *day*."""
    return day - timedelta(days=day.weekday())


def _parse_day(day_key: str) -> date | None:
    try:
        return date.fromisoformat(day_key)
    except ValueError:
        logger.warning("Skipping day with unparseable date key %r", day_key)
        return None


def weekly_completions(
    completed_dates: list[date],
    today: date,
    weeks: int = WEEKS_IN_SUMMARY,
) -> list[WeeklyCompletion]:
    """Count completed days per week for the last *weeks* weeks, oldest first."""
    current = week_start(today)
    buckets = []
    for offset in range(weeks - 1, -1, -1):
        start = current - timedelta(weeks=offset)
        end = start + timedelta(days=7)
        completed = sum(1 for d in completed_dates if start <= d < end)
        buckets.append(WeeklyCompletion(
            week_start=start.isoformat(),
            label=f"{start:%b} {start.day}",
            completed=completed,
        ))
    return buckets


def compute_stats(
    ledger: ProgressLedger,
    today: date | None = None,
    weeks: int = WEEKS_IN_SUMMARY,
) -> ProgressStats:
    """Derive summary statistics from *ledger*.

    Args:
        ledger: The user's progress ledger
        today: Reference date for the weekly window (defaults to UTC today)
        weeks: Number of Monday-based weeks in ``weekly_data``

    Returns:
        ProgressStats with per-status counts, average completion and
        weekly completed-day counts ordered oldest to newest
    """
    today = today or datetime.utcnow().date()

    counts = {"completed": 0, "partial": 0, "missed": 0, "pending": 0}
    total_rate = 0
    completed_dates: list[date] = []

    for day_key, day in ledger.days.items():
        rate, status = resolve_day(day_key, day)
        counts[status] += 1
        total_rate += rate
        if status == "completed":
            parsed = _parse_day(day_key)
            if parsed is not None:
                completed_dates.append(parsed)

    total_days = len(ledger.days)
    # Half-up rounding of the mean, matching completion_rate().
    average = (2 * total_rate + total_days) // (2 * total_days) if total_days else 0

    return ProgressStats(
        total_days=total_days,
        completed_days=counts["completed"],
        partial_days=counts["partial"],
        missed_days=counts["missed"],
        current_streak=ledger.current_streak,
        longest_streak=ledger.longest_streak,
        average_completion=average,
        weekly_data=weekly_completions(completed_dates, today, weeks),
    )
