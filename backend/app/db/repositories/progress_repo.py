"""Progress repository: per-user day ledger with recomputed streaks."""

import asyncio
import logging
import uuid
import weakref
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ValidationError
from app.core.progress_ledger import recompute_streaks, validate_date
from app.db.exceptions import ConnectionError, DatabaseError
from app.db.models import UserProgress
from app.models.progress import DayEntry, ProgressLedger, Task

logger = logging.getLogger(__name__)

# One writer per user inside this process. Cross-process writers are
# serialised by the row lock taken in _load_row(for_update=True).
_user_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


def _user_lock(user_id: str) -> asyncio.Lock:
    lock = _user_locks.get(user_id)
    if lock is None:
        lock = asyncio.Lock()
        _user_locks[user_id] = lock
    return lock


def _to_day_entry(day_key: str, raw: Any) -> DayEntry | None:
    """Parse a stored day, degrading unreadable data to an empty pending day."""
    try:
        if not isinstance(raw, dict):
            raise TypeError(f"expected a mapping, got {type(raw).__name__}")
        # Derived fields are recomputed from tasks, never trusted from storage.
        stored = {k: v for k, v in raw.items() if k not in ("completion_rate", "status")}
        return DayEntry.model_validate({**stored, "date": day_key})
    except (PydanticValidationError, TypeError, ValueError) as e:
        logger.warning(f"Malformed stored day {day_key}, treating as pending: {e}")
    try:
        return DayEntry(date=day_key)
    except (PydanticValidationError, ValueError):
        logger.warning(f"Dropping stored day with invalid date key {day_key!r}")
        return None


def _to_ledger(row: UserProgress) -> ProgressLedger:
    days: dict[str, DayEntry] = {}
    for day_key, raw in (row.days or {}).items():
        entry = _to_day_entry(day_key, raw)
        if entry is not None:
            days[day_key] = entry

    return ProgressLedger(
        user_id=row.user_id,
        days=days,
        last_checkin_date=row.last_checkin_date,
        current_streak=row.current_streak,
        longest_streak=row.longest_streak,
        total_completed_days=row.total_completed_days,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


_INSERTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}


async def _ensure_row(db: AsyncSession, user_id: str) -> None:
    """Create the user's ledger row unless another writer already has.

    ``ON CONFLICT DO NOTHING`` makes the create safe against a concurrent
    first write from another session or process.
    """
    dialect = db.get_bind().dialect.name
    insert = _INSERTS.get(dialect)
    if insert is None:
        raise DatabaseError(f"Unsupported database dialect: {dialect}")

    now = datetime.utcnow()
    stmt = insert(UserProgress).values(
        id=str(uuid.uuid4()),
        user_id=user_id,
        days={},
        last_checkin_date=None,
        current_streak=0,
        longest_streak=0,
        total_completed_days=0,
        created_at=now,
        updated_at=now,
    ).on_conflict_do_nothing(index_elements=[UserProgress.user_id])
    result = await db.execute(stmt)
    if result.rowcount:
        logger.info(f"Created progress ledger for user {user_id}")


async def _load_row(
    db: AsyncSession, user_id: str, *, for_update: bool = False
) -> UserProgress | None:
    query = select(UserProgress).where(UserProgress.user_id == user_id)
    if for_update:
        query = query.with_for_update()
    # The row may already sit in the identity map from an earlier read.
    query = query.execution_options(populate_existing=True)

    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_ledger(db: AsyncSession, user_id: str) -> ProgressLedger:
    """Get the user's ledger, creating an empty one on first access.

    The lazy create is committed before the user's lock is released.
    """
    try:
        row = await _load_row(db, user_id)
        if row is None:
            async with _user_lock(user_id):
                await _ensure_row(db, user_id)
                await db.commit()
            row = await _load_row(db, user_id)
        return _to_ledger(row)
    except DatabaseError:
        raise
    except OperationalError as e:
        logger.error(f"Database connection error in get_ledger for user {user_id}: {e}")
        raise ConnectionError("Database connection failed") from e
    except Exception as e:
        logger.error(f"Unexpected error getting ledger for user {user_id}: {e}")
        raise DatabaseError(f"Failed to get progress ledger: {e}") from e


async def get_day(db: AsyncSession, user_id: str, day: str) -> DayEntry | None:
    """Get one day's entry, or None when the user has no entry for that date."""
    validate_date(day)
    try:
        row = await _load_row(db, user_id)
    except OperationalError as e:
        logger.error(f"Database connection error in get_day for user {user_id}: {e}")
        raise ConnectionError("Database connection failed") from e
    except Exception as e:
        logger.error(f"Unexpected error getting day {day} for user {user_id}: {e}")
        raise DatabaseError(f"Failed to get day: {e}") from e

    if row is None or day not in (row.days or {}):
        return None
    return _to_day_entry(day, row.days[day])


async def upsert_day(
    db: AsyncSession,
    user_id: str,
    day: str,
    tasks: Sequence[Task | dict[str, Any]],
    mood: str | None = None,
    daily_plans: str | None = None,
) -> DayEntry:
    """Write (or overwrite) one day and recompute the ledger aggregates.

    The read-merge-recompute-write sequence runs under a per-user lock with
    the ledger row locked for update, and is committed before the lock is
    released, so two writes for the same user never interleave. Anything
    else pending on ``db`` is committed along with it.

    Args:
        db: Database session
        user_id: Owner of the ledger
        day: Date key in ``YYYY-MM-DD`` form
        tasks: The day's tasks (Task models or equivalent dicts)
        mood: Optional mood captured at check-in
        daily_plans: Optional free-form plans captured at check-in

    Returns:
        The written DayEntry with derived completion_rate and status

    Raises:
        ValidationError: if the date or tasks are malformed
    """
    validate_date(day)
    try:
        entry = DayEntry(date=day, tasks=list(tasks), mood=mood, daily_plans=daily_plans)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid tasks for {day}: {e}", field="tasks") from e

    async with _user_lock(user_id):
        try:
            await _ensure_row(db, user_id)
            row = await _load_row(db, user_id, for_update=True)

            days = dict(row.days or {})
            days[day] = entry.model_dump(mode="json")
            summary = recompute_streaks(days)

            row.days = days
            row.last_checkin_date = day
            row.current_streak = summary.current_streak
            row.longest_streak = summary.longest_streak
            row.total_completed_days = summary.total_completed_days
            row.updated_at = datetime.utcnow()
            await db.commit()
        except DatabaseError:
            raise
        except OperationalError as e:
            logger.error(f"Database connection error in upsert_day for user {user_id}: {e}")
            raise ConnectionError("Database connection failed") from e
        except Exception as e:
            logger.error(f"Unexpected error upserting day {day} for user {user_id}: {e}")
            raise DatabaseError(f"Failed to update progress: {e}") from e

    logger.info(
        f"Upserted {day} for user {user_id}: status={entry.status} "
        f"streak={summary.current_streak}/{summary.longest_streak}"
    )
    return entry
