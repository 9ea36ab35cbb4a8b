"""Progress tracking endpoints."""

import logging

from fastapi import APIRouter

from app.api.dependencies import CurrentUserId, DbSession
from app.core.statistics import compute_stats
from app.db.repositories import progress_repo
from app.models.envelope import success_response
from app.models.progress import UpdateProgressRequest
from app.services.redis_client import get_cached_stats, invalidate_stats, store_stats

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def get_progress(
    user_id: CurrentUserId,
    db: DbSession,
) -> dict:
    """Get the user's progress ledger (created on first access)."""
    ledger = await progress_repo.get_ledger(db, user_id)
    return success_response({"progress": ledger.model_dump(mode="json")})


@router.post("")
async def update_progress(
    body: UpdateProgressRequest,
    user_id: CurrentUserId,
    db: DbSession,
) -> dict:
    """Record a day's tasks and recompute streaks."""
    entry = await progress_repo.upsert_day(
        db,
        user_id,
        body.date,
        body.tasks,
        mood=body.mood,
        daily_plans=body.daily_plans,
    )
    # upsert_day has committed by now.
    await invalidate_stats(user_id)
    return success_response({
        "message": "Progress updated",
        "day_progress": entry.model_dump(mode="json"),
    })


@router.get("/days/{day}")
async def get_day_progress(
    day: str,
    user_id: CurrentUserId,
    db: DbSession,
) -> dict:
    """Get one day's entry; ``day`` is null when nothing was recorded."""
    entry = await progress_repo.get_day(db, user_id, day)
    return success_response({"day": entry.model_dump(mode="json") if entry else None})


@router.get("/stats")
async def get_progress_stats(
    user_id: CurrentUserId,
    db: DbSession,
) -> dict:
    """Summary statistics and the last five weeks of completed days."""
    cached = await get_cached_stats(user_id)
    if cached is not None:
        return cached

    ledger = await progress_repo.get_ledger(db, user_id)
    stats = compute_stats(ledger)

    response = success_response({"stats": stats.model_dump()})
    await store_stats(user_id, response)
    return response
