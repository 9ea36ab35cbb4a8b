"""AI daily-plan endpoints and cache administration."""

import logging

from fastapi import APIRouter, Request

from app.api.dependencies import AICacheDep, CurrentUserId
from app.middleware.rate_limiter import AI_LIMIT, limiter
from app.models.envelope import success_response
from app.models.plan import CacheStatsResponse, DailyCheckinRequest
from app.services.plan_service import generate_daily_plan

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/daily-plan")
@limiter.limit(AI_LIMIT)
async def create_daily_plan(
    request: Request,
    body: DailyCheckinRequest,
    user_id: CurrentUserId,
    cache: AICacheDep,
) -> dict:
    """Generate today's learning plan (cached, AI, or rule-based fallback)."""
    plan = await generate_daily_plan(body, cache)
    logger.info("Daily plan for user %s served from %s", user_id, plan.source)
    return success_response(plan.model_dump(mode="json"), source=plan.source)


@router.get("/cache/stats")
async def get_cache_stats(
    _user_id: CurrentUserId,
    cache: AICacheDep,
) -> dict:
    """Entry and hit counts of the AI response cache."""
    stats = CacheStatsResponse(**cache.stats())
    return success_response(stats.model_dump())


@router.post("/cache/cleanup")
async def cleanup_cache(
    _user_id: CurrentUserId,
    cache: AICacheDep,
) -> dict:
    """Evict expired entries now instead of waiting for the scheduler."""
    removed = cache.clear_expired()
    return success_response({"removed": removed})


@router.delete("/cache")
async def clear_cache(
    _user_id: CurrentUserId,
    cache: AICacheDep,
    category: str | None = None,
) -> dict:
    """Clear the whole cache, or one category when ``category`` is given."""
    if category is not None:
        removed = cache.clear_category(category)
        return success_response({"removed": removed, "category": category})
    removed = cache.clear_all()
    return success_response({"removed": removed, "category": None})
