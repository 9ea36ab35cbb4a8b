"""Daily plan orchestration: cache, then AI provider, then rule-based fallback.

A failed or slow AI call never reaches the user as an error; the check-in
always gets a plan. Whatever plan is produced is written back to the cache.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from app.config import settings
from app.core.circuit_breaker import CircuitBreaker, CircuitBreakerOpen
from app.core.exceptions import ExternalServiceError, QuotaExceededError
from app.core.fallback_plans import select_plan
from app.models.plan import DailyCheckinRequest, DailyPlanResponse, PlanSource
from app.services.ai_cache import AICache
from app.services.llm_client import generate_learning_plan

logger = logging.getLogger(__name__)

DAILY_PLAN_CATEGORY = "daily-plan"

PlanGenerator = Callable[[dict[str, Any]], Awaitable[list[str]]]

# Module-level circuit breaker shared by every plan request
_ai_circuit_breaker = CircuitBreaker(
    "ai_provider",
    failure_threshold=settings.circuit_breaker_failure_threshold,
    cooldown_seconds=settings.circuit_breaker_cooldown_seconds,
)


def get_circuit_breaker() -> CircuitBreaker:
    """Return the AI provider circuit breaker (used by the readiness endpoint)."""
    return _ai_circuit_breaker


async def _generate_with_timeout(
    generator: PlanGenerator, plan_input: dict[str, Any], timeout: float
) -> list[str]:
    try:
        return await asyncio.wait_for(generator(plan_input), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise ExternalServiceError(f"AI plan generation timed out after {timeout}s") from e


async def generate_daily_plan(
    request: DailyCheckinRequest,
    cache: AICache,
    generator: PlanGenerator = generate_learning_plan,
    breaker: CircuitBreaker | None = None,
    timeout: float | None = None,
) -> DailyPlanResponse:
    """Produce today's plan for a check-in.

    Args:
        request: Validated check-in
        cache: The process-wide AI response cache
        generator: Coroutine function calling the AI provider
        breaker: Circuit breaker around *generator* (module default if None)
        timeout: Seconds before the AI call is abandoned

    Returns:
        DailyPlanResponse tagged with source "cache", "ai" or "fallback"
    """
    plan_input = request.to_plan_input()
    breaker = breaker or _ai_circuit_breaker
    timeout = timeout if timeout is not None else settings.llm_timeout_seconds

    cached = cache.get(DAILY_PLAN_CATEGORY, plan_input)
    if cached is not None:
        return DailyPlanResponse(
            learning_plan=list(cached),
            source="cache",
            generated_at=datetime.utcnow(),
        )

    source: PlanSource = "ai"
    try:
        plan = await breaker.call(_generate_with_timeout, generator, plan_input, timeout)
    except CircuitBreakerOpen:
        logger.warning("AI circuit open, serving fallback plan")
        plan, source = [], "fallback"
    except QuotaExceededError as e:
        logger.warning("AI quota exceeded, serving fallback plan: %s", e)
        plan, source = [], "fallback"
    except ExternalServiceError as e:
        logger.warning("AI plan generation failed, serving fallback plan: %s", e)
        plan, source = [], "fallback"
    except Exception:
        logger.error("Unexpected AI plan failure, serving fallback plan", exc_info=True)
        plan, source = [], "fallback"

    if source == "fallback":
        plan = select_plan(request.mood, request.learning_goal)

    cache.set(DAILY_PLAN_CATEGORY, plan_input, list(plan))
    return DailyPlanResponse(
        learning_plan=list(plan),
        source=source,
        generated_at=datetime.utcnow(),
    )
