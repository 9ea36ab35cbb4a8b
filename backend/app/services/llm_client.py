"""LLM client for daily learning-plan generation.

The provider is any OpenAI-compatible ``/chat/completions`` endpoint; only
the base URL, model name and API key differ between deployments.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.config import settings
from app.core.exceptions import ExternalServiceError, QuotaExceededError
from app.core.fallback_plans import is_quota_error
from app.utils.json_parser import parse_plan_from_llm_response

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You are a personalized learning plan assistant. Based on the user's "
    "information, mood, and daily plans, suggest a learning plan for the day "
    "to help them achieve their learning goal. Respond with a JSON array of "
    "3 to 7 short, concrete task strings and nothing else."
)


@dataclass
class LLMProviderConfig:
    base_url: str
    model: str
    api_key: str = ""
    timeout_seconds: float = 30.0
    max_tokens: int = 1024


def get_system_default_config() -> LLMProviderConfig:
    """Build config from environment/config.py settings."""
    return LLMProviderConfig(
        base_url=settings.llm_base_url,
        model=settings.llm_model,
        api_key=settings.llm_api_key,
        timeout_seconds=settings.llm_timeout_seconds,
        max_tokens=settings.llm_max_tokens,
    )


def build_user_message(plan_input: dict[str, Any]) -> str:
    """Render the check-in record as the user prompt."""
    return (
        f"User's Gender: {plan_input.get('gender') or 'not specified'}\n"
        f"User's Age: {plan_input.get('age') or 'not specified'}\n"
        f"User's Preferences: {plan_input.get('preferences') or 'none'}\n"
        f"User's Strengths: {plan_input.get('strengths') or 'none'}\n"
        f"User's Weaknesses: {plan_input.get('weaknesses') or 'none'}\n"
        f"Learning Goal: {plan_input.get('learning_goal') or 'general learning'}\n"
        f"Current Mood: {plan_input.get('mood')}\n"
        f"Daily Plans: {plan_input.get('daily_plans')}\n\n"
        "Suggest a learning plan for today tailored to the user's current state "
        "and long-term goals."
    )


@retry(
    stop=stop_after_attempt(2),
    wait=wait_exponential(min=1, max=8),
    retry=retry_if_exception_type((httpx.ConnectError,)),
    reraise=True,
)
async def _call_chat_completions(config: LLMProviderConfig, messages: list[dict]) -> dict:
    """Call chat/completions with retry on connection errors."""
    url = f"{config.base_url.rstrip('/')}/chat/completions"
    headers = {"Content-Type": "application/json"}
    if config.api_key:
        headers["Authorization"] = f"Bearer {config.api_key}"
    payload = {
        "model": config.model,
        "messages": messages,
        "temperature": 0.7,
        "max_tokens": config.max_tokens,
    }

    async with httpx.AsyncClient(
        timeout=httpx.Timeout(config.timeout_seconds, connect=10.0)
    ) as client:
        response = await client.post(url, json=payload, headers=headers)
        response.raise_for_status()
        return response.json()


async def generate_learning_plan(
    plan_input: dict[str, Any],
    config: LLMProviderConfig | None = None,
) -> list[str]:
    """Ask the provider for today's plan.

    Raises:
        QuotaExceededError: provider rejected the call for quota/rate reasons
        ExternalServiceError: any other failure, including unusable output
    """
    config = config or get_system_default_config()
    if not config.api_key:
        raise ExternalServiceError("AI provider API key is not configured")

    messages = [
        {"role": "system", "content": _SYSTEM_PROMPT},
        {"role": "user", "content": build_user_message(plan_input)},
    ]

    try:
        data = await _call_chat_completions(config, messages)
        content = data["choices"][0]["message"]["content"] or ""
    except httpx.HTTPStatusError as e:
        body = e.response.text[:500] if e.response.text else "(empty)"
        logger.error("LLM HTTP error: status=%d, body=%s", e.response.status_code, body)
        if e.response.status_code == 429 or is_quota_error(body):
            raise QuotaExceededError(f"AI quota exceeded: {body}") from e
        raise ExternalServiceError(f"AI provider returned {e.response.status_code}") from e
    except httpx.TimeoutException as e:
        logger.error("LLM timeout after %.1fs: %s", config.timeout_seconds, e)
        raise ExternalServiceError("AI provider timed out") from e
    except httpx.HTTPError as e:
        logger.error("LLM network error: %s: %s", type(e).__name__, e)
        raise ExternalServiceError(f"AI provider unreachable: {e}") from e
    except (KeyError, IndexError, TypeError, ValueError) as e:
        logger.error("Failed to read LLM response: %s: %s", type(e).__name__, e)
        raise ExternalServiceError("Invalid AI response format") from e

    steps = parse_plan_from_llm_response(content)
    if not steps:
        raise ExternalServiceError("AI response contained no plan steps")
    return steps
