"""Shared utility for parsing plan steps out of LLM responses."""

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

MAX_PLAN_STEPS = 10
MAX_STEP_CHARS = 200

_LIST_MARKER = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")


def clean_plan_steps(steps: Any) -> list[str]:
    """Keep non-empty strings, trimmed to MAX_STEP_CHARS, at most MAX_PLAN_STEPS."""
    if not isinstance(steps, list):
        return []
    cleaned = [s.strip()[:MAX_STEP_CHARS] for s in steps if isinstance(s, str) and s.strip()]
    return cleaned[:MAX_PLAN_STEPS]


def _steps_from_json(data: Any) -> list[str]:
    if isinstance(data, dict):
        data = data.get("learning_plan", data.get("learningPlan", data.get("plan")))
    return clean_plan_steps(data)


def parse_plan_from_llm_response(content: str) -> list[str]:
    """Parse an ordered list of plan steps from raw LLM text.

    Handles four formats:
    1. Direct JSON: ["step", ...] or {"learning_plan": ["step", ...]}
    2. Markdown fence: ```json\\n[...]\\n```
    3. Embedded JSON array: text before ["step", ...] text after
    4. Plain bulleted or numbered lines
    """
    try:
        return _steps_from_json(json.loads(content))
    except json.JSONDecodeError:
        pass

    match = re.search(r"```(?:json)?\s*(\[.*?\]|\{.*?\})\s*```", content, re.DOTALL)
    if match:
        try:
            return _steps_from_json(json.loads(match.group(1)))
        except json.JSONDecodeError:
            pass

    match = re.search(r"\[\s*\".*?\"\s*\]", content, re.DOTALL)
    if match:
        try:
            return _steps_from_json(json.loads(match.group(0)))
        except json.JSONDecodeError:
            pass

    lines = [
        _LIST_MARKER.sub("", line)
        for line in content.splitlines()
        if _LIST_MARKER.match(line)
    ]
    if lines:
        return clean_plan_steps(lines)

    logger.warning(f"Could not parse plan from LLM response: {content[:200]}")
    return []
