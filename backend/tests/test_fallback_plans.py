"""Tests for the rule-based fallback plan selector."""

import pytest

from app.core.fallback_plans import (
    FALLBACK_TEMPLATES,
    WILDCARD,
    FallbackTemplate,
    find_template,
    is_quota_error,
    select_plan,
)

DEFAULT_PLAN = list(FALLBACK_TEMPLATES[-1].plan)


def test_mood_and_goal_match():
    plan = select_plan("energized", "javascript")
    assert plan[0] == "Complete 2 coding challenges on your preferred platform (30-45 minutes)"
    assert len(plan) == 5


def test_selection_is_deterministic():
    assert select_plan("energized", "javascript") == select_plan("energized", "javascript")


def test_matching_is_case_insensitive_substring():
    plan = select_plan("I feel TIRED today", "Web Development basics")
    assert plan == list(FALLBACK_TEMPLATES[1].plan)


def test_mood_only_template_used_when_goal_has_no_match():
    plan = select_plan("stressed", "python")
    assert plan == list(FALLBACK_TEMPLATES[2].plan)


def test_first_matching_template_wins():
    # "motivated" appears in the tech and business templates; the tech one is first
    assert select_plan("motivated", "python") == list(FALLBACK_TEMPLATES[0].plan)
    assert select_plan("motivated", "marketing") == list(FALLBACK_TEMPLATES[5].plan)


def test_no_match_returns_default():
    assert select_plan("happy", "spanish") == DEFAULT_PLAN


@pytest.mark.parametrize("mood,goal", [("", ""), ("many things", "company")])
def test_wildcard_never_substring_matches(mood, goal):
    assert select_plan(mood, goal) == DEFAULT_PLAN


def test_goal_only_rule():
    templates = (
        FallbackTemplate(moods=("calm",), learning_goals=("chess",), plan=("a",)),
        FallbackTemplate(moods=(WILDCARD,), learning_goals=("chess",), plan=("b",)),
        FallbackTemplate(moods=(WILDCARD,), learning_goals=(WILDCARD,), plan=("default",)),
    )
    assert find_template("angry", "chess openings", templates).plan == ("b",)
    assert find_template("calm", "chess", templates).plan == ("a",)
    assert find_template("angry", "go", templates).plan == ("default",)


def test_returned_plan_is_a_copy():
    plan = select_plan("energized", "javascript")
    plan.append("extra")
    assert "extra" not in select_plan("energized", "javascript")


def test_default_template_is_last_and_universal():
    default = FALLBACK_TEMPLATES[-1]
    assert default.any_mood and default.any_goal


# ---------------------------------------------------------------------------
# Quota detection
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "message",
    [
        "You exceeded your current quota",
        "Rate limit reached for requests",
        "HTTP 429 Too Many Requests",
        "RESOURCE EXHAUSTED",
    ],
)
def test_is_quota_error_true(message):
    assert is_quota_error(RuntimeError(message))
    assert is_quota_error(message)


def test_is_quota_error_false():
    assert not is_quota_error(RuntimeError("connection reset by peer"))
