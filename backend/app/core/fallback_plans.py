"""Rule-based daily plans used when the AI provider is unavailable.

Templates are matched against the user's mood and learning goal by
case-insensitive substring. Rules are tried in priority order and the first
template satisfying a rule wins:

  1. mood keyword AND learning-goal keyword
  2. mood keyword AND wildcard learning goal
  3. wildcard mood AND learning-goal keyword
  4. the last template (the universal default)

A wildcard keyword set never substring-matches; it only satisfies the
"wildcard" side of rules 2 and 3.
"""

from collections.abc import Callable
from dataclasses import dataclass

WILDCARD = "any"


@dataclass(frozen=True)
class FallbackTemplate:
    """Static rule record: keyword sets plus an ordered plan."""

    moods: tuple[str, ...]
    learning_goals: tuple[str, ...]
    plan: tuple[str, ...]

    @property
    def any_mood(self) -> bool:
        return WILDCARD in self.moods

    @property
    def any_goal(self) -> bool:
        return WILDCARD in self.learning_goals

    def matches_mood(self, mood: str) -> bool:
        return not self.any_mood and any(k in mood for k in self.moods)

    def matches_goal(self, learning_goal: str) -> bool:
        return not self.any_goal and any(k in learning_goal for k in self.learning_goals)


_TECH_GOALS = ("programming", "coding", "javascript", "python", "web development", "software")

FALLBACK_TEMPLATES: tuple[FallbackTemplate, ...] = (
    FallbackTemplate(
        moods=("energized", "motivated", "focused", "excited"),
        learning_goals=_TECH_GOALS,
        plan=(
            "Complete 2 coding challenges on your preferred platform (30-45 minutes)",
            "Watch one technical tutorial video and take notes (25 minutes)",
            "Build a small feature for your practice project (45-60 minutes)",
            "Review and refactor code you wrote yesterday (20 minutes)",
            "Read documentation for a new library or framework (15 minutes)",
        ),
    ),
    FallbackTemplate(
        moods=("tired", "exhausted", "low energy", "sleepy"),
        learning_goals=_TECH_GOALS,
        plan=(
            "Watch an educational coding video while taking notes (30 minutes)",
            "Read through code examples and analyze them (20 minutes)",
            "Organize your learning resources and bookmarks (15 minutes)",
            "Review concepts you learned this week (light revision)",
            "Plan tomorrow's learning goals in detail",
        ),
    ),
    FallbackTemplate(
        moods=("stressed", "anxious", "overwhelmed", "nervous"),
        learning_goals=(WILDCARD,),
        plan=(
            "Start with 5-minute breathing exercise or short walk",
            "Break your learning into 15-minute focused sessions",
            "Review something you already know well (confidence boost)",
            "Practice one simple, achievable task",
            "End with listing 3 things you accomplished today",
        ),
    ),
    FallbackTemplate(
        moods=("energized", "creative", "inspired", "motivated"),
        learning_goals=("design", "ui/ux", "art", "creative", "writing"),
        plan=(
            "Create 3 quick design sketches or concepts (30 minutes)",
            "Study and analyze work from designers you admire (20 minutes)",
            "Work on your main creative project (45-60 minutes)",
            "Get feedback on your work from online community",
            "Experiment with a new tool or technique (25 minutes)",
        ),
    ),
    FallbackTemplate(
        moods=("calm", "relaxed", "moderate", "balanced"),
        learning_goals=("language", "english", "spanish", "french", "german", "speaking"),
        plan=(
            "Complete 20 minutes of vocabulary practice with flashcards",
            "Watch 15-minute video in target language with subtitles",
            "Practice speaking exercises or record yourself (15 minutes)",
            "Read a short article or story in target language",
            "Review grammar notes and create example sentences",
        ),
    ),
    FallbackTemplate(
        moods=("energized", "motivated", "ambitious", "focused"),
        learning_goals=("business", "marketing", "management", "entrepreneurship", "finance"),
        plan=(
            "Read one chapter from business book or case study (30 minutes)",
            "Watch educational video on current topic (20 minutes)",
            "Practice new skill: create presentation, spreadsheet, or analysis",
            "Network: comment on industry posts or connect with professionals",
            "Write summary of key learnings and action items",
        ),
    ),
    FallbackTemplate(
        moods=("tired", "low energy", "unmotivated"),
        learning_goals=(WILDCARD,),
        plan=(
            "Watch 20-minute educational video (passive learning)",
            "Listen to podcast related to your learning goal",
            "Organize your learning materials and notes (15 minutes)",
            "Do light reading - articles or blog posts (20 minutes)",
            "Set clear, achievable goals for tomorrow",
        ),
    ),
    FallbackTemplate(
        moods=("busy", "rushed", "limited time"),
        learning_goals=(WILDCARD,),
        plan=(
            "15-minute focused practice session on core skill",
            "Quick review of flashcards or notes (10 minutes)",
            "Listen to educational podcast during commute/chores",
            "Read one article or watch one short video",
            "5-minute reflection: what did you learn today?",
        ),
    ),
    # Universal default: must stay last
    FallbackTemplate(
        moods=(WILDCARD,),
        learning_goals=(WILDCARD,),
        plan=(
            "Start with 25-minute focused learning session (Pomodoro)",
            "Take 5-minute break, then do practical exercises (20 minutes)",
            "Review what you learned and take notes (15 minutes)",
            "Watch educational content or read articles (20 minutes)",
            "End with reflection: write 3 key takeaways from today",
        ),
    ),
)

MatchRule = Callable[[FallbackTemplate, str, str], bool]

MATCH_RULES: tuple[tuple[str, MatchRule], ...] = (
    ("mood_and_goal", lambda t, mood, goal: t.matches_mood(mood) and t.matches_goal(goal)),
    ("mood_only", lambda t, mood, goal: t.matches_mood(mood) and t.any_goal),
    ("goal_only", lambda t, mood, goal: t.any_mood and t.matches_goal(goal)),
)


def find_template(
    mood: str,
    learning_goal: str,
    templates: tuple[FallbackTemplate, ...] = FALLBACK_TEMPLATES,
) -> FallbackTemplate:
    """Return the highest-priority template for *mood* and *learning_goal*."""
    mood_lower = (mood or "").lower()
    goal_lower = (learning_goal or "").lower()

    for _name, rule in MATCH_RULES:
        for template in templates:
            if rule(template, mood_lower, goal_lower):
                return template
    return templates[-1]


def select_plan(mood: str, learning_goal: str) -> list[str]:
    """Ordered plan steps from the best-matching fallback template."""
    return list(find_template(mood, learning_goal).plan)


def is_quota_error(error: BaseException | str) -> bool:
    """True if *error* (or its message) looks like a quota / rate-limit rejection."""
    message = str(error).lower()
    return any(
        marker in message
        for marker in ("quota", "rate limit", "429", "resource exhausted")
    )
