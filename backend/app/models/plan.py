"""Daily learning-plan schemas."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

PlanSource = Literal["cache", "ai", "fallback"]


class DailyCheckinRequest(BaseModel):
    """Check-in details used to generate today's plan."""

    mood: str = Field(..., min_length=3, max_length=500)
    daily_plans: str = Field(..., min_length=5, max_length=1000)
    learning_goal: str = Field("", max_length=200)
    age: int | None = Field(None, ge=13, le=100)
    gender: str = Field("", max_length=50)
    strengths: str = Field("", max_length=500)
    weaknesses: str = Field("", max_length=500)
    preferences: str = Field("", max_length=500)

    @field_validator(
        "mood", "daily_plans", "learning_goal", "gender",
        "strengths", "weaknesses", "preferences",
        mode="before",
    )
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    def to_plan_input(self) -> dict[str, Any]:
        """Flat record used both as the AI prompt input and the cache key."""
        return {
            "mood": self.mood,
            "daily_plans": self.daily_plans,
            "learning_goal": self.learning_goal,
            "age": self.age or 0,
            "gender": self.gender,
            "strengths": self.strengths,
            "weaknesses": self.weaknesses,
            "preferences": self.preferences,
        }


class DailyPlanResponse(BaseModel):
    """Generated plan plus where it came from."""

    learning_plan: list[str]
    source: PlanSource
    generated_at: datetime


class CategoryStats(BaseModel):
    entries: int
    hits: int


class CacheStatsResponse(BaseModel):
    """AI cache counters."""

    total_entries: int
    total_hits: int
    by_category: dict[str, CategoryStats]
