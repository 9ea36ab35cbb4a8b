"""Progress tracking models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.core.progress_ledger import DayStatus, evaluate_tasks, validate_date


class Task(BaseModel):
    """A single task on a day's plan."""

    id: str = Field(..., min_length=1, max_length=100)
    text: str = Field(..., min_length=1, max_length=500)
    # Only real booleans count, matching the streak recompute.
    completed: bool = Field(False, strict=True)
    created_at: datetime | None = None


class DayEntry(BaseModel):
    """One calendar day of activity for one user.

    ``completion_rate`` and ``status`` are always derived from ``tasks``;
    values supplied by the caller are overwritten.
    """

    date: str
    tasks: list[Task] = []
    mood: str | None = None
    daily_plans: str | None = None
    completion_rate: int = 0
    status: DayStatus = "pending"

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str) -> str:
        return validate_date(value)

    @model_validator(mode="after")
    def _derive_metrics(self) -> "DayEntry":
        self.completion_rate, self.status = evaluate_tasks(self.tasks)
        return self


class ProgressLedger(BaseModel):
    """Per-user day ledger with derived aggregates."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    days: dict[str, DayEntry] = {}
    last_checkin_date: str | None = None
    current_streak: int = 0
    longest_streak: int = 0
    total_completed_days: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UpdateProgressRequest(BaseModel):
    """Body for a day check-in / update."""

    date: str
    tasks: list[Task]
    mood: str | None = Field(None, max_length=500)
    daily_plans: str | None = Field(None, max_length=1000)

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str) -> str:
        return validate_date(value)


class WeeklyCompletion(BaseModel):
    """Completed days in one Monday-based week."""

    week_start: str
    label: str
    completed: int


class ProgressStats(BaseModel):
    """Summary statistics over a user's ledger."""

    total_days: int = 0
    completed_days: int = 0
    partial_days: int = 0
    missed_days: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    average_completion: int = 0
    weekly_data: list[WeeklyCompletion] = []
