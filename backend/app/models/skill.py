"""Skill Pydantic schemas."""

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

_ANGLE_BRACKETS = re.compile(r"[<>]")


def sanitize_string(value: str | None) -> str | None:
    """Trim and strip angle brackets from user-supplied text."""
    if value is None:
        return None
    return _ANGLE_BRACKETS.sub("", value.strip())


class SkillCreate(BaseModel):
    """Create a skill."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=500)
    category: str = Field("General", max_length=50)
    tags: list[str] = []

    @field_validator("name", "description", "category")
    @classmethod
    def _sanitize(cls, value: str) -> str:
        return sanitize_string(value)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value:
            raise ValueError("name must not be blank")
        return value


class SkillUpdate(BaseModel):
    """Partial update for a skill."""

    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    category: str | None = Field(None, max_length=50)
    tags: list[str] | None = None
    level: int | None = Field(None, ge=1, le=100)
    xp: int | None = Field(None, ge=0)
    last_practiced: datetime | None = None

    @field_validator("name", "description", "category")
    @classmethod
    def _sanitize(cls, value: str | None) -> str | None:
        return sanitize_string(value)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str | None) -> str | None:
        if value is not None and not value:
            raise ValueError("name must not be blank")
        return value


class SkillResponse(BaseModel):
    """Skill returned to the client."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str
    category: str
    tags: list[str]
    level: int
    xp: int
    last_practiced: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
