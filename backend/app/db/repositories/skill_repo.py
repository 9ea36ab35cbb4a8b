"""Skill repository."""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.exceptions import ConnectionError, DatabaseError
from app.db.models import Skill

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = {"name", "description", "category", "tags", "level", "xp", "last_practiced"}


async def get_skills_by_user(db: AsyncSession, user_id: str) -> list[Skill]:
    """Get all skills for a user, most recently updated first."""
    try:
        result = await db.execute(
            select(Skill)
            .where(Skill.user_id == user_id)
            .order_by(Skill.updated_at.desc())
        )
        return list(result.scalars().all())
    except OperationalError as e:
        logger.error(f"Database connection error in get_skills_by_user for user {user_id}: {e}")
        raise ConnectionError("Database connection failed") from e
    except Exception as e:
        logger.error(f"Unexpected error getting skills for user {user_id}: {e}")
        raise DatabaseError(f"Failed to get skills: {e}") from e


async def get_skill_by_id(db: AsyncSession, skill_id: str, user_id: str) -> Skill | None:
    """Get a single skill by ID scoped to a user."""
    try:
        result = await db.execute(
            select(Skill).where(Skill.id == skill_id, Skill.user_id == user_id)
        )
        return result.scalar_one_or_none()
    except OperationalError as e:
        logger.error(f"Database connection error in get_skill_by_id: {e}")
        raise ConnectionError("Database connection failed") from e
    except Exception as e:
        logger.error(f"Unexpected error getting skill {skill_id}: {e}")
        raise DatabaseError(f"Failed to get skill: {e}") from e


async def create_skill(
    db: AsyncSession,
    user_id: str,
    name: str,
    description: str = "",
    category: str = "General",
    tags: list[str] | None = None,
) -> Skill:
    """Create a new skill at level 1 with no XP."""
    try:
        skill = Skill(
            user_id=user_id,
            name=name,
            description=description,
            category=category,
            tags=list(tags or []),
            level=1,
            xp=0,
        )
        db.add(skill)
        await db.flush()
        await db.refresh(skill)
        return skill
    except OperationalError as e:
        logger.error(f"Database connection error in create_skill: {e}")
        raise ConnectionError("Database connection failed") from e
    except Exception as e:
        logger.error(f"Unexpected error creating skill for user {user_id}: {e}")
        raise DatabaseError(f"Failed to create skill: {e}") from e


async def update_skill(
    db: AsyncSession, skill_id: str, user_id: str, updates: dict[str, Any]
) -> Skill | None:
    """Apply a partial update. Returns None if the skill is not found."""
    skill = await get_skill_by_id(db, skill_id, user_id)
    if skill is None:
        return None
    try:
        for field, value in updates.items():
            if field in _UPDATABLE_FIELDS:
                setattr(skill, field, value)
        skill.updated_at = datetime.utcnow()
        await db.flush()
        await db.refresh(skill)
        return skill
    except OperationalError as e:
        logger.error(f"Database connection error in update_skill: {e}")
        raise ConnectionError("Database connection failed") from e
    except Exception as e:
        logger.error(f"Unexpected error updating skill {skill_id}: {e}")
        raise DatabaseError(f"Failed to update skill: {e}") from e


async def delete_skill(db: AsyncSession, skill_id: str, user_id: str) -> bool:
    """Delete a skill. Returns True if a row was removed."""
    try:
        result = await db.execute(
            delete(Skill).where(Skill.id == skill_id, Skill.user_id == user_id)
        )
        await db.flush()
        return result.rowcount > 0
    except OperationalError as e:
        logger.error(f"Database connection error in delete_skill: {e}")
        raise ConnectionError("Database connection failed") from e
    except Exception as e:
        logger.error(f"Unexpected error deleting skill {skill_id}: {e}")
        raise DatabaseError(f"Failed to delete skill: {e}") from e
