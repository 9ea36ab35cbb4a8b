"""Skill CRUD endpoints."""

import logging

from fastapi import APIRouter, status

from app.api.dependencies import CurrentUserId, DbSession
from app.core.exceptions import NotFoundError
from app.db.repositories import skill_repo
from app.models.envelope import success_response
from app.models.skill import SkillCreate, SkillResponse, SkillUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def list_skills(
    current_user: CurrentUserId,
    db: DbSession,
) -> dict:
    """Return the user's skills, most recently updated first."""
    skills = await skill_repo.get_skills_by_user(db, current_user)
    return success_response({
        "skills": [SkillResponse.model_validate(s).model_dump(mode="json") for s in skills],
    })


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_skill(
    body: SkillCreate,
    current_user: CurrentUserId,
    db: DbSession,
) -> dict:
    """Create a new skill."""
    skill = await skill_repo.create_skill(
        db,
        user_id=current_user,
        name=body.name,
        description=body.description,
        category=body.category,
        tags=body.tags,
    )
    return success_response({"skill": SkillResponse.model_validate(skill).model_dump(mode="json")})


@router.get("/{skill_id}")
async def get_skill(
    skill_id: str,
    current_user: CurrentUserId,
    db: DbSession,
) -> dict:
    skill = await skill_repo.get_skill_by_id(db, skill_id, current_user)
    if skill is None:
        raise NotFoundError("Skill not found")
    return success_response({"skill": SkillResponse.model_validate(skill).model_dump(mode="json")})


@router.patch("/{skill_id}")
async def update_skill(
    skill_id: str,
    body: SkillUpdate,
    current_user: CurrentUserId,
    db: DbSession,
) -> dict:
    """Partial update of a skill."""
    updates = {
        field: value
        for field, value in body.model_dump(exclude_unset=True).items()
        if value is not None or field == "last_practiced"
    }
    skill = await skill_repo.update_skill(db, skill_id, current_user, updates)
    if skill is None:
        raise NotFoundError("Skill not found")
    return success_response({"skill": SkillResponse.model_validate(skill).model_dump(mode="json")})


@router.delete("/{skill_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_skill(
    skill_id: str,
    current_user: CurrentUserId,
    db: DbSession,
) -> None:
    deleted = await skill_repo.delete_skill(db, skill_id, current_user)
    if not deleted:
        raise NotFoundError("Skill not found")
