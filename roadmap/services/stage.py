from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

import roadmap.repo.project as project_repo
from roadmap.core.exceptions import ConflictError, NotFoundError
from roadmap.models.project import RoadmapStage
from roadmap.models.user import User
from roadmap.schemas.stage import StageCreate, StageUpdate, StageWithCount
from roadmap.services import access

STAGE_NOT_FOUND = "Stage not found or insufficient permissions"


async def get_by_project(db: AsyncSession, *, project_id: int, user: Optional[User]) -> List[StageWithCount]:
    await access.get_visible_project(db, project_id, user)
    stages = await project_repo.get_stages_by_project(db, project_id)
    counts = await project_repo.count_features_by_stage(db, project_id)
    return [
        StageWithCount.model_validate(s).model_copy(update={"feature_count": counts.get(s.id, 0)}) for s in stages
    ]


async def create(db: AsyncSession, *, project_id: int, obj_in: StageCreate, user: User) -> RoadmapStage:
    """Новый этап добавляется в конец, если позиция не указана"""
    await access.get_project_with_role(
        db, project_id, user, access.STAGE_ROLES, "Project not found or insufficient permissions"
    )

    position = obj_in.position
    if position is None:
        position = await project_repo.get_max_stage_position(db, project_id) + 1

    db_obj = RoadmapStage(
        title=obj_in.title,
        position=position,
        color=obj_in.color or "bg-gray-500",
        project_id=project_id,
    )
    await project_repo.create_stage_in_db(db, db_obj)
    return db_obj


async def _get_editable(db: AsyncSession, stage_id: int, user: User) -> RoadmapStage:
    stage = await project_repo.get_stage_by_id(db, stage_id)
    if not stage:
        raise NotFoundError(STAGE_NOT_FOUND)
    await access.get_project_with_role(db, stage.project_id, user, access.STAGE_ROLES, STAGE_NOT_FOUND)
    return stage


async def update(db: AsyncSession, *, stage_id: int, obj_in: StageUpdate, user: User) -> RoadmapStage:
    db_obj = await _get_editable(db, stage_id, user)

    for field, value in obj_in.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(db_obj, field, value)

    await project_repo.update_stage_in_db(db, db_obj)
    return db_obj


async def delete(db: AsyncSession, *, stage_id: int, user: User) -> None:
    """Этап с фичами удалить нельзя"""
    stage = await _get_editable(db, stage_id, user)

    counts = await project_repo.count_features_by_stage(db, stage.project_id)
    if counts.get(stage.id, 0):
        raise ConflictError("Stage still contains features; move or delete them first")

    await project_repo.delete_stage_from_db(db, stage.id)
