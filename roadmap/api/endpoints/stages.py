from typing import Any, List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap.api.endpoints.auth import get_current_user, get_current_user_optional
from roadmap.db.session import get_db
from roadmap.models.user import User as UserModel
from roadmap.schemas.common import ApiResponse, ok
from roadmap.schemas.stage import Stage, StageCreate, StageUpdate, StageWithCount
from roadmap.services import stage as stage_service

router = APIRouter()


@router.get("/projects/{project_id}/stages", response_model=ApiResponse[List[StageWithCount]])
async def read_stages(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[UserModel] = Depends(get_current_user_optional),
) -> Any:
    """Этапы проекта по порядку, с числом фич в каждом"""
    return ok(await stage_service.get_by_project(db, project_id=project_id, user=current_user))


@router.post("/projects/{project_id}/stages", response_model=ApiResponse[Stage], status_code=status.HTTP_201_CREATED)
async def create_stage(
    project_id: int,
    stage_in: StageCreate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    stage = await stage_service.create(db, project_id=project_id, obj_in=stage_in, user=current_user)
    return ok(stage, "Stage created successfully")


@router.put("/stages/{stage_id}", response_model=ApiResponse[Stage])
async def update_stage(
    stage_id: int,
    stage_in: StageUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    stage = await stage_service.update(db, stage_id=stage_id, obj_in=stage_in, user=current_user)
    return ok(stage, "Stage updated successfully")


@router.delete("/stages/{stage_id}", response_model=ApiResponse[None])
async def delete_stage(
    stage_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    await stage_service.delete(db, stage_id=stage_id, user=current_user)
    return ok(message="Stage deleted successfully")
