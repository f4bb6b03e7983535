from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap.api.endpoints.auth import get_current_user, get_current_user_optional
from roadmap.db.session import get_db
from roadmap.models.user import User as UserModel
from roadmap.schemas.common import ApiResponse, ok, paginate
from roadmap.schemas.follower import Follower, FollowState
from roadmap.schemas.notification import ActivityList
from roadmap.schemas.project import Project, ProjectCreate, ProjectUpdate, ProjectSummary, ProjectDetail
from roadmap.services import activity as activity_service
from roadmap.services import follower as follower_service
from roadmap.services import project as project_service

router = APIRouter()


@router.post("", response_model=ApiResponse[Project], status_code=status.HTTP_201_CREATED)
async def create_project(
    project_in: ProjectCreate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    """
    Создание проекта. Без переданных этапов создаются
    Backlog, Planned, In Progress и Completed.
    """
    project = await project_service.create(db, obj_in=project_in, owner=current_user)
    return ok(project, "Project created successfully")


@router.get("/my-projects", response_model=ApiResponse[List[ProjectSummary]])
async def read_my_projects(
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    """Проекты, где пользователь владелец или участник"""
    items = await project_service.get_my_projects(db, user=current_user)
    summaries = []
    for item in items:
        project = item.pop("project")
        summaries.append(ProjectSummary.model_validate(project).model_copy(update=item))
    return ok(summaries)


@router.get("/{project_id}", response_model=ApiResponse[ProjectDetail])
async def read_project(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[UserModel] = Depends(get_current_user_optional),
) -> Any:
    detail = await project_service.get_detail(db, project_id=project_id, user=current_user)
    project = detail.pop("project")
    return ok(ProjectDetail(**Project.model_validate(project).model_dump(), **detail))


@router.put("/{project_id}", response_model=ApiResponse[Project])
async def update_project(
    project_id: int,
    project_in: ProjectUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    project = await project_service.update(db, project_id=project_id, obj_in=project_in, user=current_user)
    return ok(project, "Project updated successfully")


@router.delete("/{project_id}", response_model=ApiResponse[None])
async def delete_project(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    await project_service.delete(db, project_id=project_id, user=current_user)
    return ok(message="Project deleted successfully")


@router.post("/{project_id}/follow", response_model=ApiResponse[FollowState])
async def follow_project(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    count = await follower_service.follow(db, project_id=project_id, user=current_user)
    return ok(FollowState(following=True, follower_count=count), "Project followed")


@router.delete("/{project_id}/follow", response_model=ApiResponse[FollowState])
async def unfollow_project(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    count = await follower_service.unfollow(db, project_id=project_id, user=current_user)
    return ok(FollowState(following=False, follower_count=count), "Project unfollowed")


@router.get("/{project_id}/followers", response_model=ApiResponse[List[Follower]])
async def read_followers(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[UserModel] = Depends(get_current_user_optional),
) -> Any:
    return ok(await follower_service.get_followers(db, project_id=project_id, user=current_user))


@router.get("/{project_id}/activity", response_model=ApiResponse[ActivityList])
async def read_project_activity(
    project_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: Optional[UserModel] = Depends(get_current_user_optional),
) -> Any:
    activities, total = await activity_service.get_project_activity(
        db, project_id=project_id, user=current_user, page=page, limit=limit
    )
    return ok({"activities": activities, "pagination": paginate(page, limit, total)})
