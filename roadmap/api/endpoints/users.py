from typing import Any, List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap.api.endpoints.auth import get_current_user
from roadmap.db.session import get_db
from roadmap.models.user import User as UserModel
from roadmap.schemas.common import ApiResponse, ok, paginate
from roadmap.schemas.feature import UserVote
from roadmap.schemas.notification import ActivityList
from roadmap.schemas.project import Project
from roadmap.schemas.user import User, UserPublic, UserUpdate, AccountDelete
from roadmap.services import activity as activity_service
from roadmap.services import follower as follower_service
from roadmap.services import user as user_service
from roadmap.services import vote as vote_service

router = APIRouter()


@router.get("/profile", response_model=ApiResponse[User])
async def read_profile(current_user: UserModel = Depends(get_current_user)) -> Any:
    """Профиль текущего пользователя"""
    return ok(current_user)


@router.put("/profile", response_model=ApiResponse[User])
async def update_profile(
    user_in: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    user = await user_service.update(db, db_obj=current_user, obj_in=user_in)
    return ok(user, "Profile updated successfully")


@router.delete("/profile", response_model=ApiResponse[None])
async def delete_profile(
    body: AccountDelete,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    """Удаление аккаунта с подтверждением паролем"""
    await user_service.delete_account(db, db_obj=current_user, password=body.password)
    return ok(message="Account deleted successfully")


@router.get("/votes", response_model=ApiResponse[List[UserVote]])
async def read_my_votes(
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    return ok(await vote_service.get_user_votes(db, user=current_user))


@router.get("/followed-projects", response_model=ApiResponse[List[Project]])
async def read_followed_projects(
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    return ok(await follower_service.get_followed_projects(db, user=current_user))


@router.get("/activity", response_model=ApiResponse[ActivityList])
async def read_my_activity(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    """Свои действия и действия в своих проектах"""
    activities, total = await activity_service.get_user_activity(db, user=current_user, page=page, limit=limit)
    return ok({"activities": activities, "pagination": paginate(page, limit, total)})


@router.get("/{user_id}", response_model=ApiResponse[UserPublic])
async def read_user(user_id: int, db: AsyncSession = Depends(get_db)) -> Any:
    """Публичный профиль пользователя"""
    return ok(await user_service.get_or_404(db, user_id))
