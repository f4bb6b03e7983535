from typing import Any, List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap.api.endpoints.auth import get_current_user, get_current_user_optional
from roadmap.db.session import get_db
from roadmap.models.user import User as UserModel
from roadmap.schemas.common import ApiResponse, ok
from roadmap.schemas.feature import Feature, FeatureCreate, FeatureUpdate, FeatureDetail, VoteCreate, VoteResult
from roadmap.services import comment as comment_service
from roadmap.services import feature as feature_service
from roadmap.services import vote as vote_service

router = APIRouter()


@router.get("/projects/{project_id}/features", response_model=ApiResponse[List[Feature]])
async def read_features(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[UserModel] = Depends(get_current_user_optional),
) -> Any:
    """Фичи проекта, самые популярные первыми"""
    return ok(await feature_service.get_by_project(db, project_id=project_id, user=current_user))


@router.post("/projects/{project_id}/features", response_model=ApiResponse[Feature], status_code=status.HTTP_201_CREATED)
async def create_feature(
    project_id: int,
    feature_in: FeatureCreate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    """
    Создание фичи. Без stage_id фича попадает в этап Backlog
    или в первый этап проекта. Подписчики получают уведомление.
    """
    feature = await feature_service.create(db, project_id=project_id, obj_in=feature_in, user=current_user)
    return ok(feature, "Feature created successfully")


@router.get("/features/{feature_id}", response_model=ApiResponse[FeatureDetail])
async def read_feature(
    feature_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[UserModel] = Depends(get_current_user_optional),
) -> Any:
    """Фича с голосами и деревом комментариев"""
    detail = await feature_service.get_detail(db, feature_id=feature_id, user=current_user)
    detail["comments"] = await comment_service.get_by_feature(db, feature_id=feature_id, user=current_user)
    feature = detail.pop("feature")
    return ok(FeatureDetail(**Feature.model_validate(feature).model_dump(), **detail))


@router.put("/features/{feature_id}", response_model=ApiResponse[Feature])
async def update_feature(
    feature_id: int,
    feature_in: FeatureUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    feature = await feature_service.update(db, feature_id=feature_id, obj_in=feature_in, user=current_user)
    return ok(feature, "Feature updated successfully")


@router.delete("/features/{feature_id}", response_model=ApiResponse[None])
async def delete_feature(
    feature_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    await feature_service.delete(db, feature_id=feature_id, user=current_user)
    return ok(message="Feature deleted successfully")


@router.post("/features/{feature_id}/vote", response_model=ApiResponse[VoteResult])
async def vote_feature(
    feature_id: int,
    vote_in: VoteCreate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    """Повторный голос того же пользователя заменяет предыдущий"""
    vote, total = await vote_service.cast_vote(db, feature_id=feature_id, value=vote_in.value, user=current_user)
    return ok({"vote": vote, "vote_count": total}, "Vote recorded")


@router.delete("/features/{feature_id}/vote", response_model=ApiResponse[VoteResult])
async def unvote_feature(
    feature_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    total = await vote_service.remove_vote(db, feature_id=feature_id, user=current_user)
    return ok({"vote": None, "vote_count": total}, "Vote removed")
