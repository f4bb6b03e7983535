from typing import Any, List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap.api.endpoints.auth import get_current_user, get_current_user_optional
from roadmap.db.session import get_db
from roadmap.models.user import User as UserModel
from roadmap.schemas.comment import Comment, CommentCreate, CommentUpdate, LikeState
from roadmap.schemas.common import ApiResponse, ok
from roadmap.services import comment as comment_service

router = APIRouter()


@router.get("/features/{feature_id}/comments", response_model=ApiResponse[List[Comment]])
async def read_comments(
    feature_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[UserModel] = Depends(get_current_user_optional),
) -> Any:
    """Комментарии верхнего уровня с ответами"""
    return ok(await comment_service.get_by_feature(db, feature_id=feature_id, user=current_user))


@router.post("/features/{feature_id}/comments", response_model=ApiResponse[Comment], status_code=status.HTTP_201_CREATED)
async def create_comment(
    feature_id: int,
    comment_in: CommentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    comment = await comment_service.create(db, feature_id=feature_id, obj_in=comment_in, user=current_user)
    return ok(comment, "Comment added successfully")


@router.put("/comments/{comment_id}", response_model=ApiResponse[Comment])
async def update_comment(
    comment_id: int,
    comment_in: CommentUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    comment = await comment_service.update(db, comment_id=comment_id, obj_in=comment_in, user=current_user)
    return ok(comment, "Comment updated successfully")


@router.delete("/comments/{comment_id}", response_model=ApiResponse[None])
async def delete_comment(
    comment_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    await comment_service.delete(db, comment_id=comment_id, user=current_user)
    return ok(message="Comment deleted successfully")


@router.post("/comments/{comment_id}/like", response_model=ApiResponse[LikeState])
async def like_comment(
    comment_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    return ok(await comment_service.like(db, comment_id=comment_id, user=current_user), "Comment liked")


@router.delete("/comments/{comment_id}/like", response_model=ApiResponse[LikeState])
async def unlike_comment(
    comment_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    return ok(await comment_service.unlike(db, comment_id=comment_id, user=current_user), "Comment unliked")
