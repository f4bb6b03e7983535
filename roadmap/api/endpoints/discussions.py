from typing import Any, List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap.api.endpoints.auth import get_current_user, get_current_user_optional
from roadmap.db.session import get_db
from roadmap.models.user import User as UserModel
from roadmap.schemas.comment import LikeState
from roadmap.schemas.common import ApiResponse, ok
from roadmap.schemas.discussion import (
    Discussion,
    DiscussionCreate,
    DiscussionUpdate,
    Reply,
    ReplyCreate,
    ReplyUpdate,
)
from roadmap.services import discussion as discussion_service
from roadmap.services import reply as reply_service

router = APIRouter()


@router.get("/projects/{project_id}/discussions", response_model=ApiResponse[List[Discussion]])
async def read_discussions(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[UserModel] = Depends(get_current_user_optional),
) -> Any:
    return ok(await discussion_service.get_by_project(db, project_id=project_id, user=current_user))


@router.post(
    "/projects/{project_id}/discussions", response_model=ApiResponse[Discussion], status_code=status.HTTP_201_CREATED
)
async def create_discussion(
    project_id: int,
    discussion_in: DiscussionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    discussion = await discussion_service.create(
        db, project_id=project_id, obj_in=discussion_in, user=current_user
    )
    return ok(discussion, "Discussion created successfully")


# Маршруты ответов объявлены раньше /discussions/{discussion_id}
@router.put("/discussions/replies/{reply_id}", response_model=ApiResponse[Reply])
async def update_reply(
    reply_id: int,
    reply_in: ReplyUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    reply = await reply_service.update(db, reply_id=reply_id, obj_in=reply_in, user=current_user)
    return ok(reply, "Reply updated successfully")


@router.delete("/discussions/replies/{reply_id}", response_model=ApiResponse[None])
async def delete_reply(
    reply_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    """Удаление ответа удаляет и всю ветку под ним"""
    await reply_service.delete(db, reply_id=reply_id, user=current_user)
    return ok(message="Reply deleted successfully")


@router.post("/discussions/replies/{reply_id}/like", response_model=ApiResponse[LikeState])
async def like_reply(
    reply_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    return ok(await reply_service.like(db, reply_id=reply_id, user=current_user), "Reply liked")


@router.delete("/discussions/replies/{reply_id}/like", response_model=ApiResponse[LikeState])
async def unlike_reply(
    reply_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    return ok(await reply_service.unlike(db, reply_id=reply_id, user=current_user), "Reply unliked")


@router.put("/discussions/{discussion_id}", response_model=ApiResponse[Discussion])
async def update_discussion(
    discussion_id: int,
    discussion_in: DiscussionUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    discussion = await discussion_service.update(
        db, discussion_id=discussion_id, obj_in=discussion_in, user=current_user
    )
    return ok(discussion, "Discussion updated successfully")


@router.delete("/discussions/{discussion_id}", response_model=ApiResponse[None])
async def delete_discussion(
    discussion_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    await discussion_service.delete(db, discussion_id=discussion_id, user=current_user)
    return ok(message="Discussion deleted successfully")


@router.post("/discussions/{discussion_id}/like", response_model=ApiResponse[LikeState])
async def like_discussion(
    discussion_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    return ok(await discussion_service.like(db, discussion_id=discussion_id, user=current_user), "Discussion liked")


@router.delete("/discussions/{discussion_id}/like", response_model=ApiResponse[LikeState])
async def unlike_discussion(
    discussion_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    return ok(
        await discussion_service.unlike(db, discussion_id=discussion_id, user=current_user), "Discussion unliked"
    )


@router.get("/discussions/{discussion_id}/replies", response_model=ApiResponse[List[Reply]])
async def read_replies(
    discussion_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[UserModel] = Depends(get_current_user_optional),
) -> Any:
    """Дерево ответов обсуждения"""
    return ok(await reply_service.get_tree(db, discussion_id=discussion_id, user=current_user))


@router.post("/discussions/{discussion_id}/replies", response_model=ApiResponse[Reply], status_code=status.HTTP_201_CREATED)
async def create_reply(
    discussion_id: int,
    reply_in: ReplyCreate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    reply = await reply_service.create(db, discussion_id=discussion_id, obj_in=reply_in, user=current_user)
    return ok(reply, "Reply added successfully")
