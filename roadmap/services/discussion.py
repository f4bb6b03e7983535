import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

import roadmap.repo.discussion as discussion_repo
from roadmap.core.exceptions import ConflictError, NotFoundError
from roadmap.models.discussion import Discussion, DiscussionLike
from roadmap.models.notification import ActivityAction
from roadmap.models.project import Project, ProjectRole
from roadmap.models.user import User
from roadmap.schemas.comment import LikeState
from roadmap.schemas.discussion import Discussion as DiscussionSchema, DiscussionCreate, DiscussionUpdate
from roadmap.services import access
from roadmap.services import notification as notification_service
from roadmap.services.activity import log_activity

logger = logging.getLogger(__name__)

DISCUSSION_NOT_FOUND = "Discussion not found or access denied"


async def to_schemas(db: AsyncSession, discussions: List[Discussion], user: Optional[User]) -> List[DiscussionSchema]:
    ids = [d.id for d in discussions]
    like_counts = await discussion_repo.count_discussion_likes(db, ids)
    reply_counts = await discussion_repo.count_replies(db, ids)
    liked_ids = await discussion_repo.get_liked_discussion_ids(db, user.id, ids) if user else set()
    return [
        DiscussionSchema.model_validate(d).model_copy(
            update={
                "like_count": like_counts.get(d.id, 0),
                "reply_count": reply_counts.get(d.id, 0),
                "liked_by_me": d.id in liked_ids,
            }
        )
        for d in discussions
    ]


async def get_visible_discussion(
    db: AsyncSession, discussion_id: int, user: Optional[User]
) -> Tuple[Discussion, Project, Optional[ProjectRole]]:
    discussion = await discussion_repo.get_discussion_by_id(db, discussion_id)
    if not discussion:
        raise NotFoundError(DISCUSSION_NOT_FOUND)
    project, role = await access.get_visible_project(db, discussion.project_id, user, DISCUSSION_NOT_FOUND)
    return discussion, project, role


async def create(db: AsyncSession, *, project_id: int, obj_in: DiscussionCreate, user: User) -> DiscussionSchema:
    """Начать обсуждение может владелец или участник проекта"""
    project, _ = await access.get_project_with_role(db, project_id, user, access.CONTRIBUTOR_ROLES)

    db_obj = Discussion(content=obj_in.content, project_id=project.id, author_id=user.id)
    await discussion_repo.create_discussion_in_db(db, db_obj)
    discussion_id = db_obj.id

    await log_activity(db, ActivityAction.DISCUSSION_CREATED, user.id, project_id, {"discussion_id": discussion_id})
    await notification_service.notify_mentions(db, obj_in.content, user, discussion_id, "discussion", project_id)
    await db.refresh(db_obj)

    return DiscussionSchema.model_validate(db_obj)


async def get_by_project(db: AsyncSession, *, project_id: int, user: Optional[User]) -> List[DiscussionSchema]:
    await access.get_visible_project(db, project_id, user)
    discussions = await discussion_repo.get_discussions_by_project(db, project_id)
    return await to_schemas(db, discussions, user)


async def update(db: AsyncSession, *, discussion_id: int, obj_in: DiscussionUpdate, user: User) -> DiscussionSchema:
    """Редактировать может только автор"""
    db_obj, _, _ = await get_visible_discussion(db, discussion_id, user)
    if db_obj.author_id != user.id:
        raise NotFoundError(DISCUSSION_NOT_FOUND)

    db_obj.content = obj_in.content
    await discussion_repo.update_discussion_in_db(db, db_obj)
    return (await to_schemas(db, [db_obj], user))[0]


async def delete(db: AsyncSession, *, discussion_id: int, user: User) -> None:
    """Удалить может автор, владелец проекта или администратор"""
    db_obj, _, role = await get_visible_discussion(db, discussion_id, user)
    if db_obj.author_id != user.id and not access.has_role(role, access.MANAGE_ROLES):
        raise NotFoundError(DISCUSSION_NOT_FOUND)

    await discussion_repo.delete_discussion_from_db(db, discussion_id)


async def like(db: AsyncSession, *, discussion_id: int, user: User) -> LikeState:
    await get_visible_discussion(db, discussion_id, user)
    if await discussion_repo.get_discussion_like(db, discussion_id, user.id):
        raise ConflictError("Discussion already liked")
    try:
        await discussion_repo.create_discussion_like_in_db(
            db, DiscussionLike(discussion_id=discussion_id, user_id=user.id)
        )
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Discussion already liked")
    counts = await discussion_repo.count_discussion_likes(db, [discussion_id])
    return LikeState(liked=True, like_count=counts.get(discussion_id, 0))


async def unlike(db: AsyncSession, *, discussion_id: int, user: User) -> LikeState:
    await get_visible_discussion(db, discussion_id, user)
    if not await discussion_repo.delete_discussion_like_from_db(db, discussion_id, user.id):
        raise NotFoundError("Like not found")
    counts = await discussion_repo.count_discussion_likes(db, [discussion_id])
    return LikeState(liked=False, like_count=counts.get(discussion_id, 0))
