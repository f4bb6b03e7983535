import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

import roadmap.repo.comment as comment_repo
from roadmap.core.exceptions import ConflictError, NotFoundError, ValidationError
from roadmap.models.feature import Comment, CommentLike
from roadmap.models.notification import ActivityAction
from roadmap.models.user import User
from roadmap.schemas.comment import Comment as CommentSchema, CommentCreate, CommentUpdate, LikeState
from roadmap.services import access
from roadmap.services import notification as notification_service
from roadmap.services.activity import log_activity
from roadmap.services.feature import get_visible_feature

logger = logging.getLogger(__name__)

COMMENT_NOT_FOUND = "Comment not found or access denied"


def build_comment_tree(comments: List[Comment], like_counts: dict, liked_ids: set) -> List[CommentSchema]:
    """
    Комментарии верхнего уровня с прямыми ответами.
    Вход отсортирован по времени создания, порядок сохраняется.
    """
    nodes = {}
    roots = []
    for comment in comments:
        node = CommentSchema.model_validate(comment).model_copy(
            update={
                "like_count": like_counts.get(comment.id, 0),
                "liked_by_me": comment.id in liked_ids,
                "replies": [],
            }
        )
        nodes[comment.id] = node
        parent = nodes.get(comment.parent_id) if comment.parent_id else None
        if parent is not None:
            parent.replies.append(node)
        else:
            roots.append(node)
    return roots


async def create(db: AsyncSession, *, feature_id: int, obj_in: CommentCreate, user: User) -> Comment:
    """
    Вложенность один уровень: ответ на ответ прикрепляется к комментарию верхнего уровня
    """
    feature, project, _ = await get_visible_feature(db, feature_id, user)

    parent_id = obj_in.parent_id
    if parent_id is not None:
        parent = await comment_repo.get_comment_by_id(db, parent_id)
        if not parent or parent.feature_id != feature.id:
            raise ValidationError("Parent comment must belong to the same feature")
        parent_id = parent.parent_id or parent.id

    db_obj = Comment(content=obj_in.content, feature_id=feature.id, author_id=user.id, parent_id=parent_id)
    await comment_repo.create_comment_in_db(db, db_obj)

    await log_activity(
        db, ActivityAction.COMMENT_ADDED, user.id, project.id, {"feature_id": feature_id, "comment_id": db_obj.id}
    )
    await notification_service.notify_mentions(db, obj_in.content, user, feature_id, "comment", project.id)
    await db.refresh(db_obj)

    return db_obj


async def get_by_feature(db: AsyncSession, *, feature_id: int, user: Optional[User]) -> List[CommentSchema]:
    feature, _, _ = await get_visible_feature(db, feature_id, user)
    comments = await comment_repo.get_comments_by_feature(db, feature.id)
    ids = [c.id for c in comments]
    like_counts = await comment_repo.count_likes(db, ids)
    liked_ids = await comment_repo.get_liked_ids(db, user.id, ids) if user else set()
    return build_comment_tree(comments, like_counts, liked_ids)


async def update(db: AsyncSession, *, comment_id: int, obj_in: CommentUpdate, user: User) -> Comment:
    """Редактировать может только автор"""
    db_obj = await comment_repo.get_comment_by_id(db, comment_id)
    if not db_obj or db_obj.author_id != user.id:
        raise NotFoundError(COMMENT_NOT_FOUND)
    await get_visible_feature(db, db_obj.feature_id, user)

    db_obj.content = obj_in.content
    await comment_repo.update_comment_in_db(db, db_obj)
    return db_obj


async def delete(db: AsyncSession, *, comment_id: int, user: User) -> None:
    """Удалить может автор, владелец проекта или администратор. Ответы удаляются вместе с комментарием"""
    db_obj = await comment_repo.get_comment_by_id(db, comment_id)
    if not db_obj:
        raise NotFoundError(COMMENT_NOT_FOUND)
    _, _, role = await get_visible_feature(db, db_obj.feature_id, user)
    if db_obj.author_id != user.id and not access.has_role(role, access.MANAGE_ROLES):
        raise NotFoundError(COMMENT_NOT_FOUND)

    await comment_repo.delete_comment_from_db(db, comment_id)


async def _get_visible_comment(db: AsyncSession, comment_id: int, user: User) -> Comment:
    comment = await comment_repo.get_comment_by_id(db, comment_id)
    if not comment:
        raise NotFoundError(COMMENT_NOT_FOUND)
    await get_visible_feature(db, comment.feature_id, user)
    return comment


async def like(db: AsyncSession, *, comment_id: int, user: User) -> LikeState:
    await _get_visible_comment(db, comment_id, user)
    if await comment_repo.get_like(db, comment_id, user.id):
        raise ConflictError("Comment already liked")
    try:
        await comment_repo.create_like_in_db(db, CommentLike(comment_id=comment_id, user_id=user.id))
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Comment already liked")
    counts = await comment_repo.count_likes(db, [comment_id])
    return LikeState(liked=True, like_count=counts.get(comment_id, 0))


async def unlike(db: AsyncSession, *, comment_id: int, user: User) -> LikeState:
    comment = await _get_visible_comment(db, comment_id, user)
    if not await comment_repo.delete_like_from_db(db, comment.id, user.id):
        raise NotFoundError("Like not found")
    counts = await comment_repo.count_likes(db, [comment.id])
    return LikeState(liked=False, like_count=counts.get(comment.id, 0))
