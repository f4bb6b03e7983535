import logging
from collections import defaultdict, deque
from typing import Dict, List, Optional, Set

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

import roadmap.repo.discussion as discussion_repo
from roadmap.core.exceptions import ConflictError, NotFoundError, ValidationError
from roadmap.models.discussion import DiscussionReply, DiscussionReplyLike
from roadmap.models.user import User
from roadmap.schemas.comment import LikeState
from roadmap.schemas.discussion import Reply as ReplySchema, ReplyCreate, ReplyUpdate
from roadmap.services import access
from roadmap.services import notification as notification_service
from roadmap.services.discussion import get_visible_discussion

logger = logging.getLogger(__name__)

REPLY_NOT_FOUND = "Reply not found or access denied"


def build_reply_tree(
    replies: List[DiscussionReply], like_counts: Dict[int, int], liked_ids: Set[int]
) -> List[ReplySchema]:
    """
    Собирает дерево ответов обходом в ширину с явной очередью.
    Глубина вложенности не ограничена, рекурсии нет.
    """
    children_by_parent: Dict[Optional[int], List[DiscussionReply]] = defaultdict(list)
    for reply in replies:
        children_by_parent[reply.parent_id].append(reply)

    def to_node(reply: DiscussionReply) -> ReplySchema:
        return ReplySchema.model_validate(reply).model_copy(
            update={
                "like_count": like_counts.get(reply.id, 0),
                "liked_by_me": reply.id in liked_ids,
                "children": [],
            }
        )

    roots = [to_node(reply) for reply in children_by_parent.get(None, [])]
    queue = deque(roots)
    while queue:
        node = queue.popleft()
        for child in children_by_parent.get(node.id, []):
            child_node = to_node(child)
            node.children.append(child_node)
            queue.append(child_node)
    return roots


async def get_tree(db: AsyncSession, *, discussion_id: int, user: Optional[User]) -> List[ReplySchema]:
    await get_visible_discussion(db, discussion_id, user)
    replies = await discussion_repo.get_replies_by_discussion(db, discussion_id)
    ids = [r.id for r in replies]
    like_counts = await discussion_repo.count_reply_likes(db, ids)
    liked_ids = await discussion_repo.get_liked_reply_ids(db, user.id, ids) if user else set()
    return build_reply_tree(replies, like_counts, liked_ids)


async def create(db: AsyncSession, *, discussion_id: int, obj_in: ReplyCreate, user: User) -> DiscussionReply:
    """Родительский ответ должен принадлежать тому же обсуждению"""
    discussion, project, _ = await get_visible_discussion(db, discussion_id, user)

    if obj_in.parent_id is not None:
        parent = await discussion_repo.get_reply_by_id(db, obj_in.parent_id)
        if not parent or parent.discussion_id != discussion.id:
            raise ValidationError("Parent reply must belong to the same discussion")

    db_obj = DiscussionReply(
        content=obj_in.content,
        discussion_id=discussion.id,
        author_id=user.id,
        parent_id=obj_in.parent_id,
    )
    await discussion_repo.create_reply_in_db(db, db_obj)

    await notification_service.notify_mentions(db, obj_in.content, user, discussion_id, "reply", project.id)
    await db.refresh(db_obj)

    return db_obj


async def _get_reply(db: AsyncSession, reply_id: int, user: User):
    reply = await discussion_repo.get_reply_by_id(db, reply_id)
    if not reply:
        raise NotFoundError(REPLY_NOT_FOUND)
    _, _, role = await get_visible_discussion(db, reply.discussion_id, user)
    return reply, role


async def update(db: AsyncSession, *, reply_id: int, obj_in: ReplyUpdate, user: User) -> DiscussionReply:
    """Редактировать может только автор"""
    db_obj, _ = await _get_reply(db, reply_id, user)
    if db_obj.author_id != user.id:
        raise NotFoundError(REPLY_NOT_FOUND)

    db_obj.content = obj_in.content
    await discussion_repo.update_reply_in_db(db, db_obj)
    return db_obj


async def delete(db: AsyncSession, *, reply_id: int, user: User) -> None:
    """Удалить может автор, владелец проекта или администратор. Ветка под ответом удаляется целиком"""
    db_obj, role = await _get_reply(db, reply_id, user)
    if db_obj.author_id != user.id and not access.has_role(role, access.MANAGE_ROLES):
        raise NotFoundError(REPLY_NOT_FOUND)

    await discussion_repo.delete_reply_from_db(db, reply_id)


async def like(db: AsyncSession, *, reply_id: int, user: User) -> LikeState:
    await _get_reply(db, reply_id, user)
    if await discussion_repo.get_reply_like(db, reply_id, user.id):
        raise ConflictError("Reply already liked")
    try:
        await discussion_repo.create_reply_like_in_db(db, DiscussionReplyLike(reply_id=reply_id, user_id=user.id))
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Reply already liked")
    counts = await discussion_repo.count_reply_likes(db, [reply_id])
    return LikeState(liked=True, like_count=counts.get(reply_id, 0))


async def unlike(db: AsyncSession, *, reply_id: int, user: User) -> LikeState:
    await _get_reply(db, reply_id, user)
    if not await discussion_repo.delete_reply_like_from_db(db, reply_id, user.id):
        raise NotFoundError("Like not found")
    counts = await discussion_repo.count_reply_likes(db, [reply_id])
    return LikeState(liked=False, like_count=counts.get(reply_id, 0))
