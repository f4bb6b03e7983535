import logging
from datetime import timedelta
from typing import Optional, Tuple, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

import roadmap.repo.member as member_repo
from roadmap.core.config import settings
from roadmap.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from roadmap.core.security import generate_invite_token
from roadmap.db.session import transaction
from roadmap.messaging import producers
from roadmap.models.notification import ActivityAction
from roadmap.models.project import Project, ProjectInvite, ProjectMember, ProjectRole
from roadmap.models.user import User
from roadmap.schemas.member import InviteCreate
from roadmap.services import access
from roadmap.services import email as email_service
from roadmap.services.activity import log_activity
from roadmap.utils.dates import as_utc, utc_now

logger = logging.getLogger(__name__)

# Одна формулировка для всех причин отказа, чтобы не подтверждать email по утекшему токену
INVALID_INVITE = "Invalid or expired invite"


async def create_invite(db: AsyncSession, *, project_id: int, obj_in: InviteCreate, user: User) -> ProjectInvite:
    """
    Создает приглашение и ставит письмо в очередь.
    Ошибка отправки письма не отменяет приглашение.
    """
    project, _ = await access.get_project_with_role(db, project_id, user, access.INVITE_ROLES)

    if project.owner.email.lower() == obj_in.email or await member_repo.get_member_by_email(
        db, project_id, obj_in.email
    ):
        raise ConflictError("User is already a project member")

    invite = ProjectInvite(
        token=generate_invite_token(),
        email=obj_in.email,
        role=obj_in.role,
        project_id=project.id,
        invited_by_id=user.id,
        expires_at=utc_now() + timedelta(days=settings.INVITE_EXPIRE_DAYS),
    )
    await member_repo.create_invite_in_db(db, invite)
    logger.info(f"Invite {invite.id} to project {project.id} created by user {user.id}")

    email_service.send_invite_email(invite.email, invite.token, project.title, user.name, invite.role.value)

    return invite


def is_invite_usable(invite: Optional[ProjectInvite], user: User) -> bool:
    """Приглашение не принято, не истекло и выписано на email пользователя"""
    if invite is None or invite.accepted:
        return False
    if as_utc(invite.expires_at) <= utc_now():
        return False
    return invite.email.lower() == user.email.lower()


async def accept_invite(db: AsyncSession, *, token: str, user: User) -> ProjectMember:
    """
    Принимает приглашение: отметка accepted и создание участника в одной транзакции.
    Повторное принятие того же токена невозможно.
    """
    invite = await member_repo.get_invite_by_token(db, token)
    if not is_invite_usable(invite, user):
        raise ValidationError(INVALID_INVITE)

    project: Project = invite.project
    if project.owner_id == user.id or await member_repo.get_member(db, project.id, user.id):
        raise ConflictError("User is already a project member")

    try:
        async with transaction(db):
            if not await member_repo.mark_invite_accepted(db, invite.id, utc_now()):
                raise ValidationError(INVALID_INVITE)
            member = await member_repo.add_member(db, project.id, user.id, invite.role)
    except IntegrityError:
        raise ConflictError("User is already a project member")

    await db.refresh(member)
    logger.info(f"User {user.id} joined project {project.id} as {member.role.value}")

    event = {
        "project_id": project.id,
        "project_title": project.title,
        "owner_email": project.owner.email,
        "user_name": user.name,
        "role": member.role.value,
    }
    email_service.send_welcome_email(user.email, user.name, project.title, member.role.value)
    await log_activity(
        db, ActivityAction.MEMBER_JOINED, user.id, project.id, {"role": event["role"], "invite_id": invite.id}
    )
    await producers.send_event("member_joined", event)
    await db.refresh(member)

    return member


async def get_members(db: AsyncSession, *, project_id: int, user: Optional[User]) -> Tuple[Project, List[ProjectMember]]:
    project, _ = await access.get_visible_project(db, project_id, user)
    return project, await member_repo.get_members(db, project.id)


async def _get_managed_member(db: AsyncSession, project_id: int, member_id: int, user: User) -> Tuple[Project, ProjectMember, Optional[ProjectRole]]:
    project, role = await access.get_visible_project(db, project_id, user)
    member = await member_repo.get_member_by_id(db, member_id)
    if not member or member.project_id != project.id:
        raise NotFoundError("Member not found")
    return project, member, role


async def update_role(
    db: AsyncSession, *, project_id: int, member_id: int, role: ProjectRole, user: User
) -> ProjectMember:
    project, member, caller_role = await _get_managed_member(db, project_id, member_id, user)
    if not access.has_role(caller_role, access.MANAGE_ROLES):
        raise ForbiddenError("Insufficient permissions")

    old_role = member.role
    member.role = role
    await member_repo.update_member_in_db(db, member)

    await log_activity(
        db,
        ActivityAction.MEMBER_ROLE_UPDATED,
        user.id,
        project.id,
        {"member_user_id": member.user_id, "old_role": old_role.value, "new_role": role.value},
    )
    await db.refresh(member)
    return member


async def remove(db: AsyncSession, *, project_id: int, member_id: int, user: User) -> None:
    """Удалить себя нельзя даже владельцу или администратору"""
    project, member, caller_role = await _get_managed_member(db, project_id, member_id, user)
    if member.user_id == user.id:
        raise ValidationError("Cannot remove yourself from project")
    if not access.has_role(caller_role, access.MANAGE_ROLES):
        raise ForbiddenError("Insufficient permissions")

    removed_user_id = member.user_id
    await member_repo.delete_member_from_db(db, member.id)

    await log_activity(
        db, ActivityAction.MEMBER_REMOVED, user.id, project.id, {"member_user_id": removed_user_id}
    )
