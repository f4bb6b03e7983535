from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from roadmap.models.project import ProjectMember, ProjectInvite, ProjectRole
from roadmap.models.user import User


async def get_member(db: AsyncSession, project_id: int, user_id: int) -> Optional[ProjectMember]:
    """Получает членство пользователя в проекте"""
    result = await db.execute(
        select(ProjectMember).where(ProjectMember.project_id == project_id, ProjectMember.user_id == user_id)
    )
    return result.scalars().first()


async def get_member_by_id(db: AsyncSession, id: int) -> Optional[ProjectMember]:
    result = await db.execute(select(ProjectMember).where(ProjectMember.id == id))
    return result.scalars().first()


async def get_members(db: AsyncSession, project_id: int) -> List[ProjectMember]:
    result = await db.execute(
        select(ProjectMember).where(ProjectMember.project_id == project_id).order_by(ProjectMember.joined_at)
    )
    return result.scalars().all()


async def get_member_by_email(db: AsyncSession, project_id: int, email: str) -> Optional[ProjectMember]:
    result = await db.execute(
        select(ProjectMember)
        .join(User, User.id == ProjectMember.user_id)
        .where(ProjectMember.project_id == project_id, User.email == email.lower())
    )
    return result.scalars().first()


async def get_member_user_ids(db: AsyncSession, project_id: int) -> List[int]:
    result = await db.execute(select(ProjectMember.user_id).where(ProjectMember.project_id == project_id))
    return list(result.scalars().all())


async def get_member_project_ids(db: AsyncSession, user_id: int) -> List[int]:
    result = await db.execute(select(ProjectMember.project_id).where(ProjectMember.user_id == user_id))
    return list(result.scalars().all())


async def update_member_in_db(db: AsyncSession, member: ProjectMember) -> None:
    db.add(member)
    await db.commit()
    await db.refresh(member)


async def delete_member_from_db(db: AsyncSession, id: int) -> bool:
    result = await db.execute(delete(ProjectMember).where(ProjectMember.id == id))
    await db.commit()
    return result.rowcount > 0


# Приглашения
async def get_invite_by_token(db: AsyncSession, token: str) -> Optional[ProjectInvite]:
    result = await db.execute(select(ProjectInvite).where(ProjectInvite.token == token))
    return result.scalars().first()


async def create_invite_in_db(db: AsyncSession, invite: ProjectInvite) -> None:
    db.add(invite)
    await db.commit()
    await db.refresh(invite)


async def mark_invite_accepted(db: AsyncSession, invite_id: int, accepted_at: datetime) -> bool:
    """
    Помечает приглашение принятым только если оно еще не принято.
    Не коммитит: вызывается внутри транзакции принятия.
    """
    result = await db.execute(
        update(ProjectInvite)
        .where(ProjectInvite.id == invite_id, ProjectInvite.accepted.is_(False))
        .values(accepted=True, accepted_at=accepted_at)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def add_member(db: AsyncSession, project_id: int, user_id: int, role: ProjectRole) -> ProjectMember:
    """Добавляет участника без коммита, для использования внутри транзакции"""
    member = ProjectMember(project_id=project_id, user_id=user_id, role=role)
    db.add(member)
    await db.flush()
    return member
