"""
Правила доступа к проекту и его дочерним объектам.

Проект виден, если он публичный, или пользователь его владелец, или у пользователя
есть членство. Невидимый проект неотличим от несуществующего (404).
Владелец определяется по Project.owner_id, строка в project_members для него не нужна.
"""
from typing import FrozenSet, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

import roadmap.repo.member as member_repo
import roadmap.repo.project as project_repo
from roadmap.core.exceptions import NotFoundError
from roadmap.models.project import Project, ProjectRole, ProjectVisibility
from roadmap.models.user import User

# Смена роли и удаление участников
MANAGE_ROLES: FrozenSet[ProjectRole] = frozenset({ProjectRole.OWNER, ProjectRole.ADMIN})
# Создание, изменение и удаление этапов
STAGE_ROLES: FrozenSet[ProjectRole] = frozenset({ProjectRole.OWNER, ProjectRole.ADMIN, ProjectRole.EDITOR})
# Отправка приглашений
INVITE_ROLES: FrozenSet[ProjectRole] = frozenset(
    {ProjectRole.OWNER, ProjectRole.ADMIN, ProjectRole.EDITOR, ProjectRole.MEMBER}
)
# Создание фич и обсуждений: владелец или любой участник
CONTRIBUTOR_ROLES: FrozenSet[ProjectRole] = frozenset(ProjectRole)

PROJECT_NOT_FOUND = "Project not found or access denied"


async def get_role(db: AsyncSession, project: Project, user: Optional[User]) -> Optional[ProjectRole]:
    """Роль пользователя в проекте или None"""
    if user is None:
        return None
    if project.owner_id == user.id:
        return ProjectRole.OWNER
    member = await member_repo.get_member(db, project.id, user.id)
    return member.role if member else None


def can_view(project: Project, role: Optional[ProjectRole]) -> bool:
    return project.visibility == ProjectVisibility.PUBLIC or role is not None


def has_role(role: Optional[ProjectRole], allowed: FrozenSet[ProjectRole]) -> bool:
    return role is not None and role in allowed


async def get_visible_project(
    db: AsyncSession, project_id: int, user: Optional[User], message: str = PROJECT_NOT_FOUND
) -> Tuple[Project, Optional[ProjectRole]]:
    """Возвращает проект и роль пользователя или NotFoundError"""
    project = await project_repo.get_project_by_id(db, project_id)
    if not project:
        raise NotFoundError(message)
    role = await get_role(db, project, user)
    if not can_view(project, role):
        raise NotFoundError(message)
    return project, role


async def get_project_with_role(
    db: AsyncSession,
    project_id: int,
    user: User,
    allowed: FrozenSet[ProjectRole],
    message: str = PROJECT_NOT_FOUND,
) -> Tuple[Project, ProjectRole]:
    """Проект, для которого у пользователя есть одна из ролей allowed, иначе NotFoundError"""
    project = await project_repo.get_project_by_id(db, project_id)
    if not project:
        raise NotFoundError(message)
    role = await get_role(db, project, user)
    if not has_role(role, allowed):
        raise NotFoundError(message)
    return project, role


async def get_owned_project(db: AsyncSession, project_id: int, user: User) -> Project:
    """Проект, владельцем которого является пользователь"""
    project = await project_repo.get_project_by_id(db, project_id)
    if not project or project.owner_id != user.id:
        raise NotFoundError("Project not found or insufficient permissions")
    return project
