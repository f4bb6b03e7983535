from typing import Dict, List, Optional

from sqlalchemy import delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from roadmap.models.feature import Feature
from roadmap.models.project import Project, RoadmapStage, ProjectMember, Follower
from roadmap.models.user import User


async def get_project_by_id(db: AsyncSession, id: int) -> Optional[Project]:
    result = await db.execute(select(Project).where(Project.id == id))
    return result.scalars().first()


async def get_projects_for_user(db: AsyncSession, user_id: int) -> List[Project]:
    """Проекты, которыми пользователь владеет или в которых состоит, новые первыми"""
    member_projects = select(ProjectMember.project_id).where(ProjectMember.user_id == user_id)
    result = await db.execute(
        select(Project)
        .where(or_(Project.owner_id == user_id, Project.id.in_(member_projects)))
        .order_by(Project.created_at.desc(), Project.id.desc())
    )
    return result.scalars().all()


async def create_project_in_db(db: AsyncSession, project: Project, stages: List[RoadmapStage]) -> None:
    """Создает проект вместе с этапами в одной транзакции"""
    db.add(project)
    await db.flush()
    for stage in stages:
        stage.project_id = project.id
        db.add(stage)
    await db.commit()
    await db.refresh(project)


async def update_project_in_db(db: AsyncSession, project: Project) -> None:
    db.add(project)
    await db.commit()
    await db.refresh(project)


async def delete_project_from_db(db: AsyncSession, id: int) -> bool:
    result = await db.execute(delete(Project).where(Project.id == id))
    await db.commit()
    return result.rowcount > 0


async def count_features_by_project(db: AsyncSession, project_ids: List[int]) -> Dict[int, int]:
    if not project_ids:
        return {}
    result = await db.execute(
        select(Feature.project_id, func.count(Feature.id))
        .where(Feature.project_id.in_(project_ids))
        .group_by(Feature.project_id)
    )
    return dict(result.all())


async def count_followers_by_project(db: AsyncSession, project_ids: List[int]) -> Dict[int, int]:
    if not project_ids:
        return {}
    result = await db.execute(
        select(Follower.project_id, func.count(Follower.id))
        .where(Follower.project_id.in_(project_ids))
        .group_by(Follower.project_id)
    )
    return dict(result.all())


async def count_members_by_project(db: AsyncSession, project_ids: List[int]) -> Dict[int, int]:
    if not project_ids:
        return {}
    result = await db.execute(
        select(ProjectMember.project_id, func.count(ProjectMember.id))
        .where(ProjectMember.project_id.in_(project_ids))
        .group_by(ProjectMember.project_id)
    )
    return dict(result.all())


# Этапы
async def get_stage_by_id(db: AsyncSession, id: int) -> Optional[RoadmapStage]:
    result = await db.execute(select(RoadmapStage).where(RoadmapStage.id == id))
    return result.scalars().first()


async def get_stages_by_project(db: AsyncSession, project_id: int) -> List[RoadmapStage]:
    result = await db.execute(
        select(RoadmapStage)
        .where(RoadmapStage.project_id == project_id)
        .order_by(RoadmapStage.position, RoadmapStage.id)
    )
    return result.scalars().all()


async def get_stage_by_title(db: AsyncSession, project_id: int, title: str) -> Optional[RoadmapStage]:
    result = await db.execute(
        select(RoadmapStage).where(RoadmapStage.project_id == project_id, RoadmapStage.title == title)
    )
    return result.scalars().first()


async def get_max_stage_position(db: AsyncSession, project_id: int) -> int:
    result = await db.execute(
        select(func.coalesce(func.max(RoadmapStage.position), 0)).where(RoadmapStage.project_id == project_id)
    )
    return result.scalar_one()


async def create_stage_in_db(db: AsyncSession, stage: RoadmapStage) -> None:
    db.add(stage)
    await db.commit()
    await db.refresh(stage)


async def update_stage_in_db(db: AsyncSession, stage: RoadmapStage) -> None:
    db.add(stage)
    await db.commit()
    await db.refresh(stage)


async def delete_stage_from_db(db: AsyncSession, id: int) -> bool:
    result = await db.execute(delete(RoadmapStage).where(RoadmapStage.id == id))
    await db.commit()
    return result.rowcount > 0


async def count_features_by_stage(db: AsyncSession, project_id: int) -> Dict[int, int]:
    result = await db.execute(
        select(Feature.stage_id, func.count(Feature.id))
        .where(Feature.project_id == project_id)
        .group_by(Feature.stage_id)
    )
    return dict(result.all())


# Подписчики
async def get_follower(db: AsyncSession, project_id: int, user_id: int) -> Optional[Follower]:
    result = await db.execute(
        select(Follower).where(Follower.project_id == project_id, Follower.user_id == user_id)
    )
    return result.scalars().first()


async def get_followers(db: AsyncSession, project_id: int) -> List[Follower]:
    result = await db.execute(
        select(Follower).where(Follower.project_id == project_id).order_by(Follower.created_at.desc())
    )
    return result.scalars().all()


async def get_follower_user_ids(db: AsyncSession, project_id: int) -> List[int]:
    result = await db.execute(select(Follower.user_id).where(Follower.project_id == project_id))
    return list(result.scalars().all())


async def count_followers(db: AsyncSession, project_id: int) -> int:
    result = await db.execute(select(func.count(Follower.id)).where(Follower.project_id == project_id))
    return result.scalar_one()


async def get_followed_projects(db: AsyncSession, user_id: int, limit: Optional[int] = None) -> List[Project]:
    query = (
        select(Project)
        .join(Follower, Follower.project_id == Project.id)
        .where(Follower.user_id == user_id)
        .order_by(Follower.created_at.desc())
    )
    if limit:
        query = query.limit(limit)
    result = await db.execute(query)
    return result.scalars().all()


async def create_follower_in_db(db: AsyncSession, follower: Follower) -> None:
    db.add(follower)
    await db.commit()
    await db.refresh(follower)


async def delete_follower_from_db(db: AsyncSession, project_id: int, user_id: int) -> bool:
    result = await db.execute(
        delete(Follower).where(Follower.project_id == project_id, Follower.user_id == user_id)
    )
    await db.commit()
    return result.rowcount > 0


async def get_follower_emails(db: AsyncSession, project_id: int, exclude_user_id: Optional[int] = None) -> List[str]:
    query = (
        select(User.email)
        .join(Follower, Follower.user_id == User.id)
        .where(Follower.project_id == project_id)
    )
    if exclude_user_id is not None:
        query = query.where(User.id != exclude_user_id)
    result = await db.execute(query)
    return list(result.scalars().all())
