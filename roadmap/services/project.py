import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from sqlalchemy.ext.asyncio import AsyncSession

import roadmap.repo.feature as feature_repo
import roadmap.repo.member as member_repo
import roadmap.repo.project as project_repo
from roadmap.cache import client as cache
from roadmap.models.notification import ActivityAction
from roadmap.models.project import Project, RoadmapStage
from roadmap.models.user import User
from roadmap.schemas.project import ProjectCreate, ProjectUpdate
from roadmap.services import access
from roadmap.services.activity import log_activity
from roadmap.utils.text import slugify

logger = logging.getLogger(__name__)

PUBLIC_SEARCH_CACHE_PATTERN = "search:public:*"

DEFAULT_STAGES = [
    {"title": "Backlog", "position": 1, "color": "bg-gray-500"},
    {"title": "Planned", "position": 2, "color": "bg-blue-500"},
    {"title": "In Progress", "position": 3, "color": "bg-yellow-500"},
    {"title": "Completed", "position": 4, "color": "bg-green-500"},
]


def default_logo_url(title: str) -> str:
    return f"https://api.dicebear.com/7.x/initials/svg?seed={quote(title)}&backgroundColor=0D8ABC"


def build_stages(obj_in: ProjectCreate) -> List[RoadmapStage]:
    """Свои этапы из запроса или стандартный набор"""
    if obj_in.stages:
        return [
            RoadmapStage(
                title=stage.title,
                position=stage.position if stage.position is not None else index + 1,
                color=stage.color or "bg-gray-500",
            )
            for index, stage in enumerate(obj_in.stages)
        ]
    return [RoadmapStage(**stage) for stage in DEFAULT_STAGES]


async def invalidate_search_cache() -> None:
    await cache.invalidate_pattern(PUBLIC_SEARCH_CACHE_PATTERN)


async def create(db: AsyncSession, *, obj_in: ProjectCreate, owner: User) -> Project:
    db_obj = Project(
        title=obj_in.title,
        slug=slugify(obj_in.title),
        description=obj_in.description,
        category=obj_in.category,
        logo_url=obj_in.logo_url or default_logo_url(obj_in.title),
        visibility=obj_in.visibility,
        progress=obj_in.progress,
        owner_id=owner.id,
    )

    await project_repo.create_project_in_db(db, db_obj, build_stages(obj_in))
    logger.info(f"Project {db_obj.id} created by user {owner.id}")

    await invalidate_search_cache()
    await log_activity(db, ActivityAction.PROJECT_CREATED, owner.id, db_obj.id, {"title": db_obj.title})
    await db.refresh(db_obj)

    return db_obj


async def get_detail(db: AsyncSession, *, project_id: int, user: Optional[User]) -> Dict[str, Any]:
    """Проект со всем содержимым, с проверкой видимости"""
    project, role = await access.get_visible_project(db, project_id, user)

    stages = await project_repo.get_stages_by_project(db, project.id)
    features = await feature_repo.get_features_by_project(db, project.id)
    members = await member_repo.get_members(db, project.id)
    follower_count = await project_repo.count_followers(db, project.id)
    is_following = bool(user and await project_repo.get_follower(db, project.id, user.id))

    return {
        "project": project,
        "stages": stages,
        "features": features,
        "members": members,
        "feature_count": len(features),
        "follower_count": follower_count,
        "user_role": role,
        "is_following": is_following,
    }


async def get_my_projects(db: AsyncSession, *, user: User) -> List[Dict[str, Any]]:
    projects = await project_repo.get_projects_for_user(db, user.id)
    ids = [p.id for p in projects]
    feature_counts = await project_repo.count_features_by_project(db, ids)
    follower_counts = await project_repo.count_followers_by_project(db, ids)
    member_counts = await project_repo.count_members_by_project(db, ids)

    result = []
    for project in projects:
        result.append(
            {
                "project": project,
                "feature_count": feature_counts.get(project.id, 0),
                "follower_count": follower_counts.get(project.id, 0),
                "member_count": member_counts.get(project.id, 0),
                "role": await access.get_role(db, project, user),
            }
        )
    return result


async def update(db: AsyncSession, *, project_id: int, obj_in: ProjectUpdate, user: User) -> Project:
    """Изменять проект может только владелец"""
    db_obj = await access.get_owned_project(db, project_id, user)

    obj_data = obj_in.model_dump(exclude_unset=True)
    if obj_data.get("title"):
        obj_data["slug"] = slugify(obj_data["title"])
    for field, value in obj_data.items():
        if value is None and field in ("title", "visibility", "progress"):
            continue
        setattr(db_obj, field, value)

    await project_repo.update_project_in_db(db, db_obj)
    await invalidate_search_cache()

    return db_obj


async def delete(db: AsyncSession, *, project_id: int, user: User) -> None:
    """Удалить проект может только владелец, дочерние записи удаляются каскадом"""
    await access.get_owned_project(db, project_id, user)
    await project_repo.delete_project_from_db(db, project_id)
    logger.info(f"Project {project_id} deleted by user {user.id}")
    await invalidate_search_cache()
