import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

import roadmap.repo.feature as feature_repo
import roadmap.repo.project as project_repo
from roadmap.core.exceptions import NotFoundError
from roadmap.messaging import producers
from roadmap.models.feature import Feature
from roadmap.models.notification import ActivityAction
from roadmap.models.project import Project, ProjectRole, RoadmapStage
from roadmap.models.user import User
from roadmap.schemas.feature import FeatureCreate, FeatureUpdate
from roadmap.services import access
from roadmap.services import notification as notification_service
from roadmap.services.activity import log_activity

logger = logging.getLogger(__name__)

FEATURE_NOT_FOUND = "Feature not found or access denied"


async def resolve_stage(db: AsyncSession, project_id: int, stage_id: Optional[int]) -> RoadmapStage:
    """
    Этап для новой фичи: указанный (только из этого проекта),
    иначе "Backlog", иначе этап с наименьшей позицией.
    """
    if stage_id is not None:
        stage = await project_repo.get_stage_by_id(db, stage_id)
        if not stage or stage.project_id != project_id:
            raise NotFoundError("Stage not found")
        return stage

    stage = await project_repo.get_stage_by_title(db, project_id, "Backlog")
    if stage:
        return stage

    stages = await project_repo.get_stages_by_project(db, project_id)
    if not stages:
        raise NotFoundError("Backlog stage not found for this project")
    return stages[0]


def can_edit(feature: Feature, user: User, role: Optional[ProjectRole]) -> bool:
    """Автор фичи, владелец проекта или администратор"""
    return feature.author_id == user.id or access.has_role(role, access.MANAGE_ROLES)


async def get_visible_feature(db: AsyncSession, feature_id: int, user: Optional[User]) -> Tuple[Feature, Project, Optional[ProjectRole]]:
    """Фича, проект которой виден пользователю"""
    feature = await feature_repo.get_feature_by_id(db, feature_id)
    if not feature:
        raise NotFoundError("Feature not found")
    project, role = await access.get_visible_project(db, feature.project_id, user, "Feature not found")
    return feature, project, role


async def create(db: AsyncSession, *, project_id: int, obj_in: FeatureCreate, user: User) -> Feature:
    project, _ = await access.get_project_with_role(db, project_id, user, access.CONTRIBUTOR_ROLES)
    stage = await resolve_stage(db, project.id, obj_in.stage_id)

    db_obj = Feature(
        title=obj_in.title,
        description=obj_in.description,
        tags=obj_in.tags,
        status=obj_in.status,
        priority=obj_in.priority,
        progress=obj_in.progress,
        start_date=obj_in.start_date,
        target_date=obj_in.target_date,
        project_id=project.id,
        stage_id=stage.id,
        author_id=user.id,
    )
    await feature_repo.create_feature_in_db(db, db_obj)
    logger.info(f"Feature {db_obj.id} created in project {project.id} by user {user.id}")

    event = {
        "feature_id": db_obj.id,
        "title": db_obj.title,
        "project_id": project.id,
        "project_title": project.title,
        "notify_emails": await project_repo.get_follower_emails(db, project.id, exclude_user_id=user.id),
    }
    await notification_service.notify_new_feature(db, db_obj, user)
    await log_activity(
        db, ActivityAction.FEATURE_CREATED, user.id, project.id, {"feature_id": event["feature_id"], "title": event["title"]}
    )
    await producers.send_event("feature_created", event)
    await db.refresh(db_obj)

    return db_obj


async def get_by_project(db: AsyncSession, *, project_id: int, user: Optional[User]) -> List[Feature]:
    await access.get_visible_project(db, project_id, user)
    return await feature_repo.get_features_by_project(db, project_id)


async def get_detail(db: AsyncSession, *, feature_id: int, user: Optional[User]) -> Dict[str, Any]:
    feature, _, _ = await get_visible_feature(db, feature_id, user)
    votes = await feature_repo.get_votes_by_feature(db, feature.id)
    user_vote = next((v.value for v in votes if user and v.user_id == user.id), None)
    return {
        "feature": feature,
        "votes": votes,
        "comment_count": await feature_repo.count_comments(db, feature.id),
        "user_vote": user_vote,
    }


async def _get_editable(db: AsyncSession, feature_id: int, user: User) -> Tuple[Feature, Project]:
    feature = await feature_repo.get_feature_by_id(db, feature_id)
    if not feature:
        raise NotFoundError(FEATURE_NOT_FOUND)
    project = await project_repo.get_project_by_id(db, feature.project_id)
    role = await access.get_role(db, project, user)
    if not access.can_view(project, role) or not can_edit(feature, user, role):
        raise NotFoundError(FEATURE_NOT_FOUND)
    return feature, project


async def update(db: AsyncSession, *, feature_id: int, obj_in: FeatureUpdate, user: User) -> Feature:
    """Смена статуса уведомляет всех подписчиков проекта"""
    db_obj, project = await _get_editable(db, feature_id, user)

    obj_data = obj_in.model_dump(exclude_unset=True)
    if obj_data.get("stage_id") is not None:
        await resolve_stage(db, project.id, obj_data["stage_id"])

    old_status = db_obj.status
    for field, value in obj_data.items():
        if value is None and field in ("title", "status", "priority", "progress", "stage_id", "tags"):
            continue
        setattr(db_obj, field, value)

    await feature_repo.update_feature_in_db(db, db_obj)

    if db_obj.status != old_status:
        new_status = db_obj.status
        event = {
            "feature_id": db_obj.id,
            "title": db_obj.title,
            "project_id": project.id,
            "project_title": project.title,
            "old_status": old_status.value,
            "status": new_status.value,
            "notify_emails": await project_repo.get_follower_emails(db, project.id),
        }
        await notification_service.notify_status_change(db, db_obj, old_status.value, new_status.value)
        await log_activity(
            db,
            ActivityAction.FEATURE_STATUS_CHANGED,
            user.id,
            project.id,
            {"feature_id": event["feature_id"], "old_status": event["old_status"], "new_status": event["status"]},
        )
        await producers.send_event("feature_status_changed", event)
        await db.refresh(db_obj)

    return db_obj


async def delete(db: AsyncSession, *, feature_id: int, user: User) -> None:
    await _get_editable(db, feature_id, user)
    await feature_repo.delete_feature_from_db(db, feature_id)
    logger.info(f"Feature {feature_id} deleted by user {user.id}")
