from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap.api.endpoints.auth import get_current_user
from roadmap.db.session import get_db
from roadmap.models.feature import FeatureStatus, FeaturePriority
from roadmap.models.project import ProjectVisibility
from roadmap.models.user import User as UserModel
from roadmap.schemas.common import ApiResponse, ok
from roadmap.schemas.search import SearchResults, ProjectSearchResults, FeatureSearchResults, PublicProjectResults
from roadmap.services import search as search_service

router = APIRouter()


@router.get("", response_model=ApiResponse[SearchResults])
async def search(
    q: Optional[str] = None,
    type: Optional[str] = Query(None, pattern="^(projects|features)$"),
    category: Optional[str] = None,
    status: Optional[FeatureStatus] = None,
    priority: Optional[FeaturePriority] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    """
    Поиск по проектам и фичам, видимым пользователю.
    Запрос короче 2 символов отклоняется.
    """
    results = await search_service.global_search(
        db,
        user=current_user,
        q=q,
        type=type,
        category=category,
        status=status,
        priority=priority,
        page=page,
        limit=limit,
    )
    return ok(results)


@router.get("/projects", response_model=ApiResponse[ProjectSearchResults])
async def search_projects(
    q: Optional[str] = None,
    category: Optional[str] = None,
    visibility: Optional[ProjectVisibility] = None,
    sort_by: str = Query("created_at", pattern="^(created_at|updated_at|title|progress)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    results = await search_service.search_projects(
        db,
        user=current_user,
        q=q,
        category=category,
        visibility=visibility,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return ok(results)


@router.get("/features", response_model=ApiResponse[FeatureSearchResults])
async def search_features(
    q: Optional[str] = None,
    status: Optional[FeatureStatus] = None,
    priority: Optional[FeaturePriority] = None,
    tags: Optional[List[str]] = Query(None),
    project_id: Optional[int] = None,
    sort_by: str = Query("vote_count", pattern="^(vote_count|created_at|updated_at|title|progress)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    """tags можно передать несколько раз, подходит фича хотя бы с одним из тегов"""
    results = await search_service.search_features(
        db,
        user=current_user,
        q=q,
        status=status,
        priority=priority,
        tags=tags,
        project_id=project_id,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return ok(results)


@router.get("/public/projects", response_model=ApiResponse[PublicProjectResults])
async def search_public_projects(
    q: Optional[str] = None,
    category: Optional[str] = None,
    sort_by: str = Query("created_at", pattern="^(created_at|votes|followers|progress)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Публичный каталог без авторизации"""
    results = await search_service.search_public_projects(
        db, q=q, category=category, sort_by=sort_by, sort_order=sort_order, page=page, limit=limit
    )
    return ok(results)
