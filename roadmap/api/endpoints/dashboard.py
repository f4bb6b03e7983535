from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap.api.endpoints.auth import get_current_user, get_current_user_optional
from roadmap.db.session import get_db
from roadmap.models.user import User as UserModel
from roadmap.schemas.common import ApiResponse, ok
from roadmap.services import dashboard as dashboard_service

router = APIRouter()


@router.get("/user", response_model=ApiResponse[Dict[str, Any]])
async def read_user_dashboard(
    timeframe: str = "week",
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    """
    Сводка пользователя: проекты, прогресс, последняя активность,
    быстрая статистика за период week, month или all.
    """
    return ok(await dashboard_service.get_user_dashboard(db, user=current_user, timeframe=timeframe))


@router.get("/project/{project_id}", response_model=ApiResponse[Dict[str, Any]])
async def read_project_dashboard(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[UserModel] = Depends(get_current_user_optional),
) -> Any:
    return ok(await dashboard_service.get_project_dashboard(db, project_id=project_id, user=current_user))


@router.get("/stats", response_model=ApiResponse[Dict[str, Any]])
async def read_stats(
    period: str = "30d",
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    """Ряды по дням за 7d, 30d или 90d"""
    return ok(await dashboard_service.get_stats(db, user=current_user, period=period))
