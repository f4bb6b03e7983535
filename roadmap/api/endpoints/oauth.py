import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap.core.config import settings
from roadmap.core.security import create_access_token
from roadmap.db.session import get_db
from roadmap.services import oauth as oauth_service

logger = logging.getLogger(__name__)

router = APIRouter()

FAILURE_URL = f"{settings.API_PREFIX}/oauth/failure"


@router.get("/failure")
async def oauth_failure():
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"success": False, "message": "OAuth authentication failed"},
    )


@router.get("/{provider}")
async def oauth_login(provider: str):
    """Перенаправление на страницу авторизации провайдера"""
    return RedirectResponse(oauth_service.build_authorize_url(provider))


@router.get("/{provider}/callback")
async def oauth_callback(provider: str, code: str = "", db: AsyncSession = Depends(get_db)):
    """
    Обмен code на профиль, привязка или создание пользователя,
    редирект на фронтенд с токеном. Любая ошибка ведет на /oauth/failure.
    """
    oauth_service.get_provider(provider)
    if not code:
        return RedirectResponse(FAILURE_URL)
    try:
        profile = await oauth_service.fetch_profile(provider, code)
        user = await oauth_service.link_or_create_user(db, provider, profile)
    except Exception as e:
        logger.error(f"{provider} OAuth callback failed: {e}")
        return RedirectResponse(FAILURE_URL)

    token = create_access_token(user.id)
    return RedirectResponse(f"{settings.FRONTEND_URL}/oauth-success?token={token}")
