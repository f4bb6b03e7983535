from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap.core.exceptions import AuthenticationError
from roadmap.core.security import decode_access_token, PASSWORD_RESET_TOKEN_TYPE
from roadmap.db.session import get_db
from roadmap.models.user import User as UserModel
from roadmap.schemas.common import ApiResponse, ok
from roadmap.schemas.token import AuthPayload
from roadmap.schemas.user import UserCreate, UserLogin, ForgotPassword, ResetPassword, PasswordChange
from roadmap.services import auth as auth_service
from roadmap.services import user as user_service

router = APIRouter()

bearer_scheme = HTTPBearer(auto_error=False)


async def _user_from_token(db: AsyncSession, token: str) -> UserModel:
    try:
        payload = decode_access_token(token)
    except ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except JWTError:
        raise AuthenticationError("Invalid token")

    # Токен сброса пароля не дает доступа к API
    if payload.get("type") == PASSWORD_RESET_TOKEN_TYPE:
        raise AuthenticationError("Invalid token")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid token")

    user = await user_service.get(db, id=user_id)
    if not user:
        raise AuthenticationError("Invalid token")
    return user


# Асинхронная зависимость для получения текущего пользователя
async def get_current_user(
    db: AsyncSession = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> UserModel:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access denied. No token provided.")
    return await _user_from_token(db, credentials.credentials)


async def get_current_user_optional(
    db: AsyncSession = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[UserModel]:
    """Для публичных маршрутов: без токена или с невалидным токеном пользователь анонимный"""
    if credentials is None or not credentials.credentials:
        return None
    try:
        return await _user_from_token(db, credentials.credentials)
    except AuthenticationError:
        return None


@router.post("/register", response_model=ApiResponse[AuthPayload], status_code=status.HTTP_201_CREATED)
async def register(user_in: UserCreate, db: AsyncSession = Depends(get_db)):
    """
    Регистрация нового пользователя
    """
    user, token = await auth_service.register(db, obj_in=user_in)
    return ok({"user": user, "token": token}, "Registration successful")


@router.post("/login", response_model=ApiResponse[AuthPayload])
async def login(credentials: UserLogin, db: AsyncSession = Depends(get_db)):
    """
    Вход по email и паролю, возвращает пользователя и access token
    """
    user, token = await auth_service.login(db, email=credentials.email, password=credentials.password)
    return ok({"user": user, "token": token}, "Login successful")


@router.post("/forgot-password", response_model=ApiResponse[None])
async def forgot_password(body: ForgotPassword, db: AsyncSession = Depends(get_db)):
    await auth_service.forgot_password(db, email=body.email)
    return ok(message=auth_service.FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", response_model=ApiResponse[None])
async def reset_password(body: ResetPassword, db: AsyncSession = Depends(get_db)):
    await auth_service.reset_password(db, token=body.token, password=body.password)
    return ok(message="Password reset successful")


@router.post("/change-password", response_model=ApiResponse[None])
async def change_password(
    body: PasswordChange,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    await auth_service.change_password(
        db, user=current_user, current_password=body.current_password, new_password=body.new_password
    )
    return ok(message="Password changed successfully")


@router.post("/logout", response_model=ApiResponse[None])
async def logout(current_user: UserModel = Depends(get_current_user)):
    """
    Токены не хранятся на сервере, клиент просто удаляет свой токен
    """
    return ok(message="Logout successful")
