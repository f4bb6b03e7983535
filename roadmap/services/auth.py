import logging

from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap.core.exceptions import AuthenticationError, ValidationError
from roadmap.core.security import (
    create_access_token,
    create_password_reset_token,
    decode_access_token,
    verify_password,
    PASSWORD_RESET_TOKEN_TYPE,
)
from roadmap.models.user import User
from roadmap.schemas.user import UserCreate
from roadmap.services import email as email_service
from roadmap.services import user as user_service

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If email exists, reset instructions sent"


async def register(db: AsyncSession, *, obj_in: UserCreate) -> tuple:
    user = await user_service.create(db, obj_in=obj_in)
    logger.info(f"User {user.id} registered")
    return user, create_access_token(user.id)


async def login(db: AsyncSession, *, email: str, password: str) -> tuple:
    user = await user_service.authenticate(db, email=email, password=password)
    if not user:
        raise AuthenticationError("Invalid credentials")
    if not user.is_active:
        raise ValidationError("Inactive user")
    return user, create_access_token(user.id)


async def forgot_password(db: AsyncSession, *, email: str) -> None:
    """
    Отправляет ссылку для сброса пароля.
    Ответ не зависит от существования email.
    """
    user = await user_service.get_by_email(db, email=email)
    if not user:
        logger.info("Password reset requested for unknown email")
        return
    email_service.send_password_reset_email(user.email, create_password_reset_token(user.id))


async def reset_password(db: AsyncSession, *, token: str, password: str) -> User:
    try:
        payload = decode_access_token(token)
    except JWTError:
        raise ValidationError("Invalid or expired reset token")

    if payload.get("type") != PASSWORD_RESET_TOKEN_TYPE:
        raise ValidationError("Invalid or expired reset token")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise ValidationError("Invalid or expired reset token")

    user = await user_service.get(db, id=user_id)
    if not user:
        raise ValidationError("Invalid or expired reset token")

    return await user_service.set_password(db, db_obj=user, password=password)


async def change_password(db: AsyncSession, *, user: User, current_password: str, new_password: str) -> User:
    if not verify_password(current_password, user.password_hash):
        raise ValidationError("Current password is incorrect")
    return await user_service.set_password(db, db_obj=user, password=new_password)
