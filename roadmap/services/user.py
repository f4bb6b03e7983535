from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

import roadmap.repo.user as user_repo
from roadmap.core.exceptions import AuthenticationError, ConflictError, NotFoundError
from roadmap.core.security import get_password_hash, verify_password
from roadmap.models.user import User
from roadmap.schemas.user import UserCreate, UserUpdate
from roadmap.utils.text import default_avatar_url


async def get(db: AsyncSession, id: int) -> Optional[User]:
    """Получает пользователя по идентификатору"""
    return await user_repo.get_user_by_id(db, id)


async def get_or_404(db: AsyncSession, id: int) -> User:
    user = await user_repo.get_user_by_id(db, id)
    if not user:
        raise NotFoundError("User not found")
    return user


async def get_by_email(db: AsyncSession, email: str) -> Optional[User]:
    """Получает пользователя по email"""
    return await user_repo.get_user_by_email(db, email)


async def get_by_username(db: AsyncSession, username: str) -> Optional[User]:
    """Получает пользователя по имени пользователя"""
    return await user_repo.get_user_by_username(db, username)


async def create(db: AsyncSession, *, obj_in: UserCreate) -> User:
    """Создает нового пользователя"""
    if await get_by_email(db, email=obj_in.email):
        raise ConflictError("Email already registered")
    if obj_in.username and await get_by_username(db, username=obj_in.username):
        raise ConflictError("Username taken")

    db_obj = User(
        name=obj_in.name,
        username=obj_in.username,
        email=obj_in.email,
        password_hash=get_password_hash(obj_in.password),
        avatar_url=default_avatar_url(obj_in.name),
    )

    await user_repo.create_user_in_db(db, db_obj)

    return db_obj


async def update(db: AsyncSession, *, db_obj: User, obj_in: UserUpdate) -> User:
    """Обновляет профиль пользователя"""
    obj_data = obj_in.model_dump(exclude_unset=True)

    username = obj_data.get("username")
    if username and username != db_obj.username:
        existing = await get_by_username(db, username=username)
        if existing and existing.id != db_obj.id:
            raise ConflictError("Username already taken")

    for field, value in obj_data.items():
        setattr(db_obj, field, value)

    await user_repo.update_user_in_db(db, db_obj)

    return db_obj


async def set_password(db: AsyncSession, *, db_obj: User, password: str) -> User:
    db_obj.password_hash = get_password_hash(password)
    await user_repo.update_user_in_db(db, db_obj)
    return db_obj


async def delete_account(db: AsyncSession, *, db_obj: User, password: str) -> None:
    """Удаляет аккаунт после проверки пароля"""
    if not verify_password(password, db_obj.password_hash):
        raise AuthenticationError("Password is incorrect")
    await user_repo.delete_user_from_db(db, db_obj.id)


async def authenticate(db: AsyncSession, *, email: str, password: str) -> Optional[User]:
    """
    Проверяет пользователя по email и паролю.
    У OAuth-пользователей без пароля проверка всегда неуспешна.
    """
    user = await get_by_email(db, email=email)

    if not user or not verify_password(password, user.password_hash):
        return None

    return user
