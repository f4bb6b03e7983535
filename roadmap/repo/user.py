from typing import Optional, List

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from roadmap.models.user import User


async def get_user_by_id(db: AsyncSession, id: int) -> Optional[User]:
    """Получает пользователя по идентификатору"""
    result = await db.execute(select(User).where(User.id == id))
    return result.scalars().first()


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    """Получает пользователя по email"""
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalars().first()


async def get_user_by_username(db: AsyncSession, username: str) -> Optional[User]:
    """Получает пользователя по имени пользователя"""
    result = await db.execute(select(User).where(User.username == username))
    return result.scalars().first()


async def get_users_by_usernames(db: AsyncSession, usernames: List[str]) -> List[User]:
    """Получает пользователей по списку username (для упоминаний)"""
    if not usernames:
        return []
    result = await db.execute(select(User).where(User.username.in_(usernames)))
    return result.scalars().all()


async def get_user_by_provider_id(db: AsyncSession, provider: str, provider_id: str) -> Optional[User]:
    """Получает пользователя по идентификатору OAuth-провайдера"""
    column = User.google_id if provider == "google" else User.github_id
    result = await db.execute(select(User).where(column == provider_id))
    return result.scalars().first()


async def create_user_in_db(db: AsyncSession, user: User) -> None:
    """Создает пользователя в базе данных"""
    db.add(user)
    await db.commit()
    await db.refresh(user)


async def update_user_in_db(db: AsyncSession, user: User) -> None:
    """Обновляет пользователя в базе данных"""
    db.add(user)
    await db.commit()
    await db.refresh(user)


async def delete_user_from_db(db: AsyncSession, id: int) -> bool:
    """Удаляет пользователя, связанные записи удаляются каскадом"""
    result = await db.execute(delete(User).where(User.id == id))
    await db.commit()
    return result.rowcount > 0
