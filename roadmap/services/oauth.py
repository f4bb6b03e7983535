import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

import roadmap.repo.user as user_repo
from roadmap.core.config import settings
from roadmap.core.exceptions import AuthenticationError, NotFoundError
from roadmap.models.user import User
from roadmap.utils.text import default_avatar_url

logger = logging.getLogger(__name__)

PROVIDERS: Dict[str, Dict[str, str]] = {
    "google": {
        "authorize_url": "https://accounts.google.com/o/oauth2/v2/auth",
        "token_url": "https://oauth2.googleapis.com/token",
        "userinfo_url": "https://www.googleapis.com/oauth2/v3/userinfo",
        "scope": "openid profile email",
    },
    "github": {
        "authorize_url": "https://github.com/login/oauth/authorize",
        "token_url": "https://github.com/login/oauth/access_token",
        "userinfo_url": "https://api.github.com/user",
        "emails_url": "https://api.github.com/user/emails",
        "scope": "user:email",
    },
}


def _credentials(provider: str) -> Dict[str, str]:
    if provider == "google":
        return {
            "client_id": settings.GOOGLE_CLIENT_ID,
            "client_secret": settings.GOOGLE_CLIENT_SECRET,
            "redirect_uri": settings.GOOGLE_CALLBACK_URL,
        }
    return {
        "client_id": settings.GITHUB_CLIENT_ID,
        "client_secret": settings.GITHUB_CLIENT_SECRET,
        "redirect_uri": settings.GITHUB_CALLBACK_URL,
    }


def get_provider(provider: str) -> Dict[str, str]:
    if provider not in PROVIDERS:
        raise NotFoundError("OAuth provider not supported")
    return PROVIDERS[provider]


def build_authorize_url(provider: str) -> str:
    """Адрес страницы авторизации провайдера"""
    config = get_provider(provider)
    credentials = _credentials(provider)
    params = {
        "client_id": credentials["client_id"],
        "redirect_uri": credentials["redirect_uri"],
        "scope": config["scope"],
        "response_type": "code",
    }
    return f"{config['authorize_url']}?{urlencode(params)}"


async def fetch_profile(provider: str, code: str) -> Dict[str, Any]:
    """
    Обменивает code на access token и загружает профиль.
    Возвращает нормализованный профиль: id, email, name, username, avatar_url.
    """
    config = get_provider(provider)
    credentials = _credentials(provider)

    async with httpx.AsyncClient(timeout=15) as client:
        token_response = await client.post(
            config["token_url"],
            data={**credentials, "code": code, "grant_type": "authorization_code"},
            headers={"Accept": "application/json"},
        )
        token_response.raise_for_status()
        access_token = token_response.json().get("access_token")
        if not access_token:
            raise AuthenticationError("OAuth authentication failed")

        auth_headers = {"Authorization": f"Bearer {access_token}", "Accept": "application/json"}
        profile_response = await client.get(config["userinfo_url"], headers=auth_headers)
        profile_response.raise_for_status()
        data = profile_response.json()

        if provider == "google":
            return {
                "id": str(data["sub"]),
                "email": data.get("email"),
                "name": data.get("name") or data.get("email"),
                "username": None,
                "avatar_url": data.get("picture"),
            }

        email = data.get("email")
        if not email:
            # Публичного email нет, пробуем получить основной адрес
            emails_response = await client.get(config["emails_url"], headers=auth_headers)
            if emails_response.status_code == 200:
                primary = [e for e in emails_response.json() if e.get("primary") and e.get("verified")]
                if primary:
                    email = primary[0]["email"]

        return {
            "id": str(data["id"]),
            "email": email,
            "name": data.get("name") or data.get("login"),
            "username": data.get("login"),
            "avatar_url": data.get("avatar_url"),
        }


async def link_or_create_user(db: AsyncSession, provider: str, profile: Dict[str, Any]) -> User:
    """
    Находит пользователя по id провайдера, затем по email.
    Найденному по email аккаунту привязывается id провайдера, иначе создается новый пользователь.
    """
    get_provider(provider)
    provider_field = f"{provider}_id"

    email: Optional[str] = profile.get("email")
    if not email and provider == "github" and profile.get("username"):
        email = f"{profile['username']}@users.noreply.github.com"
    if not email:
        raise AuthenticationError("OAuth authentication failed")
    email = email.lower()

    user = await user_repo.get_user_by_provider_id(db, provider, profile["id"])
    if user:
        return user

    user = await user_repo.get_user_by_email(db, email)
    if user:
        if not getattr(user, provider_field):
            setattr(user, provider_field, profile["id"])
            await user_repo.update_user_in_db(db, user)
            logger.info(f"Linked {provider} account to user {user.id}")
        return user

    username = profile.get("username")
    if username and await user_repo.get_user_by_username(db, username):
        username = None

    name = profile.get("name") or email.split("@")[0]
    user = User(
        name=name,
        email=email,
        username=username,
        avatar_url=profile.get("avatar_url") or default_avatar_url(name),
        **{provider_field: profile["id"]},
    )
    await user_repo.create_user_in_db(db, user)
    logger.info(f"Created user {user.id} from {provider} login")
    return user
