import pytest
import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap.core.security import create_access_token, create_password_reset_token
from tests.utils.test_utils import random_email, random_string, create_test_user, auth_headers, TEST_PASSWORD


@pytest.mark.asyncio
async def test_register_user(async_client: httpx.AsyncClient):
    """Тестирует регистрацию нового пользователя."""
    user_data = {
        "name": "Test User",
        "username": random_string(),
        "email": random_email().upper(),
        "password": "Secret123",
    }

    response = await async_client.post("/api/auth/register", json=user_data)
    assert response.status_code == 201

    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Registration successful"
    assert body["data"]["token"]
    user = body["data"]["user"]
    assert user["email"] == user_data["email"].lower()
    assert user["username"] == user_data["username"]
    assert user["avatar_url"].startswith("https://ui-avatars.com/api/")
    assert "password" not in user and "password_hash" not in user


@pytest.mark.asyncio
async def test_register_duplicate_email(async_client: httpx.AsyncClient, db_session: AsyncSession):
    user = await create_test_user(db_session)

    response = await async_client.post(
        "/api/auth/register",
        json={"name": "Other", "email": user.email, "password": "Secret123"},
    )

    assert response.status_code == 409
    assert response.json() == {"success": False, "message": "Email already registered"}


@pytest.mark.asyncio
async def test_register_weak_password(async_client: httpx.AsyncClient):
    response = await async_client.post(
        "/api/auth/register",
        json={"name": "Weak", "email": random_email(), "password": "alllowercase1"},
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    assert body["errors"][0]["field"] == "password"


@pytest.mark.asyncio
async def test_login_user(async_client: httpx.AsyncClient, db_session: AsyncSession):
    """Тестирует авторизацию пользователя."""
    user = await create_test_user(db_session)

    response = await async_client.post("/api/auth/login", json={"email": user.email, "password": TEST_PASSWORD})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"]["id"] == user.id
    assert data["token"]

    me = await async_client.get("/api/users/profile", headers={"Authorization": f"Bearer {data['token']}"})
    assert me.status_code == 200
    assert me.json()["data"]["email"] == user.email


@pytest.mark.asyncio
async def test_login_incorrect_password(async_client: httpx.AsyncClient, db_session: AsyncSession):
    """Тестирует авторизацию с неправильным паролем."""
    user = await create_test_user(db_session)

    response = await async_client.post("/api/auth/login", json={"email": user.email, "password": "Wrongpass1"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_login_inactive_user(async_client: httpx.AsyncClient, db_session: AsyncSession):
    user = await create_test_user(db_session, is_active=False)

    response = await async_client.post("/api/auth/login", json={"email": user.email, "password": TEST_PASSWORD})

    assert response.status_code == 400
    assert response.json()["message"] == "Inactive user"


@pytest.mark.asyncio
async def test_protected_route_requires_token(async_client: httpx.AsyncClient):
    response = await async_client.get("/api/users/profile")

    assert response.status_code == 401
    assert response.json()["message"] == "Access denied. No token provided."


@pytest.mark.asyncio
async def test_invalid_and_reset_tokens_rejected(async_client: httpx.AsyncClient, db_session: AsyncSession):
    user = await create_test_user(db_session)

    garbage = await async_client.get("/api/users/profile", headers={"Authorization": "Bearer not-a-jwt"})
    assert garbage.status_code == 401
    assert garbage.json()["message"] == "Invalid token"

    reset_token = create_password_reset_token(user.id)
    reset = await async_client.get("/api/users/profile", headers={"Authorization": f"Bearer {reset_token}"})
    assert reset.status_code == 401


@pytest.mark.asyncio
async def test_expired_token(async_client: httpx.AsyncClient, db_session: AsyncSession):
    from datetime import timedelta

    user = await create_test_user(db_session)
    token = create_access_token(user.id, expires_delta=timedelta(minutes=-1))

    response = await async_client.get("/api/users/profile", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["message"] == "Token expired"


@pytest.mark.asyncio
async def test_forgot_password_same_answer(async_client: httpx.AsyncClient, db_session: AsyncSession, mock_email):
    user = await create_test_user(db_session)

    known = await async_client.post("/api/auth/forgot-password", json={"email": user.email})
    unknown = await async_client.post("/api/auth/forgot-password", json={"email": random_email()})

    assert known.status_code == unknown.status_code == 200
    assert known.json()["message"] == unknown.json()["message"] == "If email exists, reset instructions sent"
    assert mock_email.call_count == 1
    assert mock_email.call_args.kwargs["user_email"] == user.email


@pytest.mark.asyncio
async def test_reset_password(async_client: httpx.AsyncClient, db_session: AsyncSession):
    user = await create_test_user(db_session)
    token = create_password_reset_token(user.id)

    response = await async_client.post("/api/auth/reset-password", json={"token": token, "password": "Newpass123"})
    assert response.status_code == 200
    assert response.json()["message"] == "Password reset successful"

    old = await async_client.post("/api/auth/login", json={"email": user.email, "password": TEST_PASSWORD})
    new = await async_client.post("/api/auth/login", json={"email": user.email, "password": "Newpass123"})
    assert old.status_code == 401
    assert new.status_code == 200


@pytest.mark.asyncio
async def test_reset_password_rejects_access_token(async_client: httpx.AsyncClient, db_session: AsyncSession):
    user = await create_test_user(db_session)

    response = await async_client.post(
        "/api/auth/reset-password",
        json={"token": create_access_token(user.id), "password": "Newpass123"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid or expired reset token"


@pytest.mark.asyncio
async def test_change_password(async_client: httpx.AsyncClient, db_session: AsyncSession):
    user = await create_test_user(db_session)
    headers = auth_headers(user)

    wrong = await async_client.post(
        "/api/auth/change-password",
        json={"current_password": "Wrongpass1", "new_password": "Another123"},
        headers=headers,
    )
    assert wrong.status_code == 400
    assert wrong.json()["message"] == "Current password is incorrect"

    response = await async_client.post(
        "/api/auth/change-password",
        json={"current_password": TEST_PASSWORD, "new_password": "Another123"},
        headers=headers,
    )
    assert response.status_code == 200

    login = await async_client.post("/api/auth/login", json={"email": user.email, "password": "Another123"})
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_logout(async_client: httpx.AsyncClient, db_session: AsyncSession):
    user = await create_test_user(db_session)

    response = await async_client.post("/api/auth/logout", headers=auth_headers(user))

    assert response.status_code == 200
    assert response.json()["message"] == "Logout successful"
