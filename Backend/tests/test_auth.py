import uuid
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from umamii.config import settings
from umamii.models.user import User
from umamii.services.auth_service import (
    decode_access_token,
    hash_password,
    issue_tokens,
)


@pytest.fixture
async def email_user(make_user) -> User:
    """Create a user with email/password auth."""
    return await make_user(
        "email_user",
        email="emailuser@example.com",
        password_hash=hash_password("TestPass123!"),
    )


def test_issue_tokens():
    user_id = uuid.uuid4()
    tokens = issue_tokens(user_id)
    assert "access_token" in tokens
    assert "refresh_token" in tokens
    assert tokens["token_type"] == "bearer"
    assert tokens["expires_in"] == 3600


def test_decode_access_token_roundtrip():
    user_id = uuid.uuid4()
    tokens = issue_tokens(user_id)
    assert decode_access_token(tokens["access_token"]) == user_id


def test_decode_rejects_refresh_token():
    tokens = issue_tokens(uuid.uuid4())
    with pytest.raises(ValueError, match="access"):
        decode_access_token(tokens["refresh_token"])


def test_decode_rejects_expired_token():
    payload = {
        "sub": str(uuid.uuid4()),
        "type": "access",
        "exp": datetime.now(timezone.utc) - timedelta(minutes=1),
    }
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    with pytest.raises(ValueError):
        decode_access_token(token)


@pytest.mark.asyncio
async def test_register_new_user(anon_client: AsyncClient):
    response = await anon_client.post(
        "/auth/register",
        json={
            "email": "newuser@example.com",
            "password": "SecurePass123!",
            "name": "New User",
            "username": "New_User",
        },
    )
    assert response.status_code == 200
    data = response.json()
    assert "access_token" in data
    assert data["token_type"] == "bearer"

    me = await anon_client.get(
        "/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"}
    )
    assert me.status_code == 200
    assert me.json()["username"] == "new_user"
    assert me.json()["friends_count"] == 0


@pytest.mark.asyncio
async def test_register_duplicate_email(anon_client: AsyncClient, email_user):
    response = await anon_client.post(
        "/auth/register",
        json={
            "email": "emailuser@example.com",
            "password": "AnotherPass123!",
            "name": "Someone",
            "username": "someone_else",
        },
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_register_duplicate_username(anon_client: AsyncClient, email_user):
    response = await anon_client.post(
        "/auth/register",
        json={
            "email": "other@example.com",
            "password": "AnotherPass123!",
            "name": "Someone",
            "username": "email_user",
        },
    )
    assert response.status_code == 409
    assert "taken" in response.json()["detail"].lower()


@pytest.mark.asyncio
async def test_register_invalid_username(anon_client: AsyncClient):
    response = await anon_client.post(
        "/auth/register",
        json={
            "email": "bad@example.com",
            "password": "SecurePass123!",
            "name": "Bad",
            "username": "no spaces!",
        },
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_login_with_email(anon_client: AsyncClient, email_user: User):
    response = await anon_client.post(
        "/auth/login/email",
        json={"email": "emailuser@example.com", "password": "TestPass123!"},
    )
    assert response.status_code == 200
    assert "access_token" in response.json()


@pytest.mark.asyncio
async def test_login_wrong_password(anon_client: AsyncClient, email_user: User):
    response = await anon_client.post(
        "/auth/login/email",
        json={"email": "emailuser@example.com", "password": "WrongPass123!"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_refresh_rotates_token(anon_client: AsyncClient, fake_redis):
    tokens = issue_tokens(uuid.uuid4())

    response = await anon_client.post(
        "/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
    )
    assert response.status_code == 200

    # Old refresh token is revoked after one use
    response = await anon_client.post(
        "/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
    )
    assert response.status_code == 401
    assert "revoked" in response.json()["detail"].lower()


@pytest.mark.asyncio
async def test_me_requires_token(anon_client: AsyncClient):
    response = await anon_client.get("/auth/me")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_me_rejects_garbage_token(anon_client: AsyncClient):
    response = await anon_client.get(
        "/auth/me", headers={"Authorization": "Bearer not-a-token"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_me_rejects_deleted_user(anon_client: AsyncClient):
    tokens = issue_tokens(uuid.uuid4())
    response = await anon_client.get(
        "/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_update_profile(client, db_session: AsyncSession, test_user):
    response = await client.patch(
        "/auth/me",
        json={
            "name": "Renamed",
            "username": "Renamed_User",
            "bio": "Dosa hunter",
            "preferences": ["south_indian", "street_food", "south_indian"],
        },
    )
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Renamed"
    assert data["username"] == "renamed_user"
    assert data["bio"] == "Dosa hunter"
    assert data["preferences"] == ["south_indian", "street_food"]


@pytest.mark.asyncio
async def test_update_profile_username_taken(client, second_user):
    response = await client.patch("/auth/me", json={"username": "friend_user"})
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_update_profile_null_clears_optional_fields(client):
    await client.patch(
        "/auth/me",
        json={"profile_picture_url": "https://cdn.example.com/me.png", "preferences": ["vegan"]},
    )

    response = await client.patch(
        "/auth/me",
        json={"bio": None, "profile_picture_url": None, "preferences": None},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["bio"] is None
    assert data["profile_picture_url"] is None
    assert data["preferences"] == []
    assert data["name"] == "Test User"


@pytest.mark.asyncio
async def test_update_profile_omitted_fields_untouched(client):
    response = await client.patch("/auth/me", json={"name": "Only Name"})
    assert response.status_code == 200
    assert response.json()["bio"] == "Always hungry"


@pytest.mark.asyncio
async def test_update_profile_cannot_clear_name(client):
    response = await client.patch("/auth/me", json={"name": None})
    assert response.status_code == 400
