"""Auth and security tests that need no database."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from monev.config import settings
from monev.core.exceptions import ConflictError, ForbiddenError, NotFoundError, UnauthorizedError
from monev.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)
from monev.schemas.user import UserRegister
from monev.services.auth_service import token_pair


def test_password_hashing():
    hashed = hash_password("rahasia123")

    assert hashed != "rahasia123"
    assert verify_password("rahasia123", hashed)
    assert not verify_password("salah12345", hashed)
    assert not verify_password("rahasia123", "not-a-bcrypt-hash")


def test_tokens_carry_subject_and_type():
    access = decode_token(create_access_token(7))
    refresh = decode_token(create_refresh_token(7))

    assert access["sub"] == "7"
    assert access["type"] == "access"
    assert refresh["type"] == "refresh"


def test_tampered_token_rejected():
    token = create_access_token(7)
    with pytest.raises(UnauthorizedError):
        decode_token(token[:-4] + "abcd")


async def test_missing_token_is_unauthorized(client):
    response = await client.get("/api/v1/auth/me")
    assert response.status_code == 401


async def test_refresh_token_cannot_authenticate(client):
    token = create_refresh_token(1)

    response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid token type"


async def test_register_rejects_weak_password(client):
    response = await client.post(
        "/api/v1/auth/register",
        json={"email": "budi@example.com", "password": "short", "full_name": "Budi"},
    )
    assert response.status_code == 422


async def test_me_returns_current_user(auth_client, user):
    user.created_at = datetime(2025, 1, 1, tzinfo=timezone.utc)

    response = await auth_client.get("/api/v1/auth/me")

    assert response.status_code == 200
    assert response.json()["email"] == "budi@example.com"


def test_register_normalizes_input():
    data = UserRegister(email=" Budi@Example.com ", password="rahasia123", full_name="  Budi   Santoso ")

    assert data.email == "budi@example.com"
    assert data.full_name == "Budi Santoso"


def test_password_needs_letters_and_digits():
    with pytest.raises(PydanticValidationError):
        UserRegister(email="budi@example.com", password="12345678", full_name="Budi")


def test_token_pair_reports_access_lifetime():
    tokens = token_pair(5)

    assert tokens.expires_in == settings.jwt_access_token_expire_minutes * 60
    assert decode_token(tokens.refresh_token)["sub"] == "5"


def test_errors_carry_status_and_detail():
    assert NotFoundError("Goal").status_code == 404
    assert NotFoundError("Goal").detail == "Goal not found"
    assert ConflictError().detail == "Resource is still in use"
    assert UnauthorizedError().headers == {"WWW-Authenticate": "Bearer"}
    assert ForbiddenError("nope").detail == "nope"
