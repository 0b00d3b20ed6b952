"""Tests for bearer authentication, the error envelope and app-level endpoints."""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

from jose import jwt

from kapsa.config import get_settings
from kapsa.services import inference_client

settings = get_settings()


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_cors_preflight_allows_any_origin(client):
    response = await client.options(
        "/ai-chat",
        headers={
            "Origin": "https://app.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "authorization, content-type",
        },
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"


async def test_missing_authorization_header(client):
    response = await client.post("/ai-generate-flashcards", json={"courseId": str(uuid.uuid4())})
    assert response.status_code == 401
    assert response.json() == {"error": "No authorization header"}


async def test_auth_is_checked_before_body_validation(client):
    response = await client.post("/ai-generate-flashcards", json={"courseId": "not-a-uuid"})
    assert response.status_code == 401


async def test_malformed_token(client):
    response = await client.post(
        "/ai-generate-flashcards",
        json={"courseId": str(uuid.uuid4())},
        headers={"Authorization": "Bearer not.a.jwt"},
    )
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


async def test_expired_token(client, user, token_factory):
    token = token_factory(user.id, expires_in_minutes=-5)
    response = await client.post(
        "/ai-generate-flashcards",
        json={"courseId": str(uuid.uuid4())},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 401


async def test_wrong_audience(client, user):
    token = jwt.encode(
        {
            "sub": str(user.id),
            "aud": "service_role",
            "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
        },
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
    response = await client.post(
        "/ai-generate-flashcards",
        json={"courseId": str(uuid.uuid4())},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 401


async def test_token_for_unknown_user(client, token_factory):
    token = token_factory(uuid.uuid4())
    response = await client.post(
        "/ai-generate-flashcards",
        json={"courseId": str(uuid.uuid4())},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 401


async def test_invalid_json_body(client, auth_headers):
    response = await client.post(
        "/ai-chat",
        content="{not json",
        headers={**auth_headers, "Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid JSON body"}


async def test_unexpected_errors_are_sanitized(client, auth_headers, course, chat_session):
    failure = AsyncMock(side_effect=RuntimeError("connection to postgres://admin:hunter2@db failed"))
    with patch.object(inference_client, "chat", new=failure):
        response = await client.post(
            "/ai-chat",
            json={"courseId": str(course.id), "sessionId": str(chat_session.id), "message": "Hi"},
            headers={**auth_headers, "Origin": "https://app.example.com"},
        )

    assert response.status_code == 500
    assert response.json() == {"error": "An internal error occurred. Please try again."}
    assert "hunter2" not in response.text
    assert response.headers["access-control-allow-origin"] == "*"
