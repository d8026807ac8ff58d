import jwt
import pytest
from datetime import datetime, timedelta, timezone
from uuid import uuid4
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient
from starlette.requests import Request

from mengaji.backend.main import app
from mengaji.backend.config.config import settings
from mengaji.backend.api.auth import create_access_token
from mengaji.backend.api.dependencies import get_redis_client, get_user_service
from mengaji.backend.api.utilities.limiter import get_limiter_key
from mengaji.backend.models.db_models import Role
from mengaji.backend.models.redis_models import SessionUser, UserSessionRedis
from mengaji.backend.services.errors import AuthenticationError


@pytest.fixture
def redis_client():
    client = AsyncMock()
    client.get_user_session.return_value = None
    return client


@pytest.fixture
def user_service():
    return AsyncMock()


@pytest.fixture
def client(redis_client, user_service):
    app.dependency_overrides[get_redis_client] = lambda: redis_client
    app.dependency_overrides[get_user_service] = lambda: user_service
    yield TestClient(app)
    app.dependency_overrides.clear()


def live_session(user) -> UserSessionRedis:
    now = datetime.now(timezone.utc)
    return UserSessionRedis(
        user_data=SessionUser.model_validate(user.model_dump()),
        session_id=uuid4(),
        session_start_time=now,
        session_end_time=now + timedelta(hours=1),
    )


def bearer(user_id: int) -> dict:
    token = create_access_token({"user_id": user_id}, timedelta(minutes=5))
    return {"Authorization": f"Bearer {token}"}


def test_login_success(client, redis_client, user_service, factory):
    user_service.authenticate.return_value = factory.user(id=7, email="ustaz@mengaji.my", role=Role.CENTER_TEACHER)

    response = client.post("/api/v1/auth/login", json={"email": "ustaz@mengaji.my", "password": "bismillah123"})

    assert response.status_code == 200
    data = response.json()
    assert data["user"]["id"] == 7
    assert data["user"]["role"] == "pengajar_pusat"
    assert "password_hash" not in data["user"]
    payload = jwt.decode(data["token"]["access_token"], settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    assert payload["user_id"] == 7

    saved_session = redis_client.save_user_session.await_args.args[0]
    assert saved_session.user_data.id == 7
    assert redis_client.save_user_session.await_args.kwargs["ttl"] == settings.USER_SESSION_TTL_SECONDS


def test_login_wrong_credentials(client, redis_client, user_service):
    user_service.authenticate.side_effect = AuthenticationError("Invalid email or password.")

    response = client.post("/api/v1/auth/login", json={"email": "ustaz@mengaji.my", "password": "wrong"})

    assert response.status_code == 401
    assert response.json()["error"]["kind"] == "Unauthorized"
    redis_client.save_user_session.assert_not_awaited()


def test_token_endpoint_uses_form_username_as_email(client, user_service, factory):
    user_service.authenticate.return_value = factory.user(id=7)

    response = client.post("/api/v1/auth/token", data={"username": "admin@mengaji.my", "password": "bismillah123"})

    assert response.status_code == 200
    assert response.json()["token_type"] == "bearer"
    user_service.authenticate.assert_awaited_once_with("admin@mengaji.my", "bismillah123")


def test_me_requires_token(client):
    assert client.get("/api/v1/auth/me").status_code == 401


def test_me_rejects_token_without_session(client, redis_client):
    response = client.get("/api/v1/auth/me", headers=bearer(7))

    assert response.status_code == 401
    redis_client.get_user_session.assert_awaited_once_with(7)


def test_me_rejects_forged_token(client):
    forged = jwt.encode({"user_id": 7}, "another-secret-key-that-is-long-enough", algorithm="HS256")
    response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {forged}"})
    assert response.status_code == 401


def test_me_with_live_session(client, redis_client, user_service, factory):
    user = factory.user(id=7)
    redis_client.get_user_session.return_value = live_session(user)
    user_service.get_user.return_value = user

    response = client.get("/api/v1/auth/me", headers=bearer(7))

    assert response.status_code == 200
    assert response.json()["email"] == user.email


def test_logout_deletes_session(client, redis_client, factory):
    redis_client.get_user_session.return_value = live_session(factory.user(id=7))

    response = client.post("/api/v1/auth/logout", headers=bearer(7))

    assert response.status_code == 204
    redis_client.delete_user_session.assert_awaited_once_with(7)


def _request(headers: dict) -> Request:
    scope = {
        "type": "http", "method": "GET", "path": "/", "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "client": ("10.0.0.5", 5000),
    }
    return Request(scope)


def test_limiter_key_uses_user_id_from_token():
    assert get_limiter_key(_request(bearer(42))) == "user:42"


def test_limiter_key_falls_back_to_ip():
    assert get_limiter_key(_request({})) == "10.0.0.5"
    assert get_limiter_key(_request({"Authorization": "Bearer not-a-jwt"})) == "10.0.0.5"
