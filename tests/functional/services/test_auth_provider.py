# tests/functional/services/test_auth_provider.py
import json

import httpx
import pytest
from pytest_httpx import HTTPXMock

from dailypath.core.config import settings
from dailypath.core.errors import AuthProviderError, ConflictError
from dailypath.services import auth_provider

pytestmark = pytest.mark.asyncio

AUTH_URL = "http://auth.test/auth/v1"


@pytest.fixture(autouse=True)
def provider_settings(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_URL", AUTH_URL + "/")
    monkeypatch.setattr(settings, "AUTH_ANON_KEY", "anon-key")
    monkeypatch.setattr(settings, "AUTH_SERVICE_ROLE_KEY", "service-key")


def _token_body(user_id: str = "user-1") -> dict:
    return {
        "access_token": "access",
        "refresh_token": "refresh",
        "expires_in": 3600,
        "user": {"id": user_id, "email": "ewa@example.com"},
    }


async def test_sign_in_with_password_returns_session(httpx_mock: HTTPXMock):
    httpx_mock.add_response(method="POST", url=f"{AUTH_URL}/token?grant_type=password", json=_token_body())

    session = await auth_provider.sign_in_with_password("ewa@example.com", "secret1")

    assert session.access_token == "access"
    assert session.user_id == "user-1"
    request = httpx_mock.get_request()
    assert request.headers["apikey"] == "anon-key"
    assert json.loads(request.content) == {"email": "ewa@example.com", "password": "secret1"}


async def test_sign_in_rejected_credentials_returns_none(httpx_mock: HTTPXMock):
    httpx_mock.add_response(
        method="POST",
        url=f"{AUTH_URL}/token?grant_type=password",
        status_code=400,
        json={"error_description": "Invalid login credentials"},
    )

    assert await auth_provider.sign_in_with_password("ewa@example.com", "wrong") is None


async def test_sign_in_provider_failure_raises(httpx_mock: HTTPXMock):
    httpx_mock.add_response(method="POST", url=f"{AUTH_URL}/token?grant_type=password", status_code=503)

    with pytest.raises(AuthProviderError):
        await auth_provider.sign_in_with_password("ewa@example.com", "secret1")


async def test_network_error_becomes_provider_error(httpx_mock: HTTPXMock):
    httpx_mock.add_exception(httpx.ConnectError("connection refused"))

    with pytest.raises(AuthProviderError):
        await auth_provider.sign_out("access")


async def test_missing_provider_url_raises(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_URL", None)

    with pytest.raises(AuthProviderError):
        await auth_provider.sign_out("access")


async def test_admin_create_user_uses_service_role(httpx_mock: HTTPXMock):
    httpx_mock.add_response(method="POST", url=f"{AUTH_URL}/admin/users", json={"id": "new-id"})

    user_id = await auth_provider.admin_create_user("new@example.com", "secret1", {"full_name": "New"})

    assert user_id == "new-id"
    request = httpx_mock.get_request()
    assert request.headers["authorization"] == "Bearer service-key"
    assert json.loads(request.content)["email_confirm"] is True


async def test_admin_create_existing_user_is_conflict(httpx_mock: HTTPXMock):
    httpx_mock.add_response(
        method="POST",
        url=f"{AUTH_URL}/admin/users",
        status_code=422,
        json={"msg": "A user with this email address has already been registered"},
    )

    with pytest.raises(ConflictError):
        await auth_provider.admin_create_user("dup@example.com", "secret1")


async def test_admin_delete_missing_user_is_ignored(httpx_mock: HTTPXMock):
    httpx_mock.add_response(method="DELETE", url=f"{AUTH_URL}/admin/users/gone", status_code=404)

    await auth_provider.admin_delete_user("gone")


async def test_admin_get_user(httpx_mock: HTTPXMock):
    httpx_mock.add_response(method="GET", url=f"{AUTH_URL}/admin/users/user-1", json={"id": "user-1"})
    httpx_mock.add_response(method="GET", url=f"{AUTH_URL}/admin/users/missing", status_code=404)

    assert await auth_provider.admin_get_user("user-1") == {"id": "user-1"}
    assert await auth_provider.admin_get_user("missing") is None


async def test_update_password_sends_user_token(httpx_mock: HTTPXMock):
    httpx_mock.add_response(method="PUT", url=f"{AUTH_URL}/user", json={"id": "user-1"})

    await auth_provider.update_password("user-token", "new-secret")

    assert httpx_mock.get_request().headers["authorization"] == "Bearer user-token"


async def test_invalid_recovery_token_returns_none(httpx_mock: HTTPXMock):
    httpx_mock.add_response(method="POST", url=f"{AUTH_URL}/verify", status_code=403, json={"msg": "Token has expired"})

    assert await auth_provider.verify_recovery_token("expired") is None
