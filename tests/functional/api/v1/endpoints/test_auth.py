# tests/functional/api/v1/endpoints/test_auth.py
import pytest
from datetime import datetime, timedelta, timezone
from fastapi import status
from httpx import AsyncClient
from pytest_mock import MockerFixture

from dailypath.core.config import settings
from dailypath.core.security import auth_rate_limiter
from dailypath.models.auth import AuthSession, InvitationInDB

from tests.factories import DEPARTMENT_ID, EMPLOYEE_ID, OTHER_USER_ID, make_user

pytestmark = pytest.mark.asyncio

API = settings.API_PREFIX


def _session() -> AuthSession:
    return AuthSession(access_token="provider-access-token", expires_in=3600, user_id=EMPLOYEE_ID, email="ewa@example.com")


def _invitation(**overrides) -> InvitationInDB:
    data = {
        "_id": "99999999-9999-4999-8999-999999999999",
        "email": "new.user@example.com",
        "token": "a" * 64,
        "app_role": "employee",
        "department_id": DEPARTMENT_ID,
        "expires_at": datetime.now(timezone.utc) + timedelta(days=3),
    }
    data.update(overrides)
    return InvitationInDB(**data)


# --- Login ---

async def test_login_success_sets_session_cookie(client: AsyncClient, mocker: MockerFixture):
    mocker.patch("dailypath.services.auth.auth_provider.sign_in_with_password", return_value=_session())
    mocker.patch("dailypath.services.auth.crud.get_user_by_email", return_value=make_user(email="ewa@example.com"))

    response = await client.post(f"{API}/auth/login", json={"email": "ewa@example.com", "password": "secret1"})

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["success"] is True
    assert body["user"]["id"] == EMPLOYEE_ID
    set_cookie = response.headers["set-cookie"]
    assert settings.SESSION_COOKIE_NAME in set_cookie
    assert "HttpOnly" in set_cookie


async def test_login_with_wrong_password_is_401(client: AsyncClient, mocker: MockerFixture):
    mocker.patch("dailypath.services.auth.auth_provider.sign_in_with_password", return_value=None)

    response = await client.post(f"{API}/auth/login", json={"email": "ewa@example.com", "password": "wrong-pass"})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["message"] == "Invalid email or password"


async def test_login_without_profile_is_500(client: AsyncClient, mocker: MockerFixture):
    mocker.patch("dailypath.services.auth.auth_provider.sign_in_with_password", return_value=_session())
    mocker.patch("dailypath.services.auth.crud.get_user_by_email", return_value=None)

    response = await client.post(f"{API}/auth/login", json={"email": "ewa@example.com", "password": "secret1"})

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR


async def test_login_with_mismatched_profile_id_sets_no_cookie(client: AsyncClient, mocker: MockerFixture):
    mocker.patch("dailypath.services.auth.auth_provider.sign_in_with_password", return_value=_session())
    mocker.patch(
        "dailypath.services.auth.crud.get_user_by_email",
        return_value=make_user(OTHER_USER_ID, email="ewa@example.com"),
    )

    response = await client.post(f"{API}/auth/login", json={"email": "ewa@example.com", "password": "secret1"})

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert "set-cookie" not in response.headers


async def test_login_validates_password_length(client: AsyncClient):
    response = await client.post(f"{API}/auth/login", json={"email": "ewa@example.com", "password": "123"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "Invalid request body"
    assert "password" in response.json()["details"]


async def test_login_is_rate_limited_per_client_ip(client: AsyncClient, mocker: MockerFixture):
    mocker.patch("dailypath.services.auth.auth_provider.sign_in_with_password", return_value=None)
    payload = {"email": "ewa@example.com", "password": "wrong-pass"}
    headers = {"X-Forwarded-For": "203.0.113.10"}

    for _ in range(auth_rate_limiter.max_requests):
        response = await client.post(f"{API}/auth/login", json=payload, headers=headers)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    response = await client.post(f"{API}/auth/login", json=payload, headers=headers)
    assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
    assert response.json()["error"] == "Too many requests"

    # A different client is not affected
    response = await client.post(f"{API}/auth/login", json=payload, headers={"X-Forwarded-For": "198.51.100.20"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


# --- Register ---

async def test_register_requires_invitation_token(client: AsyncClient):
    response = await client.post(
        f"{API}/auth/register",
        json={"email": "new.user@example.com", "password": "secret1", "full_name": "New User"},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "token" in response.json()["details"]


async def test_register_from_invitation(client: AsyncClient, mocker: MockerFixture):
    invitation = _invitation()
    new_user_id = "55555555-5555-4555-8555-555555555555"
    mocker.patch("dailypath.services.invitations.crud.get_invitation_by_token", return_value=invitation)
    mocker.patch("dailypath.services.auth.crud.get_user_by_email", return_value=None)
    mocker.patch("dailypath.services.auth.auth_provider.admin_create_user", return_value=new_user_id)
    mock_create_user = mocker.patch(
        "dailypath.services.auth.crud.create_user",
        return_value=make_user(new_user_id, email="new.user@example.com", full_name="New User"),
    )
    mock_membership = mocker.patch("dailypath.services.auth.crud.create_membership")
    mock_accept = mocker.patch("dailypath.services.auth.crud.mark_invitation_accepted", return_value=True)

    response = await client.post(
        f"{API}/auth/register",
        json={"email": "new.user@example.com", "password": "secret1", "full_name": "New User", "token": invitation.token},
    )

    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["user"]["id"] == new_user_id
    assert mock_create_user.call_args.args[1]["app_role"] == "employee"
    assert mock_membership.call_args.args[:2] == (new_user_id, DEPARTMENT_ID)
    mock_accept.assert_awaited_once_with(invitation.id)


async def test_register_with_expired_invitation_is_400(client: AsyncClient, mocker: MockerFixture):
    invitation = _invitation(expires_at=datetime.now(timezone.utc) - timedelta(minutes=1))
    mocker.patch("dailypath.services.invitations.crud.get_invitation_by_token", return_value=invitation)

    response = await client.post(
        f"{API}/auth/register",
        json={"email": "new.user@example.com", "password": "secret1", "full_name": "New User", "token": invitation.token},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Invitation has expired"


async def test_register_removes_provider_account_when_profile_insert_fails(client: AsyncClient, mocker: MockerFixture):
    from dailypath.core.errors import DatabaseError

    invitation = _invitation()
    mocker.patch("dailypath.services.invitations.crud.get_invitation_by_token", return_value=invitation)
    mocker.patch("dailypath.services.auth.crud.get_user_by_email", return_value=None)
    mocker.patch("dailypath.services.auth.auth_provider.admin_create_user", return_value="provider-id")
    mocker.patch("dailypath.services.auth.crud.create_user", side_effect=DatabaseError())
    mock_delete = mocker.patch("dailypath.services.auth.auth_provider.admin_delete_user")

    response = await client.post(
        f"{API}/auth/register",
        json={"email": "new.user@example.com", "password": "secret1", "full_name": "New User", "token": invitation.token},
    )

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json()["error"] == "Database error"
    mock_delete.assert_awaited_once_with("provider-id")


# --- Password reset and logout ---

async def test_request_password_reset_never_reveals_failures(client: AsyncClient, mocker: MockerFixture):
    from dailypath.core.errors import AuthProviderError

    mocker.patch("dailypath.services.auth.auth_provider.send_password_recovery", side_effect=AuthProviderError())

    response = await client.post(f"{API}/auth/request-password-reset", json={"email": "nobody@example.com"})

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["success"] is True


async def test_reset_password_with_invalid_token_is_400(client: AsyncClient, mocker: MockerFixture):
    mocker.patch("dailypath.services.auth.auth_provider.verify_recovery_token", return_value=None)

    response = await client.post(f"{API}/auth/reset-password", json={"token": "expired", "password": "secret1"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST


async def test_reset_password_updates_with_recovery_session(client: AsyncClient, mocker: MockerFixture):
    mocker.patch("dailypath.services.auth.auth_provider.verify_recovery_token", return_value=_session())
    mock_update = mocker.patch("dailypath.services.auth.auth_provider.update_password")

    response = await client.post(f"{API}/auth/reset-password", json={"token": "valid", "password": "new-secret"})

    assert response.status_code == status.HTTP_200_OK
    mock_update.assert_awaited_once_with("provider-access-token", "new-secret")


async def test_logout_clears_cookie(client: AsyncClient, mocker: MockerFixture):
    mock_sign_out = mocker.patch("dailypath.services.auth.auth_provider.sign_out")

    response = await client.post(f"{API}/auth/logout", headers={"Authorization": "Bearer some-token"})

    assert response.status_code == status.HTTP_200_OK
    mock_sign_out.assert_awaited_once_with("some-token")
    assert settings.SESSION_COOKIE_NAME in response.headers["set-cookie"]


# --- Invitations ---

async def test_invite_requires_manager_or_admin(client: AsyncClient, app_with_mock_auth):
    response = await client.post(f"{API}/auth/invite", json={"email": "x@example.com", "app_role": "employee"})

    assert response.status_code == status.HTTP_403_FORBIDDEN


async def test_invite_as_manager(client: AsyncClient, mocker: MockerFixture, login_as, manager):
    login_as(manager)
    mocker.patch("dailypath.services.invitations.crud.get_user_by_email", return_value=None)
    mocker.patch("dailypath.services.invitations.crud.get_pending_invitation", return_value=None)
    mocker.patch(
        "dailypath.services.invitations.crud.create_invitation",
        side_effect=lambda data: InvitationInDB(_id="99999999-9999-4999-8999-999999999999", **data),
    )

    response = await client.post(f"{API}/auth/invite", json={"email": "New@Example.com", "app_role": "employee"})

    assert response.status_code == status.HTTP_201_CREATED
    invitation = response.json()["invitation"]
    assert invitation["email"] == "new@example.com"
    if not settings.DEBUG:
        assert "token" not in invitation
