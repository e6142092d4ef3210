# tests/functional/api/v1/endpoints/test_users.py
import pytest
from fastapi import status
from httpx import AsyncClient
from pytest_mock import MockerFixture

from dailypath.core.config import settings
from dailypath.models.auth import AuthSession

from tests.factories import (
    ADMIN_ID,
    DEPARTMENT_ID,
    EMPLOYEE_ID,
    MANAGER_ID,
    OTHER_USER_ID,
    make_department,
    make_membership,
    make_user,
)

pytestmark = pytest.mark.asyncio

API = settings.API_PREFIX


# --- Public directory ---

async def test_list_users_without_auth(client: AsyncClient, mocker: MockerFixture, monkeypatch):
    monkeypatch.setattr(settings, "USERS_LIST_REQUIRES_AUTH", False)
    mock_get_all = mocker.patch(
        "dailypath.services.users.crud.get_all_users",
        return_value=[make_user(MANAGER_ID, "manager"), make_user(EMPLOYEE_ID, "employee")],
    )

    response = await client.get(f"{API}/users")

    assert response.status_code == status.HTTP_200_OK
    assert [u["id"] for u in response.json()] == [MANAGER_ID, EMPLOYEE_ID]
    assert set(response.json()[0]) == {"id", "email", "full_name", "app_role", "is_active"}
    assert mock_get_all.call_args.kwargs["sort"] == [("app_role", -1), ("email", 1)]


async def test_list_users_can_require_auth(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "USERS_LIST_REQUIRES_AUTH", True)

    response = await client.get(f"{API}/users")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED


# --- Profile ---

async def test_me_requires_authentication(client: AsyncClient):
    response = await client.get(f"{API}/users/me")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["error"] == "Unauthorized"


async def test_me_with_invalid_token_is_401(client: AsyncClient):
    response = await client.get(f"{API}/users/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED


async def test_me_returns_profile_with_active_department(client: AsyncClient, app_with_mock_auth):
    response = await client.get(f"{API}/users/me")

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["id"] == EMPLOYEE_ID
    assert body["active_department"] == {"id": DEPARTMENT_ID, "name": "Support"}


async def test_update_me(client: AsyncClient, app_with_mock_auth, mocker: MockerFixture):
    mock_update = mocker.patch(
        "dailypath.services.users.crud.update_user",
        return_value=make_user(EMPLOYEE_ID, timezone="Europe/Warsaw"),
    )

    response = await client.patch(f"{API}/users/me", json={"timezone": "Europe/Warsaw"})

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["timezone"] == "Europe/Warsaw"
    mock_update.assert_awaited_once_with(EMPLOYEE_ID, {"timezone": "Europe/Warsaw"})


async def test_change_password_with_wrong_current_password(client: AsyncClient, app_with_mock_auth, mocker: MockerFixture):
    mocker.patch("dailypath.services.users.auth_provider.sign_in_with_password", return_value=None)

    response = await client.post(
        f"{API}/users/change-password",
        json={"current_password": "wrong", "new_password": "a-new-password"},
    )

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["message"] == "Current password is incorrect"


async def test_change_password(client: AsyncClient, app_with_mock_auth, mocker: MockerFixture):
    session = AuthSession(access_token="fresh-token", user_id=EMPLOYEE_ID)
    mocker.patch("dailypath.services.users.auth_provider.sign_in_with_password", return_value=session)
    mock_update = mocker.patch("dailypath.services.users.auth_provider.update_password")

    response = await client.post(
        f"{API}/users/change-password",
        json={"current_password": "old-password", "new_password": "a-new-password"},
    )

    assert response.status_code == status.HTTP_200_OK
    mock_update.assert_awaited_once_with("fresh-token", "a-new-password")


# --- Admin ---

async def test_admin_routes_forbid_non_admins(client: AsyncClient, app_with_mock_auth):
    response = await client.get(f"{API}/admin/users")
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = await client.delete(f"{API}/admin/users/{OTHER_USER_ID}")
    assert response.status_code == status.HTTP_403_FORBIDDEN


async def test_admin_routes_require_authentication(client: AsyncClient):
    response = await client.delete(f"{API}/admin/users/{OTHER_USER_ID}")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED


async def test_admin_list_users_includes_active_department(client: AsyncClient, login_as, admin, mocker: MockerFixture):
    login_as(admin)
    mocker.patch(
        "dailypath.services.users.crud.get_all_users",
        return_value=[make_user(EMPLOYEE_ID), make_user(ADMIN_ID, "admin")],
    )
    mocker.patch(
        "dailypath.services.users.crud.get_active_memberships_for_users",
        return_value=[make_membership("m-1", EMPLOYEE_ID, DEPARTMENT_ID, "2020-01-01")],
    )
    mocker.patch("dailypath.services.users.crud.get_departments_by_ids", return_value=[make_department()])

    response = await client.get(f"{API}/admin/users")

    assert response.status_code == status.HTTP_200_OK
    by_id = {u["id"]: u for u in response.json()}
    assert by_id[EMPLOYEE_ID]["active_department"] == {"id": DEPARTMENT_ID, "name": "Support"}
    assert by_id[ADMIN_ID]["active_department"] is None


async def test_admin_create_user_duplicate_email_is_409(client: AsyncClient, login_as, admin, mocker: MockerFixture):
    from dailypath.core.errors import ConflictError

    login_as(admin)
    mocker.patch(
        "dailypath.services.users.auth_provider.admin_create_user",
        side_effect=ConflictError("User with this email already exists"),
    )

    response = await client.post(
        f"{API}/admin/users",
        json={"email": "dup@example.com", "full_name": "Dup", "password": "a-long-password", "app_role": "employee"},
    )

    assert response.status_code == status.HTTP_409_CONFLICT


async def test_admin_delete_user_closes_current_memberships_and_drops_same_day_ones(
    client: AsyncClient, login_as, admin, mocker: MockerFixture
):
    login_as(admin)
    mocker.patch("dailypath.services.users.today_iso", return_value="2026-03-10")
    mocker.patch("dailypath.services.users.crud.get_user_by_id", return_value=make_user(OTHER_USER_ID, "manager"))
    mocker.patch(
        "dailypath.services.users.crud.get_memberships_for_user",
        return_value=[
            make_membership("open", OTHER_USER_ID, valid_from="2025-06-01"),
            make_membership("ends-later", OTHER_USER_ID, valid_from="2025-01-01", valid_to="2026-12-31"),
            make_membership("closed", OTHER_USER_ID, valid_from="2024-01-01", valid_to="2025-01-01"),
            make_membership("future", OTHER_USER_ID, valid_from="2026-04-01"),
            make_membership("today", OTHER_USER_ID, valid_from="2026-03-10"),
        ],
    )
    mock_deactivate = mocker.patch("dailypath.services.users.crud.deactivate_user_records")

    response = await client.delete(f"{API}/admin/users/{OTHER_USER_ID}")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "User deleted successfully"}
    mock_deactivate.assert_awaited_once_with(
        OTHER_USER_ID, ["open", "ends-later"], "2026-03-10", drop_membership_ids=["today"]
    )


async def test_admin_delete_unknown_user_is_404(client: AsyncClient, login_as, admin, mocker: MockerFixture):
    login_as(admin)
    mocker.patch("dailypath.services.users.crud.get_user_by_id", return_value=None)

    response = await client.delete(f"{API}/admin/users/{OTHER_USER_ID}")

    assert response.status_code == status.HTTP_404_NOT_FOUND


async def test_admin_delete_with_invalid_id_is_400(client: AsyncClient, login_as, admin):
    login_as(admin)

    response = await client.delete(f"{API}/admin/users/not-a-uuid")

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "user_id" in response.json()["details"]
