# tests/functional/api/v1/endpoints/test_tasks.py
import pytest
from fastapi import status
from httpx import AsyncClient
from pytest_mock import MockerFixture

from dailypath.core.config import settings
from dailypath.models.task import MAX_TASK_IDS

from tests.factories import (
    DEPARTMENT_ID,
    EMPLOYEE_ID,
    MANAGER_ID,
    OTHER_USER_ID,
    TASK_ID,
    make_task,
    make_user,
    utc,
)

pytestmark = pytest.mark.asyncio

API = settings.API_PREFIX


@pytest.fixture
def dto_lookups(mocker: MockerFixture):
    """Lookups every task response needs (ETA and assigner name)."""
    mocker.patch("dailypath.services.tasks.crud.get_latest_slot_end_by_task", return_value={})
    mocker.patch("dailypath.services.tasks.crud.get_users_by_ids", return_value=[make_user(EMPLOYEE_ID, full_name="Ewa Employee")])


async def test_tasks_require_authentication(client: AsyncClient):
    response = await client.get(f"{API}/tasks")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED

    # Identity is checked before the body is validated
    response = await client.post(f"{API}/tasks", json={"title": ""})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


async def test_list_tasks_applies_visibility_and_filters(
    client: AsyncClient, app_with_mock_auth, mocker: MockerFixture, dto_lookups
):
    mocker.patch(
        "dailypath.services.tasks.crud.get_latest_slot_end_by_task",
        return_value={TASK_ID: utc(2026, 3, 2, 10, 0)},
    )
    mock_find = mocker.patch("dailypath.services.tasks.crud.find_tasks", return_value=[make_task()])

    response = await client.get(f"{API}/tasks", params={"status": "todo"})

    assert response.status_code == status.HTTP_200_OK
    task = response.json()[0]
    assert task["eta"] == "2026-03-02T10:00:00.000Z"
    assert task["assigned_by_user_name"] == "Ewa Employee"
    query = mock_find.call_args.args[0]
    assert query["status"] == "todo"
    assert {"assigned_user_id": EMPLOYEE_ID} in query["$or"]
    assert {"assigned_department_id": DEPARTMENT_ID} in query["$or"]


async def test_list_tasks_rejects_unknown_status(client: AsyncClient, app_with_mock_auth):
    response = await client.get(f"{API}/tasks", params={"status": "archived"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "Invalid query parameters"
    assert "status" in response.json()["details"]


async def test_private_description_is_masked(client: AsyncClient, app_with_mock_auth, mocker: MockerFixture, dto_lookups):
    private = make_task(
        is_private=True,
        assigned_to_type="department",
        assigned_user_id=None,
        assigned_department_id=DEPARTMENT_ID,
        created_by_user_id=MANAGER_ID,
    )
    mocker.patch("dailypath.services.tasks.crud.find_tasks", return_value=[private])

    response = await client.get(f"{API}/tasks")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()[0]["description"] is None


async def test_create_task(client: AsyncClient, app_with_mock_auth, mocker: MockerFixture):
    mock_create = mocker.patch("dailypath.services.tasks.crud.create_task", return_value=make_task())

    response = await client.post(
        f"{API}/tasks",
        json={"title": "Prepare monthly report", "priority": "high", "estimate_minutes": 90, "assigned_to_type": "user"},
    )

    assert response.status_code == status.HTTP_201_CREATED
    assert response.json() == {"id": TASK_ID, "message": "Task created successfully"}
    doc = mock_create.call_args.args[0]
    assert doc["status"] == "todo"
    assert doc["assigned_user_id"] == EMPLOYEE_ID
    assert doc["created_by_user_id"] == EMPLOYEE_ID


async def test_create_task_reports_invalid_fields(client: AsyncClient, app_with_mock_auth):
    response = await client.post(
        f"{API}/tasks",
        json={"title": "Report", "priority": "high", "estimate_minutes": 20, "assigned_to_type": "user"},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    body = response.json()
    assert body["error"] == "Invalid request body"
    assert body["details"] == {"estimate_minutes": ["Estimate must be a multiple of 15 minutes"]}


# --- by-ids ---

async def test_tasks_by_ids_single_id(client: AsyncClient, app_with_mock_auth, mocker: MockerFixture, dto_lookups):
    mocker.patch("dailypath.services.tasks.crud.get_tasks_by_ids", return_value=[make_task()])

    response = await client.get(f"{API}/tasks/by-ids", params={"ids": TASK_ID})

    assert response.status_code == status.HTTP_200_OK
    assert [t["id"] for t in response.json()] == [TASK_ID]


async def test_tasks_by_ids_omits_invisible_tasks(client: AsyncClient, app_with_mock_auth, mocker: MockerFixture, dto_lookups):
    foreign = make_task(
        "ffffffff-ffff-4fff-8fff-ffffffffffff",
        assigned_user_id=OTHER_USER_ID,
        created_by_user_id=OTHER_USER_ID,
    )
    mocker.patch("dailypath.services.tasks.crud.get_tasks_by_ids", return_value=[make_task(), foreign])

    response = await client.get(f"{API}/tasks/by-ids", params={"ids": f"{TASK_ID},{foreign.id}"})

    assert [t["id"] for t in response.json()] == [TASK_ID]


async def test_tasks_by_ids_requires_ids(client: AsyncClient, app_with_mock_auth):
    response = await client.get(f"{API}/tasks/by-ids", params={"ids": ""})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "ids" in response.json()["details"]


async def test_tasks_by_ids_caps_list_length(client: AsyncClient, app_with_mock_auth):
    ids = ",".join([TASK_ID] * (MAX_TASK_IDS + 1))

    response = await client.get(f"{API}/tasks/by-ids", params={"ids": ids})

    assert response.status_code == status.HTTP_400_BAD_REQUEST


# --- Single task ---

async def test_get_task_not_visible_is_404(client: AsyncClient, app_with_mock_auth, mocker: MockerFixture):
    mocker.patch(
        "dailypath.services.tasks.crud.get_task_by_id",
        return_value=make_task(assigned_user_id=OTHER_USER_ID, created_by_user_id=OTHER_USER_ID),
    )

    response = await client.get(f"{API}/tasks/{TASK_ID}")

    assert response.status_code == status.HTTP_404_NOT_FOUND


async def test_update_task_moves_plan_slots_to_new_assignee(
    client: AsyncClient, app_with_mock_auth, mocker: MockerFixture
):
    mocker.patch("dailypath.services.tasks.crud.get_task_by_id", return_value=make_task())
    mock_update = mocker.patch("dailypath.services.tasks.crud.update_task", return_value=make_task())
    mock_reassign = mocker.patch("dailypath.services.tasks.crud.reassign_plan_slots", return_value=2)

    response = await client.patch(f"{API}/tasks/{TASK_ID}", json={"assigned_user_id": OTHER_USER_ID})

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "Task updated successfully"}
    mock_update.assert_awaited_once()
    mock_reassign.assert_awaited_once_with(TASK_ID, OTHER_USER_ID)


async def test_update_task_without_permission_is_403(client: AsyncClient, app_with_mock_auth, mocker: MockerFixture):
    mocker.patch(
        "dailypath.services.tasks.crud.get_task_by_id",
        return_value=make_task(assigned_user_id=OTHER_USER_ID, created_by_user_id=OTHER_USER_ID),
    )

    response = await client.patch(f"{API}/tasks/{TASK_ID}", json={"status": "done"})

    assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.parametrize("field", ["title", "priority", "estimate_minutes", "assigned_to_type"])
async def test_update_task_rejects_null_for_required_field(
    client: AsyncClient, app_with_mock_auth, mocker: MockerFixture, field: str
):
    mocker.patch("dailypath.services.tasks.crud.get_task_by_id", return_value=make_task())
    mock_update = mocker.patch("dailypath.services.tasks.crud.update_task", return_value=make_task())

    response = await client.patch(f"{API}/tasks/{TASK_ID}", json={field: None})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "Invalid request body"
    assert field in response.json()["details"]
    mock_update.assert_not_called()


async def test_update_task_clears_nullable_field(client: AsyncClient, app_with_mock_auth, mocker: MockerFixture):
    mocker.patch("dailypath.services.tasks.crud.get_task_by_id", return_value=make_task())
    mock_update = mocker.patch("dailypath.services.tasks.crud.update_task", return_value=make_task())

    response = await client.patch(f"{API}/tasks/{TASK_ID}", json={"description": None, "due_date": None})

    assert response.status_code == status.HTTP_200_OK
    update = mock_update.call_args.args[1]
    assert update["description"] is None
    assert update["due_date"] is None


async def test_delete_task_with_references_is_409(client: AsyncClient, app_with_mock_auth, mocker: MockerFixture):
    mocker.patch("dailypath.services.tasks.crud.get_task_by_id", return_value=make_task())
    mocker.patch("dailypath.services.tasks.crud.count_task_references", return_value=(3, 0))
    mock_delete = mocker.patch("dailypath.services.tasks.crud.delete_task")

    response = await client.delete(f"{API}/tasks/{TASK_ID}")

    assert response.status_code == status.HTTP_409_CONFLICT
    mock_delete.assert_not_called()


async def test_delete_task(client: AsyncClient, app_with_mock_auth, mocker: MockerFixture):
    mocker.patch("dailypath.services.tasks.crud.get_task_by_id", return_value=make_task())
    mocker.patch("dailypath.services.tasks.crud.count_task_references", return_value=(0, 0))
    mocker.patch("dailypath.services.tasks.crud.delete_task", return_value=True)

    response = await client.delete(f"{API}/tasks/{TASK_ID}")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "Task deleted successfully"}
