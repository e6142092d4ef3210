# tests/conftest.py
import logging
from typing import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pytest_mock import MockerFixture

from dailypath.api.deps import get_current_user, get_current_user_optional
from dailypath.core.security import auth_rate_limiter
from dailypath.models.user import CurrentUser, DepartmentRef
from tests.factories import ADMIN_ID, DEPARTMENT_ID, EMPLOYEE_ID, MANAGER_ID

logger = logging.getLogger(__name__)


# --- Fixtures ---

@pytest_asyncio.fixture(scope="function")
async def app(mocker: MockerFixture) -> AsyncGenerator[FastAPI, None]:
    """FastAPI app for each test with the database lifecycle mocked out."""
    mocker.patch("dailypath.main.connect_to_mongo", return_value=True)
    mocker.patch("dailypath.main.close_mongo_connection", return_value=None)
    mocker.patch("dailypath.main.ensure_indexes", return_value=None)

    # Import the app *after* patching the lifecycle functions
    from dailypath.main import app as fastapi_app

    auth_rate_limiter.clear()
    async with LifespanManager(fastapi_app, startup_timeout=15, shutdown_timeout=15):
        yield fastapi_app
    fastapi_app.dependency_overrides.clear()
    auth_rate_limiter.clear()


@pytest_asyncio.fixture(scope="function")
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as test_client:
        yield test_client


@pytest.fixture
def employee() -> CurrentUser:
    return CurrentUser(
        id=EMPLOYEE_ID,
        email="employee@example.com",
        full_name="Ewa Employee",
        app_role="employee",
        active_department=DepartmentRef(id=DEPARTMENT_ID, name="Support"),
    )


@pytest.fixture
def manager() -> CurrentUser:
    return CurrentUser(
        id=MANAGER_ID,
        email="manager@example.com",
        full_name="Marek Manager",
        app_role="manager",
        active_department=DepartmentRef(id=DEPARTMENT_ID, name="Support"),
    )


@pytest.fixture
def admin() -> CurrentUser:
    return CurrentUser(id=ADMIN_ID, email="admin@example.com", full_name="Ada Admin", app_role="admin")


@pytest.fixture
def login_as(app: FastAPI) -> Callable[[CurrentUser], None]:
    """Override identity resolution so requests act as the given user."""
    def _login_as(user: CurrentUser) -> None:
        logger.info(f"Dependency override: acting as {user.email} ({user.app_role})")
        app.dependency_overrides[get_current_user_optional] = lambda: user
        app.dependency_overrides[get_current_user] = lambda: user
    return _login_as


@pytest_asyncio.fixture(scope="function")
async def app_with_mock_auth(app: FastAPI, employee: CurrentUser, login_as) -> FastAPI:
    """The app with every request acting as a plain employee."""
    login_as(employee)
    return app
