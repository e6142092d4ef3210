# dailypath/api/v1/endpoints/departments.py

from typing import List

from fastapi import APIRouter

from dailypath.api.deps import CurrentUserDep
from dailypath.models.department import Department
from dailypath.services import departments as department_service

router = APIRouter(
    prefix="/departments",
    tags=["Departments"]
)


@router.get("", response_model=List[Department], summary="List departments")
async def list_departments(current_user: CurrentUserDep):
    return await department_service.list_departments()
