# dailypath/api/v1/endpoints/reports.py

from typing import Annotated, List

from fastapi import APIRouter, Query, Response

from dailypath.api.deps import CurrentUserDep
from dailypath.models.report import DailyReport, DailyReportQuery
from dailypath.services import reports as report_service

router = APIRouter(
    prefix="/reports",
    tags=["Reports"]
)


@router.get(
    "/daily",
    response_model=List[DailyReport],
    summary="Daily logged and planned minutes",
    description="Defaults to the last 7 days of the current user. Managers may pass a user_id from a department they manage.",
)
async def daily_report(params: Annotated[DailyReportQuery, Query()], current_user: CurrentUserDep, response: Response):
    response.headers["Cache-Control"] = "private, max-age=30"
    return await report_service.daily_report(current_user, params)
