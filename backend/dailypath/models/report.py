# dailypath/models/report.py
from pydantic import BaseModel
from typing import List, Optional

from .common import DateStr, UUIDStr


class DailyReportQuery(BaseModel):
    start_date: Optional[DateStr] = None
    end_date: Optional[DateStr] = None
    user_id: Optional[UUIDStr] = None
    department_id: Optional[UUIDStr] = None


class TaskStatusCount(BaseModel):
    # "unknown" when the task is not visible to the requester
    status: str
    count: int


class DailyReport(BaseModel):
    date: str
    user_id: str
    user_name: str
    department_id: Optional[str] = None
    department_name: Optional[str] = None
    logged_minutes: int
    plan_minutes: int
    task_summary: List[TaskStatusCount]
