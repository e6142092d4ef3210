# dailypath/models/time_log.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime, timezone

from .common import PeriodStr, UUIDStr
from dailypath.utils.periods import format_period


class TimeLogCreate(BaseModel):
    task_id: UUIDStr
    period: PeriodStr = Field(..., description="Worked range [start,end); rounded to 15 minutes on save")


class TimeLogUpdate(BaseModel):
    period: PeriodStr


class TimeLogQuery(BaseModel):
    user_id: Optional[UUIDStr] = None
    task_id: Optional[UUIDStr] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class TimeLogInDB(BaseModel):
    id: str = Field(..., alias="_id")
    task_id: str
    user_id: str
    start: datetime
    end: datetime
    created_by_user_id: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True)

    @property
    def period(self) -> str:
        return format_period(self.start, self.end)


class TimeLog(BaseModel):
    id: str
    task_id: str
    user_id: str
    period: str

    @classmethod
    def from_db(cls, log: TimeLogInDB) -> "TimeLog":
        return cls(id=log.id, task_id=log.task_id, user_id=log.user_id, period=log.period)
