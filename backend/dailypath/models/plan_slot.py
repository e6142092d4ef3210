# dailypath/models/plan_slot.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime, timezone

from .common import DateStr, PeriodStr, UUIDStr
from dailypath.utils.periods import format_period


class PlanSlotCreate(BaseModel):
    task_id: UUIDStr
    user_id: UUIDStr
    period: PeriodStr = Field(..., description="Half-open range [start,end), 15-minute aligned")
    allow_overlap: bool = False

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "task_id": "5b0c3a7e-3f7a-4c1e-9a51-0d8f1b2c3d4e",
                "user_id": "11111111-1111-1111-1111-111111111111",
                "period": "[2026-01-05T09:00:00.000Z,2026-01-05T10:30:00.000Z)",
                "allow_overlap": False,
            }
        }
    )


class PlanSlotUpdate(BaseModel):
    period: Optional[PeriodStr] = None
    allow_overlap: Optional[bool] = None


class PlanSlotQuery(BaseModel):
    user_id: UUIDStr
    start_date: DateStr
    end_date: DateStr


# Stored as explicit bounds so range queries stay index-friendly
class PlanSlotInDB(BaseModel):
    id: str = Field(..., alias="_id")
    task_id: str
    user_id: str
    start: datetime
    end: datetime
    allow_overlap: bool = False
    created_by_user_id: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True)

    @property
    def period(self) -> str:
        return format_period(self.start, self.end)


class PlanSlot(BaseModel):
    id: str
    task_id: str
    user_id: str
    period: str
    allow_overlap: bool

    @classmethod
    def from_db(cls, slot: PlanSlotInDB) -> "PlanSlot":
        return cls(
            id=slot.id,
            task_id=slot.task_id,
            user_id=slot.user_id,
            period=slot.period,
            allow_overlap=slot.allow_overlap,
        )
