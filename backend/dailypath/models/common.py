# dailypath/models/common.py
import re
from datetime import date
from typing import Annotated, Any, Optional
from pydantic import AfterValidator, BaseModel
from pydantic_core import PydanticCustomError

from dailypath.utils.periods import PERIOD_PATTERN

UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_PERIOD_RE = re.compile(PERIOD_PATTERN)


def _check_uuid(value: str) -> str:
    if not UUID_RE.match(value):
        raise PydanticCustomError("uuid_format", "Invalid UUID")
    return value.lower()


def _check_date(value: str) -> str:
    if not DATE_RE.match(value):
        raise PydanticCustomError("date_format", "Date must be in YYYY-MM-DD format")
    try:
        date.fromisoformat(value)
    except ValueError:
        raise PydanticCustomError("date_format", "Invalid calendar date")
    return value


def _check_period(value: str) -> str:
    if not _PERIOD_RE.match(value):
        raise PydanticCustomError("period_format", "Period must be in format [start,end)")
    return value


# Reusable constrained string types for request schemas
UUIDStr = Annotated[str, AfterValidator(_check_uuid)]
DateStr = Annotated[str, AfterValidator(_check_date)]
PeriodStr = Annotated[str, AfterValidator(_check_period)]


# --- Standard response bodies ---

class ErrorResponse(BaseModel):
    """Uniform error body returned for every failed request."""
    error: str
    message: str
    details: Optional[Any] = None
    code: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class CreatedResponse(BaseModel):
    id: str
    message: str
