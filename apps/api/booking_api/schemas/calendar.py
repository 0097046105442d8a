"""Tenant calendar settings schemas (business hours, blocked dates)."""

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

DayKey = Literal["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]
HHMM = r"^([01]\d|2[0-3]):[0-5]\d$"


class DayHoursInput(BaseModel):
    """Opening hours for one weekday (stored format uses camelCase keys)."""
    model_config = ConfigDict(populate_by_name=True)

    is_open: bool = Field(..., alias="isOpen")
    open_time: str | None = Field(None, alias="openTime", pattern=HHMM)
    close_time: str | None = Field(None, alias="closeTime", pattern=HHMM)

    @model_validator(mode="after")
    def _times_when_open(self) -> "DayHoursInput":
        if self.is_open and (not self.open_time or not self.close_time):
            raise ValueError("openTime and closeTime are required when isOpen is true")
        return self


class BusinessHoursUpdate(BaseModel):
    schedule: dict[DayKey, DayHoursInput]
    timezone: str = Field("Asia/Jakarta", max_length=50)


class DayHoursRead(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_open: bool = Field(..., alias="isOpen")
    open_time: str | None = Field(None, alias="openTime")
    close_time: str | None = Field(None, alias="closeTime")


class BusinessHoursRead(BaseModel):
    """Effective weekly schedule (defaults filled in for unset days)."""
    schedule: dict[str, DayHoursRead]
    timezone: str
    is_configured: bool


class BlockedDateCreate(BaseModel):
    blocked_date: date
    reason: str | None = Field(None, max_length=255)
    is_recurring: bool = False
    recurring_pattern: Literal["daily", "weekly", "monthly", "yearly"] | None = None
    recurring_until: date | None = None


class BlockedDateRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    blocked_date: date = Field(..., validation_alias=AliasChoices("date", "blocked_date"))
    reason: str | None
    is_recurring: bool
    recurring_pattern: str | None
    recurring_until: date | None
    created_at: datetime
