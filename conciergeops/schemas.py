# conciergeops/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .domain.recurrence import FREQUENCIES, PRIORITIES, TASK_TYPES, parse_scheduled_time


# -------------------- Cron sweeps --------------------

class RecurrenceSweepOut(BaseModel):
    success: bool = True
    generated: int


class EscalationSweepOut(BaseModel):
    success: bool = True
    escalated: int


class ReminderSweepOut(BaseModel):
    success: bool = True
    reminders_sent: int


class ErrorOut(BaseModel):
    error: str


# -------------------- Calendar conflicts --------------------

class ConflictOut(BaseModel):
    task1_id: int
    task2_id: int
    task1_type: str
    task2_type: str
    assignee_id: int
    assignee_name: str
    date: str
    details: str

    model_config = ConfigDict(from_attributes=True)


# -------------------- Recurrence templates --------------------

class RecurrenceBase(BaseModel):
    property_id: int
    task_type: str
    frequency: str
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    scheduled_time: str = "09:00"
    assigned_to: Optional[int] = None
    priority: str = "normal"
    notes: Optional[str] = None
    active: bool = True

    @field_validator("task_type")
    @classmethod
    def _task_type(cls, v: str) -> str:
        s = (v or "").strip().lower()
        if s not in TASK_TYPES:
            raise ValueError(f"task_type must be one of {', '.join(TASK_TYPES)}")
        return s

    @field_validator("frequency")
    @classmethod
    def _frequency(cls, v: str) -> str:
        s = (v or "").strip().lower()
        if s not in FREQUENCIES:
            raise ValueError(f"frequency must be one of {', '.join(FREQUENCIES)}")
        return s

    @field_validator("priority")
    @classmethod
    def _priority(cls, v: str) -> str:
        s = (v or "").strip().lower()
        if s not in PRIORITIES:
            raise ValueError(f"priority must be one of {', '.join(PRIORITIES)}")
        return s

    @field_validator("scheduled_time")
    @classmethod
    def _scheduled_time(cls, v: str) -> str:
        return parse_scheduled_time(v).strftime("%H:%M")

    @model_validator(mode="after")
    def _day_fields(self):
        # only the day field of the chosen frequency is kept
        if self.frequency == "weekly":
            if self.day_of_week is None:
                raise ValueError("day_of_week is required for weekly recurrences")
            self.day_of_month = None
        elif self.frequency == "monthly":
            if self.day_of_month is None:
                raise ValueError("day_of_month is required for monthly recurrences")
            self.day_of_week = None
        else:
            self.day_of_week = None
            self.day_of_month = None
        return self


class RecurrenceCreate(RecurrenceBase):
    pass


class RecurrenceUpdate(RecurrenceBase):
    pass


class RecurrenceToggle(BaseModel):
    active: bool


class RecurrenceOut(BaseModel):
    id: int
    property_id: int
    task_type: str
    frequency: str
    day_of_week: Optional[int] = None
    day_of_month: Optional[int] = None
    scheduled_time: str
    assigned_to: Optional[int] = None
    priority: str
    notes: Optional[str] = None
    active: bool
    last_generated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
