import re
from datetime import date, datetime
from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import TaskPriority, TaskStatus


ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


def parse_calendar_date(value):
    """Accept only ``YYYY-MM-DD`` strings or ``date`` objects (not datetimes)"""
    if value is None:
        return None
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, str) and ISO_DATE.fullmatch(value):
        try:
            return date.fromisoformat(value)
        except ValueError:
            raise ValueError(f"{value} is not a valid calendar date") from None
    raise ValueError("due_date must be a date in YYYY-MM-DD format")


class TaskBase(BaseModel):
    # unknown keys are dropped, never persisted
    model_config = ConfigDict(extra="ignore")

    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    due_date: Optional[date] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    category: Optional[str] = Field(None, max_length=100)

    @field_validator("due_date", mode="before")
    @classmethod
    def due_date_is_calendar_date(cls, value):
        return parse_calendar_date(value)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value):
        if not value.strip():
            raise ValueError("title must not be blank")
        return value


class TaskCreate(TaskBase):
    pass


class TaskUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    due_date: Optional[date] = None
    priority: Optional[TaskPriority] = None
    category: Optional[str] = Field(None, max_length=100)
    status: Optional[TaskStatus] = None

    @field_validator("title", "priority", "status")
    @classmethod
    def not_null(cls, value, info):
        # only runs for keys that were actually sent
        if value is None:
            raise ValueError(f"{info.field_name} may not be null")
        return value

    @field_validator("due_date", mode="before")
    @classmethod
    def due_date_is_calendar_date(cls, value):
        return parse_calendar_date(value)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value):
        if value is not None and not value.strip():
            raise ValueError("title must not be blank")
        return value


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    due_date: Optional[date] = None
    priority: TaskPriority
    category: Optional[str] = None
    status: TaskStatus
    created_at: datetime
    updated_at: datetime


class TaskCreatedResponse(BaseModel):
    id: int
    message: str
    task: TaskResponse


class TaskFilter(BaseModel):
    model_config = ConfigDict(extra="ignore")

    category: Optional[str] = None
    status: Optional[TaskStatus] = None

    @field_validator("category", "status", mode="before")
    @classmethod
    def empty_as_absent(cls, value):
        if isinstance(value, str) and value == "":
            return None
        return value


class MessageResponse(BaseModel):
    message: str


class CountResponse(BaseModel):
    count: int


class ValidationErrorResponse(BaseModel):
    message: str
    errors: Dict[str, str]
