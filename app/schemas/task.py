"""
Task Pydantic schemas.

Clients historically send camelCase keys (`dueDate`, `isInPerson`, ...);
both spellings validate into the snake_case fields.
"""

import re
from datetime import date
from typing import Optional

from pydantic import AliasChoices, Field, field_validator

from app.core.statuses import UNASSIGNED, TaskStatus
from app.schemas.base import RequestBase

_TIME_SLOT = re.compile(r"^(\d{1,2}):(\d{2})$")

UNASSIGNED_LABELS = {"", "unassigned", "non assigné", "non assigne"}


def _alias(snake: str, camel: str, *more: str) -> AliasChoices:
    return AliasChoices(snake, camel, *more)


class _TaskFields(RequestBase):
    status: Optional[TaskStatus] = None
    category: Optional[str] = None
    assignee: Optional[str] = None
    due_date: Optional[date] = Field(default=None, validation_alias=_alias("due_date", "dueDate"))
    time_slot: Optional[str] = Field(default=None, validation_alias=_alias("time_slot", "timeSlot", "time"))
    is_in_person: Optional[bool] = Field(default=None, validation_alias=_alias("is_in_person", "isInPerson"))
    project_id: Optional[str] = Field(default=None, validation_alias=_alias("project_id", "projectId"))
    commerce_id: Optional[str] = Field(default=None, validation_alias=_alias("commerce_id", "commerceId"))
    parent_id: Optional[str] = Field(default=None, validation_alias=_alias("parent_id", "parentId"))
    notes: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, value):
        if value is None or value == "":
            return None
        return TaskStatus.parse(value)

    @field_validator("assignee", mode="before")
    @classmethod
    def join_assignees(cls, value):
        if isinstance(value, (list, tuple)):
            value = ", ".join(str(v).strip() for v in value if str(v).strip())
        if isinstance(value, str) and value.strip().lower() in UNASSIGNED_LABELS:
            return UNASSIGNED
        return value

    @field_validator("time_slot", mode="before")
    @classmethod
    def normalize_time_slot(cls, value):
        if value is None or value == "":
            return None
        match = _TIME_SLOT.match(str(value).strip())
        if not match:
            raise ValueError("time_slot must look like HH:MM")
        hours, minutes = int(match.group(1)), int(match.group(2))
        if hours > 23 or minutes > 59:
            raise ValueError("time_slot must be a valid time of day")
        return f"{hours:02d}:{minutes:02d}"

    @field_validator("due_date", mode="before")
    @classmethod
    def empty_date(cls, value):
        if value == "":
            return None
        # Accept full timestamps from date pickers
        if isinstance(value, str) and len(value) > 10:
            return value[:10]
        return value

    @field_validator("project_id", "commerce_id", "parent_id", mode="before")
    @classmethod
    def empty_reference(cls, value):
        return None if value == "" else value


class TaskCreate(_TaskFields):
    """Schema for creating a new task."""

    name: str = Field(min_length=1)


class TaskUpdate(_TaskFields):
    """Schema for updating a task. All fields optional."""

    name: Optional[str] = Field(default=None, min_length=1)
