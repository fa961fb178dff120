"""
Project Pydantic schemas.

`progress` is derived from tasks, so it only appears on the read schema.
"""

from typing import Optional

from pydantic import Field, field_validator

from app.core.statuses import ProjectStatus
from app.schemas.base import RecordRead, RequestBase


class _ProjectFields(RequestBase):
    status: Optional[ProjectStatus] = None
    description: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, value):
        if value is None or value == "":
            return None
        return ProjectStatus.parse(value)


class ProjectCreate(_ProjectFields):
    name: str = Field(min_length=1)


class ProjectUpdate(_ProjectFields):
    name: Optional[str] = Field(default=None, min_length=1)


class ProjectRead(RecordRead):
    name: str
    status: str
    progress: int = 0
    description: Optional[str] = None
