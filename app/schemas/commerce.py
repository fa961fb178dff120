"""
Commerce (lead) Pydantic schemas.
"""

from typing import Optional

from pydantic import Field, field_validator

from app.core.statuses import CommerceStatus
from app.schemas.base import RecordRead, RequestBase


class _CommerceFields(RequestBase):
    category: Optional[str] = None
    status: Optional[CommerceStatus] = None
    contact: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, value):
        if value is None or value == "":
            return None
        return CommerceStatus.parse(value)


class CommerceCreate(_CommerceFields):
    """Schema for creating a new lead."""

    name: str = Field(min_length=1)


class CommerceUpdate(_CommerceFields):
    """Schema for updating a lead. All fields optional."""

    name: Optional[str] = Field(default=None, min_length=1)


class CommerceRead(RecordRead):
    """Schema for reading lead data (API response)."""

    name: str
    category: Optional[str] = None
    status: str
    contact: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
