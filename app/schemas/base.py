"""
Base Pydantic schemas with common fields.

These are templates that other schemas inherit from.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class RequestBase(BaseModel):
    """
    Base schema for request bodies.

    Fields may be sent in snake_case or camelCase; unknown keys are ignored.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    def to_fields(self) -> dict:
        """Only the fields the client actually sent, as JSON-friendly values."""
        return self.model_dump(exclude_unset=True, mode="json")


class RecordRead(BaseModel):
    """
    Base schema for reading stored records.

    Includes the fields generated by the store (id, creation timestamp).
    """

    id: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
