"""
Base model with common fields.

Every table except `config` inherits from this to get:
- id (UUID string primary key)
- created_at (when the record was created)
"""

import uuid
from datetime import datetime

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.utils.time import utc_now


def new_id() -> str:
    return str(uuid.uuid4())


class RecordModel(Base):
    """
    Abstract base class for CRM records.

    Ids are stored as text so the same rows can live in SQLite, Postgres and
    Supabase without dialect-specific UUID columns.
    """

    __abstract__ = True

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=new_id,
    )

    # Set in Python so ordering keeps sub-second precision on SQLite
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
