"""
Commerce model.

A commerce is a lead in the sales pipeline (a shop, restaurant, ...).
"""

from typing import Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.statuses import CommerceStatus
from app.models.base_model import RecordModel


class Commerce(RecordModel):
    """
    Commerces table - one row per lead.
    """

    __tablename__ = "commerces"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=CommerceStatus.PROSPECT.value,
    )

    contact: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
