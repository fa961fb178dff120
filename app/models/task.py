"""
Task model.

Tasks form a tree through parent_id and may belong to a project and/or a
commerce. In-person tasks are the "visits" mirrored to Google Calendar.
"""

from datetime import date
from typing import Optional

from sqlalchemy import Boolean, Date, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.statuses import DEFAULT_TASK_CATEGORY, UNASSIGNED, TaskStatus
from app.models.base_model import RecordModel


class Task(RecordModel):
    """
    Tasks table.
    """

    __tablename__ = "tasks"

    name: Mapped[str] = mapped_column(String(500), nullable=False)

    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=TaskStatus.TODO.value,
    )

    category: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        default=DEFAULT_TASK_CATEGORY,
    )

    # Comma-separated list of people
    assignee: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        default=UNASSIGNED,
    )

    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # "HH:MM"; when set the calendar event is timed instead of all-day
    time_slot: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)

    is_in_person: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    project_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    commerce_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("commerces.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    parent_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    google_event_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
