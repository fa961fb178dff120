"""
Project model.
"""

from typing import Optional

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.statuses import ProjectStatus
from app.models.base_model import RecordModel


class Project(RecordModel):
    """
    Projects table.

    `progress` is derived from the project's tasks and is only written by
    ProjectService.recompute_progress.
    """

    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=ProjectStatus.IN_PROGRESS.value,
    )

    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
