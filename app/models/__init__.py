"""
Models package.

Import all models here so they are registered with SQLAlchemy.
This file also makes it easy to import models from one place.
"""

from app.models.commerce import Commerce
from app.models.project import Project
from app.models.task import Task
from app.models.config_entry import ConfigEntry

# Export all models
__all__ = [
    "Commerce",
    "Project",
    "Task",
    "ConfigEntry",
]
