"""Dashboard counters."""

from pydantic import BaseModel


class StatsRead(BaseModel):
    leads: int
    projects: int
    tasks: int
