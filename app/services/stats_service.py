"""
Dashboard counters.
"""

import asyncio

from app.core.statuses import ProjectStatus, TaskStatus
from app.repositories.base import Store
from app.schemas.stats import StatsRead


class StatsService:
    def __init__(self, store: Store):
        self.store = store

    async def get_stats(self) -> StatsRead:
        """
        Count leads, non-archived projects, and open tasks that belong to
        neither a project nor a commerce.
        """
        commerces, projects, tasks = await asyncio.gather(
            self.store.list_commerces(),
            self.store.list_projects(),
            self.store.list_tasks(),
        )
        active_projects = [
            p for p in projects if ProjectStatus.try_parse(p.get("status")) is not ProjectStatus.ARCHIVED
        ]
        open_tasks = [
            t
            for t in tasks
            if not t.get("project_id")
            and not t.get("commerce_id")
            and TaskStatus.try_parse(t.get("status")) is not TaskStatus.DONE
        ]
        return StatsRead(leads=len(commerces), projects=len(active_projects), tasks=len(open_tasks))
