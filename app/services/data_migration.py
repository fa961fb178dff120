"""
One-way copy of the local SQL database into Supabase.

Rows keep their id and created_at and are upserted, so the copy can be run
again after more local edits. Tables go in foreign-key order (commerces,
projects, tasks, config) and tasks are sent parents first.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping

from app.repositories.base import Record, StoreError
from app.repositories.fields import COMMERCE_COLUMNS, PROJECT_COLUMNS, TASK_COLUMNS, to_bool
from app.repositories.sql_store import SqlStore
from app.repositories.supabase_store import SupabaseStore

logger = logging.getLogger(__name__)


@dataclass
class MigrationReport:
    copied: Dict[str, int] = field(default_factory=dict)
    failed: Dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not any(self.failed.values())


def _row(record: Mapping, columns: Iterable[str]) -> Record:
    return {column: record.get(column) for column in ("id", *columns, "created_at")}


def parents_first(tasks: List[Record]) -> List[Record]:
    """Order tasks so every parent precedes its sub-tasks."""
    by_id = {task["id"]: task for task in tasks}
    ordered: List[Record] = []
    placed = set()

    def place(task: Record, trail: set) -> None:
        if task["id"] in placed or task["id"] in trail:
            return
        parent = by_id.get(task.get("parent_id"))
        if parent is not None:
            place(parent, trail | {task["id"]})
        placed.add(task["id"])
        ordered.append(task)

    for task in tasks:
        place(task, set())
    return ordered


async def _copy(target: SupabaseStore, table: str, rows: List[Record], report: MigrationReport) -> None:
    logger.info("Migrating %d %s...", len(rows), table)
    report.copied[table] = 0
    report.failed[table] = 0
    for row in rows:
        try:
            await target.upsert(table, row)
        except StoreError as exc:
            report.failed[table] += 1
            logger.error("Could not migrate %s %s: %s", table, row.get("id") or row.get("key"), exc)
        else:
            report.copied[table] += 1


async def migrate_to_supabase(source: SqlStore, target: SupabaseStore) -> MigrationReport:
    """Upsert every commerce, project, task and config entry of `source` into `target`."""
    report = MigrationReport()

    commerces = [_row(c, COMMERCE_COLUMNS) for c in await source.list_commerces()]
    await _copy(target, "commerces", commerces, report)

    projects = [_row(p, PROJECT_COLUMNS) for p in await source.list_projects()]
    await _copy(target, "projects", projects, report)

    tasks = []
    for task in parents_first(await source.list_tasks()):
        row = _row(task, TASK_COLUMNS)
        # Legacy SQLite rows store the flag as 0/1
        row["is_in_person"] = to_bool(row["is_in_person"])
        tasks.append(row)
    await _copy(target, "tasks", tasks, report)

    config = [{"key": key, "value": value} for key, value in (await source.list_config()).items()]
    await _copy(target, "config", config, report)

    logger.info("Migration finished: %s", report.copied)
    return report
