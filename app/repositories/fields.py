"""
Field-name normalization shared by both store backends.

Clients send either camelCase (`dueDate`) or snake_case (`due_date`) keys;
the stores only ever see snake_case column names with native Python values.
"""

from datetime import date, datetime
from typing import Any, Dict, Iterable, Mapping

TASK_ALIASES = {
    "dueDate": "due_date",
    "timeSlot": "time_slot",
    "time": "time_slot",
    "isInPerson": "is_in_person",
    "projectId": "project_id",
    "commerceId": "commerce_id",
    "parentId": "parent_id",
    "googleEventId": "google_event_id",
}

TASK_COLUMNS = (
    "name",
    "status",
    "category",
    "assignee",
    "due_date",
    "time_slot",
    "is_in_person",
    "project_id",
    "commerce_id",
    "parent_id",
    "google_event_id",
    "notes",
)

COMMERCE_COLUMNS = ("name", "category", "status", "contact", "phone", "email", "address", "notes")

PROJECT_COLUMNS = ("name", "status", "progress", "description")

# camelCase keys added to task records returned by the API
TASK_RESPONSE_ALIASES = {
    "due_date": "dueDate",
    "time_slot": "timeSlot",
    "is_in_person": "isInPerson",
    "project_id": "projectId",
    "commerce_id": "commerceId",
    "parent_id": "parentId",
    "google_event_id": "googleEventId",
    "commerce_name": "commerceName",
    "created_at": "createdAt",
}


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on", "oui")
    return bool(value)


def to_date(value: Any):
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


# Columns that cannot be cleared; an explicit null leaves them unchanged
REQUIRED_COLUMNS = frozenset({"name", "status", "is_in_person", "progress"})


def _filter(fields: Mapping[str, Any], allowed: Iterable[str], aliases: Mapping[str, str]) -> Dict[str, Any]:
    allowed = set(allowed)
    result: Dict[str, Any] = {}
    for key, value in fields.items():
        column = aliases.get(key, key)
        if column not in allowed:
            continue
        if value is None and column in REQUIRED_COLUMNS:
            continue
        result[column] = value
    return result


def normalize_task_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Map aliases to columns, drop unknown keys and coerce typed columns."""
    result = _filter(fields, TASK_COLUMNS, TASK_ALIASES)
    if "is_in_person" in result:
        result["is_in_person"] = to_bool(result["is_in_person"])
    if "due_date" in result:
        result["due_date"] = to_date(result["due_date"])
    for key in ("time_slot", "project_id", "commerce_id", "parent_id", "google_event_id"):
        if key in result and result[key] == "":
            result[key] = None
    return result


def normalize_commerce_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    return _filter(fields, COMMERCE_COLUMNS, {})


def normalize_project_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    return _filter(fields, PROJECT_COLUMNS, {})


def jsonable(value: Any) -> Any:
    """Render dates the way both backends return them (ISO strings)."""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def with_camel_aliases(record: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy of a task record carrying camelCase aliases next to the columns."""
    result = dict(record)
    for column, alias in TASK_RESPONSE_ALIASES.items():
        if column in record:
            result[alias] = record[column]
    return result


# Applied by backends that cannot rely on ORM column defaults
TASK_DEFAULTS = {
    "status": "To do",
    "category": "🔧 Opérations",
    "assignee": "Unassigned",
    "is_in_person": False,
}

COMMERCE_DEFAULTS = {"status": "À démarcher"}

PROJECT_DEFAULTS = {"status": "🔄 En cours", "progress": 0}
