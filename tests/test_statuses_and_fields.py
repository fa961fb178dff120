from datetime import date

import pytest
from pydantic import ValidationError

from app.core.statuses import CommerceStatus, ProjectStatus, TaskStatus
from app.repositories.fields import normalize_task_fields, to_bool, with_camel_aliases
from app.schemas.commerce import CommerceUpdate
from app.schemas.task import TaskCreate, TaskUpdate

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "label, expected",
    [
        ("Done", TaskStatus.DONE),
        ("Terminé", TaskStatus.DONE),
        ("terminée", TaskStatus.DONE),
        ("En cours", TaskStatus.IN_PROGRESS),
        ("In Progress", TaskStatus.IN_PROGRESS),
        ("À faire", TaskStatus.TODO),
        ("  to   do ", TaskStatus.TODO),
    ],
)
def test_task_status_synonyms_collapse(label, expected):
    assert TaskStatus.parse(label) is expected


def test_commerce_and_project_labels():
    assert CommerceStatus.parse("won") is CommerceStatus.WON
    assert CommerceStatus.parse("Gagné") is CommerceStatus.WON
    assert CommerceStatus.parse("Lead") is CommerceStatus.PROSPECT
    assert CommerceStatus.WON.is_active
    assert CommerceStatus.IN_PROGRESS.is_active
    assert not CommerceStatus.LOST.is_active

    assert ProjectStatus.parse("Planifié") is ProjectStatus.PLANNED
    assert ProjectStatus.parse("🔄 En cours") is ProjectStatus.IN_PROGRESS
    assert ProjectStatus.parse("done") is ProjectStatus.COMPLETED


def test_unknown_status_is_rejected():
    with pytest.raises(ValueError):
        TaskStatus.parse("Maybe later")
    assert CommerceStatus.try_parse("nope") is None
    with pytest.raises(ValidationError):
        CommerceUpdate(status="nope")


def test_task_schema_accepts_camel_case_and_normalizes():
    task = TaskCreate.model_validate(
        {
            "name": "Visite",
            "status": "Terminé",
            "dueDate": "2025-03-10T09:30:00.000Z",
            "time": "9:05",
            "isInPerson": True,
            "assignee": ["Ana", "Ludovic"],
            "projectId": "",
        }
    )
    fields = normalize_task_fields(task.to_fields())

    assert fields["status"] == "Done"
    assert fields["due_date"] == date(2025, 3, 10)
    assert fields["time_slot"] == "09:05"
    assert fields["is_in_person"] is True
    assert fields["assignee"] == "Ana, Ludovic"
    assert fields["project_id"] is None


def test_task_schema_rejects_bad_time_slot():
    with pytest.raises(ValidationError):
        TaskCreate(name="Visite", time_slot="25:00")
    with pytest.raises(ValidationError):
        TaskCreate(name="Visite", time_slot="noon")


def test_unassigned_labels_collapse():
    assert TaskUpdate(assignee="non assigné").assignee == "Unassigned"
    assert TaskUpdate(assignee="").assignee == "Unassigned"


def test_update_only_carries_sent_fields():
    fields = normalize_task_fields(TaskUpdate.model_validate({"notes": "rappeler"}).to_fields())
    assert fields == {"notes": "rappeler"}


def test_explicit_null_does_not_clear_required_columns():
    fields = normalize_task_fields({"name": None, "status": None, "isInPerson": None, "notes": None})
    assert fields == {"notes": None}


def test_normalize_drops_unknown_keys_and_coerces_booleans():
    fields = normalize_task_fields({"name": "x", "isInPerson": "true", "bogus": 1, "parentId": ""})
    assert fields == {"name": "x", "is_in_person": True, "parent_id": None}
    assert to_bool("oui") is True
    assert to_bool("0") is False


def test_camel_aliases_sit_next_to_columns():
    record = with_camel_aliases({"id": "1", "due_date": "2025-03-10", "commerce_name": "Chez Paul"})
    assert record["due_date"] == record["dueDate"] == "2025-03-10"
    assert record["commerceName"] == "Chez Paul"
