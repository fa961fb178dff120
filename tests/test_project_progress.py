import pytest

from app.services.project_service import build_task_tree, compute_progress
from app.services.task_service import descendants_of

pytestmark = pytest.mark.unit


def _tasks(*statuses):
    return [{"id": str(i), "status": status} for i, status in enumerate(statuses)]


def test_progress_is_zero_without_tasks():
    assert compute_progress([]) == 0


@pytest.mark.parametrize(
    "statuses, expected",
    [
        (("Done",), 100),
        (("To do",), 0),
        (("Done", "To do", "To do"), 33),
        (("Done", "Done", "To do"), 67),
        (("Done",) + ("To do",) * 7, 13),  # 12.5 rounds up
        (("Terminé", "In progress"), 50),
    ],
)
def test_progress_rounds_percentage_of_done_tasks(statuses, expected):
    assert compute_progress(_tasks(*statuses)) == expected


def test_orphaned_parent_reference_becomes_root():
    tasks = [
        {"id": "1", "parent_id": None},
        {"id": "2", "parent_id": "1"},
        {"id": "3", "parent_id": "99"},
    ]

    tree = build_task_tree(tasks)

    assert [node["id"] for node in tree] == ["1", "3"]
    assert [child["id"] for child in tree[0]["subTasks"]] == ["2"]
    assert tree[0]["subTasks"][0]["subTasks"] == []
    assert tree[1]["subTasks"] == []


def test_tree_nests_several_levels_and_keeps_order():
    tasks = [
        {"id": "a", "parent_id": None},
        {"id": "b", "parent_id": "a"},
        {"id": "c", "parent_id": "b"},
        {"id": "d", "parent_id": "a"},
    ]

    tree = build_task_tree(tasks)

    assert len(tree) == 1
    assert [child["id"] for child in tree[0]["subTasks"]] == ["b", "d"]
    assert tree[0]["subTasks"][0]["subTasks"][0]["id"] == "c"
    assert tree[0]["subTasks"][0]["parentId"] == "a"


def test_descendants_follow_the_whole_chain():
    tasks = [
        {"id": "a", "parent_id": None},
        {"id": "b", "parent_id": "a"},
        {"id": "c", "parent_id": "b"},
        {"id": "x", "parent_id": None},
    ]
    assert sorted(t["id"] for t in descendants_of("a", tasks)) == ["b", "c"]
    assert descendants_of("x", tasks) == []
