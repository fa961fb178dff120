"""
Status vocabularies for commerces, projects and tasks.

Each enum value is the label shown in the UI. Older clients and imported
data use French/English synonyms for the same state; `parse` collapses them
so the rest of the code only compares enum members.
"""

from enum import Enum
from typing import Dict, Optional


def _key(label: str) -> str:
    return " ".join(label.strip().lower().split())


class _LabelEnum(str, Enum):
    @classmethod
    def _synonyms(cls) -> Dict[str, str]:
        return {}

    @classmethod
    def parse(cls, label):
        """Return the member matching `label` or one of its synonyms."""
        if isinstance(label, cls):
            return label
        if label is None:
            raise ValueError(f"{cls.__name__} cannot be empty")
        key = _key(str(label))
        for member in cls:
            if _key(member.value) == key or _key(member.name) == key:
                return member
        target = cls._synonyms().get(key)
        if target is not None:
            return cls[target]
        raise ValueError(f"Unknown {cls.__name__}: {label!r}")

    @classmethod
    def try_parse(cls, label) -> Optional["_LabelEnum"]:
        try:
            return cls.parse(label)
        except ValueError:
            return None


class CommerceStatus(_LabelEnum):
    PROSPECT = "À démarcher"
    IN_PROGRESS = "En cours"
    WON = "Gagné"
    LOST = "Perdu"
    ARCHIVED = "Archivé"

    @classmethod
    def _synonyms(cls) -> Dict[str, str]:
        return {
            "lead": "PROSPECT",
            "prospect": "PROSPECT",
            "to contact": "PROSPECT",
            "a demarcher": "PROSPECT",
            "in progress": "IN_PROGRESS",
            "won": "WON",
            "gagne": "WON",
            "lost": "LOST",
            "archived": "ARCHIVED",
            "archive": "ARCHIVED",
        }

    @property
    def is_active(self) -> bool:
        return self in (CommerceStatus.IN_PROGRESS, CommerceStatus.WON)


class ProjectStatus(_LabelEnum):
    PLANNED = "📅 Planifié"
    IN_PROGRESS = "🔄 En cours"
    COMPLETED = "✅ Terminé"
    ARCHIVED = "📦 Archivé"

    @classmethod
    def _synonyms(cls) -> Dict[str, str]:
        return {
            "planned": "PLANNED",
            "planifié": "PLANNED",
            "in progress": "IN_PROGRESS",
            "en cours": "IN_PROGRESS",
            "actif": "IN_PROGRESS",
            "completed": "COMPLETED",
            "done": "COMPLETED",
            "terminé": "COMPLETED",
            "archived": "ARCHIVED",
            "archivé": "ARCHIVED",
        }


class TaskStatus(_LabelEnum):
    TODO = "To do"
    IN_PROGRESS = "In progress"
    DONE = "Done"
    ARCHIVED = "Archived"

    @classmethod
    def _synonyms(cls) -> Dict[str, str]:
        return {
            "todo": "TODO",
            "à faire": "TODO",
            "a faire": "TODO",
            "en cours": "IN_PROGRESS",
            "terminé": "DONE",
            "terminée": "DONE",
            "archivé": "ARCHIVED",
        }


DEFAULT_TASK_CATEGORY = "🔧 Opérations"
UNASSIGNED = "Unassigned"
