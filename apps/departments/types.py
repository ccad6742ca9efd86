"""
apps.departments.types
~~~~~~~~~~~~~~~~~~~~~~
Plain value types shared by the merger, the assignment store and the layout
reconciler.  They carry no ORM state so the merger stays pure.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AssignmentRow:
    """A persisted placement as read back from the assignment table."""

    department_id: str
    section_id: str
    display_order: int
    is_visible: bool = True


@dataclass(frozen=True)
class Placement:
    """A placement about to be written: section, position and visibility."""

    department_id: str
    section_id: str
    display_order: int
    is_visible: bool = True


@dataclass(frozen=True)
class DndDepartmentItem:
    """
    One department as rendered by the layout editor.

    ``display_order`` is ``None`` for departments that have never been moved;
    they sit after every assigned department of their section.
    """

    department_id: str
    section_id: str
    display_order: int | None
    visible: bool
    default_name: str
    default_description: str = ""
    custom_name: str | None = None
    custom_description: str | None = None
    is_core: bool = False
    has_assignment: bool = False

    @property
    def name(self) -> str:
        return self.custom_name or self.default_name

    @property
    def description(self) -> str:
        return self.custom_description or self.default_description

    def to_dict(self) -> dict:
        return {
            "department_id": self.department_id,
            "section_id": self.section_id,
            "display_order": self.display_order,
            "visible": self.visible,
            "name": self.name,
            "description": self.description,
            "default_name": self.default_name,
            "custom_name": self.custom_name,
            "is_core": self.is_core,
            "has_assignment": self.has_assignment,
        }


#: Section id → ordered departments, keyed in sidebar render order.
SectionedDepartments = dict[str, list[DndDepartmentItem]]
