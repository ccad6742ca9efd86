"""
apps.departments.services.merger
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Deterministic, pure-function department merger.

Combines three layers into the sectioned layout the editor renders:

    1. **Registry** - the vertical's declared departments, their default
       names and their home sections.  Every registry department appears in
       the output exactly once.
    2. **Assignments** - the organisation's persisted placements.  They
       decide section, order and visibility.
    3. **Department config** - the organisation's saved label overrides
       (``department_config["departments"]``).  They only change names and
       descriptions.

Assignments naming a department the vertical does not declare are dropped.
Assignments naming an unknown section fall back to the department's home
section.  Within a section, assigned departments come first ordered by
``display_order`` (ties broken by registry order) followed by unassigned
departments in registry order.

Inputs are never mutated and no ORM is touched.

Public API
----------
merge_departments(base_config, assignments, department_config) -> SectionedDepartments
flatten_sections(sections) -> dict[str, tuple[str, int]]
"""
from __future__ import annotations

from collections.abc import Iterable

from apps.verticals.constants import SECTION_ORDER
from apps.verticals.registry import VerticalConfig

from ..types import AssignmentRow, DndDepartmentItem, SectionedDepartments


def merge_departments(
    base_config: VerticalConfig,
    assignments: Iterable[AssignmentRow],
    department_config: dict | None = None,
) -> SectionedDepartments:
    known_ids = set(base_config.department_ids())
    rows: dict[str, AssignmentRow] = {}
    for row in assignments:
        if row.department_id in known_ids:
            rows[row.department_id] = row

    overrides = _label_overrides(department_config)

    assigned: dict[str, list[tuple[int, int, DndDepartmentItem]]] = {s: [] for s in SECTION_ORDER}
    unassigned: dict[str, list[DndDepartmentItem]] = {s: [] for s in SECTION_ORDER}

    for index, department in enumerate(base_config.departments):
        labels = overrides.get(department.id, {})
        row = rows.get(department.id)

        if row is None:
            item = DndDepartmentItem(
                department_id=department.id,
                section_id=department.home_section,
                display_order=None,
                visible=True,
                default_name=department.default_name,
                default_description=department.default_description,
                custom_name=labels.get("name"),
                custom_description=labels.get("description"),
                is_core=department.is_core,
            )
            unassigned[department.home_section].append(item)
            continue

        section = row.section_id if row.section_id in assigned else department.home_section
        item = DndDepartmentItem(
            department_id=department.id,
            section_id=section,
            display_order=row.display_order,
            visible=row.is_visible,
            default_name=department.default_name,
            default_description=department.default_description,
            custom_name=labels.get("name"),
            custom_description=labels.get("description"),
            is_core=department.is_core,
            has_assignment=True,
        )
        assigned[section].append((row.display_order, index, item))

    return {
        section: [item for _, _, item in sorted(assigned[section], key=lambda t: (t[0], t[1]))]
        + unassigned[section]
        for section in SECTION_ORDER
    }


def flatten_sections(sections: SectionedDepartments) -> dict[str, tuple[str, int]]:
    """Map each department id to its ``(section_id, position)``."""
    return {
        item.department_id: (section, position)
        for section, items in sections.items()
        for position, item in enumerate(items)
    }


def _label_overrides(department_config: dict | None) -> dict[str, dict[str, str]]:
    """Non-blank name/description overrides keyed by department id."""
    if not isinstance(department_config, dict):
        return {}
    entries = department_config.get("departments") or []
    if not isinstance(entries, list):
        return {}

    overrides: dict[str, dict[str, str]] = {}
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("id"):
            continue
        labels = {
            key: entry[key]
            for key in ("name", "description")
            if isinstance(entry.get(key), str) and entry[key].strip()
        }
        if labels:
            overrides[entry["id"]] = labels
    return overrides
