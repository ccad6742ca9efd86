"""
apps.departments.services.assignment_store
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Read/write access to ``department_section_assignments`` for one
``(organization, vertical)`` pair.

Database errors are classified before they leave this module:

* undefined table (SQLSTATE ``42P01``)   -> AssignmentTableMissingError
* insufficient privilege (``42501``)     -> AssignmentPermissionError
* anything else                          -> AssignmentStoreError (transient)

Each write call publishes a single change to the realtime feed once its
transaction commits, tagged with the store's *origin* so listeners can skip
their own echoes.
"""
from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager

import structlog
from django.db import DatabaseError, connection, transaction

from apps.organizations.models import Organization

from ..exceptions import (
    AssignmentPermissionError,
    AssignmentStoreError,
    AssignmentTableMissingError,
)
from ..models import DepartmentSectionAssignment
from ..realtime import AssignmentChange, batched_changes, change_origin, publish_on_commit
from ..types import AssignmentRow, Placement

logger = structlog.get_logger(__name__)

_UNDEFINED_TABLE = "42P01"
_INSUFFICIENT_PRIVILEGE = "42501"


def classify_database_error(exc: DatabaseError) -> AssignmentStoreError:
    """Translate a driver error into the store's error hierarchy."""
    cause = exc.__cause__ or exc
    sqlstate = getattr(cause, "sqlstate", None) or getattr(cause, "pgcode", None)
    message = str(exc).lower()

    if sqlstate == _UNDEFINED_TABLE or "no such table" in message or (
        "relation" in message and "does not exist" in message
    ):
        return AssignmentTableMissingError()
    if sqlstate == _INSUFFICIENT_PRIVILEGE or "permission denied" in message:
        return AssignmentPermissionError()
    return AssignmentStoreError()


@contextmanager
def _translate_errors(operation: str, **context) -> Iterator[None]:
    try:
        yield
    except DatabaseError as exc:
        error = classify_database_error(exc)
        logger.warning(
            "department_assignment_store_error",
            operation=operation,
            code=error.code,
            error=str(exc),
            **context,
        )
        raise error from exc


class AssignmentStore:
    def __init__(
        self,
        organization: Organization,
        vertical_id: str,
        *,
        origin: str | None = None,
        actor=None,
    ) -> None:
        self.organization = organization
        self.vertical_id = str(vertical_id)
        self.origin = origin
        self.actor = actor

    def _queryset(self):
        return DepartmentSectionAssignment.objects.filter(
            organization=self.organization,
            vertical_id=self.vertical_id,
        )

    def fetch(self) -> list[AssignmentRow]:
        with _translate_errors("fetch", organization_id=self.organization.pk, vertical_id=self.vertical_id):
            return [
                AssignmentRow(
                    department_id=row.department_id,
                    section_id=row.section_id,
                    display_order=row.display_order,
                    is_visible=row.is_visible,
                )
                for row in self._queryset().order_by("section_id", "display_order", "id")
            ]

    def save_placements(self, placements: Iterable[Placement]) -> int:
        """Upsert every placement in one transaction.  Returns rows written."""
        placements = list(placements)
        if not placements:
            return 0

        with _translate_errors("save", organization_id=self.organization.pk, vertical_id=self.vertical_id):
            with change_origin(self.origin), batched_changes(), transaction.atomic():
                created = [
                    DepartmentSectionAssignment.objects.update_or_create(
                        organization=self.organization,
                        vertical_id=self.vertical_id,
                        department_id=placement.department_id,
                        defaults={
                            "section_id": placement.section_id,
                            "display_order": placement.display_order,
                            "is_visible": placement.is_visible,
                            "updated_by": self.actor,
                        },
                    )[1]
                    for placement in placements
                ]
                self._publish("INSERT" if all(created) else "UPDATE", [p.department_id for p in placements])

        logger.info(
            "department_assignments_saved",
            organization_id=self.organization.pk,
            vertical_id=self.vertical_id,
            count=len(placements),
        )
        return len(placements)

    def delete_all(self) -> int:
        """Remove every assignment of this org/vertical.  Returns rows deleted."""
        with _translate_errors("delete", organization_id=self.organization.pk, vertical_id=self.vertical_id):
            with change_origin(self.origin), batched_changes(), transaction.atomic():
                department_ids = list(
                    self._queryset().select_for_update().values_list("department_id", flat=True)
                )
                if department_ids:
                    self._queryset().delete()
                    self._publish("DELETE", department_ids)

        logger.info(
            "department_assignments_reset",
            organization_id=self.organization.pk,
            vertical_id=self.vertical_id,
            count=len(department_ids),
        )
        return len(department_ids)

    def _publish(self, event_type: str, department_ids: list[str]) -> None:
        publish_on_commit(
            AssignmentChange(
                event_type=event_type,
                organization_id=self.organization.pk,
                vertical_id=self.vertical_id,
                department_ids=tuple(department_ids),
                origin=self.origin,
            )
        )

    @staticmethod
    def table_exists() -> bool:
        table = DepartmentSectionAssignment._meta.db_table
        try:
            return table in connection.introspection.table_names()
        except DatabaseError:
            return False
