"""
apps.departments.models
~~~~~~~~~~~~~~~~~~~~~~~
DepartmentSectionAssignment – an organisation's placement of one department
in the sidebar for one vertical.
"""
from django.conf import settings
from django.db import models

from apps.organizations.models import Organization
from apps.verticals.constants import SectionId, VerticalId


class DepartmentSectionAssignment(models.Model):
    """
    Section, order and visibility of a department for one
    ``(organization, vertical)`` pair.

    Rows are created implicitly on the first move or visibility toggle and
    updated on every later change.  They are only removed in bulk by
    reset-to-defaults or when the organisation is deleted.  Departments
    without a row fall back to their vertical's home section.

    ``display_order`` is unique-ish within a section; gaps are allowed and
    ties are broken by the vertical's declared department order.
    """

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="department_assignments",
    )
    vertical_id = models.CharField(max_length=32, choices=VerticalId.choices)
    department_id = models.CharField(
        max_length=100,
        help_text="Stable department key from the vertical registry.",
    )
    section_id = models.CharField(max_length=20, choices=SectionId.choices)
    display_order = models.PositiveIntegerField(default=0)
    is_visible = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        db_table = "department_section_assignments"
        ordering = ["section_id", "display_order"]
        verbose_name = "Department Section Assignment"
        verbose_name_plural = "Department Section Assignments"
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "vertical_id", "department_id"],
                name="unique_department_assignment",
            ),
        ]
        indexes = [
            models.Index(
                fields=["organization", "vertical_id"],
                name="dept_assign_org_vertical_idx",
            ),
        ]

    def __str__(self) -> str:
        return (
            f"{self.organization_id}/{self.vertical_id}/{self.department_id} "
            f"→ {self.section_id}#{self.display_order}"
        )
