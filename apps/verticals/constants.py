"""
apps.verticals.constants
~~~~~~~~~~~~~~~~~~~~~~~~
Identifiers shared by every app that is scoped by vertical or section.
"""
from django.db import models


class VerticalId(models.TextChoices):
    CHURCH = "church", "Church"
    BUSINESS = "business", "Business"
    ESTATE = "estate", "Estate"


class SectionId(models.TextChoices):
    """Navigational groupings a department can be placed in."""

    DOCUMENTS = "documents", "Documents"
    DEPARTMENTS = "departments", "Departments"
    OPERATIONS = "operations", "Operations"
    ADMIN = "admin", "Admin"


#: Render order of the sidebar sections.
SECTION_ORDER: tuple[str, ...] = tuple(SectionId.values)
