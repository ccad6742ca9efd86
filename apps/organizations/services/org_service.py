"""
apps.organizations.services.org_service
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Tenant lookup and maintenance, plus the per-vertical settings overview shown
on the organisation settings landing page.

Views must call only these functions.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import structlog
from django.db import transaction
from django.db.models import Count, Q

from apps.organizations.models import Organization
from apps.verticals.constants import VerticalId
from apps.verticals.registry import list_verticals
from common.exceptions import NotFoundError, ValidationError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class VerticalOverview:
    """Customization state of one vertical for one organisation."""

    vertical_id: str
    display_name: str
    is_default: bool
    customized: bool
    version: int | None
    updated_at: datetime | None
    moved_departments: int


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------

def list_organizations(*, search: str | None = None) -> list[Organization]:
    qs = Organization.objects.all()
    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(slug__icontains=search))
    return list(qs.order_by("name"))


def get_organization(org_id: str | int) -> Organization:
    """
    Fetch an :class:`Organization` by integer ID or slug.

    Raises:
        NotFoundError: If no organisation matches.
    """
    if isinstance(org_id, Organization):
        return org_id

    lookup = Q(slug=str(org_id))
    if str(org_id).isdigit():
        lookup |= Q(id=int(org_id))

    org = Organization.objects.filter(lookup).first()
    if org is None:
        raise NotFoundError(f"Organization '{org_id}' not found.")
    return org


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------

def create_organization(*, name: str, default_vertical: str = VerticalId.BUSINESS) -> Organization:
    """
    Raises:
        django.db.IntegrityError: If an organisation with *name* already
            exists (propagated to the caller for HTTP-layer handling).
    """
    with transaction.atomic():
        org = Organization.objects.create(name=name, default_vertical=default_vertical)
    logger.info("organization_created", org_id=org.pk, name=org.name, default_vertical=org.default_vertical)
    return org


def update_organization(
    organization: Organization,
    *,
    name: str | None = None,
    default_vertical: str | None = None,
) -> Organization:
    """
    Rename the organisation or change the vertical it lands on.  The slug is
    kept so existing links keep working.
    """
    changed = []
    if name is not None:
        if not name.strip():
            raise ValidationError("Organisation name cannot be blank.", code="blank_name")
        organization.name = name.strip()
        changed.append("name")
    if default_vertical is not None:
        if default_vertical not in VerticalId.values:
            raise ValidationError(f"Unknown vertical '{default_vertical}'.", code="unknown_vertical")
        organization.default_vertical = default_vertical
        changed.append("default_vertical")

    if changed:
        with transaction.atomic():
            organization.save(update_fields=[*changed, "updated_at"])
        logger.info("organization_updated", org_id=organization.pk, fields=changed)
    return organization


# ---------------------------------------------------------------------------
# Overview
# ---------------------------------------------------------------------------

def get_vertical_overview(organization: Organization) -> list[VerticalOverview]:
    """One entry per registered vertical, in registry order."""
    customizations = {
        c.vertical_id: c
        for c in organization.ui_customizations.filter(is_active=True)
    }
    moved = dict(
        organization.department_assignments
        .order_by()
        .values("vertical_id")
        .annotate(total=Count("id"))
        .values_list("vertical_id", "total")
    )

    overview = []
    for vertical in list_verticals():
        customization = customizations.get(vertical.id)
        overview.append(VerticalOverview(
            vertical_id=vertical.id,
            display_name=vertical.display_name,
            is_default=vertical.id == organization.default_vertical,
            customized=customization is not None,
            version=customization.version if customization else None,
            updated_at=customization.updated_at if customization else None,
            moved_departments=moved.get(vertical.id, 0),
        ))
    return overview
