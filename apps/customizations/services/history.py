"""
apps.customizations.services.history
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Version history: listing, milestones, rollback, comparison and retention.

Retention keeps an entry if **any** of these hold:

1. it is among the ``CUSTOMIZATION_HISTORY_KEEP_RECENT`` newest entries,
2. it is younger than ``CUSTOMIZATION_HISTORY_KEEP_DAYS`` days,
3. it is a milestone.

Everything else is eligible for cleanup.  Cleanup runs after every save and
can be triggered manually.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog
from django.conf import settings
from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from apps.organizations.models import Organization
from common.exceptions import NotFoundError, ValidationError

from ..models import CONFIG_SECTIONS, LOGO_FIELDS, CustomizationHistory, OrganizationCustomization

logger = structlog.get_logger(__name__)

#: Diff category for each configuration block.
_DIFF_CATEGORIES: dict[str, str] = {
    "dashboard_config": "dashboard",
    "navigation_config": "navigation",
    "branding_config": "branding",
    "stats_config": "stats",
    "department_config": "departments",
}


@dataclass(frozen=True)
class CustomizationDiff:
    field: str
    old_value: object
    new_value: object
    category: str


@dataclass(frozen=True)
class RetentionSummary:
    vertical_id: str
    total_entries: int
    milestone_entries: int
    recent_entries: int
    top_entries: int
    eligible_for_cleanup: int


@dataclass(frozen=True)
class CleanupResult:
    vertical_id: str
    deleted_count: int


# ---------------------------------------------------------------------------
# Listing & milestones
# ---------------------------------------------------------------------------

def _history(organization: Organization, vertical_id: str) -> QuerySet[CustomizationHistory]:
    return CustomizationHistory.objects.filter(organization=organization, vertical_id=str(vertical_id))


def list_history(
    *,
    organization: Organization,
    vertical_id: str,
    limit: int | None = None,
    offset: int = 0,
    milestones_only: bool = False,
) -> list[CustomizationHistory]:
    """History entries, newest first."""
    qs = _history(organization, vertical_id).select_related("changed_by").order_by("-created_at", "-version_number")
    if milestones_only:
        qs = qs.filter(is_milestone=True)
    if limit is not None:
        return list(qs[offset:offset + limit])
    return list(qs[offset:])


def get_history_entry(history_id, *, organization: Organization | None = None, vertical_id: str | None = None) -> CustomizationHistory:
    qs = CustomizationHistory.objects.all()
    if organization is not None:
        qs = qs.filter(organization=organization)
    if vertical_id is not None:
        qs = qs.filter(vertical_id=str(vertical_id))
    try:
        return qs.get(pk=history_id)
    except (CustomizationHistory.DoesNotExist, ValueError):
        raise NotFoundError(f"History entry '{history_id}' not found.") from None


def mark_milestone(
    *,
    history_id,
    name: str,
    notes: str | None = None,
    organization: Organization | None = None,
    vertical_id: str | None = None,
) -> CustomizationHistory:
    """Flag an entry as a milestone.  Milestones are never cleaned up."""
    if not name or not name.strip():
        raise ValidationError("A milestone needs a name.", code="milestone_name_required")

    entry = get_history_entry(history_id, organization=organization, vertical_id=vertical_id)
    entry.is_milestone = True
    entry.milestone_name = name.strip()
    update_fields = ["is_milestone", "milestone_name"]
    if notes is not None:
        entry.change_note = notes
        update_fields.append("change_note")
    entry.save(update_fields=update_fields)

    logger.info(
        "customization_milestone_marked",
        history_id=entry.pk,
        version=entry.version_number,
        milestone_name=entry.milestone_name,
    )
    return entry


def rollback_to_version(
    *,
    organization: Organization,
    vertical_id: str,
    history_id,
    actor=None,
) -> OrganizationCustomization:
    """
    Restore a past snapshot as a **new** version.  Intermediate versions stay
    in history.
    """
    from .customization_service import save_customization  # noqa: PLC0415

    entry = get_history_entry(history_id, organization=organization, vertical_id=vertical_id)
    snapshot = entry.config_snapshot or {}
    restored = {section: snapshot.get(section) or {} for section in CONFIG_SECTIONS}
    restored.update({column: snapshot.get(column) for column in LOGO_FIELDS})

    saved = save_customization(
        organization=organization,
        vertical_id=vertical_id,
        customization=restored,
        change_description=f"Rolled back to version {entry.version_number}",
        change_note=f"Restored configuration from history entry {entry.pk}",
        actor=actor,
    )
    logger.info(
        "customization_rolled_back",
        organization_id=organization.pk,
        vertical_id=str(vertical_id),
        restored_version=entry.version_number,
        new_version=saved.version,
    )
    return saved


# ---------------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------------

def _as_snapshot(value) -> dict:
    if isinstance(value, OrganizationCustomization):
        return value.snapshot()
    if isinstance(value, CustomizationHistory):
        return value.config_snapshot or {}
    return value or {}


def _canonical(value) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def compare_versions(old, new) -> list[CustomizationDiff]:
    """
    Key-level differences between two snapshots, one level deep per block.

    *old* and *new* may be snapshots, customizations or history entries.
    """
    old_snapshot, new_snapshot = _as_snapshot(old), _as_snapshot(new)
    diffs: list[CustomizationDiff] = []

    for section, category in _DIFF_CATEGORIES.items():
        old_block = old_snapshot.get(section) or {}
        new_block = new_snapshot.get(section) or {}
        keys = list(old_block) + [key for key in new_block if key not in old_block]
        for key in keys:
            old_value, new_value = old_block.get(key), new_block.get(key)
            if _canonical(old_value) != _canonical(new_value):
                diffs.append(CustomizationDiff(
                    field=f"{category}.{key}",
                    old_value=old_value,
                    new_value=new_value,
                    category=category,
                ))
    return diffs


# ---------------------------------------------------------------------------
# Retention
# ---------------------------------------------------------------------------

def _eligible(qs: QuerySet[CustomizationHistory], now: datetime) -> QuerySet[CustomizationHistory]:
    keep_recent = settings.CUSTOMIZATION_HISTORY_KEEP_RECENT
    cutoff = now - timedelta(days=settings.CUSTOMIZATION_HISTORY_KEEP_DAYS)
    newest = list(
        qs.order_by("-created_at", "-version_number").values_list("pk", flat=True)[:keep_recent]
    )
    return qs.filter(created_at__lt=cutoff, is_milestone=False).exclude(pk__in=newest)


def _verticals_with_history(organization: Organization, vertical_id: str | None) -> list[str]:
    if vertical_id is not None:
        return [str(vertical_id)]
    return sorted(
        CustomizationHistory.objects
        .filter(organization=organization)
        .values_list("vertical_id", flat=True)
        .distinct()
    )


def get_retention_summary(
    *,
    organization: Organization,
    vertical_id: str | None = None,
    now: datetime | None = None,
) -> list[RetentionSummary]:
    now = now or timezone.now()
    cutoff = now - timedelta(days=settings.CUSTOMIZATION_HISTORY_KEEP_DAYS)
    summaries = []
    for vertical in _verticals_with_history(organization, vertical_id):
        qs = _history(organization, vertical)
        total = qs.count()
        summaries.append(RetentionSummary(
            vertical_id=vertical,
            total_entries=total,
            milestone_entries=qs.filter(is_milestone=True).count(),
            recent_entries=qs.filter(created_at__gte=cutoff).count(),
            top_entries=min(total, settings.CUSTOMIZATION_HISTORY_KEEP_RECENT),
            eligible_for_cleanup=_eligible(qs, now).count(),
        ))
    return summaries


def apply_retention_policy(*, organization: Organization, vertical_id: str, now: datetime | None = None) -> int:
    """Delete entries outside the retention rules.  Returns rows deleted."""
    deleted, _ = _eligible(_history(organization, vertical_id), now or timezone.now()).delete()
    if deleted:
        logger.info(
            "customization_history_pruned",
            organization_id=organization.pk,
            vertical_id=str(vertical_id),
            deleted=deleted,
        )
    return deleted


def cleanup_history(
    *,
    organization: Organization,
    vertical_id: str | None = None,
    dry_run: bool = False,
    now: datetime | None = None,
) -> list[CleanupResult]:
    """Manual cleanup across one or every vertical of *organization*."""
    now = now or timezone.now()
    results = []
    with transaction.atomic():
        for vertical in _verticals_with_history(organization, vertical_id):
            if dry_run:
                count = _eligible(_history(organization, vertical), now).count()
            else:
                count = apply_retention_policy(organization=organization, vertical_id=vertical, now=now)
            results.append(CleanupResult(vertical_id=vertical, deleted_count=count))
    return results
