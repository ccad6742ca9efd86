"""
apps.customizations.services.customization_service
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Business logic for reading and saving organisation customizations.

Every save bumps ``version`` by one and writes a matching history entry in
the same transaction, so the row and its history can never disagree.

Public API
----------
get_active_customization(organization, vertical_id)
save_customization(organization, vertical_id, customization, ...)
copy_from_vertical(organization, source_vertical_id, target_vertical_id, include)
export_customization(organization, vertical_id) -> str
import_customization(organization, vertical_id, json_data)
get_effective_settings(organization, vertical_id) -> dict
"""
from __future__ import annotations

import json
from collections.abc import Iterable

import structlog
from django.core.serializers.json import DjangoJSONEncoder
from django.db import IntegrityError, transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from apps.organizations.models import Organization
from apps.verticals.registry import get_vertical_config
from common.exceptions import ConflictError, NotFoundError, ValidationError

from ..models import CONFIG_SECTIONS, LOGO_FIELDS, CustomizationHistory, OrganizationCustomization
from ..validators import CustomizationValidator
from .field_merge import apply_customization, merge_items

logger = structlog.get_logger(__name__)

#: Copy categories and the columns each one carries over.
COPY_CATEGORIES: dict[str, tuple[str, ...]] = {
    "dashboard": ("dashboard_config",),
    "navigation": ("navigation_config",),
    "branding": ("branding_config", *LOGO_FIELDS),
    "stats": ("stats_config",),
    "departments": ("department_config",),
}


def get_active_customization(*, organization: Organization, vertical_id: str) -> OrganizationCustomization | None:
    return (
        OrganizationCustomization.objects
        .filter(organization=organization, vertical_id=str(vertical_id), is_active=True)
        .first()
    )


def _column_values(customization: dict) -> dict:
    """Map a customization dict onto model column values."""
    values = {}
    for section in CONFIG_SECTIONS:
        if section in customization:
            values[section] = customization[section] or {}
    if "logo_url" in customization:
        values["logo_url"] = customization["logo_url"] or ""
    if "logo_format" in customization:
        values["logo_format"] = customization["logo_format"] or ""
    if "logo_file_size" in customization:
        values["logo_file_size"] = customization["logo_file_size"]
    if "logo_uploaded_at" in customization:
        uploaded_at = customization["logo_uploaded_at"]
        if isinstance(uploaded_at, str):
            uploaded_at = parse_datetime(uploaded_at)
        values["logo_uploaded_at"] = uploaded_at
    return values


def create_history_entry(
    *,
    customization: OrganizationCustomization,
    change_description: str,
    change_note: str | None = None,
    actor=None,
) -> CustomizationHistory:
    return CustomizationHistory.objects.create(
        customization=customization,
        organization=customization.organization,
        vertical_id=customization.vertical_id,
        config_snapshot=json.loads(json.dumps(customization.snapshot(), cls=DjangoJSONEncoder)),
        version_number=customization.version,
        change_description=change_description,
        change_note=change_note or "",
        changed_by=actor,
    )


def save_customization(
    *,
    organization: Organization,
    vertical_id: str,
    customization: dict,
    change_description: str | None = None,
    change_note: str | None = None,
    actor=None,
) -> OrganizationCustomization:
    """
    Create or update the active customization and record a history entry.

    Only the keys present in *customization* are written; absent blocks keep
    their stored value.

    Raises:
        CustomizationValidationError: If a block has the wrong shape.
        ConflictError: If a concurrent request created the active row first.
    """
    from .history import apply_retention_policy  # noqa: PLC0415

    vertical_id = str(vertical_id)
    get_vertical_config(vertical_id)
    CustomizationValidator.validate(customization)
    values = _column_values(customization)

    with transaction.atomic():
        existing = (
            OrganizationCustomization.objects
            .select_for_update()
            .filter(organization=organization, vertical_id=vertical_id, is_active=True)
            .first()
        )
        if existing is not None:
            for field_name, value in values.items():
                setattr(existing, field_name, value)
            existing.version += 1
            existing.updated_by = actor
            existing.save()
            saved = existing
            description = change_description or "Updated customization"
        else:
            try:
                with transaction.atomic():
                    saved = OrganizationCustomization.objects.create(
                        organization=organization,
                        vertical_id=vertical_id,
                        version=1,
                        is_active=True,
                        created_by=actor,
                        updated_by=actor,
                        **values,
                    )
            except IntegrityError:
                logger.warning(
                    "customization_create_conflict",
                    organization_id=organization.pk,
                    vertical_id=vertical_id,
                )
                raise ConflictError(
                    "This customization was created by another request. Reload and try again.",
                    code="concurrent_update",
                ) from None
            description = change_description or "Created initial customization"

        create_history_entry(
            customization=saved,
            change_description=description,
            change_note=change_note,
            actor=actor,
        )
        apply_retention_policy(organization=organization, vertical_id=vertical_id)

    logger.info(
        "customization_saved",
        organization_id=organization.pk,
        vertical_id=vertical_id,
        version=saved.version,
    )
    return saved


def copy_from_vertical(
    *,
    organization: Organization,
    source_vertical_id: str,
    target_vertical_id: str,
    include: Iterable[str],
    actor=None,
) -> OrganizationCustomization:
    """
    Copy the chosen categories of one vertical's customization onto another.

    *include* names categories from :data:`COPY_CATEGORIES`; branding brings
    the logo columns along.
    """
    requested = set(include)
    include = [category for category in COPY_CATEGORIES if category in requested]
    if not include:
        raise ValidationError("Select at least one category to copy.")

    source = get_active_customization(organization=organization, vertical_id=source_vertical_id)
    if source is None:
        raise NotFoundError(f"No customization found for {source_vertical_id}.")

    snapshot = source.snapshot()
    payload = {
        column: snapshot[column]
        for category in include
        for column in COPY_CATEGORIES[category]
    }
    saved = save_customization(
        organization=organization,
        vertical_id=target_vertical_id,
        customization=payload,
        change_description=f"Copied settings from {source_vertical_id}",
        change_note=f"Copied: {', '.join(include)}",
        actor=actor,
    )
    logger.info(
        "customization_copied",
        organization_id=organization.pk,
        source_vertical_id=str(source_vertical_id),
        target_vertical_id=str(target_vertical_id),
        categories=include,
    )
    return saved


def export_customization(*, organization: Organization, vertical_id: str) -> str:
    customization = get_active_customization(organization=organization, vertical_id=vertical_id)
    if customization is None:
        raise NotFoundError("No customization found to export.")

    document = {
        "organization_id": organization.pk,
        "vertical_id": customization.vertical_id,
        "exported_at": timezone.now(),
        **customization.snapshot(),
    }
    return json.dumps(document, indent=2, cls=DjangoJSONEncoder)


def import_customization(
    *,
    organization: Organization,
    vertical_id: str,
    json_data: str,
    actor=None,
) -> OrganizationCustomization:
    """
    Save the configuration blocks found in an exported document.

    Logo columns and metadata in the document are ignored.

    Raises:
        ValidationError: If *json_data* is not a JSON object.
    """
    try:
        document = json.loads(json_data)
    except (TypeError, ValueError) as exc:
        raise ValidationError("Invalid JSON data", code="invalid_json") from exc
    if not isinstance(document, dict):
        raise ValidationError("Invalid JSON data", code="invalid_json")

    blocks = {
        section: document[section]
        for section in CONFIG_SECTIONS
        if document.get(section) is not None
    }
    return save_customization(
        organization=organization,
        vertical_id=vertical_id,
        customization=blocks,
        change_description="Imported customization from JSON",
        change_note="Configuration imported from external file",
        actor=actor,
    )


def get_effective_settings(*, organization: Organization, vertical_id: str) -> dict:
    """
    The vertical defaults with the organisation's customization applied.

    Department placement is not included; it comes from the department
    layout.
    """
    base = get_vertical_config(vertical_id)
    customization = get_active_customization(organization=organization, vertical_id=vertical_id)
    snapshot = customization.snapshot() if customization else {}

    dashboard = apply_customization(base.dashboard, snapshot.get("dashboard_config"))

    branding_block = dict(snapshot.get("branding_config") or {})
    branding = apply_customization(
        {
            "colors": base.branding_colors,
            "organization_name": organization.name,
            "logo_url": snapshot.get("logo_url"),
            "logo_format": snapshot.get("logo_format"),
        },
        branding_block,
    )

    stats_block = snapshot.get("stats_config") or {}
    cards = merge_items(
        [{"id": card.id, "label": card.label, "metric_type": card.metric_type} for card in base.stat_cards],
        stats_block.get("cards"),
    )

    nav_block = snapshot.get("navigation_config") or {}
    navigation = merge_items(
        [
            {"id": dept.id, "name": dept.default_name, "route": dept.route}
            for dept in base.departments
        ],
        nav_block.get("items"),
    )

    department_block = snapshot.get("department_config") or {}
    departments = apply_customization(
        {
            "core_section_title": dashboard.get("core_section_title"),
            "additional_section_title": dashboard.get("additional_section_title"),
        },
        {key: value for key, value in department_block.items() if key != "departments"},
    )
    departments["departments"] = merge_items(
        [
            {
                "id": dept.id,
                "name": dept.default_name,
                "description": dept.default_description,
                "is_core": dept.is_core,
            }
            for dept in base.departments
        ],
        department_block.get("departments"),
    )

    return {
        "vertical_id": base.id,
        "display_name": base.display_name,
        "version": customization.version if customization else None,
        "dashboard": dashboard,
        "branding": branding,
        "stats": {"cards": cards},
        "navigation": {"items": navigation},
        "departments": departments,
    }
