"""
apps.customizations.services.draft
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Editable working copy of a customization.

The draft is mirrored to the cache under a per-owner key whenever it holds
unsaved changes, so an interrupted editing session can be resumed.  The
cached copy is dropped on save, on discard and on vertical switch.
"""
from __future__ import annotations

import copy
from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog
from django.conf import settings
from django.core.cache import cache as default_cache
from django.utils import timezone

from apps.organizations.models import Organization
from common.exceptions import ValidationError

from ..models import CONFIG_SECTIONS, OrganizationCustomization
from . import customization_service, history

logger = structlog.get_logger(__name__)


@dataclass
class CustomizationDraft:
    dashboard_config: dict = field(default_factory=dict)
    navigation_config: dict = field(default_factory=dict)
    branding_config: dict = field(default_factory=dict)
    stats_config: dict = field(default_factory=dict)
    department_config: dict = field(default_factory=dict)
    has_changes: bool = False
    last_saved: str | None = None

    @classmethod
    def from_customization(cls, customization: OrganizationCustomization | None) -> "CustomizationDraft":
        if customization is None:
            return cls()
        return cls(
            **{section: copy.deepcopy(getattr(customization, section) or {}) for section in CONFIG_SECTIONS},
            last_saved=customization.updated_at.isoformat() if customization.updated_at else None,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "CustomizationDraft":
        return cls(
            **{section: copy.deepcopy(data.get(section) or {}) for section in CONFIG_SECTIONS},
            has_changes=bool(data.get("has_changes")),
            last_saved=data.get("last_saved"),
        )

    def blocks(self) -> dict:
        return {section: copy.deepcopy(getattr(self, section)) for section in CONFIG_SECTIONS}

    def to_dict(self) -> dict:
        return {**self.blocks(), "has_changes": self.has_changes, "last_saved": self.last_saved}


class DraftManager:
    """
    Load, edit and persist the draft of one organisation/vertical for one
    editor (*owner_key*, typically the user id or session key).
    """

    def __init__(self, organization: Organization, vertical_id: str, *, owner_key: str, cache=None, actor=None) -> None:
        self.organization = organization
        self.vertical_id = str(vertical_id)
        self.owner_key = str(owner_key)
        self.cache = cache or default_cache
        self.actor = actor
        self.timeout: int = settings.CUSTOMIZATION_DRAFT_TTL_SECONDS
        self.customization: OrganizationCustomization | None = None
        self.draft = CustomizationDraft()
        self.recovered = False

    @property
    def cache_key(self) -> str:
        return f"customizations:draft:{self.organization.pk}:{self.vertical_id}:{self.owner_key}"

    @property
    def has_unsaved_changes(self) -> bool:
        return self.draft.has_changes

    def load(self) -> CustomizationDraft:
        self.customization = customization_service.get_active_customization(
            organization=self.organization, vertical_id=self.vertical_id
        )
        self.draft = CustomizationDraft.from_customization(self.customization)
        self.recovered = False

        cached = self.cache.get(self.cache_key)
        if cached and cached.get("has_changes"):
            self.draft = CustomizationDraft.from_dict(cached)
            self.recovered = True
            logger.info(
                "customization_draft_recovered",
                organization_id=self.organization.pk,
                vertical_id=self.vertical_id,
            )
        return self.draft

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def update(self, section: str, value: dict) -> CustomizationDraft:
        if section not in CONFIG_SECTIONS:
            raise ValidationError(f'"{section}" is not a customization section.', code="unknown_section")
        setattr(self.draft, section, copy.deepcopy(value or {}))
        self._touch()
        return self.draft

    def update_field(self, section: str, key: str, value) -> CustomizationDraft:
        if section not in CONFIG_SECTIONS:
            raise ValidationError(f'"{section}" is not a customization section.', code="unknown_section")
        block = dict(getattr(self.draft, section))
        block[key] = copy.deepcopy(value)
        setattr(self.draft, section, block)
        self._touch()
        return self.draft

    def reset_to_defaults(self) -> CustomizationDraft:
        """Clear every block; nothing is persisted until :meth:`save`."""
        for section in CONFIG_SECTIONS:
            setattr(self.draft, section, {})
        self._touch()
        return self.draft

    def _touch(self) -> None:
        self.draft.has_changes = True
        self.cache.set(self.cache_key, self.draft.to_dict(), self.timeout)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *, change_description: str | None = None, change_note: str | None = None) -> OrganizationCustomization:
        saved = customization_service.save_customization(
            organization=self.organization,
            vertical_id=self.vertical_id,
            customization=self.draft.blocks(),
            change_description=change_description,
            change_note=change_note,
            actor=self.actor,
        )
        self._adopt(saved)
        self.draft.last_saved = timezone.now().isoformat()
        return saved

    def discard(self) -> CustomizationDraft:
        self.cache.delete(self.cache_key)
        return self.load()

    def switch_vertical(self, vertical_id: str, *, discard_unsaved: bool = False) -> bool:
        """
        Move the editor to another vertical.  Refuses while there are unsaved
        changes unless *discard_unsaved* is set.
        """
        if self.draft.has_changes and not discard_unsaved:
            return False
        self.cache.delete(self.cache_key)
        self.vertical_id = str(vertical_id)
        self.load()
        return True

    def rollback(self, history_id) -> OrganizationCustomization:
        saved = history.rollback_to_version(
            organization=self.organization,
            vertical_id=self.vertical_id,
            history_id=history_id,
            actor=self.actor,
        )
        self._adopt(saved)
        return saved

    def copy_from(self, source_vertical_id: str, include: Iterable[str]) -> OrganizationCustomization:
        saved = customization_service.copy_from_vertical(
            organization=self.organization,
            source_vertical_id=source_vertical_id,
            target_vertical_id=self.vertical_id,
            include=include,
            actor=self.actor,
        )
        self._adopt(saved)
        return saved

    def import_json(self, json_data: str) -> OrganizationCustomization:
        saved = customization_service.import_customization(
            organization=self.organization,
            vertical_id=self.vertical_id,
            json_data=json_data,
            actor=self.actor,
        )
        self._adopt(saved)
        return saved

    def export_json(self) -> str:
        return customization_service.export_customization(
            organization=self.organization, vertical_id=self.vertical_id
        )

    def _adopt(self, customization: OrganizationCustomization) -> None:
        self.cache.delete(self.cache_key)
        self.customization = customization
        self.draft = CustomizationDraft.from_customization(customization)
        self.recovered = False
