"""
apps.customizations.models
~~~~~~~~~~~~~~~~~~~~~~~~~~
Models for organisation UI customisation.

Models
------
OrganizationCustomization
    The organisation's current settings for one vertical.  At most one row
    per ``(organization, vertical_id)`` may be active, enforced by a partial
    unique constraint.

CustomizationHistory
    Append-only snapshots written on every save.  Only the milestone fields
    are ever updated after insert; retention cleanup deletes old rows.
"""
from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from apps.organizations.models import Organization
from apps.verticals.constants import VerticalId

#: The five JSON configuration blocks, in editor tab order.
CONFIG_SECTIONS: tuple[str, ...] = (
    "dashboard_config",
    "navigation_config",
    "branding_config",
    "stats_config",
    "department_config",
)

#: Top-level logo columns persisted alongside the blocks.
LOGO_FIELDS: tuple[str, ...] = (
    "logo_url",
    "logo_format",
    "logo_file_size",
    "logo_uploaded_at",
)


# ---------------------------------------------------------------------------
# OrganizationCustomization
# ---------------------------------------------------------------------------

class OrganizationCustomization(models.Model):
    """
    Current UI customisation of an organisation for one vertical.

    ``version`` starts at 1 and increases by exactly one on every save; the
    matching :class:`CustomizationHistory` row carries the same number.
    """

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="ui_customizations",
    )
    vertical_id = models.CharField(max_length=32, choices=VerticalId.choices)

    dashboard_config = models.JSONField(default=dict, blank=True)
    navigation_config = models.JSONField(default=dict, blank=True)
    branding_config = models.JSONField(default=dict, blank=True)
    stats_config = models.JSONField(default=dict, blank=True)
    department_config = models.JSONField(default=dict, blank=True)

    logo_url = models.CharField(max_length=500, blank=True, default="")
    logo_format = models.CharField(max_length=50, blank=True, default="")
    logo_file_size = models.PositiveIntegerField(null=True, blank=True)
    logo_uploaded_at = models.DateTimeField(null=True, blank=True)

    version = models.PositiveIntegerField(default=1)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        db_table = "organization_ui_customizations"
        ordering = ["organization", "vertical_id"]
        verbose_name = "Organization Customization"
        verbose_name_plural = "Organization Customizations"
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "vertical_id"],
                condition=Q(is_active=True),
                name="unique_active_customization",
                violation_error_message=(
                    "This organisation already has an active customization "
                    "for that vertical."
                ),
            ),
        ]

    def __str__(self) -> str:
        return f"{self.organization_id}/{self.vertical_id}@v{self.version}"

    def snapshot(self) -> dict:
        """JSON-ready copy of every user-editable value."""
        data = {section: getattr(self, section) or {} for section in CONFIG_SECTIONS}
        data.update(
            version=self.version,
            logo_url=self.logo_url or None,
            logo_format=self.logo_format or None,
            logo_file_size=self.logo_file_size,
            logo_uploaded_at=self.logo_uploaded_at.isoformat() if self.logo_uploaded_at else None,
        )
        return data


# ---------------------------------------------------------------------------
# CustomizationHistory
# ---------------------------------------------------------------------------

class CustomizationHistory(models.Model):
    customization = models.ForeignKey(
        OrganizationCustomization,
        on_delete=models.CASCADE,
        related_name="history",
    )
    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="customization_history",
    )
    vertical_id = models.CharField(max_length=32, choices=VerticalId.choices)
    config_snapshot = models.JSONField(
        help_text="Full copy of the customization as it was after this save.",
    )
    version_number = models.PositiveIntegerField()
    change_description = models.CharField(max_length=255, blank=True, default="")
    change_note = models.TextField(blank=True, default="")
    is_milestone = models.BooleanField(default=False)
    milestone_name = models.CharField(max_length=255, blank=True, default="")
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        db_table = "organization_customization_history"
        ordering = ["-created_at", "-version_number"]
        verbose_name = "Customization History Entry"
        verbose_name_plural = "Customization History"
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "vertical_id", "version_number"],
                name="unique_history_version",
            ),
        ]
        indexes = [
            models.Index(
                fields=["organization", "vertical_id", "-created_at"],
                name="cust_history_recent_idx",
            ),
        ]

    def __str__(self) -> str:
        label = f" ({self.milestone_name})" if self.is_milestone else ""
        return f"{self.organization_id}/{self.vertical_id} v{self.version_number}{label}"
