"""
apps.customizations.serializers
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
I/O-only serializers for the customization API.
Block contents are checked by CustomizationValidator in the service layer.
"""
from rest_framework import serializers

from apps.verticals.constants import VerticalId

from .models import CONFIG_SECTIONS, CustomizationHistory, OrganizationCustomization
from .services.customization_service import COPY_CATEGORIES
from .services.logo import format_file_size


class CustomizationSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrganizationCustomization
        fields = [
            "id",
            "organization",
            "vertical_id",
            *CONFIG_SECTIONS,
            "logo_url",
            "logo_format",
            "logo_file_size",
            "logo_uploaded_at",
            "version",
            "is_active",
            "created_at",
            "updated_at",
            "created_by",
            "updated_by",
        ]
        read_only_fields = fields


class CustomizationSaveSerializer(serializers.Serializer):
    """PUT body: any subset of the blocks plus an optional change description."""

    dashboard_config = serializers.JSONField(required=False, allow_null=True)
    navigation_config = serializers.JSONField(required=False, allow_null=True)
    branding_config = serializers.JSONField(required=False, allow_null=True)
    stats_config = serializers.JSONField(required=False, allow_null=True)
    department_config = serializers.JSONField(required=False, allow_null=True)
    logo_url = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=500)
    logo_format = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=50)
    logo_file_size = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    logo_uploaded_at = serializers.DateTimeField(required=False, allow_null=True)
    change_description = serializers.CharField(required=False, allow_blank=True, max_length=255)
    change_note = serializers.CharField(required=False, allow_blank=True)

    def customization(self) -> dict:
        return {
            key: value
            for key, value in self.validated_data.items()
            if key not in ("change_description", "change_note")
        }


class CustomizationHistorySerializer(serializers.ModelSerializer):
    changed_by_name = serializers.SerializerMethodField()

    class Meta:
        model = CustomizationHistory
        fields = [
            "id",
            "customization",
            "vertical_id",
            "version_number",
            "config_snapshot",
            "change_description",
            "change_note",
            "is_milestone",
            "milestone_name",
            "changed_by",
            "changed_by_name",
            "created_at",
        ]
        read_only_fields = fields

    def get_changed_by_name(self, obj: CustomizationHistory) -> str | None:
        if obj.changed_by is None:
            return None
        return obj.changed_by.get_full_name() or obj.changed_by.get_username()


class HistoryQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(required=False, min_value=1, max_value=200)
    offset = serializers.IntegerField(required=False, default=0, min_value=0)
    milestones_only = serializers.BooleanField(required=False, default=False)


class MilestoneSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    notes = serializers.CharField(required=False, allow_blank=True)


class CompareQuerySerializer(serializers.Serializer):
    from_id = serializers.IntegerField()
    to_id = serializers.IntegerField(required=False, help_text="Defaults to the current customization.")


class DiffSerializer(serializers.Serializer):
    field = serializers.CharField()
    old_value = serializers.JSONField(allow_null=True)
    new_value = serializers.JSONField(allow_null=True)
    category = serializers.CharField()


class CopySerializer(serializers.Serializer):
    source_vertical_id = serializers.ChoiceField(choices=VerticalId.choices)
    include = serializers.ListField(
        child=serializers.ChoiceField(choices=list(COPY_CATEGORIES)),
        allow_empty=False,
    )


class ImportSerializer(serializers.Serializer):
    json_data = serializers.CharField(help_text="A document produced by the export endpoint.")


class RetentionSummarySerializer(serializers.Serializer):
    vertical_id = serializers.CharField()
    total_entries = serializers.IntegerField()
    milestone_entries = serializers.IntegerField()
    recent_entries = serializers.IntegerField()
    top_entries = serializers.IntegerField()
    eligible_for_cleanup = serializers.IntegerField()


class CleanupRequestSerializer(serializers.Serializer):
    dry_run = serializers.BooleanField(required=False, default=False)


class CleanupResultSerializer(serializers.Serializer):
    vertical_id = serializers.CharField()
    deleted_count = serializers.IntegerField()


class DraftSerializer(serializers.Serializer):
    dashboard_config = serializers.DictField()
    navigation_config = serializers.DictField()
    branding_config = serializers.DictField()
    stats_config = serializers.DictField()
    department_config = serializers.DictField()
    has_changes = serializers.BooleanField()
    last_saved = serializers.CharField(allow_null=True)
    recovered = serializers.BooleanField(required=False)


class DraftUpdateSerializer(serializers.Serializer):
    """PATCH body: whole blocks to replace in the draft."""

    dashboard_config = serializers.DictField(required=False)
    navigation_config = serializers.DictField(required=False)
    branding_config = serializers.DictField(required=False)
    stats_config = serializers.DictField(required=False)
    department_config = serializers.DictField(required=False)


class DraftSaveSerializer(serializers.Serializer):
    change_description = serializers.CharField(required=False, allow_blank=True, max_length=255)
    change_note = serializers.CharField(required=False, allow_blank=True)


class LogoUploadSerializer(serializers.Serializer):
    file = serializers.FileField()


class LogoDeleteSerializer(serializers.Serializer):
    logo_url = serializers.CharField()


class LogoMetadataSerializer(serializers.Serializer):
    url = serializers.CharField()
    path = serializers.CharField()
    format = serializers.CharField()
    file_size = serializers.IntegerField()
    file_size_display = serializers.SerializerMethodField()
    uploaded_at = serializers.DateTimeField()
    width = serializers.IntegerField(allow_null=True)
    height = serializers.IntegerField(allow_null=True)
    warning = serializers.CharField(allow_null=True)

    def get_file_size_display(self, obj) -> str:
        return format_file_size(obj.file_size)
