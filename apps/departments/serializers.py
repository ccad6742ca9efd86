"""
apps.departments.serializers
"""
from rest_framework import serializers

from apps.verticals.constants import SECTION_ORDER


class DepartmentItemSerializer(serializers.Serializer):
    department_id = serializers.CharField()
    section_id = serializers.CharField()
    display_order = serializers.IntegerField(allow_null=True)
    visible = serializers.BooleanField()
    name = serializers.CharField()
    description = serializers.CharField(allow_blank=True)
    default_name = serializers.CharField()
    custom_name = serializers.CharField(allow_null=True)
    is_core = serializers.BooleanField()
    has_assignment = serializers.BooleanField()


class DepartmentLayoutSerializer(serializers.Serializer):
    """Read-only rendering of a reconciler's current state."""

    mode = serializers.CharField()
    migration_warning = serializers.CharField(allow_null=True)
    message = serializers.DictField(allow_null=True)
    undo_available = serializers.IntegerField(help_text="Moves this session can still undo.")
    sections = serializers.DictField(child=DepartmentItemSerializer(many=True))

    @classmethod
    def from_reconciler(cls, reconciler) -> dict:
        message = reconciler.message
        return {
            "mode": reconciler.state.value,
            "migration_warning": reconciler.migration_warning,
            "message": {"text": message.text, "level": message.level} if message else None,
            "undo_available": len(reconciler.undo_stack),
            "sections": {
                section: [item.to_dict() for item in reconciler.sections[section]]
                for section in SECTION_ORDER
            },
        }


class DepartmentMoveSerializer(serializers.Serializer):
    department_id = serializers.CharField()
    target = serializers.CharField(
        help_text="A section id, or the id of the department to drop onto.",
    )
    position = serializers.IntegerField(required=False, allow_null=True, min_value=0)
