"""
apps.organizations.serializers
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Request/response shapes for the Organizations API.
"""
from rest_framework import serializers

from apps.verticals.constants import VerticalId
from .models import Organization


class OrganizationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Organization
        fields = ["id", "name", "slug", "default_vertical", "created_at", "updated_at"]
        read_only_fields = fields


class OrganizationCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    default_vertical = serializers.ChoiceField(
        choices=VerticalId.choices,
        default=VerticalId.BUSINESS,
    )


class OrganizationUpdateSerializer(serializers.Serializer):
    """PATCH body; every field optional."""

    name = serializers.CharField(max_length=255, required=False)
    default_vertical = serializers.ChoiceField(choices=VerticalId.choices, required=False)


class OrganizationSearchSerializer(serializers.Serializer):
    search = serializers.CharField(required=False, allow_blank=True)


class VerticalOverviewSerializer(serializers.Serializer):
    vertical_id = serializers.CharField()
    display_name = serializers.CharField()
    is_default = serializers.BooleanField()
    customized = serializers.BooleanField()
    version = serializers.IntegerField(allow_null=True)
    updated_at = serializers.DateTimeField(allow_null=True)
    moved_departments = serializers.IntegerField()
