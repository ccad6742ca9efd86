"""
apps.customizations.admin
"""
from django.contrib import admin

from .models import CustomizationHistory, OrganizationCustomization


@admin.register(OrganizationCustomization)
class OrganizationCustomizationAdmin(admin.ModelAdmin):
    list_display = ["id", "organization", "vertical_id", "version", "is_active", "updated_at"]
    list_filter = ["vertical_id", "is_active"]
    search_fields = ["organization__name"]
    readonly_fields = ["version", "created_at", "updated_at", "created_by", "updated_by"]


@admin.register(CustomizationHistory)
class CustomizationHistoryAdmin(admin.ModelAdmin):
    list_display = [
        "id", "organization", "vertical_id", "version_number",
        "change_description", "is_milestone", "created_at",
    ]
    list_filter = ["vertical_id", "is_milestone"]
    search_fields = ["organization__name", "milestone_name", "change_description"]
    readonly_fields = [
        "customization", "organization", "vertical_id", "version_number",
        "config_snapshot", "change_description", "changed_by", "created_at",
    ]
