"""
apps.organizations.admin
"""
from django.contrib import admin

from apps.customizations.models import OrganizationCustomization

from .models import Organization


class ActiveCustomizationInline(admin.TabularInline):
    model = OrganizationCustomization
    fields = ["vertical_id", "version", "is_active", "updated_at"]
    readonly_fields = fields
    extra = 0
    can_delete = False
    show_change_link = True


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ["name", "slug", "default_vertical", "updated_at"]
    list_filter = ["default_vertical"]
    search_fields = ["name", "slug"]
    readonly_fields = ["slug", "created_at", "updated_at"]
    inlines = [ActiveCustomizationInline]
