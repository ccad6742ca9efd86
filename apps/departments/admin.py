"""
apps.departments.admin
"""
from django.contrib import admin

from .models import DepartmentSectionAssignment


@admin.register(DepartmentSectionAssignment)
class DepartmentSectionAssignmentAdmin(admin.ModelAdmin):
    list_display = [
        "id", "organization", "vertical_id", "department_id",
        "section_id", "display_order", "is_visible", "updated_at",
    ]
    list_filter = ["vertical_id", "section_id", "is_visible"]
    search_fields = ["organization__name", "department_id"]
    readonly_fields = ["created_at", "updated_at"]
    ordering = ["organization", "vertical_id", "section_id", "display_order"]
