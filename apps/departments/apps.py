"""
apps.departments.apps
"""
from django.apps import AppConfig


class DepartmentsConfig(AppConfig):
    name = "apps.departments"
    label = "departments"
    verbose_name = "Department Layout"

    def ready(self) -> None:
        from . import signals  # noqa: F401
