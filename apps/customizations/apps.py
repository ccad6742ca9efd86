"""
apps.customizations.apps
"""
from django.apps import AppConfig


class CustomizationsConfig(AppConfig):
    name = "apps.customizations"
    label = "customizations"
    verbose_name = "UI Customizations"
