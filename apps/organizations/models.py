"""
apps.organizations.models
~~~~~~~~~~~~~~~~~~~~~~~~~
Organization – the tenant that owns UI customizations and department
layouts.
"""
from django.db import models
from django.utils.text import slugify

from apps.verticals.constants import VerticalId


class Organization(models.Model):
    """
    A tenant organisation.  Customizations and department section
    assignments are stored per ``(organization, vertical)`` pair.

    ``slug`` is derived from ``name`` on first save and never regenerated,
    so renaming keeps URLs stable.  ``default_vertical`` is the vertical the
    settings editor opens on.
    """

    name = models.CharField(max_length=255, unique=True)
    slug = models.SlugField(
        max_length=255,
        unique=True,
        blank=True,
        help_text="URL-safe identifier auto-generated from the organisation name.",
    )
    default_vertical = models.CharField(
        max_length=32,
        choices=VerticalId.choices,
        default=VerticalId.BUSINESS,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["id"]
        verbose_name = "Organization"
        verbose_name_plural = "Organizations"

    def save(self, *args, **kwargs) -> None:
        if not self.slug:
            self.slug = slugify(self.name)
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return self.name
