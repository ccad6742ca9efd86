import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

VERTICAL_CHOICES = [("church", "Church"), ("business", "Business"), ("estate", "Estate")]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("organizations", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="OrganizationCustomization",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("vertical_id", models.CharField(choices=VERTICAL_CHOICES, max_length=32)),
                ("dashboard_config", models.JSONField(blank=True, default=dict)),
                ("navigation_config", models.JSONField(blank=True, default=dict)),
                ("branding_config", models.JSONField(blank=True, default=dict)),
                ("stats_config", models.JSONField(blank=True, default=dict)),
                ("department_config", models.JSONField(blank=True, default=dict)),
                ("logo_url", models.CharField(blank=True, default="", max_length=500)),
                ("logo_format", models.CharField(blank=True, default="", max_length=50)),
                ("logo_file_size", models.PositiveIntegerField(blank=True, null=True)),
                ("logo_uploaded_at", models.DateTimeField(blank=True, null=True)),
                ("version", models.PositiveIntegerField(default=1)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="ui_customizations",
                        to="organizations.organization",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "updated_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Organization Customization",
                "verbose_name_plural": "Organization Customizations",
                "db_table": "organization_ui_customizations",
                "ordering": ["organization", "vertical_id"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("is_active", True)),
                        fields=("organization", "vertical_id"),
                        name="unique_active_customization",
                        violation_error_message=(
                            "This organisation already has an active customization "
                            "for that vertical."
                        ),
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CustomizationHistory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("vertical_id", models.CharField(choices=VERTICAL_CHOICES, max_length=32)),
                (
                    "config_snapshot",
                    models.JSONField(help_text="Full copy of the customization as it was after this save."),
                ),
                ("version_number", models.PositiveIntegerField()),
                ("change_description", models.CharField(blank=True, default="", max_length=255)),
                ("change_note", models.TextField(blank=True, default="")),
                ("is_milestone", models.BooleanField(default=False)),
                ("milestone_name", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                (
                    "customization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="history",
                        to="customizations.organizationcustomization",
                    ),
                ),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="customization_history",
                        to="organizations.organization",
                    ),
                ),
                (
                    "changed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Customization History Entry",
                "verbose_name_plural": "Customization History",
                "db_table": "organization_customization_history",
                "ordering": ["-created_at", "-version_number"],
                "indexes": [
                    models.Index(
                        fields=["organization", "vertical_id", "-created_at"],
                        name="cust_history_recent_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("organization", "vertical_id", "version_number"),
                        name="unique_history_version",
                    ),
                ],
            },
        ),
    ]
