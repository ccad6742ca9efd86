import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("organizations", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="DepartmentSectionAssignment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "vertical_id",
                    models.CharField(
                        choices=[("church", "Church"), ("business", "Business"), ("estate", "Estate")],
                        max_length=32,
                    ),
                ),
                (
                    "department_id",
                    models.CharField(help_text="Stable department key from the vertical registry.", max_length=100),
                ),
                (
                    "section_id",
                    models.CharField(
                        choices=[
                            ("documents", "Documents"),
                            ("departments", "Departments"),
                            ("operations", "Operations"),
                            ("admin", "Admin"),
                        ],
                        max_length=20,
                    ),
                ),
                ("display_order", models.PositiveIntegerField(default=0)),
                ("is_visible", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="department_assignments",
                        to="organizations.organization",
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
                "verbose_name": "Department Section Assignment",
                "verbose_name_plural": "Department Section Assignments",
                "db_table": "department_section_assignments",
                "ordering": ["section_id", "display_order"],
                "indexes": [
                    models.Index(fields=["organization", "vertical_id"], name="dept_assign_org_vertical_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("organization", "vertical_id", "department_id"),
                        name="unique_department_assignment",
                    ),
                ],
            },
        ),
    ]
