"""
Cleanup customization history management command.

Applies the history retention rules (newest entries, recent days and
milestones are kept) to one organisation or to every organisation with
history.  Intended for a scheduled job; saves already prune their own
vertical.
"""

import structlog
from django.core.management.base import BaseCommand, CommandError

from apps.customizations.models import CustomizationHistory
from apps.customizations.services.history import cleanup_history
from apps.organizations.models import Organization
from apps.organizations.services import get_organization
from common.exceptions import NotFoundError

logger = structlog.get_logger(__name__)


class Command(BaseCommand):
    help = "Delete customization history entries outside the retention policy"

    def add_arguments(self, parser):
        parser.add_argument(
            "--organization",
            help="Organisation id or slug (default: every organisation with history)",
        )
        parser.add_argument(
            "--vertical",
            help="Only clean up this vertical (default: all verticals)",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be deleted without actually deleting",
        )

    def handle(self, *args, **options):
        dry_run = options["dry_run"]
        vertical_id = options["vertical"]

        if options["organization"]:
            try:
                organizations = [get_organization(options["organization"])]
            except NotFoundError as exc:
                raise CommandError(str(exc)) from exc
        else:
            org_ids = CustomizationHistory.objects.values_list("organization_id", flat=True).distinct()
            organizations = list(Organization.objects.filter(pk__in=org_ids).order_by("pk"))

        logger.info(
            "customization_history_cleanup_started",
            organizations=len(organizations),
            vertical_id=vertical_id,
            dry_run=dry_run,
        )

        total = 0
        for organization in organizations:
            for result in cleanup_history(organization=organization, vertical_id=vertical_id, dry_run=dry_run):
                total += result.deleted_count
                if result.deleted_count:
                    self.stdout.write(f"{organization.slug}/{result.vertical_id}: {result.deleted_count}")

        logger.info("customization_history_cleanup_completed", total_deleted=total, dry_run=dry_run)

        if dry_run:
            self.stdout.write(f"DRY RUN: Would delete {total} history entries")
        else:
            self.stdout.write(self.style.SUCCESS(f"Deleted {total} history entries"))
