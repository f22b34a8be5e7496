import logging

from django.core.management.base import BaseCommand

from market_app.models import ListingFieldValue
from market_app.utils.template_store import orphaned_field_values

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = (
        "Report listing field values whose key no longer matches a template of the "
        "listing's category. Nothing is removed unless --delete is given."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--category",
            type=int,
            help="Only report values of listings in this category id.",
        )
        parser.add_argument(
            "--delete",
            action="store_true",
            help="Delete the reported values.",
        )
        parser.add_argument(
            "--limit",
            type=int,
            default=500,
            help="Max values to report or delete in one run (default: 500).",
        )

    def handle(self, *args, **options):
        orphans = list(orphaned_field_values(options["category"])[: options["limit"]])

        if not orphans:
            self.stdout.write(self.style.SUCCESS("No orphaned field values found."))
            return

        self.stdout.write(f"Found {len(orphans)} orphaned field value(s).")
        for value in orphans:
            self.stdout.write(
                f"- listing {value.listing_id} (category {value.listing.category_id}): "
                f"{value.key}={value.value}"
            )

        if not options["delete"]:
            self.stdout.write(self.style.WARNING("Report only; pass --delete to remove them."))
            return

        deleted, _ = ListingFieldValue.objects.filter(pk__in=[value.pk for value in orphans]).delete()
        logger.warning(f"Deleted {deleted} orphaned field value(s)")
        self.stdout.write(self.style.SUCCESS(f"Deleted {deleted} orphaned field value(s)."))
