import logging

from django.core.management.base import BaseCommand
from django.utils import timezone

from market_app.models import Listing, ListingStatus

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = (
        "Mark ACTIVE listings whose active_until has passed as INACTIVE. "
        "Run periodically (e.g., hourly via cron)."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="List listings that would expire without changing them.",
        )

    def handle(self, *args, **options):
        now = timezone.now()
        qs = Listing.objects.filter(
            status=ListingStatus.ACTIVE,
            active_until__isnull=False,
            active_until__lt=now,
        ).order_by("active_until")

        count = qs.count()
        if count == 0:
            self.stdout.write(self.style.SUCCESS("No expired listings found."))
            return

        self.stdout.write(f"Found {count} expired listing(s).")
        for listing in qs:
            self.stdout.write(f"- {listing.title} (expired: {listing.active_until}, id={listing.id})")

        if options["dry_run"]:
            self.stdout.write(self.style.WARNING("Dry run enabled; no listings changed."))
            return

        updated = qs.update(status=ListingStatus.INACTIVE, updated_at=now)
        logger.info(f"Expired {updated} listing(s)")
        self.stdout.write(self.style.SUCCESS(f"Expired {updated} listing(s)."))
