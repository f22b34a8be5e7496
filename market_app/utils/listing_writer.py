# utils/listing_writer.py
import logging
from dataclasses import dataclass
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from ..exceptions import NotFoundError, ValidationError
from ..models import (
    Category,
    City,
    Currency,
    FieldType,
    Listing,
    ListingCondition,
    ListingFieldValue,
    ListingStatus,
)
from .circuit_breaker import store_breaker, store_guard
from .dynamic_fields import non_empty_values, normalize_value
from .publish import status_from_intent, validate_publish
from .template_store import TemplateStore

logger = logging.getLogger(__name__)

PLAN_PAY_PER_LISTING = "pay-per-listing"
PLAN_SUBSCRIPTION = "subscription"


@dataclass
class ListingFields:
    """Fixed (non-dynamic) listing fields as submitted by the seller."""

    title: str
    price_cents: int
    category_id: int
    city_id: int
    description: str = ""
    currency: str = Currency.MKD
    condition: str = ListingCondition.USED
    plan: str = PLAN_PAY_PER_LISTING


def resolve_active_until(status, plan, now=None):
    if status != ListingStatus.ACTIVE or plan == PLAN_SUBSCRIPTION:
        return None
    now = now or timezone.now()
    return now + timedelta(days=settings.MARKETPLACE_LISTING_DAYS)


def stored_values(templates, dynamic_values):
    """
    Non-empty values as they are written. NUMBER and BOOLEAN values that
    parse are kept in canonical form so browse filters can match them;
    anything else is stored as typed.
    """
    types = {template.key: template.type for template in templates}
    values = {}
    for key, value in non_empty_values(dynamic_values).items():
        if types.get(key) in (FieldType.NUMBER, FieldType.BOOLEAN):
            value = normalize_value(types[key], value) or value
        values[key] = value
    return values


class ListingWriter:
    """
    Saves a listing together with its dynamic field values.

    A publish is validated before anything is written; a rejected publish
    leaves the stored listing and its values exactly as they were. The
    listing row and the full replacement of its values commit together.
    """

    def __init__(self, breaker=store_breaker, templates=None):
        self.breaker = breaker
        self.templates = templates or TemplateStore(breaker=breaker)

    def save_listing(self, seller, fields, dynamic_values, intent, listing_id=None):
        status = status_from_intent(intent)

        with store_guard(self.breaker):
            listing = self._load_owned(seller, listing_id) if listing_id is not None else None
            errors = self._reference_errors(fields, status)

        active_templates = self.templates.list_active_templates(fields.category_id)
        if status == ListingStatus.ACTIVE:
            check = validate_publish(
                fields.title, fields.price_cents, active_templates, dynamic_values
            )
            errors.extend(check.errors)

        if errors:
            logger.info(
                f"Rejected save of listing {listing_id or '(new)'} by user {seller.id}: {errors}"
            )
            raise ValidationError(errors)

        values = stored_values(active_templates, dynamic_values)
        with store_guard(self.breaker):
            with transaction.atomic():
                listing = self._write_listing(listing, seller, fields, status)
                ListingFieldValue.objects.filter(listing=listing).delete()
                ListingFieldValue.objects.bulk_create(
                    [
                        ListingFieldValue(listing=listing, key=key, value=value)
                        for key, value in values.items()
                    ]
                )

        logger.info(
            f"Saved listing {listing.id} as {status} with {len(values)} field value(s)"
        )
        return listing.id

    def delete_draft(self, seller, listing_id):
        with store_guard(self.breaker):
            deleted, _ = Listing.objects.filter(
                pk=listing_id, seller=seller, status=ListingStatus.DRAFT
            ).delete()
        if not deleted:
            raise NotFoundError(f"Draft listing {listing_id} not found")
        logger.info(f"Deleted draft listing {listing_id}")

    def _load_owned(self, seller, listing_id):
        # someone else's listing reads as missing
        listing = Listing.objects.filter(pk=listing_id, seller=seller).first()
        if listing is None:
            raise NotFoundError(f"Listing {listing_id} not found")
        if listing.status == ListingStatus.REMOVED:
            raise ValidationError("Removed listings cannot be edited.")
        return listing

    def _reference_errors(self, fields, status):
        errors = []
        category = Category.objects.filter(pk=fields.category_id).first()
        if category is None or (status == ListingStatus.ACTIVE and not category.is_active):
            errors.append("Selected category is invalid.")
        if not City.objects.filter(pk=fields.city_id).exists():
            errors.append("Selected city is invalid.")
        return errors

    def _write_listing(self, listing, seller, fields, status):
        if listing is None:
            listing = Listing(seller=seller)
        listing.title = fields.title.strip()
        listing.description = (fields.description or "").strip()
        listing.price_cents = fields.price_cents
        listing.currency = fields.currency
        listing.category_id = fields.category_id
        listing.city_id = fields.city_id
        listing.condition = fields.condition
        listing.status = status
        listing.active_until = resolve_active_until(status, fields.plan)
        listing.save()
        return listing


listing_writer = ListingWriter()
