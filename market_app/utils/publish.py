# utils/publish.py
from dataclasses import dataclass, field

from ..models import ListingStatus

PUBLISH_INTENT = "publish"
MIN_TITLE_LENGTH = 5


@dataclass
class PublishCheck:
    is_valid: bool
    errors: list = field(default_factory=list)


def status_from_intent(intent):
    return ListingStatus.ACTIVE if intent == PUBLISH_INTENT else ListingStatus.DRAFT


def validate_publish(title, price_cents, templates, dynamic_values):
    """
    Decide whether a listing may go live. Every rule is checked and every
    failure is reported, in this order: title, price, then required
    templates by ``order``. Inactive templates are skipped.
    """
    errors = []

    if len((title or "").strip()) < MIN_TITLE_LENGTH:
        errors.append(f"Title must be at least {MIN_TITLE_LENGTH} characters to publish.")

    if (price_cents or 0) <= 0:
        errors.append("Price must be greater than 0 to publish.")

    active = [template for template in templates if template.is_active]
    for template in sorted(active, key=lambda t: t.order):
        if not template.required:
            continue
        value = dynamic_values.get(template.key) or ""
        if not value.strip():
            errors.append(f"{template.label} is required to publish.")

    return PublishCheck(is_valid=not errors, errors=errors)
