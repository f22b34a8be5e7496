# utils/browse_query.py
"""
Turns browse-page query parameters into a listing query.

Filtering is lenient: a parameter that does not parse (bad number, unknown
category, dynamic key outside the selected category's templates) is
dropped, never reported. Browsing always degrades to "fewer filters".
"""
import logging
from dataclasses import dataclass, field
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import List, Optional

from django.db.models import Q

from ..models import Category, FieldType, Listing, ListingCondition, ListingStatus
from .dynamic_fields import (
    FALSE_VALUES,
    TRUE_VALUES,
    extract_dynamic_fields,
    first_value,
    normalize_value,
)
from .template_store import TemplateStore

logger = logging.getLogger(__name__)

SORT_ORDERING = {
    "newest": "-created_at",
    "price-asc": "price_cents",
    "price-desc": "-price_cents",
}
DEFAULT_SORT = "newest"


@dataclass
class DynamicFilter:
    key: str
    field_type: str
    value: str

    def as_q(self):
        if self.field_type == FieldType.TEXT:
            match = Q(field_values__value__icontains=self.value)
        elif self.field_type == FieldType.SELECT:
            match = Q(field_values__value__iexact=self.value)
        elif self.field_type == FieldType.BOOLEAN:
            spellings = TRUE_VALUES if self.value == "true" else FALSE_VALUES
            match = Q()
            for spelling in spellings:
                match |= Q(field_values__value__iexact=spelling)
        else:
            match = Q(field_values__value=self.value)
        return Q(field_values__key=self.key) & match


@dataclass
class ListingQuery:
    search: str = ""
    category: Optional[Category] = None
    city_id: Optional[int] = None
    condition: Optional[str] = None
    min_cents: Optional[int] = None
    max_cents: Optional[int] = None
    sort: str = DEFAULT_SORT
    page: int = 1
    templates_in_scope: list = field(default_factory=list)
    dynamic_filters: List[DynamicFilter] = field(default_factory=list)

    @property
    def ordering(self):
        return SORT_ORDERING[self.sort]

    def filtered_keys(self):
        return [dynamic.key for dynamic in self.dynamic_filters]

    def apply(self, queryset=None):
        """Build the ACTIVE-listing queryset these filters describe."""
        qs = Listing.objects.all() if queryset is None else queryset
        qs = qs.filter(status=ListingStatus.ACTIVE)

        if self.search:
            qs = qs.filter(
                Q(title__icontains=self.search) | Q(description__icontains=self.search)
            )
        if self.category is not None:
            qs = qs.filter(category=self.category)
        if self.city_id is not None:
            qs = qs.filter(city_id=self.city_id)
        if self.condition:
            qs = qs.filter(condition=self.condition)
        if self.min_cents is not None:
            qs = qs.filter(price_cents__gte=self.min_cents)
        if self.max_cents is not None:
            qs = qs.filter(price_cents__lte=self.max_cents)

        # one filter() per field so each gets its own join
        for dynamic in self.dynamic_filters:
            qs = qs.filter(dynamic.as_q())

        return qs.distinct().order_by(self.ordering)


def price_to_cents(raw):
    """
    Major units to integer minor units, flooring so a bound never moves
    past the price the buyer typed. Returns None for anything unusable.
    """
    if raw is None:
        return None
    text = str(raw).strip().replace(",", ".")
    if not text:
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount < 0:
        return None
    return int((amount * 100).to_integral_value(rounding=ROUND_FLOOR))


def _param(params, *names):
    for name in names:
        value = first_value(params, name)
        if value not in (None, ""):
            return str(value).strip()
    return ""


def _positive_int(raw):
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def _resolve_category(raw):
    if not raw:
        return None
    qs = Category.objects.filter(is_active=True)
    if raw.isdigit():
        return qs.filter(pk=int(raw)).first()
    return qs.filter(slug=raw).first()


def build_listing_query(params, templates=None):
    """
    ``params`` is a QueryDict (or plain dict) with q, cat (or category),
    sub (or subcategory), city, condition, min, max, sort, page and any
    number of ``df__<key>`` filters.
    """
    templates = templates or TemplateStore()
    query = ListingQuery()

    query.search = _param(params, "q")

    # subcategory wins when both are present
    query.category = _resolve_category(_param(params, "sub", "subcategory")) or _resolve_category(
        _param(params, "cat", "category")
    )

    query.city_id = _positive_int(_param(params, "city"))

    condition = _param(params, "condition").upper()
    if condition in ListingCondition.values:
        query.condition = condition

    min_cents = price_to_cents(_param(params, "min"))
    max_cents = price_to_cents(_param(params, "max"))
    if min_cents is not None and max_cents is not None and min_cents > max_cents:
        min_cents, max_cents = max_cents, min_cents
    query.min_cents, query.max_cents = min_cents, max_cents

    sort = _param(params, "sort")
    query.sort = sort if sort in SORT_ORDERING else DEFAULT_SORT

    query.page = _positive_int(_param(params, "page")) or 1

    if query.category is not None:
        query.templates_in_scope = templates.list_active_templates(query.category.id)

    in_scope = {template.key: template for template in query.templates_in_scope}
    for key, raw in extract_dynamic_fields(params).items():
        template = in_scope.get(key)
        if template is None:
            if raw:
                logger.debug(f"Dropping dynamic filter {key!r}: not in scope")
            continue
        value = normalize_value(template.type, raw)
        if value is None:
            continue
        query.dynamic_filters.append(DynamicFilter(key, template.type, value))

    return query
