# utils/template_store.py
"""
Category field templates: the per-category listing schema an admin edits.

Only label, required and active can change after a template is created.
Key and type stay fixed so values already stored under the key keep
their meaning. Deleting a template leaves stored values in place; see
``orphaned_field_values`` for the reconciliation report.
"""
import logging

from django.db import IntegrityError, transaction
from django.db.models import Exists, OuterRef, Prefetch

from ..exceptions import NotFoundError, ValidationError
from ..models import Category, CategoryFieldTemplate, FieldType, ListingFieldValue
from .circuit_breaker import store_breaker, store_guard
from .option_codec import encode_options

logger = logging.getLogger(__name__)


class TemplateStore:
    def __init__(self, breaker=store_breaker):
        self.breaker = breaker

    # Reads

    def list_active_templates(self, category_id):
        """Active templates of one category, ascending by ``order``."""
        if category_id is None:
            return []
        with store_guard(self.breaker):
            return list(
                CategoryFieldTemplate.objects.filter(
                    category_id=category_id, is_active=True
                ).order_by("order", "id")
            )

    def templates_by_category(self, category_ids=None):
        """``{category_id: [active templates]}`` for rendering the sell form."""
        qs = CategoryFieldTemplate.objects.filter(is_active=True)
        if category_ids is not None:
            qs = qs.filter(category_id__in=list(category_ids))
        grouped = {}
        with store_guard(self.breaker):
            for template in qs.order_by("category_id", "order", "id"):
                grouped.setdefault(template.category_id, []).append(template)
        return grouped

    def category_tree(self):
        """Active top-level categories with active children prefetched."""
        children = Category.objects.filter(is_active=True).order_by("name")
        with store_guard(self.breaker):
            return list(
                Category.objects.filter(is_active=True, parent__isnull=True)
                .prefetch_related(Prefetch("children", queryset=children))
                .order_by("name")
            )

    # Admin mutations

    def create_template(self, category_id, key, label, field_type, required=False, order=0, options=None):
        key = (key or "").strip()
        label = (label or "").strip()
        options = [str(option).strip() for option in (options or []) if str(option).strip()]

        errors = []
        if not key:
            errors.append("Key is required.")
        if not label:
            errors.append("Label is required.")
        if field_type not in FieldType.values:
            errors.append(f"Unknown field type: {field_type}.")
        elif field_type == FieldType.SELECT and not options:
            errors.append("Select fields need at least one option.")
        if errors:
            raise ValidationError(errors)

        with store_guard(self.breaker):
            if not Category.objects.filter(pk=category_id).exists():
                raise NotFoundError(f"Category {category_id} not found")
            try:
                with transaction.atomic():
                    template = CategoryFieldTemplate.objects.create(
                        category_id=category_id,
                        key=key,
                        label=label,
                        type=field_type,
                        required=bool(required),
                        order=order,
                        options_json=encode_options(options) if field_type == FieldType.SELECT else None,
                    )
            except IntegrityError:
                raise ValidationError(f'Key "{key}" already exists in this category.')

        logger.info(f"Created field template {template.id} ({key}) for category {category_id}")
        return template

    def update_template(self, template_id, *, label=None, required=None, is_active=None):
        """Change label, required and/or active. Key and type are never touched."""
        if label is not None and not label.strip():
            raise ValidationError("Label is required.")

        with store_guard(self.breaker):
            try:
                template = CategoryFieldTemplate.objects.get(pk=template_id)
            except CategoryFieldTemplate.DoesNotExist:
                raise NotFoundError(f"Field template {template_id} not found")

            update_fields = []
            if label is not None:
                template.label = label.strip()
                update_fields.append("label")
            if required is not None:
                template.required = bool(required)
                update_fields.append("required")
            if is_active is not None:
                template.is_active = bool(is_active)
                update_fields.append("is_active")
            if update_fields:
                template.save(update_fields=update_fields)

        logger.info(f"Updated field template {template_id}: {', '.join(update_fields) or 'no changes'}")
        return template

    def delete_template(self, template_id):
        """Remove the definition only. Stored values under its key are kept."""
        with store_guard(self.breaker):
            deleted, _ = CategoryFieldTemplate.objects.filter(pk=template_id).delete()
        if not deleted:
            raise NotFoundError(f"Field template {template_id} not found")
        logger.info(f"Deleted field template {template_id}")

    def set_category_active(self, category_id, is_active):
        with store_guard(self.breaker):
            updated = Category.objects.filter(pk=category_id).update(is_active=bool(is_active))
        if not updated:
            raise NotFoundError(f"Category {category_id} not found")
        logger.info(f"Category {category_id} is_active={bool(is_active)}")


def orphaned_field_values(category_id=None):
    """
    Stored values whose key matches no template (active or not) of the
    listing's current category. Left behind by template deletes and
    category changes.
    """
    templates = CategoryFieldTemplate.objects.filter(
        category_id=OuterRef("listing__category_id"), key=OuterRef("key")
    )
    qs = ListingFieldValue.objects.filter(~Exists(templates)).select_related("listing")
    if category_id is not None:
        qs = qs.filter(listing__category_id=category_id)
    return qs.order_by("listing_id", "key")


template_store = TemplateStore()
