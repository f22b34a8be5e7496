import logging

from django.db.models.signals import pre_delete
from django.dispatch import receiver

from .models import CategoryFieldTemplate, ListingFieldValue

logger = logging.getLogger(__name__)


@receiver(pre_delete, sender=CategoryFieldTemplate)
def log_orphaned_values(sender, instance, **kwargs):
    """
    Values stored under a deleted template's key are kept; record how many
    are left without a definition.
    """
    orphaned = ListingFieldValue.objects.filter(
        listing__category_id=instance.category_id, key=instance.key
    ).count()
    if orphaned:
        logger.warning(
            f"Deleting template {instance.key!r} of category {instance.category_id} "
            f"orphans {orphaned} stored value(s)"
        )
