"""
Errors raised by the listing and template services.

``ValidationError`` is Django's own; it keeps every message in order
on ``.messages`` so a form can show them all at once.
"""

from django.core.exceptions import ObjectDoesNotExist, ValidationError

__all__ = ["ValidationError", "NotFoundError", "TransientStoreError"]


class NotFoundError(ObjectDoesNotExist):
    """The resource does not exist or does not belong to the caller."""


class TransientStoreError(Exception):
    """The database is unreachable or timed out. Safe to retry."""

    def __init__(self, message="The marketplace is temporarily unavailable."):
        super().__init__(message)
        self.message = message
