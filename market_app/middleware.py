"""
Request-boundary handling for database outages.
"""

import logging
import time

from django.shortcuts import render
from django.utils.deprecation import MiddlewareMixin

from .exceptions import TransientStoreError

logger = logging.getLogger(__name__)


class StoreOutageMiddleware(MiddlewareMixin):
    """
    Renders TransientStoreError as a 503 "temporarily unavailable" page
    and logs how long each non-static request took.
    """

    def process_request(self, request):
        request._start_time = time.monotonic()

    def process_exception(self, request, exception):
        if not isinstance(exception, TransientStoreError):
            return None
        logger.warning(f"{request.method} {request.path} failed: store unavailable")
        return render(
            request,
            "market_app/store_unavailable.html",
            {"message": exception.message},
            status=503,
        )

    def process_response(self, request, response):
        if hasattr(request, "_start_time") and not request.path.startswith("/static/"):
            duration_ms = (time.monotonic() - request._start_time) * 1000
            logger.debug(
                f"{request.method:4s} {request.path} {duration_ms:.2f}ms {response.status_code}"
            )
        return response
