# utils/circuit_breaker.py
"""
Short-circuits database work for a cooldown period after an outage is seen,
so requests fail fast with TransientStoreError instead of piling up on a
dead connection.
"""
import logging
import time
from contextlib import contextmanager

from django.conf import settings
from django.db import InterfaceError, OperationalError

from ..exceptions import TransientStoreError

logger = logging.getLogger(__name__)

CONNECTION_ERRORS = (OperationalError, InterfaceError)


class StoreCircuitBreaker:
    def __init__(self, cooldown=60, clock=time.monotonic):
        self.cooldown = cooldown
        self.clock = clock
        self._blocked_until = 0.0

    def is_open(self):
        return self.clock() < self._blocked_until

    def record_success(self):
        self._blocked_until = 0.0

    def record_failure(self):
        self._blocked_until = self.clock() + self.cooldown
        logger.warning(f"Store marked unavailable for {self.cooldown}s")


@contextmanager
def store_guard(breaker):
    """
    Wrap a unit of database work. Raises TransientStoreError straight away
    while the breaker is open, and turns connection failures into
    TransientStoreError (tripping the breaker) otherwise.
    """
    if breaker is not None and breaker.is_open():
        raise TransientStoreError()

    try:
        yield
    except CONNECTION_ERRORS as e:
        logger.error(f"Database unreachable: {str(e)}", exc_info=True)
        if breaker is not None:
            breaker.record_failure()
        raise TransientStoreError() from e

    if breaker is not None:
        breaker.record_success()


store_breaker = StoreCircuitBreaker(
    cooldown=getattr(settings, "MARKETPLACE_STORE_COOLDOWN_SECONDS", 60)
)
