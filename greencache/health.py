"""
Liveness probe for the backing store.
"""

from typing import Optional, TYPE_CHECKING

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from .logging import get_logger
from .store import KeyValueStore

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .metrics import CacheMetrics

UNREACHABLE_ERRORS = (
    RedisConnectionError,
    RedisTimeoutError,
    ConnectionError,
    TimeoutError,
)


class StoreHealthProbe:
    """Pings the store before it is read from or written to."""

    def __init__(self, metrics: Optional["CacheMetrics"] = None):
        self.metrics = metrics
        self.logger = get_logger("greencache.health")
        self.last_failure: Optional[str] = None

    def is_up(self, store: KeyValueStore) -> bool:
        """
        Check whether the store answers a PING.

        Connection failures and timeouts report ``False`` and are recorded
        in ``last_failure``; anything else propagates. The result is never
        cached.
        """
        try:
            reply = store.ping()
        except UNREACHABLE_ERRORS as e:
            self._record_down(f"{type(e).__name__}: {e}")
            return False

        if not reply:
            self._record_down(f"Unexpected PING reply: {reply!r}")
            return False

        self.last_failure = None
        return True

    def _record_down(self, reason: str):
        self.last_failure = reason
        self.logger.warning("greencache.store.down", error=reason)
        if self.metrics:
            self.metrics.record_event("store_down")
