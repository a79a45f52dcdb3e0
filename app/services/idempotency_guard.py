"""In-process fast path against redelivered webhooks.

Best effort only: the set is per process and is lost on restart. The durable
check is the compare-and-set in reconciliation_service.
"""
import logging
import threading
import time

from app.core.config import settings

logger = logging.getLogger(__name__)


def notification_key(provider_tx_id: str, merchant_ref: str) -> str:
    return f"{provider_tx_id}-{merchant_ref}"


class NotificationGuard:
    """Tracks keys being processed, plus keys finished within the last `window_seconds`."""

    def __init__(self, window_seconds: float, clock=time.monotonic):
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        # key -> monotonic time after which it is forgotten; None while still in flight
        self._keys: dict[str, float | None] = {}

    def _purge(self, now: float) -> None:
        expired = [k for k, until in self._keys.items() if until is not None and until <= now]
        for k in expired:
            del self._keys[k]

    def try_acquire(self, key: str) -> bool:
        """Return False if `key` is in flight or was released less than a window ago."""
        with self._lock:
            self._purge(self._clock())
            if key in self._keys:
                logger.info("Duplicate notification short-circuited", extra={"notification_key": key})
                return False
            self._keys[key] = None
            return True

    def release(self, key: str) -> None:
        """Keep `key` for one more window, then forget it. Safe to call for unknown keys."""
        with self._lock:
            now = self._clock()
            self._keys[key] = now + self.window_seconds
            self._purge(now)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            self._purge(self._clock())
            return key in self._keys

    def clear(self) -> None:
        with self._lock:
            self._keys.clear()


notification_guard = NotificationGuard(window_seconds=settings.WEBHOOK_DEDUP_WINDOW_SECONDS)
