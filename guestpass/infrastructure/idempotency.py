"""
Processed-message tracking for the mailbox poller.

A bounded, time-limited cache of Gmail message ids that have already produced
a successful intake result. It is a best-effort guard only: the mailbox's own
UNREAD flag is what keeps a consumed message from being redelivered after a
restart.
"""

from __future__ import annotations

from collections.abc import Iterable
from hashlib import sha256
from threading import Lock

from cachetools import TTLCache

from guestpass.config import PROCESSED_CACHE_MAX_SIZE, PROCESSED_CACHE_TTL_SECONDS
from guestpass.observability.telemetry import counter, log_event


class ProcessedMessageCache:
    def __init__(
        self,
        maxsize: int = PROCESSED_CACHE_MAX_SIZE,
        ttl: float = PROCESSED_CACHE_TTL_SECONDS,
    ):
        self._cache: TTLCache[str, bool] = TTLCache(maxsize=maxsize, ttl=ttl)
        self._lock = Lock()

    def __contains__(self, message_id: object) -> bool:
        with self._lock:
            return message_id in self._cache

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def is_duplicate(self, message_id: str) -> bool:
        """True if message_id was already marked processed (and not yet expired)."""
        if message_id in self:
            counter("idempotency.duplicate")
            log_event(
                "idempotency.duplicate",
                key_hash=sha256(message_id.encode()).hexdigest()[:12],
            )
            return True
        return False

    def mark_processed(self, message_id: str) -> None:
        with self._lock:
            self._cache[message_id] = True

    def seed(self, message_ids: Iterable[str]) -> None:
        """Preload ids as already processed."""
        with self._lock:
            for message_id in message_ids:
                self._cache[message_id] = True

    def reset(self) -> None:
        with self._lock:
            self._cache.clear()
