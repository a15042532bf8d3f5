# ===== easyagenda/services/booking/locks.py =====
"""
Reservation locks

Reserve holds one lock per professional and calendar day. No slot crosses a
day boundary, so every booking that can overlap a slot shares its key.
"""
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date
from typing import Dict, Iterator, Optional
from uuid import UUID

from redis.exceptions import LockError

from easyagenda.config.redis import RedisKeys, get_sync_redis
from easyagenda.config.settings import get_settings

logger = logging.getLogger(__name__)


class LockNotAcquired(Exception):
    """Waited for the reservation lock longer than allowed"""


def booking_lock_key(professional_id: UUID, day: date) -> str:
    return RedisKeys.BOOKING_LOCK.format(professional_id=professional_id, day=day.isoformat())


class LockProvider(ABC):

    @abstractmethod
    def hold(self, key: str, wait_seconds: float) -> Iterator[None]:
        """Context manager holding the named lock; raises LockNotAcquired"""


class _LocalLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class LocalLockProvider(LockProvider):
    """
    Per-key threading locks, valid inside one process.

    An entry lives while someone holds or waits for it and is dropped with its
    last user, so the map only ever contains keys in use.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, _LocalLock] = {}

    def _checkout(self, key: str) -> _LocalLock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _LocalLock()
            entry.users += 1
            return entry

    def _checkin(self, key: str, entry: _LocalLock) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]

    def active_keys(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, key: str, wait_seconds: float) -> Iterator[None]:
        entry = self._checkout(key)
        try:
            if not entry.lock.acquire(timeout=wait_seconds):
                raise LockNotAcquired(key)
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(key, entry)


class RedisLockProvider(LockProvider):
    """redis-py locks, shared by every API process and worker"""

    def __init__(self, client=None, timeout_seconds: Optional[int] = None):
        self.client = client or get_sync_redis()
        self.timeout_seconds = timeout_seconds or get_settings().BOOKING_LOCK_TIMEOUT_SECONDS

    @contextmanager
    def hold(self, key: str, wait_seconds: float) -> Iterator[None]:
        lock = self.client.lock(key, timeout=self.timeout_seconds, blocking_timeout=wait_seconds)
        if not lock.acquire():
            raise LockNotAcquired(key)
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError:
                # Auto-expired while held; the commit has already happened
                logger.warning(f"Booking lock {key} expired before release")


_lock_provider: Optional[LockProvider] = None
_provider_guard = threading.Lock()


def get_lock_provider() -> LockProvider:
    """Process-wide lock provider chosen by BOOKING_LOCK_BACKEND"""
    global _lock_provider
    with _provider_guard:
        if _lock_provider is None:
            backend = get_settings().BOOKING_LOCK_BACKEND
            if backend == "redis":
                _lock_provider = RedisLockProvider()
            elif backend == "local":
                _lock_provider = LocalLockProvider()
            else:
                raise ValueError(f"Unknown BOOKING_LOCK_BACKEND: {backend}")
            logger.info(f"Using {backend} booking locks")
    return _lock_provider
