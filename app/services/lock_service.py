# app/services/lock_service.py

import logging
import threading
from contextlib import contextmanager, ExitStack
from datetime import date
from typing import Dict, Iterable, Optional

import redis

from app.config.database import settings
from app.config.redis_config import get_redis_client
from app.utils.exceptions import ConflictError

logger = logging.getLogger("locks")


def slot_key(therapist_id: int, day: date) -> str:
    return f"slot:{therapist_id}:{day.isoformat()}"


def reminder_key(appointment_id: int) -> str:
    return f"reminder:{appointment_id}"


class SlotLockManager:
    """
    Keyed mutual exclusion around check-then-write sequences.

    backend="local" guards a single process with threading locks,
    backend="redis" uses redis locks so every worker sees the same key.
    """

    def __init__(
        self,
        backend: Optional[str] = None,
        timeout: Optional[int] = None,
        wait: Optional[float] = None,
        redis_client: Optional[redis.Redis] = None,
    ):
        self.backend = backend or settings.lock_backend
        self.timeout = timeout or settings.lock_timeout_seconds
        self.wait = wait if wait is not None else settings.lock_wait_seconds
        self._redis = redis_client
        self._guard = threading.Lock()
        self._local: Dict[str, threading.Lock] = {}
        self._users: Dict[str, int] = {}

    def _redis_client(self) -> redis.Redis:
        if self._redis is None:
            self._redis = get_redis_client()
        return self._redis

    def _checkout(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._local.get(key)
            if lock is None:
                lock = self._local[key] = threading.Lock()
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _checkin(self, key: str):
        # Forget the key once nobody holds or waits on it
        with self._guard:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._local[key]

    @contextmanager
    def hold(self, key: str):
        if self.backend == "redis":
            lock = self._redis_client().lock(
                f"lock:{key}", timeout=self.timeout, blocking_timeout=self.wait
            )
            acquired = lock.acquire()
        else:
            lock = self._checkout(key)
            acquired = lock.acquire(timeout=self.wait)
            if not acquired:
                self._checkin(key)

        if not acquired:
            logger.warning(f"Timed out waiting for lock {key}")
            raise ConflictError(
                "Another booking for this therapist is being processed. Please retry.",
                {"lock": key},
            )

        logger.debug(f"Acquired lock {key}")
        try:
            yield
        finally:
            try:
                lock.release()
            except redis.exceptions.LockError as e:
                # Expired under us; the write already happened inside the window
                logger.error(f"Lock {key} expired before release: {e}")
            finally:
                if self.backend != "redis":
                    self._checkin(key)
            logger.debug(f"Released lock {key}")

    @contextmanager
    def hold_many(self, keys: Iterable[str]):
        """Hold several keys, acquired in sorted order to avoid deadlock."""
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                stack.enter_context(self.hold(key))
            yield


slot_locks = SlotLockManager()
