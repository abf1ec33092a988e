from __future__ import annotations

from contextlib import contextmanager
import logging
import threading
import time
from typing import Dict, Iterator, Optional

from redis import Redis
from redis.exceptions import LockError, RedisError
from redis.lock import Lock as RedisLock

from ..monitoring.prometheus_metrics import prometheus_metrics
from .config import settings
from .exceptions import ClassLockTimeoutException

logger = logging.getLogger(__name__)


class _LocalLockEntry:
    """In-process lock plus the number of threads holding or waiting on it."""

    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


_LOCAL_LOCKS: Dict[str, _LocalLockEntry] = {}
_LOCAL_LOCKS_GUARD = threading.Lock()

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()


def _lock_key(class_id: str) -> str:
    return f"{settings.lock_namespace}:lock:class:{class_id}"


@contextmanager
def _local_lock(class_id: str) -> Iterator[threading.Lock]:
    """
    Yield the in-process lock for a class.

    The entry is dropped once no thread holds or waits on it, so the map only
    holds classes that are currently in use.
    """
    with _LOCAL_LOCKS_GUARD:
        entry = _LOCAL_LOCKS.get(class_id)
        if entry is None:
            entry = _LOCAL_LOCKS[class_id] = _LocalLockEntry()
        entry.users += 1
    try:
        yield entry.lock
    finally:
        with _LOCAL_LOCKS_GUARD:
            entry.users -= 1
            if entry.users == 0:
                del _LOCAL_LOCKS[class_id]


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(settings.redis_url, decode_responses=True)
            client.ping()
        except RedisError as exc:
            logger.warning("class_lock_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


def _acquire_redis_lock(class_id: str, wait_seconds: float) -> Optional[RedisLock]:
    """
    Take the cross-process lock for a class.

    Returns None when redis cannot be reached; callers then rely on the
    in-process lock and database row locks.
    """
    client = _get_sync_redis()
    if client is None:
        prometheus_metrics.record_class_lock("redis", "redis_unavailable")
        return None

    lock = client.lock(
        _lock_key(class_id),
        timeout=settings.class_lock_ttl_seconds,
        blocking_timeout=max(wait_seconds, 0.0),
    )
    try:
        acquired = lock.acquire()
    except RedisError as exc:
        prometheus_metrics.record_class_lock("redis", "redis_unavailable")
        logger.warning(
            "class_lock_redis_acquire_failed",
            extra={"class_id": class_id, "error": str(exc), "error_type": type(exc).__name__},
        )
        return None

    if not acquired:
        prometheus_metrics.record_class_lock("redis", "timeout")
        logger.warning(
            "class_lock_timeout",
            extra={"class_id": class_id, "backend": "redis", "waited_seconds": wait_seconds},
        )
        raise ClassLockTimeoutException(class_id, wait_seconds)

    prometheus_metrics.record_class_lock("redis", "acquired")
    return lock


def _release_redis_lock(class_id: str, lock: RedisLock) -> None:
    try:
        lock.release()
    except (LockError, RedisError) as exc:
        # Expired under us (ttl) or connection dropped; the row locks still held.
        prometheus_metrics.record_class_lock("redis", "release_error")
        logger.warning(
            "class_lock_redis_release_failed",
            extra={"class_id": class_id, "error": str(exc), "error_type": type(exc).__name__},
        )


@contextmanager
def class_lock(class_id: str, wait_seconds: Optional[float] = None) -> Iterator[None]:
    """
    Per-class exclusive critical section.

    Every capacity or waitlist mutation for a class runs inside this block.
    The block must commit its transaction before exiting so the next holder
    reads committed state. Not reentrant.
    """
    wait = settings.class_lock_wait_seconds if wait_seconds is None else wait_seconds
    started = time.monotonic()

    with _local_lock(class_id) as local:
        if not local.acquire(timeout=wait):
            prometheus_metrics.record_class_lock("local", "timeout")
            logger.warning(
                "class_lock_timeout",
                extra={"class_id": class_id, "backend": "local", "waited_seconds": wait},
            )
            raise ClassLockTimeoutException(class_id, wait)
        prometheus_metrics.record_class_lock("local", "acquired")

        try:
            redis_lock = None
            if settings.class_lock_backend == "redis":
                remaining = wait - (time.monotonic() - started)
                redis_lock = _acquire_redis_lock(class_id, remaining)
            try:
                yield
            finally:
                if redis_lock is not None:
                    _release_redis_lock(class_id, redis_lock)
        finally:
            local.release()
