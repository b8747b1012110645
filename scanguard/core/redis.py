import logging
from typing import Optional

import redis

from scanguard.scanning.exceptions import ScanLockUnavailableError

logger = logging.getLogger(__name__)


class RedisLock:
    """
    Redis-based distributed lock for preventing concurrent scans of a project.

    Usage:
        with RedisLock("scan:owner_repo_main", redis_url=url, timeout=3600):
            # critical section
    """

    def __init__(
        self,
        key: str,
        redis_url: str,
        timeout: int = 3600,
        blocking_timeout: int = 30,
        client: Optional[redis.Redis] = None,
    ):
        self.key = f"lock:{key}"
        self.redis_url = redis_url
        self.timeout = timeout
        self.blocking_timeout = blocking_timeout
        self._client = client
        self._lock = None

    def __enter__(self):
        redis_client = self._client or redis.from_url(self.redis_url)
        self._lock = redis_client.lock(
            self.key,
            timeout=self.timeout,
            blocking_timeout=self.blocking_timeout,
        )
        try:
            acquired = self._lock.acquire(blocking=True)
        except redis.exceptions.RedisError as exc:
            self._lock = None
            raise ScanLockUnavailableError(f"Could not reach Redis for {self.key}: {exc}") from exc
        if not acquired:
            self._lock = None
            raise ScanLockUnavailableError(f"Could not acquire lock: {self.key}")
        logger.debug(f"Acquired {self.key}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._lock:
            try:
                self._lock.release()
            except redis.exceptions.LockError:
                # Lease expired while the scan was still running
                logger.warning(f"Lock {self.key} expired before release")
        return False


class ProjectScanLockFactory:
    """Builds a ``RedisLock`` per project key from settings."""

    def __init__(self, redis_url: str, timeout: int = 3600, blocking_timeout: int = 30):
        self.redis_url = redis_url
        self.timeout = timeout
        self.blocking_timeout = blocking_timeout

    def __call__(self, project_key: str) -> RedisLock:
        return RedisLock(
            f"scan:{project_key}",
            redis_url=self.redis_url,
            timeout=self.timeout,
            blocking_timeout=self.blocking_timeout,
        )
