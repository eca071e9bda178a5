"""Build cache service.

Stores and loads artifacts by cache key through an object store gateway.
Entries older than ``expire_after_seconds`` are rewritten when loaded, so a
bucket lifecycle rule that deletes objects by age only reaps entries that
nobody has used within the window.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional

from remote_build_cache.config import CacheConfig
from remote_build_cache.errors import CacheLoadError, CacheStoreError, ObjectStoreError
from remote_build_cache.services.credentials import describe_credentials, resolve_session
from remote_build_cache.storage.base import ObjectStoreGateway
from remote_build_cache.storage.local import LocalDirGateway
from remote_build_cache.storage.s3 import S3Gateway

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheService:
    """Remote build cache bound to a single bucket.

    Safe for concurrent use. Store and load share only the gateway; the
    background refresh bookkeeping is guarded by a lock.

    Attributes:
        bucket: Bucket identity used in diagnostics
        expire_after_seconds: Refresh threshold (0 disables refresh)
    """

    def __init__(
        self,
        gateway: ObjectStoreGateway,
        expire_after_seconds: int = 0,
        refresh_in_background: bool = False,
        clock: Optional[Clock] = None,
        description: Optional[dict[str, str]] = None,
    ):
        """Initialize the service.

        Args:
            gateway: Object store gateway for the bucket
            expire_after_seconds: Age after which a loaded entry is rewritten
            refresh_in_background: Rewrite on a worker thread instead of inline
            clock: Returns the current UTC time (defaults to the system clock)
            description: Diagnostic summary returned by describe()
        """
        self._gateway = gateway
        self.bucket = gateway.bucket
        self.expire_after_seconds = expire_after_seconds
        self._clock = clock or _utcnow
        self._executor: Optional[ThreadPoolExecutor] = None
        if refresh_in_background:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="cache-refresh")
        self._description = description or {
            "type": type(gateway).__name__,
            "bucket": self.bucket,
            "expire_after_seconds": str(expire_after_seconds),
        }
        self._closed = False
        # Guards _closed and _pending against close() racing a background refresh
        self._lock = threading.Lock()
        self._pending: set[str] = set()

    def store(self, key: str, data: bytes) -> None:
        """Store an artifact under key, overwriting any previous entry.

        Raises:
            CacheStoreError: If the object store rejects or fails the write
        """
        try:
            self._gateway.put(key, data)
        except ObjectStoreError as e:
            raise CacheStoreError(key, self.bucket, reason=str(e)) from e
        logger.debug(f"Stored {key} ({len(data)} bytes)")

    def load(self, key: str) -> Optional[bytes]:
        """Load the artifact stored under key.

        A stale entry is rewritten with the same bytes after it is read.
        Refresh failures are logged and do not affect the result.

        Args:
            key: Cache key

        Returns:
            Artifact bytes, or None on a cache miss

        Raises:
            CacheLoadError: If the read failed for a reason other than a miss
        """
        try:
            stored = self._gateway.get(key)
        except ObjectStoreError as e:
            raise CacheLoadError(key, self.bucket, reason=str(e)) from e

        if stored is None:
            return None

        logger.debug(f"Loaded {key} ({len(stored.data)} bytes)")

        if self._needs_refresh(stored.created_at):
            self._schedule_refresh(key, stored.data)

        return stored.data

    def exists(self, key: str) -> bool:
        """Check whether an entry exists without downloading or refreshing it.

        Raises:
            CacheLoadError: If the check failed for a reason other than a miss
        """
        try:
            return self._gateway.exists(key)
        except ObjectStoreError as e:
            raise CacheLoadError(key, self.bucket, reason=str(e)) from e

    def _needs_refresh(self, created_at: datetime) -> bool:
        if self.expire_after_seconds <= 0:
            return False
        age = self._clock() - created_at
        return age > timedelta(seconds=self.expire_after_seconds)

    def _schedule_refresh(self, key: str, data: bytes) -> None:
        if self._executor is None:
            self._refresh(key, data)
            return

        with self._lock:
            if self._closed:
                logger.debug(f"Service closed, skipping refresh of {key}")
                return
            if key in self._pending:
                logger.debug(f"Refresh of {key} already pending")
                return
            self._pending.add(key)
            # close() cannot shut the executor down while we hold the lock
            self._executor.submit(self._refresh_pending, key, data)

    def _refresh_pending(self, key: str, data: bytes) -> None:
        try:
            self._refresh(key, data)
        finally:
            with self._lock:
                self._pending.discard(key)

    def _refresh(self, key: str, data: bytes) -> None:
        try:
            self._gateway.rewrite(key, data)
        except Exception as e:
            logger.warning(f"Failed to refresh {key} in bucket {self.bucket}: {e}")
        else:
            logger.debug(f"Refreshed {key}")

    def describe(self) -> dict[str, str]:
        """Summarize the backend configuration for display."""
        return dict(self._description)

    def close(self) -> None:
        """Wait for pending refreshes and release the gateway."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        # Outside the lock: running refreshes take it to clear _pending
        if self._executor is not None:
            self._executor.shutdown(wait=True)
        self._gateway.close()

    def __enter__(self) -> "CacheService":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def create_gateway(
    config: CacheConfig,
    session_factory: Callable[[CacheConfig], object] = resolve_session,
) -> ObjectStoreGateway:
    """Create the gateway the configuration points at.

    A ``file://`` endpoint selects a local directory named after the bucket
    under that path; anything else is an S3-compatible store.

    Raises:
        ConfigurationError: If credentials cannot be resolved
        BucketUnavailableError: If the bucket is missing or inaccessible
    """
    if config.uses_local_directory:
        root = Path(config.endpoint_url[len("file://"):]).expanduser()
        return LocalDirGateway(root / config.bucket)

    session = session_factory(config)
    return S3Gateway(
        session,
        config.bucket,
        endpoint_url=config.endpoint_url or None,
        region=config.region or None,
    )


def describe_config(config: CacheConfig) -> dict[str, str]:
    """Describe a configuration the way the service reports itself."""
    if config.uses_local_directory:
        backend = "Local directory"
    else:
        backend = "S3-compatible object storage"
    return {
        "type": backend,
        "bucket": config.bucket,
        "credentials": "none" if config.uses_local_directory else describe_credentials(config),
        "expire_after_seconds": str(config.expire_after_seconds),
    }


def create_cache_service(
    config: CacheConfig,
    session_factory: Callable[[CacheConfig], object] = resolve_session,
    clock: Optional[Clock] = None,
) -> CacheService:
    """Construct a ready cache service from configuration.

    Args:
        config: Validated cache configuration
        session_factory: Resolves credentials into a boto3 session
        clock: Current-time source for the refresh check

    Returns:
        CacheService bound to the configured bucket

    Raises:
        ConfigurationError: If credentials cannot be resolved
        BucketUnavailableError: If the bucket is missing or inaccessible
    """
    gateway = create_gateway(config, session_factory)
    logger.info(f"Using build cache bucket {config.bucket}")
    return CacheService(
        gateway,
        expire_after_seconds=config.expire_after_seconds,
        refresh_in_background=config.refresh_in_background,
        clock=clock,
        description=describe_config(config),
    )
