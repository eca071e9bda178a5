"""Error types for the remote build cache.

Construction-time errors (ConfigurationError, BucketUnavailableError) are
fatal. Store/load errors are per-call and leave the decision to the caller.
A cache miss is never an error.
"""

from typing import Optional


class BuildCacheError(Exception):
    """Base class for all build cache errors."""

    pass


class ConfigurationError(BuildCacheError):
    """Invalid or unreadable cache configuration.

    Attributes:
        field: Name of the offending configuration field, if known
    """

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        if field:
            message = f"{field}: {message}"
        super().__init__(message)


class BucketUnavailableError(BuildCacheError):
    """The configured bucket does not exist or cannot be accessed."""

    def __init__(self, bucket: str, reason: str = ""):
        self.bucket = bucket
        message = f"Bucket '{bucket}' is unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ObjectStoreError(BuildCacheError):
    """A request to the object store failed for a reason other than not-found.

    Attributes:
        operation: Gateway operation that failed (e.g. "get", "put")
        key: Object key involved
        bucket: Bucket name
        status_code: HTTP status returned by the store, or None for
            transport-level faults
    """

    def __init__(
        self,
        operation: str,
        key: str,
        bucket: str,
        status_code: Optional[int] = None,
        reason: str = "",
    ):
        self.operation = operation
        self.key = key
        self.bucket = bucket
        self.status_code = status_code
        status = f"HTTP {status_code}" if status_code is not None else "no response"
        message = f"{operation} '{key}' in bucket '{bucket}' failed ({status})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class CacheStoreError(BuildCacheError):
    """Storing an entry failed.

    Attributes:
        reason: Description of the underlying store fault, if any
    """

    def __init__(self, key: str, bucket: str, reason: str = ""):
        self.key = key
        self.bucket = bucket
        self.reason = reason
        message = f"Unable to store '{key}' in bucket '{bucket}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class CacheLoadError(BuildCacheError):
    """Loading an entry failed for a reason other than a cache miss.

    Attributes:
        reason: Description of the underlying store fault, if any
    """

    def __init__(self, key: str, bucket: str, reason: str = ""):
        self.key = key
        self.bucket = bucket
        self.reason = reason
        message = f"Unable to load '{key}' from bucket '{bucket}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
