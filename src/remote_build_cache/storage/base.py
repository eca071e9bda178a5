"""Object store gateway interface."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol


@dataclass(frozen=True)
class StoredObject:
    """An object read from the store.

    Attributes:
        data: Object body
        created_at: Store-assigned creation (last write) time, UTC
    """

    data: bytes
    created_at: datetime


class ObjectStoreGateway(Protocol):
    """Bucket-bound byte storage keyed by cache key.

    Implementations classify remote faults: not-found is reported by
    returning None or False, every other failure raises ObjectStoreError.
    """

    bucket: str

    def put(self, key: str, data: bytes) -> None:
        """Write or overwrite the object named key."""
        ...

    def get(self, key: str) -> Optional[StoredObject]:
        """Read an object, or return None if it does not exist."""
        ...

    def rewrite(self, key: str, data: bytes) -> None:
        """Write data again under key to reset its creation time."""
        ...

    def exists(self, key: str) -> bool:
        """Check whether an object exists."""
        ...

    def close(self) -> None:
        """Release client resources."""
        ...
