"""Local-directory object store gateway.

Stands in for a bucket during development and tests. Each entry is a file
named by its key; file mtime plays the role of the creation time.
"""

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from remote_build_cache.errors import BucketUnavailableError, ObjectStoreError
from remote_build_cache.storage.base import StoredObject


class LocalDirGateway:
    """Gateway backed by a directory on the local filesystem.

    Attributes:
        root: Directory holding the objects
        bucket: Directory path as a string, used in diagnostics
    """

    def __init__(self, root: Path):
        """Bind to an existing directory.

        Args:
            root: Directory acting as the bucket

        Raises:
            BucketUnavailableError: If the directory does not exist
        """
        self.root = Path(root)
        self.bucket = str(self.root)
        if not self.root.is_dir():
            raise BucketUnavailableError(self.bucket, "directory does not exist")

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key in (".", ".."):
            raise ObjectStoreError("resolve", key, self.bucket, reason="invalid object name")
        return self.root / key

    def put(self, key: str, data: bytes) -> None:
        path = self._path(key)
        try:
            # Write to a temp file then rename so readers never see a partial object
            fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise ObjectStoreError("put", key, self.bucket, reason=str(e)) from e

    def get(self, key: str) -> Optional[StoredObject]:
        path = self._path(key)
        try:
            with open(path, "rb") as f:
                data = f.read()
                mtime = os.fstat(f.fileno()).st_mtime
        except FileNotFoundError:
            return None
        except OSError as e:
            raise ObjectStoreError("get", key, self.bucket, reason=str(e)) from e

        return StoredObject(
            data=data,
            created_at=datetime.fromtimestamp(mtime, tz=timezone.utc),
        )

    def rewrite(self, key: str, data: bytes) -> None:
        self.put(key, data)

    def exists(self, key: str) -> bool:
        path = self._path(key)
        try:
            return path.is_file()
        except OSError as e:
            raise ObjectStoreError("head", key, self.bucket, reason=str(e)) from e

    def close(self) -> None:
        """Nothing to release."""
        pass
