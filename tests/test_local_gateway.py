"""Tests for the local-directory gateway."""

import os
import time
from datetime import datetime, timezone
from pathlib import Path

import pytest

from remote_build_cache.errors import BucketUnavailableError, ObjectStoreError
from remote_build_cache.storage.local import LocalDirGateway


def test_missing_directory_raises(tmp_path):
    """A bucket directory that does not exist is unavailable."""
    with pytest.raises(BucketUnavailableError, match="ci-cache"):
        LocalDirGateway(tmp_path / "ci-cache")


def test_put_then_get(bucket_dir):
    gateway = LocalDirGateway(bucket_dir)

    gateway.put("abc123", b"\x01\x02\x03")
    stored = gateway.get("abc123")

    assert stored.data == b"\x01\x02\x03"
    assert (bucket_dir / "abc123").read_bytes() == b"\x01\x02\x03"


def test_get_missing_returns_none(bucket_dir):
    assert LocalDirGateway(bucket_dir).get("deadbeef") is None


def test_overwrite_replaces_content(bucket_dir):
    gateway = LocalDirGateway(bucket_dir)

    gateway.put("abc123", b"first")
    gateway.put("abc123", b"second")

    assert gateway.get("abc123").data == b"second"
    assert sorted(p.name for p in bucket_dir.iterdir()) == ["abc123"]


def test_created_at_is_utc_mtime(bucket_dir):
    gateway = LocalDirGateway(bucket_dir)
    gateway.put("abc123", b"x")
    os.utime(bucket_dir / "abc123", (1_700_000_000, 1_700_000_000))

    stored = gateway.get("abc123")

    assert stored.created_at == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)


def test_rewrite_resets_creation_time(bucket_dir):
    """rewrite gives the entry a fresh mtime and keeps its content."""
    gateway = LocalDirGateway(bucket_dir)
    gateway.put("abc123", b"payload")
    os.utime(bucket_dir / "abc123", (1_000_000, 1_000_000))

    gateway.rewrite("abc123", b"payload")

    stored = gateway.get("abc123")
    assert stored.data == b"payload"
    assert stored.created_at.timestamp() > time.time() - 60


def test_exists(bucket_dir):
    gateway = LocalDirGateway(bucket_dir)
    gateway.put("abc123", b"x")

    assert gateway.exists("abc123") is True
    assert gateway.exists("deadbeef") is False


@pytest.mark.parametrize("key", ["", "..", "a/b", "..\\x"])
def test_invalid_key_raises(bucket_dir, key):
    """Keys that would escape the bucket directory are rejected."""
    with pytest.raises(ObjectStoreError):
        LocalDirGateway(bucket_dir).put(key, b"x")


def test_unreadable_entry_raises(bucket_dir):
    """An I/O failure other than not-found is an error, not a miss."""
    (bucket_dir / "abc123").mkdir()

    with pytest.raises(ObjectStoreError) as exc_info:
        LocalDirGateway(bucket_dir).get("abc123")

    assert exc_info.value.operation == "get"


def test_exists_permission_error_raises(bucket_dir, monkeypatch):
    """A denied stat is a store fault, not a miss and not a raw OSError."""

    def denied(path):
        raise PermissionError(13, "Permission denied", str(path))

    gateway = LocalDirGateway(bucket_dir)
    monkeypatch.setattr(Path, "is_file", denied)

    with pytest.raises(ObjectStoreError, match="Permission denied") as exc_info:
        gateway.exists("abc123")

    assert exc_info.value.operation == "head"
    assert exc_info.value.status_code is None
