"""Shared fixtures for build cache tests."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from remote_build_cache.config import ENV_OVERRIDES


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep BUILD_CACHE_* variables from the outer environment out of tests."""
    for env_var in ENV_OVERRIDES.values():
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def mock_s3():
    """A stand-in boto3 S3 client."""
    return MagicMock()


@pytest.fixture
def mock_session(mock_s3):
    """A stand-in boto3 session whose client() returns mock_s3."""
    session = MagicMock()
    session.client.return_value = mock_s3
    return session


@pytest.fixture
def make_client_error():
    """Factory for botocore ClientError instances."""

    def _make(code, status, operation="GetObject", message="error"):
        return ClientError(
            {
                "Error": {"Code": code, "Message": message},
                "ResponseMetadata": {"HTTPStatusCode": status},
            },
            operation,
        )

    return _make


@pytest.fixture
def bucket_dir(tmp_path):
    """Local directory standing in for a bucket named ci-cache."""
    bucket = tmp_path / "buckets" / "ci-cache"
    bucket.mkdir(parents=True)
    return bucket
