"""S3-compatible object store gateway.

Works against AWS S3, Cloudflare R2, MinIO and Google Cloud Storage's
S3 interoperability endpoint. Each cache entry is one object whose key is
the cache key itself.
"""

import logging
from datetime import timezone
from typing import Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from remote_build_cache.errors import BucketUnavailableError, ObjectStoreError
from remote_build_cache.storage.base import StoredObject

logger = logging.getLogger(__name__)

# Error codes S3-compatible stores use for a missing object
NOT_FOUND_CODES = frozenset({"NoSuchKey", "NotFound", "404"})

# Faults surface to the caller, never retried
CLIENT_CONFIG = BotoConfig(retries={"total_max_attempts": 1, "mode": "standard"})


def status_code(error: ClientError) -> Optional[int]:
    """Get the HTTP status from a ClientError response, if any."""
    return error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")


def is_not_found(error: ClientError) -> bool:
    """Check whether a ClientError means the object does not exist.

    A missing bucket also answers 404 but is not a cache miss.

    Args:
        error: Error raised by the boto3 client

    Returns:
        True if the error is an object-level not-found
    """
    code = str(error.response.get("Error", {}).get("Code", ""))
    if code == "NoSuchBucket":
        return False
    return code in NOT_FOUND_CODES or status_code(error) == 404


class S3Gateway:
    """Gateway to one bucket in an S3-compatible store.

    Attributes:
        bucket: Bucket name
        endpoint_url: Custom endpoint, or None for the AWS default
    """

    def __init__(
        self,
        session: boto3.session.Session,
        bucket: str,
        endpoint_url: Optional[str] = None,
        region: Optional[str] = None,
    ):
        """Create the client and verify the bucket is reachable.

        Args:
            session: Authenticated boto3 session
            bucket: Bucket name
            endpoint_url: S3-compatible endpoint URL
            region: Region name

        Raises:
            BucketUnavailableError: If the bucket is missing or inaccessible
        """
        self.bucket = bucket
        self.endpoint_url = endpoint_url or None

        self._client = session.client(
            "s3",
            endpoint_url=self.endpoint_url,
            region_name=region or None,
            config=CLIENT_CONFIG,
        )

        try:
            self._client.head_bucket(Bucket=bucket)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "unknown")
            raise BucketUnavailableError(bucket, f"{code} (HTTP {status_code(e)})") from e
        except BotoCoreError as e:
            raise BucketUnavailableError(bucket, str(e)) from e

        logger.debug(f"Connected to bucket {bucket} at {self.endpoint_url or 'default endpoint'}")

    def put(self, key: str, data: bytes) -> None:
        try:
            self._client.put_object(Bucket=self.bucket, Key=key, Body=data)
        except ClientError as e:
            raise self._fault("put", key, e) from e
        except BotoCoreError as e:
            raise self._fault("put", key, e) from e

    def get(self, key: str) -> Optional[StoredObject]:
        """Read an object.

        Args:
            key: Object key

        Returns:
            StoredObject, or None if the object does not exist

        Raises:
            ObjectStoreError: On any other failure
        """
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=key)
            body = response["Body"]
            try:
                data = body.read()
            finally:
                body.close()
        except ClientError as e:
            if is_not_found(e):
                return None
            raise self._fault("get", key, e) from e
        except BotoCoreError as e:
            raise self._fault("get", key, e) from e

        created_at = response["LastModified"]
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return StoredObject(data=data, created_at=created_at)

    def rewrite(self, key: str, data: bytes) -> None:
        # A fresh PUT resets LastModified, which lifecycle rules age from
        self.put(key, data)

    def exists(self, key: str) -> bool:
        try:
            self._client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            if is_not_found(e):
                return False
            raise self._fault("head", key, e) from e
        except BotoCoreError as e:
            raise self._fault("head", key, e) from e

    def close(self) -> None:
        self._client.close()

    def _fault(self, operation: str, key: str, error: Exception) -> ObjectStoreError:
        if isinstance(error, ClientError):
            code = error.response.get("Error", {}).get("Code", "unknown")
            return ObjectStoreError(
                operation, key, self.bucket, status_code=status_code(error), reason=str(code)
            )
        return ObjectStoreError(operation, key, self.bucket, reason=str(error))
