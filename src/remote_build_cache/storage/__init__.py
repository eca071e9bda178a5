"""Storage layer: object store gateways."""

from .base import ObjectStoreGateway, StoredObject
from .local import LocalDirGateway
from .s3 import S3Gateway

__all__ = ["ObjectStoreGateway", "StoredObject", "LocalDirGateway", "S3Gateway"]
