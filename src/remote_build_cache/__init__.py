"""Remote build cache - object-store backed artifact cache.

This package provides:
- A cache service that stores and loads build artifacts by content hash
- S3-compatible and local-directory object store gateways
- Touch-on-read refresh so bucket lifecycle rules keep hot entries alive
"""

__version__ = "0.1.0"
