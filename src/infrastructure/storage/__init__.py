"""
Object storage integration for thumbnails and processed videos.

Supports S3 (and S3-compatible stores) via boto3, a local directory,
and an in-memory mock for development without credentials.
"""

from .client import (
    LocalStorageClient,
    MockStorageClient,
    S3StorageClient,
    StorageClient,
    StorageConfig,
    StorageError,
    create_storage_client,
)

__all__ = [
    "LocalStorageClient",
    "MockStorageClient",
    "S3StorageClient",
    "StorageClient",
    "StorageConfig",
    "StorageError",
    "create_storage_client",
]
