"""
Object storage clients for thumbnails and processed videos.

Three backends share one protocol:
- S3StorageClient: AWS S3 or any S3-compatible store (MinIO, R2) via boto3
- LocalStorageClient: files under a directory served at /assets
- MockStorageClient: in-memory, for tests and local development

The backend is chosen once at startup. Handlers never branch on which one
is active; they only see the StorageClient protocol.
"""

import asyncio
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional, Protocol, Union
from urllib.parse import quote

logger = logging.getLogger(__name__)

Body = Union[bytes, BinaryIO]


class StorageError(Exception):
    """Raised when storage operations fail."""
    pass


@dataclass
class StorageConfig:
    """
    Configuration for S3-compatible storage.

    Empty credentials mean boto3 falls back to its default credential
    chain (environment, shared config, instance role).
    """
    bucket_name: str
    region: str = "us-east-1"
    endpoint_url: Optional[str] = None
    access_key_id: str = ""
    secret_access_key: str = ""
    timeout_seconds: float = 300.0


class StorageClient(Protocol):
    """
    Protocol for object storage operations.

    Using a protocol means tests can provide mocks and we can
    swap storage backends without changing dependent code.
    """

    @property
    def bucket_name(self) -> str:
        """Bucket (or namespace) objects are written to."""
        ...

    async def put_object(self, key: str, body: Body, content_type: str) -> None:
        """Store bytes under key."""
        ...

    async def get_object(self, key: str) -> bytes:
        """Read an object back."""
        ...

    async def delete_object(self, key: str) -> None:
        """Remove an object. Missing objects are not an error."""
        ...

    def public_url(self, key: str) -> str:
        """Unsigned URL for key."""
        ...

    async def get_presigned_url(
        self,
        bucket: str,
        key: str,
        expiry_seconds: int = 3600,
    ) -> str:
        """Generate a temporary download URL."""
        ...


def _read_body(body: Body) -> bytes:
    if isinstance(body, (bytes, bytearray)):
        return bytes(body)
    return body.read()


class S3StorageClient:
    """
    S3 object storage client.

    Uses boto3, which is synchronous. Calls run in a worker thread under a
    deadline so a slow upload can't block the event loop or hang the
    request forever; botocore's own connect/read timeouts bound the thread.
    """

    def __init__(self, config: StorageConfig) -> None:
        """
        Initialize S3 client with boto3.

        We import boto3 here (not at module level) because the local and
        mock backends don't need it.
        """
        try:
            import boto3
            from botocore.config import Config
        except ImportError:
            raise ImportError(
                "boto3 is required for S3 storage. Install with: pip install boto3"
            )

        self._config = config

        boto_config = Config(
            signature_version="s3v4",
            connect_timeout=10,
            read_timeout=max(int(config.timeout_seconds), 1),
            retries={"max_attempts": 1, "mode": "standard"},
        )

        client_kwargs = {
            "region_name": config.region,
            "config": boto_config,
        }
        if config.endpoint_url:
            client_kwargs["endpoint_url"] = config.endpoint_url
        if config.access_key_id:
            client_kwargs["aws_access_key_id"] = config.access_key_id
            client_kwargs["aws_secret_access_key"] = config.secret_access_key

        self._s3_client = boto3.client("s3", **client_kwargs)

        logger.info(
            "Initialized S3 storage client",
            extra={
                "bucket": config.bucket_name,
                "region": config.region,
                "endpoint": config.endpoint_url,
            }
        )

    @property
    def bucket_name(self) -> str:
        return self._config.bucket_name

    async def put_object(self, key: str, body: Body, content_type: str) -> None:
        """Upload an object. One attempt, bounded by the configured timeout."""
        try:
            await asyncio.wait_for(
                asyncio.to_thread(
                    self._s3_client.put_object,
                    Bucket=self._config.bucket_name,
                    Key=key,
                    Body=body,
                    ContentType=content_type,
                ),
                timeout=self._config.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(
                "Timed out uploading object",
                extra={"key": key, "timeout": self._config.timeout_seconds}
            )
            raise StorageError(f"Upload timed out: {key}")
        except Exception as e:
            logger.error(
                "Failed to upload object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Upload failed: {e}")

        logger.info(
            "Uploaded object",
            extra={"bucket": self._config.bucket_name, "key": key, "content_type": content_type}
        )

    async def get_object(self, key: str) -> bytes:
        """Download an object's bytes."""
        try:
            response = await asyncio.to_thread(
                self._s3_client.get_object,
                Bucket=self._config.bucket_name,
                Key=key,
            )
            return response["Body"].read()

        except Exception as e:
            logger.error(
                "Failed to download object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Download failed: {e}")

    async def delete_object(self, key: str) -> None:
        try:
            await asyncio.to_thread(
                self._s3_client.delete_object,
                Bucket=self._config.bucket_name,
                Key=key,
            )
        except Exception as e:
            logger.error(
                "Failed to delete object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Delete failed: {e}")

    def public_url(self, key: str) -> str:
        """Virtual-hosted style URL, or path style for custom endpoints."""
        if self._config.endpoint_url:
            base = self._config.endpoint_url.rstrip("/")
            return f"{base}/{self._config.bucket_name}/{quote(key)}"
        return (
            f"https://{self._config.bucket_name}.s3.{self._config.region}"
            f".amazonaws.com/{quote(key)}"
        )

    async def get_presigned_url(
        self,
        bucket: str,
        key: str,
        expiry_seconds: int = 3600,
    ) -> str:
        """
        Generate a temporary download URL for a private object.

        Signing is local (no network call), but it still goes through the
        thread pool to keep the async surface uniform.
        """
        try:
            return await asyncio.to_thread(
                self._s3_client.generate_presigned_url,
                "get_object",
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=expiry_seconds,
            )

        except Exception as e:
            logger.error(
                "Failed to generate presigned URL",
                extra={"bucket": bucket, "key": key, "error": str(e)}
            )
            raise StorageError(f"Presigned URL generation failed: {e}")


# ---------------------------------------------------------------------------
# Local filesystem storage
# ---------------------------------------------------------------------------

class LocalStorageClient:
    """
    Stores objects as files under a root directory.

    The app mounts the root at /assets, so public_url points back at this
    server. There is nothing to sign: presigned URLs are the public URL.
    """

    def __init__(self, root: str, base_url: str) -> None:
        self._root = Path(root).resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        self._base_url = base_url.rstrip("/")

        logger.info(
            "Initialized local storage client",
            extra={"root": str(self._root), "base_url": self._base_url}
        )

    @property
    def bucket_name(self) -> str:
        return "local"

    @property
    def root(self) -> Path:
        return self._root

    def _path_for(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if path != self._root and self._root not in path.parents:
            raise StorageError(f"Key escapes storage root: {key}")
        return path

    def _write(self, path: Path, body: Body) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            if isinstance(body, (bytes, bytearray)):
                f.write(body)
            else:
                shutil.copyfileobj(body, f)

    async def put_object(self, key: str, body: Body, content_type: str) -> None:
        path = self._path_for(key)
        try:
            await asyncio.to_thread(self._write, path, body)
        except OSError as e:
            logger.error(
                "Failed to write local object",
                extra={"path": str(path), "error": str(e)}
            )
            raise StorageError(f"Write failed: {e}")

        logger.debug("Wrote local object", extra={"path": str(path)})

    async def get_object(self, key: str) -> bytes:
        path = self._path_for(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise StorageError(f"Read failed: {e}")

    async def delete_object(self, key: str) -> None:
        path = self._path_for(key)
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"Delete failed: {e}")

    def public_url(self, key: str) -> str:
        return f"{self._base_url}/assets/{quote(key)}"

    async def get_presigned_url(
        self,
        bucket: str,
        key: str,
        expiry_seconds: int = 3600,
    ) -> str:
        return self.public_url(key)


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockStorageClient:
    """
    In-memory storage for local development and tests.

    Objects are kept in a dictionary; "URLs" are mock URIs. Presigned URLs
    carry a sequence number so every call yields a distinct URL, like real
    signing does.

    Not suitable for production, but perfect for development and testing.
    """

    def __init__(self, bucket_name: str = "mock-bucket") -> None:
        self._bucket_name = bucket_name
        # {key: (bytes, content_type)}
        self._objects: dict[str, tuple[bytes, str]] = {}
        self._signed_count = 0
        logger.info("Initialized mock storage client (in-memory)")

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    @property
    def objects(self) -> dict[str, tuple[bytes, str]]:
        """Stored objects, for test assertions."""
        return self._objects

    async def put_object(self, key: str, body: Body, content_type: str) -> None:
        data = _read_body(body)
        self._objects[key] = (data, content_type)

        logger.debug(
            "Stored object in mock storage",
            extra={"key": key, "size_bytes": len(data)}
        )

    async def get_object(self, key: str) -> bytes:
        if key not in self._objects:
            raise StorageError(f"Object not found: {key}")
        return self._objects[key][0]

    async def delete_object(self, key: str) -> None:
        self._objects.pop(key, None)

    def public_url(self, key: str) -> str:
        return f"mock://{self._bucket_name}/{key}"

    async def get_presigned_url(
        self,
        bucket: str,
        key: str,
        expiry_seconds: int = 3600,
    ) -> str:
        if bucket != self._bucket_name or key not in self._objects:
            raise StorageError(f"Object not found: {bucket}/{key}")

        self._signed_count += 1
        return (
            f"mock://{bucket}/{key}"
            f"?expires={expiry_seconds}&signature={self._signed_count}"
        )


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    backend: str = "memory",
    config: Optional[StorageConfig] = None,
    assets_root: Optional[str] = None,
    base_url: Optional[str] = None,
) -> StorageClient:
    """
    Create storage client based on configuration.

    Args:
        backend: "s3", "local" or "memory"
        config: S3 configuration (required for "s3")
        assets_root: Directory for "local"
        base_url: Public server URL for "local"

    Returns:
        StorageClient implementation
    """
    if backend == "memory":
        return MockStorageClient()

    if backend == "local":
        if not assets_root or not base_url:
            raise ValueError("assets_root and base_url are required for local storage")
        return LocalStorageClient(assets_root, base_url)

    if backend == "s3":
        if config is None:
            raise ValueError("config is required for S3 storage")
        return S3StorageClient(config)

    raise ValueError(f"Unknown storage backend: {backend}")
