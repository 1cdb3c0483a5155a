"""
Asset locators: how a stored object is referenced from a video record.

A locator is stored as a plain string in one of two forms:
- a URL ("https://...", "http://localhost:8091/assets/...", "mock://...")
- a bucket/key pair "<bucket>,<key>" for private objects

The form is read off the stored value, not off the current configuration,
so a record written under one locator mode still resolves after the mode
changes. Bucket/key locators are turned into presigned URLs on every read;
URL locators are returned unchanged.
"""

from dataclasses import dataclass
from typing import Literal, Optional, Protocol


LocatorMode = Literal["url", "cdn", "signed"]


class LocatorError(Exception):
    """Raised when a persisted locator cannot be parsed or built."""
    pass


class PresignedUrlSource(Protocol):
    """The part of a storage backend that locators need."""

    @property
    def bucket_name(self) -> str: ...

    def public_url(self, key: str) -> str: ...

    async def get_presigned_url(
        self,
        bucket: str,
        key: str,
        expiry_seconds: int = 3600,
    ) -> str: ...


@dataclass(frozen=True)
class AssetLocator:
    """Parsed locator. Exactly one of url or (bucket, key) is set."""
    url: Optional[str] = None
    bucket: Optional[str] = None
    key: Optional[str] = None

    @property
    def needs_signing(self) -> bool:
        return self.url is None

    def encode(self) -> str:
        if self.url is not None:
            return self.url
        return f"{self.bucket},{self.key}"


def parse_locator(value: str) -> AssetLocator:
    """Parse a stored locator string."""
    if "://" in value:
        return AssetLocator(url=value)

    parts = value.split(",")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise LocatorError(f"Malformed asset locator: {value!r}")

    return AssetLocator(bucket=parts[0], key=parts[1])


def build_locator(
    key: str,
    mode: LocatorMode,
    storage: PresignedUrlSource,
    cdn_base_url: Optional[str] = None,
) -> AssetLocator:
    """
    Build the locator to persist for a freshly stored object.

    Raises LocatorError if the result would not parse back to itself:
    a record must never hold a locator its readers can't resolve.
    """
    if mode == "signed":
        if "," in storage.bucket_name or "," in key:
            raise LocatorError("Bucket and key cannot contain ','")
        locator = AssetLocator(bucket=storage.bucket_name, key=key)
    elif mode == "cdn":
        if not cdn_base_url:
            raise LocatorError("CDN locator mode requires a CDN base URL")
        locator = AssetLocator(url=f"{cdn_base_url.rstrip('/')}/{key}")
    else:
        locator = AssetLocator(url=storage.public_url(key))

    encoded = locator.encode()
    try:
        round_trip = parse_locator(encoded)
    except LocatorError:
        raise LocatorError(f"Locator would not be readable: {encoded!r}")
    if round_trip != locator:
        raise LocatorError(f"Locator would not be readable: {encoded!r}")

    return locator


async def resolve_locator(
    value: Optional[str],
    storage: PresignedUrlSource,
    expiry_seconds: int,
) -> Optional[str]:
    """Turn a stored locator into something a client can fetch."""
    if value is None:
        return None

    locator = parse_locator(value)
    if not locator.needs_signing:
        return locator.url

    return await storage.get_presigned_url(
        locator.bucket,
        locator.key,
        expiry_seconds=expiry_seconds,
    )
