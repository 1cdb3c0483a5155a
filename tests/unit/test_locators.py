"""
Unit tests for asset locators.

A locator is what gets persisted on a video record. These tests pin
down the two stored forms and how each one resolves on read.
"""

import pytest
from pydantic import ValidationError

from src.config.settings import Settings
from src.core.media.locators import (
    AssetLocator,
    LocatorError,
    build_locator,
    parse_locator,
    resolve_locator,
)
from src.infrastructure.storage.client import MockStorageClient


@pytest.fixture
def storage():
    return MockStorageClient(bucket_name="tubely-media")


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class TestParseLocator:
    """Tests for reading a stored locator string."""

    def test_url_is_taken_verbatim(self):
        locator = parse_locator("https://cdn.example.com/portrait/x.mp4")

        assert locator.url == "https://cdn.example.com/portrait/x.mp4"
        assert not locator.needs_signing

    def test_url_with_comma_is_still_a_url(self):
        """The scheme decides the form, not the comma."""
        locator = parse_locator("https://cdn.example.com/a,b.png")
        assert locator.url == "https://cdn.example.com/a,b.png"

    def test_bucket_key_pair(self):
        locator = parse_locator("tubely-media,landscape/abc.mp4")

        assert locator.bucket == "tubely-media"
        assert locator.key == "landscape/abc.mp4"
        assert locator.needs_signing

    @pytest.mark.parametrize("value", [
        "no-separator",
        "too,many,parts",
        ",missing-bucket",
        "missing-key,",
        "",
    ])
    def test_malformed_values_are_rejected(self, value):
        with pytest.raises(LocatorError):
            parse_locator(value)

    def test_encode_matches_stored_form(self):
        assert AssetLocator(bucket="b", key="k.mp4").encode() == "b,k.mp4"
        assert AssetLocator(url="https://x/y").encode() == "https://x/y"


# ---------------------------------------------------------------------------
# Building
# ---------------------------------------------------------------------------

class TestBuildLocator:
    """Tests for choosing what to persist after a store."""

    def test_signed_mode_stores_bucket_and_key(self, storage):
        locator = build_locator("portrait/abc.mp4", "signed", storage)
        assert locator.encode() == "tubely-media,portrait/abc.mp4"

    def test_signed_mode_rejects_comma_in_key(self, storage):
        with pytest.raises(LocatorError):
            build_locator("bad,key.mp4", "signed", storage)

    def test_cdn_mode_prefixes_base_url(self, storage):
        locator = build_locator("other/abc.mp4", "cdn", storage, "https://d111.cloudfront.net/")
        assert locator.encode() == "https://d111.cloudfront.net/other/abc.mp4"

    def test_cdn_mode_needs_base_url(self, storage):
        with pytest.raises(LocatorError, match="CDN"):
            build_locator("other/abc.mp4", "cdn", storage)

    def test_url_mode_uses_storage_public_url(self, storage):
        locator = build_locator("abc.png", "url", storage)
        assert locator.encode() == "mock://tubely-media/abc.png"

    def test_cdn_base_without_scheme_is_refused(self, storage):
        """A bare domain would persist a value no reader can parse."""
        with pytest.raises(LocatorError, match="not be readable"):
            build_locator("landscape/abc.mp4", "cdn", storage, "d111.cloudfront.net")

    def test_built_locators_parse_back(self, storage):
        for mode, base in (("signed", None), ("url", None), ("cdn", "https://cdn.example.com")):
            locator = build_locator("portrait/abc.mp4", mode, storage, base)
            assert parse_locator(locator.encode()) == locator


# ---------------------------------------------------------------------------
# Resolving
# ---------------------------------------------------------------------------

class TestResolveLocator:
    """Tests for turning a stored locator into a fetchable URL."""

    async def test_none_stays_none(self, storage):
        assert await resolve_locator(None, storage, 60) is None

    async def test_url_is_returned_unchanged(self, storage):
        value = "https://cdn.example.com/landscape/abc.mp4"
        assert await resolve_locator(value, storage, 60) == value

    async def test_bucket_key_is_signed_fresh_each_time(self, storage):
        await storage.put_object("landscape/abc.mp4", b"data", "video/mp4")

        first = await resolve_locator("tubely-media,landscape/abc.mp4", storage, 60)
        second = await resolve_locator("tubely-media,landscape/abc.mp4", storage, 60)

        assert first.startswith("mock://tubely-media/landscape/abc.mp4?expires=60")
        assert first != second

    async def test_malformed_value_raises(self, storage):
        with pytest.raises(LocatorError):
            await resolve_locator("garbage", storage, 60)


# ---------------------------------------------------------------------------
# CDN Base URL Setting
# ---------------------------------------------------------------------------

class TestCdnBaseUrlSetting:
    """Tests for normalising CDN_BASE_URL."""

    def test_bare_domain_gets_https(self):
        settings = Settings(_env_file=None, cdn_base_url="d111.cloudfront.net")
        assert settings.cdn_base_url == "https://d111.cloudfront.net"

    def test_explicit_scheme_is_kept(self):
        settings = Settings(_env_file=None, cdn_base_url="http://localhost:9000/cdn")
        assert settings.cdn_base_url == "http://localhost:9000/cdn"

    def test_non_http_scheme_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, cdn_base_url="ftp://cdn.example.com")

    def test_normalised_setting_builds_readable_locator(self, storage):
        settings = Settings(_env_file=None, cdn_base_url="d111.cloudfront.net")

        locator = build_locator("other/abc.mp4", "cdn", storage, settings.cdn_base_url)

        assert parse_locator(locator.encode()).url == "https://d111.cloudfront.net/other/abc.mp4"
