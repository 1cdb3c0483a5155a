"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Mock modes enable local development without external services.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like cors_origins), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "Tubely API"
    api_version: str = "v1"
    port: int = Field(
        default=8091,
        description="Port the server listens on. Also used for local asset URLs."
    )
    public_base_url: Optional[str] = Field(
        default=None,
        description="Externally visible base URL. Defaults to http://localhost:{port}."
    )

    # Authentication
    jwt_secret: str = Field(
        default="",
        description="HS256 secret used to sign and verify access tokens."
    )
    jwt_issuer: str = Field(
        default="tubely-access",
        description="Expected 'iss' claim on access tokens."
    )
    jwt_expiration_minutes: int = Field(
        default=60,
        description="Lifetime of issued access tokens."
    )

    # Snowflake Configuration (video metadata)
    snowflake_account: str = Field(
        default="",
        description="Snowflake account identifier"
    )
    snowflake_user: str = Field(
        default="",
        description="Snowflake service account username"
    )
    snowflake_password: str = Field(
        default="",
        description="Snowflake service account password"
    )
    snowflake_private_key_path: Optional[str] = Field(
        default=None,
        description="Path to RSA private key file for key-pair authentication"
    )
    snowflake_database: str = Field(
        default="TUBELY",
        description="Snowflake database name"
    )
    snowflake_schema: str = Field(
        default="MEDIA",
        description="Snowflake schema name"
    )
    snowflake_warehouse: str = Field(
        default="COMPUTE_WH",
        description="Snowflake warehouse for query execution"
    )
    snowflake_role: Optional[str] = Field(
        default=None,
        description="Snowflake role to use (optional)"
    )
    snowflake_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of real Snowflake connection. Enables local dev without DB."
    )

    # Storage Configuration
    storage_backend: Literal["local", "s3", "memory"] = Field(
        default="local",
        description="Where uploaded assets live. Chosen once at startup and used for every upload."
    )
    assets_root: str = Field(
        default="./assets",
        description="Directory for the local backend. Served at /assets."
    )
    asset_locator_mode: Literal["url", "cdn", "signed"] = Field(
        default="signed",
        description=(
            "How stored objects are referenced on the video record: "
            "a public URL, a CDN URL, or a bucket,key pair resolved to a signed URL on read."
        )
    )
    cdn_base_url: Optional[str] = Field(
        default=None,
        description="CDN distribution base URL, required when asset_locator_mode is 'cdn'."
    )
    signed_url_expiry_minutes: int = Field(
        default=60,
        description="Lifetime of presigned URLs handed to clients."
    )
    s3_bucket: str = Field(
        default="tubely-media",
        description="Bucket for uploaded videos and thumbnails"
    )
    s3_region: str = Field(
        default="us-east-1",
        description="Bucket region"
    )
    s3_endpoint_url: Optional[str] = Field(
        default=None,
        description="Custom S3-compatible endpoint (MinIO, R2). Leave unset for AWS."
    )
    s3_access_key_id: str = Field(
        default="",
        description="S3 access key ID. Empty means use the default credential chain."
    )
    s3_secret_access_key: str = Field(
        default="",
        description="S3 secret access key"
    )

    # Media processing
    ffmpeg_path: str = Field(
        default="ffmpeg",
        description="Path to the ffmpeg binary"
    )
    ffprobe_path: str = Field(
        default="ffprobe",
        description="Path to the ffprobe binary"
    )
    video_processor_mock_mode: bool = Field(
        default=False,
        description="Skip ffmpeg/ffprobe and use a fake processor. Local dev only."
    )
    processing_timeout_seconds: float = Field(
        default=300.0,
        description="Upper bound for a single ffmpeg/ffprobe run."
    )
    storage_timeout_seconds: float = Field(
        default=300.0,
        description="Upper bound for a single object upload."
    )
    upload_temp_dir: Optional[str] = Field(
        default=None,
        description="Directory for staged uploads. Defaults to the system temp dir."
    )

    # Upload limits
    max_thumbnail_upload_mb: int = Field(
        default=10,
        description="Maximum thumbnail request size in MiB."
    )
    max_video_upload_mb: int = Field(
        default=1024,
        description="Maximum video request size in MiB."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:8091",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @field_validator("cdn_base_url")
    @classmethod
    def _cdn_base_url_has_scheme(cls, value: Optional[str]) -> Optional[str]:
        """A bare distribution domain ("d111.cloudfront.net") gets https://."""
        if not value:
            return None
        value = value.strip()
        if "://" not in value:
            value = f"https://{value}"
        if not value.startswith(("http://", "https://")):
            raise ValueError("cdn_base_url must be an http(s) URL")
        return value

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def base_url(self) -> str:
        """Public base URL without a trailing slash."""
        if self.public_base_url:
            return self.public_base_url.rstrip("/")
        return f"http://localhost:{self.port}"

    @property
    def max_thumbnail_upload_bytes(self) -> int:
        return self.max_thumbnail_upload_mb << 20

    @property
    def max_video_upload_bytes(self) -> int:
        return self.max_video_upload_mb << 20

    @property
    def signed_url_expiry_seconds(self) -> int:
        return self.signed_url_expiry_minutes * 60

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set based on mock mode settings.

        Returns list of missing required fields.
        This is separate from Pydantic validation because requirements
        depend on which backends are enabled.
        """
        missing = []

        if not self.jwt_secret:
            missing.append("JWT_SECRET")

        # Snowflake only required if not in mock mode
        if not self.snowflake_mock_mode:
            if not self.snowflake_account:
                missing.append("SNOWFLAKE_ACCOUNT")
            if not self.snowflake_user:
                missing.append("SNOWFLAKE_USER")
            if not self.snowflake_password and not self.snowflake_private_key_path:
                missing.append("SNOWFLAKE_PASSWORD or SNOWFLAKE_PRIVATE_KEY_PATH")

        if self.storage_backend == "s3" and not self.s3_bucket:
            missing.append("S3_BUCKET")

        if self.asset_locator_mode == "cdn" and not self.cdn_base_url:
            missing.append("CDN_BASE_URL")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    This is safe because settings don't change during runtime.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()
