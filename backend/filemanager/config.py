"""
File manager configuration.

Settings are loaded from environment variables with Pydantic Settings.
FileManagerConfig is the validated, immutable per-instance configuration
built from them (or passed explicitly by the caller).
"""
from dataclasses import dataclass
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from filemanager.errors import (
    InvalidCDNURLError,
    InvalidConfigError,
    MissedBucketNameError,
    MissedCDNURLError,
)

# Default access control list for new objects
DEFAULT_ACL = "public-read"

# Default max file size for uploads (64MB)
DEFAULT_MAX_FILE_SIZE = 64 << 20

DEFAULT_BASE_PATH = "uploads"

# Timeout in seconds for uploads from URL
DEFAULT_HTTP_TIMEOUT = 30.0

# Max removal tasks in flight during a directory removal
DEFAULT_MAX_CONCURRENCY = 16


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # S3-compatible storage
    s3_endpoint: Optional[str] = None  # e.g., https://<account_id>.r2.cloudflarestorage.com
    s3_region: str = "auto"
    s3_access_key: Optional[str] = None
    s3_secret_key: Optional[str] = None
    s3_bucket: str = ""

    # Public delivery
    cdn_url: str = ""  # e.g., https://cdn.example.com
    base_path: str = DEFAULT_BASE_PATH

    # Limits
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    http_timeout: float = DEFAULT_HTTP_TIMEOUT  # Seconds, used for uploads from URL

    # Environment
    environment: str = "dev"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


@dataclass(frozen=True)
class FileManagerConfig:
    """
    Immutable file manager configuration.

    Use FileManagerConfig.build() to get a validated instance; the raw
    constructor does no normalization.
    """

    bucket: str
    cdn_url: str
    base_path: str = DEFAULT_BASE_PATH
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY

    @classmethod
    def build(
        cls,
        bucket: str,
        cdn_url: str,
        base_path: Optional[str] = DEFAULT_BASE_PATH,
        max_file_size: Optional[int] = None,
        max_concurrency: Optional[int] = None,
    ) -> "FileManagerConfig":
        """
        Validate and normalize configuration values.

        Raises:
            InvalidConfigError: caused by the field error (MissedBucketNameError,
                MissedCDNURLError or InvalidCDNURLError)
        """
        if not bucket:
            raise InvalidConfigError() from MissedBucketNameError()

        cdn_url = (cdn_url or "").strip("/")
        if not cdn_url:
            raise InvalidConfigError() from MissedCDNURLError()
        if not cdn_url.startswith(("http://", "https://")):
            raise InvalidConfigError() from InvalidCDNURLError(
                f"invalid CDN URL {cdn_url!r}, must start with http:// or https://"
            )

        if max_file_size is None or max_file_size <= 0:
            max_file_size = DEFAULT_MAX_FILE_SIZE
        if max_concurrency is None or max_concurrency <= 0:
            max_concurrency = DEFAULT_MAX_CONCURRENCY

        return cls(
            bucket=bucket,
            cdn_url=cdn_url,
            base_path=(base_path or "").strip("/"),
            max_file_size=max_file_size,
            max_concurrency=max_concurrency,
        )


# Global settings instance
settings = Settings()
