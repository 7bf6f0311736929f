"""
Pipeline Configuration

Environment-based configuration for storage, platform credentials and
pipeline timings. Values are read from the process environment after
loading a local .env file.

Author: AI Creator Team
License: MIT
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

DEFAULT_STORAGE_BASE_URL = "https://storage.googleapis.com"
DEFAULT_BUCKET = "social-media-images"
DEFAULT_API_VERSION = "v18.0"


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'", {"variable": name})


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got '{raw}'", {"variable": name})


@dataclass
class PipelineConfig:
    """Settings for one deployment of the media pipeline.

    Attributes:
        storage_base_url: Base of public object URLs
        bucket: Object storage bucket (one per deployment)
        storage_upload_token: Bearer token for raw multipart uploads
        gcs_credentials_path: Service account JSON for the storage SDK
        facebook_access_token: User access token for the Graph API
        facebook_user_id: Graph API user id
        facebook_api_version: Graph API version segment
        handle_grace_seconds: Delay before a released handle is freed
        capture_jpeg_quality: JPEG quality of camera snapshots
        simulated_latency_seconds: Delay added by the simulated platform
        log_level: Root log level
        log_file: Optional log file path
    """
    storage_base_url: str = DEFAULT_STORAGE_BASE_URL
    bucket: str = DEFAULT_BUCKET
    storage_upload_token: Optional[str] = None
    gcs_credentials_path: Optional[str] = None
    facebook_access_token: Optional[str] = None
    facebook_user_id: Optional[str] = None
    facebook_api_version: str = DEFAULT_API_VERSION
    handle_grace_seconds: float = 5.0
    capture_jpeg_quality: int = 90
    simulated_latency_seconds: float = 0.0
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate configuration on initialization."""
        if not self.bucket or not self.bucket.strip():
            raise ValueError("bucket cannot be empty")
        if not self.storage_base_url or not self.storage_base_url.startswith(("http://", "https://")):
            raise ValueError(f"storage_base_url must be an http(s) URL, got '{self.storage_base_url}'")
        self.storage_base_url = self.storage_base_url.rstrip('/')
        if self.handle_grace_seconds < 0:
            raise ValueError("handle_grace_seconds cannot be negative")
        if not 1 <= self.capture_jpeg_quality <= 100:
            raise ValueError("capture_jpeg_quality must be between 1 and 100")
        if self.simulated_latency_seconds < 0:
            raise ValueError("simulated_latency_seconds cannot be negative")

    @property
    def has_platform_credentials(self) -> bool:
        """Whether a live platform client can be used."""
        return bool(
            self.facebook_access_token and self.facebook_access_token.strip()
            and self.facebook_user_id and self.facebook_user_id.strip()
        )

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> 'PipelineConfig':
        """Build a configuration from environment variables.

        Args:
            dotenv_path: Optional .env file (defaults to searching upward)

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed
            ValueError: If a value fails validation
        """
        load_dotenv(dotenv_path)

        return cls(
            storage_base_url=os.getenv('STORAGE_BASE_URL', DEFAULT_STORAGE_BASE_URL),
            bucket=os.getenv('STORAGE_BUCKET', DEFAULT_BUCKET),
            storage_upload_token=os.getenv('STORAGE_UPLOAD_TOKEN') or None,
            gcs_credentials_path=os.getenv('GOOGLE_APPLICATION_CREDENTIALS') or None,
            facebook_access_token=os.getenv('FACEBOOK_ACCESS_TOKEN') or None,
            facebook_user_id=os.getenv('FACEBOOK_USER_ID') or None,
            facebook_api_version=os.getenv('FACEBOOK_API_VERSION', DEFAULT_API_VERSION),
            handle_grace_seconds=_get_float('HANDLE_GRACE_SECONDS', 5.0),
            capture_jpeg_quality=_get_int('CAPTURE_JPEG_QUALITY', 90),
            simulated_latency_seconds=_get_float('SIMULATED_LATENCY_SECONDS', 0.0),
            log_level=os.getenv('LOG_LEVEL', 'INFO'),
            log_file=os.getenv('LOG_FILE') or None,
        )
