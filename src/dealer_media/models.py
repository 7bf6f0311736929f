"""
Data Model

Dataclasses shared by every stage of the media publish pipeline.

Design Choices:
- MediaAsset is mutable: the durable URL arrives after the asset is created
- PublishResult, UploadOutcome and CaptureResult are result types with
  success/failure variants so recoverable failures never raise past the
  component that produced them
- Enums constrain platform names, upload states and failure reasons

Author: AI Creator Team
License: MIT
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class Platform(Enum):
    """Destination social platforms."""
    FACEBOOK = "facebook"

    @classmethod
    def from_string(cls, value: str) -> 'Platform':
        """Convert a case-insensitive name to a Platform.

        Raises:
            ValueError: If the platform is not supported
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(p.value for p in cls)
            raise ValueError(f"Unsupported platform '{value}'. Must be one of: {valid}")


class UploadState(Enum):
    """Where an asset is in its trip to durable storage."""
    PENDING = "pending"
    UPLOADED = "uploaded"
    FAILED = "failed"


class CaptureFailure(Enum):
    """Reasons a capture attempt can fail without being fatal."""
    NO_CAMERA = "no_camera"
    PERMISSION_DENIED = "permission_denied"
    NOT_AN_IMAGE = "not_an_image"
    EMPTY_FILE = "empty_file"
    CANCELLED = "cancelled"
    DEVICE_ERROR = "device_error"


class PublishMode(Enum):
    """Which publish protocol produced a PublishResult."""
    TEXT = "text"
    PHOTO = "photo"
    STAGED = "staged"
    TEXT_FALLBACK = "text_fallback"


@dataclass
class MediaAsset:
    """One captured or selected image.

    The asset is created with an ephemeral URL for immediate preview and is
    mutated in place once the upload finishes. A failed upload leaves
    ``durable_url`` as None for good.

    Attributes:
        ephemeral_handle_id: Opaque id of the in-process byte reference
        ephemeral_url: Locally resolvable URL wrapping the handle
        mime_type: Canonical MIME type from the normalizer
        extension: Canonical extension from the normalizer
        owner_scope: Tenant/dealership namespace for the storage path
        durable_url: Permanent public URL once the upload succeeds
        suggested_name: Name reported by the capture source
        size_bytes: Size of the captured blob
        upload_state: Upload progress
    """
    ephemeral_handle_id: str
    ephemeral_url: str
    mime_type: str
    extension: str
    owner_scope: str
    durable_url: Optional[str] = None
    suggested_name: str = ""
    size_bytes: int = 0
    upload_state: UploadState = UploadState.PENDING

    @property
    def publishable_url(self) -> Optional[str]:
        """URL a remote platform can fetch. Never the ephemeral URL."""
        return self.durable_url

    @property
    def preview_url(self) -> str:
        """Best URL for local preview."""
        return self.durable_url or self.ephemeral_url


@dataclass
class PublishRequest:
    """One post destined for a single platform page/account."""
    text: str
    target_platform: Platform
    target_account_id: str
    target_account_credential: str
    assets: List[MediaAsset] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.target_account_id or not self.target_account_id.strip():
            raise ValueError("target_account_id cannot be empty")
        if not self.target_account_credential or not self.target_account_credential.strip():
            raise ValueError("target_account_credential cannot be empty")


@dataclass(frozen=True)
class PublishResult:
    """Outcome of one publish attempt.

    Attributes:
        success: Whether the post was created
        platform: Destination platform
        platform_post_id: Platform-assigned id (if successful)
        error_message: Failure reason (if failed)
        mode: Protocol used to create the post
        attached_photo_ids: Staged photo ids referenced by the post
        skipped_assets: Ephemeral URLs of assets left out of the post
    """
    success: bool
    platform: Platform
    platform_post_id: Optional[str] = None
    error_message: Optional[str] = None
    mode: Optional[PublishMode] = None
    attached_photo_ids: Tuple[str, ...] = ()
    skipped_assets: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RawCapture:
    """Bytes produced by a capture source before normalization."""
    data: bytes = field(repr=False)
    declared_mime_type: Optional[str]
    suggested_name: str


@dataclass(frozen=True)
class CaptureResult:
    """Result of a capture attempt."""
    ok: bool
    capture: Optional[RawCapture] = None
    reason: Optional[CaptureFailure] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, capture: RawCapture) -> 'CaptureResult':
        return cls(ok=True, capture=capture)

    @classmethod
    def failure(cls, reason: CaptureFailure, error: str) -> 'CaptureResult':
        return cls(ok=False, reason=reason, error=error)


@dataclass(frozen=True)
class UploadOutcome:
    """Result of pushing one asset through the storage fallback chain.

    Attributes:
        ok: Whether any backend stored the object
        path: Object path inside the bucket
        durable_url: Public URL (if ok)
        strategy: Name of the backend that succeeded
        errors: One message per failed backend, in attempt order
    """
    ok: bool
    path: str
    durable_url: Optional[str] = None
    strategy: Optional[str] = None
    errors: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PlatformPage:
    """A page/account the configured user can publish to."""
    id: str
    name: str
    page_credential: str
    category: Optional[str] = None
