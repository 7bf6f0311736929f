"""
Exception hierarchy for the dealer media pipeline.

Exceptions are raised inside components and converted into result objects
(CaptureResult, UploadOutcome, PublishResult) at the component boundary.

Author: AI Creator Team
License: MIT
"""

from typing import Any, Dict, Optional


class DealerMediaError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ConfigurationError(DealerMediaError):
    """Missing or invalid settings."""
    pass


class CameraUnavailableError(DealerMediaError):
    """No video input device could be opened."""
    pass


class CameraPermissionError(CameraUnavailableError):
    """The user or the OS denied access to the camera."""
    pass


class HandleRevokedError(DealerMediaError):
    """An ephemeral handle was read after it was freed."""
    pass


class UploadError(DealerMediaError):
    """A single storage backend failed to persist an object."""
    pass


class PlatformError(DealerMediaError):
    """A social platform API call failed.

    Attributes:
        status_code: HTTP status returned by the platform, if any
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, context)
        self.status_code = status_code
