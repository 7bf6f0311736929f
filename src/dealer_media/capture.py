"""
Capture Source

Acquires raw image bytes from a live camera or a file selection and hands
them on as (bytes, declared MIME type, suggested name).

Design Choices:
- CameraDevice is an abstract seam; concrete devices wrap whatever video
  backend the host provides
- The device is held through an async context manager, so it is released
  on capture, cancel and error alike
- A missing camera or a denied permission is reported in the result, and
  the caller falls back to file selection

Author: AI Creator Team
License: MIT
"""

import asyncio
import io
import logging
import mimetypes
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Awaitable, Optional

from PIL import Image

from .errors import CameraPermissionError, CameraUnavailableError
from .models import CaptureFailure, CaptureResult, RawCapture

logger = logging.getLogger(__name__)

SNAPSHOT_MIME_TYPE = "image/jpeg"
DEFAULT_JPEG_QUALITY = 90


class CameraDevice(ABC):
    """A video input device that can be held by one session at a time.

    Subclasses must implement:
    - open()
    - read_frame()
    - close()
    """

    @abstractmethod
    def open(self) -> None:
        """Acquire the device.

        Raises:
            CameraUnavailableError: If no device is present
            CameraPermissionError: If access was denied
        """
        pass

    @abstractmethod
    def read_frame(self) -> Image.Image:
        """Return the current frame of the continuously updating buffer."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Stop all tracks and release the device lock."""
        pass


@dataclass(frozen=True)
class SelectedFile:
    """A single file chosen by the user."""
    name: str
    data: bytes = field(repr=False)
    declared_type: Optional[str] = None


class CaptureSource:
    """Produces RawCapture results from a camera or a selected file.

    Attributes:
        camera: Camera device, or None when the host has none
        jpeg_quality: Fixed JPEG quality used for snapshots
    """

    def __init__(
        self,
        camera: Optional[CameraDevice] = None,
        jpeg_quality: int = DEFAULT_JPEG_QUALITY
    ):
        if not 1 <= jpeg_quality <= 100:
            raise ValueError("jpeg_quality must be between 1 and 100")
        self.camera = camera
        self.jpeg_quality = jpeg_quality
        self._device_lock = asyncio.Lock()

    @asynccontextmanager
    async def camera_session(self) -> AsyncIterator[CameraDevice]:
        """Hold the camera exclusively for the duration of the block.

        Raises:
            CameraUnavailableError: If there is no camera or it cannot be opened
        """
        if self.camera is None:
            raise CameraUnavailableError("No camera configured")

        async with self._device_lock:
            camera = self.camera
            await asyncio.to_thread(camera.open)
            logger.debug("Camera opened")
            try:
                yield camera
            finally:
                try:
                    await asyncio.to_thread(camera.close)
                finally:
                    logger.debug("Camera released")

    async def has_camera(self) -> bool:
        """Check for a usable camera by opening and immediately releasing it."""
        try:
            async with self.camera_session():
                return True
        except CameraUnavailableError:
            return False
        except Exception as e:
            logger.warning(f"Camera check failed: {e}")
            return False

    async def capture_from_camera(
        self,
        trigger: Optional[Awaitable[object]] = None
    ) -> CaptureResult:
        """Snapshot the current camera frame as JPEG.

        Args:
            trigger: Awaited before the snapshot (the user's "capture"
                action). Cancelling it cancels the capture.

        Returns:
            CaptureResult; failures are reported, never raised
        """
        try:
            async with self.camera_session() as camera:
                if trigger is not None and not await self._await_trigger(trigger):
                    logger.info("Camera capture cancelled")
                    return CaptureResult.failure(CaptureFailure.CANCELLED, "Capture cancelled")
                frame = await asyncio.to_thread(camera.read_frame)
                data = await asyncio.to_thread(self._encode_snapshot, frame)

        except CameraPermissionError as e:
            logger.warning(f"Camera permission denied: {e}")
            return CaptureResult.failure(CaptureFailure.PERMISSION_DENIED, str(e))
        except CameraUnavailableError as e:
            logger.info(f"No camera available: {e}")
            return CaptureResult.failure(CaptureFailure.NO_CAMERA, str(e))
        except Exception as e:
            logger.error(f"Camera capture failed: {e}", exc_info=True)
            return CaptureResult.failure(CaptureFailure.DEVICE_ERROR, str(e))

        name = f"camera-capture-{datetime.now().strftime('%Y%m%d-%H%M%S')}.jpg"
        logger.info(f"Captured camera frame ({len(data)} bytes)")
        return CaptureResult.success(RawCapture(data, SNAPSHOT_MIME_TYPE, name))

    def capture_from_file(self, selected: Optional[SelectedFile]) -> CaptureResult:
        """Accept a single user-selected image file.

        The declared type comes from the selection, or is guessed from the
        file name when the selection has none.
        """
        if selected is None:
            return CaptureResult.failure(CaptureFailure.EMPTY_FILE, "No file selected")

        declared = selected.declared_type or mimetypes.guess_type(selected.name)[0]
        if not declared or not declared.lower().startswith("image/"):
            logger.warning(f"Rejected non-image file '{selected.name}' ({declared})")
            return CaptureResult.failure(
                CaptureFailure.NOT_AN_IMAGE,
                f"'{selected.name}' is not an image (type: {declared or 'unknown'})"
            )

        if not selected.data:
            return CaptureResult.failure(CaptureFailure.EMPTY_FILE, f"'{selected.name}' is empty")

        logger.info(f"Accepted file '{selected.name}' ({declared}, {len(selected.data)} bytes)")
        return CaptureResult.success(RawCapture(selected.data, declared, selected.name))

    @staticmethod
    async def _await_trigger(trigger: Awaitable[object]) -> bool:
        """Wait for the user's capture action. False if the user cancelled."""
        try:
            await trigger
            return True
        except asyncio.CancelledError:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            return False

    def _encode_snapshot(self, frame: Image.Image) -> bytes:
        if frame.mode not in ('RGB', 'L'):
            frame = frame.convert('RGB')
        output = io.BytesIO()
        frame.save(output, format='JPEG', quality=self.jpeg_quality)
        return output.getvalue()
