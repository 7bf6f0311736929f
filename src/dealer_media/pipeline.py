"""
Media Pipeline

Caller-facing entry point for the capture → storage → publish flow:

    pipeline = MediaPipeline.from_config(PipelineConfig.from_env())
    asset = await pipeline.capture("dealership-12", selected_file=file)
    preview = await pipeline.resolve_for_display(asset.preview_url)
    result = await pipeline.publish(request)

Each captured asset gets an ephemeral URL at once; its durable URL is
filled in by a background upload task. Publishing waits for pending
uploads of the request's assets, so every asset has either a durable URL
or a final failure before the publish protocol is chosen.

Author: AI Creator Team
License: MIT
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Set

from .capture import CameraDevice, CaptureSource, SelectedFile
from .config import PipelineConfig
from .content_types import normalize_content_type
from .display import DisplayResolver
from .handles import HandleTracker
from .models import CaptureResult, MediaAsset, Platform, PlatformPage, PublishRequest, PublishResult, UploadOutcome
from .platforms.base import PlatformClient
from .platforms.dispatch import select_platform_client
from .publisher import PublishOrchestrator
from .storage import DurableUploadClient
from .tracing import create_langfuse_client

logger = logging.getLogger(__name__)

CaptureErrorCallback = Callable[[CaptureResult], None]


class MediaPipeline:
    """Wires the pipeline components for one page/session."""

    def __init__(
        self,
        tracker: HandleTracker,
        capture_source: CaptureSource,
        uploader: DurableUploadClient,
        resolver: DisplayResolver,
        orchestrator: PublishOrchestrator,
        on_capture_error: Optional[CaptureErrorCallback] = None
    ):
        self.tracker = tracker
        self.capture_source = capture_source
        self.uploader = uploader
        self.resolver = resolver
        self.orchestrator = orchestrator
        self.on_capture_error = on_capture_error
        self._uploads: Dict[str, asyncio.Task] = {}
        # Released uploads still in flight
        self._detached: Set[asyncio.Task] = set()

    @classmethod
    def from_config(
        cls,
        config: PipelineConfig,
        camera: Optional[CameraDevice] = None,
        platform_client: Optional[PlatformClient] = None,
        force_simulated: bool = False,
        on_capture_error: Optional[CaptureErrorCallback] = None
    ) -> 'MediaPipeline':
        """Build a pipeline with the default components for ``config``.

        The platform backend is selected here, once, unless one is given.
        """
        client = platform_client or select_platform_client(config, force_simulated=force_simulated)
        return cls(
            tracker=HandleTracker(grace_seconds=config.handle_grace_seconds),
            capture_source=CaptureSource(camera, jpeg_quality=config.capture_jpeg_quality),
            uploader=DurableUploadClient.from_config(config),
            resolver=DisplayResolver(config.storage_base_url),
            orchestrator=PublishOrchestrator(
                {Platform.FACEBOOK: client},
                langfuse_client=create_langfuse_client()
            ),
            on_capture_error=on_capture_error,
        )

    async def capture(
        self,
        owner_scope: str,
        selected_file: Optional[SelectedFile] = None,
        trigger: Optional[Awaitable[object]] = None
    ) -> Optional[MediaAsset]:
        """Capture an image and start its upload in the background.

        Uses the selected file when one is given, the camera otherwise.
        A failed capture is reported to ``on_capture_error`` and returns
        None; after a camera failure the caller falls back to a file.

        Args:
            owner_scope: Tenant namespace for the storage path
            selected_file: File chosen by the user
            trigger: Awaitable signalling the camera "capture" action

        Returns:
            The new asset with its ephemeral URL set, or None

        Raises:
            ValueError: If owner_scope is blank
        """
        if not owner_scope or not owner_scope.strip():
            raise ValueError("owner_scope cannot be empty")

        if selected_file is not None:
            result = self.capture_source.capture_from_file(selected_file)
        else:
            result = await self.capture_source.capture_from_camera(trigger)

        if not result.ok:
            logger.warning(f"Capture failed ({result.reason.value}): {result.error}")
            if self.on_capture_error is not None:
                self.on_capture_error(result)
            return None

        raw = result.capture
        content_type = normalize_content_type(raw.suggested_name, raw.declared_mime_type, raw.data)
        ephemeral_url = self.tracker.acquire(raw.data)

        asset = MediaAsset(
            ephemeral_handle_id=ephemeral_url.rsplit('/', 1)[-1],
            ephemeral_url=ephemeral_url,
            mime_type=content_type.mime_type,
            extension=content_type.extension,
            owner_scope=owner_scope,
            suggested_name=raw.suggested_name,
            size_bytes=len(raw.data),
        )

        task = asyncio.create_task(self.uploader.upload(asset, raw.data))
        task.add_done_callback(self._upload_finished)
        self._uploads[asset.ephemeral_handle_id] = task
        logger.info(f"Captured {asset.suggested_name} as {asset.mime_type}, upload started")
        return asset

    async def wait_for_upload(self, asset: MediaAsset) -> Optional[UploadOutcome]:
        """Wait for an asset's background upload, if one was started here."""
        task = self._uploads.get(asset.ephemeral_handle_id)
        if task is None:
            return None
        return await task

    async def resolve_for_display(self, url: str) -> str:
        """Renderable URL for previews. Never raises."""
        return await self.resolver.resolve(url)

    async def list_pages(self, credential: str, platform: Platform = Platform.FACEBOOK) -> List[PlatformPage]:
        client = self.orchestrator.clients.get(platform)
        if client is None:
            raise ValueError(f"No client configured for {platform.value}")
        return await client.list_pages(credential)

    async def publish(self, request: PublishRequest) -> PublishResult:
        """Wait for the request's pending uploads, then publish it."""
        pending = [
            task for asset in request.assets
            if (task := self._uploads.get(asset.ephemeral_handle_id)) is not None
        ]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        return await self.orchestrator.publish(request)

    @property
    def tracked_uploads(self) -> int:
        """Number of upload tasks this pipeline still holds, finished or not."""
        return len(self._uploads) + len(self._detached)

    def release(self, asset: MediaAsset) -> None:
        """Mark the asset as no longer needed and stop tracking its upload.

        An upload already in flight still finishes and updates the asset.
        """
        task = self._uploads.pop(asset.ephemeral_handle_id, None)
        if task is not None and not task.done():
            self._detached.add(task)
        self.tracker.release(asset.ephemeral_url)

    def teardown(self) -> None:
        """Cancel unfinished uploads and free every ephemeral handle (page/session unload)."""
        tasks = [*self._uploads.values(), *self._detached]
        for task in tasks:
            if not task.done():
                task.cancel()
        if tasks:
            logger.info(f"Pipeline torn down, dropped {len(tasks)} upload tasks")
        self._uploads.clear()
        self._detached.clear()
        self.tracker.teardown()

    def _upload_finished(self, task: asyncio.Task) -> None:
        self._detached.discard(task)
        # Consumes the exception so an unawaited failure is logged once
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Upload task failed: {error}")
