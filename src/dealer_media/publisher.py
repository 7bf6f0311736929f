"""
Publish Orchestrator

Turns a PublishRequest into a PublishResult by running the platform's
publish protocol for the number of usable images:

- no images:   one text post
- one image:   one photo post with the text as caption
- two or more: stage each photo unpublished, then one post attaching
               every staged photo id

Platform APIs accept only one raw image URL per post call, so each image
in a multi-image post must first become a platform-side photo object.

Failure semantics: a staging failure only removes that image from the
post. The final call is the only one whose failure fails the request.

Author: AI Creator Team
License: MIT
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from langfuse import Langfuse

from .errors import PlatformError
from .models import MediaAsset, Platform, PublishMode, PublishRequest, PublishResult
from .platforms.base import PlatformClient
from .tracing import end_span, start_span

logger = logging.getLogger(__name__)


def split_publishable(assets: Sequence[MediaAsset]) -> Tuple[List[MediaAsset], List[MediaAsset]]:
    """Separate assets with a durable URL from those without one."""
    usable = [asset for asset in assets if asset.publishable_url]
    dropped = [asset for asset in assets if not asset.publishable_url]
    return usable, dropped


class PublishOrchestrator:
    """Runs publish protocols against backend-agnostic platform clients.

    Attributes:
        clients: Platform backend per destination platform
    """

    def __init__(
        self,
        clients: Mapping[Platform, PlatformClient],
        langfuse_client: Optional[Langfuse] = None
    ):
        self.clients: Dict[Platform, PlatformClient] = dict(clients)
        self.langfuse_client = langfuse_client

    async def publish(self, request: PublishRequest) -> PublishResult:
        """Publish one request. Never raises for platform failures.

        Args:
            request: Post text, ordered assets and the target page

        Returns:
            PublishResult with the platform post id, or the failure reason
        """
        platform = request.target_platform
        client = self.clients.get(platform)
        if client is None:
            return PublishResult(
                success=False,
                platform=platform,
                error_message=f"No client configured for {platform.value}"
            )

        span = start_span(
            self.langfuse_client,
            "publish",
            platform=platform.value,
            page_id=request.target_account_id,
            asset_count=len(request.assets)
        )

        usable, dropped = split_publishable(request.assets)
        for asset in dropped:
            logger.warning(f"Skipping {asset.ephemeral_url}: no durable URL")
        skipped = [asset.ephemeral_url for asset in dropped]

        if not usable:
            mode = PublishMode.TEXT_FALLBACK if request.assets else PublishMode.TEXT
            result = await self._publish_text(client, request, mode, skipped)
        elif len(usable) == 1:
            result = await self._publish_photo(client, request, usable[0], skipped)
        else:
            result = await self._publish_staged(client, request, usable, skipped)

        end_span(
            span,
            output={"success": result.success, "post_id": result.platform_post_id},
            mode=result.mode.value if result.mode else None,
            attached=len(result.attached_photo_ids),
            error=result.error_message
        )
        return result

    async def publish_all(self, requests: Sequence[PublishRequest]) -> List[PublishResult]:
        """Publish several requests one after another, one result each."""
        results = []
        for request in requests:
            results.append(await self.publish(request))

        succeeded = sum(1 for result in results if result.success)
        logger.info(f"Published {succeeded}/{len(results)} posts")
        return results

    async def _publish_text(
        self,
        client: PlatformClient,
        request: PublishRequest,
        mode: PublishMode,
        skipped: List[str]
    ) -> PublishResult:
        try:
            post_id = await client.create_post(
                request.target_account_id,
                request.target_account_credential,
                request.text
            )
        except Exception as e:
            return self._failure(request, mode, e, skipped=skipped)

        return PublishResult(
            success=True,
            platform=request.target_platform,
            platform_post_id=post_id,
            mode=mode,
            skipped_assets=tuple(skipped)
        )

    async def _publish_photo(
        self,
        client: PlatformClient,
        request: PublishRequest,
        asset: MediaAsset,
        skipped: List[str]
    ) -> PublishResult:
        try:
            post_id = await client.create_photo_post(
                request.target_account_id,
                request.target_account_credential,
                request.text,
                asset.publishable_url
            )
        except Exception as e:
            return self._failure(request, PublishMode.PHOTO, e, skipped=skipped)

        return PublishResult(
            success=True,
            platform=request.target_platform,
            platform_post_id=post_id,
            mode=PublishMode.PHOTO,
            skipped_assets=tuple(skipped)
        )

    async def _publish_staged(
        self,
        client: PlatformClient,
        request: PublishRequest,
        assets: List[MediaAsset],
        skipped: List[str]
    ) -> PublishResult:
        # Sequential: each photo id is needed before the aggregate post
        photo_ids: List[str] = []
        for index, asset in enumerate(assets, start=1):
            try:
                photo_id = await client.create_unpublished_photo(
                    request.target_account_id,
                    request.target_account_credential,
                    asset.publishable_url
                )
            except Exception as e:
                logger.error(f"Failed to stage image {index}/{len(assets)} ({asset.publishable_url}): {e}")
                skipped.append(asset.ephemeral_url)
                continue

            photo_ids.append(photo_id)
            logger.info(f"Staged image {index}/{len(assets)}, photo id: {photo_id}")

        if not photo_ids:
            logger.warning("No images could be staged, falling back to text-only post")
            return await self._publish_text(client, request, PublishMode.TEXT_FALLBACK, skipped)

        try:
            post_id = await client.create_post_with_attachments(
                request.target_account_id,
                request.target_account_credential,
                request.text,
                photo_ids
            )
        except Exception as e:
            return self._failure(request, PublishMode.STAGED, e, photo_ids, skipped)

        return PublishResult(
            success=True,
            platform=request.target_platform,
            platform_post_id=post_id,
            mode=PublishMode.STAGED,
            attached_photo_ids=tuple(photo_ids),
            skipped_assets=tuple(skipped)
        )

    @staticmethod
    def _failure(
        request: PublishRequest,
        mode: PublishMode,
        error: Exception,
        photo_ids: Sequence[str] = (),
        skipped: Sequence[str] = ()
    ) -> PublishResult:
        if isinstance(error, PlatformError):
            logger.error(f"Publishing to page {request.target_account_id} failed: {error}")
        else:
            logger.error(f"Unexpected error publishing to page {request.target_account_id}: {error}", exc_info=True)

        return PublishResult(
            success=False,
            platform=request.target_platform,
            error_message=str(error),
            mode=mode,
            attached_photo_ids=tuple(photo_ids),
            skipped_assets=tuple(skipped)
        )
