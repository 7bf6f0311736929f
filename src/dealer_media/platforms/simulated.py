"""
Simulated platform client.

Stands in for the live Graph API when no platform credentials are
configured. Signatures match FacebookGraphClient exactly; ids are
generated locally and every call is recorded.
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from ..models import PlatformPage
from .base import PlatformClient

logger = logging.getLogger(__name__)

MOCK_PAGES = (
    PlatformPage(
        id="987654321",
        name="Test Dealership Page",
        page_credential="mock_page_access_token_1",
        category="Automotive",
    ),
    PlatformPage(
        id="987654322",
        name="Another Test Page",
        page_credential="mock_page_access_token_2",
        category="Business",
    ),
)


@dataclass(frozen=True)
class SimulatedCall:
    """One recorded call against the simulated platform."""
    operation: str
    page_id: Optional[str]
    args: Tuple = field(default=())


class SimulatedPlatformClient(PlatformClient):
    """Local simulation of page publishing.

    Attributes:
        latency_seconds: Delay added to each call
        calls: Every call made, in order
    """

    def __init__(
        self,
        latency_seconds: float = 0.0,
        pages: Sequence[PlatformPage] = MOCK_PAGES,
        rng: Optional[random.Random] = None
    ):
        self.latency_seconds = latency_seconds
        self.pages = list(pages)
        self.calls: List[SimulatedCall] = []
        self._rng = rng or random.Random()

    async def _simulate(self, operation: str, page_id: Optional[str], *args) -> None:
        self.calls.append(SimulatedCall(operation, page_id, tuple(args)))
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)

    def _new_id(self, kind: str, page_id: str) -> str:
        return f"mock_{kind}_{page_id}_{int(time.time() * 1000)}_{self._rng.randint(0, 999)}"

    async def list_pages(self, credential: str) -> List[PlatformPage]:
        await self._simulate("list_pages", None)
        logger.info(f"Simulated platform returning {len(self.pages)} pages")
        return list(self.pages)

    async def create_post(self, page_id: str, page_credential: str, text: str) -> str:
        await self._simulate("create_post", page_id, text)
        post_id = self._new_id("fb", page_id)
        logger.info(f"Simulated text post {post_id}")
        return post_id

    async def create_photo_post(
        self,
        page_id: str,
        page_credential: str,
        text: str,
        image_url: str
    ) -> str:
        await self._simulate("create_photo_post", page_id, text, image_url)
        post_id = self._new_id("fb", page_id)
        logger.info(f"Simulated photo post {post_id}")
        return post_id

    async def create_unpublished_photo(
        self,
        page_id: str,
        page_credential: str,
        image_url: str
    ) -> str:
        await self._simulate("create_unpublished_photo", page_id, image_url)
        return self._new_id("photo", page_id)

    async def create_post_with_attachments(
        self,
        page_id: str,
        page_credential: str,
        text: str,
        photo_ids: Sequence[str]
    ) -> str:
        await self._simulate("create_post_with_attachments", page_id, text, tuple(photo_ids))
        post_id = self._new_id("fb", page_id)
        logger.info(f"Simulated post {post_id} with {len(photo_ids)} photos")
        return post_id
