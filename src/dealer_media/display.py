"""
Display Resolver (image proxy)

Maps any asset URL to something a rendering surface can show without
cross-origin failures: inline data URLs and ephemeral URLs pass through,
durable storage URLs are fetched once and inlined as base64.

Author: AI Creator Team
License: MIT
"""

import asyncio
import base64
import logging
from typing import Callable, Dict, Optional, Tuple

import requests

from .content_types import normalize_content_type
from .handles import is_ephemeral_url

logger = logging.getLogger(__name__)

FetchResult = Tuple[bytes, Optional[str]]
ErrorCallback = Callable[[str, Exception], None]

PLACEHOLDER_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="300" height="200" viewBox="0 0 300 200">'
    '<rect width="300" height="200" fill="#e5e7eb"/>'
    '<path d="M110 135l30-40 25 30 15-20 30 30z" fill="#9ca3af"/>'
    '<circle cx="120" cy="75" r="12" fill="#9ca3af"/>'
    '</svg>'
)
PLACEHOLDER_DATA_URL = "data:image/svg+xml;base64," + base64.b64encode(
    PLACEHOLDER_SVG.encode("utf-8")
).decode("ascii")


def to_data_url(data: bytes, mime_type: str) -> str:
    """Encode bytes as a base64 data URL."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


class DisplayCache:
    """Append-only cache of inlined images keyed by source URL.

    Entries live for the lifetime of the process; stored objects never
    change once written, so no invalidation is needed.
    """

    def __init__(self):
        self._entries: Dict[str, str] = {}

    def get(self, url: str) -> Optional[str]:
        return self._entries.get(url)

    def put(self, url: str, data_url: str) -> None:
        self._entries.setdefault(url, data_url)

    def __contains__(self, url: str) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class HttpFetcher:
    """Fetches remote bytes with requests."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: int = 30):
        self.session = session or requests.Session()
        self.timeout = timeout

    def __call__(self, url: str) -> FetchResult:
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()
        if not response.content:
            raise ValueError(f"Empty response body from {url}")
        return response.content, response.headers.get("Content-Type")


class DisplayResolver:
    """Resolves asset URLs into cross-origin-safe renderable URLs.

    Attributes:
        storage_base_url: Prefix identifying durable storage URLs
        placeholder_url: Image shown when a fetch or conversion fails
    """

    def __init__(
        self,
        storage_base_url: str,
        cache: Optional[DisplayCache] = None,
        fetcher: Optional[Callable[[str], FetchResult]] = None,
        placeholder_url: str = PLACEHOLDER_DATA_URL,
        on_error: Optional[ErrorCallback] = None
    ):
        self.storage_base_url = storage_base_url.rstrip('/')
        self.cache = cache if cache is not None else DisplayCache()
        self.fetcher = fetcher or HttpFetcher()
        self.placeholder_url = placeholder_url
        self.on_error = on_error

    def is_storage_url(self, url: str) -> bool:
        return url.startswith(f"{self.storage_base_url}/")

    async def resolve(self, url: str) -> str:
        """Return a renderable URL for ``url``. Never raises.

        - data: URLs and ephemeral URLs are returned unchanged
        - durable storage URLs are fetched once, inlined and cached
        - anything else is returned unchanged
        - a failed fetch yields the placeholder and triggers on_error;
          it is not retried automatically
        """
        if not url:
            return self.placeholder_url

        if url.startswith("data:") or is_ephemeral_url(url):
            return url

        if not self.is_storage_url(url):
            return url

        cached = self.cache.get(url)
        if cached is not None:
            logger.debug(f"Display cache hit for {url}")
            return cached

        try:
            data, content_type = await asyncio.to_thread(self.fetcher, url)
            data_url = self._inline(url, data, content_type)
        except Exception as e:
            logger.warning(f"Failed to inline {url}: {e}. Using placeholder.")
            self._report(url, e)
            return self.placeholder_url

        self.cache.put(url, data_url)
        logger.debug(f"Inlined {url} ({len(data)} bytes)")
        return data_url

    def _inline(self, url: str, data: bytes, content_type: Optional[str]) -> str:
        file_name = url.split('?', 1)[0].rsplit('/', 1)[-1]
        declared = content_type if content_type and content_type.startswith("image/") else None
        mime_type = normalize_content_type(file_name, declared, data).mime_type
        return to_data_url(data, mime_type)

    def _report(self, url: str, error: Exception) -> None:
        if self.on_error is None:
            return
        try:
            self.on_error(url, error)
        except Exception as callback_error:
            logger.error(f"Display error callback failed: {callback_error}")
