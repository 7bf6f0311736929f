"""
Facebook Graph API client.

Live backend for page publishing. Requests are plain request/response HTTP
calls made with ``requests`` in a worker thread.

Endpoints used:
- GET  /me/accounts            pages and their page tokens
- POST /{page_id}/feed         text post, or post with attached_media
- POST /{page_id}/photos       photo + caption, or published=false staging

Author: AI Creator Team
License: MIT
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

import requests

from ..errors import PlatformError
from ..models import PlatformPage
from .base import PlatformClient, retry_with_backoff

logger = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.facebook.com"


def is_client_error(error: Exception) -> bool:
    """True for 4xx Graph API errors other than rate limiting, which a retry cannot fix."""
    status = getattr(error, "status_code", None)
    return status is not None and 400 <= status < 500 and status != 429


class FacebookGraphClient(PlatformClient):
    """Facebook page publishing over the Graph API.

    Attributes:
        api_version: Graph API version segment, e.g. "v18.0"
        base_url: Versioned API root
    """

    def __init__(
        self,
        api_version: str = "v18.0",
        session: Optional[requests.Session] = None,
        timeout: int = 30,
        base_url: str = GRAPH_BASE_URL
    ):
        self.api_version = api_version
        self.base_url = f"{base_url.rstrip('/')}/{api_version}"
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Make an HTTP request to the Graph API and return the JSON body.

        Raises:
            PlatformError: On network errors, HTTP errors or error payloads
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"

        try:
            response = self.session.request(
                method.upper(),
                url,
                params=params,
                data=data,
                json=json,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise PlatformError(f"Network error calling {endpoint}: {e}")

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if not response.ok:
            message = payload.get('error', {}).get('message') if isinstance(payload, dict) else None
            raise PlatformError(
                f"Facebook API error {response.status_code}: {message or response.text[:200]}",
                status_code=response.status_code,
                context={"endpoint": endpoint}
            )

        if isinstance(payload, dict) and 'error' in payload:
            raise PlatformError(
                f"Facebook API error: {payload['error']}",
                status_code=response.status_code,
                context={"endpoint": endpoint}
            )

        return payload

    @staticmethod
    def _require_id(result: Dict[str, Any], *keys: str) -> str:
        for key in keys:
            if result.get(key):
                return str(result[key])
        raise PlatformError(f"No id in Facebook response: {result}")

    @retry_with_backoff(max_retries=3, base_delay=1, retry_on=(PlatformError,), give_up=is_client_error)
    def _fetch_pages(self, credential: str) -> List[Dict[str, Any]]:
        result = self._request(
            'GET',
            '/me/accounts',
            params={'access_token': credential, 'fields': 'id,name,access_token,category'}
        )
        return result.get('data', [])

    async def list_pages(self, credential: str) -> List[PlatformPage]:
        raw_pages = await asyncio.to_thread(self._fetch_pages, credential)
        pages = [
            PlatformPage(
                id=str(page['id']),
                name=page.get('name', ''),
                page_credential=page.get('access_token', ''),
                category=page.get('category')
            )
            for page in raw_pages
            if page.get('id')
        ]
        logger.info(f"Found {len(pages)} managed pages")
        return pages

    async def create_post(self, page_id: str, page_credential: str, text: str) -> str:
        result = await asyncio.to_thread(
            self._request,
            'POST',
            f'/{page_id}/feed',
            data={'message': text, 'access_token': page_credential}
        )
        post_id = self._require_id(result, 'id')
        logger.info(f"Created Facebook post {post_id} on page {page_id}")
        return post_id

    async def create_photo_post(
        self,
        page_id: str,
        page_credential: str,
        text: str,
        image_url: str
    ) -> str:
        data = {'url': image_url, 'access_token': page_credential}
        if text:
            data['caption'] = text

        result = await asyncio.to_thread(self._request, 'POST', f'/{page_id}/photos', data=data)
        post_id = self._require_id(result, 'post_id', 'id')
        logger.info(f"Created Facebook photo post {post_id} on page {page_id}")
        return post_id

    async def create_unpublished_photo(
        self,
        page_id: str,
        page_credential: str,
        image_url: str
    ) -> str:
        result = await asyncio.to_thread(
            self._request,
            'POST',
            f'/{page_id}/photos',
            data={
                'url': image_url,
                'published': 'false',  # Upload only, attach later
                'access_token': page_credential
            }
        )
        photo_id = self._require_id(result, 'id')
        logger.debug(f"Staged photo {photo_id} on page {page_id}")
        return photo_id

    async def create_post_with_attachments(
        self,
        page_id: str,
        page_credential: str,
        text: str,
        photo_ids: Sequence[str]
    ) -> str:
        if not photo_ids:
            raise PlatformError("create_post_with_attachments requires at least one photo id")

        result = await asyncio.to_thread(
            self._request,
            'POST',
            f'/{page_id}/feed',
            json={
                'message': text,
                'attached_media': [{'media_fbid': photo_id} for photo_id in photo_ids],
                'access_token': page_credential
            }
        )
        post_id = self._require_id(result, 'id')
        logger.info(f"Created Facebook post {post_id} with {len(photo_ids)} photos on page {page_id}")
        return post_id
