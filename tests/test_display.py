import base64
from unittest.mock import MagicMock

import pytest

from dealer_media.display import (
    PLACEHOLDER_DATA_URL,
    DisplayCache,
    DisplayResolver,
    HttpFetcher,
    to_data_url,
)
from helpers import BUCKET, STORAGE_BASE, FakeResponse, image_bytes

STORED_URL = f"{STORAGE_BASE}/{BUCKET}/tenant-7/1700000000000-42.png"


class CountingFetcher:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.urls = []

    def __call__(self, url):
        self.urls.append(url)
        if self.error:
            raise self.error
        return self.result


@pytest.mark.asyncio
async def test_data_and_ephemeral_urls_pass_through():
    fetcher = CountingFetcher()
    resolver = DisplayResolver(STORAGE_BASE, fetcher=fetcher)

    data_url = to_data_url(b"abc", "image/png")
    assert await resolver.resolve(data_url) == data_url
    assert await resolver.resolve("blob:dealer-media/1234") == "blob:dealer-media/1234"
    assert fetcher.urls == []


@pytest.mark.asyncio
async def test_non_storage_url_returned_unchanged():
    fetcher = CountingFetcher()
    resolver = DisplayResolver(STORAGE_BASE, fetcher=fetcher)

    assert await resolver.resolve("https://cdn.example.org/car.jpg") == "https://cdn.example.org/car.jpg"
    assert fetcher.urls == []


@pytest.mark.asyncio
async def test_storage_url_inlined_once_then_cached():
    png = image_bytes("PNG")
    fetcher = CountingFetcher(result=(png, "image/png"))
    resolver = DisplayResolver(STORAGE_BASE, fetcher=fetcher)

    first = await resolver.resolve(STORED_URL)
    second = await resolver.resolve(STORED_URL)

    assert first == second
    assert first.startswith("data:image/png;base64,")
    assert base64.b64decode(first.split(",", 1)[1]) == png
    assert fetcher.urls == [STORED_URL]
    assert STORED_URL in resolver.cache


@pytest.mark.asyncio
async def test_missing_content_type_falls_back_to_bytes():
    fetcher = CountingFetcher(result=(image_bytes("GIF"), "application/octet-stream"))
    resolver = DisplayResolver(STORAGE_BASE, fetcher=fetcher)

    result = await resolver.resolve(f"{STORAGE_BASE}/{BUCKET}/tenant-7/1-1.png")
    assert result.startswith("data:image/gif;base64,")


@pytest.mark.asyncio
async def test_failed_fetch_returns_placeholder_and_reports():
    errors = []
    fetcher = CountingFetcher(error=ConnectionError("timed out"))
    resolver = DisplayResolver(
        STORAGE_BASE,
        fetcher=fetcher,
        on_error=lambda url, error: errors.append((url, error))
    )

    assert await resolver.resolve(STORED_URL) == PLACEHOLDER_DATA_URL
    assert len(errors) == 1
    assert errors[0][0] == STORED_URL
    assert STORED_URL not in resolver.cache

    # No automatic retry, but a later call tries again
    await resolver.resolve(STORED_URL)
    assert len(fetcher.urls) == 2


@pytest.mark.asyncio
async def test_failing_error_callback_does_not_raise():
    def explode(url, error):
        raise RuntimeError("callback bug")

    resolver = DisplayResolver(STORAGE_BASE, fetcher=CountingFetcher(error=OSError("x")), on_error=explode)
    assert await resolver.resolve(STORED_URL) == PLACEHOLDER_DATA_URL


@pytest.mark.asyncio
async def test_empty_url_gets_placeholder():
    resolver = DisplayResolver(STORAGE_BASE, fetcher=CountingFetcher())
    assert await resolver.resolve("") == PLACEHOLDER_DATA_URL


def test_cache_is_append_only():
    cache = DisplayCache()
    cache.put("u", "first")
    cache.put("u", "second")
    assert cache.get("u") == "first"
    assert len(cache) == 1


def test_http_fetcher_returns_body_and_type():
    session = MagicMock()
    session.get.return_value = FakeResponse(200, content=b"img", headers={"Content-Type": "image/png"})

    assert HttpFetcher(session=session)(STORED_URL) == (b"img", "image/png")


def test_http_fetcher_rejects_empty_body():
    session = MagicMock()
    session.get.return_value = FakeResponse(200, content=b"")

    with pytest.raises(ValueError):
        HttpFetcher(session=session)(STORED_URL)
