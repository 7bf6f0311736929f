import random
from unittest.mock import MagicMock, patch

import pytest
import requests

from dealer_media.config import PipelineConfig
from dealer_media.errors import PlatformError
from dealer_media.platforms import (
    FacebookGraphClient,
    SimulatedPlatformClient,
    select_platform_client,
    should_use_live_platform,
)
from dealer_media.platforms.base import retry_with_backoff
from dealer_media.platforms.facebook import is_client_error
from dealer_media.platforms.simulated import MOCK_PAGES
from helpers import FakeResponse


def _graph_client(*responses):
    session = MagicMock()
    session.request.side_effect = list(responses)
    return FacebookGraphClient(api_version="v18.0", session=session), session


@pytest.mark.asyncio
async def test_create_post_sends_message_to_feed():
    client, session = _graph_client(FakeResponse(200, {"id": "p1_111"}))

    assert await client.create_post("p1", "page-token", "Hello") == "p1_111"

    args, kwargs = session.request.call_args
    assert args == ("POST", "https://graph.facebook.com/v18.0/p1/feed")
    assert kwargs["data"] == {"message": "Hello", "access_token": "page-token"}


@pytest.mark.asyncio
async def test_photo_post_prefers_post_id():
    client, session = _graph_client(FakeResponse(200, {"id": "photo_1", "post_id": "p1_222"}))

    post_id = await client.create_photo_post("p1", "page-token", "Caption", "https://s/b/x.jpg")

    assert post_id == "p1_222"
    assert session.request.call_args.kwargs["data"] == {
        "url": "https://s/b/x.jpg",
        "access_token": "page-token",
        "caption": "Caption",
    }


@pytest.mark.asyncio
async def test_unpublished_photo_is_staged_with_published_false():
    client, session = _graph_client(FakeResponse(200, {"id": "photo_9"}))

    assert await client.create_unpublished_photo("p1", "page-token", "https://s/b/x.jpg") == "photo_9"
    assert session.request.call_args.kwargs["data"]["published"] == "false"


@pytest.mark.asyncio
async def test_post_with_attachments_references_every_photo():
    client, session = _graph_client(FakeResponse(200, {"id": "p1_333"}))

    assert await client.create_post_with_attachments("p1", "page-token", "Lot", ["a", "b"]) == "p1_333"

    body = session.request.call_args.kwargs["json"]
    assert body["attached_media"] == [{"media_fbid": "a"}, {"media_fbid": "b"}]
    assert body["message"] == "Lot"


@pytest.mark.asyncio
async def test_post_with_attachments_requires_photos():
    client, session = _graph_client()
    with pytest.raises(PlatformError):
        await client.create_post_with_attachments("p1", "page-token", "Lot", [])
    session.request.assert_not_called()


@pytest.mark.asyncio
async def test_http_error_raises_platform_error():
    client, _ = _graph_client(FakeResponse(400, {"error": {"message": "Invalid OAuth access token"}}))

    with pytest.raises(PlatformError, match="Invalid OAuth") as excinfo:
        await client.create_post("p1", "bad-token", "Hello")
    assert excinfo.value.status_code == 400


@pytest.mark.asyncio
async def test_error_payload_with_ok_status_raises():
    client, _ = _graph_client(FakeResponse(200, {"error": {"message": "(#200) Permissions error"}}))

    with pytest.raises(PlatformError):
        await client.create_unpublished_photo("p1", "page-token", "https://s/b/x.jpg")


@pytest.mark.asyncio
async def test_network_error_raises_platform_error():
    client, _ = _graph_client(requests.exceptions.ConnectionError("no route"))

    with pytest.raises(PlatformError, match="Network error"):
        await client.create_post("p1", "page-token", "Hello")


@pytest.mark.asyncio
async def test_list_pages_maps_accounts():
    client, session = _graph_client(FakeResponse(200, {"data": [
        {"id": "1", "name": "Main Street Motors", "access_token": "t1", "category": "Automotive"},
        {"id": "2", "name": "Used Lot", "access_token": "t2"},
    ]}))

    pages = await client.list_pages("user-token")

    assert [(p.id, p.page_credential, p.category) for p in pages] == [
        ("1", "t1", "Automotive"),
        ("2", "t2", None),
    ]
    assert session.request.call_args.kwargs["params"]["access_token"] == "user-token"


@pytest.mark.asyncio
async def test_list_pages_retries_transient_failures():
    client, session = _graph_client(
        FakeResponse(500, {"error": {"message": "temporarily unavailable"}}),
        FakeResponse(200, {"data": [{"id": "1", "name": "Lot", "access_token": "t"}]}),
    )

    with patch("dealer_media.platforms.base.time.sleep") as sleep:
        pages = await client.list_pages("user-token")

    assert len(pages) == 1
    assert session.request.call_count == 2
    sleep.assert_called_once_with(1)


def test_retry_gives_up_after_max_attempts():
    calls = []

    @retry_with_backoff(max_retries=3, base_delay=0)
    def flaky():
        calls.append(1)
        raise PlatformError("still down")

    with pytest.raises(PlatformError):
        flaky()
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_simulated_client_records_calls_and_makes_ids():
    client = SimulatedPlatformClient(rng=random.Random(1))

    pages = await client.list_pages("anything")
    post_id = await client.create_post("987654321", "tok", "Hi")
    photo_id = await client.create_unpublished_photo("987654321", "tok", "https://s/b/x.jpg")
    aggregate = await client.create_post_with_attachments("987654321", "tok", "Hi", [photo_id])

    assert pages == list(MOCK_PAGES)
    assert post_id.startswith("mock_fb_987654321_")
    assert photo_id.startswith("mock_photo_987654321_")
    assert aggregate.startswith("mock_fb_987654321_")
    assert [call.operation for call in client.calls] == [
        "list_pages",
        "create_post",
        "create_unpublished_photo",
        "create_post_with_attachments",
    ]


@pytest.mark.parametrize("token, user_id, expected", [
    ("token", "user", True),
    ("token", None, False),
    (None, "user", False),
    ("  ", "user", False),
    (None, None, False),
])
def test_live_platform_predicate(token, user_id, expected):
    config = PipelineConfig(facebook_access_token=token, facebook_user_id=user_id)
    assert should_use_live_platform(config) is expected


def test_select_platform_client():
    live = PipelineConfig(facebook_access_token="token", facebook_user_id="user", facebook_api_version="v19.0")
    client = select_platform_client(live)
    assert isinstance(client, FacebookGraphClient)
    assert client.base_url.endswith("/v19.0")

    assert isinstance(select_platform_client(live, force_simulated=True), SimulatedPlatformClient)
    assert isinstance(select_platform_client(PipelineConfig()), SimulatedPlatformClient)


@pytest.mark.asyncio
async def test_list_pages_does_not_retry_client_errors():
    client, session = _graph_client(
        FakeResponse(400, {"error": {"message": "Invalid OAuth access token"}}),
        FakeResponse(200, {"data": []}),
    )

    with patch("dealer_media.platforms.base.time.sleep") as sleep:
        with pytest.raises(PlatformError, match="Invalid OAuth"):
            await client.list_pages("expired-token")

    assert session.request.call_count == 1
    sleep.assert_not_called()


def test_retry_only_catches_listed_exceptions():
    calls = []

    @retry_with_backoff(max_retries=3, base_delay=0, retry_on=(PlatformError,))
    def broken():
        calls.append(1)
        raise KeyError("bug")

    with pytest.raises(KeyError):
        broken()
    assert len(calls) == 1


def test_retry_stops_when_error_is_permanent():
    calls = []

    @retry_with_backoff(max_retries=3, base_delay=0, give_up=lambda e: "denied" in str(e))
    def denied():
        calls.append(1)
        raise PlatformError("permission denied", status_code=403)

    with pytest.raises(PlatformError):
        denied()
    assert len(calls) == 1


@pytest.mark.parametrize("status, permanent", [(400, True), (404, True), (429, False), (500, False), (None, False)])
def test_is_client_error(status, permanent):
    assert is_client_error(PlatformError("x", status_code=status)) is permanent


def test_retry_requires_at_least_one_attempt():
    with pytest.raises(ValueError):
        retry_with_backoff(max_retries=0)
