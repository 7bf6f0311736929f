"""Fakes shared by the test modules."""

import io
import time
from typing import Dict, List, Optional, Sequence, Set, Tuple

from PIL import Image

from dealer_media.capture import CameraDevice
from dealer_media.errors import PlatformError, UploadError
from dealer_media.models import MediaAsset, PlatformPage, UploadState
from dealer_media.platforms.base import PlatformClient
from dealer_media.storage import StorageBackend

STORAGE_BASE = "https://storage.example.com"
BUCKET = "social-media-images"


def image_bytes(fmt: str = "PNG", size: Tuple[int, int] = (8, 8)) -> bytes:
    output = io.BytesIO()
    Image.new("RGB", size, (200, 30, 30)).save(output, format=fmt)
    return output.getvalue()


def make_asset(index: int = 1, durable: bool = True, owner_scope: str = "tenant-7") -> MediaAsset:
    asset = MediaAsset(
        ephemeral_handle_id=f"handle-{index}",
        ephemeral_url=f"blob:dealer-media/handle-{index}",
        mime_type="image/jpeg",
        extension="jpg",
        owner_scope=owner_scope,
    )
    if durable:
        asset.durable_url = f"{STORAGE_BASE}/{BUCKET}/{owner_scope}/170000000000{index}-1.jpg"
        asset.upload_state = UploadState.UPLOADED
    return asset


class FakeBackend(StorageBackend):
    def __init__(self, name: str, fail: bool = False):
        self.name = name
        self.fail = fail
        self.calls: List[Tuple[str, bytes, str]] = []

    def upload(self, path: str, data: bytes, content_type: str) -> None:
        self.calls.append((path, data, content_type))
        if self.fail:
            raise UploadError(f"{self.name} unavailable")


class SlowBackend(FakeBackend):
    """Backend that blocks its worker thread for a while before succeeding."""

    def __init__(self, delay: float = 0.2):
        super().__init__("slow")
        self.delay = delay

    def upload(self, path: str, data: bytes, content_type: str) -> None:
        time.sleep(self.delay)
        super().upload(path, data, content_type)


class FakeCamera(CameraDevice):
    def __init__(self, open_error: Optional[Exception] = None, frame_error: Optional[Exception] = None):
        self.open_error = open_error
        self.frame_error = frame_error
        self.opened = 0
        self.closed = 0
        self.events: List[str] = []
        self.max_held = 0

    def open(self) -> None:
        if self.open_error:
            raise self.open_error
        self.opened += 1
        self.events.append("open")
        self.max_held = max(self.max_held, self.opened - self.closed)

    def read_frame(self) -> Image.Image:
        if self.frame_error:
            raise self.frame_error
        return Image.new("RGBA", (16, 12), (0, 128, 255, 255))

    def close(self) -> None:
        self.closed += 1
        self.events.append("close")

    @property
    def is_open(self) -> bool:
        return self.opened > self.closed


class RecordingPlatform(PlatformClient):
    """Platform client that records calls and fails on request."""

    def __init__(
        self,
        failing_urls: Sequence[str] = (),
        fail_final: bool = False
    ):
        self.failing_urls: Set[str] = set(failing_urls)
        self.fail_final = fail_final
        self.calls: List[Tuple] = []
        self._counter = 0

    def _next(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-{self._counter}"

    async def list_pages(self, credential: str) -> List[PlatformPage]:
        self.calls.append(("list_pages", credential))
        return [PlatformPage(id="p1", name="Main Street Motors", page_credential="page-token")]

    async def create_post(self, page_id: str, page_credential: str, text: str) -> str:
        self.calls.append(("create_post", page_id, text))
        if self.fail_final:
            raise PlatformError("feed post rejected", status_code=500)
        return self._next("post")

    async def create_photo_post(self, page_id: str, page_credential: str, text: str, image_url: str) -> str:
        self.calls.append(("create_photo_post", page_id, text, image_url))
        if self.fail_final:
            raise PlatformError("photo post rejected", status_code=500)
        return self._next("post")

    async def create_unpublished_photo(self, page_id: str, page_credential: str, image_url: str) -> str:
        self.calls.append(("create_unpublished_photo", page_id, image_url))
        if image_url in self.failing_urls:
            raise PlatformError(f"could not fetch {image_url}", status_code=400)
        return self._next("photo")

    async def create_post_with_attachments(
        self, page_id: str, page_credential: str, text: str, photo_ids: Sequence[str]
    ) -> str:
        self.calls.append(("create_post_with_attachments", page_id, text, tuple(photo_ids)))
        if self.fail_final:
            raise PlatformError("aggregate post rejected", status_code=500)
        return self._next("post")

    def operations(self) -> List[str]:
        return [call[0] for call in self.calls]


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code: int = 200, payload: Optional[Dict] = None, text: str = "",
                 content: bytes = b"", headers: Optional[Dict[str, str]] = None):
        self.status_code = status_code
        self._payload = payload
        self.text = text or (str(payload) if payload is not None else "")
        self.content = content
        self.headers = headers or {}

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload

    def raise_for_status(self) -> None:
        if not self.ok:
            import requests
            raise requests.exceptions.HTTPError(f"HTTP {self.status_code}")
