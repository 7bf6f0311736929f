"""
Durable Upload Client

Persists normalized image bytes to object storage under a per-tenant path
and resolves the object's permanent public URL.

Design Choices:
- Backends form a fallback chain: the storage SDK first, then a raw
  multipart form POST to the storage HTTP endpoint, which avoids the
  SDK's content-type coercion
- The public URL is built locally from base + bucket + path, because
  some backends omit URL fields from successful responses
- A total failure is returned as an UploadOutcome, never raised, and the
  ephemeral URL is never promoted to a durable one
- Path format {owner_scope}/{epoch_millis}-{random}.{extension}: every
  upload gets a new path, so stored objects are immutable

Author: AI Creator Team
License: MIT
"""

import asyncio
import logging
import random
import time
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence

import requests
from google.api_core import exceptions as gcp_exceptions
from google.cloud import storage

from .content_types import ALLOWED_CONTENT_TYPES
from .errors import UploadError
from .models import MediaAsset, UploadOutcome, UploadState

logger = logging.getLogger(__name__)

# Bucket limits
MAX_UPLOAD_BYTES = 10 * 1024 * 1024
ALLOWED_MIME_TYPES = tuple(ct.mime_type for ct in ALLOWED_CONTENT_TYPES)

CACHE_CONTROL = "public, max-age=3600"


def build_object_path(
    owner_scope: str,
    extension: str,
    now_millis: Optional[int] = None,
    rng: Optional[random.Random] = None
) -> str:
    """Build a unique object path inside the tenant's namespace.

    Args:
        owner_scope: Tenant/dealership namespace (e.g. "dealership-12")
        extension: Canonical extension without the dot
        now_millis: Timestamp override, in epoch milliseconds
        rng: Random source override

    Returns:
        Path of the form {owner_scope}/{timestamp}-{random}.{extension}

    Raises:
        ValueError: If owner_scope or extension is empty
    """
    scope = (owner_scope or "").strip().strip('/')
    if not scope:
        raise ValueError("owner_scope cannot be empty")
    if not extension or not extension.strip():
        raise ValueError("extension cannot be empty")

    timestamp = now_millis if now_millis is not None else int(time.time() * 1000)
    suffix = (rng or random).randint(0, 999)
    return f"{scope}/{timestamp}-{suffix}.{extension.strip().lower()}"


def public_url_for(storage_base_url: str, bucket: str, path: str) -> str:
    """Public URL of an object: {storage_base}/{bucket}/{path}."""
    return f"{storage_base_url.rstrip('/')}/{bucket}/{path}"


class StorageBackend(ABC):
    """One strategy for writing an object to the bucket."""

    name: str = "backend"

    @abstractmethod
    def upload(self, path: str, data: bytes, content_type: str) -> None:
        """Store ``data`` at ``path`` with an explicit content type.

        Raises:
            UploadError: If the object was not stored
        """
        pass


class SdkStorageBackend(StorageBackend):
    """Uploads through the google-cloud-storage client library.

    The client is created on first use, from an explicit service account
    file or from GOOGLE_APPLICATION_CREDENTIALS.
    """

    name = "sdk"

    def __init__(
        self,
        bucket_name: str,
        credentials_path: Optional[str] = None,
        client: Optional[storage.Client] = None,
        timeout: int = 60
    ):
        if not bucket_name or not bucket_name.strip():
            raise ValueError("bucket_name cannot be empty")
        self.bucket_name = bucket_name
        self.credentials_path = credentials_path
        self.timeout = timeout
        self._client = client
        self._bucket = None

    def _get_bucket(self):
        if self._bucket is None:
            if self._client is None:
                if self.credentials_path:
                    self._client = storage.Client.from_service_account_json(self.credentials_path)
                    logger.info(f"GCS client initialized with credentials from: {self.credentials_path}")
                else:
                    self._client = storage.Client()
                    logger.info("GCS client initialized from environment credentials")
            self._bucket = self._client.bucket(self.bucket_name)
        return self._bucket

    def upload(self, path: str, data: bytes, content_type: str) -> None:
        try:
            blob = self._get_bucket().blob(path)
            blob.cache_control = CACHE_CONTROL
            blob.upload_from_string(data, content_type=content_type, timeout=self.timeout)
        except gcp_exceptions.GoogleAPIError as e:
            raise UploadError(f"GCS API error: {e}", {"path": path})
        except Exception as e:
            raise UploadError(f"SDK upload failed: {e}", {"path": path})


class MultipartFormBackend(StorageBackend):
    """Posts the object as a raw multipart form to the storage endpoint.

    Form fields: ``key`` (object path), ``Content-Type`` and ``file``.
    """

    name = "multipart"

    def __init__(
        self,
        storage_base_url: str,
        bucket_name: str,
        upload_token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: int = 60
    ):
        if not bucket_name or not bucket_name.strip():
            raise ValueError("bucket_name cannot be empty")
        self.endpoint = f"{storage_base_url.rstrip('/')}/{bucket_name}"
        self.upload_token = upload_token
        self.session = session or requests.Session()
        self.timeout = timeout

    def upload(self, path: str, data: bytes, content_type: str) -> None:
        headers = {}
        if self.upload_token:
            headers["Authorization"] = f"Bearer {self.upload_token}"

        fields = {
            "key": path,
            "Content-Type": content_type,
            "Cache-Control": CACHE_CONTROL,
        }
        file_name = path.rsplit('/', 1)[-1]

        try:
            response = self.session.post(
                self.endpoint,
                data=fields,
                files={"file": (file_name, data, content_type)},
                headers=headers,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise UploadError(f"Network error during multipart upload: {e}", {"path": path})

        if not response.ok:
            raise UploadError(
                f"Multipart upload failed with HTTP {response.status_code}: {response.text[:200]}",
                {"path": path, "status_code": response.status_code}
            )


class DurableUploadClient:
    """Runs the storage fallback chain for one asset at a time.

    Attributes:
        backends: Strategies in attempt order
        storage_base_url: Base of public object URLs
        bucket: Bucket name used in public URLs
        max_bytes: Largest object the bucket accepts
    """

    def __init__(
        self,
        backends: Sequence[StorageBackend],
        storage_base_url: str,
        bucket: str,
        max_bytes: int = MAX_UPLOAD_BYTES,
        allowed_mime_types: Iterable[str] = ALLOWED_MIME_TYPES
    ):
        if not backends:
            raise ValueError("at least one storage backend is required")
        self.backends: List[StorageBackend] = list(backends)
        self.storage_base_url = storage_base_url.rstrip('/')
        self.bucket = bucket
        self.max_bytes = max_bytes
        self.allowed_mime_types = frozenset(allowed_mime_types)

    @classmethod
    def from_config(cls, config) -> 'DurableUploadClient':
        """Build the default SDK → multipart chain from a PipelineConfig."""
        backends = [
            SdkStorageBackend(config.bucket, credentials_path=config.gcs_credentials_path),
            MultipartFormBackend(
                config.storage_base_url,
                config.bucket,
                upload_token=config.storage_upload_token
            ),
        ]
        return cls(backends, config.storage_base_url, config.bucket)

    def bucket_allows(self, mime_type: str, size: int) -> Optional[str]:
        """Return a rejection reason, or None if the bucket accepts the object."""
        if mime_type not in self.allowed_mime_types:
            return f"Bucket does not accept {mime_type}"
        if size == 0:
            return "Refusing to store an empty object"
        if size > self.max_bytes:
            return f"Object is {size} bytes, bucket limit is {self.max_bytes}"
        return None

    async def upload(self, asset: MediaAsset, data: bytes) -> UploadOutcome:
        """Persist an asset's bytes and set its durable URL.

        Each backend is tried only if the previous one failed. When all of
        them fail the asset keeps ``durable_url=None`` and is marked failed;
        there is no later retry.

        Args:
            asset: Normalized asset (mutated in place)
            data: The asset's bytes

        Returns:
            UploadOutcome describing which strategy succeeded or why all failed
        """
        try:
            path = build_object_path(asset.owner_scope, asset.extension)
        except ValueError as e:
            logger.error(f"Cannot build storage path for {asset.ephemeral_url}: {e}")
            asset.upload_state = UploadState.FAILED
            return UploadOutcome(ok=False, path="", errors=(str(e),))

        rejection = self.bucket_allows(asset.mime_type, len(data))
        if rejection:
            logger.warning(f"Upload of {asset.ephemeral_url} rejected: {rejection}")
            asset.upload_state = UploadState.FAILED
            return UploadOutcome(ok=False, path=path, errors=(rejection,))

        errors: List[str] = []
        for backend in self.backends:
            try:
                await asyncio.to_thread(backend.upload, path, data, asset.mime_type)
            except Exception as e:
                logger.warning(f"Storage backend '{backend.name}' failed for {path}: {e}")
                errors.append(f"{backend.name}: {e}")
                continue

            durable_url = public_url_for(self.storage_base_url, self.bucket, path)
            asset.durable_url = durable_url
            asset.upload_state = UploadState.UPLOADED
            logger.info(f"Uploaded {path} via {backend.name} ({len(data)} bytes)")
            return UploadOutcome(
                ok=True,
                path=path,
                durable_url=durable_url,
                strategy=backend.name,
                errors=tuple(errors)
            )

        asset.upload_state = UploadState.FAILED
        logger.error(
            f"All storage backends failed for {path}; "
            f"{asset.ephemeral_url} stays preview-only"
        )
        return UploadOutcome(ok=False, path=path, errors=tuple(errors))
