"""
Resource Handle Tracker

Issues ephemeral URLs for captured bytes and frees them after a grace
window, so slower consumers (previews, the upload client, the display
resolver) never read a freed handle.

Design Choices:
- One tracker instance per page/session, injected where needed
- release() defers the free with a timer; the grace window is the only
  place a free/read race is settled by time rather than a reference count
- Every scheduled free also records a deadline. Handles past their
  deadline are dropped on the next access, so a timer lost with a closed
  event loop cannot keep a handle alive
- teardown() frees everything at once (page unload)

Author: AI Creator Team
License: MIT
"""

import asyncio
import logging
import threading
import time
import uuid
from typing import Dict, Optional, Union

from .errors import HandleRevokedError

logger = logging.getLogger(__name__)

EPHEMERAL_SCHEME = "blob:"
EPHEMERAL_PREFIX = "blob:dealer-media/"

# Several seconds are needed for the display resolver to finish caching
DEFAULT_GRACE_SECONDS = 5.0

_Timer = Union[asyncio.TimerHandle, threading.Timer]


def is_ephemeral_url(url: Optional[str]) -> bool:
    """Check whether a URL points at an in-process byte handle."""
    return bool(url) and url.startswith(EPHEMERAL_SCHEME)


class HandleTracker:
    """Process-scoped live set of ephemeral handles.

    Attributes:
        grace_seconds: Delay between release() and the actual free
    """

    def __init__(self, grace_seconds: float = DEFAULT_GRACE_SECONDS):
        if grace_seconds < 0:
            raise ValueError("grace_seconds cannot be negative")
        self.grace_seconds = grace_seconds
        self._live: Dict[str, bytes] = {}
        self._pending: Dict[str, _Timer] = {}
        self._deadlines: Dict[str, float] = {}
        self._lock = threading.Lock()

    def acquire(self, data: bytes) -> str:
        """Register bytes and return an ephemeral URL for them."""
        url = f"{EPHEMERAL_PREFIX}{uuid.uuid4()}"
        with self._lock:
            self._purge_expired()
            self._live[url] = data
        logger.debug(f"Acquired handle {url} ({len(data)} bytes)")
        return url

    def read(self, url: str) -> bytes:
        """Return the bytes behind a live handle.

        Raises:
            HandleRevokedError: If the handle was freed or never existed
        """
        with self._lock:
            self._purge_expired()
            data = self._live.get(url)
        if data is None:
            raise HandleRevokedError(f"Handle is not live: {url}", {"url": url})
        return data

    def is_live(self, url: str) -> bool:
        with self._lock:
            self._purge_expired()
            return url in self._live

    @property
    def live_count(self) -> int:
        with self._lock:
            self._purge_expired()
            return len(self._live)

    def release(self, url: str) -> None:
        """Schedule the handle to be freed after the grace window.

        Only the first call schedules anything. Releasing an unknown or
        already-freed handle is a no-op.

        Inside an event loop the free runs as a loop callback. If the loop
        closes first, the handle is still dropped on the first access after
        its deadline.
        """
        with self._lock:
            self._purge_expired()
            if url not in self._live or url in self._pending:
                return

            if self.grace_seconds == 0:
                self._live.pop(url, None)
                logger.debug(f"Freed handle {url}")
                return

            try:
                loop = asyncio.get_running_loop()
                timer: _Timer = loop.call_later(self.grace_seconds, self._free, url)
            except RuntimeError:
                # No event loop in this thread
                timer = threading.Timer(self.grace_seconds, self._free, args=(url,))
                timer.daemon = True
                timer.start()

            self._pending[url] = timer
            self._deadlines[url] = time.monotonic() + self.grace_seconds

        logger.debug(f"Release of {url} scheduled in {self.grace_seconds}s")

    def teardown(self) -> None:
        """Free every handle immediately and cancel pending timers."""
        with self._lock:
            for timer in self._pending.values():
                timer.cancel()
            freed = len(self._live)
            self._pending.clear()
            self._deadlines.clear()
            self._live.clear()
        if freed:
            logger.info(f"Handle tracker torn down, freed {freed} handles")

    def _free(self, url: str) -> None:
        with self._lock:
            self._drop(url)

    def _purge_expired(self) -> None:
        # Caller holds self._lock
        now = time.monotonic()
        for url in [u for u, deadline in self._deadlines.items() if deadline <= now]:
            self._drop(url)

    def _drop(self, url: str) -> None:
        self._pending.pop(url, None)
        self._deadlines.pop(url, None)
        if self._live.pop(url, None) is not None:
            logger.debug(f"Freed handle {url}")
