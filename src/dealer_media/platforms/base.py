"""
Base Platform Client

Abstract interface every social platform backend implements, live or
simulated, so the publish orchestrator never needs to know which one it
is talking to.

Design Choices:
- ABC ensures consistent interface across backends
- All operations are coroutines; blocking HTTP runs in worker threads
- Retry decorator for idempotent reads only; publishing calls are never
  retried, because a retried POST can create a duplicate post

Author: AI Creator Team
License: MIT
"""

import logging
import time
from abc import ABC, abstractmethod
from functools import wraps
from typing import Callable, List, Optional, Sequence, Tuple, Type

from ..models import Platform, PlatformPage

logger = logging.getLogger(__name__)


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1,
    retry_on: Tuple[Type[Exception], ...] = (Exception,),
    give_up: Optional[Callable[[Exception], bool]] = None
):
    """Decorator that retries a blocking call with exponential backoff.

    Only exceptions listed in ``retry_on`` are retried, and only while
    ``give_up`` (if given) returns False for them. Anything else
    propagates on the first attempt.

    Args:
        max_retries: Maximum number of attempts
        base_delay: Delay before the second attempt, doubled after each retry
        retry_on: Exception types worth another attempt
        give_up: Predicate marking an exception as permanent

    Returns:
        Decorated function with retry logic

    Example:
        @retry_with_backoff(retry_on=(PlatformError,), give_up=is_client_error)
        def fetch_pages(token):
            ...
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            for attempt in range(1, max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except retry_on as e:
                    if give_up is not None and give_up(e):
                        logger.warning(f"{func.__name__} failed permanently: {e}")
                        raise
                    if attempt == max_retries:
                        logger.error(f"{func.__name__} failed after {max_retries} attempts: {e}")
                        raise

                    wait_time = base_delay * (2 ** (attempt - 1))
                    logger.warning(
                        f"{func.__name__} failed (attempt {attempt}/{max_retries}): {e}. "
                        f"Retrying in {wait_time}s..."
                    )
                    time.sleep(wait_time)

        return wrapper
    return decorator


class PlatformClient(ABC):
    """Abstract base class for social platform backends.

    Subclasses must implement:
    - list_pages()
    - create_post()
    - create_photo_post()
    - create_unpublished_photo()
    - create_post_with_attachments()

    Every method raises PlatformError on failure.
    """

    platform: Platform = Platform.FACEBOOK

    @abstractmethod
    async def list_pages(self, credential: str) -> List[PlatformPage]:
        """List pages the credential can publish to."""
        pass

    @abstractmethod
    async def create_post(self, page_id: str, page_credential: str, text: str) -> str:
        """Publish a text-only feed post and return its id."""
        pass

    @abstractmethod
    async def create_photo_post(
        self,
        page_id: str,
        page_credential: str,
        text: str,
        image_url: str
    ) -> str:
        """Publish one photo with ``text`` as its caption, in a single call."""
        pass

    @abstractmethod
    async def create_unpublished_photo(
        self,
        page_id: str,
        page_credential: str,
        image_url: str
    ) -> str:
        """Upload a photo without publishing it and return the photo id."""
        pass

    @abstractmethod
    async def create_post_with_attachments(
        self,
        page_id: str,
        page_credential: str,
        text: str,
        photo_ids: Sequence[str]
    ) -> str:
        """Publish a feed post that attaches previously staged photos."""
        pass

    def get_platform_name(self) -> str:
        """Get the name of this backend (e.g. "FacebookGraph")."""
        return self.__class__.__name__.replace("Client", "")
