"""
Optional Langfuse tracing.

Tracing is enabled only when LANGFUSE_PUBLIC_KEY and LANGFUSE_SECRET_KEY
are set; without them every helper returns None and the pipeline runs
unchanged.
"""

import logging
import os
from typing import Any, Optional

from langfuse import Langfuse

logger = logging.getLogger(__name__)


def create_langfuse_client() -> Optional[Langfuse]:
    """Create a Langfuse client from environment credentials, if present."""
    public_key = os.getenv('LANGFUSE_PUBLIC_KEY')
    secret_key = os.getenv('LANGFUSE_SECRET_KEY')
    if not (public_key and secret_key):
        logger.info("Langfuse credentials not found. Tracing disabled.")
        return None

    try:
        client = Langfuse(
            public_key=public_key,
            secret_key=secret_key,
            host=os.getenv('LANGFUSE_HOST', 'https://cloud.langfuse.com')
        )
        logger.info("Langfuse tracing initialized")
        return client
    except Exception as e:
        logger.warning(f"Could not initialize Langfuse: {e}. Continuing without tracing.")
        return None


def start_span(client: Optional[Langfuse], name: str, **metadata: Any) -> Optional[Any]:
    """Start a span, or return None when tracing is off or fails."""
    if client is None:
        return None
    try:
        return client.start_span(name=name, metadata=metadata)
    except Exception as e:
        logger.warning(f"Could not start span '{name}': {e}")
        return None


def end_span(span: Optional[Any], output: Any = None, **metadata: Any) -> None:
    """Record output on a span and end it. No-op for None."""
    if span is None:
        return
    try:
        span.update(output=output, metadata=metadata)
        span.end()
    except Exception as e:
        logger.warning(f"Could not end span: {e}")
