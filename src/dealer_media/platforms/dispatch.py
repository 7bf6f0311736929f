"""
Platform Dispatch Selector

Chooses the live or simulated platform backend once, at startup, from the
presence of platform credentials.
"""

import logging

from ..config import PipelineConfig
from .base import PlatformClient
from .facebook import FacebookGraphClient
from .simulated import SimulatedPlatformClient

logger = logging.getLogger(__name__)


def should_use_live_platform(config: PipelineConfig) -> bool:
    """Pure predicate: live backend only when credentials are configured."""
    return config.has_platform_credentials


def select_platform_client(config: PipelineConfig, force_simulated: bool = False) -> PlatformClient:
    """Build the platform backend for this process.

    Args:
        config: Pipeline configuration
        force_simulated: Use the simulation even when credentials exist

    Returns:
        FacebookGraphClient or SimulatedPlatformClient
    """
    if not force_simulated and should_use_live_platform(config):
        logger.info("Using live Facebook Graph API")
        return FacebookGraphClient(api_version=config.facebook_api_version)

    logger.info("Using simulated Facebook API")
    return SimulatedPlatformClient(latency_seconds=config.simulated_latency_seconds)
