"""
Social platform backends and the live/simulated dispatch selector.
"""

from .base import PlatformClient, retry_with_backoff
from .dispatch import select_platform_client, should_use_live_platform
from .facebook import FacebookGraphClient
from .simulated import SimulatedPlatformClient

__all__ = [
    'PlatformClient',
    'retry_with_backoff',
    'select_platform_client',
    'should_use_live_platform',
    'FacebookGraphClient',
    'SimulatedPlatformClient',
]
