"""
Dealer Media Publish Pipeline

Moves a captured or selected vehicle photo from an ephemeral in-process
handle, through durable object storage, to single- or multi-image posts on
a dealership's social pages.

Author: AI Creator Team
License: MIT
"""

from .capture import CameraDevice, CaptureSource, SelectedFile
from .config import PipelineConfig
from .content_types import ContentType, normalize_content_type
from .display import DisplayCache, DisplayResolver
from .handles import HandleTracker
from .models import (
    CaptureResult,
    MediaAsset,
    Platform,
    PlatformPage,
    PublishRequest,
    PublishResult,
    UploadOutcome,
)
from .pipeline import MediaPipeline
from .publisher import PublishOrchestrator
from .storage import DurableUploadClient

__all__ = [
    'CameraDevice',
    'CaptureSource',
    'SelectedFile',
    'PipelineConfig',
    'ContentType',
    'normalize_content_type',
    'DisplayCache',
    'DisplayResolver',
    'HandleTracker',
    'CaptureResult',
    'MediaAsset',
    'Platform',
    'PlatformPage',
    'PublishRequest',
    'PublishResult',
    'UploadOutcome',
    'MediaPipeline',
    'PublishOrchestrator',
    'DurableUploadClient',
]
