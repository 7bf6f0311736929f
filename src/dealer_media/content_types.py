"""
Content-Type Normalizer

Reconciles a file's declared MIME type, its name-derived extension and its
byte content into one canonical (extension, MIME type) pair.

A mismatch between stored bytes, stated type and file extension is the
main cause of broken remote previews, so every asset goes through
normalize_content_type() before it is stored.

Author: AI Creator Team
License: MIT
"""

import io
import logging
from typing import NamedTuple, Optional

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


class ContentType(NamedTuple):
    """Canonical (extension, MIME type) pair."""
    extension: str
    mime_type: str


JPEG = ContentType("jpg", "image/jpeg")
PNG = ContentType("png", "image/png")
GIF = ContentType("gif", "image/gif")
WEBP = ContentType("webp", "image/webp")

DEFAULT_CONTENT_TYPE = JPEG

ALLOWED_CONTENT_TYPES = (JPEG, PNG, GIF, WEBP)

_BY_MIME = {
    'image/jpeg': JPEG,
    'image/jpg': JPEG,
    'image/pjpeg': JPEG,
    'image/png': PNG,
    'image/gif': GIF,
    'image/webp': WEBP,
}

_BY_EXTENSION = {
    'jpg': JPEG,
    'jpeg': JPEG,
    'png': PNG,
    'gif': GIF,
    'webp': WEBP,
}

# Pillow format names
_BY_IMAGE_FORMAT = {
    'JPEG': JPEG,
    'MPO': JPEG,
    'PNG': PNG,
    'GIF': GIF,
    'WEBP': WEBP,
}


def from_mime_type(mime_type: Optional[str]) -> Optional[ContentType]:
    """Map a MIME type to an allow-listed pair, ignoring parameters."""
    if not mime_type:
        return None
    base = mime_type.split(';', 1)[0].strip().lower()
    return _BY_MIME.get(base)


def from_file_name(file_name: Optional[str]) -> Optional[ContentType]:
    """Map a file name's extension to an allow-listed pair."""
    if not file_name or '.' not in file_name:
        return None
    extension = file_name.rsplit('.', 1)[-1].strip().lower()
    return _BY_EXTENSION.get(extension)


def sniff_content_type(data: Optional[bytes]) -> Optional[ContentType]:
    """Identify the image format from the bytes themselves.

    Only the header is parsed; the image is never decoded.

    Returns:
        Allow-listed pair, or None if the bytes are not a supported image
    """
    if not data:
        return None
    try:
        with Image.open(io.BytesIO(data)) as image:
            return _BY_IMAGE_FORMAT.get(image.format or "")
    except (UnidentifiedImageError, OSError) as e:
        logger.debug(f"Could not sniff image format: {e}")
        return None


def normalize_content_type(
    file_name: Optional[str] = None,
    declared_mime_type: Optional[str] = None,
    data: Optional[bytes] = None
) -> ContentType:
    """Produce the canonical (extension, MIME type) pair for an image.

    Precedence: declared MIME type, then the sniffed byte format (consulted
    only when the MIME type is missing or unrecognized), then the file name
    extension. Anything else falls back to jpg/image/jpeg.

    Args:
        file_name: Name of the file, if any
        declared_mime_type: MIME type reported by the capture source
        data: Raw bytes, used when the MIME type cannot be trusted

    Returns:
        One of the four allow-listed ContentType pairs

    Example:
        >>> normalize_content_type("IMG.JPG", "image/png")
        ContentType(extension='png', mime_type='image/png')
    """
    by_mime = from_mime_type(declared_mime_type)
    by_name = from_file_name(file_name)

    if by_mime:
        if by_name and by_name != by_mime:
            logger.info(
                f"Declared type {declared_mime_type} disagrees with file name "
                f"'{file_name}'; using {by_mime.mime_type}"
            )
        return by_mime

    sniffed = sniff_content_type(data)
    if sniffed:
        return sniffed

    if by_name:
        return by_name

    logger.debug(
        f"Unrecognized content type (name={file_name!r}, mime={declared_mime_type!r}); "
        f"defaulting to {DEFAULT_CONTENT_TYPE.mime_type}"
    )
    return DEFAULT_CONTENT_TYPE
