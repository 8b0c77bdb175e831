from __future__ import annotations

import io
import logging
import mimetypes

from PIL import Image, UnidentifiedImageError

from productvision.errors import ImageValidationError
from productvision.images import to_data_url
from productvision.schemas import SourceImage

logger = logging.getLogger("product-vision.intake")

_GENERIC_TYPES = {"", "application/octet-stream", "binary/octet-stream"}


def _resolve_media_type(content_type: str | None, filename: str | None) -> str:
    declared = (content_type or "").split(";", 1)[0].strip().lower()
    if declared in _GENERIC_TYPES and filename:
        guessed, _ = mimetypes.guess_type(filename)
        return (guessed or "").lower()
    return declared


def _probe_dimensions(data: bytes) -> tuple[int | None, int | None]:
    # Display metadata only; a file Pillow cannot parse is still accepted.
    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError):
        return None, None


def read_upload(data: bytes, content_type: str | None, filename: str | None = None) -> SourceImage:
    """Turn an uploaded file into a ``SourceImage`` holding a data URI.

    Raises ``ImageValidationError`` when the file is not an image.
    """

    media_type = _resolve_media_type(content_type, filename)
    if not media_type.startswith("image/"):
        raise ImageValidationError("Please upload an image file")
    if not data:
        raise ImageValidationError("The uploaded image is empty")

    width, height = _probe_dimensions(data)
    logger.info(
        "[intake] filename=%s media_type=%s size=%s w=%s h=%s",
        filename,
        media_type,
        len(data),
        width,
        height,
    )
    return SourceImage(
        encoded_payload=to_data_url(data, media_type),
        media_type=media_type,
        filename=filename,
        size_bytes=len(data),
        width=width,
        height=height,
    )


__all__ = ["read_upload"]
