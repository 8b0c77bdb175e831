"""Parsing and building of embedded (data URI) image representations."""

from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from typing import Literal

from productvision.errors import MalformedImagePayload

logger = logging.getLogger("product-vision.images")

DATA_URL_RX = re.compile(
    r"^data:(?P<media>image/[A-Za-z0-9.+-]+);base64,(?P<payload>.*)$",
    re.IGNORECASE | re.DOTALL,
)


@dataclass(frozen=True)
class InlineImage:
    """Image bytes normalised from either raw base64 or a data URI."""

    data: bytes
    media_type: str
    source: Literal["raw", "data_uri"]


def _decode_b64(payload: str) -> bytes:
    try:
        data = base64.b64decode(payload.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedImagePayload(f"image payload is not valid base64: {exc}") from exc
    if not data:
        raise MalformedImagePayload("image payload is empty")
    return data


def parse_image_payload(encoded: str, media_type: str) -> InlineImage:
    """Classify ``encoded`` as raw base64 or a data URI and decode it.

    Values starting with ``data:`` must be well-formed ``data:image/<subtype>;base64,``
    URIs. When the URI declares a media type different from ``media_type`` the
    supplied one is kept.
    """

    text = (encoded or "").strip()
    if not text:
        raise MalformedImagePayload("image payload is empty")

    if text[:5].lower() == "data:":
        match = DATA_URL_RX.match(text)
        if match is None:
            raise MalformedImagePayload("image data URI must look like data:image/<type>;base64,<data>")
        declared = match.group("media").lower()
        if media_type and declared != media_type.lower():
            logger.warning(
                "data URI declares %s but caller supplied %s; using %s",
                declared,
                media_type,
                media_type,
            )
        data = _decode_b64(match.group("payload"))
        return InlineImage(data=data, media_type=media_type or declared, source="data_uri")

    return InlineImage(data=_decode_b64(text), media_type=media_type, source="raw")


def to_data_url(payload: str | bytes, media_type: str = "image/png") -> str:
    """Wrap base64 text (or raw bytes) as an embedded data URI."""

    if isinstance(payload, (bytes, bytearray)):
        payload = base64.b64encode(bytes(payload)).decode("ascii")
    return f"data:{media_type};base64,{payload}"


__all__ = ["DATA_URL_RX", "InlineImage", "parse_image_payload", "to_data_url"]
