"""Trusted generation action shared by the JSON API and the page flow."""

from __future__ import annotations

import logging
from typing import Protocol

from productvision.auth import Identity
from productvision.errors import Unauthorized

logger = logging.getLogger("product-vision")


class Gateway(Protocol):
    def generate(self, encoded_image: str, media_type: str, prompt: str) -> str:
        ...


def generate_marketing_asset(
    identity: Identity | None,
    gateway: Gateway,
    image: str,
    mime_type: str,
    prompt: str,
) -> str:
    """Return base64 image bytes for ``prompt`` applied to ``image``.

    ``identity`` must come from server-side session verification; without it
    the call is rejected before the gateway is touched.
    """

    if identity is None:
        raise Unauthorized()

    logger.info(
        "[generate] user=%s mime=%s prompt_len=%s image_len=%s",
        identity.user_id,
        mime_type,
        len(prompt),
        len(image),
    )
    return gateway.generate(image, mime_type, prompt)


__all__ = ["Gateway", "generate_marketing_asset"]
