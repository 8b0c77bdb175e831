from __future__ import annotations

import base64
import logging
from typing import Any, Iterable

from google import genai
from google.genai import types

from productvision.config import Settings
from productvision.errors import (
    EmptyResponse,
    GenerationError,
    MalformedResponse,
    ModelRefusal,
    ProductVisionError,
    TransportError,
)
from productvision.images import parse_image_payload

logger = logging.getLogger("product-vision.gateway")


def _response_parts(response: Any) -> list[Any]:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    content = getattr(candidates[0], "content", None)
    return list(getattr(content, "parts", None) or [])


def _inline_payload(part: Any) -> str | None:
    inline_data = getattr(part, "inline_data", None)
    data = getattr(inline_data, "data", None) if inline_data is not None else None
    if not data:
        return None
    if isinstance(data, (bytes, bytearray)):
        return base64.b64encode(bytes(data)).decode("ascii")
    return str(data)


def extract_image_data(response: Any) -> str:
    """Return the base64 payload of the first inline image part.

    Falls back to the model's text, if any, as a refusal message.
    """

    parts = _response_parts(response)
    if not parts:
        raise EmptyResponse()

    for part in parts:
        payload = _inline_payload(part)
        if payload:
            return payload

    text = _first_text(parts)
    if text:
        raise ModelRefusal(text)

    raise MalformedResponse()


def _first_text(parts: Iterable[Any]) -> str | None:
    for part in parts:
        text = getattr(part, "text", None)
        if text:
            return text
    return None


class GenerationGateway:
    """Single call point to the Gemini image model."""

    def __init__(self, client: genai.Client, model: str) -> None:
        self.client = client
        self.model = model

    @classmethod
    def from_settings(cls, settings: Settings) -> "GenerationGateway":
        settings.validate()
        client = genai.Client(api_key=settings.gemini.api_key)
        return cls(client=client, model=settings.gemini.model)

    def _build_contents(self, encoded_image: str, media_type: str, prompt: str) -> list[types.Content]:
        image = parse_image_payload(encoded_image, media_type)
        return [
            types.Content(
                role="user",
                parts=[
                    types.Part.from_bytes(data=image.data, mime_type=image.media_type),
                    types.Part(text=prompt),
                ],
            )
        ]

    def generate(self, encoded_image: str, media_type: str, prompt: str) -> str:
        """Edit ``encoded_image`` following ``prompt``; return base64 image bytes.

        Every failure is raised as ``GenerationError``. One attempt, no retries.
        """

        try:
            if not prompt or not prompt.strip():
                raise GenerationError("A prompt is required to generate an asset.")
            contents = self._build_contents(encoded_image, media_type, prompt)
            response = self.client.models.generate_content(
                model=self.model,
                contents=contents,
                config=types.GenerateContentConfig(response_modalities=["IMAGE", "TEXT"]),
            )
            return extract_image_data(response)
        except GenerationError as exc:
            logger.error("Gemini generation error: %s", exc)
            raise
        except ProductVisionError as exc:
            logger.error("Gemini generation error: %s", exc)
            raise GenerationError(str(exc)) from exc
        except Exception as exc:  # noqa: BLE001 - SDK and transport failures
            message = getattr(exc, "message", None) or str(exc)
            logger.error("Gemini generation error: %r", exc)
            raise TransportError(message) from exc


__all__ = ["GenerationGateway", "extract_image_data"]
