from __future__ import annotations

import base64
from io import BytesIO
from types import SimpleNamespace
from typing import Any

from PIL import Image

from productvision.config import AuthConfig, GeminiConfig, GuardConfig, Settings
from productvision.images import DATA_URL_RX


def make_image_bytes(fmt: str = "PNG", size: tuple[int, int] = (32, 24), color=(200, 40, 40)) -> bytes:
    image = Image.new("RGB", size, color)
    buffer = BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def decode_data_url(value: str) -> bytes:
    match = DATA_URL_RX.match(value)
    assert match is not None, value
    return base64.b64decode(match.group("payload"), validate=True)


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "environment": "test",
        "log_level": "INFO",
        "allowed_origins": ["*"],
        "gemini": GeminiConfig(api_key="test-key"),
        "auth": AuthConfig(),
        "guard": GuardConfig(max_body_bytes=5_000_000),
    }
    values.update(overrides)
    return Settings(**values)


def image_part(data: Any, mime_type: str = "image/png") -> SimpleNamespace:
    return SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type=mime_type), text=None)


def text_part(text: str) -> SimpleNamespace:
    return SimpleNamespace(inline_data=None, text=text)


def model_response(parts: list[Any] | None) -> SimpleNamespace:
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])


class FakeModels:
    def __init__(self, response: Any = None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def generate_content(self, *, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.error is not None:
            raise self.error
        return self.response


class FakeGenAIClient:
    def __init__(self, response: Any = None, error: Exception | None = None) -> None:
        self.models = FakeModels(response=response, error=error)


class FakeGateway:
    """Stands in for ``GenerationGateway`` in orchestrator and HTTP tests."""

    def __init__(self, result: str = "AAAA", error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[tuple[str, str, str]] = []

    def generate(self, encoded_image: str, media_type: str, prompt: str) -> str:
        self.calls.append((encoded_image, media_type, prompt))
        if self.error is not None:
            raise self.error
        return self.result


