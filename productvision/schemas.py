from __future__ import annotations

import datetime as dt
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _CompatModel(BaseModel):
    """Base model that ignores unknown fields."""

    model_config = ConfigDict(extra="ignore")


class _FrozenModel(_CompatModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class GenerationStatus(str, Enum):
    IDLE = "IDLE"
    LOADING = "LOADING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class Scenario(_FrozenModel):
    """A named, fixed prompt describing one visualization use case."""

    id: str
    label: str
    prompt_template: str
    description: str
    icon_key: str = Field("sparkles", description="Icon shown on the scenario button.")


class SourceImage(_CompatModel):
    """The uploaded product photo held by a session."""

    encoded_payload: str = Field(..., description="data:<media>;base64,<payload> URI.")
    media_type: str = Field(..., description="Declared MIME type, always image/*.")
    filename: str | None = None
    size_bytes: int = Field(0, ge=0)
    width: int | None = Field(None, ge=0, description="Width in pixels, when known.")
    height: int | None = Field(None, ge=0, description="Height in pixels, when known.")


class GeneratedAsset(_FrozenModel):
    id: str
    image_url: str = Field(..., description="Embedded data URI of the generated image.")
    prompt: str = Field(..., description="Exact text sent to the model for this result.")
    created_at: dt.datetime

    @property
    def download_name(self) -> str:
        return f"product-vision-{self.id}.png"


class GenerateAssetRequest(_CompatModel):
    image: str = Field(..., min_length=1, description="Raw base64 or data URI of the source image.")
    mime_type: str = Field(..., min_length=1, description="MIME type of the source image.")
    prompt: str = Field(..., min_length=1, description="Edit instruction sent verbatim to the model.")

    @field_validator("prompt")
    @classmethod
    def _reject_blank_prompt(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("prompt must not be blank")
        return value

    @field_validator("mime_type")
    @classmethod
    def _require_image_mime(cls, value: str) -> str:
        if not value.strip().lower().startswith("image/"):
            raise ValueError("mime_type must be an image/* type")
        return value.strip()


class GenerateAssetResponse(_CompatModel):
    ok: bool = Field(True, description="Whether the call succeeded.")
    image: str = Field(..., description="Base64 image bytes returned by the model.")
    mime_type: str = Field("image/png", description="MIME type used for image_url.")
    image_url: str = Field(..., description="Embedded data URI ready for display.")


class ScenarioCollection(_CompatModel):
    scenarios: list[Scenario] = Field(default_factory=list)


__all__ = [
    "GenerateAssetRequest",
    "GenerateAssetResponse",
    "GeneratedAsset",
    "GenerationStatus",
    "Scenario",
    "ScenarioCollection",
    "SourceImage",
]
