"""Exception types shared by the intake, gateway and web layers."""

from __future__ import annotations

GENERIC_GENERATION_MESSAGE = "Failed to generate asset."


class ProductVisionError(Exception):
    """Base class for errors raised by the service."""


class ConfigurationError(ProductVisionError):
    """Required configuration is missing at startup."""


class Unauthorized(ProductVisionError):
    """A generation was requested without a valid signed-in session."""

    def __init__(self, message: str = "Unauthorized: Please sign in to generate assets.") -> None:
        super().__init__(message)


class ImageValidationError(ProductVisionError):
    """An upload was rejected before reaching the orchestrator."""


class MalformedImagePayload(ProductVisionError):
    """An encoded image is neither a valid data URI nor raw base64."""


class UnknownScenario(ProductVisionError):
    def __init__(self, scenario_id: str) -> None:
        super().__init__(f"Unknown scenario: {scenario_id}")
        self.scenario_id = scenario_id


class GenerationError(ProductVisionError):
    """Uniform failure raised by the generation gateway."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or GENERIC_GENERATION_MESSAGE)

    @property
    def message(self) -> str:
        return self.args[0]


class ModelRefusal(GenerationError):
    """The model answered with text only."""

    def __init__(self, text: str) -> None:
        super().__init__(f"Model returned text instead of image: {text}")
        self.text = text


class EmptyResponse(GenerationError):
    def __init__(self) -> None:
        super().__init__("No content generated.")


class MalformedResponse(GenerationError):
    def __init__(self) -> None:
        super().__init__("No image data found in response.")


class TransportError(GenerationError):
    """Network or provider failure while calling the model."""


__all__ = [
    "ConfigurationError",
    "EmptyResponse",
    "GENERIC_GENERATION_MESSAGE",
    "GenerationError",
    "ImageValidationError",
    "MalformedImagePayload",
    "MalformedResponse",
    "ModelRefusal",
    "ProductVisionError",
    "TransportError",
    "Unauthorized",
    "UnknownScenario",
]
