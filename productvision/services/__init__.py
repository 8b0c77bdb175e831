"""Integrations with external model providers."""

from .gateway import GenerationGateway, extract_image_data  # noqa: F401

__all__ = ["GenerationGateway", "extract_image_data"]
