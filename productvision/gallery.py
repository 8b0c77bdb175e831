from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from productvision.schemas import GeneratedAsset

PROMPT_DISPLAY_LIMIT = 140


@dataclass(frozen=True)
class GalleryEntry:
    asset: GeneratedAsset
    display_prompt: str
    download_name: str


def truncate_prompt(prompt: str, limit: int = PROMPT_DISPLAY_LIMIT) -> str:
    """Shorten a prompt for display; the stored prompt is left untouched."""

    if len(prompt) <= limit:
        return prompt
    return prompt[: max(limit - 1, 0)].rstrip() + "…"


def gallery_entries(assets: Iterable[GeneratedAsset]) -> list[GalleryEntry]:
    # Assets are already stored newest-first.
    return [
        GalleryEntry(
            asset=asset,
            display_prompt=truncate_prompt(asset.prompt),
            download_name=asset.download_name,
        )
        for asset in assets
    ]
