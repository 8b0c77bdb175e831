"""Fixed catalog of product visualization scenarios."""

from __future__ import annotations

from productvision.errors import UnknownScenario
from productvision.schemas import Scenario

SCENARIOS: tuple[Scenario, ...] = (
    Scenario(
        id="mug",
        label="Coffee Mug",
        icon_key="coffee",
        prompt_template=(
            "Place this logo/design naturally onto a clean ceramic coffee mug sitting on a "
            "wooden cafe table. Photorealistic, 8k resolution, cinematic lighting."
        ),
        description="Visualize on drinkware",
    ),
    Scenario(
        id="tshirt",
        label="T-Shirt Model",
        icon_key="shirt",
        prompt_template=(
            "Show a model wearing a high-quality plain white t-shirt with this design printed "
            "on the chest. Studio lighting, fashion photography style."
        ),
        description="Apparel mockup",
    ),
    Scenario(
        id="billboard",
        label="City Billboard",
        icon_key="megaphone",
        prompt_template=(
            "Display this image on a large digital billboard in a busy modern city intersection "
            "at dusk. Neon lights, urban atmosphere."
        ),
        description="Large scale advertising",
    ),
    Scenario(
        id="sticker",
        label="Laptop Sticker",
        icon_key="sticker",
        prompt_template=(
            "Turn this image into a die-cut sticker placed on a silver laptop lid. "
            "Macro photography, shallow depth of field."
        ),
        description="Tech merchandise",
    ),
)

_BY_ID = {scenario.id: scenario for scenario in SCENARIOS}

# Glyphs stand in for the icon set on the server-rendered page.
ICON_GLYPHS = {
    "coffee": "☕",
    "shirt": "\U0001F455",
    "megaphone": "\U0001F4E3",
    "sticker": "\U0001F5BC",
}
DEFAULT_ICON_GLYPH = "✨"


def list_scenarios() -> list[Scenario]:
    return list(SCENARIOS)


def get_scenario(scenario_id: str) -> Scenario:
    try:
        return _BY_ID[scenario_id]
    except KeyError:
        raise UnknownScenario(scenario_id) from None


def icon_glyph(icon_key: str) -> str:
    return ICON_GLYPHS.get(icon_key, DEFAULT_ICON_GLYPH)
