from __future__ import annotations

import datetime as dt
import logging
import threading
import uuid
from typing import Callable

from productvision.auth import AuthState
from productvision.images import to_data_url
from productvision.scenarios import get_scenario
from productvision.schemas import GeneratedAsset, GenerationStatus, SourceImage

logger = logging.getLogger("product-vision.orchestrator")

GenerateFn = Callable[[str, str, str], str]

SIGN_IN_REQUIRED_MESSAGE = "You must be signed in to generate assets."
FALLBACK_ERROR_MESSAGE = "Something went wrong during generation."


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _new_asset_id() -> str:
    return uuid.uuid4().hex


class GenerationOrchestrator:
    """Per-session controller sequencing intake, prompts and generation.

    ``status`` follows IDLE -> LOADING -> SUCCESS | ERROR, and back to
    LOADING on the next request. ``assets`` is newest-first and only ever
    grows.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], dt.datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_asset_id,
    ) -> None:
        self.source_image: SourceImage | None = None
        self.custom_prompt = ""
        self.status = GenerationStatus.IDLE
        self.error: str | None = None
        self.intake_error: str | None = None
        self.assets: list[GeneratedAsset] = []
        self.owner_id: str | None = None
        self._clock = clock
        self._id_factory = id_factory
        self._lock = threading.Lock()

    @property
    def is_loading(self) -> bool:
        return self.status is GenerationStatus.LOADING

    def controls_enabled(self, auth: AuthState) -> bool:
        return self.source_image is not None and not self.is_loading and auth.is_signed_in

    def set_source_image(self, image: SourceImage) -> None:
        self.source_image = image
        self.intake_error = None
        self.error = None

    def clear_source_image(self) -> None:
        self.source_image = None
        self.custom_prompt = ""
        self.error = None

    def report_intake_error(self, message: str) -> None:
        self.intake_error = message

    def bind_user(self, auth: AuthState) -> None:
        """Tie the session to the resolved user, dropping state left by a different one.

        Work done before the first sign-in is adopted by that user.
        """

        if not auth.is_loaded:
            return
        with self._lock:
            if self.owner_id is not None and self.owner_id != auth.user_id:
                logger.info("Session user changed; discarding previous state")
                self.source_image = None
                self.custom_prompt = ""
                self.status = GenerationStatus.IDLE
                self.error = None
                self.intake_error = None
                self.assets = []
            self.owner_id = auth.user_id

    def request_generation(
        self,
        prompt: str,
        *,
        auth: AuthState,
        generate: GenerateFn,
    ) -> GeneratedAsset | None:
        """Run one generation; return the new asset, or ``None`` when nothing was produced."""

        with self._lock:
            if self.source_image is None or not auth.is_loaded or self.is_loading:
                return None

            if not auth.user_id:
                self.status = GenerationStatus.ERROR
                self.error = SIGN_IN_REQUIRED_MESSAGE
                return None

            self.status = GenerationStatus.LOADING
            self.error = None
            image = self.source_image
            owner = self.owner_id

        try:
            result_b64 = generate(image.encoded_payload, image.media_type, prompt)
        except Exception as exc:  # noqa: BLE001 - any failure ends this request only
            if self.owner_id != owner:
                return None
            logger.warning("Generation failed: %s", exc)
            self.status = GenerationStatus.ERROR
            self.error = str(exc) or FALLBACK_ERROR_MESSAGE
            return None

        if self.owner_id != owner:
            logger.info("Discarding result generated for a previous session user")
            return None

        asset = GeneratedAsset(
            id=self._id_factory(),
            image_url=to_data_url(result_b64, "image/png"),
            prompt=prompt,
            created_at=self._clock(),
        )
        self.assets.insert(0, asset)
        self.status = GenerationStatus.SUCCESS
        return asset

    def select_scenario(
        self,
        scenario_id: str,
        *,
        auth: AuthState,
        generate: GenerateFn,
    ) -> GeneratedAsset | None:
        scenario = get_scenario(scenario_id)
        return self.request_generation(scenario.prompt_template, auth=auth, generate=generate)

    def submit_custom_prompt(
        self,
        text: str,
        *,
        auth: AuthState,
        generate: GenerateFn,
    ) -> GeneratedAsset | None:
        self.custom_prompt = text or ""
        if not self.custom_prompt.strip():
            return None
        return self.request_generation(self.custom_prompt, auth=auth, generate=generate)


__all__ = ["GenerateFn", "GenerationOrchestrator"]
