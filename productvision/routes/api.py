from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request

from productvision.actions import generate_marketing_asset
from productvision.auth import Identity, require_identity
from productvision.errors import GenerationError, MalformedImagePayload, Unauthorized
from productvision.images import to_data_url
from productvision.scenarios import list_scenarios
from productvision.schemas import (
    GenerateAssetRequest,
    GenerateAssetResponse,
    ScenarioCollection,
)

logger = logging.getLogger("product-vision")

router = APIRouter(prefix="/api", tags=["generation"])


@router.get("/scenarios", response_model=ScenarioCollection)
def api_scenarios() -> ScenarioCollection:
    return ScenarioCollection(scenarios=list_scenarios())


@router.post("/generate", response_model=GenerateAssetResponse)
def api_generate(
    request: Request,
    payload: GenerateAssetRequest,
    identity: Identity = Depends(require_identity),
) -> GenerateAssetResponse:
    rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
    gateway = request.app.state.gateway

    logger.info(
        "[payload] rid=%s user=%s mime=%s prompt_len=%s",
        rid,
        identity.user_id,
        payload.mime_type,
        len(payload.prompt),
    )

    try:
        image_b64 = generate_marketing_asset(
            identity, gateway, payload.image, payload.mime_type, payload.prompt
        )
    except Unauthorized as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except GenerationError as exc:
        cause = exc.__cause__
        if isinstance(cause, MalformedImagePayload):
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        raise HTTPException(status_code=502, detail=exc.message) from exc

    return GenerateAssetResponse(
        ok=True,
        image=image_b64,
        mime_type="image/png",
        image_url=to_data_url(image_b64, "image/png"),
    )
