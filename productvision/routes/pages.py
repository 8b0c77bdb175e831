from __future__ import annotations

import functools
import logging
from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, Response, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from productvision.actions import generate_marketing_asset
from productvision.auth import current_identity, get_auth_state
from productvision.errors import ImageValidationError, UnknownScenario
from productvision.gallery import gallery_entries
from productvision.intake import read_upload
from productvision.orchestrator import GenerationOrchestrator
from productvision.scenarios import icon_glyph, list_scenarios
from productvision.sessions import get_orchestrator

logger = logging.getLogger("product-vision")

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.filters["icon_glyph"] = icon_glyph

router = APIRouter(tags=["pages"])


def _back_home(anchor: str = "") -> RedirectResponse:
    return RedirectResponse(url=f"/{anchor}", status_code=303)


def _generate_fn(request: Request):
    identity = current_identity(request)
    return functools.partial(generate_marketing_asset, identity, request.app.state.gateway)


@router.get("/", response_class=HTMLResponse)
def index(request: Request, orchestrator: GenerationOrchestrator = Depends(get_orchestrator)) -> Response:
    auth = get_auth_state(request)
    settings = request.app.state.settings
    context = {
        "auth": auth,
        "state": orchestrator,
        "controls_enabled": orchestrator.controls_enabled(auth),
        "scenarios": list_scenarios(),
        "gallery": gallery_entries(orchestrator.assets),
        "sign_in_url": settings.auth.sign_in_url,
        "sign_out_url": settings.auth.sign_out_url,
        "model_name": settings.gemini.model,
    }
    return templates.TemplateResponse(request, "index.html", context)


@router.head("/", include_in_schema=False)
def index_head() -> Response:
    return Response(status_code=200)


@router.post("/upload")
async def upload(
    request: Request,
    file: UploadFile = File(...),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> Response:
    data = await file.read()
    try:
        image = read_upload(data, file.content_type, file.filename)
    except ImageValidationError as exc:
        logger.info("Upload rejected: filename=%s reason=%s", file.filename, exc)
        orchestrator.report_intake_error(str(exc))
    else:
        orchestrator.set_source_image(image)
    return _back_home()


@router.post("/clear")
def clear(orchestrator: GenerationOrchestrator = Depends(get_orchestrator)) -> Response:
    orchestrator.clear_source_image()
    return _back_home()


@router.post("/generate/scenario/{scenario_id}")
def generate_scenario(
    request: Request,
    scenario_id: str,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> Response:
    try:
        asset = orchestrator.select_scenario(
            scenario_id,
            auth=get_auth_state(request),
            generate=_generate_fn(request),
        )
    except UnknownScenario as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _back_home("#results" if asset else "")


@router.post("/generate/custom")
def generate_custom(
    request: Request,
    prompt: str = Form(""),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> Response:
    asset = orchestrator.submit_custom_prompt(
        prompt,
        auth=get_auth_state(request),
        generate=_generate_fn(request),
    )
    return _back_home("#results" if asset else "")
