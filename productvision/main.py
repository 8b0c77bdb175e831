from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from productvision.actions import Gateway
from productvision.auth import IdentityProvider, build_identity_provider
from productvision.config import Settings, get_settings
from productvision.middlewares.body_limit import BodyLimitMiddleware
from productvision.routes import api, pages
from productvision.services.gateway import GenerationGateway
from productvision.sessions import SessionStore, attach_session

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Align uvicorn with the service log level
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logging.getLogger("uvicorn").setLevel(LOG_LEVEL)
logging.getLogger("uvicorn.error").setLevel(LOG_LEVEL)
logging.getLogger("uvicorn.access").setLevel(LOG_LEVEL)
logging.getLogger("product-vision").setLevel(LOG_LEVEL)

logger = logging.getLogger("product-vision")


def _cors_kwargs(origins: list[str]) -> dict[str, Any]:
    explicit = sorted(origin for origin in origins if origin != "*")
    return {
        "allow_origins": explicit or ["*"],
        "allow_credentials": bool(explicit),
        "allow_methods": ["GET", "POST", "OPTIONS"],
        "allow_headers": ["*"],
        "max_age": 86400,
    }


def create_app(
    settings: Settings | None = None,
    *,
    gateway: Gateway | None = None,
    identity_provider: IdentityProvider | None = None,
) -> FastAPI:
    """Build the application.

    The gateway is constructed during startup so that a missing API key stops
    the server before it accepts traffic. Tests inject their own gateway and
    identity provider.
    """

    settings = settings or get_settings()
    logging.getLogger("product-vision").setLevel(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if app.state.gateway is None:
            app.state.gateway = GenerationGateway.from_settings(settings)
            logger.info(
                "GenerationGateway ready",
                extra={"model": settings.gemini.model, "environment": settings.environment},
            )
        yield

    app = FastAPI(title="ProductVision API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.gateway = gateway
    app.state.identity_provider = identity_provider or build_identity_provider(settings.auth)
    app.state.sessions = SessionStore(max_entries=settings.session_max_entries)

    app.add_middleware(BodyLimitMiddleware, max_body_bytes=settings.guard.max_body_bytes)
    logger.info("BodyLimitMiddleware ready", extra={"max_body_bytes": settings.guard.max_body_bytes})
    app.add_middleware(CORSMiddleware, **_cors_kwargs(settings.allowed_origins))
    app.middleware("http")(attach_session)

    @app.get("/health")
    def health() -> dict[str, bool]:
        return {"ok": True}

    app.include_router(api.router)
    app.include_router(pages.router)
    return app
