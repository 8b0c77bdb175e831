from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import List
from urllib.parse import urlparse

from productvision.errors import ConfigurationError

DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"


def _as_int(value: str | None, default: int) -> int:
    """Parse a non-negative integer, falling back to the default."""

    try:
        return max(int(value), 0) if value is not None else default
    except (TypeError, ValueError):
        return default


def _parse_allowed_origins(raw: str | None) -> List[str]:
    """Normalise comma-separated origins into values accepted by CORSMiddleware."""

    if not raw:
        return ["*"]

    cleaned: List[str] = []
    for origin in raw.split(","):
        value = origin.strip()
        if not value:
            continue
        if value == "*":
            return ["*"]

        parsed = urlparse(value)
        if parsed.scheme and parsed.netloc:
            normalised = f"{parsed.scheme}://{parsed.netloc}"
        else:
            normalised = value.rstrip("/")

        if normalised not in cleaned:
            cleaned.append(normalised)

    return cleaned or ["*"]


@dataclass
class GeminiConfig:
    api_key: str | None = None
    model: str = DEFAULT_IMAGE_MODEL

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls) -> "GeminiConfig":
        # API_KEY is the name the hosted frontend always used.
        api_key = (
            os.getenv("API_KEY")
            or os.getenv("GEMINI_API_KEY")
            or os.getenv("GOOGLE_API_KEY")
        )
        model = os.getenv("GEMINI_IMAGE_MODEL") or DEFAULT_IMAGE_MODEL
        return cls(api_key=api_key or None, model=model)


@dataclass
class AuthConfig:
    jwt_secret: str | None = None
    jwks_url: str | None = None
    issuer: str | None = None
    audience: str | None = None
    session_cookie: str = "__session"
    sign_in_url: str = "/sign-in"
    sign_out_url: str = "/sign-out"
    dev_user_id: str | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.jwt_secret or self.jwks_url)

    @classmethod
    def from_env(cls) -> "AuthConfig":
        return cls(
            jwt_secret=os.getenv("AUTH_JWT_SECRET") or None,
            jwks_url=os.getenv("AUTH_JWKS_URL") or None,
            issuer=os.getenv("AUTH_ISSUER") or None,
            audience=os.getenv("AUTH_AUDIENCE") or None,
            session_cookie=os.getenv("AUTH_SESSION_COOKIE") or "__session",
            sign_in_url=os.getenv("AUTH_SIGN_IN_URL") or "/sign-in",
            sign_out_url=os.getenv("AUTH_SIGN_OUT_URL") or "/sign-out",
            dev_user_id=os.getenv("AUTH_DEV_USER_ID") or None,
        )


@dataclass
class GuardConfig:
    max_body_bytes: int

    @classmethod
    def from_env(cls) -> "GuardConfig":
        return cls(max_body_bytes=_as_int(os.getenv("UPLOAD_MAX_BYTES"), 20_000_000))


@dataclass
class Settings:
    environment: str
    log_level: str
    allowed_origins: List[str]
    gemini: GeminiConfig
    auth: AuthConfig
    guard: GuardConfig
    session_max_entries: int = 500

    def validate(self) -> None:
        """Raise ``ConfigurationError`` when a required value is missing."""

        if not self.gemini.is_configured:
            raise ConfigurationError(
                "API_KEY (or GEMINI_API_KEY) must be set to reach the image model"
            )


@lru_cache()
def get_settings() -> Settings:
    def _get(name: str, default: str | None = None) -> str | None:
        v = os.getenv(name)
        return v if v is not None else default

    return Settings(
        environment=_get("ENVIRONMENT", "development") or "development",
        log_level=(_get("LOG_LEVEL", "INFO") or "INFO").upper(),
        allowed_origins=_parse_allowed_origins(_get("ALLOWED_ORIGINS", "*")),
        gemini=GeminiConfig.from_env(),
        auth=AuthConfig.from_env(),
        guard=GuardConfig.from_env(),
        session_max_entries=_as_int(_get("SESSION_MAX_ENTRIES"), 500) or 500,
    )
