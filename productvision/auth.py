"""Session verification against the external identity provider.

The provider signs a session token (JWT) and stores it in a cookie, or the
caller sends it as a bearer token. Two key sources are supported:

- ``AUTH_JWT_SECRET``: HS256 shared secret.
- ``AUTH_JWKS_URL``: RS256 public keys served as a JWKS document.

``resolve`` never raises: an absent or invalid token resolves as signed out,
and an unreachable key endpoint resolves as "not loaded yet" so that the page
keeps every generation control disabled.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Protocol

import httpx
import jwt
from fastapi import HTTPException, Request

from productvision.config import AuthConfig

logger = logging.getLogger("product-vision.auth")

JWKS_REFRESH_COOLDOWN = 60.0


@dataclass(frozen=True)
class AuthState:
    is_loaded: bool
    user_id: str | None = None

    @property
    def is_signed_in(self) -> bool:
        return self.is_loaded and bool(self.user_id)


@dataclass(frozen=True)
class Identity:
    user_id: str


class IdentityProvider(Protocol):
    def resolve(self, request: Request) -> AuthState:
        ...


class KeySourceUnavailable(Exception):
    """The JWKS endpoint could not be read."""


class SessionTokenVerifier:
    """Verify the identity provider's session token with PyJWT."""

    def __init__(
        self,
        config: AuthConfig,
        *,
        http_client: httpx.Client | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self._http = http_client
        self._clock = clock
        self._keys: dict[str, Any] = {}
        self._fetched_at: float | None = None
        self._fetch_error: str | None = None
        self._lock = threading.Lock()
        if not config.is_configured:
            logger.warning("No AUTH_JWT_SECRET or AUTH_JWKS_URL configured; every visitor is signed out")

    def _token_from(self, request: Request) -> str | None:
        header = request.headers.get("Authorization") or ""
        if header.lower().startswith("bearer "):
            token = header[7:].strip()
            if token:
                return token
        return request.cookies.get(self.config.session_cookie) or None

    def _fetch_jwks(self) -> list[dict[str, Any]]:
        try:
            if self._http is not None:
                response = self._http.get(self.config.jwks_url, timeout=10.0)
            else:
                with httpx.Client(timeout=10.0) as client:
                    response = client.get(self.config.jwks_url)
            response.raise_for_status()
            document = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise KeySourceUnavailable(str(exc)) from exc
        if not isinstance(document, dict) or not isinstance(document.get("keys"), list):
            raise KeySourceUnavailable("JWKS document has no 'keys' list")
        return [entry for entry in document["keys"] if isinstance(entry, dict)]

    def _refresh_keys(self) -> None:
        """Download the JWKS, at most once per ``JWKS_REFRESH_COOLDOWN`` seconds."""

        now = self._clock()
        if self._fetched_at is not None and now - self._fetched_at < JWKS_REFRESH_COOLDOWN:
            if self._fetch_error is not None:
                raise KeySourceUnavailable(self._fetch_error)
            return

        self._fetched_at = now
        try:
            entries = self._fetch_jwks()
        except KeySourceUnavailable as exc:
            self._fetch_error = str(exc)
            raise
        self._fetch_error = None

        keys: dict[str, Any] = {}
        for entry in entries:
            try:
                keys[entry.get("kid")] = jwt.PyJWK(entry).key
            except jwt.PyJWTError as exc:
                logger.warning("Skipping unusable JWKS entry kid=%s: %s", entry.get("kid"), exc)
        self._keys = keys

    def _signing_key(self, token: str) -> Any:
        kid = jwt.get_unverified_header(token).get("kid")
        with self._lock:
            if kid not in self._keys:
                self._refresh_keys()
            key = self._keys.get(kid)
        if key is None:
            raise jwt.InvalidTokenError(f"no signing key for kid={kid}")
        return key

    def decode(self, token: str) -> dict[str, Any]:
        options = {"require": ["sub", "exp"], "verify_aud": bool(self.config.audience)}
        if self.config.jwt_secret:
            key: Any = self.config.jwt_secret
            algorithms = ["HS256"]
        else:
            key = self._signing_key(token)
            algorithms = ["RS256"]
        return jwt.decode(
            token,
            key,
            algorithms=algorithms,
            audience=self.config.audience,
            issuer=self.config.issuer,
            options=options,
        )

    def resolve(self, request: Request) -> AuthState:
        if not self.config.is_configured:
            return AuthState(is_loaded=True)

        token = self._token_from(request)
        if not token:
            return AuthState(is_loaded=True)

        try:
            claims = self.decode(token)
        except KeySourceUnavailable as exc:
            logger.warning("Identity provider keys unavailable: %s", exc)
            return AuthState(is_loaded=False)
        except jwt.PyJWTError as exc:
            logger.info("Rejected session token: %s", exc)
            return AuthState(is_loaded=True)

        return AuthState(is_loaded=True, user_id=str(claims["sub"]))


class StaticIdentityProvider:
    """Resolve every request to the same state (local development and tests)."""

    def __init__(self, user_id: str | None = None, *, is_loaded: bool = True) -> None:
        self.state = AuthState(is_loaded=is_loaded, user_id=user_id)

    def resolve(self, request: Request) -> AuthState:
        return self.state


def build_identity_provider(config: AuthConfig) -> IdentityProvider:
    if config.dev_user_id:
        logger.warning("AUTH_DEV_USER_ID is set; every request is signed in as %s", config.dev_user_id)
        return StaticIdentityProvider(config.dev_user_id)
    return SessionTokenVerifier(config)


def get_auth_state(request: Request) -> AuthState:
    provider: IdentityProvider = request.app.state.identity_provider
    return provider.resolve(request)


def require_identity(request: Request) -> Identity:
    """Server-side check guarding the trusted generation boundary."""

    state = get_auth_state(request)
    if not state.is_signed_in:
        raise HTTPException(status_code=401, detail="Unauthorized: Please sign in to generate assets.")
    return Identity(user_id=state.user_id)  # type: ignore[arg-type]


def current_identity(request: Request) -> Identity | None:
    state = get_auth_state(request)
    return Identity(user_id=state.user_id) if state.is_signed_in else None  # type: ignore[arg-type]


__all__ = [
    "JWKS_REFRESH_COOLDOWN",
    "AuthState",
    "Identity",
    "IdentityProvider",
    "SessionTokenVerifier",
    "StaticIdentityProvider",
    "build_identity_provider",
    "current_identity",
    "get_auth_state",
    "require_identity",
]
