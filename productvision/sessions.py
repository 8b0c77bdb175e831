"""In-memory, per-browser orchestrator sessions.

Nothing here is persisted: restarting the process discards every session.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import OrderedDict
from typing import Awaitable, Callable

from fastapi import Request, Response

from productvision.auth import get_auth_state
from productvision.orchestrator import GenerationOrchestrator

logger = logging.getLogger("product-vision.sessions")

SESSION_COOKIE = "pv_session"


class SessionStore:
    def __init__(self, max_entries: int = 500) -> None:
        self.max_entries = max(int(max_entries), 1)
        self._sessions: "OrderedDict[str, GenerationOrchestrator]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str) -> GenerationOrchestrator:
        with self._lock:
            orchestrator = self._sessions.get(session_id)
            if orchestrator is None:
                orchestrator = GenerationOrchestrator()
                self._sessions[session_id] = orchestrator
                while len(self._sessions) > self.max_entries:
                    evicted, _ = self._sessions.popitem(last=False)
                    logger.info("Evicted session %s", evicted[:8])
            else:
                self._sessions.move_to_end(session_id)
            return orchestrator


async def attach_session(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Attach the browser session id to ``request.state`` and keep its cookie set."""

    session_id = request.cookies.get(SESSION_COOKIE)
    if not session_id:
        session_id = uuid.uuid4().hex
    request.state.session_id = session_id

    response = await call_next(request)
    response.set_cookie(key=SESSION_COOKIE, value=session_id, httponly=True, samesite="lax")
    return response


def get_orchestrator(request: Request) -> GenerationOrchestrator:
    """Return this browser's orchestrator, reset if a different user has signed in."""

    store: SessionStore = request.app.state.sessions
    orchestrator = store.get(request.state.session_id)
    orchestrator.bind_user(get_auth_state(request))
    return orchestrator


__all__ = ["SESSION_COOKIE", "SessionStore", "attach_session", "get_orchestrator"]
