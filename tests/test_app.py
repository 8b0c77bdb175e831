from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from productvision.auth import AuthState, StaticIdentityProvider
from productvision.config import GeminiConfig, GuardConfig
from productvision.errors import ConfigurationError, TransportError
from productvision.main import create_app
from productvision.scenarios import get_scenario
from productvision.schemas import GenerationStatus
from productvision.sessions import SESSION_COOKIE

from .helpers import FakeGateway, make_settings


def _client(gateway: FakeGateway, *, user_id: str | None = "user_1", is_loaded: bool = True, **settings):
    app = create_app(
        make_settings(**settings),
        gateway=gateway,
        identity_provider=StaticIdentityProvider(user_id, is_loaded=is_loaded),
    )
    return app, TestClient(app)


def _orchestrator(app, client: TestClient):
    return app.state.sessions.get(client.cookies[SESSION_COOKIE])


def _upload(client: TestClient, data: bytes, filename: str = "photo.jpg", content_type: str = "image/jpeg"):
    return client.post(
        "/upload",
        files={"file": (filename, data, content_type)},
        follow_redirects=False,
    )


def test_health_and_scenarios() -> None:
    _, client = _client(FakeGateway())
    with client:
        assert client.get("/health").json() == {"ok": True}
        scenarios = client.get("/api/scenarios").json()["scenarios"]

    assert [item["id"] for item in scenarios] == ["mug", "tshirt", "billboard", "sticker"]


def test_scenario_flow_prepends_asset(jpeg_bytes: bytes) -> None:
    gateway = FakeGateway(result="AAAA")
    app, client = _client(gateway)
    with client:
        assert _upload(client, jpeg_bytes).status_code == 303
        response = client.post("/generate/scenario/mug", follow_redirects=False)
        page = client.get("/")

        orchestrator = _orchestrator(app, client)

    assert response.status_code == 303
    assert response.headers["location"] == "/#results"
    assert len(orchestrator.assets) == 1
    assert orchestrator.assets[0].prompt == get_scenario("mug").prompt_template
    assert orchestrator.assets[0].image_url == "data:image/png;base64,AAAA"
    assert gateway.calls[0][1] == "image/jpeg"
    assert "1 Results" in page.text
    assert "data:image/png;base64,AAAA" in page.text
    assert f'download="product-vision-{orchestrator.assets[0].id}.png"' in page.text


def test_custom_prompt_error_is_displayed(jpeg_bytes: bytes) -> None:
    app, client = _client(FakeGateway(error=TransportError("rate limited")))
    with client:
        _upload(client, jpeg_bytes)
        response = client.post("/generate/custom", data={"prompt": "make it blue"}, follow_redirects=False)
        page = client.get("/")
        orchestrator = _orchestrator(app, client)

    assert response.headers["location"] == "/"
    assert orchestrator.status is GenerationStatus.ERROR
    assert orchestrator.error == "rate limited"
    assert orchestrator.assets == []
    assert "rate limited" in page.text


def test_non_image_upload_reports_intake_error() -> None:
    app, client = _client(FakeGateway())
    with client:
        _upload(client, b"hello", filename="notes.txt", content_type="text/plain")
        page = client.get("/")
        orchestrator = _orchestrator(app, client)

    assert orchestrator.source_image is None
    assert orchestrator.status is GenerationStatus.IDLE
    assert "Please upload an image file" in page.text


def test_generate_without_upload_is_noop() -> None:
    gateway = FakeGateway()
    app, client = _client(gateway)
    with client:
        response = client.post("/generate/scenario/mug", follow_redirects=False)

    assert response.headers["location"] == "/"
    assert gateway.calls == []


def test_unknown_scenario_is_404(jpeg_bytes: bytes) -> None:
    _, client = _client(FakeGateway())
    with client:
        _upload(client, jpeg_bytes)
        assert client.post("/generate/scenario/poster", follow_redirects=False).status_code == 404


def test_signed_out_page_disables_controls(jpeg_bytes: bytes) -> None:
    gateway = FakeGateway()
    app, client = _client(gateway, user_id=None)
    with client:
        _upload(client, jpeg_bytes)
        page = client.get("/")
        client.post("/generate/scenario/mug", follow_redirects=False)
        orchestrator = _orchestrator(app, client)

    assert "Sign in above to start generating images" in page.text
    assert "disabled" in page.text
    assert gateway.calls == []
    assert orchestrator.error == "You must be signed in to generate assets."


def test_unresolved_auth_shows_loading_and_blocks(jpeg_bytes: bytes) -> None:
    gateway = FakeGateway()
    app, client = _client(gateway, user_id=None, is_loaded=False)
    with client:
        _upload(client, jpeg_bytes)
        page = client.get("/")
        client.post("/generate/scenario/mug", follow_redirects=False)
        orchestrator = _orchestrator(app, client)

    assert "Checking your session" in page.text
    assert gateway.calls == []
    assert orchestrator.status is GenerationStatus.IDLE


def test_clear_removes_source_image(jpeg_bytes: bytes) -> None:
    app, client = _client(FakeGateway())
    with client:
        _upload(client, jpeg_bytes)
        client.post("/clear", follow_redirects=False)
        orchestrator = _orchestrator(app, client)

    assert orchestrator.source_image is None


def test_sessions_are_isolated(jpeg_bytes: bytes) -> None:
    gateway = FakeGateway()
    app, first = _client(gateway)
    second = TestClient(app)
    with first, second:
        _upload(first, jpeg_bytes)
        first.post("/generate/custom", data={"prompt": "one"}, follow_redirects=False)
        second.get("/")

        assert len(_orchestrator(app, first).assets) == 1
        assert _orchestrator(app, second).assets == []


def test_api_generate_requires_session(png_b64: str) -> None:
    gateway = FakeGateway()
    _, client = _client(gateway, user_id=None)
    with client:
        response = client.post(
            "/api/generate",
            json={"image": png_b64, "mime_type": "image/png", "prompt": "make it blue"},
        )

    assert response.status_code == 401
    assert response.json()["detail"] == "Unauthorized: Please sign in to generate assets."
    assert gateway.calls == []


def test_api_generate_returns_image(png_b64: str) -> None:
    gateway = FakeGateway(result="AAAA")
    _, client = _client(gateway)
    with client:
        response = client.post(
            "/api/generate",
            json={"image": f"data:image/png;base64,{png_b64}", "mime_type": "image/png", "prompt": "make it blue"},
        )

    assert response.status_code == 200
    body = response.json()
    assert body["image"] == "AAAA"
    assert body["image_url"] == "data:image/png;base64,AAAA"
    assert gateway.calls[0][2] == "make it blue"


def test_api_generate_surfaces_gateway_message(png_b64: str) -> None:
    _, client = _client(FakeGateway(error=TransportError("rate limited")))
    with client:
        response = client.post(
            "/api/generate",
            json={"image": png_b64, "mime_type": "image/png", "prompt": "make it blue"},
        )

    assert response.status_code == 502
    assert response.json()["detail"] == "rate limited"


@pytest.mark.parametrize(
    "payload",
    [
        {"image": "AAAA", "mime_type": "image/png", "prompt": "   "},
        {"image": "AAAA", "mime_type": "text/plain", "prompt": "x"},
        {"image": "", "mime_type": "image/png", "prompt": "x"},
    ],
)
def test_api_generate_validates_payload(payload: dict) -> None:
    gateway = FakeGateway()
    _, client = _client(gateway)
    with client:
        response = client.post("/api/generate", json=payload)

    assert response.status_code == 422
    assert gateway.calls == []


def test_oversized_body_is_blocked(png_b64: str) -> None:
    gateway = FakeGateway()
    _, client = _client(gateway, guard=GuardConfig(max_body_bytes=256))
    with client:
        response = client.post(
            "/api/generate",
            json={"image": png_b64 * 4, "mime_type": "image/png", "prompt": "make it blue"},
        )

    assert response.status_code == 413
    assert response.json()["error"] == "REQUEST_BODY_BLOCKED"
    assert gateway.calls == []


def test_startup_fails_without_api_key() -> None:
    app = create_app(
        make_settings(gemini=GeminiConfig(api_key=None)),
        identity_provider=StaticIdentityProvider("user_1"),
    )
    with pytest.raises(ConfigurationError):
        with TestClient(app):
            pass


def test_new_user_on_same_browser_starts_fresh(jpeg_bytes: bytes) -> None:
    app, client = _client(FakeGateway(result="AAAA"), user_id="user_a")
    with client:
        _upload(client, jpeg_bytes)
        client.post("/generate/scenario/mug", follow_redirects=False)
        assert len(_orchestrator(app, client).assets) == 1

        app.state.identity_provider.state = AuthState(is_loaded=True, user_id="user_b")
        page = client.get("/")
        orchestrator = app.state.sessions.get(client.cookies[SESSION_COOKIE])

    assert orchestrator.owner_id == "user_b"
    assert orchestrator.assets == []
    assert orchestrator.source_image is None
    assert "data:image/png;base64,AAAA" not in page.text
