from fastapi import FastAPI
from fastapi.testclient import TestClient

from timetable_engine.core.config import Settings
from timetable_engine.core.middleware import RequestSizeLimitMiddleware, SecurityHeadersMiddleware


def build_app(**settings_overrides):
    app = FastAPI()
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=32)
    app.add_middleware(SecurityHeadersMiddleware, settings=Settings(**settings_overrides))

    @app.post("/echo")
    def echo(payload: dict) -> dict:
        return payload

    return app


def test_oversized_body_is_rejected():
    client = TestClient(build_app())

    response = client.post("/echo", json={"records": "x" * 64})

    assert response.status_code == 413
    body = response.json()
    assert body["message"] == "Request body too large"
    assert body["details"]["max_bytes"] == 32


def test_small_body_passes_through():
    client = TestClient(build_app())

    response = client.post("/echo", json={"a": 1})

    assert response.status_code == 200
    assert response.json() == {"a": 1}


def test_hsts_header_when_enabled():
    client = TestClient(build_app(security_enable_hsts=True, security_hsts_max_age_seconds=600))

    response = client.post("/echo", json={})

    assert response.headers["Strict-Transport-Security"] == "max-age=600; includeSubDomains"
