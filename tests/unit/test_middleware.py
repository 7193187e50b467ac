"""Tests for request logging and path context middleware."""

import pytest
import structlog
from fastapi import FastAPI
from fastapi.testclient import TestClient

from cafe_ops.middleware import ContextMiddleware, RequestLoggingMiddleware, path_context


@pytest.mark.parametrize(
    "path,expected",
    [
        ("/check-ins/ci-1/pause", {"check_in_id": "ci-1"}),
        ("/purchases/p-1/qr.png", {"purchase_id": "p-1"}),
        ("/guests/g-1/purchases", {"guest_id": "g-1"}),
        ("/purchases", {}),
        ("/check-ins", {}),
        ("/", {}),
        ("/control/reset", {}),
    ],
)
def test_path_context(path, expected):
    assert path_context(path) == expected


@pytest.fixture
def client():
    app = FastAPI()
    app.add_middleware(ContextMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    @app.get("/check-ins/{check_in_id}/context")
    async def context(check_in_id: str):
        return structlog.contextvars.get_contextvars()

    return TestClient(app)


class TestRequestLogging:
    def test_request_id_generated(self, client):
        response = client.get("/check-ins/ci-7/context")

        assert response.status_code == 200
        request_id = response.headers["X-Request-ID"]
        assert request_id
        assert response.json()["request_id"] == request_id

    def test_incoming_request_id_reused(self, client):
        response = client.get("/check-ins/ci-7/context", headers={"X-Request-ID": "desk-42"})

        assert response.headers["X-Request-ID"] == "desk-42"
        assert response.json()["request_id"] == "desk-42"

    def test_path_ids_bound(self, client):
        assert client.get("/check-ins/ci-7/context").json()["check_in_id"] == "ci-7"

