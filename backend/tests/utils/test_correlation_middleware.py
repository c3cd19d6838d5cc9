# backend/tests/utils/test_correlation_middleware.py
"""Tests for CorrelationIdMiddleware."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from portfolio_ledger.middleware import CorrelationIdMiddleware
from portfolio_ledger.utils import get_correlation_id


@pytest.fixture
def client() -> TestClient:
    app = FastAPI()
    app.add_middleware(CorrelationIdMiddleware)

    @app.get("/echo")
    async def echo():
        return {"correlation_id": get_correlation_id()}

    return TestClient(app)


class TestCorrelationIdMiddleware:

    def test_uses_incoming_header(self, client):
        response = client.get("/echo", headers={"X-Correlation-ID": "abc"})

        assert response.json() == {"correlation_id": "abc"}
        assert response.headers["X-Correlation-ID"] == "abc"

    def test_falls_back_to_request_id(self, client):
        response = client.get("/echo", headers={"X-Request-ID": "req-9"})
        assert response.headers["X-Correlation-ID"] == "req-9"

    def test_generates_an_id(self, client):
        response = client.get("/echo")

        generated = response.headers["X-Correlation-ID"]
        assert len(generated) == 36
        assert response.json()["correlation_id"] == generated

    def test_cleared_after_the_request(self, client):
        client.get("/echo", headers={"X-Correlation-ID": "abc"})
        assert get_correlation_id() is None
