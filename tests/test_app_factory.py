"""Tests for the application factory."""

from fastapi.testclient import TestClient

from tourmate.api.app import app
from tourmate.api.factory import create_app
from tourmate.observability.correlation import CORRELATION_ID_HEADER


def test_health_returns_ok_status():
    response = TestClient(app).get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_booking_routes_mounted():
    paths = {route.path for route in create_app().routes}
    assert {
        "/cabins",
        "/cabins/{cabin_id}",
        "/cabins/{cabin_id}/quote",
        "/bookings",
        "/account/reservations",
        "/account/reservations/{booking_id}",
        "/account/profile",
        "/auth/whoami",
        "/auth/signin",
        "/auth/signout",
    } <= paths


def test_docs_disabled():
    assert TestClient(create_app()).get("/docs").status_code == 404


class TestCorrelationId:
    def test_generated_when_absent(self):
        response = TestClient(create_app()).get("/health")
        assert len(response.headers[CORRELATION_ID_HEADER]) == 32

    def test_echoed_when_provided(self):
        response = TestClient(create_app()).get("/health", headers={CORRELATION_ID_HEADER: "req-42"})
        assert response.headers[CORRELATION_ID_HEADER] == "req-42"
