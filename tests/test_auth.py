"""Tests for OIDC bearer-token sessions and the /auth routes."""

from __future__ import annotations

import time
from unittest.mock import patch

import pytest
import requests
from fastapi.testclient import TestClient

from helpers import OIDC_ENV, _create_jwks, _create_token, _generate_rsa_keypair
from tourmate.api.factory import create_app


@pytest.fixture
def rsa_keypair():
    return _generate_rsa_keypair()


@pytest.fixture
def jwks(rsa_keypair):
    _, public_key = rsa_keypair
    return _create_jwks(public_key)


@pytest.fixture
def client():
    with patch.dict("os.environ", OIDC_ENV):
        yield TestClient(create_app())


@pytest.fixture
def mock_jwks_fetch(jwks):
    with patch("tourmate.api.auth._fetch_jwks", return_value=jwks) as mock:
        yield mock


@pytest.fixture
def mock_guest_lookup():
    """Stand-in for the guests table: every e-mail maps to guest-1."""
    with patch("tourmate.api.auth._resolve_guest", return_value="guest-1") as mock:
        yield mock


def _whoami(client, token):
    return client.get("/auth/whoami", headers={"Authorization": f"Bearer {token}"})


class TestNoSession:
    def test_missing_auth_header(self, client):
        response = client.get("/auth/whoami")
        assert response.status_code == 401
        assert "Missing authorization header" in response.json()["detail"]

    def test_invalid_bearer_format(self, client):
        response = client.get("/auth/whoami", headers={"Authorization": "Basic abc"})
        assert response.status_code == 401
        assert "Invalid authorization header" in response.json()["detail"]


class TestInvalidToken:
    def test_malformed_token(self, client, mock_jwks_fetch):
        response = _whoami(client, "abc")
        assert response.status_code == 401
        assert "Invalid token" in response.json()["detail"]

    def test_expired_token(self, client, rsa_keypair, mock_jwks_fetch):
        private_key, _ = rsa_keypair
        response = _whoami(client, _create_token(private_key, exp=int(time.time()) - 3600))
        assert response.status_code == 401
        assert "Token expired" in response.json()["detail"]

    @pytest.mark.parametrize(
        "overrides",
        [{"iss": "https://wrong-issuer.example"}, {"aud": "someone-else"}],
    )
    def test_wrong_issuer_or_audience(self, client, rsa_keypair, mock_jwks_fetch, overrides):
        private_key, _ = rsa_keypair
        response = _whoami(client, _create_token(private_key, **overrides))
        assert response.status_code == 401
        assert "Invalid token" in response.json()["detail"]

    def test_unknown_kid(self, client, rsa_keypair, mock_jwks_fetch):
        private_key, _ = rsa_keypair
        response = _whoami(client, _create_token(private_key, kid="rotated-away"))
        assert response.status_code == 401

    def test_token_without_email(self, client, rsa_keypair, mock_jwks_fetch, mock_guest_lookup):
        private_key, _ = rsa_keypair
        response = _whoami(client, _create_token(private_key, email=None))
        assert response.status_code == 401
        assert "email" in response.json()["detail"]
        mock_guest_lookup.assert_not_called()

    def test_oidc_not_configured(self, rsa_keypair):
        private_key, _ = rsa_keypair
        with patch.dict("os.environ", {}, clear=True):
            response = _whoami(TestClient(create_app()), _create_token(private_key))
        assert response.status_code == 401
        assert "OIDC not configured" in response.json()["detail"]


class TestValidSession:
    def test_whoami(self, client, rsa_keypair, mock_jwks_fetch, mock_guest_lookup):
        private_key, _ = rsa_keypair
        response = _whoami(client, _create_token(private_key, email="Ana@Example.com"))

        assert response.status_code == 200
        assert response.json() == {"id": "guest-1", "email": "ana@example.com", "name": "Ana Lima"}
        mock_guest_lookup.assert_called_once_with("ana@example.com", "Ana Lima")

    def test_azp_rejected_when_not_authorized(self, rsa_keypair, mock_jwks_fetch, mock_guest_lookup):
        private_key, _ = rsa_keypair
        env = {**OIDC_ENV, "OIDC_AUTHORIZED_PARTIES": "https://tourmate.example"}
        with patch.dict("os.environ", env):
            client = TestClient(create_app())
            ok = _whoami(client, _create_token(private_key, azp="https://tourmate.example"))
            bad = _whoami(client, _create_token(private_key, azp="https://evil.example"))
        assert ok.status_code == 200
        assert bad.status_code == 401


class TestJWKSCache:
    def test_jwks_cached(self, client, rsa_keypair, jwks, mock_guest_lookup):
        private_key, _ = rsa_keypair
        token = _create_token(private_key)

        with patch("tourmate.api.auth._fetch_jwks", return_value=jwks) as mock_fetch:
            assert _whoami(client, token).status_code == 200
            assert _whoami(client, token).status_code == 200
        assert mock_fetch.call_count == 1

    def test_refresh_on_unknown_kid(self, client, rsa_keypair, jwks, mock_guest_lookup):
        private_key, _ = rsa_keypair

        with patch("tourmate.api.auth._fetch_jwks", side_effect=[{"keys": []}, jwks]) as mock_fetch:
            response = _whoami(client, _create_token(private_key))

        assert response.status_code == 200
        assert mock_fetch.call_count == 2

    @pytest.mark.parametrize("error", [requests.RequestException("down"), requests.Timeout("slow")])
    def test_fetch_failure_is_503(self, client, rsa_keypair, error):
        private_key, _ = rsa_keypair
        with patch("tourmate.api.auth._fetch_jwks", side_effect=error):
            response = _whoami(client, _create_token(private_key))
        assert response.status_code == 503
        assert "Auth temporarily unavailable" in response.json()["detail"]


class TestSignInOut:
    def test_sign_in_redirects_to_provider(self):
        env = {"OIDC_AUTHORIZE_URL": "https://id.tourmate.example/authorize"}
        with patch.dict("os.environ", env):
            client = TestClient(create_app())
            response = client.get("/auth/signin", params={"redirectTo": "/account"}, follow_redirects=False)

        assert response.status_code == 303
        location = response.headers["location"]
        assert location.startswith("https://id.tourmate.example/authorize?")
        assert "provider=google" in location
        assert "redirect_to=%2Faccount" in location

    def test_sign_in_not_configured(self):
        with patch.dict("os.environ", {}, clear=True):
            response = TestClient(create_app()).get("/auth/signin", follow_redirects=False)
        assert response.status_code == 503

    def test_sign_out_without_provider_logout_goes_home(self):
        with patch.dict("os.environ", {}, clear=True):
            response = TestClient(create_app()).get("/auth/signout", follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/"

    def test_sign_out_through_provider(self):
        with patch.dict("os.environ", {"OIDC_LOGOUT_URL": "https://id.tourmate.example/logout"}):
            response = TestClient(create_app()).get("/auth/signout", follow_redirects=False)
        assert response.headers["location"] == (
            "https://id.tourmate.example/logout?post_logout_redirect_uri=%2F"
        )
