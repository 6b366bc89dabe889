"""Guest sessions from OIDC bearer tokens.

Provides:
- verify_token(): validates an RS256 JWT against the provider's JWKS
- get_session(): FastAPI dependency, the caller's Identity or None
- get_current_guest(): FastAPI dependency, Identity or 401
- sign_in_url() / sign_out_url(): redirect targets for the hosted sign-in flow

The sign-in flow itself is the identity provider's business; this module only
trusts the tokens it issues. A guest row is created the first time an e-mail
shows up.
"""

from __future__ import annotations

import os
import threading
import time
from typing import Any
from urllib.parse import urlencode

import jwt
import requests
from fastapi import Depends, HTTPException, Request

from tourmate.domain.authorizer import Identity

# JWKS cache with TTL
_jwks_cache: dict[str, Any] | None = None
_jwks_cache_time: float = 0
_jwks_cache_lock = threading.Lock()
_JWKS_CACHE_TTL = 600  # 10 minutes


def _get_settings() -> dict[str, str | list[str] | None]:
    """Load OIDC settings from environment."""
    authorized_parties_raw = os.environ.get("OIDC_AUTHORIZED_PARTIES", "")
    authorized_parties: list[str] | None = None
    if authorized_parties_raw:
        authorized_parties = [p.strip() for p in authorized_parties_raw.split(",") if p.strip()]

    return {
        "issuer": os.environ.get("OIDC_ISSUER"),
        "audience": os.environ.get("OIDC_AUDIENCE"),
        "jwks_url": os.environ.get("OIDC_JWKS_URL"),
        "authorized_parties": authorized_parties,
    }


def _fetch_jwks(jwks_url: str) -> dict[str, Any]:
    resp = requests.get(jwks_url, timeout=10)
    resp.raise_for_status()
    return resp.json()


def _get_jwks(jwks_url: str, force_refresh: bool = False) -> dict[str, Any]:
    """Get JWKS with caching."""
    global _jwks_cache, _jwks_cache_time

    with _jwks_cache_lock:
        now = time.time()
        if not force_refresh and _jwks_cache is not None and (now - _jwks_cache_time) < _JWKS_CACHE_TTL:
            return _jwks_cache

        try:
            _jwks_cache = _fetch_jwks(jwks_url)
        except requests.RequestException:
            raise HTTPException(status_code=503, detail="Auth temporarily unavailable")
        _jwks_cache_time = now
        return _jwks_cache


def _find_key(jwks: dict[str, Any], kid: str) -> dict[str, Any] | None:
    for key in jwks.get("keys", []):
        if key.get("kid") == kid:
            return key
    return None


def verify_token(token: str) -> dict[str, Any]:
    """Verify a JWT and return its claims.

    Unknown ``kid`` or a bad signature triggers one forced JWKS refresh, to
    survive key rotation.

    Raises:
        HTTPException: 401 if the token is invalid, 503 if JWKS is unreachable.
    """
    settings = _get_settings()

    issuer = settings.get("issuer")
    audience = settings.get("audience")
    jwks_url = settings.get("jwks_url")

    if not issuer or not audience or not jwks_url:
        raise HTTPException(status_code=401, detail="OIDC not configured")

    try:
        unverified_header = jwt.get_unverified_header(token)
    except jwt.exceptions.DecodeError:
        raise HTTPException(status_code=401, detail="Invalid token")

    kid = unverified_header.get("kid")
    if not kid:
        raise HTTPException(status_code=401, detail="Invalid token")

    key_data = _find_key(_get_jwks(jwks_url), kid)
    if key_data is None:
        key_data = _find_key(_get_jwks(jwks_url, force_refresh=True), kid)
    if key_data is None:
        raise HTTPException(status_code=401, detail="Invalid token")

    def _decode(jwk_data: dict[str, Any]) -> dict[str, Any]:
        try:
            public_key = jwt.algorithms.RSAAlgorithm.from_jwk(jwk_data)
        except (ValueError, TypeError, KeyError):
            raise HTTPException(status_code=401, detail="Invalid token")

        return jwt.decode(
            token,
            public_key,
            algorithms=["RS256"],
            issuer=issuer,
            audience=audience,
            options={"require": ["exp", "iss", "aud", "sub"]},
        )

    try:
        claims = _decode(key_data)
    except jwt.InvalidSignatureError:
        key_data = _find_key(_get_jwks(jwks_url, force_refresh=True), kid)
        if key_data is None:
            raise HTTPException(status_code=401, detail="Invalid token")
        try:
            claims = _decode(key_data)
        except jwt.InvalidTokenError:
            raise HTTPException(status_code=401, detail="Invalid token")
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    authorized_parties = settings.get("authorized_parties")
    if authorized_parties and "azp" in claims and claims["azp"] not in authorized_parties:
        raise HTTPException(status_code=401, detail="Invalid token")

    if not claims.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid token")

    return claims


def _extract_bearer_token(auth_header: str) -> str:
    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid authorization header")
    return parts[1]


def _resolve_guest(email: str, full_name: str | None) -> str:
    """Return the guest id for ``email``, creating the guest on first sign-in."""
    from tourmate.infra.db import txn
    from tourmate.infra.repositories.guests_repository import get_or_create_guest

    with txn(dict_rows=True) as cur:
        guest_id, _created = get_or_create_guest(cur, email=email, full_name=full_name)
    return guest_id


def get_session(request: Request) -> Identity | None:
    """FastAPI dependency: the signed-in guest, or None without credentials.

    A present but invalid token is still a 401; only a missing Authorization
    header means "no session".
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    claims = verify_token(_extract_bearer_token(auth_header))

    email = claims.get("email")
    if not isinstance(email, str) or not email.strip():
        raise HTTPException(status_code=401, detail="Token has no email claim")
    email = email.strip().lower()
    name = claims.get("name")

    return Identity(id=_resolve_guest(email, name), email=email, name=name)


def get_current_guest(session: Identity | None = Depends(get_session)) -> Identity:
    """FastAPI dependency: the signed-in guest, or 401."""
    if session is None:
        raise HTTPException(status_code=401, detail="Missing authorization header")
    return session


def sign_in_url(provider: str, redirect_to: str) -> str:
    """Where to send the browser to start sign-in with ``provider``."""
    authorize_url = os.environ.get("OIDC_AUTHORIZE_URL")
    if not authorize_url:
        raise HTTPException(status_code=503, detail="Sign-in not configured")
    query = urlencode({"provider": provider, "redirect_to": redirect_to})
    return f"{authorize_url}?{query}"


def sign_out_url(redirect_to: str) -> str:
    """Where to send the browser to end the session; falls back to ``redirect_to``."""
    logout_url = os.environ.get("OIDC_LOGOUT_URL")
    if not logout_url:
        return redirect_to
    return f"{logout_url}?{urlencode({'post_logout_redirect_uri': redirect_to})}"


# Dependency alias for cleaner imports
CurrentGuestDep = Depends(get_current_guest)
