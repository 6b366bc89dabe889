"""Shared test helpers for the Tourmate tests.

Regular functions and small fakes, importable from conftest.py and from
individual test modules. Not fixtures.
"""

from __future__ import annotations

import base64
import time
import uuid
from typing import Any

import jwt
from cryptography.hazmat.primitives.asymmetric import rsa

from tourmate.infra.storage import DB_ERROR, StorageError, StorageResult

OIDC_ENV = {
    "OIDC_ISSUER": "https://id.tourmate.example",
    "OIDC_AUDIENCE": "tourmate-api",
    "OIDC_JWKS_URL": "https://id.tourmate.example/.well-known/jwks.json",
}


def _generate_rsa_keypair():
    """Generate RSA key pair for test JWT signing."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return private_key, private_key.public_key()


def _create_jwks(public_key, kid: str = "test-key-1") -> dict:
    """Create JWKS from public key."""
    public_numbers = public_key.public_numbers()

    def int_to_base64(n: int) -> str:
        byte_length = (n.bit_length() + 7) // 8
        return (
            base64.urlsafe_b64encode(n.to_bytes(byte_length, "big"))
            .rstrip(b"=")
            .decode()
        )

    return {
        "keys": [
            {
                "kty": "RSA",
                "use": "sig",
                "alg": "RS256",
                "kid": kid,
                "n": int_to_base64(public_numbers.n),
                "e": int_to_base64(public_numbers.e),
            }
        ]
    }


def _create_token(
    private_key,
    kid: str = "test-key-1",
    sub: str = "oidc|guest-1",
    email: str | None = "ana@example.com",
    name: str | None = "Ana Lima",
    iss: str = OIDC_ENV["OIDC_ISSUER"],
    aud: str = OIDC_ENV["OIDC_AUDIENCE"],
    exp: int | None = None,
    azp: str | None = None,
) -> str:
    """Create signed JWT for testing."""
    now = int(time.time())
    payload: dict[str, Any] = {
        "sub": sub,
        "iss": iss,
        "aud": aud,
        "exp": exp if exp is not None else now + 3600,
        "iat": now,
    }
    if email is not None:
        payload["email"] = email
    if name is not None:
        payload["name"] = name
    if azp:
        payload["azp"] = azp

    return jwt.encode(payload, private_key, algorithm="RS256", headers={"kid": kid})


class InMemoryStorage:
    """Dict-backed stand-in for StorageGateway.

    Filters are equality conjunctions, like the real gateway. Set
    ``fail_on`` to an operation name ("select", "insert", "update",
    "delete") to make that operation return ``fail_error``. Every call is
    appended to ``calls`` as ``(op, table, filters)``.
    """

    def __init__(self, tables: dict[str, list[dict]] | None = None) -> None:
        self.tables: dict[str, list[dict]] = {
            "cabins": [],
            "settings": [],
            "guests": [],
            "bookings": [],
        }
        for name, rows in (tables or {}).items():
            self.tables[name] = [dict(r) for r in rows]
        self.calls: list[tuple[str, str, dict]] = []
        self.fail_on: set[str] = set()
        self.fail_error = StorageError(code=DB_ERROR, message="connection reset")

    @staticmethod
    def _matches(row: dict, filters: dict) -> bool:
        return all(str(row.get(k)) == str(v) for k, v in filters.items())

    def _failing(self, op: str) -> StorageResult | None:
        if op in self.fail_on:
            return StorageResult(error=self.fail_error)
        return None

    def select(self, table, filters=None, *, columns=None, order_by=None, descending=False):
        filters = dict(filters or {})
        self.calls.append(("select", table, filters))
        failed = self._failing("select")
        if failed:
            return failed
        rows = [r for r in self.tables[table] if self._matches(r, filters)]
        if columns:
            rows = [{c: r.get(c) for c in columns} for r in rows]
        else:
            rows = [dict(r) for r in rows]
        if order_by:
            rows.sort(key=lambda r: r[order_by], reverse=descending)
        return StorageResult(data=rows)

    def insert(self, table, row):
        self.calls.append(("insert", table, {}))
        failed = self._failing("insert")
        if failed:
            return failed
        stored = {"id": str(uuid.uuid4()), **row}
        self.tables[table].append(stored)
        return StorageResult(data=dict(stored))

    def update(self, table, filters, patch):
        filters = dict(filters)
        self.calls.append(("update", table, filters))
        failed = self._failing("update")
        if failed:
            return failed
        updated = []
        for row in self.tables[table]:
            if self._matches(row, filters):
                row.update(patch)
                updated.append(dict(row))
        return StorageResult(data=updated)

    def delete(self, table, filters):
        filters = dict(filters)
        self.calls.append(("delete", table, filters))
        failed = self._failing("delete")
        if failed:
            return failed
        kept, deleted = [], []
        for row in self.tables[table]:
            (deleted if self._matches(row, filters) else kept).append(row)
        self.tables[table] = kept
        return StorageResult(data=[dict(r) for r in deleted])

    def writes(self) -> list[tuple[str, str, dict]]:
        return [c for c in self.calls if c[0] != "select"]
