"""Database URL resolution for Alembic.

Kept apart from env.py so it can be imported in tests without an
alembic context.
"""

from __future__ import annotations

import os
from urllib.parse import quote_plus, urlsplit, urlunsplit

from psycopg2.extensions import parse_dsn

_DRIVER_PREFIX = "postgresql+psycopg2://"


def _with_password(url: str, password: str) -> str:
    parts = urlsplit(url)
    if parts.password or not password:
        return url
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    netloc = f"{quote_plus(parts.username or '')}:{quote_plus(password)}@{host}"
    return urlunsplit(parts._replace(netloc=netloc))


def _dsn_to_url(dsn: str) -> str:
    """Turn a libpq ``key=value`` DSN into a SQLAlchemy URL.

    A host starting with ``/`` is a unix socket directory and goes into the
    query string, as libpq expects.
    """
    params = parse_dsn(dsn)
    password = params.get("password") or os.environ.get("DB_PASSWORD", "")
    user = quote_plus(params.get("user", ""))
    dbname = quote_plus(params.get("dbname", ""))
    host = params.get("host", "localhost")
    port = params.get("port", "5432")
    auth = f"{user}:{quote_plus(password)}" if password else user

    if host.startswith("/"):
        return f"{_DRIVER_PREFIX}{auth}@/{dbname}?host={quote_plus(host)}"
    return f"{_DRIVER_PREFIX}{auth}@{host}:{port}/{dbname}"


def _get_database_url() -> str:
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is required to run migrations")
    if "://" not in url:
        return _dsn_to_url(url)

    for scheme in ("postgres://", "postgresql://"):
        if url.startswith(scheme):
            url = _DRIVER_PREFIX + url[len(scheme):]
            break
    return _with_password(url, os.environ.get("DB_PASSWORD", ""))
