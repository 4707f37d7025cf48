"""Database URL helpers for Alembic migrations.

Kept apart from env.py so they can be tested without an alembic context.
"""

from __future__ import annotations

import os
from urllib.parse import quote_plus, urlparse, urlunparse

from psycopg2.extensions import parse_dsn

_DRIVER_SCHEME = "postgresql+psycopg2://"


def libpq_dsn_to_url(dsn: str) -> str:
    """Convert a libpq ``key=value`` DSN into a SQLAlchemy URL.

    DB_PASSWORD fills in the password when the DSN has none. A host that
    starts with ``/`` is a unix socket directory and goes in the query string.
    """
    params = parse_dsn(dsn)
    password = params.get("password") or os.environ.get("DB_PASSWORD", "")
    user = quote_plus(params.get("user", ""))
    dbname = quote_plus(params.get("dbname", ""))
    host = params.get("host", "localhost")
    port = params.get("port", "5432")
    auth = f"{user}:{quote_plus(password)}"

    if host.startswith("/"):
        return f"{_DRIVER_SCHEME}{auth}@/{dbname}?host={quote_plus(host)}"
    return f"{_DRIVER_SCHEME}{auth}@{host}:{port}/{dbname}"


def get_database_url() -> str:
    """DATABASE_URL as a psycopg2 SQLAlchemy URL.

    Raises:
        RuntimeError: If DATABASE_URL is not set.
    """
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is required to run migrations")
    if "://" not in url:
        return libpq_dsn_to_url(url)

    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            url = _DRIVER_SCHEME + url[len(prefix):]
            break

    db_password = os.environ.get("DB_PASSWORD", "")
    parsed = urlparse(url)
    if db_password and not parsed.password:
        netloc = f"{quote_plus(parsed.username or '')}:{quote_plus(db_password)}@{parsed.hostname}"
        if parsed.port:
            netloc += f":{parsed.port}"
        url = urlunparse(parsed._replace(netloc=netloc))
    return url
