"""PostgreSQL connection handling shared by the repositories."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

import psycopg2
import psycopg2.extras
from psycopg2.extensions import connection as PgConnection
from psycopg2.extensions import cursor as PgCursor

from .. import app_context


class StoreUnavailableError(RuntimeError):
    """The policy or audit store could not be reached."""


@contextmanager
def managed_connection(conn: Optional[PgConnection] = None):
    """Context manager that manages transaction boundaries for optional connections."""

    if conn is not None:
        yield conn, False
        return

    try:
        connection = app_context.get_conn()
    except (psycopg2.Error, RuntimeError) as exc:
        raise StoreUnavailableError(f"Database connection failed: {exc}") from exc
    try:
        yield connection, True
        connection.commit()
    except Exception:
        connection.rollback()
        raise
    finally:
        connection.close()


class PostgresRepository:
    """Base class giving repositories a dict cursor inside a transaction."""

    def __init__(self, *, conn: Optional[PgConnection] = None) -> None:
        self._conn = conn

    @contextmanager
    def _cursor(self) -> Iterator[PgCursor]:
        try:
            with managed_connection(self._conn) as (connection, _managed):
                cursor = connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
                try:
                    yield cursor
                finally:
                    cursor.close()
        except psycopg2.Error as exc:
            raise StoreUnavailableError(str(exc).strip() or type(exc).__name__) from exc


__all__ = ["PostgresRepository", "StoreUnavailableError", "managed_connection"]
