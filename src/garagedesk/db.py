from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

import psycopg
from psycopg import Connection, Cursor
from psycopg_pool import ConnectionPool, PoolTimeout

from .config import DbConfig

log = logging.getLogger(__name__)


class DbError(Exception):
    pass


class Db:
    """Storage handle owning the connection pool.

    Built once at startup and passed to whoever needs a connection; ``open``
    and ``close`` bracket the process lifetime.
    """

    def __init__(self, cfg: DbConfig) -> None:
        self.cfg = cfg
        self._pool: ConnectionPool | None = None

    def open(self) -> None:
        if self._pool is not None:
            return
        self._pool = ConnectionPool(
            self.cfg.conninfo,
            min_size=self.cfg.pool_min,
            max_size=self.cfg.pool_max,
            kwargs={"autocommit": True},
            open=False,
        )
        try:
            self._pool.open(wait=True, timeout=10.0)
        except PoolTimeout as e:
            self._pool = None
            raise DbError(
                "Cannot connect to database. Check config.toml [db] and that PostgreSQL is running."
            ) from e
        log.info("Connection pool open: %s@%s:%s/%s", self.cfg.user, self.cfg.host, self.cfg.port, self.cfg.name)

    def close(self) -> None:
        if self._pool is not None:
            self._pool.close()
            self._pool = None
            log.info("Connection pool closed")

    @contextmanager
    def session(self) -> Iterator[Connection]:
        if self._pool is None:
            raise DbError("Database handle is not open")
        try:
            with self._pool.connection() as conn:
                yield conn
        except (PoolTimeout, psycopg.OperationalError) as e:
            raise DbError(f"Database unavailable: {e}") from e

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        with self.session() as conn:
            conn.execute("BEGIN;")
            try:
                yield conn
                conn.execute("COMMIT;")
            except Exception:
                conn.execute("ROLLBACK;")
                raise

    def ping(self) -> None:
        with self.session() as conn:
            conn.execute("SELECT 1;")


def fetch_one(cur: Cursor) -> dict | None:
    row = cur.fetchone()
    if not row:
        return None
    cols = [d.name for d in cur.description]
    return dict(zip(cols, row))


def fetch_all(cur: Cursor) -> list[dict]:
    cols = [d.name for d in cur.description]
    return [dict(zip(cols, row)) for row in cur.fetchall()]
