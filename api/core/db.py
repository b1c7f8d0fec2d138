"""
Async database access helpers (raw SQL) using asyncpg.

This module owns the process-wide connection pool. The pool is created lazily
by the first request that needs it and reused for the rest of the worker's
life; FastAPI closes it on shutdown (see `api/main.py`).

Each dispatched request works through a `Lease`: at most one pooled
connection, acquired on first use and released exactly once when the request
task finishes (see `core/dispatch.py`). The helpers below always run on the
current request's lease.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from contextvars import ContextVar
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg

from . import config
from .errors import DeadlineExceededError, StorageError, ValidationError

logger = logging.getLogger(__name__)

# Even a request past its deadline gets a brief chance at a free connection.
MIN_ACQUIRE_TIMEOUT_S = 0.05

_STORAGE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)

_pool: asyncpg.Pool | None = None
_pool_lock = asyncio.Lock()
_current_lease: ContextVar[Lease | None] = ContextVar("db_lease", default=None)


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def database_url() -> str:
    url = os.environ.get("DATABASE_URL", "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL is not set.")
    return _sanitize_database_url(url)


async def init_pool() -> asyncpg.Pool:
    """
    Return the process-wide pool, creating it on first use.
    """
    global _pool
    if _pool is not None:
        return _pool

    async with _pool_lock:
        if _pool is None:
            max_size = config.pool_max_size()
            logger.info("Creating database pool (max_size=%d).", max_size)
            try:
                _pool = await asyncpg.create_pool(
                    dsn=database_url(),
                    min_size=config.pool_min_size(),
                    max_size=max_size,
                    max_inactive_connection_lifetime=config.pool_idle_seconds(),
                    command_timeout=config.command_timeout_seconds(),
                )
            except _STORAGE_ERRORS as exc:
                raise StorageError("Database unavailable") from exc
    return _pool


async def close_pool() -> None:
    global _pool
    if _pool is None:
        return None
    await _pool.close()
    _pool = None


class Lease:
    """
    A single request's claim on one pooled connection.
    """

    def __init__(self, deadline: float | None = None) -> None:
        # Deadline is in event-loop time (`loop.time()`), or None for no request bound.
        self.deadline = deadline
        self._pool: asyncpg.Pool | None = None
        self._conn: asyncpg.Connection | None = None
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def _acquire_timeout(self) -> float:
        if self.deadline is None:
            return config.acquire_timeout_seconds()
        remaining = self.deadline - asyncio.get_running_loop().time()
        return max(remaining, MIN_ACQUIRE_TIMEOUT_S)

    async def connection(self) -> asyncpg.Connection:
        if self._released:
            raise RuntimeError("Connection lease was already released.")
        if self._conn is not None:
            return self._conn

        db_pool = await init_pool()
        try:
            conn = await db_pool.acquire(timeout=self._acquire_timeout())
        except asyncio.TimeoutError as exc:
            raise DeadlineExceededError("Timed out waiting for a database connection") from exc
        except _STORAGE_ERRORS as exc:
            raise StorageError("Database unavailable") from exc

        self._pool = db_pool
        self._conn = conn
        return conn

    async def release(self) -> None:
        """
        Return the connection to the pool. Safe to call more than once.
        """
        if self._released:
            return None
        self._released = True

        conn, self._conn = self._conn, None
        if conn is None or self._pool is None:
            return None
        try:
            await self._pool.release(conn)
        except _STORAGE_ERRORS:
            logger.exception("Failed to release database connection.")


@asynccontextmanager
async def lease(deadline: float | None = None) -> AsyncIterator[Lease]:
    """
    Bind a fresh lease to the current context and release it on exit.
    """
    current = Lease(deadline)
    token = _current_lease.set(current)
    try:
        yield current
    finally:
        _current_lease.reset(token)
        await current.release()


def current_lease() -> Lease | None:
    return _current_lease.get()


@asynccontextmanager
async def _connection() -> AsyncIterator[asyncpg.Connection]:
    current = _current_lease.get()
    if current is not None:
        yield await current.connection()
        return

    # Outside a dispatched request (scripts, shell): one round trip, one lease.
    async with lease() as one_shot:
        yield await one_shot.connection()


@contextmanager
def _storage_errors() -> Iterator[None]:
    try:
        yield
    except asyncpg.DataError as exc:
        # Bad argument values (e.g. an id outside the column range).
        raise ValidationError("Invalid value") from exc
    except _STORAGE_ERRORS as exc:
        raise StorageError() from exc


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


async def fetch_one(sql: str, *args: Any) -> dict[str, Any] | None:
    """
    Run a query and return a single row as a dict (or None).
    """
    async with _connection() as conn:
        with _storage_errors():
            row = await conn.fetchrow(sql, *args)
    return _record_to_dict(row) if row is not None else None


async def fetch_all(sql: str, *args: Any) -> list[dict[str, Any]]:
    """
    Run a query and return all rows as a list of dicts.
    """
    async with _connection() as conn:
        with _storage_errors():
            rows = await conn.fetch(sql, *args)
    return [_record_to_dict(r) for r in rows]
