"""
PostgreSQL connections for the credential store and the migration runner.

One psycopg2 ThreadedConnectionPool per distinct DatabaseConfig, created on
first use. Connection failures surface as StoreUnavailableError so request
handlers can answer 500 without knowing anything about psycopg2.

Usage:
    from tradescope.db import get_connection

    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT encrypted_api_key FROM user_preferences WHERE user_id = %s", (uid,))
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

import psycopg2
import psycopg2.pool

from tradescope.config import DatabaseConfig, get_config
from tradescope.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

MIN_CONNECTIONS = 1
MAX_CONNECTIONS = 10

_pools: dict[DatabaseConfig, psycopg2.pool.ThreadedConnectionPool] = {}
_lock = threading.Lock()


def get_pool(db: DatabaseConfig | None = None) -> psycopg2.pool.ThreadedConnectionPool:
    """Return the pool for ``db`` (default: configured database), opening it if needed."""
    cfg = db or get_config().db
    with _lock:
        pool = _pools.get(cfg)
        if pool is not None and not pool.closed:
            return pool

        logger.info("Opening credential store pool %s@%s:%s/%s", cfg.user, cfg.host or "<socket>", cfg.port, cfg.name)
        try:
            pool = psycopg2.pool.ThreadedConnectionPool(MIN_CONNECTIONS, MAX_CONNECTIONS, **cfg.dict)
        except psycopg2.OperationalError as e:
            # The driver message can echo connection parameters
            logger.error("PostgreSQL unreachable at %s:%s/%s (%s)", cfg.host or "<socket>", cfg.port, cfg.name, type(e).__name__)
            raise StoreUnavailableError() from e
        _pools[cfg] = pool
        return pool


@contextmanager
def get_connection(db: DatabaseConfig | None = None, autocommit: bool = False) -> Iterator[psycopg2.extensions.connection]:
    """Borrow a pooled connection.

    The transaction commits when the block exits cleanly and rolls back when
    it raises. The connection always goes back to the pool.
    """
    pool = get_pool(db)
    try:
        conn = pool.getconn()
    except psycopg2.pool.PoolError as e:
        logger.warning("Credential store pool exhausted")
        raise StoreUnavailableError() from e

    broken = False
    try:
        if autocommit:
            conn.autocommit = True
        yield conn
        if not autocommit:
            conn.commit()
    except Exception:
        if not autocommit:
            broken = not _cleanup(conn.rollback)
        raise
    finally:
        if autocommit:
            broken = not _cleanup(setattr, conn, "autocommit", False) or broken
        # A connection the server dropped is closed instead of reused
        pool.putconn(conn, close=broken or bool(conn.closed))


def _cleanup(fn, *args) -> bool:
    """Run cleanup on a connection that may already be dead. False if it failed."""
    try:
        fn(*args)
    except psycopg2.Error as e:
        logger.warning("Connection cleanup failed (%s); closing it", type(e).__name__)
        return False
    return True


def close_pool() -> None:
    """Close every open pool. Safe to call when none were opened."""
    with _lock:
        for pool in _pools.values():
            if not pool.closed:
                pool.closeall()
        _pools.clear()
