import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union, runtime_checkable

import psycopg
from psycopg_pool import ConnectionPool

from vecload.core.errors import ConfigurationError
from vecload.version import __version__

logger = logging.getLogger(__name__)

METADATA_TABLE = "vecload_metadata"

Params = Union[Sequence[Any], Dict[str, Any], None]


@runtime_checkable
class Database(Protocol):
    """
    Capacidad minima de SQL que necesita el motor.
    """

    def query(self, sql: str, params: Params = None) -> List[tuple]:
        ...

    def query_row(self, sql: str, params: Params = None) -> Optional[tuple]:
        ...

    def exec(self, sql: str, params: Params = None) -> int:
        ...


class ConnectionDatabase:
    """Adaptador sobre una sola conexion psycopg (modo sesion)."""

    def __init__(self, conn: psycopg.Connection):
        self.conn = conn

    def query(self, sql, params=None):
        with self.conn.cursor() as cur:
            cur.execute(sql, params)
            return cur.fetchall()

    def query_row(self, sql, params=None):
        with self.conn.cursor() as cur:
            cur.execute(sql, params)
            return cur.fetchone()

    def exec(self, sql, params=None):
        with self.conn.cursor() as cur:
            cur.execute(sql, params)
            return max(cur.rowcount, 0)


class PooledDatabase:
    """Adaptador sobre un ConnectionPool: cada llamada toma y devuelve una conexion."""

    def __init__(self, pool: ConnectionPool):
        self.pool = pool

    def query(self, sql, params=None):
        with self.pool.connection() as conn:
            return ConnectionDatabase(conn).query(sql, params)

    def query_row(self, sql, params=None):
        with self.pool.connection() as conn:
            return ConnectionDatabase(conn).query_row(sql, params)

    def exec(self, sql, params=None):
        with self.pool.connection() as conn:
            return ConnectionDatabase(conn).exec(sql, params)


def as_database(target) -> Database:
    if isinstance(target, ConnectionPool):
        return PooledDatabase(target)
    if isinstance(target, psycopg.Connection):
        return ConnectionDatabase(target)
    if isinstance(target, Database):
        return target
    raise TypeError(f"cannot use {type(target).__name__} as a database")


def connect_pool(conninfo: str, max_size: int = 10, application_name: str = "vecload") -> ConnectionPool:
    if not conninfo:
        raise ConfigurationError("a database connection string is required")
    pool = ConnectionPool(
        conninfo,
        min_size=1,
        max_size=max(1, max_size),
        kwargs={"autocommit": True, "application_name": application_name},
        open=True,
    )
    pool.wait()
    logger.debug("connection pool ready (max_size=%d)", max_size)
    return pool


def connect_single(conninfo: str, application_name: str = "vecload") -> psycopg.Connection:
    if not conninfo:
        raise ConfigurationError("a database connection string is required")
    return psycopg.connect(conninfo, autocommit=True, application_name=application_name)


def has_extension(db: Database, name: str) -> bool:
    row = db.query_row("SELECT 1 FROM pg_available_extensions WHERE name = %s", (name,))
    return row is not None


# --- Metadata ---

def metadata_exists(db: Database) -> bool:
    row = db.query_row("SELECT to_regclass(%s)", (METADATA_TABLE,))
    return bool(row and row[0])


def save_metadata(db: Database, app: str, target_size: str, extra: Dict[str, Any] = None) -> None:
    db.exec(f"""
        CREATE TABLE IF NOT EXISTS {METADATA_TABLE} (
            key   TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )""")

    values = {
        "app": app,
        "version": __version__,
        "initialized_at": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        "target_size": target_size,
    }
    for key, value in (extra or {}).items():
        values[key] = str(value)

    for key, value in values.items():
        db.exec(f"""
            INSERT INTO {METADATA_TABLE} (key, value) VALUES (%s, %s)
            ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value""", (key, value))
    logger.debug("saved metadata for %s (target_size=%s)", app, target_size)


def get_metadata_value(db: Database, key: str) -> Optional[str]:
    if not metadata_exists(db):
        return None
    row = db.query_row(f"SELECT value FROM {METADATA_TABLE} WHERE key = %s", (key,))
    return row[0] if row else None


def get_all_metadata(db: Database) -> Dict[str, str]:
    if not metadata_exists(db):
        return {}
    return dict(db.query(f"SELECT key, value FROM {METADATA_TABLE} ORDER BY key"))


def drop_metadata(db: Database) -> None:
    db.exec(f"DROP TABLE IF EXISTS {METADATA_TABLE}")
