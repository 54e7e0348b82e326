"""Engine factory for the reservation store."""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from reserve_engine.core.config import settings

logger = logging.getLogger(__name__)

_BASE_PG_CONNECT_ARGS: dict[str, Any] = {
    "keepalives": 1,
    "keepalives_idle": 15,
    "keepalives_interval": 5,
    "keepalives_count": 3,
    "connect_timeout": 5,
    "application_name": "reserve_engine",
}


def _is_memory_sqlite(url: str) -> bool:
    parsed = make_url(url)
    return parsed.get_backend_name() == "sqlite" and parsed.database in (None, "", ":memory:")


def _build_postgres_connect_args(lock_timeout_ms: int, statement_timeout_ms: int) -> dict[str, Any]:
    args = dict(_BASE_PG_CONNECT_ARGS)
    args["options"] = (
        f"-c lock_timeout={lock_timeout_ms} -c statement_timeout={statement_timeout_ms}"
    )
    return args


def _configure_sqlite(engine: Engine) -> None:
    """
    Make every SQLite transaction take the database write lock up front.

    pysqlite defers BEGIN until the first write, which would let two
    transactions read the same free slot before either inserts. Emitting
    BEGIN IMMEDIATE ourselves serialises reservation transactions; waiters
    block for the driver's busy timeout and then fail with OperationalError.
    """

    @event.listens_for(engine, "connect")  # type: ignore[untyped-decorator]
    def _on_connect(dbapi_connection: Any, _connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")  # type: ignore[untyped-decorator]
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def _add_pool_events(engine: Engine, pool_name: str) -> None:
    @event.listens_for(engine, "connect")  # type: ignore[untyped-decorator]
    def _on_connect(_dbapi_connection: Any, _connection_record: Any) -> None:
        logger.info("[%s] Database connection established", pool_name)

    @event.listens_for(engine, "checkout")  # type: ignore[untyped-decorator]
    def _on_checkout(
        _dbapi_connection: Any, _connection_record: Any, _connection_proxy: Any
    ) -> None:
        logger.debug("[%s] Connection checked out from pool", pool_name)

    @event.listens_for(engine, "checkin")  # type: ignore[untyped-decorator]
    def _on_checkin(_dbapi_connection: Any, _connection_record: Any) -> None:
        logger.debug("[%s] Connection returned to pool", pool_name)

    @event.listens_for(engine, "invalidate")  # type: ignore[untyped-decorator]
    def _on_invalidate(_dbapi_connection: Any, _connection_record: Any, exception: Any) -> None:
        logger.warning(
            "[%s] Connection invalidated",
            pool_name,
            extra={
                "event": "db_connection_invalidated",
                "exception": str(exception) if exception else "unknown",
            },
        )


def create_store_engine(
    url: Optional[str] = None,
    *,
    lock_timeout_seconds: Optional[float] = None,
    pool_name: str = "Store",
    echo: bool = False,
) -> Engine:
    """
    Create an engine for the reservation store.

    Args:
        url: SQLAlchemy URL; defaults to the configured store
        lock_timeout_seconds: Bound on waiting for locks (SQLite busy timeout,
            PostgreSQL ``lock_timeout``); defaults to settings
        pool_name: Label used in pool event logs
        echo: Echo SQL statements

    Returns:
        Configured Engine
    """
    db_url = url or settings.get_database_url()
    timeout = lock_timeout_seconds or settings.store_lock_timeout_seconds
    backend = make_url(db_url).get_backend_name()

    if backend == "sqlite":
        kwargs: dict[str, Any] = {
            "connect_args": {"check_same_thread": False, "timeout": timeout},
        }
        if _is_memory_sqlite(db_url):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(db_url, echo=echo, future=True, **kwargs)
        _configure_sqlite(engine)
    else:
        lock_timeout_ms = int(timeout * 1000)
        engine = create_engine(
            db_url,
            echo=echo,
            future=True,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_pre_ping=True,
            pool_use_lifo=True,
            connect_args=(
                _build_postgres_connect_args(lock_timeout_ms, lock_timeout_ms * 6)
                if backend == "postgresql"
                else {}
            ),
        )

    _add_pool_events(engine, pool_name)
    logger.info("[%s] Engine created for %s backend", pool_name, backend)
    return engine


_store_engine: Engine | None = None


def get_store_engine() -> Engine:
    global _store_engine
    if _store_engine is None:
        _store_engine = create_store_engine()
    return _store_engine


__all__ = ["create_store_engine", "get_store_engine"]
