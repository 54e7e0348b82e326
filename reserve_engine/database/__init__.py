"""
Declarative base, engine and session helpers for the reservation store.
"""

from sqlalchemy.orm import DeclarativeMeta, declarative_base

Base: DeclarativeMeta = declarative_base()

from .engines import create_store_engine, get_store_engine  # noqa: E402
from .session_utils import get_dialect_name  # noqa: E402
from .sessions import (  # noqa: E402
    SessionFactory,
    SessionLocal,
    UnitOfWork,
    build_session_factory,
    init_session_factory,
)

__all__ = [
    "Base",
    "SessionFactory",
    "SessionLocal",
    "UnitOfWork",
    "build_session_factory",
    "create_store_engine",
    "get_dialect_name",
    "get_store_engine",
    "init_session_factory",
]
