"""
Dialect helpers for code that only holds a Session.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import inspect
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

POSTGRESQL = "postgresql"
SQLITE = "sqlite"


def resolve_session_bind(session: Session) -> Optional[Connection | Engine]:
    """Return the engine/connection bound to a session, or None when unbound."""
    try:
        return session.get_bind()
    except SQLAlchemyError:
        pass

    insp = inspect(session, raiseerr=False)
    return getattr(insp, "bind", None)


def get_dialect_name(session: Session, default: str = SQLITE) -> str:
    """
    Return the SQLAlchemy dialect name of the session's bind.

    Falls back to ``default`` when the bind cannot be resolved (e.g. a mocked
    session in unit tests).
    """
    bind = resolve_session_bind(session)
    dialect = getattr(bind, "dialect", None)
    name = getattr(dialect, "name", None)
    return name if isinstance(name, str) and name else default
