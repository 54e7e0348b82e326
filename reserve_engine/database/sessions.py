"""Session factory and unit-of-work helpers for the reservation store."""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Callable, Optional, Type

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .engines import get_store_engine

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False)


def init_session_factory(engine: Optional[Engine] = None) -> sessionmaker:
    """Bind ``SessionLocal`` to ``engine`` (the configured store by default)."""
    SessionLocal.configure(bind=engine or get_store_engine())
    return SessionLocal


def build_session_factory(engine: Engine) -> sessionmaker:
    """Create an independent session factory, e.g. for a test store."""
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


class UnitOfWork:
    """
    One transaction against the store.

    Nothing is committed unless ``commit()`` is called explicitly; leaving the
    block any other way rolls back. The session is always closed on exit.

    Usage:
        with UnitOfWork(SessionLocal) as uow:
            uow.session.add(entity)
            uow.commit()
    """

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory
        self.session: Optional[Session] = None
        self.committed = False

    def __enter__(self) -> "UnitOfWork":
        self.session = self._session_factory()
        self.committed = False
        return self

    def commit(self) -> None:
        assert self.session is not None, "UnitOfWork used outside its context"
        self.session.commit()
        self.committed = True

    def rollback(self) -> None:
        if self.session is not None:
            self.session.rollback()

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        if self.session is None:
            return
        try:
            if not self.committed:
                self.session.rollback()
                if exc_type is not None:
                    logger.debug("Unit of work rolled back after %s", exc_type.__name__)
        finally:
            self.session.close()
            self.session = None


__all__ = [
    "SessionFactory",
    "SessionLocal",
    "UnitOfWork",
    "build_session_factory",
    "init_session_factory",
]
