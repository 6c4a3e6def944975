"""Engine and session management for the relational store."""

from __future__ import annotations

import logging
import threading
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .errors import PersistenceFailure
from .models import Base

log = logging.getLogger(__name__)

_lock = threading.Lock()
_engine = None
_SessionLocal = None


def init_db(database_url: str) -> None:
    """Create the engine, the tables and the session factory."""

    global _engine, _SessionLocal
    with _lock:
        if _engine is not None:
            _engine.dispose()
        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        _engine = create_engine(database_url, connect_args=connect_args)
        Base.metadata.create_all(_engine)
        _SessionLocal = sessionmaker(bind=_engine, autoflush=False, expire_on_commit=False)
        log.info("Database initialised at %s", _engine.url.render_as_string(hide_password=True))


def get_session() -> Session:
    with _lock:
        if _SessionLocal is None:
            raise RuntimeError("init_db() has not been called")
        factory = _SessionLocal
    return factory()


def db_session() -> Generator[Session, None, None]:
    """Generator-based session suitable for FastAPI ``Depends()``."""

    session = get_session()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def commit(session: Session, action: str) -> None:
    """Commit the unit of work, converting driver errors into a 500.

    The underlying database message is logged and never returned to callers.
    """

    try:
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        log.error("Failed to %s: %s", action, exc)
        raise PersistenceFailure(f"Failed to {action}") from exc
