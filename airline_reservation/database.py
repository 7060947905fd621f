"""Engine and session helpers for the reference booking backend."""
from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Tuple

from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base

DEFAULT_DB_URL = os.environ.get("SKYBOOK_DB_URL", "sqlite+pysqlite:///skybook.db")


def engine_options(db_url: str, connect_args: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Keyword arguments for ``create_engine`` suited to the database behind ``db_url``."""

    url = make_url(db_url)
    options: Dict[str, Any] = {"future": True, "connect_args": dict(connect_args or {})}
    if url.get_backend_name() != "sqlite":
        return options
    # gateway calls open sessions from worker threads
    options["connect_args"].setdefault("check_same_thread", False)
    if url.database in (None, "", ":memory:"):
        # one shared connection, otherwise each session gets a fresh empty database
        options["poolclass"] = StaticPool
    return options


def create_session_factory(
    db_url: str = DEFAULT_DB_URL,
    *,
    echo: bool = False,
    connect_args: Optional[Dict[str, Any]] = None,
) -> Tuple[Engine, sessionmaker[Session]]:
    engine = create_engine(db_url, echo=echo, **engine_options(db_url, connect_args))
    return engine, sessionmaker(bind=engine, expire_on_commit=False, future=True)


def init_db(db_url: str = DEFAULT_DB_URL, *, echo: bool = False) -> sessionmaker[Session]:
    """Create the flight and booking tables if needed and return a session factory."""

    engine, session_factory = create_session_factory(db_url, echo=echo)
    Base.metadata.create_all(engine)
    logger.debug(f"Initialised booking database at {engine.url!r}")
    return session_factory


@contextmanager
def session_scope(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    """Run the block as one unit of work: commit if it finishes, roll back if it raises."""

    with session_factory() as session:
        try:
            yield session
        except Exception as exc:
            session.rollback()
            logger.debug(f"Booking transaction rolled back: {exc!r}")
            raise
        session.commit()
