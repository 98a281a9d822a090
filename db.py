# db.py
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

import config

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """Raised when pending changes could not be flushed/committed to the store."""


def make_engine(url: str, **engine_kwargs):
    engine = create_engine(url, future=True, **engine_kwargs)
    if url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_conn, _record):
            # SQLite ignores ON DELETE clauses unless foreign keys are switched on
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA foreign_keys=ON")
            cur.close()
            # let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest properly
            dbapi_conn.isolation_level = None

        @event.listens_for(engine, "begin")
        def _on_begin(conn):
            conn.exec_driver_sql("BEGIN")
    return engine


def make_session_factory(bind) -> sessionmaker:
    return sessionmaker(
        bind=bind,
        autoflush=False,
        autocommit=False,
        future=True,
        expire_on_commit=False,  # critical for Streamlit pattern
    )


DB_URL = config.DATABASE_URL
engine = make_engine(DB_URL)
SessionLocal = make_session_factory(engine)


def save(session: Session) -> None:
    """
    Commit pending changes. Failures are rolled back, logged and re-raised
    as StoreError so the caller can tell the user the write did not stick.
    """
    try:
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Failed to save changes: %s", exc)
        raise StoreError("Could not save your changes. Try again.") from exc


@contextmanager
def get_session() -> Iterator[Session]:
    """
    Unit of work: commits on exit. Any database error raised inside the
    block (flush, query or commit) is rolled back and surfaces as StoreError.
    """
    session = SessionLocal()
    try:
        yield session
        save(session)
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Database error, changes rolled back: %s", exc)
        raise StoreError("Could not save your changes. Try again.") from exc
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
