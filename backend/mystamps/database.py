"""Database engine, session and transaction helpers.

This module configures the SQLModel/SQLAlchemy engine from
`settings.DATABASE_URL` (a SQLite file under `backend/` by default) and
provides the session dependency plus the transaction scope used by the
services. Repositories only flush; committing or rolling back is the job
of `SessionTransactionManager`.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlmodel import SQLModel, create_engine, Session

from .config import settings
from .dao import TransactionManager


def make_engine(url: str):
    """Create an engine, relaxing SQLite's same-thread check for FastAPI."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=False, connect_args=connect_args)


engine = make_engine(settings.DATABASE_URL)


def create_db_and_tables(bind=None):
    """Create database tables using SQLModel metadata.

    Intended for local development and tests; a real deployment should
    manage its schema with a migration tool instead.
    """
    # table classes must be registered on the metadata first
    from . import models  # noqa: F401
    SQLModel.metadata.create_all(bind if bind is not None else engine)


def get_session():
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session and ensures it is closed when the
    request scope finishes.
    """
    with Session(engine) as session:
        yield session


class SessionTransactionManager(TransactionManager):
    """Run a unit of work on a `Session`: commit on success, roll back on error."""

    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def transaction(self) -> Iterator[None]:
        try:
            yield
            self.session.commit()
        except BaseException:
            self.session.rollback()
            raise
