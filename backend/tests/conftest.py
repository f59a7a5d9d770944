from pathlib import Path
import os
import tempfile
import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

# Point the app at throwaway storage before `mystamps` is imported anywhere.
_TMP = Path(tempfile.mkdtemp(prefix="mystamps-tests-"))
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TMP / 'test.db'}")
os.environ.setdefault("IMAGE_DIR", str(_TMP / "images"))


@pytest.fixture
def session():
    """A session bound to a fresh in-memory SQLite database."""
    from mystamps import models  # noqa: F401
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    with Session(engine) as s:
        yield s
