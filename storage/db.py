# taskline/storage/db.py
from sqlmodel import SQLModel, create_engine, Session

from core.settings import DB_PATH, DB_URL

# Ensure SQLModel metadata is populated
import models.task  # noqa: F401
import models.bucket_state  # noqa: F401
from storage import migrations


_engine = None


def get_engine():
    """Return (and lazily create) the engine for the task database."""

    global _engine
    if _engine is None:
        if DB_URL == f"sqlite:///{DB_PATH.as_posix()}":
            DB_PATH.parent.mkdir(parents=True, exist_ok=True)
        _engine = create_engine(DB_URL, echo=False)
    return _engine


def init_db(engine=None):
    actual_engine = engine or get_engine()
    SQLModel.metadata.create_all(actual_engine)
    migrations.run_all(actual_engine)
    return actual_engine


def get_session() -> Session:
    return Session(get_engine())


__all__ = ["get_engine", "get_session", "init_db"]
