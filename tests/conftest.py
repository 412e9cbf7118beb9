"""Shared test fixtures for Taskline tests."""

from __future__ import annotations

import os
import tempfile
from datetime import datetime, timezone

# Logs and the default database must not land in the real user data dir.
os.environ.setdefault("TASKLINE_DATA_DIR", tempfile.mkdtemp(prefix="taskline-tests-"))

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from services.tasks import TaskService
from storage.db import init_db


OWNER = "user-1"
OTHER_OWNER = "user-2"


class FakeClock:
    """Callable clock the tests can move forward."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, value: str) -> None:
        self.now = datetime.fromisoformat(value.replace("Z", "+00:00"))


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)

    def factory():
        return Session(engine)

    return factory


@pytest.fixture()
def clock():
    return FakeClock(datetime(2025, 9, 10, 15, 0, tzinfo=timezone.utc))


@pytest.fixture()
def service(session_factory, clock):
    return TaskService(session_factory, clock=clock)


@pytest.fixture()
def make_task(service):
    """Create a task for ``OWNER`` with terse keyword arguments."""

    def _make(title="Task", due=None, owner=OWNER, **kwargs):
        due_by = {"date": due} if isinstance(due, str) else due
        return service.create(owner, title=title, due_by=due_by, **kwargs)

    return _make
