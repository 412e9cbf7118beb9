"""Optimistic concurrency for position writes.

Every read-compute-write on a bucket reads the bucket's version first and
finishes with a compare-and-swap on it. A second writer that read the same
version loses and gets ``ConflictError``.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from core.errors import ConflictError
from core.log import get_logger
from models.bucket_state import BucketState
from utils.datetime_utils import utc_now


class BucketVersions:
    def __init__(self) -> None:
        self.logger = get_logger("positions")

    def read(self, session: Session, owner_id: str, bucket_key: str) -> int:
        stmt = select(BucketState.version).where(
            BucketState.owner_id == owner_id,
            BucketState.bucket_key == bucket_key,
        )
        return session.exec(stmt).first() or 0

    def bump(self, session: Session, owner_id: str, bucket_key: str, expected: int) -> int:
        """Advance the version from ``expected``; raise ``ConflictError`` if it moved."""
        if expected == 0 and self.read(session, owner_id, bucket_key) == 0:
            session.add(BucketState(owner_id=owner_id, bucket_key=bucket_key, version=1))
            try:
                session.flush()
            except IntegrityError:
                session.rollback()
                self._conflict(owner_id, bucket_key)
            return 1

        table = BucketState.__table__
        stmt = (
            update(table)
            .where(
                table.c.owner_id == owner_id,
                table.c.bucket_key == bucket_key,
                table.c.version == expected,
            )
            .values(version=table.c.version + 1, updated_at=utc_now())
        )
        result = session.connection().execute(stmt)
        if result.rowcount != 1:
            session.rollback()
            self._conflict(owner_id, bucket_key)
        return expected + 1

    @contextmanager
    def guard(self, session: Session, owner_id: str, bucket_key: str) -> Iterator[int]:
        """Wrap a read-compute-write on one bucket; the caller commits afterwards."""
        expected = self.read(session, owner_id, bucket_key)
        yield expected
        self.bump(session, owner_id, bucket_key, expected)

    def _conflict(self, owner_id: str, bucket_key: str) -> None:
        self.logger.warning("Concurrent update on bucket %s for %s", bucket_key, owner_id)
        raise ConflictError(f"Bucket {bucket_key} changed concurrently; retry the request")


__all__ = ["BucketVersions"]
