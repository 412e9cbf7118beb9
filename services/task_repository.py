from __future__ import annotations

from typing import List, Optional, Tuple

from sqlalchemy import and_, func, or_
from sqlmodel import Session, select

from core.errors import ForbiddenError, NotFoundError
from models.task import Task
from services.classifier import Bucket, BucketKind
from utils.datetime_utils import DayWindow


class TaskRepository:
    """Query shapes over the task table; callers own the session."""

    def get(self, session: Session, task_id: str) -> Optional[Task]:
        if not task_id:
            return None
        return session.get(Task, task_id)

    def get_owned(self, session: Session, owner_id: str, task_id: str, *, label: str = "Task") -> Task:
        task = self.get(session, task_id)
        if task is None:
            raise NotFoundError(f"{label} not found: {task_id}")
        if task.owner_id != owner_id:
            raise ForbiddenError(f"{label} {task_id} belongs to another user")
        return task

    # ----- buckets -----
    def bucket_condition(self, owner_id: str, bucket: Bucket, window: DayWindow):
        owned = Task.owner_id == owner_id
        if bucket.kind is BucketKind.INBOX:
            return and_(owned, Task.due_date == None, Task.grouping_id == None)  # noqa: E711
        if bucket.kind is BucketKind.GROUP:
            return and_(owned, Task.due_date == None, Task.grouping_id == bucket.value)  # noqa: E711
        if bucket.kind is BucketKind.DATE:
            return and_(owned, Task.due_date == bucket.value)
        if bucket.kind is BucketKind.OVERDUE:
            return and_(owned, Task.due_date < window.today_str, Task.completed == False)  # noqa: E712
        raise ValueError(f"Unsupported bucket: {bucket}")

    def bucket_positions(
        self,
        session: Session,
        owner_id: str,
        bucket: Bucket,
        window: DayWindow,
        *,
        exclude_id: Optional[str] = None,
    ) -> List[Tuple[str, int]]:
        """Return ``(task_id, position)`` pairs for the bucket, ascending.

        The overdue bucket reports ``overdue_position`` and skips tasks that
        have not been assigned one yet.
        """
        column = Task.overdue_position if bucket.kind is BucketKind.OVERDUE else Task.position
        stmt = select(Task.id, column).where(self.bucket_condition(owner_id, bucket, window))
        if bucket.kind is BucketKind.OVERDUE:
            stmt = stmt.where(Task.overdue_position != None)  # noqa: E711
        if exclude_id:
            stmt = stmt.where(Task.id != exclude_id)
        stmt = stmt.order_by(column.asc())
        return [(row[0], int(row[1])) for row in session.exec(stmt)]

    def overdue_tasks(self, session: Session, owner_id: str, window: DayWindow) -> List[Task]:
        stmt = select(Task).where(
            self.bucket_condition(owner_id, Bucket(BucketKind.OVERDUE), window)
        )
        return list(session.exec(stmt))

    # ----- listing -----
    def list_for_owner(
        self,
        session: Session,
        owner_id: str,
        *,
        completed: Optional[bool] = None,
        priority=None,
    ) -> List[Task]:
        stmt = select(Task).where(Task.owner_id == owner_id)
        if completed is not None:
            stmt = stmt.where(Task.completed == completed)
        if priority is not None:
            stmt = stmt.where(Task.priority == priority)
        stmt = stmt.order_by(Task.created_at.desc())
        return list(session.exec(stmt))

    def list_where(self, session: Session, condition) -> List[Task]:
        return list(session.exec(select(Task).where(condition)))

    def count(self, session: Session, owner_id: str, *, completed: Optional[bool] = None) -> int:
        stmt = select(func.count()).select_from(Task).where(Task.owner_id == owner_id)
        if completed is not None:
            stmt = stmt.where(Task.completed == completed)
        return int(session.exec(stmt).one())


def completed_within(window: DayWindow):
    return and_(
        Task.completed == True,  # noqa: E712
        Task.completed_time >= window.start,
        Task.completed_time < window.end,
    )


def due_within(window: DayWindow):
    return or_(
        Task.due_date == window.today_str,
        and_(Task.due_time >= window.start, Task.due_time < window.end),
    )


__all__ = ["TaskRepository", "completed_within", "due_within"]
