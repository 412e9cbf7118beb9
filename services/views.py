"""Translation of a named view into bucket predicates and a sort order."""
from __future__ import annotations

from enum import Enum
from typing import List, Optional, Sequence

from sqlalchemy import and_, or_
from sqlmodel import Session

from core.errors import InvalidArgumentError
from core.log import get_logger
from models.task import Task
from services.classifier import Classification, classify, completed_in
from services.task_repository import TaskRepository, completed_within, due_within
from utils.datetime_utils import DayWindow, ensure_utc, utc_now


class View(str, Enum):
    INBOX = "inbox"
    TODAY = "today"
    UPCOMING = "upcoming"


def parse_view(name: Optional[str]) -> Optional[View]:
    """``None``/blank means no view; anything else must name a known view."""
    if name is None or not str(name).strip():
        return None
    try:
        return View(str(name).strip().lower())
    except ValueError:
        valid = ", ".join(v.value for v in View)
        raise InvalidArgumentError(f"Invalid view {name!r}. Valid values: {valid}") from None


def _created(task: Task):
    return ensure_utc(task.created_at) or utc_now()


def _by_position(task: Task):
    return (task.position, _created(task), task.id)


def _by_overdue_position(task: Task):
    missing = task.overdue_position is None
    return (missing, task.overdue_position or 0, task.due_date or "", task.position, task.id)


def _by_due_date(task: Task):
    return (task.due_date or "", task.position, _created(task), task.id)


class ViewQueryBuilder:
    def __init__(self, repository: Optional[TaskRepository] = None) -> None:
        self.repository = repository or TaskRepository()
        self.logger = get_logger("views")

    def condition(self, view: View, owner_id: str, window: DayWindow, completed: bool):
        """Coarse SQL predicate; ``members`` applies the exact classification."""
        owned = Task.owner_id == owner_id
        if view is View.INBOX:
            unorganized = and_(Task.due_date == None, Task.grouping_id == None)  # noqa: E711
            return and_(
                owned,
                or_(and_(unorganized, Task.completed == completed), completed_within(window)),
            )
        if view is View.TODAY:
            overdue = and_(Task.due_date < window.today_str, Task.completed == False)  # noqa: E712
            return and_(
                owned,
                or_(
                    and_(Task.due_date != None, due_within(window)),  # noqa: E711
                    overdue,
                    completed_within(window),
                ),
            )
        if view is View.UPCOMING:
            return and_(
                owned,
                Task.due_date != None,  # noqa: E711
                Task.completed == completed,
                or_(Task.due_date >= window.today_str, Task.due_time >= window.end),
            )
        raise InvalidArgumentError(f"Unhandled view: {view!r}")

    def members(
        self, view: View, tasks: Sequence[Task], window: DayWindow, completed: bool
    ) -> List[Task]:
        result = []
        for task in tasks:
            kind = classify(task, window)
            if view is View.INBOX:
                keep = (
                    kind is Classification.INBOX and bool(task.completed) == completed
                ) or completed_in(task, window)
            elif view is View.TODAY:
                keep = kind in (Classification.DUE_TODAY, Classification.OVERDUE) or completed_in(
                    task, window
                )
            else:
                keep = kind is Classification.UPCOMING and bool(task.completed) == completed
            if keep:
                result.append(task)
        return result

    def fetch(
        self, session: Session, view: View, owner_id: str, window: DayWindow, completed: bool
    ) -> List[Task]:
        candidates = self.repository.list_where(
            session, self.condition(view, owner_id, window, completed)
        )
        tasks = self.members(view, candidates, window, completed)
        self.logger.debug(
            "View %s for %s on %s: %d of %d candidates",
            view.value,
            owner_id,
            window.today_str,
            len(tasks),
            len(candidates),
        )
        return tasks

    def order(self, view: View, tasks: Sequence[Task], window: DayWindow) -> List[Task]:
        if view is View.INBOX:
            return sorted(tasks, key=_by_position)
        if view is View.TODAY:
            overdue = [t for t in tasks if classify(t, window) is Classification.OVERDUE]
            overdue_ids = {t.id for t in overdue}
            rest = [t for t in tasks if t.id not in overdue_ids]
            return sorted(overdue, key=_by_overdue_position) + sorted(rest, key=_by_position)
        if view is View.UPCOMING:
            return sorted(tasks, key=_by_due_date)
        raise InvalidArgumentError(f"Unhandled view: {view!r}")


def paginate(tasks: Sequence[Task], page: int, size: int) -> List[Task]:
    if page < 0:
        raise InvalidArgumentError(f"Page must be >= 0, got {page}")
    if size <= 0:
        raise InvalidArgumentError(f"Page size must be > 0, got {size}")
    start = page * size
    return list(tasks[start:start + size])


__all__ = ["View", "ViewQueryBuilder", "paginate", "parse_view"]
