# taskline/services/tasks.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, List, Mapping, Optional, Union

from sqlmodel import Session

from core.errors import InvalidArgumentError
from core.log import get_logger
from core.priorities import Priority, parse_priority
from core.settings import LIMITS, VIEWS
from models.task import CompletedOn, DueBy, Task, TimeType
from services.bucket_versions import BucketVersions
from services.classifier import OVERDUE_BUCKET, Bucket, current_window, primary_bucket
from services.moves import MoveOrchestrator, MoveRequest
from services.overdue import OverduePositionAssigner
from services.positions import PlacementStrategy, PositionAllocator
from services.task_repository import TaskRepository
from services.views import View, ViewQueryBuilder, paginate, parse_view
from storage.db import get_session
from utils.datetime_utils import DayWindow, utc_now


@dataclass(frozen=True)
class PositionHint:
    """Where a created or re-dated task should land in its bucket."""

    position: Optional[int] = None
    insert_after: Optional[str] = None
    insert_before: Optional[str] = None
    insert_at_top: bool = False
    insert_at_bottom: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PositionHint":
        return cls(
            position=data.get("position"),
            insert_after=data.get("insertAfter") or data.get("insertAfterTaskId"),
            insert_before=data.get("insertBefore"),
            insert_at_top=bool(data.get("insertAtTop") or data.get("moveToTop")),
            insert_at_bottom=bool(data.get("moveToBottom")),
        )

    def strategy(self) -> Optional[PlacementStrategy]:
        """``None`` when an exact position was given."""
        chosen: List[Optional[PlacementStrategy]] = []
        if self.position is not None:
            chosen.append(None)
        if self.insert_after:
            chosen.append(PlacementStrategy.after(self.insert_after))
        if self.insert_before:
            chosen.append(PlacementStrategy.before(self.insert_before))
        if self.insert_at_top:
            chosen.append(PlacementStrategy.top())
        if self.insert_at_bottom:
            chosen.append(PlacementStrategy.bottom())
        if len(chosen) > 1:
            raise InvalidArgumentError("Position hint must name at most one placement")
        return chosen[0] if chosen else PlacementStrategy.bottom()


@dataclass(frozen=True)
class TaskStats:
    total: int
    completed: int
    pending: int


DueInput = Union[DueBy, Mapping[str, Any], None]
HintInput = Union[PositionHint, Mapping[str, Any], None]


def _coerce_due(value: DueInput) -> Optional[DueBy]:
    if value is None:
        return None
    if isinstance(value, DueBy):
        due = value
    elif not isinstance(value, Mapping):
        raise InvalidArgumentError(f"Malformed due descriptor: {value!r}")
    else:
        try:
            due = DueBy.from_dict(value)
        except ValueError as exc:
            raise InvalidArgumentError(str(exc)) from None
    if due.mode is TimeType.FLOATING:
        raise InvalidArgumentError("Floating due times are not supported yet")
    return due


def _coerce_hint(value: HintInput) -> Optional[PositionHint]:
    if value is None or isinstance(value, PositionHint):
        return value
    return PositionHint.from_dict(value)


def _exact_position(value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidArgumentError(f"Position must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"Position must be an integer, got {value!r}") from None


def _clean_title(title: Optional[str]) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise InvalidArgumentError("Title is required")
    if len(cleaned) > LIMITS.title_max_length:
        raise InvalidArgumentError(
            f"Title must be at most {LIMITS.title_max_length} characters"
        )
    return cleaned


def _clean_description(description: Optional[str]) -> Optional[str]:
    if description is not None and len(description) > LIMITS.description_max_length:
        raise InvalidArgumentError(
            f"Description must be at most {LIMITS.description_max_length} characters"
        )
    return description or None


def _clean_tags(tags: Optional[Iterable[str]]) -> List[str]:
    result: List[str] = []
    for tag in tags or []:
        value = str(tag).strip()
        if value and value not in result:
            result.append(value)
    return result


def _priority(value) -> Priority:
    try:
        return parse_priority(value)
    except ValueError as exc:
        raise InvalidArgumentError(str(exc)) from None


class TaskService:
    def __init__(
        self,
        session_factory: Callable[[], Session] = get_session,
        *,
        clock: Callable[[], datetime] = utc_now,
        repository: Optional[TaskRepository] = None,
    ) -> None:
        self._session_factory = session_factory
        self.clock = clock
        self.repository = repository or TaskRepository()
        self.allocator = PositionAllocator(self.repository)
        self.assigner = OverduePositionAssigner()
        self.versions = BucketVersions()
        self.views = ViewQueryBuilder(self.repository)
        self.mover = MoveOrchestrator(
            session_factory,
            repository=self.repository,
            allocator=self.allocator,
            assigner=self.assigner,
            versions=self.versions,
            clock=clock,
        )
        self.logger = get_logger("tasks")

    # ---------- helpers ----------
    def _window(self, timezone: Optional[str]) -> DayWindow:
        return current_window(self.clock(), timezone)

    def _place(
        self,
        session: Session,
        task: Task,
        bucket: Bucket,
        hint: Optional[PositionHint],
        window: DayWindow,
    ) -> None:
        strategy = (hint or PositionHint()).strategy()
        exact = _exact_position(hint.position) if strategy is None else None
        with self.versions.guard(session, task.owner_id, bucket.key):
            if strategy is None:
                task.position = exact
            else:
                if strategy.needs_reference and strategy.reference_id == task.id:
                    raise InvalidArgumentError("A task cannot be placed relative to itself")
                task.position = self.allocator.allocate(
                    session,
                    task.owner_id,
                    bucket,
                    strategy,
                    window=window,
                    exclude_id=task.id,
                )
            session.add(task)

    # ---------- CRUD ----------
    def create(
        self,
        owner_id: str,
        *,
        title: str,
        description: Optional[str] = None,
        priority: Union[Priority, str, None] = None,
        tags: Optional[Iterable[str]] = None,
        due_by: DueInput = None,
        grouping_id: Optional[str] = None,
        position_hint: HintInput = None,
        timezone: Optional[str] = None,
    ) -> Task:
        window = self._window(timezone)
        task = Task(
            owner_id=owner_id,
            title=_clean_title(title),
            description=_clean_description(description),
            priority=_priority(priority),
            tags=_clean_tags(tags),
            grouping_id=grouping_id or None,
        )
        task.set_due_by(_coerce_due(due_by))
        bucket = primary_bucket(task)
        with self._session_factory() as session:
            self._place(session, task, bucket, _coerce_hint(position_hint), window)
            session.commit()
            session.refresh(task)
        self.logger.info("Task created: %s in %s at %s", task.id, bucket, task.position)
        return task

    def get(self, owner_id: str, task_id: str) -> Task:
        with self._session_factory() as session:
            return self.repository.get_owned(session, owner_id, task_id)

    def update(
        self,
        owner_id: str,
        task_id: str,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        priority: Union[Priority, str, None] = None,
        tags: Optional[Iterable[str]] = None,
        grouping_id: Optional[str] = None,
        clear_grouping: bool = False,
        due_by: DueInput = None,
        clear_due_by: bool = False,
        completed: Optional[bool] = None,
        position_hint: HintInput = None,
        timezone: Optional[str] = None,
    ) -> Task:
        if due_by is not None and clear_due_by:
            raise InvalidArgumentError("due_by and clear_due_by are mutually exclusive")
        window = self._window(timezone)
        new_due = _coerce_due(due_by)
        hint = _coerce_hint(position_hint)
        with self._session_factory() as session:
            task = self.repository.get_owned(session, owner_id, task_id)
            old_bucket = primary_bucket(task)

            if title is not None:
                task.title = _clean_title(title)
            if description is not None:
                task.description = _clean_description(description)
            if priority is not None:
                task.priority = _priority(priority)
            if tags is not None:
                task.tags = _clean_tags(tags)
            if clear_grouping:
                task.grouping_id = None
            elif grouping_id is not None:
                task.grouping_id = grouping_id or None
            if clear_due_by:
                task.set_due_by(None)
            elif new_due is not None:
                task.set_due_by(new_due)

            if completed is True and not task.completed:
                task.completed = True
                task.set_completed_on(CompletedOn(date=window.today_str, time=self.clock()))
            elif completed is False and task.completed:
                task.completed = False
                task.set_completed_on(None)

            new_bucket = primary_bucket(task)
            if hint is not None or new_bucket != old_bucket:
                self._place(session, task, new_bucket, hint, window)
            self.assigner.release([task], window)

            task.updated_at = utc_now()
            session.add(task)
            session.commit()
            session.refresh(task)
        if new_bucket != old_bucket:
            self.logger.info("Task %s moved from %s to %s", task_id, old_bucket, new_bucket)
        else:
            self.logger.info("Task updated: %s", task_id)
        return task

    def complete(self, owner_id: str, task_id: str, *, timezone: Optional[str] = None) -> Task:
        return self.update(owner_id, task_id, completed=True, timezone=timezone)

    def incomplete(self, owner_id: str, task_id: str, *, timezone: Optional[str] = None) -> Task:
        return self.update(owner_id, task_id, completed=False, timezone=timezone)

    def delete(self, owner_id: str, task_id: str) -> None:
        with self._session_factory() as session:
            task = self.repository.get_owned(session, owner_id, task_id)
            session.delete(task)
            session.commit()
        self.logger.info("Task deleted: %s", task_id)

    # ---------- ordering ----------
    def move(
        self,
        owner_id: str,
        task_id: str,
        request: Union[MoveRequest, Mapping[str, Any]],
        *,
        timezone: Optional[str] = None,
    ) -> Task:
        if not isinstance(request, MoveRequest):
            request = MoveRequest.from_dict(request)
        return self.mover.move(owner_id, task_id, request, timezone=timezone).task

    def _reconcile_overdue(
        self, session: Session, owner_id: str, tasks: Iterable[Task], window: DayWindow
    ) -> bool:
        """Release stale overdue slots and hand out new ones; ``True`` if anything changed."""
        tasks = list(tasks)
        changed = self.assigner.release(tasks, window)
        overdue = self.repository.overdue_tasks(session, owner_id, window)
        if self.assigner.unpositioned(overdue):
            with self.versions.guard(session, owner_id, OVERDUE_BUCKET.key):
                changed += self.assigner.assign(overdue)
        for task in changed:
            session.add(task)
        return bool(changed)

    def assign_overdue_positions(self, owner_id: str, *, timezone: Optional[str] = None) -> List[Task]:
        """Run the overdue backfill on its own and return the owner's overdue tasks."""
        window = self._window(timezone)
        with self._session_factory() as session:
            if self._reconcile_overdue(session, owner_id, [], window):
                session.commit()
            overdue = self.repository.overdue_tasks(session, owner_id, window)
            return self.views.order(View.TODAY, overdue, window)

    # ---------- listing ----------
    def list_by_view(
        self,
        owner_id: str,
        view: Union[View, str, None] = None,
        *,
        completed: bool = False,
        timezone: Optional[str] = None,
        priority: Union[Priority, str, None] = None,
        tag: Optional[str] = None,
        page: int = 0,
        size: Optional[int] = None,
    ) -> List[Task]:
        selected = view if isinstance(view, View) else parse_view(view)
        size = min(size or VIEWS.default_page_size, VIEWS.max_page_size)
        if selected is None:
            return paginate(
                self._list_all(owner_id, completed=completed, priority=priority, tag=tag),
                page,
                size,
            )

        window = self._window(timezone)
        with self._session_factory() as session:
            tasks = self.views.fetch(session, selected, owner_id, window, completed)
            if selected is View.TODAY and self._reconcile_overdue(session, owner_id, tasks, window):
                session.commit()
                for task in tasks:
                    session.refresh(task)
            ordered = self.views.order(selected, tasks, window)
        return paginate(ordered, page, size)

    def _list_all(
        self,
        owner_id: str,
        *,
        completed: bool,
        priority: Union[Priority, str, None],
        tag: Optional[str],
    ) -> List[Task]:
        wanted = _priority(priority) if priority is not None else None
        with self._session_factory() as session:
            tasks = self.repository.list_for_owner(
                session, owner_id, completed=completed, priority=wanted
            )
        if tag:
            tasks = [t for t in tasks if tag in (t.tags or [])]
        return tasks

    def stats(self, owner_id: str) -> TaskStats:
        with self._session_factory() as session:
            total = self.repository.count(session, owner_id)
            done = self.repository.count(session, owner_id, completed=True)
        return TaskStats(total=total, completed=done, pending=total - done)


__all__ = ["PositionHint", "TaskService", "TaskStats"]
