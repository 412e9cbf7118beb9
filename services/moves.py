"""Reordering of a single task inside its current bucket.

A move runs ``received -> validated -> positioned -> persisted`` or stops at
``rejected``. Only the order changes here; changing a task's date goes through
``TaskService.update`` and always lands at the end of the new bucket.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from sqlmodel import Session

from core.errors import BucketMismatchError, InvalidArgumentError, TaskError
from core.log import get_logger
from models.task import Task
from services.bucket_versions import BucketVersions
from services.classifier import (
    OVERDUE_BUCKET,
    Bucket,
    BucketKind,
    current_window,
    is_overdue,
    primary_bucket,
)
from services.overdue import OverduePositionAssigner
from services.positions import PlacementStrategy, PositionAllocator
from services.task_repository import TaskRepository
from storage.db import get_session
from utils.datetime_utils import DayWindow, utc_now


class MoveState(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    POSITIONED = "positioned"
    PERSISTED = "persisted"
    REJECTED = "rejected"


@dataclass(frozen=True)
class MoveRequest:
    insert_after: Optional[str] = None
    insert_before: Optional[str] = None
    move_to_top: bool = False
    move_to_bottom: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MoveRequest":
        return cls(
            insert_after=data.get("insertAfter"),
            insert_before=data.get("insertBefore"),
            move_to_top=bool(data.get("moveToTop")),
            move_to_bottom=bool(data.get("moveToBottom")),
        )

    def strategy(self) -> PlacementStrategy:
        chosen = []
        if self.insert_after:
            chosen.append(PlacementStrategy.after(self.insert_after))
        if self.insert_before:
            chosen.append(PlacementStrategy.before(self.insert_before))
        if self.move_to_top:
            chosen.append(PlacementStrategy.top())
        if self.move_to_bottom:
            chosen.append(PlacementStrategy.bottom())
        if len(chosen) != 1:
            raise InvalidArgumentError(
                "Exactly one of insertAfter, insertBefore, moveToTop or moveToBottom "
                f"is required (got {len(chosen)})"
            )
        return chosen[0]


@dataclass
class MoveResult:
    task: Optional[Task] = None
    state: MoveState = MoveState.RECEIVED
    bucket: Optional[Bucket] = None
    position: Optional[int] = None

    @property
    def field(self) -> Optional[str]:
        if self.bucket is None:
            return None
        return "overdue_position" if self.bucket.kind is BucketKind.OVERDUE else "position"


def resolve_move_bucket(task: Task, reference: Optional[Task], window: DayWindow) -> Bucket:
    """Pick the bucket a move happens in.

    Two tasks that are both overdue share the overdue bucket even when their
    due dates differ; otherwise they must share their primary bucket.
    """
    task_overdue = is_overdue(task, window)
    if reference is None:
        return OVERDUE_BUCKET if task_overdue else primary_bucket(task)
    if task_overdue and is_overdue(reference, window):
        return OVERDUE_BUCKET
    bucket = primary_bucket(task)
    other = primary_bucket(reference)
    if bucket != other:
        raise BucketMismatchError(
            f"Cannot place task {task.id} ({bucket}) relative to task {reference.id} ({other}): "
            "tasks are in different buckets"
        )
    return bucket


class MoveOrchestrator:
    def __init__(
        self,
        session_factory: Callable[[], Session] = get_session,
        *,
        repository: Optional[TaskRepository] = None,
        allocator: Optional[PositionAllocator] = None,
        assigner: Optional[OverduePositionAssigner] = None,
        versions: Optional[BucketVersions] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self.repository = repository or TaskRepository()
        self.allocator = allocator or PositionAllocator(self.repository)
        self.assigner = assigner or OverduePositionAssigner()
        self.versions = versions or BucketVersions()
        self.clock = clock
        self.logger = get_logger("moves")

    def move(
        self,
        owner_id: str,
        task_id: str,
        request: MoveRequest,
        *,
        timezone: Optional[str] = None,
    ) -> MoveResult:
        result = MoveResult()
        try:
            strategy = request.strategy()
            window = current_window(self.clock(), timezone)
            with self._session_factory() as session:
                task = self.repository.get_owned(session, owner_id, task_id)
                reference = None
                if strategy.needs_reference:
                    if strategy.reference_id == task_id:
                        raise InvalidArgumentError("A task cannot be placed relative to itself")
                    reference = self.repository.get_owned(
                        session, owner_id, strategy.reference_id, label="Reference task"
                    )
                bucket = resolve_move_bucket(task, reference, window)
                result.bucket = bucket
                result.state = MoveState.VALIDATED

                with self.versions.guard(session, owner_id, bucket.key):
                    if bucket.kind is BucketKind.OVERDUE:
                        # Both sides need a slot before one can be placed relative to the other.
                        self.assigner.assign(self.repository.overdue_tasks(session, owner_id, window))
                    position = self.allocator.allocate(
                        session,
                        owner_id,
                        bucket,
                        strategy,
                        window=window,
                        exclude_id=task.id,
                        reference=reference,
                    )
                    result.position = position
                    result.state = MoveState.POSITIONED
                    if bucket.kind is BucketKind.OVERDUE:
                        task.overdue_position = position
                    else:
                        task.position = position
                    task.updated_at = utc_now()
                    session.add(task)

                session.commit()
                session.refresh(task)
                result.task = task
                result.state = MoveState.PERSISTED
        except TaskError as exc:
            result.state = MoveState.REJECTED
            self.logger.warning("Move of %s rejected: %s", task_id, exc)
            raise

        self.logger.info(
            "Moved task %s to %s=%s in %s", task_id, result.field, result.position, result.bucket
        )
        return result


__all__ = ["MoveOrchestrator", "MoveRequest", "MoveResult", "MoveState", "resolve_move_bucket"]
