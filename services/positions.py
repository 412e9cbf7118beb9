"""Integer-gap position allocation inside a single ordering bucket.

Positions are spaced ``POSITIONS.gap`` apart when appended or prepended; an
insert between two neighbours takes the floored midpoint. When neighbours are
closer than ``POSITIONS.min_gap`` the insert degrades to a plain append (for
``after``) or prepend (for ``before``) instead of rebalancing the bucket.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from sqlmodel import Session

from core.errors import BucketMismatchError, InvalidArgumentError
from core.log import get_logger
from core.settings import POSITIONS, PositionSettings
from models.task import Task
from services.classifier import Bucket, BucketKind, is_overdue, primary_bucket
from services.task_repository import TaskRepository
from utils.datetime_utils import DayWindow


class Placement(str, Enum):
    TOP = "top"
    BOTTOM = "bottom"
    AFTER = "after"
    BEFORE = "before"


@dataclass(frozen=True)
class PlacementStrategy:
    placement: Placement
    reference_id: Optional[str] = None

    @classmethod
    def top(cls) -> "PlacementStrategy":
        return cls(Placement.TOP)

    @classmethod
    def bottom(cls) -> "PlacementStrategy":
        return cls(Placement.BOTTOM)

    @classmethod
    def after(cls, task_id: str) -> "PlacementStrategy":
        return cls(Placement.AFTER, task_id)

    @classmethod
    def before(cls, task_id: str) -> "PlacementStrategy":
        return cls(Placement.BEFORE, task_id)

    @property
    def needs_reference(self) -> bool:
        return self.placement in (Placement.AFTER, Placement.BEFORE)


def top_position(positions: Sequence[int], settings: PositionSettings = POSITIONS) -> int:
    if not positions:
        return settings.gap
    return min(positions) - settings.gap


def bottom_position(positions: Sequence[int], settings: PositionSettings = POSITIONS) -> int:
    if not positions:
        return settings.gap
    return max(positions) + settings.gap


def position_after(
    positions: Sequence[int], ref_position: int, settings: PositionSettings = POSITIONS
) -> int:
    successors = [p for p in positions if p > ref_position]
    if not successors:
        return bottom_position(positions, settings)
    candidate = (ref_position + min(successors)) // 2
    if candidate - ref_position < settings.min_gap:
        return bottom_position(positions, settings)
    return candidate


def position_before(
    positions: Sequence[int], ref_position: int, settings: PositionSettings = POSITIONS
) -> int:
    predecessors = [p for p in positions if p < ref_position]
    if not predecessors:
        return top_position(positions, settings)
    candidate = (max(predecessors) + ref_position) // 2
    if ref_position - candidate < settings.min_gap:
        return top_position(positions, settings)
    return candidate


def compute_position(
    positions: Sequence[int],
    strategy: PlacementStrategy,
    ref_position: Optional[int] = None,
    settings: PositionSettings = POSITIONS,
) -> int:
    """Pure placement arithmetic over the positions already in a bucket."""
    if strategy.placement is Placement.TOP:
        return top_position(positions, settings)
    if strategy.placement is Placement.BOTTOM:
        return bottom_position(positions, settings)
    if ref_position is None:
        raise InvalidArgumentError(f"Placement {strategy.placement.value} needs a reference position")
    if strategy.placement is Placement.AFTER:
        return position_after(positions, ref_position, settings)
    return position_before(positions, ref_position, settings)


def in_bucket(task: Task, bucket: Bucket, window: DayWindow) -> bool:
    if bucket.kind is BucketKind.OVERDUE:
        return is_overdue(task, window)
    return primary_bucket(task) == bucket


class PositionAllocator:
    def __init__(
        self,
        repository: Optional[TaskRepository] = None,
        settings: PositionSettings = POSITIONS,
    ) -> None:
        self.repository = repository or TaskRepository()
        self.settings = settings
        self.logger = get_logger("positions")

    def resolve_reference(
        self,
        session: Session,
        owner_id: str,
        bucket: Bucket,
        reference_id: str,
        window: DayWindow,
    ) -> Task:
        reference = self.repository.get_owned(session, owner_id, reference_id, label="Reference task")
        if not in_bucket(reference, bucket, window):
            raise BucketMismatchError(
                f"Reference task {reference_id} is in bucket {primary_bucket(reference)}, "
                f"not {bucket}"
            )
        return reference

    def allocate(
        self,
        session: Session,
        owner_id: str,
        bucket: Bucket,
        strategy: PlacementStrategy,
        *,
        window: DayWindow,
        exclude_id: Optional[str] = None,
        reference: Optional[Task] = None,
    ) -> int:
        """Return the position for a task placed into ``bucket``; nothing is written."""
        ref_position = None
        if strategy.needs_reference:
            if reference is None:
                reference = self.resolve_reference(
                    session, owner_id, bucket, strategy.reference_id, window
                )
            if bucket.kind is BucketKind.OVERDUE:
                ref_position = reference.overdue_position
            else:
                ref_position = reference.position
            if ref_position is None:
                raise InvalidArgumentError(
                    f"Reference task {reference.id} has no position in bucket {bucket}"
                )

        rows = self.repository.bucket_positions(
            session, owner_id, bucket, window, exclude_id=exclude_id
        )
        positions = [position for _, position in rows]
        position = compute_position(positions, strategy, ref_position, self.settings)
        self.logger.debug(
            "Allocated %s in %s (%s, ref=%s)",
            position,
            bucket,
            strategy.placement.value,
            strategy.reference_id,
        )
        return position


__all__ = [
    "Placement",
    "PlacementStrategy",
    "PositionAllocator",
    "bottom_position",
    "compute_position",
    "in_bucket",
    "position_after",
    "position_before",
    "top_position",
]
