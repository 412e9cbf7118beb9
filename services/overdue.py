from __future__ import annotations

from typing import List, Sequence

from core.log import get_logger
from core.priorities import priority_rank
from core.settings import POSITIONS, PositionSettings
from models.task import Task
from services.classifier import is_overdue
from utils.datetime_utils import DayWindow, ensure_utc, utc_now


def _layout_key(task: Task):
    # Priority first, then oldest due date, then the task's old slot in its day.
    return (
        -priority_rank(task.priority),
        task.due_date or "",
        task.position,
        ensure_utc(task.created_at) or utc_now(),
        task.id,
    )


class OverduePositionAssigner:
    """Lazily gives overdue tasks a slot in the overdue ordering.

    Tasks that already hold an ``overdue_position`` keep it; newcomers are laid
    out after the current maximum. Running it again over the same set changes
    nothing.
    """

    def __init__(self, settings: PositionSettings = POSITIONS) -> None:
        self.settings = settings
        self.logger = get_logger("overdue")

    def unpositioned(self, tasks: Sequence[Task]) -> List[Task]:
        return [task for task in tasks if task.overdue_position is None]

    def assign(self, tasks: Sequence[Task]) -> List[Task]:
        """Assign positions in place and return the tasks that changed."""
        positioned = [task.overdue_position for task in tasks if task.overdue_position is not None]
        pending = sorted(self.unpositioned(tasks), key=_layout_key)
        if not pending:
            return []
        base = max(positioned) if positioned else 0
        for index, task in enumerate(pending):
            task.overdue_position = base + (index + 1) * self.settings.gap
            task.updated_at = utc_now()
        self.logger.info(
            "Assigned overdue positions to %d task(s) after %s", len(pending), base
        )
        return pending

    def release(self, tasks: Sequence[Task], window: DayWindow) -> List[Task]:
        """Clear ``overdue_position`` on tasks that are no longer overdue."""
        released = []
        for task in tasks:
            if task.overdue_position is not None and not is_overdue(task, window):
                task.overdue_position = None
                task.updated_at = utc_now()
                released.append(task)
        if released:
            self.logger.info("Cleared stale overdue positions on %d task(s)", len(released))
        return released


__all__ = ["OverduePositionAssigner"]
