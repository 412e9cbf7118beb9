"""Temporal classification of tasks and the ordering bucket they live in.

Classification is derived at read time from ``due_by``, ``completed`` and the
owner's current day; nothing here touches the database.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo

from core.errors import InvalidArgumentError
from core.settings import VIEWS
from models.task import Task
from utils.datetime_utils import DayWindow, day_window, ensure_utc, resolve_timezone


class Classification(str, Enum):
    INBOX = "inbox"
    UNSCHEDULED = "unscheduled"
    DUE_TODAY = "due_today"
    OVERDUE = "overdue"
    UPCOMING = "upcoming"
    PAST = "past"


class BucketKind(str, Enum):
    INBOX = "inbox"
    DATE = "date"
    GROUP = "group"
    OVERDUE = "overdue"


@dataclass(frozen=True)
class Bucket:
    kind: BucketKind
    value: Optional[str] = None

    @property
    def key(self) -> str:
        if self.value is None:
            return self.kind.value
        return f"{self.kind.value}:{self.value}"

    def __str__(self) -> str:
        return self.key


INBOX_BUCKET = Bucket(BucketKind.INBOX)
OVERDUE_BUCKET = Bucket(BucketKind.OVERDUE)


def date_bucket(iso_date: str) -> Bucket:
    return Bucket(BucketKind.DATE, iso_date)


def group_bucket(grouping_id: str) -> Bucket:
    return Bucket(BucketKind.GROUP, grouping_id)


def owner_timezone(name: Optional[str]) -> ZoneInfo:
    """Resolve the caller-asserted timezone; missing means ``VIEWS.default_timezone``."""
    tz = resolve_timezone(name or VIEWS.default_timezone)
    if tz is None:
        raise InvalidArgumentError(f"Unknown timezone: {name!r}")
    return tz


def current_window(now: datetime, timezone_name: Optional[str]) -> DayWindow:
    return day_window(now, owner_timezone(timezone_name))


def primary_bucket(task: Task) -> Bucket:
    """The storage bucket ``task.position`` is relative to."""
    if task.due_date:
        return date_bucket(task.due_date)
    if task.grouping_id:
        return group_bucket(task.grouping_id)
    return INBOX_BUCKET


def classify(task: Task, window: DayWindow) -> Classification:
    due = task.due_by
    if due is None:
        return Classification.INBOX if not task.grouping_id else Classification.UNSCHEDULED

    today = window.today_str
    if not task.completed and due.date < today:
        return Classification.OVERDUE

    if not due.is_all_day:
        instant = ensure_utc(due.time)
        if window.start <= instant < window.end:
            return Classification.DUE_TODAY
        if instant >= window.end:
            return Classification.UPCOMING

    if due.date < today:
        return Classification.PAST
    if due.date == today:
        return Classification.DUE_TODAY
    return Classification.UPCOMING


def is_overdue(task: Task, window: DayWindow) -> bool:
    return classify(task, window) is Classification.OVERDUE


def completed_in(task: Task, window: DayWindow) -> bool:
    return bool(task.completed) and window.contains(task.completed_time)


__all__ = [
    "Bucket",
    "BucketKind",
    "Classification",
    "INBOX_BUCKET",
    "OVERDUE_BUCKET",
    "classify",
    "completed_in",
    "current_window",
    "date_bucket",
    "group_bucket",
    "is_overdue",
    "owner_timezone",
    "primary_bucket",
]
