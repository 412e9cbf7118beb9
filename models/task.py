# taskline/models/task.py
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from core.priorities import DEFAULT_PRIORITY, Priority
from utils.datetime_utils import ensure_utc, parse_iso_date, parse_rfc3339, to_rfc3339_utc, utc_now


class TimeType(str, Enum):
    """How a due instant behaves when the owner changes timezone.

    ``fixed`` instants are absolute. ``floating`` (wall-clock time that moves
    with the owner) is reserved and not accepted yet.
    """

    FIXED = "fixed"
    FLOATING = "floating"


@dataclass(frozen=True)
class DueBy:
    date: str
    time: Optional[datetime] = None
    mode: TimeType = TimeType.FIXED

    @property
    def is_all_day(self) -> bool:
        return self.time is None

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date, "time": to_rfc3339_utc(self.time), "mode": self.mode.value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DueBy":
        """Build from the persisted ``{date, time, mode}`` shape.

        Raises ``ValueError`` for a malformed date or instant or an unknown mode.
        """
        raw_date = data.get("date")
        if not isinstance(raw_date, str) or parse_iso_date(raw_date) is None:
            raise ValueError(f"Malformed due date: {raw_date!r} (expected YYYY-MM-DD)")
        raw_time = data.get("time")
        instant = None
        if raw_time is not None and raw_time != "":
            if isinstance(raw_time, datetime):
                instant = raw_time
            elif isinstance(raw_time, str):
                instant = parse_rfc3339(raw_time)
            if instant is None:
                raise ValueError(f"Malformed due time: {raw_time!r} (expected RFC3339)")
        raw_mode = data.get("mode") or data.get("timeType") or TimeType.FIXED.value
        try:
            mode = TimeType(str(raw_mode).lower())
        except ValueError:
            raise ValueError(f"Unknown time mode: {raw_mode!r}") from None
        return cls(date=raw_date.strip(), time=ensure_utc(instant), mode=mode)


@dataclass(frozen=True)
class CompletedOn:
    date: str
    time: datetime
    mode: TimeType = TimeType.FIXED

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date, "time": to_rfc3339_utc(self.time), "mode": self.mode.value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CompletedOn":
        raw_date, raw_time = data.get("date"), data.get("time")
        instant = parse_rfc3339(raw_time) if isinstance(raw_time, str) else None
        if not isinstance(raw_date, str) or parse_iso_date(raw_date) is None or instant is None:
            raise ValueError(f"Malformed completion record: {dict(data)!r}")
        return cls(date=data["date"], time=instant, mode=TimeType(data.get("mode") or "fixed"))


class Task(SQLModel, table=True):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    owner_id: str = Field(index=True)
    title: str
    description: Optional[str] = None
    priority: Priority = Field(default=DEFAULT_PRIORITY)
    grouping_id: Optional[str] = Field(default=None, index=True)
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    completed: bool = Field(default=False)

    due_date: Optional[str] = Field(default=None, index=True)
    due_time: Optional[datetime] = None
    due_time_type: Optional[str] = None

    position: int = Field(default=0)
    overdue_position: Optional[int] = None

    completed_date: Optional[str] = None
    completed_time: Optional[datetime] = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def due_by(self) -> Optional[DueBy]:
        if not self.due_date:
            return None
        return DueBy(
            date=self.due_date,
            time=ensure_utc(self.due_time),
            mode=TimeType(self.due_time_type or TimeType.FIXED.value),
        )

    def set_due_by(self, due: Optional[DueBy]) -> None:
        if due is None:
            self.due_date = None
            self.due_time = None
            self.due_time_type = None
            return
        self.due_date = due.date
        self.due_time = ensure_utc(due.time)
        self.due_time_type = due.mode.value

    @property
    def completed_on(self) -> Optional[CompletedOn]:
        if not self.completed_date or self.completed_time is None:
            return None
        return CompletedOn(date=self.completed_date, time=ensure_utc(self.completed_time))

    def set_completed_on(self, record: Optional[CompletedOn]) -> None:
        if record is None:
            self.completed_date = None
            self.completed_time = None
            return
        self.completed_date = record.date
        self.completed_time = ensure_utc(record.time)

    def to_dict(self) -> Dict[str, Any]:
        due = self.due_by
        done = self.completed_on
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "title": self.title,
            "description": self.description,
            "priority": Priority(self.priority).value,
            "groupingId": self.grouping_id,
            "tags": list(self.tags or []),
            "completed": bool(self.completed),
            "dueBy": due.to_dict() if due else None,
            "completedOn": done.to_dict() if done else None,
            "position": self.position,
            "overduePosition": self.overdue_position,
            "createdAt": to_rfc3339_utc(self.created_at),
            "updatedAt": to_rfc3339_utc(self.updated_at),
        }


__all__ = ["CompletedOn", "DueBy", "Task", "TimeType"]
