"""Utility helpers for task priorities."""
from __future__ import annotations

from enum import Enum
from typing import Dict


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


# Higher rank sorts first when overdue tasks are laid out.
PRIORITY_RANK: Dict[Priority, int] = {
    Priority.LOW: 1,
    Priority.MEDIUM: 2,
    Priority.HIGH: 3,
}

DEFAULT_PRIORITY = Priority.MEDIUM


def parse_priority(value: "Priority | str | None") -> Priority:
    """Return the matching ``Priority``; ``None`` yields the default.

    Raises ``ValueError`` for names outside LOW/MEDIUM/HIGH.
    """
    if value is None:
        return DEFAULT_PRIORITY
    if isinstance(value, Priority):
        return value
    try:
        return Priority(str(value).strip().upper())
    except ValueError:
        raise ValueError(f"Unknown priority: {value!r} (expected LOW, MEDIUM or HIGH)") from None


def priority_rank(value: "Priority | str | None") -> int:
    try:
        return PRIORITY_RANK[parse_priority(value)]
    except ValueError:
        return PRIORITY_RANK[DEFAULT_PRIORITY]


__all__ = ["DEFAULT_PRIORITY", "PRIORITY_RANK", "Priority", "parse_priority", "priority_rank"]
