"""ORM models exposed by the Taskline application."""
from .task import CompletedOn, DueBy, Task, TimeType
from .bucket_state import BucketState

__all__ = ["BucketState", "CompletedOn", "DueBy", "Task", "TimeType"]
