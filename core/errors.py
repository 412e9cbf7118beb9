"""Exceptions raised by the task services."""
from __future__ import annotations


class TaskError(Exception):
    """Base class; ``status`` mirrors the HTTP code a transport would use."""

    status = 500


class NotFoundError(TaskError):
    status = 404


class ForbiddenError(TaskError):
    status = 403


class InvalidArgumentError(TaskError, ValueError):
    status = 400


class BucketMismatchError(InvalidArgumentError):
    """Acting and reference task do not share a bucket."""


class ConflictError(TaskError):
    """A concurrent write changed the bucket between read and write."""

    status = 409


__all__ = [
    "BucketMismatchError",
    "ConflictError",
    "ForbiddenError",
    "InvalidArgumentError",
    "NotFoundError",
    "TaskError",
]
