"""Version counter guarding the positions inside one ordering bucket."""
from __future__ import annotations

from datetime import datetime

from sqlmodel import Field, SQLModel

from utils.datetime_utils import utc_now


class BucketState(SQLModel, table=True):
    owner_id: str = Field(primary_key=True)
    bucket_key: str = Field(primary_key=True)
    version: int = Field(default=0)
    updated_at: datetime = Field(default_factory=utc_now)


__all__ = ["BucketState"]
