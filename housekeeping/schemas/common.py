"""
Shared schema building blocks
"""

from pydantic import AfterValidator, BaseModel
from typing import Annotated, Generic, List, TypeVar
from datetime import datetime, timezone
import math

T = TypeVar("T")


def _to_utc(value: datetime) -> datetime:
    # Naive input is taken as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_to_utc)]


class Page(BaseModel, Generic[T]):
    """One page of a filtered, ordered listing"""
    items: List[T]
    total: int
    page: int
    limit: int
    total_pages: int

    @classmethod
    def build(cls, items: List[T], total: int, page: int, limit: int) -> "Page[T]":
        return cls(
            items=items,
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if limit else 0,
        )


class MessageResponse(BaseModel):
    message: str
