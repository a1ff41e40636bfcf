"""
Offset pagination over filtered, ordered statements
"""

from dataclasses import dataclass
from typing import Any, List, Tuple

from fastapi import Query
from sqlmodel import func, select
from sqlmodel.ext.asyncio.session import AsyncSession

from housekeeping.core.config import get_settings

settings = get_settings()


@dataclass(frozen=True)
class PageParams:
    """1-indexed page and page size"""
    page: int = 1
    limit: int = settings.DEFAULT_PAGE_SIZE

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_params(
    page: int = Query(1, ge=1, description="Page number, starting at 1"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
) -> PageParams:
    """Dependency reading ``page`` and ``limit`` query parameters"""
    return PageParams(page=page, limit=limit)


async def paginate(session: AsyncSession, statement: Any, params: PageParams) -> Tuple[List[Any], int]:
    """Run ``statement`` for one page and count every matching row"""
    count_statement = select(func.count()).select_from(statement.order_by(None).subquery())
    total = (await session.exec(count_statement)).one()
    result = await session.exec(statement.offset(params.offset).limit(params.limit))
    return list(result.all()), total
