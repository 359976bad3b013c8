from dataclasses import dataclass
from typing import Annotated, Any

from fastapi import Depends, Query
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.core.deps import AppSettings
from learnhub.schemas.base import Page


@dataclass(frozen=True)
class PageParams:
    page: int
    page_size: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def get_page_params(
    settings: AppSettings,
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
) -> PageParams:
    size = min(page_size or settings.default_page_size, settings.max_page_size)
    return PageParams(page=page, page_size=size)


Pagination = Annotated[PageParams, Depends(get_page_params)]


async def paginate(db: AsyncSession, query: Select, params: PageParams) -> dict[str, Any]:
    """Run `query` for one page and count the full result set."""
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_query)).scalar() or 0

    result = await db.execute(query.offset(params.offset).limit(params.page_size))
    items = result.scalars().all()

    return Page.build(items, total, params.page, params.page_size)
