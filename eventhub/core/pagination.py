import math
from typing import Any, Generic, TypeVar
from pydantic import BaseModel, computed_field
from sqlalchemy import Select, select, func
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class PageDTO(BaseModel, Generic[T]):
    items: list[T]
    total: int
    page: int
    page_size: int

    @computed_field
    @property
    def pages(self) -> int:
        return max(1, math.ceil(self.total / self.page_size))

    @computed_field
    @property
    def has_next(self) -> bool:
        return self.page < self.pages


async def fetch_page(db: AsyncSession, stmt: Select, *, page: int, page_size: int) -> tuple[list[Any], int]:
    total = await db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))
    rows = await db.scalars(stmt.limit(page_size).offset((page - 1) * page_size))
    return list(rows.all()), int(total or 0)
