import math
from typing import Any, Dict, List

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from bakerypos.core.config import settings


def clamp_limit(limit: int) -> int:
    return max(1, min(limit or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE))


def build_pagination(page: int, limit: int, total: int) -> Dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit) if total > 0 else 0
    }


async def count_rows(db: AsyncSession, query: Select) -> int:
    """Count the rows a filtered select would return, ignoring ordering."""
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    return (await db.execute(count_query)).scalar_one()


def paginated(data: List[Any], page: int, limit: int, total: int) -> Dict[str, Any]:
    return {"data": data, "pagination": build_pagination(page, limit, total)}
