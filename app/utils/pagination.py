"""
Pagination utilities
"""

from typing import Sequence
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

def page_count(total: int, size: int) -> int:
    """Number of pages needed for total items"""
    return (total + size - 1) // size

async def paginate(
    db: AsyncSession,
    query: Select,
    page: int = 1,
    size: int = 20
) -> dict:
    """
    Paginate query results

    Args:
        db: Database session
        query: SQLAlchemy query
        page: Page number
        size: Page size

    Returns:
        Dictionary with pagination data
    """
    # Get total count
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = await db.scalar(count_query) or 0

    # Apply pagination
    offset = (page - 1) * size
    query = query.offset(offset).limit(size)

    # Execute query
    result = await db.execute(query)
    items = result.scalars().all()

    return {
        "items": items,
        "total": total,
        "page": page,
        "size": size,
        "pages": page_count(total, size)
    }

def paginate_list(items: Sequence, page: int = 1, size: int = 20) -> dict:
    """Paginate an already materialized, already ordered sequence"""
    total = len(items)
    offset = (page - 1) * size

    return {
        "items": list(items[offset:offset + size]),
        "total": total,
        "page": page,
        "size": size,
        "pages": page_count(total, size)
    }
