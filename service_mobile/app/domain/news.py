"""
News listing for Trend Ankara Access Layer.
"""

from typing import Any, Dict, Optional

from ..adapters.news_repository import NewsRepository
from .cards import to_iso
from .models import MobileNewsItem, MobileSettings, PaginatedNews, Pagination

MAX_PAGE_SIZE = 50


def clamp_limit(limit: int) -> int:
    return min(MAX_PAGE_SIZE, max(1, limit))


def empty_page() -> Dict[str, Any]:
    return PaginatedNews(
        items=[],
        pagination=Pagination(page=1, limit=0, total=0, hasNext=False, hasPrev=False),
    ).model_dump()


def news_item_from_row(row: Dict[str, Any]) -> MobileNewsItem:
    return MobileNewsItem(
        id=row["id"],
        title=row["title"],
        slug=row["slug"],
        summary=row.get("summary"),
        featuredImage=row.get("featured_image") or None,
        category=row.get("category_name"),
        categoryId=row.get("category_id"),
        isFeatured=bool(row.get("is_featured")),
        isBreaking=bool(row.get("is_breaking")),
        publishedAt=to_iso(row.get("published_at")),
        views=int(row.get("views") or 0),
    )


class NewsService:
    def __init__(self, repository: NewsRepository):
        self.repository = repository

    async def list_news(
        self,
        page: int,
        limit: int,
        settings: MobileSettings,
        category_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """One page of news, never reaching past ``maxNewsCount`` items overall."""
        if not settings.enableNews:
            return empty_page()

        page = max(1, page)
        effective_limit = min(clamp_limit(limit), settings.maxNewsCount)
        offset = (page - 1) * effective_limit
        if offset >= settings.maxNewsCount:
            rows = []
            total = min(await self._count(category_id), settings.maxNewsCount)
        else:
            remaining = settings.maxNewsCount - offset
            rows, total = await self.repository.list_active(offset, min(effective_limit, remaining), category_id)
            total = min(total, settings.maxNewsCount)

        position = offset + len(rows)
        return PaginatedNews(
            items=[news_item_from_row(row) for row in rows],
            pagination=Pagination(
                page=page,
                limit=effective_limit,
                total=total,
                hasNext=position < total,
                hasPrev=page > 1,
            ),
        ).model_dump()

    async def _count(self, category_id: Optional[int]) -> int:
        _, total = await self.repository.list_active(0, 1, category_id)
        return total
