"""
news persistence.
"""

from typing import Any, Dict, List, Optional, Tuple

from .database import Database


class NewsRepository:
    def __init__(self, db: Database):
        self.db = db

    async def list_active(
        self,
        offset: int,
        limit: int,
        category_id: Optional[int] = None,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Return one page of published news and the total matching count."""
        conditions = ["n.deleted_at IS NULL", "n.is_active = TRUE"]
        args: List[Any] = []
        if category_id is not None:
            args.append(category_id)
            conditions.append(f"n.category_id = ${len(args)}")
        where = " AND ".join(conditions)

        total = await self.db.fetchval(f"SELECT COUNT(*) FROM news n WHERE {where}", *args)

        args.extend([limit, offset])
        rows = await self.db.fetch(
            f"""
            SELECT n.id, n.title, n.slug, n.summary, n.featured_image, n.category_id,
                   c.name AS category_name, n.is_featured, n.is_breaking, n.published_at, n.views
            FROM news n
            LEFT JOIN news_categories c ON c.id = n.category_id
            WHERE {where}
            ORDER BY n.published_at DESC NULLS LAST, n.id DESC
            LIMIT ${len(args) - 1} OFFSET ${len(args)}
            """,
            *args,
        )
        return rows, int(total or 0)
