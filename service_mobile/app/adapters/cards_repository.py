"""
mobile_cards persistence.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

from shared.logging import get_logger
from .database import Database

CARD_COLUMNS = """
    id, title, description, image_url, redirect_url, is_featured,
    display_order, is_active, created_at, updated_at
"""

# API field -> column
UPDATABLE_COLUMNS = {
    "title": "title",
    "description": "description",
    "imageUrl": "image_url",
    "redirectUrl": "redirect_url",
    "isFeatured": "is_featured",
    "displayOrder": "display_order",
    "isActive": "is_active",
}


def affected_rows(status: str) -> int:
    """Row count from an asyncpg command tag such as ``UPDATE 3``."""
    try:
        return int(status.split()[-1])
    except (AttributeError, IndexError, ValueError):
        return 0


class CardsRepository:
    """Reads and writes mobile_cards rows. Deleted cards are kept with ``deleted_at`` set."""

    def __init__(self, db: Database):
        self.db = db
        self.logger = get_logger("mobile.cards_repository")

    async def list_active(self, featured: Optional[bool] = None) -> List[Dict[str, Any]]:
        query = f"SELECT {CARD_COLUMNS} FROM mobile_cards WHERE is_active = TRUE AND deleted_at IS NULL"
        args: List[Any] = []
        if featured is not None:
            args.append(featured)
            query += f" AND is_featured = ${len(args)}"
        query += " ORDER BY is_featured DESC, display_order ASC, created_at DESC"
        return await self.db.fetch(query, *args)

    async def list_all(self) -> List[Dict[str, Any]]:
        return await self.db.fetch(
            f"SELECT {CARD_COLUMNS} FROM mobile_cards WHERE deleted_at IS NULL "
            "ORDER BY is_featured DESC, display_order ASC, created_at DESC"
        )

    async def get(self, card_id: int, active_only: bool = True) -> Optional[Dict[str, Any]]:
        query = f"SELECT {CARD_COLUMNS} FROM mobile_cards WHERE id = $1 AND deleted_at IS NULL"
        if active_only:
            query += " AND is_active = TRUE"
        return await self.db.fetchrow(query, card_id)

    async def create(self, data: Dict[str, Any], created_by: Optional[int] = None) -> Dict[str, Any]:
        async with self.db.transaction() as conn:
            display_order = data.get("displayOrder")
            if display_order is None:
                display_order = await conn.fetchval(
                    "SELECT COALESCE(MAX(display_order), 0) + 1 FROM mobile_cards "
                    "WHERE is_featured = $1 AND deleted_at IS NULL",
                    data.get("isFeatured", False),
                )
            row = await conn.fetchrow(
                f"""
                INSERT INTO mobile_cards (
                    title, description, image_url, redirect_url,
                    is_featured, display_order, is_active, created_by
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                RETURNING {CARD_COLUMNS}
                """,
                data["title"],
                data.get("description"),
                data.get("imageUrl"),
                data.get("redirectUrl"),
                data.get("isFeatured", False),
                display_order,
                data.get("isActive", True),
                created_by,
            )
        self.logger.info("Card created", card_id=row["id"])
        return dict(row)

    async def update(self, card_id: int, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        assignments = []
        args: List[Any] = []
        for field, value in changes.items():
            column = UPDATABLE_COLUMNS.get(field)
            if column is None:
                continue
            args.append(value)
            assignments.append(f"{column} = ${len(args)}")

        if not assignments:
            return await self.get(card_id, active_only=False)

        args.append(card_id)
        query = (
            f"UPDATE mobile_cards SET {', '.join(assignments)}, updated_at = NOW() "
            f"WHERE id = ${len(args)} AND deleted_at IS NULL RETURNING {CARD_COLUMNS}"
        )
        return await self.db.fetchrow(query, *args)

    async def soft_delete(self, card_id: int) -> bool:
        status = await self.db.execute(
            "UPDATE mobile_cards SET deleted_at = NOW(), is_active = FALSE "
            "WHERE id = $1 AND deleted_at IS NULL",
            card_id,
        )
        return affected_rows(status) > 0

    async def reorder(self, orders: Iterable[Tuple[int, int]]) -> int:
        updated = 0
        async with self.db.transaction() as conn:
            for card_id, order in orders:
                status = await conn.execute(
                    "UPDATE mobile_cards SET display_order = $1, updated_at = NOW() "
                    "WHERE id = $2 AND deleted_at IS NULL",
                    order,
                    card_id,
                )
                updated += affected_rows(status)
        return updated
