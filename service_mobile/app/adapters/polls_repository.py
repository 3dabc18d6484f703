"""
polls, poll_items and poll_votes persistence.
"""

from typing import Any, Dict, List, Optional

from shared.logging import get_logger
from .database import Database


class PollsRepository:
    def __init__(self, db: Database):
        self.db = db
        self.logger = get_logger("mobile.polls_repository")

    async def list_active(self) -> List[Dict[str, Any]]:
        """Active, running polls, newest first."""
        return await self.db.fetch(
            """
            SELECT p.id, p.title, p.description, p.poll_type, p.start_date, p.end_date, p.is_active,
                   (SELECT COUNT(*) FROM poll_votes v WHERE v.poll_id = p.id) AS total_votes
            FROM polls p
            WHERE p.is_active = TRUE
              AND p.deleted_at IS NULL
              AND (p.start_date IS NULL OR p.start_date <= NOW())
              AND (p.end_date IS NULL OR p.end_date >= NOW())
            ORDER BY p.created_at DESC
            """
        )

    async def get(self, poll_id: int) -> Optional[Dict[str, Any]]:
        return await self.db.fetchrow(
            "SELECT id, title, is_active FROM polls WHERE id = $1 AND deleted_at IS NULL",
            poll_id,
        )

    async def list_items(self, poll_id: int) -> List[Dict[str, Any]]:
        return await self.db.fetch(
            """
            SELECT pi.id, pi.title, pi.description, pi.image_url, pi.display_order,
                   (SELECT COUNT(*) FROM poll_votes v WHERE v.poll_item_id = pi.id) AS vote_count
            FROM poll_items pi
            WHERE pi.poll_id = $1 AND pi.is_active = TRUE
            ORDER BY pi.display_order, pi.id
            """,
            poll_id,
        )

    async def has_voted(self, poll_id: int, device_id: str, ip_address: Optional[str] = None) -> bool:
        """True when the device, or the IP address when given, already voted."""
        if ip_address:
            vote_id = await self.db.fetchval(
                "SELECT id FROM poll_votes WHERE poll_id = $1 AND (device_id = $2 OR ip_address = $3) LIMIT 1",
                poll_id,
                device_id,
                ip_address,
            )
        else:
            vote_id = await self.db.fetchval(
                "SELECT id FROM poll_votes WHERE poll_id = $1 AND device_id = $2 LIMIT 1",
                poll_id,
                device_id,
            )
        return vote_id is not None

    async def record_vote(
        self,
        poll_id: int,
        item_id: int,
        device_id: str,
        ip_address: str,
        user_agent: str,
    ) -> bool:
        """Insert a vote for an item belonging to ``poll_id``; False when the item does not."""
        inserted = await self.db.fetchval(
            """
            INSERT INTO poll_votes (poll_id, poll_item_id, device_id, ip_address, user_agent)
            SELECT $1, pi.id, $3, $4, $5
            FROM poll_items pi
            WHERE pi.id = $2 AND pi.poll_id = $1 AND pi.is_active = TRUE
            RETURNING id
            """,
            poll_id,
            item_id,
            device_id,
            ip_address,
            user_agent,
        )
        return inserted is not None
