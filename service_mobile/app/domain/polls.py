"""
Poll reads and voting for Trend Ankara Access Layer.
"""

from typing import Any, Dict, List, Optional

from shared.errors import NotFoundError
from shared.logging import get_logger
from ..adapters.polls_repository import PollsRepository
from .cards import to_iso
from .models import MobilePoll, MobilePollItem, MobileSettings, VoteCount, VoteRequest, VoteResult

ALREADY_VOTED = "Bu ankette zaten oy kullandınız"
VOTE_FAILED = "Oy kaydedilemedi. Lütfen tekrar deneyin."
VOTE_RECORDED = "Oyunuz başarıyla kaydedildi"


def percentage(count: int, total: int) -> int:
    return round(count / total * 100) if total > 0 else 0


def poll_from_rows(poll: Dict[str, Any], items: List[Dict[str, Any]]) -> MobilePoll:
    total = sum(int(item.get("vote_count") or 0) for item in items)
    return MobilePoll(
        id=poll["id"],
        title=poll["title"],
        description=poll.get("description"),
        pollType=poll.get("poll_type"),
        startDate=to_iso(poll.get("start_date")),
        endDate=to_iso(poll.get("end_date")),
        isActive=bool(poll.get("is_active", True)),
        totalVotes=total,
        items=[
            MobilePollItem(
                id=item["id"],
                title=item["title"],
                description=item.get("description"),
                imageUrl=item.get("image_url") or None,
                voteCount=int(item.get("vote_count") or 0),
                percentage=percentage(int(item.get("vote_count") or 0), total),
                displayOrder=item.get("display_order") or 0,
            )
            for item in items
        ],
    )


class PollService:
    def __init__(self, repository: PollsRepository):
        self.repository = repository
        self.logger = get_logger("mobile.poll_service")

    async def get_current_poll(self, settings: MobileSettings) -> Optional[Dict[str, Any]]:
        """The poll shown in the app, or None when polls are disabled or none is running.

        Running polls come newest first; ``showOnlyLastActivePoll`` selects the
        last one in that order instead of the first.
        """
        if not settings.enablePolls:
            return None
        polls = await self.repository.list_active()
        if not polls:
            return None
        current = polls[-1] if settings.showOnlyLastActivePoll else polls[0]
        items = await self.repository.list_items(current["id"])
        return poll_from_rows(current, items).model_dump()

    async def has_voted(self, poll_id: int, device_id: str) -> bool:
        return await self.repository.has_voted(poll_id, device_id)

    async def submit_vote(
        self,
        poll_id: int,
        request: VoteRequest,
        ip_address: Optional[str],
        user_agent: Optional[str] = None,
    ) -> VoteResult:
        poll = await self.repository.get(poll_id)
        if poll is None or not poll.get("is_active"):
            raise NotFoundError("Anket bulunamadı", {"poll_id": poll_id})

        device_id = request.deviceInfo.deviceId
        if await self.repository.has_voted(poll_id, device_id, ip_address):
            self.logger.info("Duplicate vote rejected", poll_id=poll_id)
            return VoteResult(success=False, message=ALREADY_VOTED)

        recorded = await self.repository.record_vote(
            poll_id,
            request.itemId,
            device_id,
            ip_address or "unknown",
            request.deviceInfo.userAgent or user_agent or "mobile-app",
        )
        if not recorded:
            return VoteResult(success=False, message=VOTE_FAILED)

        items = await self.repository.list_items(poll_id)
        total = sum(int(item.get("vote_count") or 0) for item in items)
        counts = [
            VoteCount(
                itemId=item["id"],
                voteCount=int(item.get("vote_count") or 0),
                percentage=percentage(int(item.get("vote_count") or 0), total),
            )
            for item in items
        ]
        self.logger.info("Vote recorded", poll_id=poll_id, item_id=request.itemId)
        return VoteResult(success=True, message=VOTE_RECORDED, updatedCounts=counts)
