"""
Content card operations for Trend Ankara Access Layer.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from shared.errors import NotFoundError, ValidationError
from shared.logging import get_logger
from ..adapters.cards_repository import CardsRepository
from .models import CardInput, CardUpdate, MobileCard, ReorderRequest

CARD_TYPES = {"featured": True, "normal": False}

CARD_NOT_FOUND = "Kart bulunamadı"


def to_iso(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def card_from_row(row: Dict[str, Any]) -> MobileCard:
    return MobileCard(
        id=row["id"],
        title=row["title"],
        description=row.get("description"),
        imageUrl=row.get("image_url") or None,
        redirectUrl=row.get("redirect_url") or None,
        isFeatured=bool(row.get("is_featured")),
        displayOrder=row.get("display_order") or 0,
        isActive=bool(row.get("is_active", True)),
        createdAt=to_iso(row.get("created_at")),
        updatedAt=to_iso(row.get("updated_at")),
    )


def parse_card_type(card_type: Optional[str]) -> Optional[bool]:
    if card_type is None or card_type == "":
        return None
    if card_type not in CARD_TYPES:
        raise ValidationError("Geçersiz kart türü", {"type": card_type})
    return CARD_TYPES[card_type]


class CardService:
    """Maps mobile_cards rows to API payloads and applies admin changes."""

    def __init__(self, repository: CardsRepository):
        self.repository = repository
        self.logger = get_logger("mobile.card_service")

    async def list_cards(self, card_type: Optional[str] = None) -> List[Dict[str, Any]]:
        rows = await self.repository.list_active(parse_card_type(card_type))
        return [card_from_row(row).model_dump() for row in rows]

    async def get_card(self, card_id: int) -> Dict[str, Any]:
        row = await self.repository.get(card_id)
        if row is None:
            raise NotFoundError(CARD_NOT_FOUND, {"card_id": card_id})
        return card_from_row(row).model_dump()

    async def list_all(self) -> List[Dict[str, Any]]:
        return [card_from_row(row).model_dump() for row in await self.repository.list_all()]

    async def create_card(self, data: CardInput, created_by: Optional[int] = None) -> Dict[str, Any]:
        row = await self.repository.create(data.model_dump(), created_by)
        return card_from_row(row).model_dump()

    async def update_card(self, card_id: int, data: CardUpdate) -> Dict[str, Any]:
        row = await self.repository.update(card_id, data.model_dump(exclude_unset=True))
        if row is None:
            raise NotFoundError(CARD_NOT_FOUND, {"card_id": card_id})
        return card_from_row(row).model_dump()

    async def delete_card(self, card_id: int) -> None:
        if not await self.repository.soft_delete(card_id):
            raise NotFoundError(CARD_NOT_FOUND, {"card_id": card_id})
        self.logger.info("Card deleted", card_id=card_id)

    async def reorder_cards(self, request: ReorderRequest) -> int:
        updated = await self.repository.reorder([(item.id, item.order) for item in request.orders])
        self.logger.info("Cards reordered", requested=len(request.orders), updated=updated)
        return updated
