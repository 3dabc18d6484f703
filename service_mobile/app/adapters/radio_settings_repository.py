"""
radio_settings persistence.
"""

from typing import Any, Dict, Optional

from shared.logging import get_logger
from .database import Database

RADIO_COLUMNS = "id, stream_url, metadata_url, station_name, is_active, updated_at"


class RadioSettingsRepository:
    """Reads and updates the active radio_settings row."""

    def __init__(self, db: Database):
        self.db = db
        self.logger = get_logger("mobile.radio_settings_repository")

    async def get_active(self) -> Optional[Dict[str, Any]]:
        """Most recently updated active row, falling back to the most recent row."""
        row = await self.db.fetchrow(
            f"SELECT {RADIO_COLUMNS} FROM radio_settings WHERE is_active = TRUE "
            "ORDER BY updated_at DESC, id DESC LIMIT 1"
        )
        if row is not None:
            return row
        return await self.db.fetchrow(
            f"SELECT {RADIO_COLUMNS} FROM radio_settings ORDER BY updated_at DESC, id DESC LIMIT 1"
        )

    async def save(
        self,
        stream_url: str,
        metadata_url: Optional[str],
        station_name: str,
        updated_by: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Update the current row, or insert an active one when the table is empty."""
        async with self.db.transaction() as conn:
            current_id = await conn.fetchval(
                "SELECT id FROM radio_settings ORDER BY is_active DESC, updated_at DESC, id DESC LIMIT 1"
            )
            if current_id is None:
                row = await conn.fetchrow(
                    f"""
                    INSERT INTO radio_settings (stream_url, metadata_url, station_name, is_active, updated_by)
                    VALUES ($1, $2, $3, TRUE, $4)
                    RETURNING {RADIO_COLUMNS}
                    """,
                    stream_url,
                    metadata_url,
                    station_name,
                    updated_by,
                )
            else:
                row = await conn.fetchrow(
                    f"""
                    UPDATE radio_settings
                    SET stream_url = $1, metadata_url = $2, station_name = $3,
                        is_active = TRUE, updated_by = $4, updated_at = NOW()
                    WHERE id = $5
                    RETURNING {RADIO_COLUMNS}
                    """,
                    stream_url,
                    metadata_url,
                    station_name,
                    updated_by,
                    current_id,
                )
        self.logger.info("Radio settings saved", settings_id=row["id"])
        return dict(row)
