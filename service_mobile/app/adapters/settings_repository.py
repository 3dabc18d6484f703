"""
mobile_settings persistence.

Settings are stored as one JSONB document per group key
(``polls_config``, ``news_config``, ...).
"""

import json
from typing import Any, Dict, Optional

from shared.logging import get_logger
from .database import Database


def _decode(value: Any) -> Any:
    if isinstance(value, (str, bytes)):
        return json.loads(value)
    return value


class SettingsRepository:
    """Reads and merges grouped settings documents."""

    def __init__(self, db: Database):
        self.db = db
        self.logger = get_logger("mobile.settings_repository")

    async def get_groups(self) -> Dict[str, Dict[str, Any]]:
        rows = await self.db.fetch(
            "SELECT setting_key, setting_value FROM mobile_settings ORDER BY setting_key"
        )
        groups: Dict[str, Dict[str, Any]] = {}
        for row in rows:
            value = _decode(row["setting_value"])
            groups[row["setting_key"]] = value if isinstance(value, dict) else {}
        return groups

    async def merge_groups(self, groups: Dict[str, Dict[str, Any]], updated_by: Optional[int] = None) -> None:
        """Merge each group's keys into its stored document in one transaction."""
        async with self.db.transaction() as conn:
            for key, values in groups.items():
                await conn.execute(
                    """
                    INSERT INTO mobile_settings (setting_key, setting_value, updated_by, updated_at)
                    VALUES ($1, $2::jsonb, $3, NOW())
                    ON CONFLICT (setting_key) DO UPDATE
                    SET setting_value = COALESCE(mobile_settings.setting_value, '{}'::jsonb) || EXCLUDED.setting_value,
                        updated_by = EXCLUDED.updated_by,
                        updated_at = NOW()
                    """,
                    key,
                    json.dumps(values),
                    updated_by,
                )
        self.logger.info("Mobile settings updated", groups=sorted(groups))

    async def initialize_groups(self, groups: Dict[str, Dict[str, Any]]) -> int:
        """Insert missing groups; existing rows are left untouched."""
        created = 0
        async with self.db.transaction() as conn:
            for key, values in groups.items():
                inserted = await conn.fetchval(
                    """
                    INSERT INTO mobile_settings (setting_key, setting_value, description)
                    VALUES ($1, $2::jsonb, $3)
                    ON CONFLICT (setting_key) DO NOTHING
                    RETURNING setting_key
                    """,
                    key,
                    json.dumps(values),
                    f"Mobile {key.replace('_', ' ')}",
                )
                if inserted is not None:
                    created += 1
        return created
