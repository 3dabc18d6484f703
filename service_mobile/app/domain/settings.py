"""
Mobile settings rules for Trend Ankara Access Layer.
"""

import re
from typing import Any, Dict, Optional, Tuple

from shared.logging import get_logger
from ..adapters.settings_repository import SettingsRepository
from .models import MobileSettings, MobileSettingsUpdate, VersionCheck

# Stored group key -> settings fields it holds
SETTING_GROUPS: Dict[str, Tuple[str, ...]] = {
    "polls_config": ("showOnlyLastActivePoll", "enablePolls"),
    "news_config": ("maxNewsCount", "enableNews"),
    "app_config": ("maintenanceMode", "minimumAppVersion", "forceUpdate"),
    "player_config": ("playerLogoUrl",),
    "cards_config": ("cardDisplayMode", "maxFeaturedCards", "enableCardAnimation"),
}


def combine_settings(groups: Dict[str, Dict[str, Any]]) -> MobileSettings:
    """Flatten stored groups into one settings object; absent values take defaults."""
    values: Dict[str, Any] = {}
    for group, fields in SETTING_GROUPS.items():
        stored = groups.get(group) or {}
        for field in fields:
            if field in stored and stored[field] is not None:
                values[field] = stored[field]
    return MobileSettings(**values)


def map_settings_to_groups(changes: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Split flat setting changes into their storage groups, skipping empty groups."""
    grouped: Dict[str, Dict[str, Any]] = {}
    for group, fields in SETTING_GROUPS.items():
        subset = {field: changes[field] for field in fields if field in changes}
        if subset:
            grouped[group] = subset
    return grouped


def default_groups() -> Dict[str, Dict[str, Any]]:
    return map_settings_to_groups(MobileSettings().model_dump())


def parse_version(version: str) -> Tuple[int, ...]:
    parts = []
    for part in str(version).strip().split("."):
        match = re.match(r"\d+", part)
        parts.append(int(match.group()) if match else 0)
    return tuple(parts)


def compare_versions(left: str, right: str) -> int:
    """Compare dotted versions, padding the shorter one with zeros. Returns -1, 0 or 1."""
    a, b = parse_version(left), parse_version(right)
    width = max(len(a), len(b))
    a += (0,) * (width - len(a))
    b += (0,) * (width - len(b))
    return (a > b) - (a < b)


def check_app_version(client_version: str, settings: MobileSettings) -> VersionCheck:
    update_available = compare_versions(client_version, settings.minimumAppVersion) < 0
    return VersionCheck(
        updateAvailable=update_available,
        forceUpdate=update_available and settings.forceUpdate,
        minimumVersion=settings.minimumAppVersion,
    )


class ConfigService:
    """Loads and updates the grouped mobile settings."""

    def __init__(self, repository: SettingsRepository):
        self.repository = repository
        self.logger = get_logger("mobile.config_service")

    async def get_settings(self) -> MobileSettings:
        return combine_settings(await self.repository.get_groups())

    async def update_settings(self, update: MobileSettingsUpdate, updated_by: Optional[int] = None) -> MobileSettings:
        changes = update.model_dump(exclude_unset=True)
        groups = map_settings_to_groups(changes)
        if groups:
            await self.repository.merge_groups(groups, updated_by)
        return await self.get_settings()

    async def initialize_defaults(self) -> int:
        created = await self.repository.initialize_groups(default_groups())
        self.logger.info("Mobile settings initialized", created_groups=created)
        return created
