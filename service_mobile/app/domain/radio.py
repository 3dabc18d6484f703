"""
Radio stream configuration for the mobile app.

Configuration and the stream connectivity probe have separate freshness
windows: a configuration miss reuses the last probe result while it is
younger than the connectivity TTL and the stream URL is unchanged.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from shared.config import BaseConfig
from shared.errors import ValidationError
from shared.logging import get_logger
from ..adapters.radio_settings_repository import RadioSettingsRepository
from ..adapters.stream_checker import ProbeResult, StreamConnectivityChecker, validate_stream_url
from ..caching.conditional import CACHE_MISS, CACHE_STALE, CachedResult, CachePolicy, ConditionalResponseBuilder
from ..caching.invalidation import InvalidationBroadcaster, InvalidationEvent
from .models import MobileRadioConfig, RadioSettingsUpdate

RADIO_CONFIG_KEY = "mobile:radio:config"

SOURCE_DATABASE = "database"
SOURCE_ENVIRONMENT = "environment"
SOURCE_CACHE = "cache"


@dataclass(frozen=True)
class ConnectionTest:
    stream_url: str
    status: str
    tested_at: float

    @property
    def tested_at_iso(self) -> str:
        return datetime.fromtimestamp(self.tested_at, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def validate_radio_settings(update: RadioSettingsUpdate) -> None:
    """Raise ``ValidationError`` for settings the player cannot use."""
    error = validate_stream_url(update.stream_url)
    if error:
        raise ValidationError(error, {"field": "stream_url"})
    if update.metadata_url:
        error = validate_stream_url(update.metadata_url)
        if error:
            raise ValidationError("Geçersiz metadata adresi", {"field": "metadata_url"})
    name = update.station_name.strip()
    if not name:
        raise ValidationError("İstasyon adı boş olamaz", {"field": "station_name"})
    if len(name) > 255:
        raise ValidationError("İstasyon adı 255 karakteri geçemez", {"field": "station_name"})


class RadioConfigService:
    """Serves ``MobileRadioConfig`` through the conditional cache."""

    def __init__(
        self,
        repository: RadioSettingsRepository,
        checker: StreamConnectivityChecker,
        builder: ConditionalResponseBuilder,
        config: BaseConfig,
        broadcaster: Optional[InvalidationBroadcaster] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.repository = repository
        self.checker = checker
        self.builder = builder
        self.config = config
        self.broadcaster = broadcaster
        self.clock = clock
        self.logger = get_logger("mobile.radio_config")
        self.policy = CachePolicy(
            namespace="radio",
            ttl=config.radio_config_ttl,
            stale_while_revalidate=config.radio_stale_while_revalidate,
            resource="radio",
            error_message="Radyo yapılandırması alınamadı",
        )
        self.connection_ttl = config.radio_connection_ttl
        self.probe_timeout = config.stream_probe_timeout_seconds
        self._last_test: Optional[ConnectionTest] = None
        self._last_build: Tuple[str, bool] = (SOURCE_CACHE, False)

        if broadcaster is not None:
            broadcaster.subscribe("radio", self._on_invalidated)

    def _on_invalidated(self, event: InvalidationEvent) -> None:
        self._last_test = None
        self.logger.info("Radio connection memo reset", patterns=list(event.patterns))

    async def resolve(self, if_none_match: Optional[str] = None) -> Tuple[CachedResult, Dict[str, str]]:
        """Conditional lookup plus the diagnostic headers describing where data came from."""
        result = await self.builder.resolve(RADIO_CONFIG_KEY, self.policy, self._fetch, if_none_match)
        # Requests that joined a shared fetch report the build that produced their payload.
        source, fresh_test = SOURCE_CACHE, False
        if result.cache_status in (CACHE_MISS, CACHE_STALE):
            source, fresh_test = self._last_build
        return result, {
            "X-Data-Source": source,
            "X-Connection-Test": "fresh" if fresh_test else "cached",
        }

    async def _fetch(self) -> Dict[str, Any]:
        payload, source, fresh_test = await self.build_config()
        self._last_build = (source, fresh_test)
        return payload

    async def build_config(self) -> Tuple[Dict[str, Any], str, bool]:
        stream_url, metadata_url, station_name, source = await self._load_source()
        test, fresh = await self._connection_status(stream_url)
        config = MobileRadioConfig(
            stream_url=stream_url,
            metadata_url=metadata_url,
            station_name=station_name,
            connection_status=test.status,
            last_tested=test.tested_at_iso,
        )
        self.logger.info(
            "Radio configuration built",
            source=source,
            connection_status=test.status,
            connection_test="fresh" if fresh else "cached",
        )
        return config.model_dump(), source, fresh

    async def _load_source(self) -> Tuple[str, Optional[str], str, str]:
        row = await self.repository.get_active()
        if row is not None and row.get("stream_url"):
            return (
                row["stream_url"],
                row.get("metadata_url") or None,
                row.get("station_name") or self.config.site_name,
                SOURCE_DATABASE,
            )

        self.logger.warning("No radio settings row found, using environment fallback")
        return (
            self.config.radio_stream_url,
            self.config.radio_metadata_url,
            self.config.site_name,
            SOURCE_ENVIRONMENT,
        )

    async def _connection_status(self, stream_url: str) -> Tuple[ConnectionTest, bool]:
        now = self.clock()
        last = self._last_test
        if last is not None and last.stream_url == stream_url and now - last.tested_at < self.connection_ttl:
            return last, False

        result: ProbeResult = await self.checker.probe(stream_url, timeout=self.probe_timeout)
        test = ConnectionTest(
            stream_url=stream_url,
            status="active" if result.is_valid else "failed",
            tested_at=now,
        )
        self._last_test = test
        return test, True

    async def get_settings(self) -> Dict[str, Any]:
        stream_url, metadata_url, station_name, source = await self._load_source()
        return {
            "stream_url": stream_url,
            "metadata_url": metadata_url,
            "station_name": station_name,
            "source": source,
        }

    async def update_settings(self, update: RadioSettingsUpdate, updated_by: Optional[int] = None) -> Dict[str, Any]:
        validate_radio_settings(update)
        row = await self.repository.save(
            update.stream_url.strip(),
            update.metadata_url.strip() if update.metadata_url else None,
            update.station_name.strip(),
            updated_by,
        )
        return {
            "stream_url": row["stream_url"],
            "metadata_url": row.get("metadata_url"),
            "station_name": row["station_name"],
            "source": SOURCE_DATABASE,
        }
