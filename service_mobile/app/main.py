"""
Mobile API service for Trend Ankara Access Layer.
"""

from typing import Any, Dict, Optional

from fastapi import Header, Query, Request
from fastapi.responses import JSONResponse

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import NotFoundError, ValidationError
from .adapters.cards_repository import CardsRepository
from .adapters.database import Database
from .adapters.news_repository import NewsRepository
from .adapters.polls_repository import PollsRepository
from .adapters.radio_settings_repository import RadioSettingsRepository
from .adapters.settings_repository import SettingsRepository
from .adapters.stream_checker import StreamConnectivityChecker, validate_stream_url
from .caching.cache_store import CacheStore
from .caching.conditional import CachePolicy, ConditionalResponseBuilder, build_response
from .caching.fingerprint import default_registry
from .caching.invalidation import InvalidationBroadcaster
from .caching.sweeper import CacheSweeper
from .domain.cards import CardService, parse_card_type
from .domain.models import (
    CardInput,
    CardUpdate,
    InvalidateRequest,
    MobileSettings,
    MobileSettingsUpdate,
    RadioSettingsUpdate,
    ReorderRequest,
    StreamTestRequest,
    VoteRequest,
)
from .domain.news import NewsService, clamp_limit
from .domain.polls import PollService
from .domain.radio import RadioConfigService
from .domain.settings import ConfigService, check_app_version

MOBILE_PREFIX = "/api/mobile/v1"
ADMIN_PREFIX = "/api/admin"

SETTINGS_KEY = "mobile:config:settings"
POLL_KEY = "mobile:polls:current"


def envelope(data: Any = None, error: Optional[str] = None, status_code: int = 200, **extra: Any) -> JSONResponse:
    body: Dict[str, Any] = {"success": error is None, "data": data, "error": error}
    body.update(extra)
    return JSONResponse(status_code=status_code, content=body)


def client_ip(request: Request) -> Optional[str]:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    for header in ("x-real-ip", "cf-connecting-ip"):
        value = request.headers.get(header)
        if value:
            return value.strip()
    if request.client:
        return request.client.host
    return None


class MobileApiService(BaseService):
    """Mobile API service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None):
        super().__init__("mobile", 8000, config)

        self.database = Database(
            self.config.postgres_dsn,
            min_size=self.config.postgres_min_pool_size,
            max_size=self.config.postgres_max_pool_size,
        )

        # Cache
        self.store = CacheStore(
            max_entries=self.config.cache_max_entries,
            eviction_policy=self.config.cache_eviction_policy,
            registry=default_registry(),
            metrics=self.metrics,
        )
        self.builder = ConditionalResponseBuilder(
            self.store,
            serve_stale_on_error=self.config.cache_serve_stale_on_error,
            metrics=self.metrics,
        )
        self.broadcaster = InvalidationBroadcaster(self.store, metrics=self.metrics)
        self.sweeper = CacheSweeper(self.store, self.config.cache_sweep_interval_seconds)

        # Upstream adapters
        self.cards_repository = CardsRepository(self.database)
        self.settings_repository = SettingsRepository(self.database)
        self.radio_repository = RadioSettingsRepository(self.database)
        self.polls_repository = PollsRepository(self.database)
        self.news_repository = NewsRepository(self.database)
        self.stream_checker = StreamConnectivityChecker(
            timeout=self.config.stream_check_timeout_seconds,
            metrics=self.metrics,
        )

        # Domain services
        self.card_service = CardService(self.cards_repository)
        self.config_service = ConfigService(self.settings_repository)
        self.poll_service = PollService(self.polls_repository)
        self.news_service = NewsService(self.news_repository)
        self.radio_service = RadioConfigService(
            self.radio_repository,
            self.stream_checker,
            self.builder,
            self.config,
            broadcaster=self.broadcaster,
        )

        self.policies = {
            "settings": CachePolicy("settings", self.config.mobile_config_ttl, resource="settings",
                                    error_message="Uygulama ayarları alınamadı"),
            "cards": CachePolicy("cards", self.config.cards_ttl, resource="cards",
                                 error_message="Kartlar yüklenirken bir hata oluştu"),
            "card": CachePolicy("cards", self.config.cards_ttl, resource="card",
                                error_message="Kart yüklenirken bir hata oluştu"),
            "news": CachePolicy("news", self.config.news_ttl, resource="news",
                                error_message="Haberler yüklenirken bir hata oluştu"),
            "polls": CachePolicy("polls", self.config.polls_ttl, resource="polls",
                                 error_message="Anket bilgisi alınamadı"),
        }

        @self.app.on_event("startup")
        async def _startup():
            await self.database.start()
            self.sweeper.start()

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.sweeper.stop()
            await self.database.stop()

        self._setup_mobile_routes()
        self._setup_admin_routes()

    async def _check_dependencies(self) -> Dict[str, Any]:
        if self.database.pool is None:
            postgres = "not_started"
        else:
            postgres = "ok" if await self.database.ping() else "error"
        return {"postgres": postgres, "cache_entries": len(self.store)}

    async def _current_settings(self) -> MobileSettings:
        """Settings through the same cache entry the app reads from ``/config``."""
        result = await self.builder.resolve(SETTINGS_KEY, self.policies["settings"], self._fetch_settings)
        return MobileSettings(**result.payload)

    async def _fetch_settings(self) -> Dict[str, Any]:
        settings = await self.config_service.get_settings()
        return settings.model_dump()

    def _setup_mobile_routes(self):
        """Set up cached read routes consumed by the mobile app."""

        @self.app.get(f"{MOBILE_PREFIX}/radio")
        async def get_radio_config(if_none_match: Optional[str] = Header(default=None)):
            """Stream configuration with a separately cached connectivity status."""
            result, diagnostics = await self.radio_service.resolve(if_none_match)
            return build_response(result, headers=diagnostics)

        @self.app.get(f"{MOBILE_PREFIX}/config")
        async def get_app_config(
            version: Optional[str] = Query(default=None, max_length=32),
            if_none_match: Optional[str] = Header(default=None),
        ):
            """Mobile settings; ``version`` adds an update check computed per request."""
            result = await self.builder.resolve(
                SETTINGS_KEY, self.policies["settings"], self._fetch_settings, if_none_match
            )
            meta = None
            if version and not result.not_modified:
                meta = check_app_version(version, MobileSettings(**result.payload)).model_dump()
            return build_response(result, meta=meta)

        @self.app.get(f"{MOBILE_PREFIX}/content/cards")
        async def list_cards(
            card_type: Optional[str] = Query(default=None, alias="type"),
            if_none_match: Optional[str] = Header(default=None),
        ):
            parse_card_type(card_type)
            key = f"mobile:cards:{card_type or 'all'}"
            result = await self.builder.resolve(
                key, self.policies["cards"], lambda: self.card_service.list_cards(card_type), if_none_match
            )
            return build_response(result)

        @self.app.get(f"{MOBILE_PREFIX}/content/cards/{{card_id}}")
        async def get_card(card_id: str, if_none_match: Optional[str] = Header(default=None)):
            if not card_id.isdigit() or int(card_id) <= 0:
                raise ValidationError("Geçersiz kart ID", {"card_id": card_id})
            card_number = int(card_id)
            result = await self.builder.resolve(
                f"mobile:cards:item:{card_number}",
                self.policies["card"],
                lambda: self.card_service.get_card(card_number),
                if_none_match,
            )
            return build_response(result)

        @self.app.get(f"{MOBILE_PREFIX}/news")
        async def list_news(
            page: int = Query(default=1),
            limit: int = Query(default=10),
            category_id: Optional[int] = Query(default=None),
            if_none_match: Optional[str] = Header(default=None),
        ):
            page = max(1, page)
            limit = clamp_limit(limit)
            key = f"mobile:news:{page}:{limit}:{category_id if category_id is not None else 'all'}"

            async def fetch():
                settings = await self._current_settings()
                return await self.news_service.list_news(page, limit, settings, category_id)

            result = await self.builder.resolve(key, self.policies["news"], fetch, if_none_match)
            meta = None
            if not result.not_modified:
                meta = {"pagination": result.payload["pagination"]}
            return build_response(result, meta=meta)

        @self.app.get(f"{MOBILE_PREFIX}/polls/current")
        async def get_current_poll(
            if_none_match: Optional[str] = Header(default=None),
            x_device_id: Optional[str] = Header(default=None),
        ):
            async def fetch():
                poll = await self.poll_service.get_current_poll(await self._current_settings())
                if poll is None:
                    raise NotFoundError("Aktif anket bulunamadı")
                return poll

            result = await self.builder.resolve(POLL_KEY, self.policies["polls"], fetch, if_none_match)
            meta = None
            if x_device_id and not result.not_modified:
                meta = {"hasVoted": await self.poll_service.has_voted(result.payload["id"], x_device_id)}
            return build_response(result, meta=meta)

        @self.app.post(f"{MOBILE_PREFIX}/polls/{{poll_id}}/vote")
        async def vote(poll_id: int, body: VoteRequest, request: Request):
            result = await self.poll_service.submit_vote(
                poll_id,
                body,
                client_ip(request),
                request.headers.get("user-agent"),
            )
            if not result.success:
                return envelope(result.model_dump(exclude_none=True), error=result.message, status_code=400)

            self.broadcaster.invalidate_entity("polls")
            return envelope(result.model_dump(exclude_none=True))

    def _setup_admin_routes(self):
        """Set up admin write paths; each invalidates after its write committed."""

        # Cards
        @self.app.get(f"{ADMIN_PREFIX}/mobile/cards")
        async def admin_list_cards():
            return envelope(await self.card_service.list_all())

        @self.app.post(f"{ADMIN_PREFIX}/mobile/cards")
        async def admin_create_card(body: CardInput):
            card = await self.card_service.create_card(body)
            self.broadcaster.invalidate_entity("cards")
            return envelope(card, status_code=201)

        @self.app.post(f"{ADMIN_PREFIX}/mobile/cards/reorder")
        async def admin_reorder_cards(body: ReorderRequest):
            updated = await self.card_service.reorder_cards(body)
            self.broadcaster.invalidate_entity("cards")
            return envelope({"updated": updated})

        @self.app.put(f"{ADMIN_PREFIX}/mobile/cards/{{card_id}}")
        @self.app.patch(f"{ADMIN_PREFIX}/mobile/cards/{{card_id}}")
        async def admin_update_card(card_id: int, body: CardUpdate):
            card = await self.card_service.update_card(card_id, body)
            self.broadcaster.invalidate_entity("cards")
            return envelope(card)

        @self.app.delete(f"{ADMIN_PREFIX}/mobile/cards/{{card_id}}")
        async def admin_delete_card(card_id: int):
            await self.card_service.delete_card(card_id)
            self.broadcaster.invalidate_entity("cards")
            return envelope({"id": card_id})

        # Mobile settings
        @self.app.get(f"{ADMIN_PREFIX}/mobile/settings")
        async def admin_get_settings():
            settings = await self.config_service.get_settings()
            return envelope(settings.model_dump())

        @self.app.put(f"{ADMIN_PREFIX}/mobile/settings")
        async def admin_update_settings(body: MobileSettingsUpdate):
            settings = await self.config_service.update_settings(body)
            self.broadcaster.invalidate_entity("settings")
            return envelope(settings.model_dump())

        @self.app.post(f"{ADMIN_PREFIX}/mobile/settings")
        async def admin_initialize_settings():
            created = await self.config_service.initialize_defaults()
            self.broadcaster.invalidate_entity("settings")
            settings = await self.config_service.get_settings()
            return envelope(settings.model_dump(), meta={"createdGroups": created})

        # Radio settings
        @self.app.get(f"{ADMIN_PREFIX}/settings/radio")
        async def admin_get_radio_settings():
            return envelope(await self.radio_service.get_settings())

        @self.app.put(f"{ADMIN_PREFIX}/settings/radio")
        async def admin_update_radio_settings(body: RadioSettingsUpdate):
            settings = await self.radio_service.update_settings(body)
            self.broadcaster.invalidate_entity("radio")
            response = envelope(settings)
            response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
            return response

        @self.app.post(f"{ADMIN_PREFIX}/settings/radio/test")
        async def admin_test_stream(body: StreamTestRequest):
            error = validate_stream_url(body.url)
            if error:
                raise ValidationError(error, {"field": "url"})
            result = await self.stream_checker.check(body.url)
            return JSONResponse(content={
                "success": result.is_valid,
                "data": result.to_dict(),
                "error": result.error,
            })

        # Cache operations
        @self.app.get(f"{ADMIN_PREFIX}/cache/stats")
        async def cache_stats():
            return envelope(self.store.stats())

        @self.app.post(f"{ADMIN_PREFIX}/cache/invalidate")
        async def cache_invalidate(body: InvalidateRequest):
            counts = self.broadcaster.invalidate(body.patterns)
            return envelope({"removed": counts, "total": sum(counts.values())})


def create_app():
    """Create FastAPI application."""
    service = MobileApiService()
    return service.app


if __name__ == "__main__":
    service = MobileApiService()
    service.run()
