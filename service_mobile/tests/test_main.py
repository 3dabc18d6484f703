"""
Tests for the mobile API routes.
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from service_mobile.app.adapters.stream_checker import ProbeResult
from service_mobile.app.main import MobileApiService
from shared.config import get_config
from shared.test_helpers import TestDataFactory


@pytest.fixture
def service():
    return MobileApiService(get_config("mobile", 8000))


@pytest.fixture
def client(service):
    return TestClient(service.app)


@pytest.fixture
def settings_repo(service):
    with patch.object(service.settings_repository, "get_groups", new_callable=AsyncMock) as get_groups:
        get_groups.return_value = TestDataFactory.settings_groups()
        yield get_groups


class TestCommonRoutes:
    """Test cases for health and metrics."""

    def test_health_reports_dependencies(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "mobile"
        assert data["status"] == "ok"
        assert data["dependencies"] == {"postgres": "not_started", "cache_entries": 0}

    def test_metrics_endpoint(self, client):
        client.get("/health")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "http_requests_total" in response.text

    def test_response_time_header(self, client):
        response = client.get("/health")

        assert response.headers["x-response-time"].endswith("ms")


class TestRadioRoute:
    """Test cases for GET /api/mobile/v1/radio."""

    @pytest.fixture(autouse=True)
    def upstream(self, service):
        with patch.object(service.radio_repository, "get_active", new_callable=AsyncMock) as get_active, \
                patch.object(service.stream_checker, "probe", new_callable=AsyncMock) as probe:
            get_active.return_value = TestDataFactory.radio_row()
            probe.return_value = ProbeResult(is_valid=True, status_code=200, content_type="audio/mpeg")
            yield get_active, probe

    def test_first_request(self, client):
        response = client.get("/api/mobile/v1/radio")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["error"] is None
        assert body["data"]["stream_url"] == "https://stream.trendankara.com/live"
        assert body["data"]["connection_status"] == "active"
        assert body["cache"]["etag"] == response.headers["etag"]
        assert response.headers["cache-control"] == "public, max-age=30, stale-while-revalidate=60"
        assert response.headers["x-cache-status"] == "miss"
        assert response.headers["x-data-source"] == "database"
        assert response.headers["x-connection-test"] == "fresh"

    def test_revalidation_returns_304(self, client, upstream):
        first = client.get("/api/mobile/v1/radio")

        response = client.get("/api/mobile/v1/radio", headers={"If-None-Match": first.headers["etag"]})

        assert response.status_code == 304
        assert response.content == b""
        assert response.headers["etag"] == first.headers["etag"]
        assert response.headers["x-cache-status"] == "hit-304"
        upstream[0].assert_awaited_once()

    def test_upstream_failure_is_error_envelope(self, client, upstream):
        upstream[0].side_effect = ConnectionError("db down")

        response = client.get("/api/mobile/v1/radio")

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "data": None,
            "error": "Radyo yapılandırması alınamadı",
            "code": "UPSTREAM_FETCH_ERROR",
        }

    def test_admin_update_invalidates(self, client, service, upstream):
        client.get("/api/mobile/v1/radio")

        with patch.object(service.radio_repository, "save", new_callable=AsyncMock) as save:
            save.return_value = TestDataFactory.radio_row(stream_url="https://yedek.trendankara.com/live")
            response = client.put("/api/admin/settings/radio", json={
                "stream_url": "https://yedek.trendankara.com/live",
                "station_name": "Trend Ankara",
            })

        assert response.status_code == 200
        assert response.headers["cache-control"] == "no-cache, no-store, must-revalidate"
        assert "mobile:radio:config" not in service.store

        upstream[0].return_value = TestDataFactory.radio_row(stream_url="https://yedek.trendankara.com/live")
        refreshed = client.get("/api/mobile/v1/radio")
        assert refreshed.json()["data"]["stream_url"] == "https://yedek.trendankara.com/live"
        assert refreshed.headers["x-connection-test"] == "fresh"

    def test_admin_update_rejects_bad_url(self, client):
        response = client.put("/api/admin/settings/radio", json={
            "stream_url": "ftp://stream",
            "station_name": "Trend Ankara",
        })

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestStreamTestRoute:
    """Test cases for POST /api/admin/settings/radio/test."""

    def test_invalid_url(self, client):
        response = client.post("/api/admin/settings/radio/test", json={"url": "not a url"})

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_reports_check_result(self, client, service):
        with patch.object(service.stream_checker, "check", new_callable=AsyncMock) as check:
            check.return_value = ProbeResult(is_valid=False, error="Yayın adresi 404 durum kodu döndürdü", status_code=404)
            response = client.post("/api/admin/settings/radio/test", json={"url": "https://stream.example.com/x"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["data"]["statusCode"] == 404
        assert body["error"] == "Yayın adresi 404 durum kodu döndürdü"


class TestConfigRoute:
    """Test cases for GET /api/mobile/v1/config."""

    def test_settings_and_version_meta(self, client, settings_repo):
        response = client.get("/api/mobile/v1/config", params={"version": "1.1.0"})

        assert response.status_code == 200
        body = response.json()
        assert body["data"]["minimumAppVersion"] == "1.2.0"
        assert body["meta"] == {"updateAvailable": True, "forceUpdate": True, "minimumVersion": "1.2.0"}
        assert response.headers["cache-control"] == "public, max-age=600"

    def test_no_meta_without_version(self, client, settings_repo):
        response = client.get("/api/mobile/v1/config")

        assert "meta" not in response.json()

    def test_settings_update_invalidates_everything(self, client, service, settings_repo):
        first = client.get("/api/mobile/v1/config")

        with patch.object(service.settings_repository, "merge_groups", new_callable=AsyncMock):
            settings_repo.return_value = TestDataFactory.settings_groups(
                app_config={"maintenanceMode": True, "minimumAppVersion": "1.2.0", "forceUpdate": True}
            )
            response = client.put("/api/admin/mobile/settings", json={"maintenanceMode": True})

        assert response.status_code == 200
        assert len(service.store) == 0

        refreshed = client.get("/api/mobile/v1/config", headers={"If-None-Match": first.headers["etag"]})
        assert refreshed.status_code == 200
        assert refreshed.json()["data"]["maintenanceMode"] is True
        assert refreshed.headers["etag"] != first.headers["etag"]


class TestCardRoutes:
    """Test cases for card routes."""

    @pytest.fixture(autouse=True)
    def cards_repo(self, service):
        repository = service.cards_repository
        with patch.object(repository, "list_active", new_callable=AsyncMock) as list_active, \
                patch.object(repository, "get", new_callable=AsyncMock) as get, \
                patch.object(repository, "create", new_callable=AsyncMock) as create:
            list_active.return_value = TestDataFactory.card_rows(2)
            get.return_value = None
            create.return_value = TestDataFactory.card_row(3, title="Yeni kart")
            yield list_active, get, create

    def test_list_cards(self, client):
        response = client.get("/api/mobile/v1/content/cards")

        assert response.status_code == 200
        assert [card["id"] for card in response.json()["data"]] == [1, 2]
        assert response.headers["cache-control"] == "public, max-age=180"

    def test_featured_filter_uses_own_key(self, client, service, cards_repo):
        client.get("/api/mobile/v1/content/cards", params={"type": "featured"})

        cards_repo[0].assert_awaited_once_with(True)
        assert "mobile:cards:featured" in service.store

    def test_unknown_type_rejected(self, client, cards_repo):
        response = client.get("/api/mobile/v1/content/cards", params={"type": "sponsored"})

        assert response.status_code == 400
        assert response.json()["error"] == "Geçersiz kart türü"
        cards_repo[0].assert_not_awaited()

    @pytest.mark.parametrize("card_id", ["abc", "0", "-1"])
    def test_invalid_card_id(self, client, card_id):
        response = client.get(f"/api/mobile/v1/content/cards/{card_id}")

        assert response.status_code == 400
        assert response.json()["error"] == "Geçersiz kart ID"

    def test_missing_card(self, client, service):
        response = client.get("/api/mobile/v1/content/cards/42")

        assert response.status_code == 404
        assert response.json()["error"] == "Kart bulunamadı"
        assert "mobile:cards:item:42" not in service.store

    def test_create_invalidates_cards(self, client, service):
        client.get("/api/mobile/v1/content/cards")
        assert "mobile:cards:all" in service.store

        response = client.post("/api/admin/mobile/cards", json={"title": "Yeni kart"})

        assert response.status_code == 201
        assert response.json()["data"]["title"] == "Yeni kart"
        assert "mobile:cards:all" not in service.store

    def test_create_rejects_missing_title(self, client):
        response = client.post("/api/admin/mobile/cards", json={"description": "x"})

        assert response.status_code == 400
        assert response.json()["error"] == "Geçersiz istek"


class TestNewsRoute:
    """Test cases for GET /api/mobile/v1/news."""

    def test_news_page(self, client, service, settings_repo):
        with patch.object(service.news_repository, "list_active", new_callable=AsyncMock) as list_active:
            list_active.return_value = (TestDataFactory.news_rows(2), 2)
            response = client.get("/api/mobile/v1/news", params={"page": 1, "limit": 2})

        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]["items"]) == 2
        assert body["meta"]["pagination"]["total"] == 2
        assert "mobile:news:1:2:all" in service.store


class TestPollRoutes:
    """Test cases for poll routes."""

    @pytest.fixture(autouse=True)
    def polls_repo(self, service):
        repository = service.polls_repository
        with patch.object(repository, "list_active", new_callable=AsyncMock) as list_active, \
                patch.object(repository, "list_items", new_callable=AsyncMock) as list_items, \
                patch.object(repository, "get", new_callable=AsyncMock) as get, \
                patch.object(repository, "has_voted", new_callable=AsyncMock) as has_voted, \
                patch.object(repository, "record_vote", new_callable=AsyncMock) as record_vote:
            list_active.return_value = [TestDataFactory.poll_row(7)]
            list_items.return_value = TestDataFactory.poll_item_rows([3, 1])
            get.return_value = TestDataFactory.poll_row(7)
            has_voted.return_value = False
            record_vote.return_value = True
            yield {"list_active": list_active, "has_voted": has_voted, "record_vote": record_vote}

    @pytest.fixture
    def vote_body(self):
        return {"itemId": 1, "deviceInfo": {"deviceId": "device-1", "platform": "android"}}

    def test_current_poll_with_device(self, client, settings_repo, polls_repo):
        response = client.get("/api/mobile/v1/polls/current", headers={"X-Device-Id": "device-1"})

        assert response.status_code == 200
        body = response.json()
        assert body["data"]["id"] == 7
        assert body["meta"] == {"hasVoted": False}

    def test_no_active_poll(self, client, service, settings_repo, polls_repo):
        polls_repo["list_active"].return_value = []

        response = client.get("/api/mobile/v1/polls/current")

        assert response.status_code == 404
        assert response.json()["error"] == "Aktif anket bulunamadı"
        assert "mobile:polls:current" not in service.store

    def test_vote_invalidates_poll_cache(self, client, service, settings_repo, vote_body):
        client.get("/api/mobile/v1/polls/current")
        assert "mobile:polls:current" in service.store

        response = client.post(
            "/api/mobile/v1/polls/7/vote",
            json=vote_body,
            headers={"X-Forwarded-For": "85.1.2.3, 10.0.0.1"},
        )

        assert response.status_code == 200
        assert response.json()["data"]["success"] is True
        assert "mobile:polls:current" not in service.store

    def test_duplicate_vote(self, client, polls_repo, vote_body):
        polls_repo["has_voted"].return_value = True

        response = client.post("/api/mobile/v1/polls/7/vote", json=vote_body)

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Bu ankette zaten oy kullandınız"
        polls_repo["record_vote"].assert_not_awaited()

    def test_vote_uses_forwarded_ip(self, client, polls_repo, vote_body):
        client.post(
            "/api/mobile/v1/polls/7/vote",
            json=vote_body,
            headers={"X-Forwarded-For": "85.1.2.3, 10.0.0.1"},
        )

        polls_repo["has_voted"].assert_awaited_once_with(7, "device-1", "85.1.2.3")


class TestCacheAdminRoutes:
    """Test cases for cache administration."""

    def test_stats(self, client, service):
        service.store.set("mobile:cards:all", [], 60)

        response = client.get("/api/admin/cache/stats")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["size"] == 1
        assert data["keys"] == ["mobile:cards:all"]
        assert data["max_entries"] == 500

    def test_invalidate_patterns(self, client, service):
        service.store.set("mobile:cards:all", [], 60)
        service.store.set("mobile:cards:featured", [], 60)
        service.store.set("mobile:news:1:10:all", {}, 60)

        response = client.post("/api/admin/cache/invalidate", json={"patterns": ["mobile:cards:*"]})

        assert response.status_code == 200
        assert response.json()["data"] == {"removed": {"mobile:cards:*": 2}, "total": 2}
        assert service.store.keys() == ["mobile:news:1:10:all"]

    def test_invalidate_requires_patterns(self, client):
        response = client.post("/api/admin/cache/invalidate", json={"patterns": []})

        assert response.status_code == 400
