"""
Unit Tests for API Routes

Tests the FastAPI routes end to end with TestClient, an in-memory cache and
an in-memory shop store injected through create_app.
"""

import pytest
from fastapi.testclient import TestClient

from shop_cache.application.app import create_app
from shop_cache.core.config.settings import reload_settings
from shop_cache.core.exceptions import StoreError
from shop_cache.core.interfaces.cache import InMemoryCache
from shop_cache.core.interfaces.store import InMemoryShopStore
from tests.test_fixtures import ShopFactory


@pytest.fixture
def shop_store():
    return InMemoryShopStore([ShopFactory.basic(1), ShopFactory.basic(7, name="Tea House")])


def make_client(monkeypatch, shop_store, strategy="mutex"):
    monkeypatch.setenv("CACHE_READ_STRATEGY", strategy)
    monkeypatch.setenv("ENVIRONMENT", "test")
    reload_settings()
    app = create_app(cache=InMemoryCache(), store=shop_store)
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def client(monkeypatch, shop_store):
    """Test client running the full lifespan with the mutex strategy."""
    with make_client(monkeypatch, shop_store) as test_client:
        yield test_client
    monkeypatch.undo()
    reload_settings()


@pytest.mark.unit
class TestShopRoutes:
    """Test suite for the shop routes."""

    def test_get_existing_shop(self, client):
        """Test that a stored shop is returned in a successful Result."""
        response = client.get("/shop/7")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["id"] == 7
        assert body["data"]["name"] == "Tea House"

    def test_get_missing_shop(self, client):
        """Test that not found is a failed Result with HTTP 200."""
        response = client.get("/shop/404")

        assert response.status_code == 200
        assert response.json() == {
            "success": False,
            "error_msg": "shop not found",
            "data": None,
            "total": None,
        }

    def test_get_with_non_numeric_id(self, client):
        response = client.get("/shop/abc")
        assert response.status_code == 422

    def test_update_then_get_returns_new_value(self, client):
        """Test the write path followed by a read."""
        assert client.get("/shop/1").json()["data"]["name"] == "Shop 1"

        response = client.put("/shop", json={"id": 1, "name": "Renamed"})

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert client.get("/shop/1").json()["data"]["name"] == "Renamed"

    def test_update_without_id(self, client):
        response = client.put("/shop", json={"name": "Nameless"})

        assert response.status_code == 200
        assert response.json()["success"] is False
        assert response.json()["error_msg"] == "Shop id must not be empty"

    def test_update_unknown_shop(self, client):
        response = client.put("/shop", json={"id": 404, "name": "Ghost"})

        assert response.json()["success"] is False
        assert response.json()["error_msg"] == "shop not found"

    def test_store_failure_returns_503(self, client, shop_store):
        """Test that an unreachable store is an internal failure, not not-found."""
        shop_store.fail_with = StoreError("Shop query failed")

        response = client.get("/shop/1")

        assert response.status_code == 503
        assert response.json()["error_type"] == "StoreError"

    def test_unexpected_failure_returns_500(self, client, shop_store):
        """Test that the catch-all middleware answers unknown errors."""
        shop_store.fail_with = RuntimeError("driver exploded")

        response = client.get("/shop/1")

        assert response.status_code == 500
        assert response.json()["error"] == "internal_server_error"


@pytest.mark.unit
class TestRequestId:
    """Test request id propagation."""

    def test_request_id_is_echoed(self, client):
        response = client.get("/shop/1", headers={"X-Request-ID": "req-abc"})
        assert response.headers["X-Request-ID"] == "req-abc"

    def test_request_id_is_generated(self, client):
        response = client.get("/shop/1")
        assert response.headers["X-Request-ID"]


@pytest.mark.unit
class TestAdminRoutes:
    """Test suite for the admin routes."""

    def test_warm_shop(self, client):
        response = client.post("/admin/shop/1/warm", params={"expire_seconds": 60})

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["data"]["id"] == 1

    def test_warm_missing_shop(self, client):
        response = client.post("/admin/shop/404/warm")

        assert response.json()["success"] is False

    def test_warm_rejects_non_positive_expiry(self, client):
        response = client.post("/admin/shop/1/warm", params={"expire_seconds": 0})
        assert response.status_code == 422

    def test_rebuild_stats(self, client):
        response = client.get("/admin/rebuild/stats")

        assert response.status_code == 200
        stats = response.json()
        assert stats["running"] is True
        assert stats["workers"] > 0
        assert "rejected" in stats

    def test_prometheus_metrics(self, client):
        client.get("/shop/1")

        response = client.get("/admin/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "shop_cache_lookups_total" in response.text


@pytest.mark.unit
class TestHealthRoutes:
    """Test suite for the health route."""

    def test_health_reports_components(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["components"]["cache"]["status"] == "healthy"
        assert body["components"]["rebuild"]["running"] is True

    def test_root(self, client):
        body = client.get("/").json()
        assert body["read_strategy"] == "mutex"
        assert body["health"] == "/health"


@pytest.mark.unit
class TestLogicalExpireApp:
    """Test the read path with the logical-expiration strategy configured."""

    def test_cold_id_reads_not_found_until_warmed(self, monkeypatch, shop_store):
        with make_client(monkeypatch, shop_store, strategy="logical_expire") as client:
            assert client.get("/shop/7").json()["success"] is False

            client.post("/admin/shop/7/warm")

            body = client.get("/shop/7").json()
            assert body["success"] is True
            assert body["data"]["name"] == "Tea House"

        monkeypatch.undo()
        reload_settings()
