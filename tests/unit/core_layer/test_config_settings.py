"""
Unit Tests for Configuration Settings

Tests the settings loading, validation, and default values.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from shop_cache.core.config.settings import Settings, get_settings, reload_settings


@pytest.mark.unit
class TestSettingsInitialization:
    """Test Settings class initialization and validation."""

    def test_settings_has_required_attribute_groups(self):
        """Test that Settings exposes every nested configuration view."""
        settings = Settings()

        for group in ("redis", "database", "cache", "lock", "rebuild", "logging", "app"):
            assert hasattr(settings, group)

    def test_cache_defaults(self):
        """Test the cache TTL defaults: 30 minutes, 2 minutes, 20 seconds."""
        settings = Settings()

        assert settings.cache.CACHE_SHOP_TTL == 1800
        assert settings.cache.CACHE_NULL_TTL == 120
        assert settings.cache.LOGICAL_EXPIRE_SECONDS == 20
        assert settings.cache.CACHE_READ_STRATEGY in ("pass_through", "mutex", "logical_expire")

    def test_lock_defaults(self):
        """Test the lock fuse and retry defaults."""
        settings = Settings()

        assert settings.lock.LOCK_SHOP_TTL == 10
        assert settings.lock.LOCK_OWNERSHIP_CHECK is True
        assert settings.lock.MUTEX_RETRY_INTERVAL_MS == 50
        assert settings.lock.MUTEX_MAX_RETRIES > 0

    def test_rebuild_pool_defaults(self):
        """Test the rebuild pool defaults to ten workers."""
        settings = Settings()

        assert settings.rebuild.REBUILD_WORKERS == 10
        assert settings.rebuild.REBUILD_QUEUE_SIZE > 0

    def test_nested_views_reflect_overrides(self):
        """Test that nested views carry values passed to the root settings."""
        settings = Settings(CACHE_SHOP_TTL=600, CACHE_NULL_TTL=30, REBUILD_WORKERS=3)

        assert settings.cache.CACHE_SHOP_TTL == 600
        assert settings.cache.CACHE_NULL_TTL == 30
        assert settings.rebuild.REBUILD_WORKERS == 3


@pytest.mark.unit
class TestSettingsValidation:
    """Test TTL relationships and field validators."""

    def test_null_ttl_must_be_shorter_than_shop_ttl(self):
        """Test that a null marker TTL >= entry TTL is rejected."""
        with pytest.raises(PydanticValidationError, match="CACHE_NULL_TTL must be shorter"):
            Settings(CACHE_SHOP_TTL=60, CACHE_NULL_TTL=60)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"CACHE_SHOP_TTL": 0},
            {"CACHE_NULL_TTL": -1},
            {"LOCK_SHOP_TTL": 0},
            {"LOGICAL_EXPIRE_SECONDS": 0},
            {"REBUILD_WORKERS": 0},
            {"REBUILD_QUEUE_SIZE": 0},
            {"MUTEX_MAX_RETRIES": 0},
        ],
    )
    def test_non_positive_values_rejected(self, overrides):
        """Test that non-positive TTLs and pool sizes fail fast."""
        with pytest.raises(PydanticValidationError):
            Settings(**overrides)

    def test_unknown_read_strategy_rejected(self):
        """Test that only the three read strategies are accepted."""
        with pytest.raises(PydanticValidationError):
            Settings(CACHE_READ_STRATEGY="write_through")

    def test_log_level_is_normalized(self):
        """Test that LOG_LEVEL is upper-cased."""
        settings = Settings(LOG_LEVEL="debug")
        assert settings.logging.LOG_LEVEL == "DEBUG"

    def test_invalid_log_level_rejected(self):
        """Test that an unknown LOG_LEVEL is rejected."""
        with pytest.raises(PydanticValidationError, match="LOG_LEVEL"):
            Settings(LOG_LEVEL="VERBOSE")

    def test_environment_variables_override_defaults(self, monkeypatch):
        """Test that environment variables are loaded."""
        monkeypatch.setenv("CACHE_READ_STRATEGY", "logical_expire")
        monkeypatch.setenv("LOCK_OWNERSHIP_CHECK", "false")

        settings = Settings()

        assert settings.cache.CACHE_READ_STRATEGY == "logical_expire"
        assert settings.lock.LOCK_OWNERSHIP_CHECK is False


@pytest.mark.unit
class TestSettingsSingleton:
    """Test the global settings accessor."""

    def test_get_settings_returns_same_instance(self):
        """Test that get_settings caches its instance."""
        assert get_settings() is get_settings()

    def test_reload_settings_replaces_instance(self):
        """Test that reload_settings builds a fresh instance."""
        before = get_settings()
        after = reload_settings()

        assert after is not before
        assert get_settings() is after
