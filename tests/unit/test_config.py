"""Unit tests for configuration and settings."""
from common.config import get_settings, reset_settings_cache


class TestSettings:
    """Test configuration management."""

    def test_get_settings_returns_same_instance(self):
        assert get_settings() is get_settings()

    def test_reset_settings_cache(self):
        settings1 = get_settings()
        reset_settings_cache()
        settings2 = get_settings()

        assert settings1 is not settings2

    def test_database_url_from_environment(self):
        settings = get_settings()

        assert settings.database_url.startswith("sqlite")

    def test_jwt_configuration(self):
        settings = get_settings()

        assert settings.jwt_secret
        assert settings.jwt_algorithm == "HS256"
        assert settings.access_token_expire_minutes > 0

    def test_rate_limiting_disabled_for_tests(self):
        settings = get_settings()

        assert settings.rate_limiting_enabled is False
        assert settings.default_rate_limit

    def test_spot_cache_ttl_defaults_short(self):
        assert get_settings().spot_cache_ttl == 10

    def test_no_trusted_proxies_by_default(self):
        assert get_settings().trusted_proxies == []

    def test_service_ports_configuration(self):
        settings = get_settings()

        assert settings.users_service_port == 8001
        assert settings.spots_service_port == 8002
        assert settings.bookings_service_port == 8003
        assert settings.reviews_service_port == 8004

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("SPOT_CACHE_TTL", "5")
        reset_settings_cache()
        try:
            assert get_settings().spot_cache_ttl == 5
        finally:
            monkeypatch.delenv("SPOT_CACHE_TTL")
            reset_settings_cache()
