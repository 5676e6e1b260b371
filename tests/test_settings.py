"""Tests for application settings."""

import pytest

from cavok.config import Settings


class TestSettingsDefaults:
    """Test default values."""

    def test_upstream_defaults(self):
        """The upstream source defaults to aviationweather.gov."""
        s = Settings(database_url="sqlite+aiosqlite:///test.db")
        assert s.aviationweather_url == "https://aviationweather.gov/api/data"
        assert s.fetch_timeout_seconds == 30.0
        assert s.observation_hours == 2

    def test_weather_model_defaults(self):
        s = Settings(database_url="sqlite+aiosqlite:///test.db")
        assert s.bucket_minutes == 30
        assert s.earth_radius_km == 6371.01
        assert s.tile_zoom == 8
        assert s.default_region_radius_km == 100


class TestSettingsValidation:
    """Test settings parsing and validation."""

    def test_trailing_slash_is_stripped(self):
        s = Settings(
            database_url="sqlite+aiosqlite:///test.db",
            aviationweather_url="https://mirror.example.com/api/data/",
        )
        assert s.aviationweather_url == "https://mirror.example.com/api/data"

    def test_url_requires_scheme(self):
        """Upstream URL must be http or https."""
        with pytest.raises(Exception, match="http"):
            Settings(
                database_url="sqlite+aiosqlite:///test.db",
                aviationweather_url="aviationweather.gov/api/data",
            )

    def test_bucket_minutes_bounds(self):
        with pytest.raises(Exception):
            Settings(database_url="sqlite+aiosqlite:///test.db", bucket_minutes=0)
        with pytest.raises(Exception):
            Settings(database_url="sqlite+aiosqlite:///test.db", bucket_minutes=1441)

    def test_log_level_is_upper_cased(self):
        s = Settings(database_url="sqlite+aiosqlite:///test.db", log_level=" debug ")
        assert s.log_level == "DEBUG"

    def test_cors_origins_comma_separated(self):
        s = Settings(
            database_url="sqlite+aiosqlite:///test.db",
            cors_origins="http://a.example, http://b.example,",
        )
        assert s.cors_origins == ["http://a.example", "http://b.example"]

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("BUCKET_MINUTES", "60")
        monkeypatch.setenv("TILE_ZOOM", "6")
        s = Settings(database_url="sqlite+aiosqlite:///test.db")
        assert s.bucket_minutes == 60
        assert s.tile_zoom == 6
