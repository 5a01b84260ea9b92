"""Unit tests for operator settings."""

from astarte_operator.types import settings as settings_module
from astarte_operator.types.settings import Settings, _getenv


class TestGetenv:
    def test_booleans(self, monkeypatch):
        monkeypatch.setenv("ASTARTE_TEST_FLAG", "yes")
        assert _getenv("ASTARTE_TEST_FLAG") is True
        monkeypatch.setenv("ASTARTE_TEST_FLAG", "0")
        assert _getenv("ASTARTE_TEST_FLAG") is False

    def test_default(self, monkeypatch):
        monkeypatch.delenv("ASTARTE_TEST_MISSING", raising=False)
        assert _getenv("ASTARTE_TEST_MISSING", "fallback") == "fallback"


class TestSettings:
    def test_defaults_come_from_module_constants(self):
        conf = Settings()
        assert conf.status_update_retry_attempts == settings_module.STATUS_UPDATE_RETRY_ATTEMPTS
        assert conf.snapshot_version == settings_module.SNAPSHOT_VERSION
        assert conf.default_image_org == settings_module.DEFAULT_IMAGE_ORG

    def test_keyword_overrides(self):
        conf = Settings(status_update_retry_attempts=9, status_update_retry_backoff_seconds=0)
        assert conf.status_update_retry_attempts == 9
        assert conf.status_update_retry_backoff_seconds == 0
        # Untouched settings keep their defaults
        assert conf.inconsistent_version_retry_delay_seconds == (
            settings_module.INCONSISTENT_VERSION_RETRY_DELAY_SECONDS
        )
