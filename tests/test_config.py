"""Tests for application start-up checks."""

import pytest

from app import create_app
from config import TestConfig
from errors import ConfigError


def _config(**overrides):
    return type("OverriddenConfig", (TestConfig,), overrides)


class TestStartupSecrets:
    def test_test_config_boots(self):
        app = create_app(TestConfig)
        assert "log_cipher" in app.extensions
        assert app.test_client().get("/health").get_json() == {"ok": True}

    def test_missing_auth_secret(self):
        with pytest.raises(ConfigError, match="AUTH_SECRET"):
            create_app(_config(AUTH_SECRET=None))

    def test_missing_log_key(self):
        with pytest.raises(ConfigError, match="LOG_ENCRYPTION_KEY"):
            create_app(_config(LOG_ENCRYPTION_KEY=None))

    @pytest.mark.parametrize("key", ["abcd", "zz" * 32, "00" * 16])
    def test_malformed_log_key(self, key):
        with pytest.raises(ConfigError, match="LOG_ENCRYPTION_KEY"):
            create_app(_config(LOG_ENCRYPTION_KEY=key))
