"""Tests for imagegen.core.config — configuration management.

Tests cover:
- Default values for all configuration fields.
- Environment variable overrides via the IMAGEGEN_ prefix.
- Pydantic validation constraints (port range, backend literal, retry bounds).
- Secret handling for the backend credential.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from imagegen.core.config import ImageGenConfig


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every IMAGEGEN_ variable so defaults are observable."""
    import os

    for key in list(os.environ):
        if key.startswith("IMAGEGEN_"):
            monkeypatch.delenv(key, raising=False)


class TestConfigDefaults:
    """Verify that ImageGenConfig provides sensible defaults."""

    def test_default_backend_is_base64(self, clean_env):
        """The queue-style backend is the default integration."""
        cfg = ImageGenConfig(_env_file=None)
        assert cfg.backend == "base64"

    def test_default_retry_policy(self, clean_env):
        """Three attempts with a constant two-second delay."""
        cfg = ImageGenConfig(_env_file=None)
        assert cfg.retry_attempts == 3
        assert cfg.retry_delay == 2.0

    def test_default_client_retry_policy(self, clean_env):
        """The client retries 504s three times, one second apart."""
        cfg = ImageGenConfig(_env_file=None)
        assert cfg.client_retry_attempts == 3
        assert cfg.client_retry_delay == 1.0

    def test_default_server_port(self, clean_env):
        """Default server port should be 7860."""
        cfg = ImageGenConfig(_env_file=None)
        assert cfg.server_port == 7860

    def test_default_api_key_is_empty(self, clean_env):
        """No credential is configured by default."""
        cfg = ImageGenConfig(_env_file=None)
        assert cfg.backend_api_key.get_secret_value() == ""


class TestConfigEnvironment:
    """Verify IMAGEGEN_ environment variable overrides."""

    def test_env_overrides_backend(self, clean_env, monkeypatch):
        monkeypatch.setenv("IMAGEGEN_BACKEND", "binary")
        cfg = ImageGenConfig(_env_file=None)
        assert cfg.backend == "binary"

    def test_env_overrides_retry_delay(self, clean_env, monkeypatch):
        monkeypatch.setenv("IMAGEGEN_RETRY_DELAY", "0.5")
        cfg = ImageGenConfig(_env_file=None)
        assert cfg.retry_delay == 0.5

    def test_env_is_case_insensitive(self, clean_env, monkeypatch):
        monkeypatch.setenv("imagegen_backend_url", "http://example.test/run")
        cfg = ImageGenConfig(_env_file=None)
        assert cfg.backend_url == "http://example.test/run"

    def test_api_key_not_in_repr(self, clean_env, monkeypatch):
        """The credential must never appear when the config is printed."""
        monkeypatch.setenv("IMAGEGEN_BACKEND_API_KEY", "super-secret")
        cfg = ImageGenConfig(_env_file=None)
        assert cfg.backend_api_key.get_secret_value() == "super-secret"
        assert "super-secret" not in repr(cfg)


class TestConfigValidation:
    """Verify Pydantic constraints on configuration fields."""

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValidationError):
            ImageGenConfig(_env_file=None, backend="grpc")

    def test_port_below_range_rejected(self):
        with pytest.raises(ValidationError):
            ImageGenConfig(_env_file=None, server_port=80)

    def test_zero_retry_attempts_rejected(self):
        with pytest.raises(ValidationError):
            ImageGenConfig(_env_file=None, retry_attempts=0)

    def test_negative_retry_delay_rejected(self):
        with pytest.raises(ValidationError):
            ImageGenConfig(_env_file=None, retry_delay=-1)

    def test_fallback_content_type_restricted(self):
        with pytest.raises(ValidationError):
            ImageGenConfig(_env_file=None, base64_content_type="image/gif")
