"""Tests for log sanitization and logging configuration."""

import structlog

from tenant_auth.core.config import Settings
from tenant_auth.core.logging import (
    _redact_sensitive_keys,
    configure_logging,
    sanitize_payload,
)


class TestSanitizePayload:
    def test_masks_sensitive_fields(self):
        body = {
            "email": "a@x.com",
            "password": "pw1",
            "current_password": "old",
            "new_password": "new",
            "access_token": "at",
            "refresh_token": "rt",
            "token": "t",
        }
        assert sanitize_payload(body) == {
            "email": "a@x.com",
            "password": "******",
            "current_password": "******",
            "new_password": "******",
            "access_token": "******",
            "refresh_token": "******",
            "token": "******",
        }

    def test_masks_oauth_query_values(self):
        params = {"state": "eyJ.signed.state", "code": "grant", "provider": "google"}
        assert sanitize_payload(params) == {
            "state": "******",
            "code": "******",
            "provider": "google",
        }

    def test_leaves_empty_values_alone(self):
        assert sanitize_payload({"password": ""}) == {"password": ""}

    def test_does_not_mutate_input(self):
        body = {"password": "pw1"}
        sanitize_payload(body)
        assert body == {"password": "pw1"}

    def test_non_mapping_passes_through(self):
        assert sanitize_payload(None) is None
        assert sanitize_payload(["password"]) == ["password"]


class TestRedactionProcessor:
    def test_masks_sensitive_keys(self):
        event = {
            "event": "login",
            "user_id": 1,
            "password_hash": "$2b$...",
            "client_secret": "s",
            "Authorization": "Bearer x",
        }
        result = _redact_sensitive_keys(None, "info", event)
        assert result["user_id"] == 1
        assert result["password_hash"] == "******"
        assert result["client_secret"] == "******"
        assert result["Authorization"] == "******"
        assert result["event"] == "login"


class TestConfigureLogging:
    def test_json_renderer_outside_development(self):
        configure_logging(
            Settings(
                environment="staging",
                jwt_secret="a" * 32,
                password_reset_secret="b" * 32,
            )
        )
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)
        assert _redact_sensitive_keys in processors

    def test_console_renderer_in_development(self):
        configure_logging(
            Settings(
                environment="development",
                log_json=False,
                jwt_secret="a" * 32,
                password_reset_secret="b" * 32,
            )
        )
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
