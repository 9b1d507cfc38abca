"""Tests for the Sentry integration.

Validates the before_send hook (secret scrubbing), that init_sentry is a
no-op without a DSN, and how report_crash talks to the SDK. No events are
sent anywhere.
"""

from unittest.mock import MagicMock, patch

import sentry_sdk

from safecall.core.config import Settings
from safecall.core.sentry import (
    _scrub_dict,
    _scrub_secrets,
    ensure_sentry,
    init_sentry,
    report_crash,
)

DSN = "https://key@example.invalid/1"


class TestScrubDict:
    def test_redacts_api_key_values(self) -> None:
        d = {"openai_api_key": "sk-abc123", "name": "test"}
        _scrub_dict(d)
        assert d["openai_api_key"] == "[REDACTED]"
        assert d["name"] == "test"

    def test_redacts_token_values(self) -> None:
        d = {"access_token": "tok_abc"}
        _scrub_dict(d)
        assert d["access_token"] == "[REDACTED]"

    def test_recurses_into_nested_dicts(self) -> None:
        d = {"config": {"api_key": "secret123"}}
        _scrub_dict(d)
        assert d["config"]["api_key"] == "[REDACTED]"

    def test_case_insensitive_matching(self) -> None:
        d = {"API_KEY": "secret", "Secret": "value"}
        _scrub_dict(d)
        assert d["API_KEY"] == "[REDACTED]"
        assert d["Secret"] == "[REDACTED]"


class TestScrubSecrets:
    def test_scrubs_extra_dict(self) -> None:
        event = {"extra": {"db_password": "hunter2"}, "request": {}}
        result = _scrub_secrets(event, None)
        assert result["extra"]["db_password"] == "[REDACTED]"

    def test_handles_missing_extra_key(self) -> None:
        event = {"request": {}}
        assert _scrub_secrets(event, None) is event

    def test_handles_non_dict_request_data(self) -> None:
        event = {"extra": {}, "request": {"data": "raw-body-string"}}
        assert _scrub_secrets(event, None) is event


class TestInitSentry:
    def test_no_op_when_dsn_is_empty(self) -> None:
        with patch("safecall.core.sentry.sentry_sdk.init") as init:
            init_sentry(dsn="", environment="test")
            init_sentry(dsn="   ", environment="test")
        init.assert_not_called()

    def test_initialises_with_scrubber(self) -> None:
        with patch("safecall.core.sentry.sentry_sdk.init") as init:
            init_sentry(dsn="https://key@example.invalid/1", environment="production")
        kwargs = init.call_args.kwargs
        assert kwargs["environment"] == "production"
        assert kwargs["send_default_pii"] is False
        assert kwargs["before_send"] is _scrub_secrets


class TestReportCrash:
    def test_no_op_without_active_client(self) -> None:
        with patch("safecall.core.sentry.sentry_sdk.capture_exception") as capture:
            assert report_crash(ValueError("x")) is False
        capture.assert_not_called()

    def test_captures_and_flushes_with_active_client(self) -> None:
        client = MagicMock()
        client.is_active.return_value = True
        error = ValueError("x")

        with patch("safecall.core.sentry.sentry_sdk") as sdk:
            sdk.get_client.return_value = client
            assert report_crash(error) is True

        sdk.capture_exception.assert_called_once_with(error)
        sdk.flush.assert_called_once()


class TestEnsureSentry:
    def test_dsn_from_environment_activates_client(self, monkeypatch, sentry_reset) -> None:
        monkeypatch.setenv("SAFECALL_SENTRY_DSN", DSN)
        monkeypatch.setenv("SAFECALL_SENTRY_ENVIRONMENT", "staging")

        assert ensure_sentry() is True
        client = sentry_sdk.get_client()
        assert client.is_active()
        assert client.options["environment"] == "staging"

    def test_blank_dsn_leaves_reporting_off(self, sentry_reset) -> None:
        assert ensure_sentry(Settings(sentry_dsn="")) is False
        assert not sentry_sdk.get_client().is_active()

    def test_active_client_is_kept(self) -> None:
        client = MagicMock()
        client.is_active.return_value = True

        with patch("safecall.core.sentry.sentry_sdk") as sdk:
            sdk.get_client.return_value = client
            assert ensure_sentry(Settings(sentry_dsn=DSN)) is True

        sdk.init.assert_not_called()
