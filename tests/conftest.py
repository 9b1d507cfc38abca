"""Shared fixtures for the safecall test suite."""

from typing import Any

import pytest


class RecordingFailureLogger:
    """FailureLogger stand-in that keeps every warn() call."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, dict[str, Any]]] = []

    def warn(self, reason: Any, context: dict[str, Any]) -> None:
        self.calls.append((reason, context))


class RecordingSleep:
    """time.sleep stand-in that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def failure_logger() -> RecordingFailureLogger:
    return RecordingFailureLogger()


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer SAFECALL_* variables from leaking into tests."""
    import os

    for key in list(os.environ):
        if key.startswith("SAFECALL_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def sentry_reset():
    """Drop any Sentry client a test initialised."""
    import sentry_sdk

    yield
    sentry_sdk.get_client().close()
    sentry_sdk.get_global_scope().set_client(None)
