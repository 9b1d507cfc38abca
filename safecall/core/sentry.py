"""Sentry SDK integration for crash reporting.

Used by the ``crash_report`` option: when a captured callable raises, the
exception is also handed to Sentry so external crash monitoring sees it.

Key decisions:
  - `send_default_pii=False`: no user data sent by default.
  - `before_send` hook scrubs any event field whose key contains a
    sensitive keyword (api_key, secret, password, token, dsn).
  - No-op when the DSN is empty so the integration never raises in
    environments that don't configure it (local dev, CI).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import sentry_sdk

from safecall.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Keywords that indicate a value should be redacted from Sentry events
_SENSITIVE_KEYS = frozenset({"api_key", "secret", "password", "token", "dsn"})

# Seconds to wait for queued events before a short-lived unit exits
_FLUSH_TIMEOUT_SECONDS = 2.0


def _scrub_secrets(event: dict[str, Any], hint: Any) -> dict[str, Any]:
    """Sentry before_send hook: redact values for sensitive keys.

    Walks the event's `extra` and `request.data` dicts and replaces
    the values of any key matching a sensitive keyword with "[REDACTED]".
    """
    _scrub_dict(event.get("extra", {}))
    request_data = event.get("request", {}).get("data", {})
    if isinstance(request_data, dict):
        _scrub_dict(request_data)
    return event


def _scrub_dict(d: dict[str, Any]) -> None:
    """Recursively redact sensitive values in-place."""
    for key in list(d.keys()):
        if any(sensitive in key.lower() for sensitive in _SENSITIVE_KEYS):
            d[key] = "[REDACTED]"
        elif isinstance(d[key], dict):
            _scrub_dict(d[key])


def init_sentry(dsn: str, environment: str = "development") -> None:
    """Initialise the Sentry SDK.

    If `dsn` is empty, this is a no-op so local and CI environments are
    unaffected.

    Args:
        dsn: Sentry DSN string. Empty string disables Sentry entirely.
        environment: Sentry environment tag ("development" | "production").
    """
    if not dsn or not dsn.strip():
        logger.debug("Sentry DSN not configured, skipping initialisation")
        return

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        send_default_pii=False,
        before_send=_scrub_secrets,
    )
    logger.info("Sentry initialised (environment=%s)", environment)


def ensure_sentry(settings: Optional[Settings] = None) -> bool:
    """Initialise Sentry from settings unless a client is already active.

    Returns whether a client is active afterwards.
    """
    if sentry_sdk.get_client().is_active():
        return True
    settings = settings or get_settings()
    init_sentry(dsn=settings.sentry_dsn, environment=settings.sentry_environment)
    return sentry_sdk.get_client().is_active()


def report_crash(exc: BaseException) -> bool:
    """Send *exc* to Sentry and flush. Returns False when no client is active."""
    if not sentry_sdk.get_client().is_active():
        return False
    sentry_sdk.capture_exception(exc)
    sentry_sdk.flush(timeout=_FLUSH_TIMEOUT_SECONDS)
    return True
