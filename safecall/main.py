"""Process-wide bootstrap for applications that use safecall."""

from typing import Optional

from safecall.core.config import Settings, get_settings


def setup(settings: Optional[Settings] = None) -> Settings:
    """Configure logging and crash reporting from *settings*.

    Call once at application startup, before the first capture(). Returns
    the settings that were applied.
    """
    settings = settings or get_settings()

    # ---------------------------------------------------------------------------
    # Sentry: initialised first so it sees errors raised during startup too
    # ---------------------------------------------------------------------------
    from safecall.core.sentry import init_sentry

    init_sentry(dsn=settings.sentry_dsn, environment=settings.sentry_environment)

    # ---------------------------------------------------------------------------
    # Logging: configure structlog before any capture logs anything
    # ---------------------------------------------------------------------------
    from safecall.core.logging import configure_structlog

    configure_structlog(debug=settings.debug)

    return settings
