"""
Process-wide settings for request handlers, the app lifespan and the
cron-style scripts.
"""

import structlog

from core.settings import Settings

log = structlog.get_logger(__name__)

_settings: Settings | None = None


def get_settings() -> Settings:
    """Dependency that provides application settings."""
    assert (
        _settings is not None
    ), "Settings not initialized. Make sure init_settings() was called."
    return _settings


def init_settings(**overrides) -> Settings:
    """Load settings from the environment (and .env), plus explicit overrides."""
    global _settings
    _settings = Settings(**overrides)
    if _settings.ZOHO_GATEWAY_ENABLED and not _settings.credentials.is_complete():
        log.warning(
            "settings.incomplete_credentials",
            missing=_settings.credentials.missing_fields(),
        )
    return _settings


def clear_settings():
    global _settings
    _settings = None
