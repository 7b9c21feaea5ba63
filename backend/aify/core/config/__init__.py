"""Configuration for the Aify backend.

Usage:
    from aify.core.config import settings

    grant = settings.FREE_TIER_GRANT
"""

from aify.core.config.settings import Environment, Settings

__all__ = [
    "Environment",
    "Settings",
    "settings",
]

settings = Settings()
