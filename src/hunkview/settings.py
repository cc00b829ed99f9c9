"""Centralized environment configuration for hunkview.

All environment variables are read through this module using the HUNKVIEW_
prefix. Command-line flags take precedence over these values.

Usage:
    from hunkview.settings import settings

    mode = settings.view_mode()
"""

from __future__ import annotations

import os

_VIEW_MODES = ("unified", "split")


def _get(name: str, default: str = "") -> str:
    """Get an environment variable value."""
    return os.environ.get(name, "").strip() or default


def _get_int(name: str, default: int = 0) -> int:
    """Get an integer environment variable."""
    value = os.environ.get(name, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


class Settings:
    """Centralized settings for hunkview.

    Environment variables use the HUNKVIEW_ prefix.
    """

    @staticmethod
    def log_level() -> str:
        """Logging level name.

        Env: HUNKVIEW_LOG_LEVEL (default: INFO)
        """
        return _get("HUNKVIEW_LOG_LEVEL", "INFO").upper()

    @staticmethod
    def log_format() -> str:
        """Log renderer, ``console`` or ``json``.

        Env: HUNKVIEW_LOG_FORMAT (default: console)
        """
        value = _get("HUNKVIEW_LOG_FORMAT", "console").lower()
        return value if value in ("console", "json") else "console"

    @staticmethod
    def view_mode() -> str:
        """Default diff layout, ``unified`` or ``split``.

        Env: HUNKVIEW_VIEW_MODE (default: unified)
        """
        value = _get("HUNKVIEW_VIEW_MODE", "unified").lower()
        return value if value in _VIEW_MODES else "unified"

    @staticmethod
    def max_expanded_lines() -> int:
        """Hunks longer than this render collapsed.

        Env: HUNKVIEW_MAX_EXPANDED_LINES (default: 120)
        """
        return max(_get_int("HUNKVIEW_MAX_EXPANDED_LINES", 120), 1)

    @staticmethod
    def cache_size() -> int:
        """Number of projections kept by ``ProjectionCache``.

        Env: HUNKVIEW_CACHE_SIZE (default: 64)
        """
        return max(_get_int("HUNKVIEW_CACHE_SIZE", 64), 1)


settings = Settings()
