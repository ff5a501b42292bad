"""Core application configuration and utilities.

This package contains:
- Configuration management (config.py)
- Logging setup (logging.py)
"""

from poweragent.core.config import Settings, get_settings, settings

__all__ = [
    "Settings",
    "get_settings",
    "settings",
]
