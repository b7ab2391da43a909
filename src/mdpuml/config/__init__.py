"""Configuration for mdpuml.

Usage:
    from mdpuml.config import load_settings

    settings = load_settings(root_directory=Path("."), overrides={"embed": True})
    print(settings.server_url)
"""

from mdpuml.config.loader import (
    CONFIG_FILE_NAME,
    LOCAL_SERVER_URL,
    PUBLIC_SERVER_URL,
    Settings,
    load_settings,
)

__all__ = [
    "CONFIG_FILE_NAME",
    "LOCAL_SERVER_URL",
    "PUBLIC_SERVER_URL",
    "Settings",
    "load_settings",
]
