"""
Analytics pipeline configuration.

Defaults, optional JSON file, then environment variables.
"""

from .loader import CONFIG_PATH_ENV, load_settings
from .schemas import ENV_PREFIX, MEMORY_MONGO_URL, MOCK_PERMISSIONS_URL, AppSettings

__all__ = [
    "AppSettings",
    "CONFIG_PATH_ENV",
    "ENV_PREFIX",
    "MEMORY_MONGO_URL",
    "MOCK_PERMISSIONS_URL",
    "load_settings",
]
