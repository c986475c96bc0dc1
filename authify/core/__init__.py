"""Core app configuration, database and password hashing."""

from authify.core.config import get_settings, settings
from authify.core.database import get_engine

__all__ = ["get_settings", "settings", "get_engine"]
