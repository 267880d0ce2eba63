"""Core: settings and shared constants.

Single place for configuration and Firestore REST literals.
"""

from firestore_connector.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
