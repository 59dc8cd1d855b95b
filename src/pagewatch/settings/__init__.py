"""pagewatch settings package."""

from pagewatch.settings.config import Settings, get_settings, load_settings

__all__ = ["Settings", "get_settings", "load_settings"]
