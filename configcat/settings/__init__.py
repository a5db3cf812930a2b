"""SDK settings loading."""

from .app import ConfigCatSettings, get_settings


__all__ = ["ConfigCatSettings", "get_settings"]
