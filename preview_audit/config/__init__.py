"""Configuration package for runtime settings and startup validation."""

from .settings import AuditSettings, SettingsLoadError, config_configure_logging, config_load_settings

__all__ = ["AuditSettings", "SettingsLoadError", "config_load_settings", "config_configure_logging"]
