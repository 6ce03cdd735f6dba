"""Typed runtime settings with dotenv support and startup validation."""

from __future__ import annotations

import logging

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_COMPONENT_DEBUG_LOGGERS = {
    "debug_chrome": "preview_audit.browser",
    "debug_audit": "preview_audit.jobs",
    "debug_server": "preview_audit.servers",
}


class SettingsLoadError(RuntimeError):
    """Raised when runtime settings cannot be loaded or validated."""


class AuditSettings(BaseSettings):
    """Runtime settings for server orchestration, audits and budget enforcement.

    Environment variable names map directly to field names in uppercase.
    Example: `debug_chrome` reads from `DEBUG_CHROME`. Boolean flags follow CI
    shell conventions where only the literal string `true` enables a flag.

    Attributes:
        ci: Generic continuous-integration marker.
        github_actions: GitHub Actions runner marker.
        debug_chrome: Verbose browser launch and render diagnostics.
        debug_audit: Verbose audit engine diagnostics.
        debug_server: Verbose server launcher diagnostics and inherited server output.
        node_env: Budget environment profile name.
        log_level: Root log level for the `preview_audit` logger tree.
        lighthouse_path: Optional explicit Lighthouse CLI binary path.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    ci: bool = Field(default=False)
    github_actions: bool = Field(default=False)
    debug_chrome: bool = Field(default=False)
    debug_audit: bool = Field(default=False)
    debug_server: bool = Field(default=False)
    node_env: str = Field(default="production", min_length=1)
    log_level: str = Field(default="INFO")
    lighthouse_path: str | None = Field(default=None)

    @field_validator("ci", "github_actions", "debug_chrome", "debug_audit", "debug_server", mode="before")
    @classmethod
    def _validate_literal_true_flag(cls, value: object) -> bool:
        if isinstance(value, bool):
            return value
        if value is None:
            return False
        return str(value).strip().lower() == "true"

    @field_validator("node_env")
    @classmethod
    def _validate_non_empty_string(cls, value: str) -> str:
        stripped_value = value.strip()
        if not stripped_value:
            raise ValueError("value must not be blank")
        return stripped_value

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        normalized_level = value.strip().upper()
        if normalized_level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {value}")
        return normalized_level

    @property
    def is_ci(self) -> bool:
        """Return whether the process runs under continuous integration."""

        return self.ci or self.github_actions


def config_load_settings() -> AuditSettings:
    """Load and validate runtime settings from environment and dotenv.

    Returns:
        AuditSettings: Validated runtime settings object.

    Raises:
        SettingsLoadError: Raised when settings are invalid.
    """

    try:
        return AuditSettings()
    except ValidationError as error:
        raise SettingsLoadError(
            f"Startup configuration validation failed. Update .env or environment variables. Details: {error}"
        ) from error


def config_configure_logging(settings: AuditSettings) -> None:
    """Attach one console handler to the package logger and apply debug toggles.

    Args:
        settings: Validated runtime settings.

    Returns:
        None: Logging configuration is applied as side effect.
    """

    package_logger = logging.getLogger("preview_audit")
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        package_logger.addHandler(handler)
    package_logger.setLevel(settings.log_level)

    for field_name, logger_name in _COMPONENT_DEBUG_LOGGERS.items():
        if getattr(settings, field_name):
            logging.getLogger(logger_name).setLevel(logging.DEBUG)
