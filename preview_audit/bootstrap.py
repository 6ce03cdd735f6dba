"""Runtime wiring for server orchestration, environment validation and audits."""

from pathlib import Path

from preview_audit.adapters import HttpHealthChecker, LighthouseCliAdapter
from preview_audit.browser import BrowserLauncher, EnvironmentValidator, RenderValidator
from preview_audit.config import AuditSettings, config_load_settings
from preview_audit.jobs import AuditEngine, AuditEngineConfig, AuditRunner
from preview_audit.servers import ServerLauncher, ServerManager


def bootstrap_create_server_manager(settings: AuditSettings | None = None) -> ServerManager:
    """Assemble the server manager for the current working directory.

    Args:
        settings: Optional pre-loaded settings.

    Returns:
        ServerManager: Manager over the declared fallback candidates.

    Raises:
        SettingsLoadError: Raised when startup configuration validation fails.
    """

    resolved_settings = settings or config_load_settings()
    working_directory = Path.cwd()
    launcher = ServerLauncher(
        health_checker=HttpHealthChecker(),
        verbose=resolved_settings.debug_server,
        working_directory=working_directory,
    )
    return ServerManager(launcher=launcher, dist_path=working_directory / "dist")


def bootstrap_create_environment_validator(settings: AuditSettings | None = None) -> EnvironmentValidator:
    """Assemble the server-response and render validator.

    Args:
        settings: Optional pre-loaded settings.

    Returns:
        EnvironmentValidator: Validator using headless Chromium.
    """

    resolved_settings = settings or config_load_settings()
    browser_launcher = BrowserLauncher(ci=resolved_settings.is_ci, debug=resolved_settings.debug_chrome)
    render_validator = RenderValidator(browser_launcher=browser_launcher, debug=resolved_settings.debug_chrome)
    return EnvironmentValidator(render_validator=render_validator)


def bootstrap_create_audit_runner(
    settings: AuditSettings | None = None,
    server_manager: ServerManager | None = None,
) -> AuditRunner:
    """Assemble the audit runner with its engine, validator and server manager.

    Args:
        settings: Optional pre-loaded settings.
        server_manager: Optional shared server manager.

    Returns:
        AuditRunner: Fully wired runner.
    """

    resolved_settings = settings or config_load_settings()
    resolved_server_manager = server_manager or bootstrap_create_server_manager(resolved_settings)
    environment_validator = bootstrap_create_environment_validator(resolved_settings)
    audit_engine = AuditEngine(
        audit_tool=LighthouseCliAdapter(
            lighthouse_path=resolved_settings.lighthouse_path,
            verbose=resolved_settings.debug_audit,
        ),
        config=AuditEngineConfig(ci=resolved_settings.is_ci),
        environment_validator=environment_validator,
        server_manager=resolved_server_manager,
    )
    return AuditRunner(
        server_manager=resolved_server_manager,
        audit_engine=audit_engine,
        environment_validator=environment_validator,
    )
