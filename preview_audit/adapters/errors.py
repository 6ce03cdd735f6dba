"""Project-native typed exceptions for orchestration and audit failures."""

from __future__ import annotations

from typing import Any, Sequence


class PreviewAuditError(Exception):
    """Base exception for preview-audit failures."""


class EnvironmentSetupError(PreviewAuditError, RuntimeError):
    """Misconfiguration that retrying cannot fix."""


class PortInUseError(EnvironmentSetupError):
    """Candidate port is already bound by another process.

    Attributes:
        port: Busy TCP port.
    """

    def __init__(self, port: int):
        super().__init__(f"Port {port} is already in use")
        self.port = port


class CommandNotFoundError(EnvironmentSetupError):
    """Candidate launch command does not resolve on the search path.

    Attributes:
        command: Missing executable name.
    """

    def __init__(self, command: str):
        super().__init__(f"Command '{command}' not found in PATH")
        self.command = command


class DistValidationError(EnvironmentSetupError):
    """Build output directory is missing or incomplete."""


class ServerStartupError(PreviewAuditError, RuntimeError):
    """Server candidate could not be started and health-checked.

    Attributes:
        config_name: Name of the failing server candidate.
    """

    def __init__(self, message: str, config_name: str | None = None):
        super().__init__(message)
        self.config_name = config_name


class AllServersFailedError(ServerStartupError):
    """Every server candidate failed to start.

    Attributes:
        failures: Candidate name and failure message pairs in attempt order.
    """

    def __init__(self, failures: Sequence[tuple[str, str]]):
        lines = "\n".join(f"- {name}: {message}" for name, message in failures)
        super().__init__(f"All server configurations failed:\n{lines}")
        self.failures = tuple(failures)


class ServerResponseError(PreviewAuditError, ConnectionError):
    """Server did not return a successful non-empty response."""


class RenderValidationError(PreviewAuditError, RuntimeError):
    """Page never rendered application content.

    Attributes:
        snapshot: Last DOM snapshot collected before giving up, when available.
    """

    def __init__(self, message: str, snapshot: dict[str, Any] | None = None):
        super().__init__(message)
        self.snapshot = snapshot


class BrowserLaunchError(PreviewAuditError, RuntimeError):
    """Headless browser process could not be launched."""


class AuditToolError(PreviewAuditError, RuntimeError):
    """Audit tool crashed, timed out or produced an unusable report."""


class AuditExhaustedError(PreviewAuditError, RuntimeError):
    """Audit retries were exhausted without a usable result.

    Attributes:
        attempts: Attempt records in execution order.
    """

    def __init__(self, message: str, attempts: Sequence[Any] = ()):
        super().__init__(message)
        self.attempts = tuple(attempts)


class BudgetDocumentError(PreviewAuditError, ValueError):
    """Budget document could not be parsed or validated."""
