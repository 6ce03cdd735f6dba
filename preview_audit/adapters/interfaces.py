"""Typed interfaces for adapter-layer responsibilities."""

from typing import Any
from typing import Protocol


class HealthCheckPort(Protocol):
    """Port definition for HTTP readiness probing."""

    def health_check_is_healthy(self, url: str, timeout_seconds: float) -> bool:
        """Poll the URL until it answers successfully or the budget elapses.

        Args:
            url: Target URL.
            timeout_seconds: Overall polling budget.

        Returns:
            bool: True when a successful response was observed in time.
        """

    def health_check_close(self) -> None:
        """Release pooled connections held by the checker."""


class AuditToolPort(Protocol):
    """Port definition for running one page audit."""

    def adapter_source_name(self) -> str:
        """Return audit tool identifier for diagnostics.

        Returns:
            str: Human-readable tool identifier.
        """

    def adapter_run_audit(
        self,
        url: str,
        config: dict[str, Any],
        chrome_flags: list[str],
        timeout_seconds: float,
    ) -> dict[str, Any] | None:
        """Run one audit and return the raw result document.

        Args:
            url: Page URL to audit.
            config: Audit tool configuration document.
            chrome_flags: Browser command-line flags for the audit browser.
            timeout_seconds: Hard wall-clock limit for the tool run.

        Returns:
            dict[str, Any] | None: Result document, or None when the tool produced nothing.

        Raises:
            AuditToolError: Raised when the tool fails or times out.
        """
