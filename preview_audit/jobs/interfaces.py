"""Typed interfaces for job-layer orchestration responsibilities."""

from dataclasses import dataclass
from typing import Protocol

from preview_audit.browser import EnvironmentValidationResult
from preview_audit.domain import ActiveServer


@dataclass(frozen=True)
class JobExecutionResult:
    """Result contract for one audit job execution.

    Attributes:
        job_name: Job identifier.
        status: Final execution state.
        detail: Failure message or output location.
    """

    job_name: str
    status: str
    detail: str | None = None


class EnvironmentValidationPort(Protocol):
    """Port definition for audit pre-flight validation."""

    def environment_validate(self, url: str) -> EnvironmentValidationResult:
        """Validate that the URL serves and renders content.

        Args:
            url: Target URL.

        Returns:
            EnvironmentValidationResult: Validation outcome; failures are not raised.
        """

    def environment_close(self) -> None:
        """Release pooled connections held by the validator."""


class ServerControlPort(Protocol):
    """Port definition for the server lifecycle operations audits depend on."""

    def server_start_best_available(self, preferred_port: int | None = None) -> ActiveServer:
        """Start the best available server.

        Raises:
            AllServersFailedError: Raised when every candidate failed.
        """

    def server_stop_all(self) -> None:
        """Stop every managed server."""

    def server_close(self) -> None:
        """Stop every managed server and release held resources."""


class JobOrchestratorPort(Protocol):
    """Port definition for running named audit jobs."""

    def job_supported_names(self) -> tuple[str, ...]:
        """Return the set of job names this orchestrator can execute.

        Returns:
            tuple[str, ...]: Deterministic list of supported job names.
        """

    def job_execute(self, job_name: str, url: str | None = None, output_path: str = "audit-results.json") -> JobExecutionResult:
        """Execute one named job.

        Args:
            job_name: Job name.
            url: Target URL; a local server is started when omitted.
            output_path: JSON results destination.

        Returns:
            JobExecutionResult: Final execution status payload.

        Raises:
            ValueError: Raised when the job name is unsupported.
        """
