"""Top-level audit orchestration: server startup, audit flavours and result persistence."""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any, Final, Sequence

from preview_audit.adapters import PreviewAuditError, ServerStartupError
from preview_audit.domain import ActiveServer

from .audit_engine import AuditEngine
from .interfaces import EnvironmentValidationPort, JobExecutionResult, JobOrchestratorPort, ServerControlPort

logger = logging.getLogger(__name__)

SUPPORTED_AUDIT_JOBS: Final[tuple[str, ...]] = ("performance", "seo", "lighthouse")
PERFORMANCE_BENCH_RUNS: Final[int] = 3
_BENCH_METRIC_AUDITS: Final[dict[str, str]] = {
    "fcp": "first-contentful-paint",
    "lcp": "largest-contentful-paint",
    "tbt": "total-blocking-time",
    "cls": "cumulative-layout-shift",
    "si": "speed-index",
}


def runner_category_score(report: dict[str, Any], category: str) -> int | None:
    """Return a category score scaled to 0-100 with half-up rounding.

    Args:
        report: Lighthouse report.
        category: Category identifier.

    Returns:
        int | None: Rounded score, or None when Lighthouse reported no score.
    """

    category_payload = (report.get("categories") or {}).get(category) or {}
    score = category_payload.get("score")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        return None
    return int(math.floor(score * 100 + 0.5))


def runner_summarize_performance(report: dict[str, Any]) -> dict[str, Any]:
    """Reduce a performance report to its headline score and display metrics."""

    audits = report.get("audits") or {}
    summary: dict[str, Any] = {"performance": runner_category_score(report, "performance")}
    for metric_name, audit_id in _BENCH_METRIC_AUDITS.items():
        summary[metric_name] = (audits.get(audit_id) or {}).get("displayValue") or "N/A"
    return summary


class AuditRunner(JobOrchestratorPort):
    """Run named audit jobs against a given or locally started preview server."""

    def __init__(
        self,
        server_manager: ServerControlPort,
        audit_engine: AuditEngine,
        environment_validator: EnvironmentValidationPort,
    ):
        """Initialize audit runner.

        Args:
            server_manager: Server lifecycle owner.
            audit_engine: Retrying Lighthouse engine.
            environment_validator: Pre-flight environment validator.

        Raises:
            ValueError: Raised when dependencies are missing.
        """

        if server_manager is None:
            raise ValueError("server_manager must not be None")
        if audit_engine is None:
            raise ValueError("audit_engine must not be None")
        if environment_validator is None:
            raise ValueError("environment_validator must not be None")

        self._server_manager = server_manager
        self._audit_engine = audit_engine
        self._environment_validator = environment_validator

    def job_supported_names(self) -> tuple[str, ...]:
        """Return supported audit job names.

        Returns:
            tuple[str, ...]: Supported job identifiers.
        """

        return SUPPORTED_AUDIT_JOBS

    def job_execute(
        self,
        job_name: str,
        url: str | None = None,
        output_path: str = "audit-results.json",
    ) -> JobExecutionResult:
        """Execute one audit job and persist its results.

        Spawned servers are stopped before this method returns, on success and
        on failure alike.

        Args:
            job_name: One of `performance`, `seo` or `lighthouse`.
            url: Target URL; a local server is started and validated when omitted.
            output_path: JSON results destination.

        Returns:
            JobExecutionResult: `success` or `failed` with the failure message.

        Raises:
            ValueError: Raised when the job name is unsupported.
        """

        if job_name not in SUPPORTED_AUDIT_JOBS:
            raise ValueError(f"Unknown audit type: {job_name}")

        try:
            server_url = url or self.runner_start_server_with_validation().url
            if job_name == "performance":
                results: Any = self.runner_run_performance_bench(server_url, runs=PERFORMANCE_BENCH_RUNS)
            elif job_name == "seo":
                results = self.runner_run_seo_audit(server_url)
            else:
                results = self.runner_run_lighthouse_audit(server_url)
            self.runner_save_results(results, output_path)
        except PreviewAuditError as error:
            logger.error("Audit failed: %s", error)
            return JobExecutionResult(job_name=job_name, status="failed", detail=str(error))
        finally:
            self.runner_cleanup()

        logger.info("Audit completed successfully")
        return JobExecutionResult(job_name=job_name, status="success", detail=output_path)

    def runner_start_server_with_validation(self, preferred_port: int | None = None) -> ActiveServer:
        """Start the best available server and require it to render.

        Args:
            preferred_port: Optional port to try first.

        Returns:
            ActiveServer: Validated running server.

        Raises:
            AllServersFailedError: Raised when no server could be started.
            ServerStartupError: Raised when the started server failed validation.
        """

        active_server = self._server_manager.server_start_best_available(preferred_port=preferred_port)
        self._audit_engine.audit_set_active_server(active_server)

        validation = self._environment_validator.environment_validate(active_server.url)
        if not validation.success:
            self.runner_cleanup()
            self._audit_engine.audit_set_active_server(None)
            raise ServerStartupError(
                f"Environment validation failed: {validation.error}",
                config_name=active_server.name,
            )

        logger.info("Server started and validated: %s", active_server.url)
        return active_server

    def runner_run_lighthouse_audit(self, url: str, categories: Sequence[str] | None = None) -> dict[str, Any]:
        """Run one retried Lighthouse audit and return the report.

        Raises:
            AuditExhaustedError: Raised when every attempt failed.
        """

        return self._audit_engine.audit_run(url, categories=categories).report

    def runner_run_performance_bench(self, url: str, runs: int = PERFORMANCE_BENCH_RUNS) -> list[dict[str, Any]]:
        """Run repeated performance-only audits.

        A failed run contributes `{"error": message}` and the bench continues.

        Args:
            url: Page URL.
            runs: Number of audits.

        Returns:
            list[dict[str, Any]]: One summary or error entry per run.
        """

        logger.info("Running custom performance benchmark (%d runs)", runs)
        results: list[dict[str, Any]] = []
        for run in range(1, runs + 1):
            logger.info("Performance run %d/%d", run, runs)
            try:
                report = self.runner_run_lighthouse_audit(url, categories=["performance"])
            except PreviewAuditError as error:
                logger.warning("Performance run %d failed: %s", run, error)
                results.append({"error": str(error)})
                continue
            summary = runner_summarize_performance(report)
            logger.info("Run %d completed: %s", run, summary)
            results.append(summary)
        return results

    def runner_run_seo_audit(self, url: str) -> dict[str, Any]:
        """Run an SEO, accessibility and best-practices audit.

        Returns:
            dict[str, Any]: `scores` (0-100) and `fullReport`.

        Raises:
            AuditExhaustedError: Raised when every attempt failed.
        """

        logger.info("Running comprehensive SEO audit...")
        report = self.runner_run_lighthouse_audit(url, categories=["seo", "accessibility", "best-practices"])
        scores = {
            "seo": runner_category_score(report, "seo"),
            "accessibility": runner_category_score(report, "accessibility"),
            "bestPractices": runner_category_score(report, "best-practices"),
        }
        logger.info("SEO audit completed: %s", scores)
        return {"scores": scores, "fullReport": report}

    def runner_save_results(self, results: Any, output_path: str | Path) -> None:
        """Write results as indented JSON; write failures are logged."""

        target_path = Path(output_path)
        try:
            target_path.parent.mkdir(parents=True, exist_ok=True)
            target_path.write_text(json.dumps(results, indent=2), encoding="utf-8")
        except (OSError, TypeError, ValueError) as error:
            logger.warning("Failed to save results: %s", error)
            return
        logger.info("Results saved to: %s", target_path)

    def runner_cleanup(self) -> None:
        """Stop every managed server; errors are logged."""

        logger.info("Cleaning up resources...")
        try:
            self._server_manager.server_stop_all()
        except (OSError, PreviewAuditError) as error:
            logger.warning("Cleanup error: %s", error)
            return
        logger.info("Cleanup completed")

    def runner_close(self) -> None:
        """Stop every managed server and release pooled HTTP clients."""

        try:
            self._server_manager.server_close()
        except (OSError, PreviewAuditError) as error:
            logger.warning("Cleanup error: %s", error)
        finally:
            self._environment_validator.environment_close()
