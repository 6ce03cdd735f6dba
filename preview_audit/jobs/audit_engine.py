"""Lighthouse audit engine with bounded retries and server-restart recovery."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Final, Sequence

from preview_audit.adapters import (
    AuditExhaustedError,
    AuditToolError,
    AuditToolPort,
    EnvironmentSetupError,
    ServerStartupError,
)
from preview_audit.browser import chrome_flags_for_lighthouse
from preview_audit.domain import (
    ActiveServer,
    AuditAttempt,
    AuditFailure,
    AuditOutcome,
    AuditRunResult,
    AuditSuccess,
    domain_build_stage_event,
    domain_utc_now_iso,
)

from .interfaces import EnvironmentValidationPort, ServerControlPort

logger = logging.getLogger(__name__)

NO_FCP_ERROR_CODE: Final[str] = "NO_FCP"
DEFAULT_AUDIT_CATEGORIES: Final[tuple[str, ...]] = ("performance", "accessibility", "best-practices", "seo")
CI_SKIPPED_AUDITS: Final[tuple[str, ...]] = ("uses-http2", "bf-cache", "largest-contentful-paint-element")
_DESKTOP_USER_AGENT: Final[str] = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


@dataclass(frozen=True)
class AuditEngineConfig:
    """Configuration values for audit execution.

    Attributes:
        ci: Whether CI-tuned timeouts, retries and skip-lists apply.
        max_retries: Attempt bound; defaults to 3 under CI, 2 otherwise.
        retry_delay_seconds: Base delay for linear backoff.
        audit_timeout_seconds: Tool wall-clock limit; defaults to 120s under CI, 60s otherwise.
        restart_settle_seconds: Pause between server teardown and relaunch.
    """

    ci: bool = False
    max_retries: int | None = None
    retry_delay_seconds: float = 5.0
    audit_timeout_seconds: float | None = None
    restart_settle_seconds: float = 3.0

    @property
    def resolved_max_retries(self) -> int:
        return self.max_retries or (3 if self.ci else 2)

    @property
    def resolved_audit_timeout_seconds(self) -> float:
        return self.audit_timeout_seconds or (120.0 if self.ci else 60.0)


def audit_build_lighthouse_config(ci: bool, categories: Sequence[str] | None = None) -> dict[str, Any]:
    """Build the Lighthouse configuration document.

    CI gets roughly double the paint and load wait budgets of local runs and
    skips audits that are flaky on shared runners.

    Args:
        ci: Whether CI tuning applies.
        categories: Categories to run; defaults to all four.

    Returns:
        dict[str, Any]: Lighthouse configuration.
    """

    return {
        "extends": "lighthouse:default",
        "settings": {
            "maxWaitForFcp": 45000 if ci else 15000,
            "maxWaitForLoad": 60000 if ci else 45000,
            "networkQuietThresholdMs": 1000,
            "cpuQuietThresholdMs": 1000,
            "pauseAfterFcpMs": 2000 if ci else 1000,
            "pauseAfterLoadMs": 2000 if ci else 1000,
            "emulatedUserAgent": _DESKTOP_USER_AGENT,
            "throttling": {
                "rttMs": 40,
                "throughputKbps": 10240,
                "cpuSlowdownMultiplier": 1,
                "requestLatencyMs": 0,
                "downloadThroughputKbps": 0,
                "uploadThroughputKbps": 0,
            },
            "screenEmulation": {
                "mobile": False,
                "width": 1920,
                "height": 1080,
                "deviceScaleFactor": 1,
                "disabled": False,
            },
            "formFactor": "desktop",
            "onlyCategories": list(categories or DEFAULT_AUDIT_CATEGORIES),
            "skipAudits": list(CI_SKIPPED_AUDITS) if ci else [],
        },
    }


def audit_classify_report(report: dict[str, Any] | None) -> AuditOutcome:
    """Classify one audit tool result.

    Args:
        report: Raw result document.

    Returns:
        AuditOutcome: Success, or a failure tagged with restart eligibility.
    """

    if not isinstance(report, dict):
        return AuditFailure(reason="Lighthouse returned invalid results")

    runtime_error = report.get("runtimeError") or {}
    error_code = runtime_error.get("code") if isinstance(runtime_error, dict) else None
    if error_code == NO_FCP_ERROR_CODE:
        return AuditFailure(
            reason="NO_FCP: Page did not paint any content - this usually indicates rendering issues",
            restart_eligible=True,
        )
    if error_code:
        return AuditFailure(reason=f"{error_code}: {runtime_error.get('message') or 'Lighthouse runtime error'}")
    if not isinstance(report.get("categories"), dict):
        return AuditFailure(reason="Lighthouse returned invalid results")
    return AuditSuccess(report=report)


class AuditEngine:
    """Run one Lighthouse audit with pre-flight checks, backoff and restart recovery."""

    def __init__(
        self,
        audit_tool: AuditToolPort,
        config: AuditEngineConfig,
        environment_validator: EnvironmentValidationPort | None = None,
        server_manager: ServerControlPort | None = None,
        active_server: ActiveServer | None = None,
        sleep_function: Callable[[float], None] | None = None,
    ):
        """Initialize audit engine.

        Args:
            audit_tool: Audit tool adapter.
            config: Retry and timeout configuration.
            environment_validator: Optional pre-flight validator.
            server_manager: Optional server lifecycle owner used for restarts.
            active_server: Server currently under audit, if managed locally.
            sleep_function: Blocking sleep provider.

        Raises:
            ValueError: Raised when dependencies or config values are invalid.
        """

        if audit_tool is None:
            raise ValueError("audit_tool must not be None")
        if config.max_retries is not None and config.max_retries < 1:
            raise ValueError("config.max_retries must be >= 1")
        if config.retry_delay_seconds < 0:
            raise ValueError("config.retry_delay_seconds must be >= 0")

        self._audit_tool = audit_tool
        self._config = config
        self._environment_validator = environment_validator
        self._server_manager = server_manager
        self._active_server = active_server
        self._sleep = sleep_function or time.sleep
        self._stage_timeline: list[dict[str, object]] = []

    @property
    def active_server(self) -> ActiveServer | None:
        """Return the server currently under audit."""

        return self._active_server

    def audit_set_active_server(self, active_server: ActiveServer | None) -> None:
        """Track the locally managed server that restarts may replace."""

        self._active_server = active_server

    def audit_stage_timeline(self) -> list[dict[str, object]]:
        """Return stage events recorded by the latest audit run."""

        return list(self._stage_timeline)

    def audit_run(self, url: str, categories: Sequence[str] | None = None) -> AuditRunResult:
        """Audit the URL, retrying failures up to the configured bound.

        Args:
            url: Page URL.
            categories: Lighthouse categories; defaults to all four.

        Returns:
            AuditRunResult: Successful report with attempt records.

        Raises:
            AuditExhaustedError: Raised when every attempt failed.
        """

        max_retries = self._config.resolved_max_retries
        lighthouse_config = audit_build_lighthouse_config(ci=self._config.ci, categories=categories)
        chrome_flags = chrome_flags_for_lighthouse(ci=self._config.ci)
        self._stage_timeline = []
        attempts: list[AuditAttempt] = []
        current_url = url
        last_failure: AuditFailure | None = None

        tool_name = self._audit_tool.adapter_source_name()
        for attempt in range(1, max_retries + 1):
            logger.info("Running %s audit (attempt %d/%d)", tool_name, attempt, max_retries)
            self._stage_timeline.append(
                domain_build_stage_event(
                    stage="audit",
                    status="started",
                    details={"attempt": attempt, "url": current_url, "tool": tool_name},
                )
            )
            outcome = self._audit_attempt_once(
                url=current_url,
                attempt=attempt,
                lighthouse_config=lighthouse_config,
                chrome_flags=chrome_flags,
            )

            if isinstance(outcome, AuditSuccess):
                attempts.append(AuditAttempt(attempt_number=attempt, at_utc=domain_utc_now_iso(), outcome="success"))
                self._stage_timeline.append(
                    domain_build_stage_event(stage="audit", status="completed", details={"attempt": attempt})
                )
                logger.info("Lighthouse audit completed successfully")
                return AuditRunResult(report=outcome.report, url=current_url, attempts=tuple(attempts))

            last_failure = outcome
            attempts.append(
                AuditAttempt(
                    attempt_number=attempt,
                    at_utc=domain_utc_now_iso(),
                    outcome="failure",
                    failure_reason=outcome.reason,
                    restart_eligible=outcome.restart_eligible,
                )
            )
            logger.warning("Lighthouse audit attempt %d failed: %s", attempt, outcome.reason)
            if attempt == max_retries:
                self._stage_timeline.append(
                    domain_build_stage_event(
                        stage="audit",
                        status="exhausted",
                        details={"attempt": attempt, "error_message": outcome.reason},
                    )
                )
                break

            delay_seconds = self._config.retry_delay_seconds * attempt
            self._stage_timeline.append(
                domain_build_stage_event(
                    stage="audit",
                    status="retrying",
                    details={
                        "attempt": attempt,
                        "error_message": outcome.reason,
                        "restart_eligible": outcome.restart_eligible,
                        "retry_after_seconds": delay_seconds,
                    },
                )
            )
            logger.info("Waiting %.1fs before retry...", delay_seconds)
            self._sleep(delay_seconds)

            if outcome.restart_eligible and attempt >= 2:
                restarted_url = self._audit_restart_server()
                if restarted_url is not None:
                    current_url = restarted_url

        reason = last_failure.reason if last_failure is not None else "no attempts made"
        raise AuditExhaustedError(
            f"Lighthouse audit failed after {max_retries} attempts: {reason}",
            attempts=attempts,
        )

    def _audit_should_preflight(self, attempt: int) -> bool:
        """Return whether the attempt re-validates the environment first.

        Attempt 2 skips the check; attempt 1 and every attempt from 3 on run it.
        """

        return attempt == 1 or attempt > 2

    def _audit_attempt_once(
        self,
        url: str,
        attempt: int,
        lighthouse_config: dict[str, Any],
        chrome_flags: list[str],
    ) -> AuditOutcome:
        """Run pre-flight validation and one audit tool call.

        Returns:
            AuditOutcome: Tagged attempt outcome; tool errors are folded into failures.
        """

        if self._environment_validator is not None and self._audit_should_preflight(attempt):
            logger.info("Pre-audit validation...")
            validation = self._environment_validator.environment_validate(url)
            if not validation.success:
                return AuditFailure(reason=f"Pre-audit validation failed: {validation.error}")

        try:
            report = self._audit_tool.adapter_run_audit(
                url=url,
                config=lighthouse_config,
                chrome_flags=chrome_flags,
                timeout_seconds=self._config.resolved_audit_timeout_seconds,
            )
        except AuditToolError as error:
            return AuditFailure(reason=str(error))
        return audit_classify_report(report)

    def _audit_restart_server(self) -> str | None:
        """Tear down and relaunch the managed server.

        Teardown completes before the replacement starts. Restart failures are
        logged and leave the current URL in place.

        Returns:
            str | None: URL of the replacement server, or None when no restart happened.
        """

        if self._server_manager is None or self._active_server is None:
            logger.info("NO_FCP persists but no locally managed server to restart")
            return None

        logger.info("Attempting server restart due to NO_FCP error...")
        self._stage_timeline.append(domain_build_stage_event(stage="server_restart", status="started"))
        try:
            self._server_manager.server_stop_all()
            self._active_server = None
            self._sleep(self._config.restart_settle_seconds)
            self._active_server = self._server_manager.server_start_best_available()
        except (EnvironmentSetupError, ServerStartupError) as error:
            logger.warning("Server restart failed: %s", error)
            self._stage_timeline.append(
                domain_build_stage_event(stage="server_restart", status="failed", details={"error_message": str(error)})
            )
            return None

        self._stage_timeline.append(
            domain_build_stage_event(stage="server_restart", status="completed", details={"url": self._active_server.url})
        )
        return self._active_server.url
