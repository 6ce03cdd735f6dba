"""Regression tests for audit retry, backoff and NO_FCP server-restart recovery."""

from __future__ import annotations

from typing import Any

import pytest

from preview_audit.adapters import AllServersFailedError, AuditExhaustedError, AuditToolError
from preview_audit.browser import EnvironmentValidationResult
from preview_audit.domain import ActiveServer, AuditFailure, AuditSuccess, ServerConfig
from preview_audit.jobs import AuditEngine, AuditEngineConfig, audit_build_lighthouse_config, audit_classify_report

_NO_FCP_REPORT: dict[str, Any] = {"runtimeError": {"code": "NO_FCP", "message": "The page did not paint any content."}}
_SUCCESS_REPORT: dict[str, Any] = {"categories": {"performance": {"score": 0.91}}, "audits": {}}


def _build_active_server(port: int) -> ActiveServer:
    config = ServerConfig(
        name=f"server-{port}",
        command="npx",
        args=(),
        port=port,
        priority=1,
        description="Test server",
    )
    return ActiveServer(config=config, process=None, url=config.url, pid=port)  # type: ignore[arg-type]


class _AuditToolStub:
    """Audit tool returning or raising scripted results per call."""

    def __init__(self, outcomes: list[object]):
        self._outcomes = list(outcomes)
        self.urls: list[str] = []
        self.timeouts: list[float] = []

    def adapter_source_name(self) -> str:
        return "stub"

    def adapter_run_audit(
        self,
        url: str,
        config: dict[str, Any],
        chrome_flags: list[str],
        timeout_seconds: float,
    ) -> dict[str, Any] | None:
        """Return the next scripted outcome.

        Args:
            url: Audited URL.
            config: Lighthouse configuration.
            chrome_flags: Chrome flags.
            timeout_seconds: Tool timeout.

        Returns:
            dict[str, Any] | None: Scripted report.

        Raises:
            AuditToolError: Raised when the scripted outcome is an error.
        """

        _ = (config, chrome_flags)
        self.urls.append(url)
        self.timeouts.append(timeout_seconds)
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome  # type: ignore[return-value]


class _EnvironmentValidatorStub:
    """Pre-flight validator recording the URLs it checked."""

    def __init__(self, success: bool = True):
        self._success = success
        self.urls: list[str] = []

    def environment_validate(self, url: str) -> EnvironmentValidationResult:
        self.urls.append(url)
        return EnvironmentValidationResult(
            success=self._success,
            timestamp="2026-01-01T00:00:00+00:00",
            error=None if self._success else "Page failed to render properly",
        )


class _ServerManagerStub:
    """Server manager recording restart calls in order."""

    def __init__(self, replacement: ActiveServer | None = None, restart_error: Exception | None = None):
        self._replacement = replacement
        self._restart_error = restart_error
        self.events: list[str] = []

    def server_stop_all(self) -> None:
        self.events.append("stop_all")

    def server_start_best_available(self, preferred_port: int | None = None) -> ActiveServer:
        _ = preferred_port
        self.events.append("start_best_available")
        if self._restart_error is not None:
            raise self._restart_error
        assert self._replacement is not None
        return self._replacement


def test_jobs_audit_engine_restarts_server_once_after_repeated_no_fcp() -> None:
    """Restart exactly once, between attempts 2 and 3, and audit the new URL.

    Returns:
        None: Assertions validate backoff schedule and restart placement.

    Raises:
        AssertionError: Raised when retry or restart behavior drifts.
    """

    sleep_calls: list[float] = []
    server_manager = _ServerManagerStub(replacement=_build_active_server(8080))
    audit_tool = _AuditToolStub([_NO_FCP_REPORT, _NO_FCP_REPORT, _SUCCESS_REPORT])
    engine = AuditEngine(
        audit_tool=audit_tool,
        config=AuditEngineConfig(ci=True, retry_delay_seconds=5.0),
        server_manager=server_manager,
        active_server=_build_active_server(4173),
        sleep_function=sleep_calls.append,
    )

    result = engine.audit_run("http://localhost:4173")

    assert result.report == _SUCCESS_REPORT
    assert result.url == "http://localhost:8080"
    assert server_manager.events == ["stop_all", "start_best_available"]
    assert sleep_calls == [5.0, 10.0, 3.0]
    assert audit_tool.urls == ["http://localhost:4173", "http://localhost:4173", "http://localhost:8080"]
    assert [attempt.outcome for attempt in result.attempts] == ["failure", "failure", "success"]
    assert result.attempts[0].restart_eligible is True
    assert engine.active_server is not None and engine.active_server.pid == 8080
    assert engine.audit_stage_timeline()[0]["details"] == {"attempt": 1, "url": "http://localhost:4173", "tool": "stub"}


def test_jobs_audit_engine_exhaustion_reports_last_reason() -> None:
    """Raise AuditExhaustedError naming the attempt count and the final failure."""

    audit_tool = _AuditToolStub([AuditToolError("Lighthouse timed out after 60s"), None])
    engine = AuditEngine(
        audit_tool=audit_tool,
        config=AuditEngineConfig(ci=False, retry_delay_seconds=1.0),
        sleep_function=lambda seconds: None,
    )

    with pytest.raises(AuditExhaustedError, match="failed after 2 attempts: Lighthouse returned invalid results") as error_info:
        engine.audit_run("http://localhost:4173")

    assert len(error_info.value.attempts) == 2
    assert error_info.value.attempts[0].failure_reason == "Lighthouse timed out after 60s"
    assert audit_tool.timeouts == [60.0, 60.0]


def test_jobs_audit_engine_skips_preflight_on_second_attempt_only() -> None:
    """Run pre-flight validation on attempts 1 and 3 but not 2."""

    validator = _EnvironmentValidatorStub()
    audit_tool = _AuditToolStub([AuditToolError("crash"), AuditToolError("crash"), _SUCCESS_REPORT])
    engine = AuditEngine(
        audit_tool=audit_tool,
        config=AuditEngineConfig(ci=True, retry_delay_seconds=0.0),
        environment_validator=validator,
        sleep_function=lambda seconds: None,
    )

    engine.audit_run("http://localhost:4173")

    assert len(validator.urls) == 2
    assert len(audit_tool.urls) == 3


def test_jobs_audit_engine_preflight_failure_skips_audit_call() -> None:
    """Count a failed pre-flight as a failed attempt without invoking the tool."""

    audit_tool = _AuditToolStub([_SUCCESS_REPORT])
    engine = AuditEngine(
        audit_tool=audit_tool,
        config=AuditEngineConfig(ci=False, retry_delay_seconds=0.0),
        environment_validator=_EnvironmentValidatorStub(success=False),
        sleep_function=lambda seconds: None,
    )

    result = engine.audit_run("http://localhost:4173")

    assert result.attempts[0].failure_reason == "Pre-audit validation failed: Page failed to render properly"
    assert result.attempts[0].restart_eligible is False
    assert len(audit_tool.urls) == 1


def test_jobs_audit_engine_restart_failure_keeps_retrying_original_url() -> None:
    """Log a failed restart and continue retrying against the original URL."""

    server_manager = _ServerManagerStub(restart_error=AllServersFailedError([("vite-preview", "boom")]))
    audit_tool = _AuditToolStub([_NO_FCP_REPORT, _NO_FCP_REPORT, _SUCCESS_REPORT])
    engine = AuditEngine(
        audit_tool=audit_tool,
        config=AuditEngineConfig(ci=True, retry_delay_seconds=0.0),
        server_manager=server_manager,
        active_server=_build_active_server(4173),
        sleep_function=lambda seconds: None,
    )

    result = engine.audit_run("http://localhost:4173")

    assert result.url == "http://localhost:4173"
    assert server_manager.events == ["stop_all", "start_best_available"]


def test_jobs_audit_engine_classifies_reports() -> None:
    """Tag NO_FCP as restart-eligible and reject reports without categories."""

    no_fcp_outcome = audit_classify_report(_NO_FCP_REPORT)

    assert isinstance(no_fcp_outcome, AuditFailure) and no_fcp_outcome.restart_eligible is True
    assert isinstance(audit_classify_report(_SUCCESS_REPORT), AuditSuccess)
    assert audit_classify_report(None) == AuditFailure(reason="Lighthouse returned invalid results")
    page_hung_outcome = audit_classify_report({"runtimeError": {"code": "PAGE_HUNG", "message": "hung"}})
    assert page_hung_outcome == AuditFailure(reason="PAGE_HUNG: hung")


def test_jobs_audit_engine_lighthouse_config_doubles_ci_wait_budgets() -> None:
    """Give CI longer paint/load waits and skip flaky audits there only."""

    ci_settings = audit_build_lighthouse_config(ci=True)["settings"]
    local_settings = audit_build_lighthouse_config(ci=False, categories=["seo"])["settings"]

    assert ci_settings["maxWaitForFcp"] == 45000
    assert local_settings["maxWaitForFcp"] == 15000
    assert ci_settings["skipAudits"] == ["uses-http2", "bf-cache", "largest-contentful-paint-element"]
    assert local_settings["skipAudits"] == []
    assert local_settings["onlyCategories"] == ["seo"]
    assert ci_settings["screenEmulation"]["width"] == 1920
