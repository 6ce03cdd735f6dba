"""Regression tests for Lighthouse CLI invocation and result parsing."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path

import pytest

from preview_audit.adapters import AuditToolError, LighthouseCliAdapter
import preview_audit.adapters.lighthouse as lighthouse_module


class _RunRecorder:
    """subprocess.run replacement returning a canned completed process."""

    def __init__(self, stdout: str = "", stderr: str = "", returncode: int = 0, raise_error: Exception | None = None):
        self._stdout = stdout
        self._stderr = stderr
        self._returncode = returncode
        self._raise_error = raise_error
        self.arguments: list[str] = []
        self.config_payload: dict[str, object] | None = None
        self.timeout: float | None = None

    def __call__(self, arguments: list[str], **kwargs: object) -> subprocess.CompletedProcess:
        self.arguments = list(arguments)
        self.timeout = kwargs.get("timeout")  # type: ignore[assignment]
        config_argument = next(argument for argument in arguments if argument.startswith("--config-path="))
        self.config_payload = json.loads(Path(config_argument.split("=", 1)[1]).read_text(encoding="utf-8"))
        if self._raise_error is not None:
            raise self._raise_error
        return subprocess.CompletedProcess(arguments, self._returncode, stdout=self._stdout, stderr=self._stderr)


@pytest.fixture
def _lighthouse_on_path(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(lighthouse_module.shutil, "which", lambda name: f"/usr/bin/{name}")


def test_adapters_lighthouse_parses_report_and_forwards_flags(
    monkeypatch: pytest.MonkeyPatch,
    _lighthouse_on_path: None,
) -> None:
    """Return the parsed report and pass config, flags and timeout to the CLI.

    Args:
        monkeypatch: Pytest monkeypatch fixture.
        _lighthouse_on_path: Fixture resolving the binary on PATH.

    Returns:
        None: Assertions validate invocation contract.

    Raises:
        AssertionError: Raised when invocation or parsing is incorrect.
    """

    recorder = _RunRecorder(stdout=json.dumps({"categories": {"performance": {"score": 0.93}}}))
    monkeypatch.setattr(lighthouse_module.subprocess, "run", recorder)

    report = LighthouseCliAdapter().adapter_run_audit(
        url="http://localhost:4173",
        config={"extends": "lighthouse:default"},
        chrome_flags=["--no-sandbox", "--disable-gpu"],
        timeout_seconds=60,
    )

    assert report == {"categories": {"performance": {"score": 0.93}}}
    assert recorder.arguments[0] == "/usr/bin/lighthouse"
    assert recorder.arguments[1] == "http://localhost:4173"
    assert "--chrome-flags=--no-sandbox --disable-gpu" in recorder.arguments
    assert "--output=json" in recorder.arguments
    assert recorder.config_payload == {"extends": "lighthouse:default"}
    assert recorder.timeout == 60


def test_adapters_lighthouse_recovers_no_fcp_from_stderr(
    monkeypatch: pytest.MonkeyPatch,
    _lighthouse_on_path: None,
) -> None:
    """Return a runtimeError document when Lighthouse aborts with NO_FCP."""

    recorder = _RunRecorder(
        stderr="Runtime error encountered: The page did not paint any content. (NO_FCP)",
        returncode=1,
    )
    monkeypatch.setattr(lighthouse_module.subprocess, "run", recorder)

    report = LighthouseCliAdapter().adapter_run_audit("http://localhost:4173", {}, [], 60)

    assert report is not None
    assert report["runtimeError"]["code"] == "NO_FCP"


def test_adapters_lighthouse_rejects_invalid_json(
    monkeypatch: pytest.MonkeyPatch,
    _lighthouse_on_path: None,
) -> None:
    """Raise AuditToolError when stdout is not a JSON report."""

    monkeypatch.setattr(lighthouse_module.subprocess, "run", _RunRecorder(stdout="not json"))

    with pytest.raises(AuditToolError, match="invalid results"):
        LighthouseCliAdapter().adapter_run_audit("http://localhost:4173", {}, [], 60)


def test_adapters_lighthouse_maps_timeout_to_audit_tool_error(
    monkeypatch: pytest.MonkeyPatch,
    _lighthouse_on_path: None,
) -> None:
    """Raise AuditToolError when the CLI exceeds its wall-clock limit."""

    recorder = _RunRecorder(raise_error=subprocess.TimeoutExpired(cmd="lighthouse", timeout=60))
    monkeypatch.setattr(lighthouse_module.subprocess, "run", recorder)

    with pytest.raises(AuditToolError, match="timed out after 60s"):
        LighthouseCliAdapter().adapter_run_audit("http://localhost:4173", {}, [], 60)


def test_adapters_lighthouse_falls_back_to_npx(monkeypatch: pytest.MonkeyPatch) -> None:
    """Invoke Lighthouse through npx when no global binary is installed."""

    monkeypatch.setattr(lighthouse_module.shutil, "which", lambda name: "/usr/bin/npx" if name == "npx" else None)
    recorder = _RunRecorder(stdout=json.dumps({"categories": {}}))
    monkeypatch.setattr(lighthouse_module.subprocess, "run", recorder)

    LighthouseCliAdapter().adapter_run_audit("http://localhost:4173", {}, [], 60)

    assert recorder.arguments[:3] == ["/usr/bin/npx", "--yes", "lighthouse"]


def test_adapters_lighthouse_missing_tool_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    """Raise AuditToolError when neither lighthouse nor npx is on PATH."""

    monkeypatch.setattr(lighthouse_module.shutil, "which", lambda name: None)

    with pytest.raises(AuditToolError, match="not found"):
        LighthouseCliAdapter().adapter_run_audit("http://localhost:4173", {}, [], 60)
