"""Lighthouse CLI adapter for page audits."""

from __future__ import annotations

import json
import logging
import os
import re
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Any, Final

from .errors import AuditToolError
from .interfaces import AuditToolPort

logger = logging.getLogger(__name__)


class LighthouseCliAdapter(AuditToolPort):
    """Run the Lighthouse command-line tool and parse its JSON report."""

    _RUNTIME_ERROR_CODE_PATTERN: Final[re.Pattern[str]] = re.compile(
        r"\b(NO_[A-Z_]+|PAGE_HUNG|PROTOCOL_TIMEOUT|[A-Z]+_DOCUMENT_REQUEST)\b"
    )

    def __init__(self, lighthouse_path: str | None = None, verbose: bool = False):
        """Initialize Lighthouse adapter.

        Args:
            lighthouse_path: Optional explicit binary path.
            verbose: Whether Lighthouse should log at info level.
        """

        self._lighthouse_path = lighthouse_path
        self._verbose = verbose

    def adapter_source_name(self) -> str:
        """Return stable adapter source label.

        Returns:
            str: Source identifier.
        """

        return "lighthouse_cli"

    def adapter_run_audit(
        self,
        url: str,
        config: dict[str, Any],
        chrome_flags: list[str],
        timeout_seconds: float,
    ) -> dict[str, Any] | None:
        """Run Lighthouse once and return its result document.

        Lighthouse exits before printing a report when it hits a page-level
        runtime error, so the error code is recovered from stderr and returned
        as a minimal document carrying `runtimeError`.

        Args:
            url: Page URL to audit.
            config: Lighthouse configuration document.
            chrome_flags: Chrome flags forwarded to the Lighthouse-managed browser.
            timeout_seconds: Hard wall-clock limit.

        Returns:
            dict[str, Any] | None: Parsed result, or None on empty output.

        Raises:
            AuditToolError: Raised when the tool is missing, times out or fails without a report.
        """

        command = self._adapter_resolve_command()
        config_path = self._adapter_write_config(config)
        try:
            arguments = [
                *command,
                url,
                "--output=json",
                "--output-path=stdout",
                f"--config-path={config_path}",
                f"--chrome-flags={' '.join(chrome_flags)}",
                "--enable-error-reporting=false",
                "--verbose" if self._verbose else "--quiet",
            ]
            logger.debug("Running Lighthouse: %s", " ".join(arguments))
            try:
                completed = subprocess.run(
                    arguments,
                    capture_output=True,
                    text=True,
                    timeout=timeout_seconds,
                    check=False,
                )
            except subprocess.TimeoutExpired as error:
                raise AuditToolError(f"Lighthouse timed out after {timeout_seconds:.0f}s") from error
            except OSError as error:
                raise AuditToolError(f"Lighthouse could not be started: {error}") from error
        finally:
            config_path.unlink(missing_ok=True)

        report = self._adapter_parse_report(completed.stdout)
        if report is not None:
            return report

        if completed.returncode != 0:
            runtime_error_match = self._RUNTIME_ERROR_CODE_PATTERN.search(completed.stderr or "")
            if runtime_error_match:
                return {
                    "runtimeError": {
                        "code": runtime_error_match.group(1),
                        "message": (completed.stderr or "").strip()[-500:],
                    }
                }
            stderr_tail = (completed.stderr or "").strip()[-500:]
            raise AuditToolError(f"Lighthouse exited with code {completed.returncode}: {stderr_tail}")
        return None

    def _adapter_resolve_command(self) -> list[str]:
        """Resolve the Lighthouse invocation prefix.

        Returns:
            list[str]: Binary path, or `npx lighthouse` when only npx is available.

        Raises:
            AuditToolError: Raised when neither Lighthouse nor npx is available.
        """

        if self._lighthouse_path:
            if not os.path.exists(self._lighthouse_path):
                raise AuditToolError(f"Lighthouse binary not found at {self._lighthouse_path}")
            return [self._lighthouse_path]

        lighthouse_binary = shutil.which("lighthouse")
        if lighthouse_binary:
            return [lighthouse_binary]

        npx_binary = shutil.which("npx")
        if npx_binary:
            return [npx_binary, "--yes", "lighthouse"]
        raise AuditToolError("lighthouse CLI not found. Install with `npm i -g lighthouse` or set LIGHTHOUSE_PATH.")

    def _adapter_write_config(self, config: dict[str, Any]) -> Path:
        with tempfile.NamedTemporaryFile(
            "w",
            suffix=".json",
            prefix="lighthouse-config-",
            delete=False,
            encoding="utf-8",
        ) as config_file:
            json.dump(config, config_file)
        return Path(config_file.name)

    def _adapter_parse_report(self, stdout: str) -> dict[str, Any] | None:
        stripped_output = (stdout or "").strip()
        if not stripped_output:
            return None
        try:
            report = json.loads(stripped_output)
        except ValueError as error:
            raise AuditToolError("Lighthouse returned invalid results") from error
        if not isinstance(report, dict):
            raise AuditToolError("Lighthouse returned invalid results")
        return report
