"""Typed domain models shared across runtime layers.

This module provides the immutable data contracts passed between the server,
browser, audit and budget layers.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from typing import Any, Literal


@dataclass(frozen=True)
class ServerConfig:
    """Declarative launch recipe for one static-file server candidate.

    Attributes:
        name: Unique candidate name, also the registry key for running instances.
        command: Executable or package-manager wrapper to spawn.
        args: Command arguments.
        port: TCP port the server binds.
        priority: Ordering key, ascending values are tried first.
        description: Human-readable description for progress output.
    """

    name: str
    command: str
    args: tuple[str, ...]
    port: int
    priority: int
    description: str

    @property
    def url(self) -> str:
        """Return the local URL this server answers on once healthy."""

        return f"http://localhost:{self.port}"


@dataclass(frozen=True)
class ActiveServer:
    """Running server instance tracked by the server manager.

    Attributes:
        config: Candidate configuration the process was started from.
        process: Process handle of the spawned server.
        url: Local URL of the healthy server.
        pid: Operating-system process id.
    """

    config: ServerConfig
    process: subprocess.Popen = field(repr=False, compare=False)
    url: str
    pid: int

    @property
    def name(self) -> str:
        """Return the candidate name of the running server."""

        return self.config.name


@dataclass(frozen=True)
class DistValidationResult:
    """Result of the build-output precondition check.

    Attributes:
        valid: Whether the build output can be served.
        index_size: Character length of the entry document.
    """

    valid: bool
    index_size: int


@dataclass(frozen=True)
class AuditSuccess:
    """Successful audit attempt outcome carrying the raw audit report."""

    report: dict[str, Any]


@dataclass(frozen=True)
class AuditFailure:
    """Failed audit attempt outcome.

    Attributes:
        reason: Human-readable failure reason.
        restart_eligible: Whether the failure class warrants a server restart.
    """

    reason: str
    restart_eligible: bool = False


AuditOutcome = AuditSuccess | AuditFailure


@dataclass(frozen=True)
class AuditAttempt:
    """Diagnostics record for one audit retry iteration.

    Attributes:
        attempt_number: One-based attempt number.
        at_utc: ISO-8601 UTC timestamp of attempt completion.
        outcome: Attempt outcome marker.
        failure_reason: Failure reason for failed attempts.
        restart_eligible: Whether the failure was classified as restart eligible.
    """

    attempt_number: int
    at_utc: str
    outcome: Literal["success", "failure"]
    failure_reason: str | None = None
    restart_eligible: bool = False


@dataclass(frozen=True)
class AuditRunResult:
    """Final result of a successful audit run.

    Attributes:
        report: Lighthouse result document of the successful attempt.
        url: URL the successful attempt audited, which may differ from the
            requested URL after a server restart.
        attempts: Attempt records in execution order.
    """

    report: dict[str, Any]
    url: str
    attempts: tuple[AuditAttempt, ...]
