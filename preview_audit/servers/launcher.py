"""Single-candidate server launcher with health-checked, bounded retries."""

from __future__ import annotations

import logging
import shutil
import subprocess
import time
from pathlib import Path
from typing import Callable, Final

from preview_audit.adapters import (
    CommandNotFoundError,
    EnvironmentSetupError,
    HealthCheckPort,
    PortInUseError,
    ServerStartupError,
    port_probe_is_available,
)
from preview_audit.domain import ActiveServer, ServerConfig, domain_build_stage_event

logger = logging.getLogger(__name__)


class ServerLauncher:
    """Spawn one static-file server process and wait until it answers HTTP."""

    _PACKAGE_MANAGER_COMMANDS: Final[frozenset[str]] = frozenset({"npm", "pnpm", "yarn"})
    _TERMINATE_GRACE_SECONDS: Final[float] = 5.0

    def __init__(
        self,
        health_checker: HealthCheckPort,
        verbose: bool = False,
        working_directory: Path | None = None,
        settle_delay_seconds: float = 3.0,
        health_check_timeout_seconds: float = 20.0,
        startup_timeout_seconds: float = 30.0,
        retry_delay_seconds: float = 2.0,
        port_probe: Callable[[int], bool] | None = None,
        command_resolver: Callable[[str], str | None] | None = None,
        process_factory: Callable[..., subprocess.Popen] | None = None,
        clock: Callable[[], float] | None = None,
        sleep_function: Callable[[float], None] | None = None,
    ):
        """Initialize server launcher.

        Args:
            health_checker: HTTP readiness poller.
            verbose: Whether server output is inherited instead of discarded.
            working_directory: Directory the server processes run in.
            settle_delay_seconds: Delay between spawn and the first health probe.
            health_check_timeout_seconds: Budget for readiness polling.
            startup_timeout_seconds: Overall per-attempt startup deadline.
            retry_delay_seconds: Fixed delay between failed attempts.
            port_probe: Port availability probe.
            command_resolver: Executable lookup on the search path.
            process_factory: Process spawner with `subprocess.Popen` semantics.
            clock: Monotonic clock provider.
            sleep_function: Blocking sleep provider.

        Raises:
            ValueError: Raised when dependencies or timing values are invalid.
        """

        if health_checker is None:
            raise ValueError("health_checker must not be None")
        if settle_delay_seconds < 0:
            raise ValueError("settle_delay_seconds must be >= 0")
        if health_check_timeout_seconds <= 0:
            raise ValueError("health_check_timeout_seconds must be > 0")
        if startup_timeout_seconds <= 0:
            raise ValueError("startup_timeout_seconds must be > 0")
        if retry_delay_seconds < 0:
            raise ValueError("retry_delay_seconds must be >= 0")

        self._health_checker = health_checker
        self._verbose = verbose
        self._working_directory = working_directory
        self._settle_delay_seconds = settle_delay_seconds
        self._health_check_timeout_seconds = health_check_timeout_seconds
        self._startup_timeout_seconds = startup_timeout_seconds
        self._retry_delay_seconds = retry_delay_seconds
        self._port_probe = port_probe or port_probe_is_available
        self._command_resolver = command_resolver or shutil.which
        self._process_factory = process_factory or subprocess.Popen
        self._clock = clock or time.monotonic
        self._sleep = sleep_function or time.sleep
        self._stage_timeline: list[dict[str, object]] = []

    def launcher_stage_timeline(self) -> list[dict[str, object]]:
        """Return stage events recorded by the latest start call.

        Returns:
            list[dict[str, object]]: Copy of the attempt timeline.
        """

        return list(self._stage_timeline)

    def launcher_close(self) -> None:
        """Release the health checker's pooled connections."""

        self._health_checker.health_check_close()

    def launcher_start(self, config: ServerConfig, max_attempts: int = 3) -> ActiveServer:
        """Start one server candidate, retrying transient startup failures.

        Args:
            config: Candidate to start.
            max_attempts: Maximum number of spawn attempts.

        Returns:
            ActiveServer: Healthy running server.

        Raises:
            PortInUseError: Raised when the port is busy before the first attempt.
            CommandNotFoundError: Raised when the launch command is not installed.
            ServerStartupError: Raised when every attempt failed.
            ValueError: Raised when max_attempts is invalid.
        """

        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

        self._stage_timeline = []
        last_error: ServerStartupError | None = None
        for attempt in range(1, max_attempts + 1):
            logger.info("Starting %s (attempt %d/%d): %s", config.name, attempt, max_attempts, config.description)
            self._launcher_record(config, attempt, "started")
            try:
                active_server = self._launcher_attempt(config=config, attempt=attempt)
            except EnvironmentSetupError as error:
                self._launcher_record(config, attempt, "failed", error_message=str(error))
                logger.warning("%s cannot be started: %s", config.name, error)
                raise
            except ServerStartupError as error:
                last_error = error
                self._launcher_record(config, attempt, "failed", error_message=str(error))
                logger.warning("%s failed (attempt %d/%d): %s", config.name, attempt, max_attempts, error)
                if attempt < max_attempts:
                    self._sleep(self._retry_delay_seconds)
                continue

            self._launcher_record(config, attempt, "completed", pid=active_server.pid)
            logger.info("%s started successfully on port %d", config.name, config.port)
            return active_server

        raise ServerStartupError(
            f"{config.name} failed after {max_attempts} attempts: {last_error}",
            config_name=config.name,
        )

    def launcher_terminate(self, process: subprocess.Popen, grace_seconds: float | None = None) -> None:
        """Terminate a process, escalating to kill after the grace period.

        Args:
            process: Process handle.
            grace_seconds: Seconds to wait after SIGTERM before SIGKILL.
        """

        if process.poll() is not None:
            return
        wait_seconds = self._TERMINATE_GRACE_SECONDS if grace_seconds is None else grace_seconds
        try:
            process.terminate()
            try:
                process.wait(timeout=wait_seconds)
            except subprocess.TimeoutExpired:
                process.kill()
                process.wait(timeout=wait_seconds)
        except ProcessLookupError:
            return

    def _launcher_attempt(self, config: ServerConfig, attempt: int) -> ActiveServer:
        """Run one spawn-and-health-check attempt.

        Args:
            config: Candidate to start.
            attempt: One-based attempt number.

        Returns:
            ActiveServer: Healthy running server.

        Raises:
            PortInUseError: Raised on attempt 1 when the port is busy.
            CommandNotFoundError: Raised when the command is missing.
            ServerStartupError: Raised when this attempt failed.
        """

        if attempt == 1 and not self._port_probe(config.port):
            raise PortInUseError(config.port)

        executable = config.command
        if config.command not in self._PACKAGE_MANAGER_COMMANDS:
            resolved_command = self._command_resolver(config.command)
            if resolved_command is None:
                raise CommandNotFoundError(config.command)
            executable = resolved_command

        startup_deadline = self._clock() + self._startup_timeout_seconds
        output_target = None if self._verbose else subprocess.DEVNULL
        try:
            process = self._process_factory(
                [executable, *config.args],
                stdin=subprocess.DEVNULL,
                stdout=output_target,
                stderr=output_target,
                cwd=str(self._working_directory) if self._working_directory else None,
            )
        except OSError as error:
            raise ServerStartupError(f"Server process could not be spawned: {error}", config_name=config.name) from error

        logger.debug("Spawned %s with pid %s", config.name, process.pid)
        try:
            self._launcher_wait_until_healthy(config=config, process=process, startup_deadline=startup_deadline)
        except ServerStartupError:
            self.launcher_terminate(process)
            raise

        return ActiveServer(config=config, process=process, url=config.url, pid=process.pid)

    def _launcher_wait_until_healthy(
        self,
        config: ServerConfig,
        process: subprocess.Popen,
        startup_deadline: float,
    ) -> None:
        """Wait for the settle delay and poll readiness within the startup deadline.

        Raises:
            ServerStartupError: Raised on early exit, failed health check or timeout.
        """

        self._sleep(min(self._settle_delay_seconds, max(0.0, startup_deadline - self._clock())))

        exit_code = process.poll()
        if exit_code is not None:
            raise ServerStartupError(f"Server process exited early with code {exit_code}", config_name=config.name)

        remaining_seconds = startup_deadline - self._clock()
        if remaining_seconds <= 0:
            raise ServerStartupError(
                f"Server startup timeout after {self._startup_timeout_seconds:.0f}s",
                config_name=config.name,
            )

        healthy = self._health_checker.health_check_is_healthy(
            config.url,
            min(self._health_check_timeout_seconds, remaining_seconds),
        )
        if healthy:
            return

        exit_code = process.poll()
        if exit_code is not None:
            raise ServerStartupError(f"Server process exited early with code {exit_code}", config_name=config.name)
        if self._clock() >= startup_deadline:
            raise ServerStartupError(
                f"Server startup timeout after {self._startup_timeout_seconds:.0f}s",
                config_name=config.name,
            )
        raise ServerStartupError("Server failed health check", config_name=config.name)

    def _launcher_record(self, config: ServerConfig, attempt: int, status: str, **details: object) -> None:
        self._stage_timeline.append(
            domain_build_stage_event(
                stage="server_start",
                status=status,
                details={"server": config.name, "attempt": attempt, **details},
            )
        )
