"""Priority-ordered server fallback orchestration and process registry."""

from __future__ import annotations

import logging
import subprocess
import time
from pathlib import Path
from typing import Callable, Final, Sequence

from preview_audit.adapters import (
    AllServersFailedError,
    DistValidationError,
    EnvironmentSetupError,
    ServerStartupError,
)
from preview_audit.domain import ActiveServer, DistValidationResult, ServerConfig

from .catalog import SERVER_CONFIGS, server_order_candidates
from .launcher import ServerLauncher

logger = logging.getLogger(__name__)


class ServerManager:
    """Start the best available local server and own every spawned process.

    The registry maps candidate names to running servers. All mutation goes
    through the start and stop methods, so each process handle has exactly
    one owner.
    """

    _MIN_INDEX_CHARACTERS: Final[int] = 100

    def __init__(
        self,
        launcher: ServerLauncher,
        server_configs: Sequence[ServerConfig] = SERVER_CONFIGS,
        max_attempts: int = 3,
        stop_grace_seconds: float = 5.0,
        dist_path: Path | None = None,
        clock: Callable[[], float] | None = None,
    ):
        """Initialize server manager.

        Args:
            launcher: Single-candidate launcher.
            server_configs: Declared fallback candidates.
            max_attempts: Spawn attempts per candidate.
            stop_grace_seconds: Shared grace period between SIGTERM and SIGKILL.
            dist_path: Build output directory, defaults to `./dist`.
            clock: Monotonic clock provider.

        Raises:
            ValueError: Raised when dependencies or config values are invalid.
        """

        if launcher is None:
            raise ValueError("launcher must not be None")
        if not server_configs:
            raise ValueError("server_configs must not be empty")
        if len({config.name for config in server_configs}) != len(server_configs):
            raise ValueError("server_configs names must be unique")
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if stop_grace_seconds < 0:
            raise ValueError("stop_grace_seconds must be >= 0")

        self._launcher = launcher
        self._server_configs = tuple(server_configs)
        self._max_attempts = max_attempts
        self._stop_grace_seconds = stop_grace_seconds
        self._dist_path = dist_path
        self._clock = clock or time.monotonic
        self._active_servers: dict[str, ActiveServer] = {}

    def server_start_best_available(self, preferred_port: int | None = None) -> ActiveServer:
        """Try candidates strictly in order and return the first healthy server.

        Args:
            preferred_port: Optional port whose candidate is tried first.

        Returns:
            ActiveServer: Registered running server.

        Raises:
            AllServersFailedError: Raised when every candidate failed.
        """

        logger.info("Finding best available server configuration...")
        failures: list[tuple[str, str]] = []
        for config in server_order_candidates(self._server_configs, preferred_port=preferred_port):
            try:
                active_server = self.server_start(config)
            except (EnvironmentSetupError, ServerStartupError) as error:
                failures.append((config.name, str(error)))
                logger.info("Trying next server configuration...")
                continue
            logger.info("Successfully started server: %s at %s", config.name, active_server.url)
            return active_server

        raise AllServersFailedError(failures)

    def server_start(self, config: ServerConfig) -> ActiveServer:
        """Start one candidate and register it, replacing a tracked instance of the same name.

        Args:
            config: Candidate to start.

        Returns:
            ActiveServer: Registered running server.

        Raises:
            EnvironmentSetupError: Raised for port or command misconfiguration.
            ServerStartupError: Raised when all attempts failed.
        """

        if config.name in self._active_servers:
            self._server_stop_many([self._active_servers.pop(config.name)])

        active_server = self._launcher.launcher_start(config, max_attempts=self._max_attempts)
        self._active_servers[config.name] = active_server
        return active_server

    def server_stop_all(self) -> None:
        """Terminate every registered server and clear the registry.

        SIGTERM goes to every process first; survivors of the shared grace
        period are killed. Calling with an empty registry does nothing.
        """

        if not self._active_servers:
            return

        logger.info("Stopping all active servers...")
        active_servers = list(self._active_servers.values())
        self._active_servers.clear()
        self._server_stop_many(active_servers)

    def server_close(self) -> None:
        """Stop every registered server and release launcher resources."""

        try:
            self.server_stop_all()
        finally:
            self._launcher.launcher_close()

    def server_list_active(self) -> list[dict[str, object]]:
        """Describe registered servers.

        Returns:
            list[dict[str, object]]: One entry per running server.
        """

        return [
            {
                "name": name,
                "url": active_server.url,
                "port": active_server.config.port,
                "pid": active_server.pid,
                "description": active_server.config.description,
            }
            for name, active_server in self._active_servers.items()
        ]

    def server_validate_dist_directory(self, dist_path: Path | None = None) -> DistValidationResult:
        """Check that the build output exists and has a non-trivial entry document.

        Args:
            dist_path: Build output directory, defaults to the configured or `./dist` path.

        Returns:
            DistValidationResult: Valid result with entry document size.

        Raises:
            DistValidationError: Raised when the build output is missing or incomplete.
        """

        resolved_dist_path = dist_path or self._dist_path or (Path.cwd() / "dist")
        index_path = resolved_dist_path / "index.html"
        try:
            if not resolved_dist_path.is_dir():
                raise DistValidationError("dist is not a directory")
            if not index_path.is_file():
                raise DistValidationError("index.html not found in dist directory")
            index_content = index_path.read_text(encoding="utf-8", errors="replace")
        except OSError as error:
            raise DistValidationError(f"dist directory validation failed: {error}") from error
        except DistValidationError as error:
            raise DistValidationError(f"dist directory validation failed: {error}") from error

        if len(index_content) < self._MIN_INDEX_CHARACTERS:
            raise DistValidationError(
                "dist directory validation failed: index.html appears to be empty or incomplete"
            )

        logger.info("dist directory validation passed")
        return DistValidationResult(valid=True, index_size=len(index_content))

    def _server_stop_many(self, active_servers: list[ActiveServer]) -> None:
        """Terminate servers with one shared grace deadline.

        Args:
            active_servers: Servers already removed from the registry.
        """

        signalled_servers: list[ActiveServer] = []
        for active_server in active_servers:
            logger.info("Stopping %s (PID: %s)", active_server.name, active_server.pid)
            try:
                if active_server.process.poll() is None:
                    active_server.process.terminate()
                    signalled_servers.append(active_server)
            except OSError as error:
                logger.warning("Error stopping %s: %s", active_server.name, error)

        kill_deadline = self._clock() + self._stop_grace_seconds
        for active_server in signalled_servers:
            try:
                active_server.process.wait(timeout=max(0.0, kill_deadline - self._clock()))
            except subprocess.TimeoutExpired:
                logger.warning("%s ignored SIGTERM, killing", active_server.name)
                try:
                    active_server.process.kill()
                    active_server.process.wait(timeout=self._stop_grace_seconds)
                except (OSError, subprocess.TimeoutExpired) as error:
                    logger.warning("Error killing %s: %s", active_server.name, error)
            except OSError as error:
                logger.warning("Error stopping %s: %s", active_server.name, error)
            logger.info("%s stopped", active_server.name)
