"""HTTP readiness polling for freshly spawned servers."""

from __future__ import annotations

import logging
import time
from typing import Callable, Final

import httpx

from .interfaces import HealthCheckPort

logger = logging.getLogger(__name__)


class HttpHealthChecker(HealthCheckPort):
    """Deadline-driven GET poller tolerant of cold-start connection refusals."""

    _USER_AGENT: Final[str] = "preview-audit/0.1 (Python/httpx)"

    def __init__(
        self,
        poll_interval_seconds: float = 1.0,
        request_timeout_seconds: float = 10.0,
        client: httpx.Client | None = None,
        clock: Callable[[], float] | None = None,
        sleep_function: Callable[[float], None] | None = None,
    ):
        """Initialize health checker.

        Args:
            poll_interval_seconds: Fixed wait between failed probes.
            request_timeout_seconds: Upper bound for one probe request.
            client: Optional pre-built HTTP client; one is created lazily otherwise.
            clock: Monotonic clock provider.
            sleep_function: Blocking sleep provider.

        Raises:
            ValueError: Raised when timing values are invalid.
        """

        if poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be > 0")
        if request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be > 0")

        self._poll_interval_seconds = poll_interval_seconds
        self._request_timeout_seconds = request_timeout_seconds
        self._client = client
        self._clock = clock or time.monotonic
        self._sleep = sleep_function or time.sleep

    def health_check_is_healthy(self, url: str, timeout_seconds: float) -> bool:
        """Poll the URL until a 2xx response arrives or the budget is spent.

        Args:
            url: Target URL.
            timeout_seconds: Overall polling budget in seconds.

        Returns:
            bool: True when a successful status was observed strictly before the deadline.
        """

        deadline = self._clock() + max(0.0, float(timeout_seconds))
        probe_count = 0
        while True:
            remaining_seconds = deadline - self._clock()
            if remaining_seconds <= 0:
                logger.debug("Health check for %s gave up after %d probes", url, probe_count)
                return False

            probe_count += 1
            if self._health_check_probe_once(url, min(self._request_timeout_seconds, remaining_seconds)):
                return True

            remaining_seconds = deadline - self._clock()
            if remaining_seconds <= 0:
                logger.debug("Health check for %s gave up after %d probes", url, probe_count)
                return False
            self._sleep(min(self._poll_interval_seconds, remaining_seconds))

    def health_check_close(self) -> None:
        """Release the pooled HTTP client."""

        if self._client is not None:
            self._client.close()
            self._client = None

    def _health_check_probe_once(self, url: str, request_timeout_seconds: float) -> bool:
        """Issue one GET and decide on the status line alone.

        The body is never read, so a slow body cannot hold the probe open.

        Args:
            url: Target URL.
            request_timeout_seconds: Timeout for this request.

        Returns:
            bool: True on a 2xx response, False on any failure.
        """

        try:
            with self._health_check_client().stream("GET", url, timeout=httpx.Timeout(request_timeout_seconds)) as response:
                status_code = response.status_code
        except (httpx.HTTPError, httpx.InvalidURL, OSError, ValueError) as error:
            logger.debug("Health check failed for %s: %s", url, error)
            return False

        if 200 <= status_code < 300:
            return True
        logger.debug("Health check failed for %s: HTTP %s", url, status_code)
        return False

    def _health_check_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                follow_redirects=True,
                headers={"User-Agent": self._USER_AGENT},
            )
        return self._client
