"""Combined server-response and render validation for audit pre-flight checks."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

import httpx
from playwright.sync_api import Error as PlaywrightError

from preview_audit.adapters import PreviewAuditError, ServerResponseError
from preview_audit.domain import domain_utc_now_iso

from .render_validator import RenderValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnvironmentValidationResult:
    """Outcome of an environment validation run.

    Attributes:
        success: Whether the server responded and the page rendered.
        timestamp: ISO-8601 UTC completion time.
        rendering: Render snapshot payload on success.
        error: Failure message on failure.
    """

    success: bool
    timestamp: str
    rendering: dict[str, Any] | None = None
    error: str | None = None

    def environment_to_payload(self) -> dict[str, object]:
        """Return a JSON-ready representation."""

        if self.success:
            return {
                "success": True,
                "server": {"responding": True},
                "rendering": self.rendering,
                "timestamp": self.timestamp,
            }
        return {"success": False, "error": self.error, "timestamp": self.timestamp}


class EnvironmentValidator:
    """Check that a URL serves content and that the page renders."""

    def __init__(
        self,
        render_validator: RenderValidator,
        max_retries: int = 5,
        retry_delay_seconds: float = 2.0,
        request_timeout_seconds: float = 10.0,
        client: httpx.Client | None = None,
        clock: Callable[[], float] | None = None,
        sleep_function: Callable[[float], None] | None = None,
    ):
        """Initialize environment validator.

        Args:
            render_validator: Headless render validator.
            max_retries: Server response attempts.
            retry_delay_seconds: Fixed delay between response attempts.
            request_timeout_seconds: Overall budget for one response attempt, body included.
            client: Optional pre-built HTTP client.
            clock: Monotonic clock provider.
            sleep_function: Blocking sleep provider.

        Raises:
            ValueError: Raised when dependencies or retry values are invalid.
        """

        if render_validator is None:
            raise ValueError("render_validator must not be None")
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")

        self._render_validator = render_validator
        self._max_retries = max_retries
        self._retry_delay_seconds = retry_delay_seconds
        self._request_timeout_seconds = request_timeout_seconds
        self._client = client
        self._clock = clock or time.monotonic
        self._sleep = sleep_function or time.sleep

    def environment_test_server_response(self, url: str) -> dict[str, int]:
        """Require a successful, non-empty HTTP response from the URL.

        Args:
            url: Target URL.

        Returns:
            dict[str, int]: Response status and content length.

        Raises:
            ServerResponseError: Raised after the last failed attempt.
        """

        last_error_message = "no attempts made"
        for attempt in range(1, self._max_retries + 1):
            logger.info("Testing server response (attempt %d/%d): %s", attempt, self._max_retries, url)
            deadline = self._clock() + self._request_timeout_seconds
            try:
                with self._environment_client().stream(
                    "GET", url, timeout=httpx.Timeout(self._request_timeout_seconds)
                ) as response:
                    status_code = response.status_code
                    content_length = self._environment_read_body_length(response, deadline)
                if content_length is None:
                    last_error_message = f"Response body not complete within {self._request_timeout_seconds:g}s"
                elif 200 <= status_code < 300 and content_length > 0:
                    logger.info("Server responding (%d), content length: %d", status_code, content_length)
                    return {"status": status_code, "content_length": content_length}
                else:
                    last_error_message = f"Server returned {status_code}, content length: {content_length}"
            except (httpx.HTTPError, httpx.InvalidURL) as error:
                last_error_message = str(error) or type(error).__name__

            logger.warning("Server test attempt %d failed: %s", attempt, last_error_message)
            if attempt < self._max_retries:
                self._sleep(self._retry_delay_seconds)

        raise ServerResponseError(f"Server failed after {self._max_retries} attempts: {last_error_message}")

    def environment_validate(self, url: str) -> EnvironmentValidationResult:
        """Run the server response test and the render validation.

        Args:
            url: Target URL.

        Returns:
            EnvironmentValidationResult: Result; failures are reported, not raised.
        """

        logger.info("Starting environment validation for %s", url)
        try:
            self.environment_test_server_response(url)
            render_result = self._render_validator.render_validate(url)
        except (PreviewAuditError, PlaywrightError) as error:
            logger.error("Environment validation failed: %s", error)
            return EnvironmentValidationResult(success=False, timestamp=domain_utc_now_iso(), error=str(error))

        logger.info("Environment validation completed successfully")
        return EnvironmentValidationResult(
            success=True,
            timestamp=domain_utc_now_iso(),
            rendering={
                "success": render_result.success,
                "checks": render_result.checks,
                "message": render_result.message,
            },
        )

    def environment_close(self) -> None:
        """Release the pooled HTTP client."""

        if self._client is not None:
            self._client.close()
            self._client = None

    def _environment_read_body_length(self, response: httpx.Response, deadline: float) -> int | None:
        content_length = 0
        for chunk in response.iter_bytes():
            content_length += len(chunk)
            if self._clock() >= deadline:
                return None
        return content_length

    def _environment_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(follow_redirects=True)
        return self._client
