"""Regression tests for combined server-response and render validation."""

from __future__ import annotations

from typing import Iterator

import httpx

import pytest

from preview_audit.adapters import RenderValidationError, ServerResponseError
from preview_audit.browser import EnvironmentValidator, RenderValidationResult


class _RenderValidatorStub:
    """Render validator stub returning or raising a scripted outcome."""

    def __init__(self, error: Exception | None = None):
        self._error = error
        self.urls: list[str] = []

    def render_validate(self, url: str, timeout_seconds: float = 30.0) -> RenderValidationResult:
        _ = timeout_seconds
        self.urls.append(url)
        if self._error is not None:
            raise self._error
        return RenderValidationResult(success=True, checks={"hasBody": True}, message="Page rendered successfully")


def _build_client(responses: list[httpx.Response]) -> httpx.Client:
    remaining_responses = list(responses)

    def _handler(request: httpx.Request) -> httpx.Response:
        _ = request
        return remaining_responses.pop(0)

    return httpx.Client(transport=httpx.MockTransport(_handler))


def test_browser_environment_validates_responding_rendering_server() -> None:
    """Report success with the render payload when both checks pass.

    Returns:
        None: Assertions validate success payload.

    Raises:
        AssertionError: Raised when a healthy environment is rejected.
    """

    render_validator = _RenderValidatorStub()
    validator = EnvironmentValidator(
        render_validator=render_validator,
        client=_build_client([httpx.Response(200, text="<html>app</html>")]),
        sleep_function=lambda seconds: None,
    )

    result = validator.environment_validate("http://localhost:4173")

    assert result.success is True
    assert result.rendering is not None
    assert result.rendering["message"] == "Page rendered successfully"
    assert result.environment_to_payload()["server"] == {"responding": True}
    assert render_validator.urls == ["http://localhost:4173"]


def test_browser_environment_retries_server_response_with_fixed_delay() -> None:
    """Retry empty or failing responses with a fixed delay until one succeeds."""

    sleep_calls: list[float] = []
    validator = EnvironmentValidator(
        render_validator=_RenderValidatorStub(),
        client=_build_client(
            [
                httpx.Response(503, text="unavailable"),
                httpx.Response(200, text=""),
                httpx.Response(200, text="<html>app</html>"),
            ]
        ),
        sleep_function=sleep_calls.append,
    )

    assert validator.environment_test_server_response("http://localhost:4173") == {"status": 200, "content_length": 16}
    assert sleep_calls == [2.0, 2.0]


def test_browser_environment_server_response_exhaustion_raises() -> None:
    """Raise ServerResponseError naming the attempt count after the last failure."""

    validator = EnvironmentValidator(
        render_validator=_RenderValidatorStub(),
        max_retries=2,
        client=_build_client([httpx.Response(500, text="x"), httpx.Response(500, text="x")]),
        sleep_function=lambda seconds: None,
    )

    with pytest.raises(ServerResponseError, match="Server failed after 2 attempts"):
        validator.environment_test_server_response("http://localhost:4173")


def test_browser_environment_reports_render_failure_without_raising() -> None:
    """Fold render failures into an unsuccessful result."""

    validator = EnvironmentValidator(
        render_validator=_RenderValidatorStub(error=RenderValidationError("Page failed to render properly: {}")),
        client=_build_client([httpx.Response(200, text="<html>app</html>")]),
        sleep_function=lambda seconds: None,
    )

    result = validator.environment_validate("http://localhost:4173")

    assert result.success is False
    assert result.error == "Page failed to render properly: {}"
    assert result.environment_to_payload()["success"] is False


def test_browser_environment_abandons_body_that_outlives_request_budget() -> None:
    """Stop reading a dripping body once the per-attempt budget is spent."""

    clock_state = {"now": 0.0}
    body_reads: list[bytes] = []

    def _dripping_body() -> Iterator[bytes]:
        for _ in range(100):
            clock_state["now"] += 3.0
            body_reads.append(b"x")
            yield b"x"

    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=_dripping_body(), request=request)

    validator = EnvironmentValidator(
        render_validator=_RenderValidatorStub(),
        max_retries=1,
        request_timeout_seconds=10.0,
        client=httpx.Client(transport=httpx.MockTransport(_handler)),
        clock=lambda: clock_state["now"],
        sleep_function=lambda seconds: None,
    )

    with pytest.raises(ServerResponseError, match="Response body not complete within 10s"):
        validator.environment_test_server_response("http://localhost:4173")

    assert len(body_reads) == 4
