"""Headless render validation with DOM content-presence heuristics."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Final

from playwright.sync_api import Error as PlaywrightError

from preview_audit.adapters import RenderValidationError

from .launcher import BrowserLauncher

logger = logging.getLogger(__name__)

CONTENT_READY_SCRIPT: Final[str] = """() => {
    const root = document.getElementById('root');
    const rootText = root && root.textContent ? root.textContent.trim() : '';
    const hasAppContent = !!root && root.children.length > 0 && rootText.length > 100;
    const hasLandmark = document.querySelector('nav') !== null || document.querySelector('section') !== null;
    return hasAppContent || hasLandmark;
}"""

SNAPSHOT_SCRIPT: Final[str] = """() => {
    const root = document.getElementById('root');
    const rootContent = root && root.textContent ? root.textContent.trim() : '';
    const elementCount = document.querySelectorAll('*').length;
    return {
        hasBody: !!document.body,
        hasContent: rootContent.length > 100,
        hasVisibleElements: elementCount > 20,
        hasImages: document.querySelectorAll('img').length > 0,
        hasStyles: document.querySelectorAll('style, link[rel="stylesheet"]').length > 0,
        hasNavigation: document.querySelector('nav') !== null,
        hasSection: document.querySelector('section') !== null,
        hasFooter: document.querySelector('footer') !== null,
        bodyText: rootContent.substring(0, 200) + '...',
        rootText: rootContent.substring(0, 100) + '...',
        elementCount: elementCount,
        title: document.title,
    };
}"""


@dataclass(frozen=True)
class RenderValidationResult:
    """Successful render validation report.

    Attributes:
        success: Always True; failures raise instead.
        checks: DOM snapshot that passed validation.
        message: Human-readable summary.
    """

    success: bool
    checks: dict[str, Any]
    message: str


class RenderValidator:
    """Load a URL in headless Chromium and require real application content."""

    def __init__(
        self,
        browser_launcher: BrowserLauncher,
        debug: bool = False,
        content_wait_seconds: float = 15.0,
        poll_interval_seconds: float = 0.25,
        settle_delay_seconds: float = 3.0,
        screenshot_path: Path | None = None,
        clock: Callable[[], float] | None = None,
        sleep_function: Callable[[float], None] | None = None,
    ):
        """Initialize render validator.

        Args:
            browser_launcher: Launcher producing browser sessions.
            debug: Whether page diagnostics are relayed and a screenshot is saved.
            content_wait_seconds: Deadline for the content-presence predicate.
            poll_interval_seconds: Delay between predicate evaluations.
            settle_delay_seconds: Delay after the predicate passes.
            screenshot_path: Debug screenshot target, defaults to `./debug-screenshot.png`.
            clock: Monotonic clock provider.
            sleep_function: Blocking sleep provider.

        Raises:
            ValueError: Raised when dependencies or timing values are invalid.
        """

        if browser_launcher is None:
            raise ValueError("browser_launcher must not be None")
        if content_wait_seconds <= 0:
            raise ValueError("content_wait_seconds must be > 0")
        if poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be > 0")

        self._browser_launcher = browser_launcher
        self._debug = debug
        self._content_wait_seconds = content_wait_seconds
        self._poll_interval_seconds = poll_interval_seconds
        self._settle_delay_seconds = settle_delay_seconds
        self._screenshot_path = screenshot_path
        self._clock = clock or time.monotonic
        self._sleep = sleep_function or time.sleep

    def render_validate(self, url: str, timeout_seconds: float = 30.0) -> RenderValidationResult:
        """Navigate to the URL and validate that content rendered.

        Args:
            url: Page URL.
            timeout_seconds: Navigation and default page timeout.

        Returns:
            RenderValidationResult: Passing snapshot.

        Raises:
            RenderValidationError: Raised with the last DOM snapshot when content never rendered.
            BrowserLaunchError: Raised when the browser could not be started.
        """

        session = self._browser_launcher.browser_launch()
        try:
            page = session.browser_new_page()
            timeout_ms = float(timeout_seconds) * 1000
            page.set_default_navigation_timeout(timeout_ms)
            page.set_default_timeout(timeout_ms)
            if self._debug:
                self._render_attach_debug_listeners(page)

            logger.info("Navigating to: %s", url)
            try:
                # networkidle fires after DOMContentLoaded, so both conditions hold.
                page.goto(url, wait_until="networkidle", timeout=timeout_ms)
            except PlaywrightError as error:
                snapshot = self._render_collect_snapshot(page)
                raise RenderValidationError(
                    f"Navigation to {url} failed: {error}. Last snapshot: {json.dumps(snapshot)}",
                    snapshot=snapshot,
                ) from error

            logger.info("Waiting for application content to render...")
            self._render_wait_for_content(page)
            self._sleep(self._settle_delay_seconds)

            checks = self._render_collect_snapshot(page)
            logger.info("Page validation results: %s", json.dumps(checks, indent=2))
            if not render_snapshot_is_valid(checks):
                raise RenderValidationError(
                    f"Page failed to render properly: {json.dumps(checks)}",
                    snapshot=checks,
                )

            if self._debug:
                screenshot_path = self._screenshot_path or (Path.cwd() / "debug-screenshot.png")
                page.screenshot(path=str(screenshot_path), full_page=True)
                logger.debug("Screenshot saved: %s", screenshot_path)

            return RenderValidationResult(success=True, checks=checks, message="Page rendered successfully")
        finally:
            session.browser_close()

    def _render_wait_for_content(self, page) -> None:
        """Poll the content predicate until it passes or the deadline elapses.

        Raises:
            RenderValidationError: Raised with the last snapshot on deadline.
        """

        deadline = self._clock() + self._content_wait_seconds
        while True:
            try:
                if page.evaluate(CONTENT_READY_SCRIPT):
                    return
            except PlaywrightError as error:
                logger.debug("Content predicate evaluation failed: %s", error)

            remaining_seconds = deadline - self._clock()
            if remaining_seconds <= 0:
                snapshot = self._render_collect_snapshot(page)
                raise RenderValidationError(
                    f"Application content did not render within {self._content_wait_seconds:.0f}s: "
                    f"{json.dumps(snapshot)}",
                    snapshot=snapshot,
                )
            self._sleep(min(self._poll_interval_seconds, remaining_seconds))

    def _render_collect_snapshot(self, page) -> dict[str, Any]:
        try:
            snapshot = page.evaluate(SNAPSHOT_SCRIPT)
        except PlaywrightError as error:
            return {"snapshotError": str(error)}
        return dict(snapshot or {})

    def _render_attach_debug_listeners(self, page) -> None:
        page.on("console", lambda message: logger.debug("Page console: %s", message.text))
        page.on("pageerror", lambda error: logger.debug("Page error: %s", error))
        page.on(
            "requestfailed",
            lambda request: logger.debug("Request failed: %s %s", request.url, request.failure),
        )


def render_snapshot_is_valid(checks: dict[str, Any]) -> bool:
    """Return whether a DOM snapshot shows a rendered application.

    Args:
        checks: DOM snapshot.

    Returns:
        bool: True when body, root text and element count thresholds are met.
    """

    return bool(checks.get("hasBody") and checks.get("hasContent") and checks.get("hasVisibleElements"))
