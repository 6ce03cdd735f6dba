"""Headless Chromium launcher built on Playwright's sync API."""

from __future__ import annotations

import json
import logging
from typing import Any, Final, Iterable

from playwright.sync_api import Browser, Error as PlaywrightError, Page, Playwright, sync_playwright

from preview_audit.adapters import BrowserLaunchError

from .chrome_flags import DEVICE_SCALE_FACTOR, VIEWPORT_HEIGHT, VIEWPORT_WIDTH, chrome_flags_for_browser

logger = logging.getLogger(__name__)

PAGE_OPTIONS: Final[dict[str, Any]] = {
    "viewport": {"width": VIEWPORT_WIDTH, "height": VIEWPORT_HEIGHT},
    "device_scale_factor": DEVICE_SCALE_FACTOR,
    "is_mobile": False,
    "has_touch": False,
    "ignore_https_errors": True,
}


class BrowserSession:
    """Running browser together with the Playwright driver that owns it."""

    def __init__(self, playwright: Playwright, browser: Browser):
        self._playwright = playwright
        self._browser = browser
        self._closed = False

    @property
    def browser(self) -> Browser:
        return self._browser

    def browser_new_page(self) -> Page:
        """Open a page with the fixed desktop viewport.

        Returns:
            Page: New page in a fresh context.
        """

        return self._browser.new_page(**PAGE_OPTIONS)

    def browser_close(self) -> None:
        """Close the browser and stop the driver; repeated calls do nothing."""

        if self._closed:
            return
        self._closed = True
        try:
            self._browser.close()
        except PlaywrightError as error:
            logger.warning("Browser close failed: %s", error)
        finally:
            self._playwright.stop()


class BrowserLauncher:
    """Launch headless Chromium with the environment-specific flag set."""

    def __init__(self, ci: bool = False, debug: bool = False):
        """Initialize browser launcher.

        Args:
            ci: Whether the CI-safe flag set applies.
            debug: Whether launch configuration and version are logged.
        """

        self._ci = ci
        self._debug = debug

    def browser_launch_options(
        self,
        headless: bool | None = None,
        extra_args: Iterable[str] | None = None,
    ) -> dict[str, Any]:
        """Build keyword arguments for `chromium.launch`.

        Headless mode is controlled by Playwright, so any `--headless` flag is
        dropped from the argument list.

        Args:
            headless: Headless override for local runs; CI is always headless.
            extra_args: Additional local flags.

        Returns:
            dict[str, Any]: Launch keyword arguments.
        """

        flags = chrome_flags_for_browser(ci=self._ci, extra_args=extra_args)
        return {
            "headless": True if self._ci else headless is not False,
            "args": [flag for flag in flags if not flag.startswith("--headless")],
            "ignore_default_args": ["--disable-extensions"],
        }

    def browser_launch(
        self,
        headless: bool | None = None,
        extra_args: Iterable[str] | None = None,
    ) -> BrowserSession:
        """Start the Playwright driver and launch Chromium.

        Args:
            headless: Headless override for local runs.
            extra_args: Additional local flags.

        Returns:
            BrowserSession: Session owning the browser and driver.

        Raises:
            BrowserLaunchError: Raised when Chromium cannot be launched.
        """

        launch_options = self.browser_launch_options(headless=headless, extra_args=extra_args)
        if self._debug:
            logger.debug("Chrome configuration: %s", json.dumps({**launch_options, "page": PAGE_OPTIONS}, indent=2))

        playwright = sync_playwright().start()
        try:
            browser = playwright.chromium.launch(**launch_options)
        except PlaywrightError as error:
            playwright.stop()
            raise BrowserLaunchError(f"Failed to launch Chrome: {error}") from error

        if self._debug:
            logger.debug("Chrome launched successfully, version %s", browser.version)
        return BrowserSession(playwright=playwright, browser=browser)
