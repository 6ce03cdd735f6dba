"""Regression tests for Chrome flag selection and Playwright launch options."""

from __future__ import annotations

from preview_audit.browser import (
    CI_CHROME_FLAGS,
    CI_LIGHTHOUSE_EXTRA_FLAGS,
    LOCAL_CHROME_FLAGS,
    PAGE_OPTIONS,
    BrowserLauncher,
    chrome_flags_for_browser,
    chrome_flags_for_lighthouse,
)


def test_browser_ci_flags_disable_throttling_and_pin_viewport() -> None:
    """Include the paint-critical CI flags and a fixed window size.

    Returns:
        None: Assertions validate CI flag coverage.

    Raises:
        AssertionError: Raised when a critical flag is missing.
    """

    flags = chrome_flags_for_browser(ci=True)

    for required_flag in (
        "--no-sandbox",
        "--disable-dev-shm-usage",
        "--disable-gpu",
        "--disable-background-timer-throttling",
        "--disable-renderer-backgrounding",
        "--run-all-compositor-stages-before-draw",
        "--window-size=1920,1080",
        "--force-device-scale-factor=1",
    ):
        assert required_flag in flags
    assert chrome_flags_for_browser(ci=True, extra_args=["--lang=de"]) == list(CI_CHROME_FLAGS)


def test_browser_local_flags_are_minimal_and_extendable() -> None:
    """Use the small local set plus caller flags outside CI."""

    assert chrome_flags_for_browser(ci=False) == list(LOCAL_CHROME_FLAGS)
    assert chrome_flags_for_browser(ci=False, extra_args=["--lang=de"])[-1] == "--lang=de"


def test_browser_lighthouse_flags_add_ci_extras_only_in_ci() -> None:
    """Append Lighthouse-specific extras to the CI set only under CI."""

    ci_flags = chrome_flags_for_lighthouse(ci=True)
    local_flags = chrome_flags_for_lighthouse(ci=False)

    assert ci_flags[-len(CI_LIGHTHOUSE_EXTRA_FLAGS):] == list(CI_LIGHTHOUSE_EXTRA_FLAGS)
    assert local_flags == list(CI_CHROME_FLAGS)


def test_browser_launch_options_force_headless_in_ci_and_strip_headless_flag() -> None:
    """Force headless mode in CI and leave headless control to Playwright."""

    ci_options = BrowserLauncher(ci=True).browser_launch_options(headless=False)
    local_options = BrowserLauncher(ci=False).browser_launch_options(headless=False)

    assert ci_options["headless"] is True
    assert not any(flag.startswith("--headless") for flag in ci_options["args"])
    assert local_options["headless"] is False
    assert BrowserLauncher(ci=False).browser_launch_options()["headless"] is True


def test_browser_page_options_fix_desktop_viewport() -> None:
    """Open pages at 1920x1080, scale factor 1, without mobile emulation."""

    assert PAGE_OPTIONS["viewport"] == {"width": 1920, "height": 1080}
    assert PAGE_OPTIONS["device_scale_factor"] == 1
    assert PAGE_OPTIONS["is_mobile"] is False
