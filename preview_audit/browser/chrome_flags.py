"""Chrome command-line flag sets for CI and local headless runs.

Headless Chrome in constrained CI containers often never paints (no first
contentful paint) unless background throttling, staged compositing and GPU
acceleration are disabled. The CI set below disables all of them and pins the
window to 1920x1080 at scale factor 1 so DOM-size checks are comparable
across machines.
"""

from __future__ import annotations

from typing import Final, Iterable

CI_CHROME_FLAGS: Final[tuple[str, ...]] = (
    "--headless=new",
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
    "--disable-features=TranslateUI",
    "--disable-web-security",
    "--disable-features=VizDisplayCompositor",
    "--run-all-compositor-stages-before-draw",
    "--disable-extensions",
    "--disable-plugins",
    "--disable-default-apps",
    "--disable-background-networking",
    "--disable-sync",
    "--metrics-recording-only",
    "--no-first-run",
    "--safebrowsing-disable-auto-update",
    "--disable-component-update",
    "--disable-domain-reliability",
    "--disable-client-side-phishing-detection",
    "--disable-hang-monitor",
    "--disable-popup-blocking",
    "--disable-prompt-on-repost",
    "--disable-component-extensions-with-background-pages",
    "--disable-ipc-flooding-protection",
    "--enable-automation",
    "--password-store=basic",
    "--use-mock-keychain",
    "--window-size=1920,1080",
    "--viewport=1920x1080",
    "--force-device-scale-factor=1",
    "--hide-scrollbars",
    "--mute-audio",
    "--autoplay-policy=no-user-gesture-required",
)

LOCAL_CHROME_FLAGS: Final[tuple[str, ...]] = (
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
)

CI_LIGHTHOUSE_EXTRA_FLAGS: Final[tuple[str, ...]] = (
    "--disable-dev-tools",
    "--disable-logging",
    "--disable-background-mode",
    "--disable-default-apps",
    "--disable-extensions-http-throttling",
)

VIEWPORT_WIDTH: Final[int] = 1920
VIEWPORT_HEIGHT: Final[int] = 1080
DEVICE_SCALE_FACTOR: Final[int] = 1


def chrome_flags_for_browser(ci: bool, extra_args: Iterable[str] | None = None) -> list[str]:
    """Return flags for a directly driven browser.

    Args:
        ci: Whether the CI-safe superset applies.
        extra_args: Caller flags appended to the local set; ignored under CI.

    Returns:
        list[str]: Chrome command-line flags.
    """

    if ci:
        return list(CI_CHROME_FLAGS)
    return [*LOCAL_CHROME_FLAGS, *(extra_args or ())]


def chrome_flags_for_lighthouse(ci: bool) -> list[str]:
    """Return flags for the Lighthouse-managed browser.

    Args:
        ci: Whether CI-only additions apply.

    Returns:
        list[str]: Chrome command-line flags.
    """

    flags = list(CI_CHROME_FLAGS)
    if ci:
        flags.extend(CI_LIGHTHOUSE_EXTRA_FLAGS)
    return flags
