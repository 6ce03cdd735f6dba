"""Browser layer package for headless Chromium launch and render validation."""

from .chrome_flags import (
    CI_CHROME_FLAGS,
    CI_LIGHTHOUSE_EXTRA_FLAGS,
    LOCAL_CHROME_FLAGS,
    chrome_flags_for_browser,
    chrome_flags_for_lighthouse,
)
from .environment import EnvironmentValidationResult, EnvironmentValidator
from .launcher import PAGE_OPTIONS, BrowserLauncher, BrowserSession
from .render_validator import RenderValidationResult, RenderValidator, render_snapshot_is_valid

__all__ = [
    "BrowserLauncher",
    "BrowserSession",
    "CI_CHROME_FLAGS",
    "CI_LIGHTHOUSE_EXTRA_FLAGS",
    "EnvironmentValidationResult",
    "EnvironmentValidator",
    "LOCAL_CHROME_FLAGS",
    "PAGE_OPTIONS",
    "RenderValidationResult",
    "RenderValidator",
    "chrome_flags_for_browser",
    "chrome_flags_for_lighthouse",
    "render_snapshot_is_valid",
]
