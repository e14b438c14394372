# codetrack/scraper/session.py
"""
Browser session management for Playwright-based scraping.

Every profile fetch gets its own browser process, released on every exit path.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from playwright.sync_api import Page, sync_playwright

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)
VIEWPORT = {"width": 1280, "height": 900}
LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]


@contextmanager
def open_page(headless: bool = True, user_agent: Optional[str] = None) -> Iterator[Page]:
    """
    Launch Chromium and yield a fresh page.

    Args:
        headless: Run without a visible window
        user_agent: Override the default desktop Chrome user agent

    Yields:
        Playwright Page, valid only inside the with-block
    """
    playwright = sync_playwright().start()
    browser = None
    context = None
    try:
        browser = playwright.chromium.launch(headless=headless, args=LAUNCH_ARGS)
        context = browser.new_context(
            user_agent=user_agent or USER_AGENT,
            viewport=VIEWPORT,
            locale="en-US",
        )
        yield context.new_page()
    finally:
        close_browser(playwright, browser, context)


def close_browser(playwright, browser=None, context=None) -> None:
    """Tear down context, browser and driver, continuing past individual failures."""
    for closer in (
        getattr(context, "close", None),
        getattr(browser, "close", None),
        getattr(playwright, "stop", None),
    ):
        if closer is None:
            continue
        try:
            closer()
        except Exception:
            pass  # Best effort cleanup
