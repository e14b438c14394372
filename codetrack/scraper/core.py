from __future__ import annotations

import logging
import re
from typing import Callable, Optional
from urllib.parse import quote

from bs4 import BeautifulSoup
from playwright.sync_api import TimeoutError as PlaywrightTimeout

from codetrack.models import FetchResult, ProfileSummary
from .session import open_page

LOGGER = logging.getLogger(__name__)


class ProfileNotFoundError(Exception):
    """Raised when a handle does not resolve to a public profile page."""


def parse_number(num_str: Optional[str]) -> int:
    """Parse comma-formatted integer strings; anything unparseable is 0."""
    clean = re.sub(r"[^\d]", "", num_str or "")
    if clean == "":
        return 0
    try:
        return int(clean)
    except ValueError:
        return 0


def page_text(soup: BeautifulSoup) -> str:
    """Visible text of the page body, one text node per line."""
    root = soup.body or soup
    for tag in root.find_all(["script", "style", "noscript"]):
        tag.decompose()
    lines = [line.strip() for line in root.get_text("\n").split("\n")]
    return "\n".join(line for line in lines if line)


class BrowserClient:
    """
    Base class for platforms whose profile pages need a rendered DOM.

    Subclasses set PLATFORM / PROFILE_URL and implement parse_profile_html();
    the browser is launched fresh for each fetch and closed on every path.
    """

    PLATFORM = ""
    PROFILE_URL = ""
    CONTENT_MARKER: Optional[str] = None
    WAIT_UNTIL = "domcontentloaded"
    NOT_FOUND_TITLE = re.compile(r"^\s*(?:404|error|not found)\b|\bpage not found\b", re.IGNORECASE)

    def __init__(
        self,
        headless: bool = True,
        navigation_timeout_ms: int = 45000,
        marker_timeout_ms: int = 10000,
        page_factory: Optional[Callable] = None,
    ):
        self.headless = headless
        self.navigation_timeout_ms = navigation_timeout_ms
        self.marker_timeout_ms = marker_timeout_ms
        self.page_factory = page_factory or open_page

    # --- Main entry point ---

    def fetch_profile(self, handle: str) -> FetchResult:
        handle = (handle or "").strip()
        url = self.PROFILE_URL.format(handle=quote(handle, safe=""))
        LOGGER.info("Starting %s scrape for: %s", self.PLATFORM, handle)
        try:
            with self.page_factory(headless=self.headless) as page:
                html = self._load_profile(page, url)
            profile = self.parse_profile_html(html)
        except ProfileNotFoundError as exc:
            LOGGER.warning("%s profile not found for %s: %s", self.PLATFORM, handle, exc)
            return FetchResult.not_found(self.PLATFORM, handle)
        except Exception as exc:
            LOGGER.error("%s scrape failed for %s: %s", self.PLATFORM, handle, exc)
            return FetchResult.failed(self.PLATFORM, handle, f"scrape failed ({exc})")

        LOGGER.info(
            "%s stats for %s: total %s (E:%s, M:%s, H:%s), %s recent items",
            self.PLATFORM,
            handle,
            profile.total_solved,
            profile.easy_solved,
            profile.medium_solved,
            profile.hard_solved,
            len(profile.recent_items),
        )
        return FetchResult.ok(self.PLATFORM, handle, profile)

    def parse_profile_html(self, html: str) -> ProfileSummary:
        raise NotImplementedError

    # --- Internal helpers ---

    def _load_profile(self, page, url: str) -> str:
        """Navigate, wait best-effort for the content marker, return rendered HTML."""
        page.goto(url, wait_until=self.WAIT_UNTIL, timeout=self.navigation_timeout_ms)
        if self.CONTENT_MARKER:
            try:
                page.wait_for_selector(self.CONTENT_MARKER, timeout=self.marker_timeout_ms)
            except PlaywrightTimeout:
                LOGGER.warning(
                    "Marker %r not found on %s, continuing with what loaded",
                    self.CONTENT_MARKER,
                    url,
                )
        self._after_load(page)
        return page.content()

    def _after_load(self, page) -> None:
        """Hook for lazy-loaded sections (scrolling etc.)."""

    def _soup(self, html: str) -> BeautifulSoup:
        """Parse HTML and reject error / not-found pages by their title."""
        soup = BeautifulSoup(html or "", "html.parser")
        title = soup.title.get_text(" ", strip=True) if soup.title else ""
        if self.NOT_FOUND_TITLE.search(title):
            raise ProfileNotFoundError(f"page title looks like an error page: {title!r}")
        return soup
