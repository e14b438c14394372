from __future__ import annotations

import logging
import re
from typing import Optional

from bs4 import BeautifulSoup, Tag

from codetrack.models import ProfileSummary
from .core import BrowserClient

LOGGER = logging.getLogger(__name__)

SOLVED_OF_TOTAL = re.compile(r"(\d+)\s*/")
ANY_NUMBER = re.compile(r"(\d+)")
MAX_ANCESTOR_LEVELS = 5


def previous_element(node: Tag) -> Optional[Tag]:
    """The closest preceding sibling that is an element (text nodes skipped)."""
    for sibling in node.previous_siblings:
        if isinstance(sibling, Tag):
            return sibling
    return None


def _label_spans(soup: BeautifulSoup, label: str):
    return [span for span in soup.find_all("span") if span.get_text(strip=True) == label]


def count_near_label(soup: BeautifulSoup, label: str, max_levels: int = MAX_ANCESTOR_LEVELS) -> int:
    """
    Numerator of the "solved/total" figure laid out before a difficulty label.

    Starting at the label's parent, climb up to max_levels ancestors and
    check each one's preceding element sibling for a "13/254" style figure.
    """
    for span in _label_spans(soup, label):
        current = span.parent
        levels = 0
        while current is not None and levels < max_levels:
            sibling = previous_element(current)
            if sibling is not None:
                match = SOLVED_OF_TOTAL.search(sibling.get_text(" ", strip=True))
                if match:
                    return int(match.group(1))
            current = current.parent
            levels += 1
    return 0


def solved_fallback(soup: BeautifulSoup) -> int:
    """Number shown just before a standalone "Solved" label."""
    for span in _label_spans(soup, "Solved"):
        sibling = previous_element(span)
        if sibling is None:
            continue
        match = ANY_NUMBER.search(sibling.get_text(" ", strip=True))
        if match:
            return int(match.group(1))
    return 0


class TUFClient(BrowserClient):
    """TUF+ public profile scraper. The page has no dated history, so recent items stay empty."""

    PLATFORM = "tuf"
    PROFILE_URL = "https://takeuforward.org/plus/profile/{handle}"
    CONTENT_MARKER = "span"
    WAIT_UNTIL = "networkidle"

    def __init__(self, *args, **kwargs):
        kwargs.setdefault("navigation_timeout_ms", 60000)
        kwargs.setdefault("marker_timeout_ms", 5000)
        super().__init__(*args, **kwargs)

    def parse_profile_html(self, html: str) -> ProfileSummary:
        soup = self._soup(html)
        easy = count_near_label(soup, "Easy")
        medium = count_near_label(soup, "Medium")
        hard = count_near_label(soup, "Hard")

        total = easy + medium + hard
        if total == 0:
            total = solved_fallback(soup)
            if total:
                LOGGER.info("TUF+ difficulty labels missing, using Solved fallback (%s)", total)

        return ProfileSummary(
            total_solved=total,
            easy_solved=easy,
            medium_solved=medium,
            hard_solved=hard,
            recent_items=[],
        )
