from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from codetrack.models import ProfileSummary, RecentItem, utc_now
from .core import BrowserClient, page_text, parse_number

LOGGER = logging.getLogger(__name__)

BUCKET_PATTERNS = {
    "easy": re.compile(r"Easy\s*[:(]?\s*(\d+)", re.I),
    "medium": re.compile(r"Medium\s*[:(]?\s*(\d+)", re.I),
    "hard": re.compile(r"Hard\s*[:(]?\s*(\d+)", re.I),
}
DECLARED_TOTAL_PATTERN = re.compile(r"Problems\s+Solved\s*:?\s*(\d+)", re.I)
MAX_RECENT_ITEMS = 10


def extract_bucket_counts(text: str) -> Tuple[int, int, int]:
    """Easy / Medium / Hard counts from visible page text; missing labels count as 0."""
    counts = []
    for key in ("easy", "medium", "hard"):
        match = BUCKET_PATTERNS[key].search(text or "")
        counts.append(parse_number(match.group(1)) if match else 0)
    return counts[0], counts[1], counts[2]


def extract_declared_total(text: str) -> int:
    match = DECLARED_TOTAL_PATTERN.search(text or "")
    return parse_number(match.group(1)) if match else 0


def reconcile_total(declared_total: int, easy: int, medium: int, hard: int) -> int:
    """
    Trust the declared total only when it is at least the sum of its buckets.

    A zero or smaller declared total is replaced by easy + medium + hard.
    """
    bucket_sum = easy + medium + hard
    if declared_total == 0 or bucket_sum > declared_total:
        return bucket_sum
    return declared_total


def harvest_recent_titles(
    soup: BeautifulSoup,
    base_url: str = "https://www.geeksforgeeks.org/",
    limit: int = MAX_RECENT_ITEMS,
) -> List[RecentItem]:
    """Problem titles linked from the profile, unique by exact text, in page order."""
    items: List[RecentItem] = []
    seen = set()
    now = utc_now()
    for anchor in soup.select('a[href*="/problems/"]'):
        if len(items) >= limit:
            break
        title = anchor.get_text(" ", strip=True)
        href = anchor.get("href")
        if not title or not href or "Solve Problem" in title or len(title) <= 3:
            continue
        if title in seen:
            continue
        seen.add(title)
        items.append(RecentItem(
            title=title,
            status="solved",
            timestamp=now,
            difficulty=None,
            url=urljoin(base_url, href),
        ))
    return items


class GFGClient(BrowserClient):
    """GeeksforGeeks public profile scraper."""

    PLATFORM = "gfg"
    PROFILE_URL = "https://www.geeksforgeeks.org/user/{handle}/"
    CONTENT_MARKER = ".profile_pic"
    WAIT_UNTIL = "domcontentloaded"

    def _after_load(self, page) -> None:
        # Solved-problem sections render after the first scroll.
        page.evaluate("window.scrollTo(0, 500)")
        page.wait_for_timeout(500)

    def parse_profile_html(self, html: str, base_url: Optional[str] = None) -> ProfileSummary:
        soup = self._soup(html)
        recent = harvest_recent_titles(soup, base_url or "https://www.geeksforgeeks.org/")
        text = page_text(soup)

        easy, medium, hard = extract_bucket_counts(text)
        declared = extract_declared_total(text)
        total = reconcile_total(declared, easy, medium, hard)
        if total != declared:
            LOGGER.info("Using calculated GFG total (%s) instead of scraped total (%s)", total, declared)

        return ProfileSummary(
            total_solved=total,
            easy_solved=easy,
            medium_solved=medium,
            hard_solved=hard,
            recent_items=recent,
        )
