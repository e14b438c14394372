# tests/helpers.py

import os
import tempfile
from contextlib import contextmanager
from typing import Dict, List, Optional

from codetrack.database import Database
from codetrack.models import FetchResult, ProfileSummary, RecentItem


def create_test_db() -> Database:
    """Create a fresh database in a temp file. Caller removes it via remove_test_db()."""
    fd, db_path = tempfile.mkstemp(suffix='.db')
    os.close(fd)
    return Database(db_path)


def remove_test_db(database: Database) -> None:
    path = database.db_path
    database.close()
    for suffix in ('', '-wal', '-shm'):
        if os.path.exists(path + suffix):
            os.remove(path + suffix)


def solved(title: str, difficulty: Optional[str] = None, status: str = 'Accepted') -> RecentItem:
    return RecentItem(title=title, status=status, timestamp='2024-05-01T10:00:00+00:00', difficulty=difficulty)


def make_profile(total: int, easy: int = 0, medium: int = 0, hard: int = 0,
                 recent: List[RecentItem] = None) -> ProfileSummary:
    return ProfileSummary(
        total_solved=total,
        easy_solved=easy,
        medium_solved=medium,
        hard_solved=hard,
        recent_items=list(recent or []),
    )


class FakeClient:
    """Platform client returning canned results per handle; unknown handles are not found."""

    def __init__(self, platform: str, profiles: Dict[str, ProfileSummary] = None,
                 failures: Dict[str, str] = None, raises: Exception = None):
        self.platform = platform
        self.profiles = profiles or {}
        self.failures = failures or {}
        self.raises = raises
        self.calls: List[str] = []

    def fetch_profile(self, handle: str) -> FetchResult:
        self.calls.append(handle)
        if self.raises is not None:
            raise self.raises
        if handle in self.failures:
            return FetchResult.failed(self.platform, handle, self.failures[handle])
        if handle in self.profiles:
            return FetchResult.ok(self.platform, handle, self.profiles[handle])
        return FetchResult.not_found(self.platform, handle)


class FakePage:
    """Minimal stand-in for a Playwright page serving fixed HTML."""

    def __init__(self, html: str, goto_error: Exception = None):
        self.html = html
        self.goto_error = goto_error
        self.visited: List[str] = []
        self.scrolled = False

    def goto(self, url, wait_until=None, timeout=None):
        self.visited.append(url)
        if self.goto_error is not None:
            raise self.goto_error

    def wait_for_selector(self, selector, timeout=None):
        return None

    def evaluate(self, script):
        self.scrolled = True

    def wait_for_timeout(self, ms):
        return None

    def content(self) -> str:
        return self.html


class FakePageFactory:
    """Callable matching open_page(); records whether each session was torn down."""

    def __init__(self, page: FakePage):
        self.page = page
        self.opened = 0
        self.closed = 0

    @contextmanager
    def __call__(self, headless=True):
        self.opened += 1
        try:
            yield self.page
        finally:
            self.closed += 1
