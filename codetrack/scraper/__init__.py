# codetrack/scraper/__init__.py
"""
Playwright-backed profile scrapers for platforms without a public API.
"""

from .session import open_page, close_browser
from .core import BrowserClient, ProfileNotFoundError
from .gfg import GFGClient
from .tuf import TUFClient

__all__ = [
    'open_page',
    'close_browser',
    'BrowserClient',
    'ProfileNotFoundError',
    'GFGClient',
    'TUFClient',
]
