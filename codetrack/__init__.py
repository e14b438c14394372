"""
Coding-practice tracker.

Pulls public profile summaries from LeetCode, GeeksforGeeks and TUF+,
keeps a per-user problem list and combines both into unified stats.
"""

__version__ = "0.4.0"
