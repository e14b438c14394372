# codetrack/storage/__init__.py
"""
Storage contract and the in-memory implementation.

The relational implementation lives in codetrack.database.
"""

from .base import Storage, decrement_aggregate
from .memory import MemoryStorage

__all__ = [
    'Storage',
    'decrement_aggregate',
    'MemoryStorage',
]
