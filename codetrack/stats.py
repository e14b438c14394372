# codetrack/stats.py

import logging
from collections import Counter
from typing import Any, Dict, List

from codetrack.storage import Storage

LOGGER = logging.getLogger(__name__)


class StatsAggregator:
    """
    Combine platform aggregates with stored problem records.

    A platform with an aggregate row is counted from that row only; its
    individual records are not added on top. Platforms without an aggregate
    are counted from their records. Category stats always come from records.
    """

    def __init__(self, storage: Storage):
        self.storage = storage

    @staticmethod
    def _empty_bucket(platform: str) -> Dict[str, Any]:
        return {'platform': platform, 'count': 0, 'easy': 0, 'medium': 0, 'hard': 0}

    def platform_breakdown(self, aggregates, records) -> List[Dict[str, Any]]:
        breakdown: List[Dict[str, Any]] = []
        covered = set()
        for aggregate in sorted(aggregates, key=lambda a: a.platform):
            covered.add(aggregate.platform)
            breakdown.append({
                'platform': aggregate.platform,
                'count': aggregate.total_solved or 0,
                'easy': aggregate.easy_solved or 0,
                'medium': aggregate.medium_solved or 0,
                'hard': aggregate.hard_solved or 0,
            })

        manual: Dict[str, Dict[str, Any]] = {}
        for record in records:
            if record.platform in covered:
                continue
            bucket = manual.setdefault(record.platform, self._empty_bucket(record.platform))
            bucket['count'] += 1
            # Unclassified records count toward the platform only.
            if record.difficulty in ('easy', 'medium', 'hard'):
                bucket[record.difficulty] += 1

        breakdown.extend(manual[key] for key in sorted(manual))
        return breakdown

    @staticmethod
    def category_breakdown(records) -> List[Dict[str, Any]]:
        counts = Counter(record.category for record in records if record.category)
        ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        return [{'category': category, 'count': count} for category, count in ordered]

    def get_stats(self, user_id: str) -> Dict[str, Any]:
        aggregates = self.storage.get_aggregates(user_id)
        records = self.storage.get_user_records(user_id)

        platform_stats = self.platform_breakdown(aggregates, records)
        stats = {
            'total': sum(p['count'] for p in platform_stats),
            'easy': sum(p['easy'] for p in platform_stats),
            'medium': sum(p['medium'] for p in platform_stats),
            'hard': sum(p['hard'] for p in platform_stats),
            'platform_stats': platform_stats,
            'category_stats': self.category_breakdown(records),
        }
        LOGGER.debug(
            "Stats for %s: total=%s from %s aggregates and %s records",
            user_id,
            stats['total'],
            len(aggregates),
            len(records),
        )
        return stats
