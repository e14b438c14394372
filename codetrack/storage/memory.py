# codetrack/storage/memory.py

import copy
import logging
import threading
from typing import Dict, List, Optional

from codetrack.models import (
    PlatformAggregate,
    PlatformCredential,
    ProblemRecord,
    Recommendation,
    utc_now,
)
from codetrack.storage.base import Storage, decrement_aggregate

LOGGER = logging.getLogger(__name__)


class MemoryStorage(Storage):
    """Process-local storage. Returned objects are copies, never live rows."""

    def __init__(self):
        self._lock = threading.RLock()
        self._records: Dict[str, List[ProblemRecord]] = {}
        self._aggregates: Dict[str, Dict[str, PlatformAggregate]] = {}
        self._credentials: Dict[str, List[PlatformCredential]] = {}
        self._recommendations: Dict[str, List[Recommendation]] = {}
        self._next_id = 1

    def _new_id(self) -> int:
        value = self._next_id
        self._next_id += 1
        return value

    def _find_record(self, user_id: str, record_id: int) -> Optional[ProblemRecord]:
        for record in self._records.get(user_id, []):
            if record.id == record_id:
                return record
        return None

    # --- Problem records ---

    def get_user_records(self, user_id: str) -> List[ProblemRecord]:
        with self._lock:
            return copy.deepcopy(self._records.get(user_id, []))

    def get_record(self, user_id: str, record_id: int) -> Optional[ProblemRecord]:
        with self._lock:
            record = self._find_record(user_id, record_id)
            return copy.deepcopy(record) if record else None

    def get_recent_records(self, user_id: str, limit: int = 10) -> List[ProblemRecord]:
        with self._lock:
            records = sorted(
                self._records.get(user_id, []),
                key=lambda r: (r.created_at or "", r.id or 0),
                reverse=True,
            )
            return copy.deepcopy(records[:limit])

    def create_record(self, user_id: str, record: ProblemRecord) -> ProblemRecord:
        with self._lock:
            now = utc_now()
            stored = copy.deepcopy(record)
            stored.id = self._new_id()
            stored.user_id = user_id
            stored.tags = list(stored.tags or [])
            stored.solved_at = stored.solved_at or now
            stored.created_at = now
            self._records.setdefault(user_id, []).append(stored)
            return copy.deepcopy(stored)

    def update_record_difficulty(
        self, user_id: str, record_id: int, difficulty: Optional[str]
    ) -> Optional[ProblemRecord]:
        with self._lock:
            record = self._find_record(user_id, record_id)
            if record is None:
                return None
            record.difficulty = difficulty
            return copy.deepcopy(record)

    def update_record_category(
        self, user_id: str, record_id: int, category: Optional[str]
    ) -> Optional[ProblemRecord]:
        with self._lock:
            record = self._find_record(user_id, record_id)
            if record is None:
                return None
            record.category = category
            return copy.deepcopy(record)

    def delete_record(self, user_id: str, record_id: int) -> bool:
        with self._lock:
            record = self._find_record(user_id, record_id)
            if record is None:
                return False
            self._records[user_id] = [r for r in self._records[user_id] if r.id != record_id]

            aggregate = self._aggregates.get(user_id, {}).get(record.platform)
            if aggregate is not None:
                decrement_aggregate(aggregate, record.difficulty)
                aggregate.last_updated = utc_now()
            LOGGER.info("Deleted problem %s for user %s", record_id, user_id)
            return True

    def delete_platform_data(self, user_id: str, platform: str) -> int:
        with self._lock:
            records = self._records.get(user_id, [])
            kept = [r for r in records if r.platform != platform]
            removed = len(records) - len(kept)
            self._records[user_id] = kept
            self._aggregates.get(user_id, {}).pop(platform, None)
            LOGGER.info("Deleted %s %s problems for user %s", removed, platform, user_id)
            return removed

    def clear_user_data(self, user_id: str) -> None:
        with self._lock:
            self._records.pop(user_id, None)
            self._aggregates.pop(user_id, None)
            self._recommendations.pop(user_id, None)
            LOGGER.info("Cleared all problem data for user %s", user_id)

    # --- Platform aggregates ---

    def upsert_aggregate(self, user_id: str, aggregate: PlatformAggregate) -> PlatformAggregate:
        with self._lock:
            stored = copy.deepcopy(aggregate)
            stored.last_updated = utc_now()
            self._aggregates.setdefault(user_id, {})[stored.platform] = stored
            return copy.deepcopy(stored)

    def get_aggregates(self, user_id: str) -> List[PlatformAggregate]:
        with self._lock:
            rows = self._aggregates.get(user_id, {})
            return [copy.deepcopy(rows[key]) for key in sorted(rows)]

    # --- Credentials ---

    def save_credential(self, user_id: str, platform: str, handle: str) -> PlatformCredential:
        with self._lock:
            now = utc_now()
            credentials = self._credentials.setdefault(user_id, [])
            for credential in credentials:
                if credential.platform == platform:
                    credential.handle = handle
                    credential.updated_at = now
                    return copy.deepcopy(credential)
            credential = PlatformCredential(
                id=self._new_id(),
                user_id=user_id,
                platform=platform,
                handle=handle,
                created_at=now,
                updated_at=now,
            )
            credentials.append(credential)
            return copy.deepcopy(credential)

    def get_credentials(self, user_id: str) -> List[PlatformCredential]:
        with self._lock:
            return copy.deepcopy(self._credentials.get(user_id, []))

    def mark_synced(self, user_id: str, platform: str) -> None:
        with self._lock:
            now = utc_now()
            for credential in self._credentials.get(user_id, []):
                if credential.platform == platform:
                    credential.last_sync_at = now
                    credential.updated_at = now

    def delete_credential(self, user_id: str, credential_id: int) -> bool:
        with self._lock:
            credentials = self._credentials.get(user_id, [])
            kept = [c for c in credentials if c.id != credential_id]
            self._credentials[user_id] = kept
            return len(kept) != len(credentials)

    # --- Recommendations ---

    def get_recommendations(self, user_id: str) -> List[Recommendation]:
        with self._lock:
            return copy.deepcopy(self._recommendations.get(user_id, []))

    def replace_recommendations(
        self, user_id: str, recommendations: List[Recommendation]
    ) -> List[Recommendation]:
        with self._lock:
            now = utc_now()
            stored = []
            for rec in recommendations:
                item = copy.deepcopy(rec)
                item.id = self._new_id()
                item.user_id = user_id
                item.created_at = now
                stored.append(item)
            self._recommendations[user_id] = stored
            return copy.deepcopy(stored)
