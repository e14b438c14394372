# codetrack/storage/base.py
"""
Persistence contract consumed by the sync service and stats aggregator.

Every entity is partitioned by user_id; no operation reads or writes
another user's rows.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from codetrack.models import (
    PlatformAggregate,
    PlatformCredential,
    ProblemRecord,
    Recommendation,
)


def decrement_aggregate(aggregate: PlatformAggregate, difficulty: Optional[str]) -> PlatformAggregate:
    """
    Remove one solved unit from an aggregate, never dropping below zero.

    A record without a difficulty is counted against the medium bucket.
    """
    difficulty = difficulty or "medium"
    aggregate.total_solved = max(0, (aggregate.total_solved or 0) - 1)
    if difficulty == "easy":
        aggregate.easy_solved = max(0, (aggregate.easy_solved or 0) - 1)
    elif difficulty == "medium":
        aggregate.medium_solved = max(0, (aggregate.medium_solved or 0) - 1)
    elif difficulty == "hard":
        aggregate.hard_solved = max(0, (aggregate.hard_solved or 0) - 1)
    return aggregate


class Storage(ABC):
    """Abstract storage for problems, platform aggregates, credentials and recommendations."""

    # --- Problem records ---

    @abstractmethod
    def get_user_records(self, user_id: str) -> List[ProblemRecord]:
        """All records for a user, oldest first."""

    @abstractmethod
    def get_record(self, user_id: str, record_id: int) -> Optional[ProblemRecord]:
        ...

    @abstractmethod
    def get_recent_records(self, user_id: str, limit: int = 10) -> List[ProblemRecord]:
        """Most recently created records first."""

    @abstractmethod
    def create_record(self, user_id: str, record: ProblemRecord) -> ProblemRecord:
        """Persist a record and return the stored copy with id and timestamps set."""

    @abstractmethod
    def update_record_difficulty(
        self, user_id: str, record_id: int, difficulty: Optional[str]
    ) -> Optional[ProblemRecord]:
        ...

    @abstractmethod
    def update_record_category(
        self, user_id: str, record_id: int, category: Optional[str]
    ) -> Optional[ProblemRecord]:
        ...

    @abstractmethod
    def delete_record(self, user_id: str, record_id: int) -> bool:
        """
        Delete one record. When the record's platform has an aggregate, the
        aggregate total and the matching difficulty bucket (medium when the
        record has none) drop by one, floored at zero. Returns False if the
        record did not exist.
        """

    @abstractmethod
    def delete_platform_data(self, user_id: str, platform: str) -> int:
        """Delete a platform's records and its aggregate. Returns records removed."""

    @abstractmethod
    def clear_user_data(self, user_id: str) -> None:
        """Delete all records, aggregates and recommendations of a user."""

    # --- Platform aggregates ---

    @abstractmethod
    def upsert_aggregate(self, user_id: str, aggregate: PlatformAggregate) -> PlatformAggregate:
        """Replace the (user, platform) aggregate wholesale."""

    @abstractmethod
    def get_aggregates(self, user_id: str) -> List[PlatformAggregate]:
        ...

    # --- Credentials ---

    @abstractmethod
    def save_credential(self, user_id: str, platform: str, handle: str) -> PlatformCredential:
        """Insert or replace the handle stored for (user, platform)."""

    @abstractmethod
    def get_credentials(self, user_id: str) -> List[PlatformCredential]:
        ...

    @abstractmethod
    def mark_synced(self, user_id: str, platform: str) -> None:
        ...

    @abstractmethod
    def delete_credential(self, user_id: str, credential_id: int) -> bool:
        ...

    # --- Recommendations ---

    @abstractmethod
    def get_recommendations(self, user_id: str) -> List[Recommendation]:
        ...

    @abstractmethod
    def replace_recommendations(
        self, user_id: str, recommendations: List[Recommendation]
    ) -> List[Recommendation]:
        """Atomically swap the user's full recommendation set."""

    def close(self) -> None:
        """Release underlying resources."""
