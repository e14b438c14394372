# codetrack/problem_manager.py

import csv
import io
from typing import Iterable, List, Optional

from codetrack.categories import normalize_category
from codetrack.models import (
    DIFFICULTIES,
    PLATFORMS,
    SYNC_PLATFORMS,
    PlatformCredential,
    ProblemRecord,
    normalize_difficulty,
    problem_url,
)
from codetrack.storage import Storage

CSV_HEADER = ['id', 'name', 'platform', 'difficulty', 'category', 'url', 'solved']


class ProblemManager:
    """Manual problem entry, edits, deletions and platform handle management."""

    def __init__(self, storage: Storage):
        self.storage = storage

    @staticmethod
    def _check_platform(platform: str, allowed: Iterable[str] = PLATFORMS) -> str:
        key = str(platform or '').strip().lower()
        if key not in allowed:
            raise ValueError(f"Unknown platform '{platform}'")
        return key

    @staticmethod
    def _check_difficulty(difficulty: Optional[str], required: bool = False) -> Optional[str]:
        if difficulty is None or not str(difficulty).strip():
            if required:
                raise ValueError(f"Difficulty must be one of: {', '.join(DIFFICULTIES)}")
            return None
        value = normalize_difficulty(difficulty)
        if value is None:
            raise ValueError(f"Invalid difficulty '{difficulty}'")
        return value

    @staticmethod
    def _clean_tags(tags: Optional[Iterable]) -> List[str]:
        clean = []
        for tag in tags or []:
            if not isinstance(tag, str):
                raise ValueError(f"Invalid tag {tag!r}: tags must be strings")
            if tag.strip():
                clean.append(tag.strip())
        return clean

    # --- Problem CRUD ---

    def add_problem(
        self,
        user_id: str,
        name: str,
        platform: str,
        difficulty: str = None,
        category: str = None,
        tags: List[str] = None,
        url: str = None,
    ) -> ProblemRecord:
        """Add a manually tracked problem. Returns the stored record."""
        clean_name = str(name or '').strip()
        if not clean_name:
            raise ValueError("Problem name is required")
        key = self._check_platform(platform)
        record = ProblemRecord(
            name=clean_name,
            platform=key,
            difficulty=self._check_difficulty(difficulty),
            category=normalize_category(category),
            tags=self._clean_tags(tags),
            url=url or problem_url(key, clean_name),
        )
        return self.storage.create_record(user_id, record)

    def list_problems(self, user_id: str) -> List[ProblemRecord]:
        return self.storage.get_user_records(user_id)

    def recent_activity(self, user_id: str, limit: int = 10) -> List[ProblemRecord]:
        return self.storage.get_recent_records(user_id, max(1, limit))

    def set_difficulty(self, user_id: str, record_id: int, difficulty: str) -> ProblemRecord:
        value = self._check_difficulty(difficulty, required=True)
        updated = self.storage.update_record_difficulty(user_id, record_id, value)
        if updated is None:
            raise LookupError(f"Problem {record_id} not found")
        return updated

    def set_category(self, user_id: str, record_id: int, category: str) -> ProblemRecord:
        value = normalize_category(category)
        if value is None:
            raise ValueError("Category is required")
        updated = self.storage.update_record_category(user_id, record_id, value)
        if updated is None:
            raise LookupError(f"Problem {record_id} not found")
        return updated

    def delete_problem(self, user_id: str, record_id: int) -> None:
        if not self.storage.delete_record(user_id, record_id):
            raise LookupError(f"Problem {record_id} not found")

    def delete_platform(self, user_id: str, platform: str) -> int:
        return self.storage.delete_platform_data(user_id, self._check_platform(platform))

    def clear_all(self, user_id: str) -> None:
        self.storage.clear_user_data(user_id)

    # --- Platform handles ---

    def save_credential(self, user_id: str, platform: str, handle: str) -> PlatformCredential:
        key = self._check_platform(platform, SYNC_PLATFORMS)
        clean_handle = str(handle or '').strip()
        if not clean_handle:
            raise ValueError("Handle is required")
        return self.storage.save_credential(user_id, key, clean_handle)

    def list_credentials(self, user_id: str) -> List[PlatformCredential]:
        return self.storage.get_credentials(user_id)

    def delete_credential(self, user_id: str, credential_id: int) -> None:
        if not self.storage.delete_credential(user_id, credential_id):
            raise LookupError(f"Credential {credential_id} not found")

    # --- Export ---

    def export_csv(self, user_id: str) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator='\n')
        writer.writerow(CSV_HEADER)
        for record in self.storage.get_user_records(user_id):
            writer.writerow([
                record.id,
                record.name,
                record.platform,
                record.difficulty or '',
                record.category or '',
                record.url or '',
                record.solved_at or '',
            ])
        return buffer.getvalue()
