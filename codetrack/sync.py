from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from codetrack.models import (
    PLATFORM_LABELS,
    SYNC_PLATFORMS,
    FetchResult,
    ProblemRecord,
    RecentItem,
    dedup_key,
    normalize_difficulty,
    problem_url,
)
from codetrack.storage import Storage

LOGGER = logging.getLogger(__name__)


class SyncValidationError(ValueError):
    """Raised for a malformed sync request, before any platform is contacted."""


@dataclass
class PlatformSyncResult:
    platform: str
    problems_added: int
    total_solved: int


@dataclass
class SyncReport:
    success: bool
    message: str
    synced: List[PlatformSyncResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_default_clients(settings=None) -> Dict[str, Any]:
    """Real platform clients keyed by platform."""
    from codetrack.api_client import LeetCodeClient
    from codetrack.scraper import GFGClient, TUFClient

    headless = True if settings is None else settings.headless
    browser_kwargs = {"headless": headless}
    if settings is not None:
        browser_kwargs["navigation_timeout_ms"] = settings.navigation_timeout_ms
        browser_kwargs["marker_timeout_ms"] = settings.marker_timeout_ms
    return {
        "leetcode": LeetCodeClient(),
        "gfg": GFGClient(**browser_kwargs),
        "tuf": TUFClient(**browser_kwargs),
    }


class SyncService:
    """Pull platform profiles and merge them into a user's stored data."""

    def __init__(self, storage: Storage, clients: Dict[str, Any]):
        self.storage = storage
        self.clients = clients

    @staticmethod
    def clean_handles(handles: Optional[Dict[str, Any]]) -> Dict[str, str]:
        """Drop blank handles; reject unknown platforms and empty requests."""
        if not isinstance(handles, dict):
            raise SyncValidationError("platforms must be a mapping of platform to handle")
        cleaned: Dict[str, str] = {}
        for platform, handle in handles.items():
            key = str(platform or "").strip().lower()
            if key not in SYNC_PLATFORMS:
                raise SyncValidationError(
                    f"Unsupported platform '{platform}' (expected one of: {', '.join(SYNC_PLATFORMS)})"
                )
            value = str(handle or "").strip()
            if value:
                cleaned[key] = value
        if not cleaned:
            raise SyncValidationError("No platform handles supplied")
        return cleaned

    def sync_user_data(self, user_id: str, handles: Dict[str, Any]) -> SyncReport:
        """
        Sync every requested platform for a user.

        One platform failing never stops the others; its error is collected
        into the report instead.
        """
        requested = self.clean_handles(handles)
        for platform in requested:
            if platform not in self.clients:
                raise SyncValidationError(f"No client configured for platform '{platform}'")

        existing = {record.dedup_key for record in self.storage.get_user_records(user_id)}
        synced: List[PlatformSyncResult] = []
        errors: List[str] = []

        for platform, handle in requested.items():
            label = PLATFORM_LABELS.get(platform, platform)
            try:
                result: FetchResult = self.clients[platform].fetch_profile(handle)
            except Exception as exc:
                LOGGER.exception("%s fetch raised for %s", label, handle)
                errors.append(f"{platform}: sync failed ({exc})")
                continue

            if not result.found:
                errors.append(f"{platform}: {result.error or 'profile not found'}")
                continue

            profile = result.profile
            added = self._store_new_items(user_id, platform, profile.recent_items, existing)
            try:
                self.storage.upsert_aggregate(user_id, profile.to_aggregate(platform))
            except Exception as exc:
                LOGGER.error("Failed to save %s aggregate for user %s: %s", label, user_id, exc)
                errors.append(f"{platform}: failed to save stats ({exc})")
                continue

            synced.append(PlatformSyncResult(
                platform=platform,
                problems_added=added,
                total_solved=profile.total_solved,
            ))
            LOGGER.info("%s synced for user %s: %s new problems, %s total", label, user_id, added, profile.total_solved)

        total_new = sum(item.problems_added for item in synced)
        return SyncReport(
            success=len(synced) > 0,
            message=f"Sync complete. Added {total_new} new problems to list.",
            synced=synced,
            errors=errors,
        )

    def sync_saved_credentials(self, user_id: str) -> SyncReport:
        """Sync using the handles stored for the user and stamp last_sync_at on success."""
        handles = {c.platform: c.handle for c in self.storage.get_credentials(user_id)}
        report = self.sync_user_data(user_id, handles)
        for item in report.synced:
            self.storage.mark_synced(user_id, item.platform)
        return report

    def _store_new_items(
        self,
        user_id: str,
        platform: str,
        items: List[RecentItem],
        existing: set,
    ) -> int:
        added = 0
        for item in items:
            if not item.is_solved:
                continue
            name = (item.title or "").strip()
            key = dedup_key(platform, name)
            if not name or key in existing:
                continue
            record = ProblemRecord(
                name=name,
                platform=platform,
                difficulty=normalize_difficulty(item.difficulty),
                category=None,
                tags=[],
                url=item.url or problem_url(platform, name),
                solved_at=item.timestamp,
            )
            try:
                self.storage.create_record(user_id, record)
            except Exception as exc:
                LOGGER.error("Error saving problem %r: %s", name, exc)
                continue
            existing.add(key)
            added += 1
        return added
