# codetrack/models.py

from __future__ import annotations

import json
import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

PLATFORMS = ("leetcode", "gfg", "tuf", "other")
SYNC_PLATFORMS = ("leetcode", "gfg", "tuf")
DIFFICULTIES = ("easy", "medium", "hard")
SOLVED_STATUSES = ("solved", "accepted", "ac")

PLATFORM_LABELS = {
    "leetcode": "LeetCode",
    "gfg": "GeeksforGeeks",
    "tuf": "TUF+",
    "other": "Other",
}

FETCH_OK = "ok"
FETCH_NOT_FOUND = "not_found"
FETCH_ERROR = "error"


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_difficulty(value: Any) -> Optional[str]:
    """Return 'easy' / 'medium' / 'hard' or None for anything else."""
    text = str(value or "").strip().lower()
    return text if text in DIFFICULTIES else None


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (name or "").lower())
    return slug.strip("-")


def problem_url(platform: str, name: str) -> Optional[str]:
    """Build the canonical problem URL for platforms with a known URL scheme."""
    slug = slugify(name)
    if not slug:
        return None
    if platform == "leetcode":
        return f"https://leetcode.com/problems/{slug}/"
    if platform == "gfg":
        return f"https://practice.geeksforgeeks.org/problems/{slug}/"
    return None


def dedup_key(platform: str, name: str) -> tuple:
    return (platform, (name or "").strip().lower())


@dataclass
class ProblemRecord:
    """A single solved problem owned by one user."""

    name: str
    platform: str
    difficulty: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    url: Optional[str] = None
    solved_at: Optional[str] = None
    id: Optional[int] = None
    user_id: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def dedup_key(self) -> tuple:
        return dedup_key(self.platform, self.name)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ProblemRecord":
        raw_tags = row.get("tags")
        if isinstance(raw_tags, str):
            try:
                tags = json.loads(raw_tags) or []
            except json.JSONDecodeError:
                tags = []
        else:
            tags = list(raw_tags or [])
        return cls(
            id=row.get("id"),
            user_id=row.get("user_id"),
            name=row.get("name") or "",
            platform=row.get("platform") or "",
            difficulty=row.get("difficulty"),
            category=row.get("category"),
            tags=tags,
            url=row.get("url"),
            solved_at=row.get("solved_at"),
            created_at=row.get("created_at"),
        )


@dataclass
class PlatformAggregate:
    """Lifetime solved counters as declared by the platform itself."""

    platform: str
    total_solved: int = 0
    easy_solved: int = 0
    medium_solved: int = 0
    hard_solved: int = 0
    last_updated: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PlatformAggregate":
        return cls(
            platform=row["platform"],
            total_solved=row.get("total_solved") or 0,
            easy_solved=row.get("easy_solved") or 0,
            medium_solved=row.get("medium_solved") or 0,
            hard_solved=row.get("hard_solved") or 0,
            last_updated=row.get("last_updated"),
        )


@dataclass
class PlatformCredential:
    platform: str
    handle: str
    id: Optional[int] = None
    user_id: Optional[str] = None
    last_sync_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PlatformCredential":
        return cls(
            id=row.get("id"),
            user_id=row.get("user_id"),
            platform=row["platform"],
            handle=row["handle"],
            last_sync_at=row.get("last_sync_at"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


@dataclass
class Recommendation:
    problem_name: str
    platform: str
    category: str
    difficulty: Optional[str] = None
    reason: Optional[str] = None
    url: Optional[str] = None
    score: int = 0
    id: Optional[int] = None
    user_id: Optional[str] = None
    created_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Recommendation":
        return cls(
            id=row.get("id"),
            user_id=row.get("user_id"),
            problem_name=row["problem_name"],
            platform=row["platform"],
            category=row.get("category") or "",
            difficulty=row.get("difficulty"),
            reason=row.get("reason"),
            url=row.get("url"),
            score=row.get("score") or 0,
            created_at=row.get("created_at"),
        )

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> Optional["Recommendation"]:
        """Build from a generator payload, accepting camelCase keys. Returns None if unusable."""
        if not isinstance(payload, dict):
            return None
        name = str(payload.get("problem_name") or payload.get("problemName") or "").strip()
        platform = str(payload.get("platform") or "").strip().lower()
        if not name or not platform:
            return None
        try:
            score = int(float(payload.get("score") or 0))
        except (TypeError, ValueError):
            score = 0
        return cls(
            problem_name=name,
            platform=platform,
            category=str(payload.get("category") or "").strip().lower(),
            difficulty=normalize_difficulty(payload.get("difficulty")),
            reason=payload.get("reason") or None,
            url=payload.get("url") or None,
            score=max(0, min(score, 100)),
        )


@dataclass
class RecentItem:
    """One recently referenced problem reported by a platform client."""

    title: str
    status: str
    timestamp: Optional[str] = None
    difficulty: Optional[str] = None
    url: Optional[str] = None

    @property
    def is_solved(self) -> bool:
        return (self.status or "").strip().lower() in SOLVED_STATUSES


@dataclass
class ProfileSummary:
    total_solved: int = 0
    easy_solved: int = 0
    medium_solved: int = 0
    hard_solved: int = 0
    recent_items: List[RecentItem] = field(default_factory=list)

    def to_aggregate(self, platform: str) -> PlatformAggregate:
        return PlatformAggregate(
            platform=platform,
            total_solved=self.total_solved,
            easy_solved=self.easy_solved,
            medium_solved=self.medium_solved,
            hard_solved=self.hard_solved,
        )


@dataclass
class FetchResult:
    """Outcome of one platform fetch: ok with a profile, not found, or error."""

    platform: str
    handle: str
    status: str
    profile: Optional[ProfileSummary] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, platform: str, handle: str, profile: ProfileSummary) -> "FetchResult":
        return cls(platform=platform, handle=handle, status=FETCH_OK, profile=profile)

    @classmethod
    def not_found(cls, platform: str, handle: str, error: Optional[str] = None) -> "FetchResult":
        return cls(
            platform=platform,
            handle=handle,
            status=FETCH_NOT_FOUND,
            error=error or f"profile '{handle}' not found",
        )

    @classmethod
    def failed(cls, platform: str, handle: str, error: str) -> "FetchResult":
        return cls(platform=platform, handle=handle, status=FETCH_ERROR, error=error)

    @property
    def found(self) -> bool:
        return self.status == FETCH_OK and self.profile is not None
