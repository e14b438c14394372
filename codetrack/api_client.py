from __future__ import annotations

import json
import logging
import socket
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from codetrack.models import FetchResult, ProfileSummary, RecentItem

LOGGER = logging.getLogger(__name__)


class LeetCodeClient:
    """Public LeetCode GraphQL client: lifetime counters plus recent submissions."""

    PLATFORM = "leetcode"
    GRAPHQL_URL = "https://leetcode.com/graphql"
    HEADERS = {
        "Content-Type": "application/json",
        "User-Agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/120.0.0.0 Safari/537.36"
        ),
        "Accept": "application/json",
        "Referer": "https://leetcode.com/",
    }
    PROFILE_QUERY = """
        query getUserProfile($username: String!, $limit: Int!) {
          matchedUser(username: $username) {
            username
            submitStats: submitStatsGlobal {
              acSubmissionNum {
                difficulty
                count
              }
            }
          }
          recentSubmissionList(username: $username, limit: $limit) {
            title
            titleSlug
            timestamp
            statusDisplay
            lang
          }
        }
    """

    def __init__(self, timeout_seconds: int = 20, recent_limit: int = 50):
        self.timeout_seconds = timeout_seconds
        self.recent_limit = recent_limit

    def _post_json(self, url: str, body: Dict[str, Any]) -> Dict[str, Any]:
        data = json.dumps(body).encode("utf-8")
        req = Request(url, data=data, headers=self.HEADERS, method="POST")
        with urlopen(req, timeout=self.timeout_seconds) as resp:
            return json.loads(resp.read().decode("utf-8"))

    @staticmethod
    def _safe_int(value: Any, default: int = 0) -> int:
        if value is None:
            return default
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    @classmethod
    def _parse_timestamp(cls, value: Any) -> Optional[str]:
        seconds = cls._safe_int(value, -1)
        if seconds < 0:
            return None
        return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()

    def parse_profile(self, payload: Dict[str, Any]) -> Optional[ProfileSummary]:
        """Turn a GraphQL response into a ProfileSummary, or None if the user is absent."""
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            return None
        user = data.get("matchedUser")
        if not isinstance(user, dict):
            return None

        stats = (user.get("submitStats") or {}).get("acSubmissionNum") or []
        counts = {
            str(row.get("difficulty")): self._safe_int(row.get("count"))
            for row in stats
            if isinstance(row, dict)
        }

        recent: List[RecentItem] = []
        for sub in data.get("recentSubmissionList") or []:
            if not isinstance(sub, dict) or not sub.get("title"):
                continue
            # The recent list does not carry difficulty; it stays unset.
            recent.append(RecentItem(
                title=str(sub["title"]),
                status=str(sub.get("statusDisplay") or ""),
                timestamp=self._parse_timestamp(sub.get("timestamp")),
                difficulty=None,
            ))

        return ProfileSummary(
            total_solved=counts.get("All", 0),
            easy_solved=counts.get("Easy", 0),
            medium_solved=counts.get("Medium", 0),
            hard_solved=counts.get("Hard", 0),
            recent_items=recent,
        )

    def fetch_profile(self, handle: str) -> FetchResult:
        body = {
            "query": self.PROFILE_QUERY,
            "variables": {"username": handle, "limit": self.recent_limit},
        }
        LOGGER.info("Fetching LeetCode data for: %s", handle)
        try:
            payload = self._post_json(self.GRAPHQL_URL, body)
        except HTTPError as exc:
            LOGGER.error("LeetCode request failed for %s: HTTP %s", handle, exc.code)
            return FetchResult.failed(self.PLATFORM, handle, f"request failed (HTTP {exc.code})")
        except (URLError, socket.timeout, TimeoutError) as exc:
            LOGGER.error("LeetCode request failed for %s: %s", handle, exc)
            return FetchResult.failed(self.PLATFORM, handle, f"request failed ({exc})")
        except (json.JSONDecodeError, UnicodeDecodeError):
            LOGGER.error("LeetCode returned a malformed response for %s", handle)
            return FetchResult.not_found(self.PLATFORM, handle)
        except Exception as exc:
            LOGGER.exception("Unexpected LeetCode client error for %s", handle)
            return FetchResult.failed(self.PLATFORM, handle, f"request failed ({exc})")

        if isinstance(payload, dict) and payload.get("errors"):
            LOGGER.warning("LeetCode API errors for %s: %s", handle, payload["errors"])

        profile = self.parse_profile(payload)
        if profile is None:
            LOGGER.warning("LeetCode user not found: %s", handle)
            return FetchResult.not_found(self.PLATFORM, handle)

        LOGGER.info(
            "LeetCode stats for %s: total %s (E:%s, M:%s, H:%s), %s recent submissions",
            handle,
            profile.total_solved,
            profile.easy_solved,
            profile.medium_solved,
            profile.hard_solved,
            len(profile.recent_items),
        )
        return FetchResult.ok(self.PLATFORM, handle, profile)
