# codetrack/recommender.py

import json
import logging
import socket
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from codetrack.models import ProblemRecord, Recommendation
from codetrack.stats import StatsAggregator
from codetrack.storage import Storage

LOGGER = logging.getLogger(__name__)

PROMPT_TEMPLATE = """You are an expert coding interview coach. Based on the user's stats and recent activity, recommend 5 problems to solve next.

User Stats:
{stats}

Recent Activity:
{recent}

Return the response ONLY as a JSON array of objects with this structure:
[
  {{
    "problemName": "string",
    "platform": "leetcode" | "gfg" | "tuf",
    "difficulty": "easy" | "medium" | "hard",
    "category": "string",
    "reason": "string (short explanation why this is recommended)",
    "url": "string",
    "score": "number (between 0 and 100)"
  }}
]

Do not include markdown formatting or code blocks. Just the raw JSON array.
"""


def strip_code_fences(text: str) -> str:
    return (text or "").replace("```json", "").replace("```", "").strip()


def parse_recommendations(text: str) -> List[Recommendation]:
    """Parse a model reply into recommendations; unusable entries are dropped."""
    try:
        payload = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as exc:
        LOGGER.error("Failed to parse recommendation response: %s", exc)
        return []
    if not isinstance(payload, list):
        LOGGER.error("Recommendation response was not a JSON array")
        return []
    parsed = (Recommendation.from_payload(item) for item in payload)
    return [item for item in parsed if item is not None]


class BaseRecommender(ABC):
    """Produces next-problem suggestions from a stats snapshot and recent records."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def generate(self, stats: Dict[str, Any], recent_records: List[ProblemRecord]) -> List[Recommendation]:
        """Return suggestions, or an empty list when none could be produced."""
        ...


class GeminiRecommender(BaseRecommender):
    """Google Gemini generateContent over plain HTTPS."""

    API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

    def __init__(self, api_key: Optional[str], model: str = "gemini-2.5-flash", timeout_seconds: int = 30):
        self.api_key = api_key
        self.model = model
        self.timeout_seconds = timeout_seconds

    @property
    def name(self) -> str:
        return "gemini"

    def build_prompt(self, stats: Dict[str, Any], recent_records: List[ProblemRecord]) -> str:
        recent = [
            {
                'name': r.name,
                'platform': r.platform,
                'difficulty': r.difficulty,
                'category': r.category,
            }
            for r in recent_records
        ]
        return PROMPT_TEMPLATE.format(
            stats=json.dumps(stats, indent=2),
            recent=json.dumps(recent, indent=2),
        )

    def _post_json(self, url: str, body: Dict[str, Any]) -> Dict[str, Any]:
        req = Request(
            url,
            data=json.dumps(body).encode("utf-8"),
            headers={"Content-Type": "application/json", "x-goog-api-key": self.api_key or ""},
            method="POST",
        )
        with urlopen(req, timeout=self.timeout_seconds) as resp:
            return json.loads(resp.read().decode("utf-8"))

    @staticmethod
    def _response_text(payload: Dict[str, Any]) -> str:
        candidates = payload.get("candidates") or []
        if not candidates:
            return ""
        parts = ((candidates[0] or {}).get("content") or {}).get("parts") or []
        return "".join(str(part.get("text") or "") for part in parts if isinstance(part, dict))

    def generate(self, stats: Dict[str, Any], recent_records: List[ProblemRecord]) -> List[Recommendation]:
        if not self.api_key:
            LOGGER.warning("GEMINI_API_KEY is not set, skipping recommendations")
            return []

        body = {"contents": [{"parts": [{"text": self.build_prompt(stats, recent_records)}]}]}
        url = self.API_URL.format(model=quote(self.model, safe=""))
        try:
            payload = self._post_json(url, body)
        except HTTPError as exc:
            LOGGER.error("Gemini request failed: HTTP %s", exc.code)
            return []
        except (URLError, socket.timeout, TimeoutError) as exc:
            LOGGER.error("Gemini request failed: %s", exc)
            return []
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            LOGGER.error("Gemini returned a malformed response: %s", exc)
            return []
        except Exception:
            LOGGER.exception("Unexpected error generating recommendations")
            return []

        if not isinstance(payload, dict):
            return []
        return parse_recommendations(self._response_text(payload))


class RecommendationService:
    """Regenerates and stores a user's recommendations."""

    def __init__(self, storage: Storage, aggregator: StatsAggregator, recommender: BaseRecommender):
        self.storage = storage
        self.aggregator = aggregator
        self.recommender = recommender

    def refresh(self, user_id: str, recent_limit: int = 5) -> List[Recommendation]:
        """
        Generate fresh suggestions and store them.

        An empty result leaves the previously stored list in place. Returns
        whatever is stored afterwards.
        """
        stats = self.aggregator.get_stats(user_id)
        recent = self.storage.get_recent_records(user_id, recent_limit)
        generated = self.recommender.generate(stats, recent)
        if generated:
            self.storage.replace_recommendations(user_id, generated)
            LOGGER.info("Stored %s %s recommendations for user %s", len(generated), self.recommender.name, user_id)
        else:
            LOGGER.info("No recommendations generated for user %s, keeping previous list", user_id)
        return self.storage.get_recommendations(user_id)
