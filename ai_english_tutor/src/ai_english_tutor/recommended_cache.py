"""
Recommended Content Cache

Day-bounded local cache of the curated News/Blog rows, plus the date-keyed
cache of LLM-generated daily recommendations.

Stored entry format (local store key `recommendedContentCache`):
    {"news": [...rows], "blogs": [...rows], "lastUpdated": "<ISO timestamp>"}
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ai_english_tutor.content_repository import ContentRepository
from ai_english_tutor.exceptions import PersistenceError, RecommendedContentError, TutorError
from ai_english_tutor.local_store import DAILY_RECOMMENDATIONS_PREFIX, RECOMMENDED_CACHE_KEY, LocalStore
from ai_english_tutor.models import Article, RecommendedArticle

logger = logging.getLogger(__name__)

CACHE_DURATION = timedelta(days=1)
CATEGORIES = {"news": "News", "blogs": "Blog"}

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DeliveryMode(Enum):
    """Which `is_pushed_to_client` rows a refresh pulls."""
    PUSHED = "pushed"            # Rows already released to clients
    UNDELIVERED = "undelivered"  # Rows not yet shown; flagged delivered after caching


@dataclass
class RecommendedCacheEntry:
    news: List[RecommendedArticle] = field(default_factory=list)
    blogs: List[RecommendedArticle] = field(default_factory=list)
    last_updated: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecommendedCacheEntry":
        last_updated = datetime.fromisoformat(data["lastUpdated"])
        if last_updated.tzinfo is None:
            last_updated = last_updated.replace(tzinfo=timezone.utc)
        return cls(
            news=[RecommendedArticle.from_dict(row) for row in data.get("news") or []],
            blogs=[RecommendedArticle.from_dict(row) for row in data.get("blogs") or []],
            last_updated=last_updated,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "news": [row.to_dict() for row in self.news],
            "blogs": [row.to_dict() for row in self.blogs],
            "lastUpdated": self.last_updated.isoformat() if self.last_updated else None,
        }

    def all_items(self) -> List[RecommendedArticle]:
        return self.news + self.blogs


@dataclass
class DeliveryReport:
    marked: int = 0
    failed: int = 0


class RecommendedContentCache:
    """
    Refresh-on-expiry cache of recommended rows.

    Only age makes an entry stale; a failed refresh raises
    RecommendedContentError and never falls back to an old entry.
    """

    def __init__(
        self,
        repository: ContentRepository,
        store: LocalStore,
        limit: int = 3,
        mode: DeliveryMode = DeliveryMode.PUSHED,
        clock: Clock = utc_now
    ):
        self.repository = repository
        self.store = store
        self.limit = limit
        self.mode = mode
        self.clock = clock

    def _load_entry(self) -> Optional[RecommendedCacheEntry]:
        raw = self.store.get(RECOMMENDED_CACHE_KEY)
        if raw is None:
            return None
        try:
            return RecommendedCacheEntry.from_dict(raw)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.error(f"❌ [RecommendedCache] Error checking cache validity: {e}")
            return None

    def is_valid(self) -> bool:
        """True iff an entry exists and is less than one day old."""
        entry = self._load_entry()
        if entry is None or entry.last_updated is None:
            return False
        return self.clock() - entry.last_updated < CACHE_DURATION

    def cached(self) -> Optional[RecommendedCacheEntry]:
        """The stored entry if still valid, else None. Never fetches."""
        if not self.is_valid():
            return None
        return self._load_entry()

    async def get(self) -> RecommendedCacheEntry:
        """Cached entry if valid, otherwise a fresh fetch."""
        entry = self.cached()
        if entry is not None:
            logger.debug("♻️ [RecommendedCache] Using cached recommended content")
            return entry
        return await self.fetch_and_cache()

    async def fetch_and_cache(self) -> RecommendedCacheEntry:
        """
        Query both categories, store the result with a fresh timestamp.

        Both queries run even if the first fails; any failure raises and
        leaves the stored entry untouched.
        """
        pushed = self.mode is DeliveryMode.PUSHED
        results: Dict[str, List[RecommendedArticle]] = {}
        errors: Dict[str, TutorError] = {}

        for key, category in CATEGORIES.items():
            try:
                results[key] = await self.repository.fetch_recommended(category, pushed=pushed, limit=self.limit)
            except TutorError as e:
                logger.error(f"❌ [RecommendedCache] {category} fetch failed: {e}")
                errors[key] = e

        if errors:
            detail = "; ".join(str(e) for e in errors.values())
            raise RecommendedContentError(f"Error fetching recommended content: {detail}") from next(iter(errors.values()))

        entry = RecommendedCacheEntry(news=results["news"], blogs=results["blogs"], last_updated=self.clock())
        self.store.set(RECOMMENDED_CACHE_KEY, entry.to_dict())
        logger.info(f"✅ [RecommendedCache] Cached {len(entry.news)} news, {len(entry.blogs)} blogs")

        if self.mode is DeliveryMode.UNDELIVERED:
            await self.mark_delivered(entry.all_items())
        return entry

    async def mark_delivered(self, items: List[RecommendedArticle]) -> DeliveryReport:
        """Flag each row delivered; one independent update per row."""
        report = DeliveryReport()
        pushed_at = self.clock().isoformat()
        for item in items:
            try:
                await self.repository.mark_recommended_delivered(item.id, pushed_at)
                report.marked += 1
            except PersistenceError as e:
                logger.warning(f"⚠️ [RecommendedCache] Could not mark {item.id} delivered: {e}")
                report.failed += 1
        logger.info(f"📬 [RecommendedCache] Marked {report.marked} delivered, {report.failed} failed")
        return report


class DailyRecommendations:
    """One LLM-generated recommendation list per calendar day."""

    def __init__(self, ai, store: LocalStore, clock: Clock = utc_now):
        self.ai = ai
        self.store = store
        self.clock = clock

    def _key(self) -> str:
        return f"{DAILY_RECOMMENDATIONS_PREFIX}{self.clock().date().isoformat()}"

    async def get(self, level: str) -> List[Article]:
        key = self._key()
        cached = self.store.get(key)
        if cached is not None:
            return [Article.from_dict(item) for item in cached]

        articles = await self.ai.generate_recommendations(level)
        if not articles:
            # Nothing cached so a later call retries today
            return []

        for stale in self.store.keys(DAILY_RECOMMENDATIONS_PREFIX):
            if stale != key:
                self.store.remove(stale)
        self.store.set(key, [article.to_dict() for article in articles])
        logger.info(f"📰 [DailyRecommendations] Cached {len(articles)} recommendations for {key}")
        return articles
