"""
Content Repository

Supabase-backed persistence for generated articles, quiz attempts, essays and
curated recommended content. Every call is an independent request that can
fail on its own; failures surface as PersistenceError.
"""

import logging
from typing import Any, Dict, List

from ai_english_tutor.exceptions import ConfigurationError, PersistenceError
from ai_english_tutor.models import Essay, QuizAttempt, RecommendedArticle

logger = logging.getLogger(__name__)

QUIZ_HISTORY_COLUMNS = """
    id,
    score,
    total_questions,
    created_at,
    articles (
        id,
        title,
        content,
        type,
        level
    )
"""


class ContentRepository:
    """Query-style access to the hosted tables."""

    def __init__(self, supabase_client=None):
        """
        Initialize ContentRepository.

        Args:
            supabase_client: Supabase client instance (optional)
        """
        self.supabase = supabase_client
        self.use_supabase = supabase_client is not None

        if not self.use_supabase:
            logger.warning("⚠️ [ContentRepository] Supabase not configured - persistence disabled")

    def _require_client(self):
        if not self.use_supabase:
            raise ConfigurationError("Supabase is not configured")
        return self.supabase

    @staticmethod
    def _first_row(result, what: str) -> Dict[str, Any]:
        if not result.data:
            raise PersistenceError(f"Failed to create {what}")
        return result.data[0]

    # ==================== Reading ====================

    async def insert_article(self, title: str, content: List[str], level: str, article_type: str = "Generated") -> Dict[str, Any]:
        """Insert a generated article and return the stored row."""
        supabase = self._require_client()
        try:
            result = supabase.table('articles').insert({
                "title": title,
                "content": content,
                "type": article_type,
                "level": level,
            }).execute()
        except Exception as e:
            raise PersistenceError(f"Error inserting article: {e}") from e
        return self._first_row(result, "article")

    async def insert_quiz_attempt(
        self,
        user_id: str,
        article_id: str,
        score: int,
        total_questions: int,
        user_answers: Dict[int, int]
    ) -> Dict[str, Any]:
        """
        Insert one quiz attempt.

        Args:
            user_id: Auth user id
            article_id: Stored article row id
            score: Number of correct answers
            total_questions: Number of questions in the quiz
            user_answers: Question index -> selected option id

        Returns:
            The stored attempt row
        """
        supabase = self._require_client()
        try:
            result = supabase.table('user_quiz_attempts').insert({
                "user_id": user_id,
                "article_id": article_id,
                "score": score,
                "total_questions": total_questions,
                # JSON object keys are strings
                "user_answers": {str(k): v for k, v in user_answers.items()},
            }).execute()
        except Exception as e:
            raise PersistenceError(f"Error inserting quiz attempt: {e}") from e
        return self._first_row(result, "quiz attempt")

    async def get_quiz_history(self, user_id: str) -> List[QuizAttempt]:
        """Quiz attempts joined with their article, newest first."""
        supabase = self._require_client()
        try:
            result = supabase.table('user_quiz_attempts') \
                .select(QUIZ_HISTORY_COLUMNS) \
                .eq('user_id', user_id) \
                .order('created_at', desc=True) \
                .execute()
        except Exception as e:
            raise PersistenceError(f"Error loading quiz history: {e}") from e
        return [QuizAttempt.from_dict(row) for row in result.data or []]

    # ==================== Writing ====================

    async def insert_essay(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Append one essay row. No update/merge with earlier saves."""
        supabase = self._require_client()
        try:
            result = supabase.table('essays').insert([record]).execute()
        except Exception as e:
            raise PersistenceError(str(e)) from e
        return self._first_row(result, "essay")

    async def list_essays(self, user_id: str) -> List[Essay]:
        supabase = self._require_client()
        try:
            result = supabase.table('essays') \
                .select('*') \
                .eq('user_id', user_id) \
                .order('created_at', desc=True) \
                .execute()
        except Exception as e:
            raise PersistenceError(f"Error fetching essays: {e}") from e
        return [Essay.from_dict(row) for row in result.data or []]

    # ==================== Recommended content ====================

    async def fetch_recommended(self, category: str, pushed: bool, limit: int) -> List[RecommendedArticle]:
        """
        Most recently pulled recommended rows of one category.

        Args:
            category: "News" or "Blog"
            pushed: Value of the `is_pushed_to_client` filter
            limit: Maximum number of rows

        Returns:
            Rows ordered by `pulled_at` descending
        """
        supabase = self._require_client()
        try:
            result = supabase.table('recommended_articles') \
                .select('*') \
                .eq('type', category) \
                .eq('is_pushed_to_client', pushed) \
                .order('pulled_at', desc=True) \
                .limit(limit) \
                .execute()
        except Exception as e:
            raise PersistenceError(f"Error fetching {category} recommendations: {e}") from e
        return [RecommendedArticle.from_dict(row) for row in result.data or []]

    async def mark_recommended_delivered(self, row_id: str, pushed_at: str) -> None:
        """Flag one recommended row as delivered to the client."""
        supabase = self._require_client()
        try:
            supabase.table('recommended_articles') \
                .update({"is_pushed_to_client": True, "pushed_at": pushed_at}) \
                .eq('id', row_id) \
                .execute()
        except Exception as e:
            raise PersistenceError(f"Error marking recommendation {row_id} delivered: {e}") from e
