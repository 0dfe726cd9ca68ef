"""
Tutor Application

Composition root: builds the collaborators once and owns the navigation
state, the open writing session, the reading coach, the chat and the
recommended-content caches for one client.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from ai_english_tutor.auth_service import AuthResult, AuthService
from ai_english_tutor.chat import ChatSession, display_name
from ai_english_tutor.config import Settings
from ai_english_tutor.content_repository import ContentRepository
from ai_english_tutor.exceptions import ConfigurationError, TutorError
from ai_english_tutor.llm_client import LLMClient
from ai_english_tutor.local_store import LocalStore
from ai_english_tutor.models import Article, Essay, QuizAttempt
from ai_english_tutor.navigation import NavigationController, NavigationState, ViewState
from ai_english_tutor.reading_coach import ReadingCoach, SubmitResult
from ai_english_tutor.recommended_cache import DailyRecommendations, DeliveryMode, RecommendedContentCache
from ai_english_tutor.tutor_ai import TutorAI
from ai_english_tutor.writing_pipeline import WritingPipeline

logger = logging.getLogger(__name__)


class TutorApp:
    """One client instance of the tutor."""

    def __init__(
        self,
        llm: LLMClient,
        store: LocalStore,
        auth: AuthService,
        repository: ContentRepository,
        settings: Optional[Settings] = None
    ):
        self.settings = settings or Settings()
        self.llm = llm
        self.store = store
        self.auth = auth
        self.repository = repository
        self.ai = TutorAI(llm)

        self.state = NavigationState()
        self.navigation = NavigationController(
            state=self.state,
            store=store,
            settle_timeout=self.settings.auth_settle_timeout,
        )
        self.navigation.add_listener(self._on_view_changed)

        try:
            mode = DeliveryMode(self.settings.recommended_delivery_mode)
        except ValueError:
            raise ConfigurationError(
                f"RECOMMENDED_DELIVERY_MODE must be one of: {', '.join(m.value for m in DeliveryMode)}"
            )
        self.recommended = RecommendedContentCache(repository, store, limit=self.settings.recommended_limit, mode=mode)
        self.daily_recommendations = DailyRecommendations(self.ai, store)
        self.reading = ReadingCoach(self.ai, repository, auth, store)
        self.writing = WritingPipeline(llm, repository, auth)
        self.chat: Optional[ChatSession] = None
        self.selected_article: Optional[Article] = None
        self._quiz_history: List[QuizAttempt] = []

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, supabase_client=None) -> "TutorApp":
        """
        Build the app from settings.

        Args:
            settings: Settings (read from the environment if None)
            supabase_client: Supabase client; auth and persistence are
                disabled when None
        """
        settings = settings or Settings.from_env()
        llm = LLMClient(
            api_key=settings.deepseek_api_key,
            base_url=settings.deepseek_base_url,
            model=settings.deepseek_model,
        )
        return cls(
            llm=llm,
            store=LocalStore(settings.local_store_path),
            auth=AuthService(supabase_client),
            repository=ContentRepository(supabase_client),
            settings=settings,
        )

    # ==================== Lifecycle ====================

    async def start(self) -> None:
        await self.navigation.start(self.auth)
        logger.info(f"🚀 [TutorApp] Started on '{self.state.current_view.value}'")

    def stop(self) -> None:
        self.navigation.stop()

    def _on_view_changed(self, old: ViewState, new: ViewState) -> None:
        if new is ViewState.WRITING_COACH and old is not ViewState.WRITING_COACH:
            # Each visit is a new editing session
            self.writing = WritingPipeline(self.llm, self.repository, self.auth)
        elif new is ViewState.CHAT and old is not ViewState.CHAT:
            self.chat = None

    # ==================== Navigation ====================

    def navigate(self, view: Union[ViewState, str]) -> ViewState:
        return self.navigation.navigate(ViewState(view) if isinstance(view, str) else view)

    def go_back(self) -> ViewState:
        return self.navigation.go_back()

    def open_article(self, article: Article) -> ViewState:
        self.selected_article = article
        return self.navigation.navigate(ViewState.ARTICLE_READER)

    # ==================== Auth ====================

    async def sign_in(self, email: str, password: str) -> AuthResult:
        result = await self.auth.sign_in(email, password)
        if result.success and result.session_started:
            await self.navigation.on_auth_success()
        return result

    async def sign_up(self, email: str, password: str) -> AuthResult:
        result = await self.auth.sign_up(email, password)
        if result.success and result.session_started:
            await self.navigation.on_auth_success()
        return result

    async def handle_auth_callback(
        self,
        code: Optional[str] = None,
        error_description: Optional[str] = None
    ) -> ViewState:
        """
        Finish an email-confirmation or PKCE redirect.

        Args:
            code: Authorization code to exchange for a session
            error_description: Error reported by the auth provider

        Returns:
            The view that became current (auth on any failure)
        """
        self.navigation.navigate(ViewState.AUTH_CALLBACK)

        if error_description:
            logger.error(f"❌ [TutorApp] Authentication error: {error_description}")
            return self.navigation.navigate(ViewState.AUTH)

        if code:
            result = await self.auth.exchange_code(code)
            if not result.success:
                return self.navigation.navigate(ViewState.AUTH)
            return await self.navigation.on_auth_success()

        # Confirmation links carry no code; the session is already established or not
        try:
            session = self.auth.get_current_session()
        except Exception as e:
            logger.error(f"❌ [TutorApp] Session check after callback failed: {e}")
            session = None

        if not session:
            return self.navigation.navigate(ViewState.AUTH)
        self.navigation.on_session_changed(session)
        return await self.navigation.on_auth_success()

    async def sign_out(self) -> None:
        await self.auth.sign_out()

    # ==================== Reading ====================

    async def submit_answer(self) -> Optional[SubmitResult]:
        """Advance the quiz; shows the analysis once the last question is submitted."""
        result = await self.reading.next_question()
        if result is not None:
            self.navigation.navigate(ViewState.QUIZ_ANALYSIS)
        return result

    async def new_lesson(self) -> ViewState:
        self.reading.new_lesson()
        await self.reading.load_lesson()
        return self.navigation.navigate(ViewState.READING_COACH)

    # ==================== Chat ====================

    async def open_chat(self) -> ChatSession:
        if self.chat is None:
            try:
                user = await self.auth.get_user()
            except TutorError as e:
                logger.warning(f"⚠️ [TutorApp] Could not load user for chat: {e}")
                user = None
            self.chat = ChatSession(self.ai, display_name(user))
        return self.chat

    # ==================== History ====================

    async def quiz_history(self) -> List[QuizAttempt]:
        user_id = await self._current_user_id()
        if not user_id:
            self._quiz_history = []
            return []
        try:
            self._quiz_history = await self.repository.get_quiz_history(user_id)
        except TutorError as e:
            logger.error(f"❌ [TutorApp] Error fetching history: {e}")
            self._quiz_history = []
        return self._quiz_history

    def read_again(self, attempt_id: str) -> Optional[ViewState]:
        """Open the article of a loaded history attempt in the reader."""
        for attempt in self._quiz_history:
            if attempt.id == attempt_id:
                return self.open_article(attempt.article)
        return None

    async def essay_history(self) -> List[Essay]:
        user_id = await self._current_user_id()
        if not user_id:
            return []
        try:
            return await self.repository.list_essays(user_id)
        except TutorError as e:
            logger.error(f"❌ [TutorApp] Error fetching essays: {e}")
            return []

    async def _current_user_id(self) -> Optional[str]:
        try:
            return await self.auth.get_user_id()
        except TutorError as e:
            logger.warning(f"⚠️ [TutorApp] Could not resolve user: {e}")
            return None

    def snapshot(self) -> Dict[str, Any]:
        data = self.navigation.snapshot()
        data["selected_article"] = self.selected_article.to_dict() if self.selected_article else None
        return data
