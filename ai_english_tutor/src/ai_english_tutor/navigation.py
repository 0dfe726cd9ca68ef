"""
Navigation Controller

Owns which screen is current, where the article reader returns to, the
pending post-auth redirect and whether a session is present. Protected views
are never entered without a session: the request is parked as a pending
redirect and the auth view is shown instead.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ai_english_tutor.local_store import LocalStore, PENDING_REDIRECT_KEY

logger = logging.getLogger(__name__)


class ViewState(Enum):
    """Screens of the client."""
    AUTH = "auth"
    AUTH_CALLBACK = "auth-callback"
    LOADING = "loading"
    HOME = "home"
    READING_COACH = "reading-coach"
    QUIZ_ANALYSIS = "quiz-analysis"
    RECOMMENDED_FEED = "recommended-feed"
    RECOMMENDED_CONTENT = "recommended-content"
    CHAT = "chat"
    ARTICLE_READER = "article-reader"
    HISTORY = "history"
    WRITING_COACH = "writing-coach"
    WRITING_HISTORY = "writing-history"


class SessionStatus(Enum):
    UNKNOWN = "unknown"
    PRESENT = "present"
    ABSENT = "absent"


PROTECTED_VIEWS = frozenset({ViewState.WRITING_COACH, ViewState.READING_COACH})

# Views that show the fixed bottom navigation bar
BOTTOM_NAV_VIEWS = frozenset({ViewState.HOME, ViewState.RECOMMENDED_FEED, ViewState.RECOMMENDED_CONTENT})

ViewListener = Callable[[ViewState, ViewState], None]


@dataclass
class NavigationState:
    """Navigation and session state for one client instance."""
    current_view: ViewState = ViewState.LOADING
    previous_view: ViewState = ViewState.HOME
    session_status: SessionStatus = SessionStatus.UNKNOWN
    session: Optional[Any] = None
    pending_redirect: Optional[ViewState] = None
    scroll_resets: int = 0  # Viewport returns to top on every navigation

    @property
    def has_session(self) -> bool:
        return self.session_status is SessionStatus.PRESENT

    @property
    def show_bottom_nav(self) -> bool:
        return self.current_view in BOTTOM_NAV_VIEWS


class NavigationController:
    """
    Drives NavigationState from navigation intents and session notifications.

    The state object is owned by the caller and mutated only through this
    controller.
    """

    def __init__(
        self,
        state: Optional[NavigationState] = None,
        store: Optional[LocalStore] = None,
        settle_timeout: float = 1.5
    ):
        """
        Initialize NavigationController.

        Args:
            state: State object to drive (a fresh one if None)
            store: Local store used to persist the pending redirect (optional)
            settle_timeout: Max seconds `on_auth_success` waits for the
                session notification before deciding where to go
        """
        self.state = state or NavigationState()
        self.store = store
        self.settle_timeout = settle_timeout
        self._session_observed = asyncio.Event()
        self._listeners: List[ViewListener] = []
        self._unsubscribe: Optional[Callable[[], None]] = None

        if self.state.pending_redirect is None and self.store is not None:
            self.state.pending_redirect = self._load_pending_redirect()
        if self.state.has_session:
            self._session_observed.set()

    # ==================== Listeners ====================

    def add_listener(self, listener: ViewListener) -> None:
        """Register `listener(old_view, new_view)` called after every navigation."""
        self._listeners.append(listener)

    # ==================== Session ====================

    async def start(self, auth) -> None:
        """
        Subscribe to session changes and probe the current session.

        A failing probe counts as "no session" unless a notification has
        already decided the status.
        """
        try:
            self._unsubscribe = auth.subscribe(self.on_session_changed)
        except Exception as e:
            logger.warning(f"⚠️ [Navigation] Could not subscribe to auth changes: {e}")

        try:
            session = auth.get_current_session()
        except Exception as e:
            logger.error(f"❌ [Navigation] Startup session check failed: {e}")
            if self.state.session_status is SessionStatus.UNKNOWN:
                self.on_session_changed(None)
            return

        self.on_session_changed(session)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def on_session_changed(self, session: Optional[Any]) -> None:
        """
        Record a session transition reported by the auth service.

        Only the first transition out of UNKNOWN routes unconditionally
        (auth or home). Afterwards a lost session only re-gates a protected
        view that is currently shown.
        """
        was_unknown = self.state.session_status is SessionStatus.UNKNOWN
        self.state.session = session
        self.state.session_status = SessionStatus.PRESENT if session else SessionStatus.ABSENT

        if session:
            self._session_observed.set()
        else:
            self._session_observed.clear()

        logger.info(f"🔐 [Navigation] Session {self.state.session_status.value}")

        if was_unknown:
            self.navigate(ViewState.HOME if session else ViewState.AUTH)
        elif session is None and self.state.current_view in PROTECTED_VIEWS:
            self.navigate(self.state.current_view)

    async def on_auth_success(self) -> ViewState:
        """
        Finish the auth flow: wait for the session notification, then go to
        the pending redirect (consumed once) or home.
        """
        if not self.state.has_session:
            try:
                await asyncio.wait_for(self._session_observed.wait(), timeout=self.settle_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    f"⚠️ [Navigation] No session notification within {self.settle_timeout:.1f}s after auth"
                )

        target = self._consume_pending_redirect()
        return self.navigate(target or ViewState.HOME)

    # ==================== Navigation ====================

    def navigate(self, target: ViewState) -> ViewState:
        """
        Switch to `target`, applying the auth gate.

        Returns:
            The view that actually became current
        """
        if target in PROTECTED_VIEWS and not self.state.has_session:
            logger.info(f"🔒 [Navigation] '{target.value}' requires a session - redirecting to auth")
            self._set_pending_redirect(target)
            target = ViewState.AUTH

        # Keep the launching screen; reader-to-reader keeps the original one
        if target is ViewState.ARTICLE_READER and self.state.current_view is not ViewState.ARTICLE_READER:
            self.state.previous_view = self.state.current_view

        old_view = self.state.current_view
        self.state.current_view = target
        self.state.scroll_resets += 1

        for listener in list(self._listeners):
            listener(old_view, target)
        return target

    def go_back(self) -> ViewState:
        """Leave the article reader for the screen that opened it."""
        if self.state.current_view is ViewState.ARTICLE_READER:
            return self.navigate(self.state.previous_view)
        return self.navigate(ViewState.HOME)

    @property
    def show_bottom_nav(self) -> bool:
        return self.state.show_bottom_nav

    def snapshot(self) -> Dict[str, Any]:
        pending = self.state.pending_redirect
        return {
            "current_view": self.state.current_view.value,
            "previous_view": self.state.previous_view.value,
            "session": self.state.session_status.value,
            "pending_redirect": pending.value if pending else None,
            "show_bottom_nav": self.state.show_bottom_nav,
            "scroll_resets": self.state.scroll_resets,
        }

    # ==================== Pending redirect ====================

    def _set_pending_redirect(self, view: ViewState) -> None:
        self.state.pending_redirect = view
        if self.store is not None:
            self.store.set(PENDING_REDIRECT_KEY, view.value)

    def _consume_pending_redirect(self) -> Optional[ViewState]:
        target = self.state.pending_redirect
        self.state.pending_redirect = None
        if self.store is not None:
            self.store.remove(PENDING_REDIRECT_KEY)
        if target:
            logger.info(f"↪️ [Navigation] Consuming pending redirect to '{target.value}'")
        return target

    def _load_pending_redirect(self) -> Optional[ViewState]:
        raw = self.store.get(PENDING_REDIRECT_KEY)
        if raw is None:
            return None
        try:
            return ViewState(raw)
        except ValueError:
            logger.warning(f"⚠️ [Navigation] Dropping unknown pending redirect '{raw}'")
            self.store.remove(PENDING_REDIRECT_KEY)
            return None
