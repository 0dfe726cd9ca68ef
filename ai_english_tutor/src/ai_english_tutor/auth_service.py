"""
Auth collaborator

Wraps Supabase auth: session probe, session-change subscription, sign-in,
sign-up, redirect code exchange, sign-out and current-user lookup. Sessions are only ever produced by
Supabase; nothing here constructs one.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ai_english_tutor.exceptions import ConfigurationError, PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_SIGNUP_LEVEL = "B1 Intermediate"
CONFIRM_EMAIL_MESSAGE = "Sign up successful! Please check your email to confirm your account."

SessionCallback = Callable[[Optional[Any]], None]


@dataclass
class AuthResult:
    """Outcome of a sign-in or sign-up attempt."""
    success: bool
    session_started: bool = False
    message: Optional[str] = None
    error: Optional[str] = None


class AuthService:
    """Thin facade over `supabase.Client.auth`."""

    def __init__(self, supabase_client=None):
        self.supabase = supabase_client
        self._subscription = None

    @property
    def configured(self) -> bool:
        return self.supabase is not None

    def _auth(self):
        if self.supabase is None:
            raise ConfigurationError("Supabase is not configured")
        return self.supabase.auth

    def get_current_session(self) -> Optional[Any]:
        """Return the active session, or None. Raises on config/network errors."""
        return self._auth().get_session()

    def subscribe(self, callback: SessionCallback) -> Callable[[], None]:
        """
        Forward every auth state change to `callback(session)`.

        Returns:
            A function that cancels the subscription
        """
        def _on_change(event, session):
            logger.debug(f"🔐 [AuthService] Auth event: {event}")
            callback(session)

        self._subscription = self._auth().on_auth_state_change(_on_change)
        subscription = self._subscription

        def unsubscribe():
            try:
                subscription.unsubscribe()
            except Exception as e:
                logger.warning(f"⚠️ [AuthService] Failed to unsubscribe: {e}")

        return unsubscribe

    async def sign_in(self, email: str, password: str) -> AuthResult:
        try:
            self._auth().sign_in_with_password({"email": email, "password": password})
        except Exception as e:
            logger.warning(f"⚠️ [AuthService] Sign-in failed: {e}")
            return AuthResult(success=False, error=str(e) or "An error occurred")
        logger.info("✅ [AuthService] Signed in")
        return AuthResult(success=True, session_started=True)

    async def sign_up(self, email: str, password: str) -> AuthResult:
        """
        Create an account with default profile data.

        A response carrying a user but no session means email confirmation is
        pending; that is reported as success without a started session.
        """
        profile_defaults = {"name": email.split("@")[0], "level": DEFAULT_SIGNUP_LEVEL}
        try:
            response = self._auth().sign_up({
                "email": email,
                "password": password,
                "options": {"data": profile_defaults},
            })
        except Exception as e:
            logger.warning(f"⚠️ [AuthService] Sign-up failed: {e}")
            return AuthResult(success=False, error=str(e) or "An error occurred")

        if getattr(response, "user", None) and not getattr(response, "session", None):
            logger.info("📧 [AuthService] Sign-up pending email confirmation")
            return AuthResult(success=True, session_started=False, message=CONFIRM_EMAIL_MESSAGE)

        logger.info("✅ [AuthService] Signed up")
        return AuthResult(success=True, session_started=True)

    async def exchange_code(self, code: str) -> AuthResult:
        """Trade the `code` from a PKCE/confirmation redirect for a session."""
        try:
            self._auth().exchange_code_for_session({"auth_code": code})
        except Exception as e:
            logger.warning(f"⚠️ [AuthService] Code exchange failed: {e}")
            return AuthResult(success=False, error=str(e) or "An error occurred")
        logger.info("✅ [AuthService] Code exchanged for session")
        return AuthResult(success=True, session_started=True)

    async def sign_out(self) -> None:
        self._auth().sign_out()
        logger.info("👋 [AuthService] Signed out")

    async def get_user(self) -> Optional[Any]:
        """Return the signed-in user object, or None when there is no session."""
        auth = self._auth()
        try:
            # get_user() raises rather than returning None without a session
            if not auth.get_session():
                return None
            response = auth.get_user()
        except Exception as e:
            raise PersistenceError(f"Could not load user: {e}") from e
        return getattr(response, "user", None) if response else None

    async def get_user_id(self) -> Optional[str]:
        user = await self.get_user()
        return getattr(user, "id", None) if user else None
