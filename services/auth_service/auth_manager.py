"""
Authentication service - tracks who is signed in and tells listeners when that changes.
Replaces the ambient Supabase auth listener with an injected service that has
an explicit init()/dispose() lifecycle.
"""

from typing import Any, Callable, List, Optional

from services.auth_service.models import AuthSession
from utils.logging_config import get_logger, log_user_interaction

AuthListener = Callable[[bool], None]


class AuthError(Exception):
    """Sign-in, sign-up or sign-out failed"""
    pass


class AuthService:
    """
    Base authentication service.
    Holds the current session and notifies subscribers on sign-in/sign-out.
    """

    def __init__(self):
        self.logger = get_logger(__name__)
        self._session: Optional[AuthSession] = None
        self._listeners: List[AuthListener] = []

    @property
    def session(self) -> Optional[AuthSession]:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def user_id(self) -> Optional[str]:
        return self._session.user_id if self._session else None

    async def init(self) -> None:
        """Restore any existing session"""

    def dispose(self) -> None:
        self._listeners.clear()

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """
        Register a listener called with the new authentication flag.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_session(self, session: Optional[AuthSession]) -> None:
        previous_user = self.user_id
        self._session = session
        if self.user_id == previous_user:
            return

        self.logger.info(f"Auth state changed: {'signed in' if session else 'signed out'}")
        for listener in list(self._listeners):
            listener(self.is_authenticated)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        raise AuthError("Sign-in is not available without a remote backend")

    async def sign_up(self, email: str, password: str) -> AuthSession:
        raise AuthError("Sign-up is not available without a remote backend")

    async def sign_out(self) -> None:
        self._set_session(None)


class AnonymousAuthService(AuthService):
    """Used when no Supabase project is configured; always signed out"""
    pass


class SupabaseAuthService(AuthService):
    """
    Auth service backed by Supabase (GoTrue) authentication.
    """

    def __init__(self, client: Any):
        super().__init__()
        self.client = client
        self._subscription = None

    @staticmethod
    def _to_session(supabase_session: Any) -> Optional[AuthSession]:
        if supabase_session is None or getattr(supabase_session, "user", None) is None:
            return None
        user = supabase_session.user
        return AuthSession(
            user_id=str(user.id),
            email=getattr(user, "email", None),
            access_token=getattr(supabase_session, "access_token", None),
        )

    async def init(self) -> None:
        try:
            current = await self.client.auth.get_session()
        except Exception as e:
            self.logger.warning(f"Could not restore auth session: {e}")
            current = None

        self._set_session(self._to_session(current))
        self._subscription = self.client.auth.on_auth_state_change(self._on_auth_state_change)

    def dispose(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        super().dispose()

    def _on_auth_state_change(self, event: str, session: Any) -> None:
        self.logger.debug(f"Supabase auth event: {event}")
        self._set_session(self._to_session(session))

    async def sign_in(self, email: str, password: str) -> AuthSession:
        try:
            response = await self.client.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as e:
            raise AuthError(f"Sign-in failed: {e}") from e

        session = self._to_session(response.session)
        if session is None:
            raise AuthError("Sign-in failed: no session returned")

        self._set_session(session)
        log_user_interaction(self.logger, "sign_in", user_id=session.user_id)
        return session

    async def sign_up(self, email: str, password: str) -> AuthSession:
        try:
            response = await self.client.auth.sign_up({"email": email, "password": password})
        except Exception as e:
            raise AuthError(f"Sign-up failed: {e}") from e

        session = self._to_session(response.session)
        if session is None:
            raise AuthError("Check your email to confirm your account, then sign in.")

        self._set_session(session)
        log_user_interaction(self.logger, "sign_up", user_id=session.user_id)
        return session

    async def sign_out(self) -> None:
        try:
            await self.client.auth.sign_out()
        except Exception as e:
            raise AuthError(f"Sign-out failed: {e}") from e
        self._set_session(None)
