"""
Abstract base class for identity providers.

Providers own the current ``AuthSession`` and notify listeners whenever it
changes. Listener bookkeeping lives here so every provider fires events the
same way.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable

from src.core.models import AuthResult, AuthSession, SessionEvent

logger = logging.getLogger(__name__)

SessionListener = Callable[[SessionEvent, AuthSession | None], None]


class BaseIdentityProvider(ABC):
    """Interface that every identity provider must implement."""

    def __init__(self) -> None:
        self._session: AuthSession | None = None
        self._listeners: list[SessionListener] = []

    def get_session(self) -> AuthSession | None:
        """Return the current session, or None when signed out."""
        return self._session

    def on_session_change(self, callback: SessionListener) -> Callable[[], None]:
        """Register ``callback`` for sign-in, sign-out and refresh events.

        Returns:
            A function that unsubscribes the callback. Calling it twice is harmless.
        """
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _set_session(self, event: SessionEvent, session: AuthSession | None) -> None:
        """Replace the current session and notify listeners."""
        self._session = session
        for listener in list(self._listeners):
            try:
                listener(event, session)
            except Exception:
                logger.exception("Session listener failed for event %s", event)

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthResult:
        """Sign in with email and password.

        Raises:
            AuthError: With a human-readable message on failure.
        """

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> AuthResult:
        """Register a new account.

        Returns:
            AuthResult with ``confirmation_required=True`` when the provider
            requires email confirmation before a session is issued.

        Raises:
            AuthError: With a human-readable message on failure.
        """

    @abstractmethod
    async def sign_out(self) -> None:
        """End the current session. Local state is cleared even if the call fails."""

    @abstractmethod
    async def refresh_session(self) -> AuthSession | None:
        """Exchange the refresh token for a new session.

        Raises:
            AuthError: If there is no session or the refresh is rejected.
        """

    async def close(self) -> None:
        """Release any network resources held by the provider."""
