"""Process-wide session state.

Subscribes to the identity provider once at startup and exposes only
"is there a session" plus the provider itself to the rest of the app.

Usage::

    from src.services.auth import session as session_state

    session_state.init_session_state(provider)
    session_state.current_session()
    session = await session_state.fresh_session()
    await session_state.teardown_session_state()
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from src.core.exceptions import AuthError
from src.core.models import AuthSession, SessionEvent
from src.services.auth.base import BaseIdentityProvider

logger = logging.getLogger(__name__)

# Tokens this close to expiry are refreshed before use
REFRESH_MARGIN = timedelta(seconds=60)

_provider: BaseIdentityProvider | None = None
_current: AuthSession | None = None
_unsubscribe: Callable[[], None] | None = None


def _on_change(event: SessionEvent, session: AuthSession | None) -> None:
    global _current
    _current = session
    logger.info("Session event: %s", event)


def init_session_state(provider: BaseIdentityProvider) -> None:
    """Adopt ``provider`` and subscribe to its changes (idempotent per provider)."""
    global _provider, _current, _unsubscribe
    if _provider is provider:
        return
    if _unsubscribe is not None:
        _unsubscribe()
    _provider = provider
    _current = provider.get_session()
    _unsubscribe = provider.on_session_change(_on_change)


async def teardown_session_state() -> None:
    """Unsubscribe, close the provider, and forget the session."""
    global _provider, _current, _unsubscribe
    if _unsubscribe is not None:
        _unsubscribe()
    provider = _provider
    _provider = None
    _current = None
    _unsubscribe = None
    if provider is not None:
        await provider.close()


def current_session() -> AuthSession | None:
    """Return the session seen by the last identity event, or None."""
    return _current


def get_provider() -> BaseIdentityProvider | None:
    """Return the identity provider adopted by ``init_session_state``."""
    return _provider


def _expiring(session: AuthSession) -> bool:
    if session.expires_at is None:
        return False
    return session.expires_at - REFRESH_MARGIN <= datetime.now(UTC)


async def fresh_session() -> AuthSession | None:
    """Return the current session, refreshing its token first if it is about to expire.

    A rejected refresh signs the user out, so None is returned. When the auth
    service cannot be reached the stale session is returned unchanged.
    """
    session = _current
    if session is None or _provider is None or not _expiring(session):
        return session
    logger.info("Access token for user %s expired; refreshing", session.user_id)
    try:
        await _provider.refresh_session()
    except AuthError as exc:
        logger.warning("Session refresh failed: %s", exc)
    return _current
