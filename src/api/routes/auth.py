"""
Identity REST endpoints.

Thin wrappers around the identity provider adopted at startup. Tokens are
kept server-side; clients only see whether a session exists.
"""

from fastapi import APIRouter

from src.core.exceptions import AuthError
from src.core.models import AuthResult, Credentials, SessionResponse
from src.services.auth import BaseIdentityProvider
from src.services.auth import session as session_state

router = APIRouter(prefix="/auth", tags=["auth"])


def _provider() -> BaseIdentityProvider:
    provider = session_state.get_provider()
    if provider is None:
        raise AuthError("Authentication is not configured")
    return provider


def _session_response() -> SessionResponse:
    session = session_state.current_session()
    if session is None:
        return SessionResponse(authenticated=False)
    return SessionResponse(authenticated=True, user_id=session.user_id, email=session.email)


@router.get("/session", response_model=SessionResponse)
async def get_session_status():
    """Report whether a user is signed in."""
    return _session_response()


@router.post("/sign-in", response_model=SessionResponse)
async def sign_in(body: Credentials):
    """Sign in with email and password."""
    await _provider().sign_in(body.email, body.password)
    return _session_response()


@router.post("/sign-up", response_model=AuthResult, response_model_exclude={"session"})
async def sign_up(body: Credentials):
    """Create an account; may require email confirmation before signing in."""
    return await _provider().sign_up(body.email, body.password)


@router.post("/sign-out", response_model=SessionResponse)
async def sign_out():
    """Sign out the current user."""
    await _provider().sign_out()
    return _session_response()
