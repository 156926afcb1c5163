"""
Supabase identity provider.

Talks to the Supabase Auth (GoTrue) REST API with ``httpx.AsyncClient``:
password sign-in, sign-up, logout, and refresh-token exchange.
"""

import logging
from datetime import UTC, datetime

import httpx

from src.core.config import get_settings
from src.core.exceptions import AuthError
from src.core.models import AuthResult, AuthSession, SessionEvent
from src.services.auth.base import BaseIdentityProvider

logger = logging.getLogger(__name__)

CONFIRMATION_MESSAGE = "Check your email for the confirmation link!"


def _error_message(resp: httpx.Response) -> str:
    """Pull the human-readable message out of a GoTrue error body."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text or f"Authentication failed ({resp.status_code})"
    for key in ("error_description", "msg", "message", "error"):
        if isinstance(body, dict) and body.get(key):
            return str(body[key])
    return f"Authentication failed ({resp.status_code})"


def _parse_session(body: dict) -> AuthSession:
    """Build an AuthSession from a GoTrue token response."""
    user = body.get("user") or {}
    expires_at = body.get("expires_at")
    return AuthSession(
        access_token=body["access_token"],
        refresh_token=body.get("refresh_token"),
        expires_at=datetime.fromtimestamp(expires_at, tz=UTC) if expires_at else None,
        user_id=user.get("id", ""),
        email=user.get("email"),
    )


class SupabaseAuthProvider(BaseIdentityProvider):
    """Identity provider backed by Supabase Auth.

    Args:
        url: Project URL, e.g. ``https://xyz.supabase.co`` (defaults to settings).
        anon_key: Publishable anon key sent as ``apikey`` (defaults to settings).
        client: Pre-built ``httpx.AsyncClient`` (used in tests).
    """

    def __init__(
        self,
        url: str | None = None,
        anon_key: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__()
        settings = get_settings()
        self._url = (url or settings.supabase_url).rstrip("/")
        self._anon_key = anon_key or settings.supabase_anon_key
        self._client = client or httpx.AsyncClient(base_url=self._url, timeout=30.0)

    def _headers(self, access_token: str | None = None) -> dict[str, str]:
        headers = {"apikey": self._anon_key}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _post(self, path: str, **kwargs) -> httpx.Response:
        """POST to the auth API, translating transport failures into AuthError."""
        try:
            return await self._client.post(f"/auth/v1{path}", **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Supabase auth request failed: %s", exc)
            raise AuthError(f"Could not reach the authentication service: {exc}") from exc

    async def sign_in(self, email: str, password: str) -> AuthResult:
        resp = await self._post(
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            headers=self._headers(),
        )
        if resp.is_error:
            raise AuthError(_error_message(resp))

        session = _parse_session(resp.json())
        self._set_session(SessionEvent.signed_in, session)
        logger.info("Signed in user %s", session.user_id)
        return AuthResult(session=session)

    async def sign_up(self, email: str, password: str) -> AuthResult:
        resp = await self._post(
            "/signup",
            json={"email": email, "password": password},
            headers=self._headers(),
        )
        if resp.is_error:
            raise AuthError(_error_message(resp))

        body = resp.json()
        # With email confirmation enabled GoTrue returns the bare user, no tokens
        if not body.get("access_token"):
            logger.info("Sign-up for %s awaiting email confirmation", email)
            return AuthResult(confirmation_required=True, message=CONFIRMATION_MESSAGE)

        session = _parse_session(body)
        self._set_session(SessionEvent.signed_in, session)
        return AuthResult(session=session)

    async def sign_out(self) -> None:
        session = self._session
        if session is None:
            return
        try:
            resp = await self._post("/logout", headers=self._headers(session.access_token))
            if resp.is_error:
                logger.warning("Supabase logout returned %s", resp.status_code)
        except AuthError:
            logger.warning("Supabase logout failed; clearing local session anyway")
        finally:
            self._set_session(SessionEvent.signed_out, None)

    async def refresh_session(self) -> AuthSession | None:
        session = self._session
        if session is None or not session.refresh_token:
            raise AuthError("No session to refresh")

        resp = await self._post(
            "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": session.refresh_token},
            headers=self._headers(),
        )
        if resp.is_error:
            self._set_session(SessionEvent.signed_out, None)
            raise AuthError(_error_message(resp))

        refreshed = _parse_session(resp.json())
        self._set_session(SessionEvent.token_refreshed, refreshed)
        return refreshed

    async def close(self) -> None:
        await self._client.aclose()
