"""Integration test fixtures for Amharic Voice.

Provides an async HTTP client over the real FastAPI app, wired to a
workflow with a mocked engine, the real SQLite store on an in-memory
database, and an in-process identity provider.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from src.api.app import create_app
from src.api.routes.workflow import get_workflow
from src.core.exceptions import AuthError
from src.core.models import AuthResult, AuthSession, SessionEvent
from src.services.auth import session as session_state
from src.services.auth.base import BaseIdentityProvider
from src.services.storage import database
from src.services.storage.store import SQLPersistenceStore
from src.services.workflow import TranscriptionWorkflow


class InMemoryIdentityProvider(BaseIdentityProvider):
    """Identity provider keeping accounts in a dict; emits the usual events."""

    def __init__(self, confirm_sign_ups: bool = False) -> None:
        super().__init__()
        self.accounts: dict[str, str] = {"abebe@example.com": "secret"}
        self.confirm_sign_ups = confirm_sign_ups

    def _issue(self, email: str) -> AuthSession:
        return AuthSession(
            access_token=f"token-{email}",
            refresh_token=f"refresh-{email}",
            user_id=f"user-{email.split('@')[0]}",
            email=email,
        )

    async def sign_in(self, email: str, password: str) -> AuthResult:
        if self.accounts.get(email) != password:
            raise AuthError("Invalid login credentials")
        session = self._issue(email)
        self._set_session(SessionEvent.signed_in, session)
        return AuthResult(session=session)

    async def sign_up(self, email: str, password: str) -> AuthResult:
        if email in self.accounts:
            raise AuthError("User already registered")
        self.accounts[email] = password
        if self.confirm_sign_ups:
            return AuthResult(
                confirmation_required=True,
                message="Check your email for the confirmation link!",
            )
        session = self._issue(email)
        self._set_session(SessionEvent.signed_in, session)
        return AuthResult(session=session)

    async def sign_out(self) -> None:
        self._set_session(SessionEvent.signed_out, None)

    async def refresh_session(self) -> AuthSession | None:
        if self._session is None:
            raise AuthError("No session to refresh")
        return self._session


@pytest.fixture
async def identity_provider():
    """An InMemoryIdentityProvider adopted as the process-wide provider."""
    provider = InMemoryIdentityProvider()
    session_state.init_session_state(provider)
    yield provider
    await session_state.teardown_session_state()


@pytest.fixture
def api_workflow(mock_engine, capture_adapter, identity_provider):
    """Workflow saving to SQLite as whoever the identity provider has signed in."""
    return TranscriptionWorkflow(
        engine=mock_engine,
        store=SQLPersistenceStore(),
        session_provider=session_state.fresh_session,
        capture=capture_adapter,
    )


@pytest.fixture
def app(api_workflow):
    """Create a fresh FastAPI application with the test workflow injected."""
    app = create_app()
    app.dependency_overrides[get_workflow] = lambda: api_workflow
    return app


@pytest.fixture
async def async_client(app, db_engine):
    """AsyncClient backed by the in-memory test engine.

    Injects the test engine into the database module so that saves
    use the same in-memory SQLite with tables already created.
    """
    database._engine = db_engine
    database._session_factory = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    database.reset_engine()
