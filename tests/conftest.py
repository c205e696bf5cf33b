"""Test configuration and fixtures.

Services are wired to the in-memory stores and a controllable clock, so
expiry can be exercised without sleeping.
"""

from collections.abc import Callable, Iterator
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient
from jose import jwt

from campauth.core.auth.oauth2 import (
    InMemoryAuthorizationCodeStore,
    InMemoryCredentialStore,
    TokenService,
)
from campauth.core.config import Settings, clear_settings_cache
from campauth.main import create_app
from campauth.schemas.oauth2 import ClientRegistrationResponse

ADMIN_KEY = "test-admin-key-0123456789"
REDIRECT_URI = "https://integrations.example.com/callback"
TENANT_ID = "cg_riverbend"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 7, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture(autouse=True)
def _reset_settings_cache() -> Iterator[None]:
    """Keep the cached settings singleton from leaking between tests."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def settings() -> Settings:
    """Test settings: in-memory backends, sweeper off, admin API enabled."""
    return Settings(
        api_env="development",
        credential_store_backend="memory",
        code_store_backend="memory",
        admin_api_key=ADMIN_KEY,
        oauth2_code_sweep_interval=0,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def credential_store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def code_store() -> InMemoryAuthorizationCodeStore:
    return InMemoryAuthorizationCodeStore()


@pytest.fixture
def token_service(
    credential_store: InMemoryCredentialStore,
    code_store: InMemoryAuthorizationCodeStore,
    settings: Settings,
    clock: FakeClock,
) -> TokenService:
    return TokenService(credential_store, code_store, settings, clock=clock)


@pytest_asyncio.fixture
async def confidential_client(token_service: TokenService) -> ClientRegistrationResponse:
    """A confidential client with the default API scopes."""
    result = await token_service.register_client(
        tenant_id=TENANT_ID,
        name="Channel Manager",
        redirect_uris=[REDIRECT_URI],
        grant_types=["client_credentials", "authorization_code", "refresh_token"],
    )
    assert result.is_ok()
    return result.unwrap()


@pytest_asyncio.fixture
async def public_client(token_service: TokenService) -> ClientRegistrationResponse:
    """A public (PKCE-only) client."""
    result = await token_service.register_client(
        tenant_id=TENANT_ID,
        name="Guest Mobile App",
        redirect_uris=[REDIRECT_URI],
        grant_types=["authorization_code", "refresh_token"],
        is_confidential=False,
    )
    assert result.is_ok()
    return result.unwrap()


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    return create_app(
        settings,
        credential_store=InMemoryCredentialStore(),
        code_store=InMemoryAuthorizationCodeStore(),
    )


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    """Test client with the application lifespan running."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-Admin-Key": ADMIN_KEY}


def make_user_jwt(settings: Settings, sub: str = "user-42", **claims: Any) -> str:
    """Sign an end-user session token the way the platform's login does."""
    payload = {
        "sub": sub,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=15),
        **claims,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


@pytest.fixture
def user_jwt_factory(settings: Settings) -> Callable[..., str]:
    """Build session tokens signed with the test settings."""

    def factory(sub: str = "user-42", **claims: Any) -> str:
        return make_user_jwt(settings, sub, **claims)

    return factory


@pytest.fixture
def redirect_uri() -> str:
    return REDIRECT_URI


@pytest.fixture
def tenant_id() -> str:
    return TENANT_ID


@pytest.fixture
def user_headers(settings: Settings) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_user_jwt(settings)}"}
