"""Unit tests for the OAuth2 token service.

All flows run against the in-memory stores and a fake clock, so expiry
is exercised by moving time forward instead of sleeping.
"""

import asyncio
from datetime import timedelta
from uuid import uuid4

import pytest

from campauth.core.auth.oauth2 import (
    InMemoryAuthorizationCodeStore,
    InMemoryCredentialStore,
    TokenService,
)
from campauth.core.auth.oauth2.errors import OAuth2ErrorCode
from campauth.core.auth.oauth2.pkce import generate_code_challenge
from campauth.core.auth.oauth2.scopes import DEFAULT_API_SCOPES
from campauth.core.security import hash_token
from campauth.models.oauth2 import AuthorizationCodeEntry, AuthorizationGrant
from campauth.schemas.oauth2 import (
    ClientRegistrationResponse,
    IntrospectionResponse,
    TokenResponse,
)

from conftest import REDIRECT_URI, FakeClock


async def issue_cc_token(
    service: TokenService,
    registration: ClientRegistrationResponse,
    scope: str | None = None,
) -> TokenResponse:
    result = await service.issue_client_credentials_token(
        registration.client.client_id, registration.client_secret or "", scope
    )
    assert result.is_ok(), result
    return result.unwrap()


async def authorize(
    service: TokenService,
    registration: ClientRegistrationResponse,
    scopes: list[str] | None = None,
    verifier: str | None = "verifier123",
    method: str = "S256",
) -> str:
    challenge = generate_code_challenge(verifier, method) if verifier else None
    result = await service.generate_authorization_code(
        client_id=registration.client.client_id,
        redirect_uri=REDIRECT_URI,
        scopes=scopes or ["reservations:read"],
        user_id="user-42",
        code_challenge=challenge,
        code_challenge_method=method if verifier else None,
    )
    assert result.is_ok(), result
    return result.unwrap()


class TestRegisterClient:
    async def test_confidential_client(
        self, token_service: TokenService, confidential_client: ClientRegistrationResponse
    ) -> None:
        client = confidential_client.client

        assert client.client_id.startswith("cs_")
        assert len(client.client_id) == 3 + 24
        assert confidential_client.client_secret is not None
        assert len(confidential_client.client_secret) == 64
        assert client.scopes == DEFAULT_API_SCOPES
        assert client.is_confidential
        assert client.is_active

    async def test_public_client_has_no_secret(
        self,
        public_client: ClientRegistrationResponse,
        credential_store: InMemoryCredentialStore,
    ) -> None:
        assert public_client.client_secret is None
        stored = await credential_store.get_client(public_client.client.id)
        assert stored is not None
        assert stored.client_secret_hash is None

    async def test_secret_stored_hashed(
        self,
        confidential_client: ClientRegistrationResponse,
        credential_store: InMemoryCredentialStore,
    ) -> None:
        stored = await credential_store.get_client(confidential_client.client.id)

        assert stored is not None
        assert stored.client_secret_hash is not None
        assert stored.client_secret_hash != confidential_client.client_secret

    async def test_defaults_and_dedup(self, token_service: TokenService) -> None:
        result = await token_service.register_client(
            tenant_id="cg_pines",
            name="Kiosk",
            redirect_uris=[REDIRECT_URI, REDIRECT_URI],
            scopes=["sites:read", "sites:read"],
        )

        client = result.unwrap().client
        assert client.grant_types == ["client_credentials"]
        assert client.scopes == ["sites:read"]
        assert client.redirect_uris == [REDIRECT_URI]

    async def test_unknown_grant_type(self, token_service: TokenService) -> None:
        result = await token_service.register_client(
            tenant_id="cg_pines",
            name="Kiosk",
            redirect_uris=[],
            grant_types=["password"],
        )

        assert result.is_err()
        assert result.unwrap_err().code == OAuth2ErrorCode.INVALID_REQUEST

    async def test_unknown_scope(self, token_service: TokenService) -> None:
        result = await token_service.register_client(
            tenant_id="cg_pines",
            name="Kiosk",
            redirect_uris=[],
            scopes=["reservations:read", "admin:everything"],
        )

        assert result.is_err()
        assert result.unwrap_err().code == OAuth2ErrorCode.INVALID_SCOPE


class TestClientCredentialsGrant:
    async def test_full_allowed_set_when_no_scope_requested(
        self, token_service: TokenService, confidential_client: ClientRegistrationResponse
    ) -> None:
        token = await issue_cc_token(token_service, confidential_client)

        assert token.token_type == "Bearer"
        assert token.expires_in == 3600
        assert token.refresh_token is not None
        assert token.scope.split() == DEFAULT_API_SCOPES
        assert token.tenant_id == "cg_riverbend"
        assert len(token.access_token) == 64
        assert len(token.refresh_token) == 96

    async def test_requested_scopes_are_narrowed(
        self, token_service: TokenService, confidential_client: ClientRegistrationResponse
    ) -> None:
        token = await issue_cc_token(
            token_service, confidential_client, "reservations:read bogus:scope"
        )

        assert token.scope == "reservations:read"

    async def test_no_allowed_scope_is_invalid_scope(
        self, token_service: TokenService, confidential_client: ClientRegistrationResponse
    ) -> None:
        result = await token_service.issue_client_credentials_token(
            confidential_client.client.client_id,
            confidential_client.client_secret or "",
            "bogus:scope",
        )

        assert result.unwrap_err().code == OAuth2ErrorCode.INVALID_SCOPE

    async def test_wrong_secret(
        self, token_service: TokenService, confidential_client: ClientRegistrationResponse
    ) -> None:
        result = await token_service.issue_client_credentials_token(
            confidential_client.client.client_id, "not-the-secret"
        )

        error = result.unwrap_err()
        assert error.code == OAuth2ErrorCode.INVALID_CLIENT
        assert error.status_code == 401

    async def test_unknown_client(self, token_service: TokenService) -> None:
        result = await token_service.issue_client_credentials_token("cs_nobody", "x")

        assert result.unwrap_err().code == OAuth2ErrorCode.INVALID_CLIENT

    async def test_only_hashes_are_persisted(
        self,
        token_service: TokenService,
        confidential_client: ClientRegistrationResponse,
        credential_store: InMemoryCredentialStore,
    ) -> None:
        token = await issue_cc_token(token_service, confidential_client)

        record = await credential_store.get_token_by_access_hash(
            hash_token(token.access_token)
        )
        assert record is not None
        assert record.access_token_hash != token.access_token
        assert record.refresh_token_hash == hash_token(token.refresh_token or "")
        assert record.user_id is None

    async def test_introspection_of_issued_token(
        self, token_service: TokenService, confidential_client: ClientRegistrationResponse
    ) -> None:
        token = await issue_cc_token(token_service, confidential_client, "reservations:read")

        info = (await token_service.introspect_token(token.access_token)).unwrap()

        assert info.active
        assert info.scope == "reservations:read"
        assert info.client_id == confidential_client.client.client_id
        assert info.tenant_id == "cg_riverbend"
        assert info.token_type == "Bearer"
        assert info.iss == "https://api.campreserv.com"
        assert info.sub == str(confidential_client.client.id)
        assert info.exp is not None and info.iat is not None
        assert info.exp - info.iat == 3600


class TestAuthorizationCodeGrant:
    async def test_s256_exchange(
        self, token_service: TokenService, public_client: ClientRegistrationResponse
    ) -> None:
        code = await authorize(token_service, public_client)

        result = await token_service.exchange_authorization_code(
            code=code,
            client_id=public_client.client.client_id,
            redirect_uri=REDIRECT_URI,
            code_verifier="verifier123",
        )

        token = result.unwrap()
        assert token.scope == "reservations:read"
        validation = (await token_service.validate_access_token(token.access_token)).unwrap()
        assert validation.user_id == "user-42"

    async def test_code_is_single_use(
        self, token_service: TokenService, public_client: ClientRegistrationResponse
    ) -> None:
        code = await authorize(token_service, public_client)
        kwargs = {
            "code": code,
            "client_id": public_client.client.client_id,
            "redirect_uri": REDIRECT_URI,
            "code_verifier": "verifier123",
        }

        assert (await token_service.exchange_authorization_code(**kwargs)).is_ok()
        second = await token_service.exchange_authorization_code(**kwargs)

        assert second.unwrap_err().code == OAuth2ErrorCode.INVALID_GRANT

    async def test_expired_code(
        self,
        token_service: TokenService,
        public_client: ClientRegistrationResponse,
        clock: FakeClock,
    ) -> None:
        code = await authorize(token_service, public_client)
        clock.advance(601)

        result = await token_service.exchange_authorization_code(
            code=code,
            client_id=public_client.client.client_id,
            redirect_uri=REDIRECT_URI,
            code_verifier="verifier123",
        )

        error = result.unwrap_err()
        assert error.code == OAuth2ErrorCode.INVALID_GRANT
        assert error.description == "Invalid or expired authorization code"

    async def test_public_client_requires_challenge(
        self, token_service: TokenService, public_client: ClientRegistrationResponse
    ) -> None:
        result = await token_service.generate_authorization_code(
            client_id=public_client.client.client_id,
            redirect_uri=REDIRECT_URI,
            scopes=["reservations:read"],
            user_id="user-42",
        )

        assert result.unwrap_err().code == OAuth2ErrorCode.INVALID_REQUEST

    async def test_unregistered_redirect_uri(
        self, token_service: TokenService, confidential_client: ClientRegistrationResponse
    ) -> None:
        result = await token_service.generate_authorization_code(
            client_id=confidential_client.client.client_id,
            redirect_uri="https://evil.example.com/callback",
            scopes=["reservations:read"],
            user_id="user-42",
        )

        assert result.unwrap_err().description == "Invalid redirect_uri"

    async def test_unsupported_challenge_method(
        self, token_service: TokenService, public_client: ClientRegistrationResponse
    ) -> None:
        result = await token_service.generate_authorization_code(
            client_id=public_client.client.client_id,
            redirect_uri=REDIRECT_URI,
            scopes=["reservations:read"],
            user_id="user-42",
            code_challenge="E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM",
            code_challenge_method="S512",
        )

        assert result.unwrap_err().code == OAuth2ErrorCode.INVALID_REQUEST

    async def test_plain_method(
        self, token_service: TokenService, public_client: ClientRegistrationResponse
    ) -> None:
        verifier = "a" * 43
        code = await authorize(token_service, public_client, verifier=verifier, method="plain")

        result = await token_service.exchange_authorization_code(
            code=code,
            client_id=public_client.client.client_id,
            redirect_uri=REDIRECT_URI,
            code_verifier=verifier,
        )

        assert result.is_ok()

    async def test_wrong_verifier(
        self, token_service: TokenService, public_client: ClientRegistrationResponse
    ) -> None:
        code = await authorize(token_service, public_client)

        result = await token_service.exchange_authorization_code(
            code=code,
            client_id=public_client.client.client_id,
            redirect_uri=REDIRECT_URI,
            code_verifier="verifier124",
        )

        assert result.unwrap_err().description == "Invalid code_verifier"

    async def test_missing_verifier(
        self, token_service: TokenService, public_client: ClientRegistrationResponse
    ) -> None:
        code = await authorize(token_service, public_client)

        result = await token_service.exchange_authorization_code(
            code=code,
            client_id=public_client.client.client_id,
            redirect_uri=REDIRECT_URI,
        )

        assert result.unwrap_err().description == "PKCE code_verifier required"

    async def test_redirect_uri_mismatch(
        self, token_service: TokenService, public_client: ClientRegistrationResponse
    ) -> None:
        code = await authorize(token_service, public_client)

        result = await token_service.exchange_authorization_code(
            code=code,
            client_id=public_client.client.client_id,
            redirect_uri="https://integrations.example.com/other",
            code_verifier="verifier123",
        )

        assert result.unwrap_err().description == "Redirect URI mismatch"

    async def test_client_id_mismatch(
        self,
        token_service: TokenService,
        public_client: ClientRegistrationResponse,
        confidential_client: ClientRegistrationResponse,
    ) -> None:
        code = await authorize(token_service, public_client)

        result = await token_service.exchange_authorization_code(
            code=code,
            client_id=confidential_client.client.client_id,
            redirect_uri=REDIRECT_URI,
            client_secret=confidential_client.client_secret,
            code_verifier="verifier123",
        )

        assert result.unwrap_err().description == "Client ID mismatch"

    async def test_confidential_exchange_requires_secret_and_consumes_code(
        self, token_service: TokenService, confidential_client: ClientRegistrationResponse
    ) -> None:
        code = await authorize(token_service, confidential_client, verifier=None)
        kwargs = {
            "code": code,
            "client_id": confidential_client.client.client_id,
            "redirect_uri": REDIRECT_URI,
        }

        first = await token_service.exchange_authorization_code(**kwargs)
        assert first.unwrap_err().code == OAuth2ErrorCode.INVALID_CLIENT

        retry = await token_service.exchange_authorization_code(
            **kwargs, client_secret=confidential_client.client_secret
        )
        assert retry.unwrap_err().code == OAuth2ErrorCode.INVALID_GRANT

    async def test_confidential_exchange_without_pkce(
        self, token_service: TokenService, confidential_client: ClientRegistrationResponse
    ) -> None:
        code = await authorize(
            token_service, confidential_client, scopes=["guests:read"], verifier=None
        )

        result = await token_service.exchange_authorization_code(
            code=code,
            client_id=confidential_client.client.client_id,
            redirect_uri=REDIRECT_URI,
            client_secret=confidential_client.client_secret,
        )

        assert result.unwrap().scope == "guests:read"


class TestRefreshTokenGrant:
    async def test_rotation(
        self, token_service: TokenService, confidential_client: ClientRegistrationResponse
    ) -> None:
        original = await issue_cc_token(token_service, confidential_client, "sites:read")

        refreshed = (
            await token_service.refresh_access_token(original.refresh_token or "")
        ).unwrap()

        assert refreshed.access_token != original.access_token
        assert refreshed.refresh_token != original.refresh_token
        assert refreshed.scope == "sites:read"
        old = (await token_service.introspect_token(original.access_token)).unwrap()
        assert not old.active

    async def test_reuse_is_rejected(
        self, token_service: TokenService, confidential_client: ClientRegistrationResponse
    ) -> None:
        original = await issue_cc_token(token_service, confidential_client)
        refresh = original.refresh_token or ""

        assert (await token_service.refresh_access_token(refresh)).is_ok()
        reused = await token_service.refresh_access_token(refresh)

        assert reused.unwrap_err().code == OAuth2ErrorCode.INVALID_GRANT

    async def test_concurrent_refresh_yields_one_winner(
        self, token_service: TokenService, confidential_client: ClientRegistrationResponse
    ) -> None:
        original = await issue_cc_token(token_service, confidential_client)
        refresh = original.refresh_token or ""

        results = await asyncio.gather(
            *(token_service.refresh_access_token(refresh) for _ in range(5))
        )

        assert sum(r.is_ok() for r in results) == 1
        for result in results:
            if result.is_err():
                assert result.unwrap_err().code == OAuth2ErrorCode.INVALID_GRANT

    async def test_expired_refresh_token(
        self,
        token_service: TokenService,
        confidential_client: ClientRegistrationResponse,
        clock: FakeClock,
    ) -> None:
        original = await issue_cc_token(token_service, confidential_client)
        clock.advance(2592000 + 1)

        result = await token_service.refresh_access_token(original.refresh_token or "")

        assert result.unwrap_err().code == OAuth2ErrorCode.INVALID_GRANT

    async def test_unknown_refresh_token(self, token_service: TokenService) -> None:
        result = await token_service.refresh_access_token("f" * 96)

        assert result.unwrap_err().description == "Invalid refresh token"


class TestGrantTypeRestrictions:
    """Clients may only use the grants they were registered for."""

    async def register(
        self, service: TokenService, grant_types: list[str], is_confidential: bool = True
    ) -> ClientRegistrationResponse:
        result = await service.register_client(
            tenant_id="cg_riverbend",
            name="Restricted Client",
            redirect_uris=[REDIRECT_URI],
            grant_types=grant_types,
            is_confidential=is_confidential,
        )
        return result.unwrap()

    async def test_public_client_cannot_use_client_credentials(
        self, token_service: TokenService, public_client: ClientRegistrationResponse
    ) -> None:
        result = await token_service.issue_client_credentials_token(
            public_client.client.client_id, "anything-at-all"
        )

        error = result.unwrap_err()
        assert error.code == OAuth2ErrorCode.UNAUTHORIZED_CLIENT
        assert error.status_code == 400

    async def test_client_credentials_requires_registration(
        self, token_service: TokenService
    ) -> None:
        registration = await self.register(token_service, ["authorization_code"])

        result = await token_service.issue_client_credentials_token(
            registration.client.client_id, registration.client_secret or ""
        )

        assert result.unwrap_err().code == OAuth2ErrorCode.UNAUTHORIZED_CLIENT

    async def test_authorization_code_requires_registration(
        self, token_service: TokenService
    ) -> None:
        registration = await self.register(token_service, ["client_credentials"])

        result = await token_service.generate_authorization_code(
            client_id=registration.client.client_id,
            redirect_uri=REDIRECT_URI,
            scopes=["reservations:read"],
            user_id="user-42",
        )

        assert result.unwrap_err().code == OAuth2ErrorCode.UNAUTHORIZED_CLIENT

    async def test_exchange_requires_registration(
        self,
        token_service: TokenService,
        code_store: InMemoryAuthorizationCodeStore,
        clock: FakeClock,
    ) -> None:
        registration = await self.register(token_service, ["client_credentials"])
        entry = AuthorizationCodeEntry(
            code="stale-code",
            grant=AuthorizationGrant(
                client_id=registration.client.client_id,
                redirect_uri=REDIRECT_URI,
                scopes=["reservations:read"],
                user_id="user-42",
            ),
            expires_at=clock() + timedelta(seconds=600),
        )
        await code_store.put(entry, 600)

        result = await token_service.exchange_authorization_code(
            code="stale-code",
            client_id=registration.client.client_id,
            redirect_uri=REDIRECT_URI,
            client_secret=registration.client_secret,
        )

        assert result.unwrap_err().code == OAuth2ErrorCode.UNAUTHORIZED_CLIENT

    async def test_refresh_requires_registration(
        self, token_service: TokenService
    ) -> None:
        registration = await self.register(token_service, ["client_credentials"])
        token = await issue_cc_token(token_service, registration)

        result = await token_service.refresh_access_token(token.refresh_token or "")

        assert result.unwrap_err().code == OAuth2ErrorCode.UNAUTHORIZED_CLIENT
        # The rejected refresh does not consume the pair
        info = (await token_service.introspect_token(token.access_token)).unwrap()
        assert info.active

    async def test_public_registration_rejects_client_credentials(
        self, token_service: TokenService
    ) -> None:
        result = await token_service.register_client(
            tenant_id="cg_riverbend",
            name="Guest App",
            redirect_uris=[REDIRECT_URI],
            grant_types=["client_credentials", "authorization_code"],
            is_confidential=False,
        )

        assert result.unwrap_err().code == OAuth2ErrorCode.INVALID_REQUEST

    async def test_public_registration_defaults(self, token_service: TokenService) -> None:
        result = await token_service.register_client(
            tenant_id="cg_riverbend",
            name="Guest App",
            redirect_uris=[REDIRECT_URI],
            is_confidential=False,
        )

        assert result.unwrap().client.grant_types == ["authorization_code", "refresh_token"]

    async def test_validate_redirect_target(
        self, token_service: TokenService, confidential_client: ClientRegistrationResponse
    ) -> None:
        client_id = confidential_client.client.client_id

        ok = await token_service.validate_redirect_target(client_id, REDIRECT_URI)
        assert ok.unwrap().client_id == client_id

        unregistered = await token_service.validate_redirect_target(
            client_id, "https://evil.example.com/callback"
        )
        assert unregistered.unwrap_err().code == OAuth2ErrorCode.INVALID_REQUEST

        unknown = await token_service.validate_redirect_target("cs_nobody", REDIRECT_URI)
        assert unknown.unwrap_err().code == OAuth2ErrorCode.INVALID_CLIENT


class TestRevocationAndValidation:
    async def test_revoke_is_idempotent(
        self, token_service: TokenService, confidential_client: ClientRegistrationResponse
    ) -> None:
        token = await issue_cc_token(token_service, confidential_client)

        assert (await token_service.revoke_token(token.access_token)).is_ok()
        assert (await token_service.revoke_token(token.access_token)).is_ok()
        assert (await token_service.revoke_token("never-issued")).is_ok()

        info = (await token_service.introspect_token(token.access_token)).unwrap()
        assert info == IntrospectionResponse(active=False)

    async def test_revoke_by_refresh_token(
        self, token_service: TokenService, confidential_client: ClientRegistrationResponse
    ) -> None:
        token = await issue_cc_token(token_service, confidential_client)

        await token_service.revoke_token(token.refresh_token or "", "refresh_token")

        validation = (await token_service.validate_access_token(token.access_token)).unwrap()
        assert not validation.valid
        refreshed = await token_service.refresh_access_token(token.refresh_token or "")
        assert refreshed.is_err()

    async def test_access_token_expiry(
        self,
        token_service: TokenService,
        confidential_client: ClientRegistrationResponse,
        clock: FakeClock,
    ) -> None:
        token = await issue_cc_token(token_service, confidential_client)
        clock.advance(3600)

        validation = (await token_service.validate_access_token(token.access_token)).unwrap()

        assert not validation.valid

    async def test_validate_access_token_fields(
        self,
        token_service: TokenService,
        confidential_client: ClientRegistrationResponse,
        credential_store: InMemoryCredentialStore,
    ) -> None:
        token = await issue_cc_token(token_service, confidential_client, "webhooks:write")

        validation = (await token_service.validate_access_token(token.access_token)).unwrap()

        record = await credential_store.get_token_by_access_hash(
            hash_token(token.access_token)
        )
        assert record is not None
        assert validation.valid
        assert validation.client_id == confidential_client.client.client_id
        assert validation.tenant_id == "cg_riverbend"
        assert validation.scopes == ["webhooks:write"]
        assert validation.user_id is None
        assert validation.token_id == record.id


class TestClientLifecycle:
    async def test_rotate_secret_revokes_tokens(
        self, token_service: TokenService, confidential_client: ClientRegistrationResponse
    ) -> None:
        client_id = confidential_client.client.client_id
        old_secret = confidential_client.client_secret or ""
        first = await issue_cc_token(token_service, confidential_client)
        second = await issue_cc_token(token_service, confidential_client)

        rotation = (
            await token_service.rotate_client_secret(confidential_client.client.id)
        ).unwrap()

        assert rotation.client_id == client_id
        assert rotation.client_secret != old_secret
        for token in (first, second):
            info = (await token_service.introspect_token(token.access_token)).unwrap()
            assert not info.active
            validation = (
                await token_service.validate_access_token(token.access_token)
            ).unwrap()
            assert validation.valid is False
        old = await token_service.issue_client_credentials_token(client_id, old_secret)
        assert old.unwrap_err().code == OAuth2ErrorCode.INVALID_CLIENT
        new = await token_service.issue_client_credentials_token(
            client_id, rotation.client_secret
        )
        assert new.is_ok()

    async def test_rotate_public_client(
        self, token_service: TokenService, public_client: ClientRegistrationResponse
    ) -> None:
        result = await token_service.rotate_client_secret(public_client.client.id)

        assert result.unwrap_err().code == OAuth2ErrorCode.INVALID_REQUEST

    async def test_rotate_missing_client(self, token_service: TokenService) -> None:
        result = await token_service.rotate_client_secret(uuid4())

        assert result.unwrap_err().code == OAuth2ErrorCode.INVALID_CLIENT

    async def test_deactivate_client(
        self, token_service: TokenService, confidential_client: ClientRegistrationResponse
    ) -> None:
        token = await issue_cc_token(token_service, confidential_client)

        assert (await token_service.deactivate_client(confidential_client.client.id)).is_ok()

        validation = (await token_service.validate_access_token(token.access_token)).unwrap()
        assert not validation.valid
        again = await token_service.issue_client_credentials_token(
            confidential_client.client.client_id, confidential_client.client_secret or ""
        )
        assert again.unwrap_err().code == OAuth2ErrorCode.INVALID_CLIENT
        refreshed = await token_service.refresh_access_token(token.refresh_token or "")
        assert refreshed.unwrap_err().code == OAuth2ErrorCode.INVALID_GRANT

    async def test_deactivate_missing_client(self, token_service: TokenService) -> None:
        result = await token_service.deactivate_client(uuid4())

        assert result.unwrap_err().code == OAuth2ErrorCode.INVALID_CLIENT


class TestDiscovery:
    def test_document_uses_issuer(self, token_service: TokenService) -> None:
        document = token_service.discovery_document()

        assert document.issuer == "https://api.campreserv.com"
        assert document.token_endpoint == "https://api.campreserv.com/oauth/token"
        assert document.code_challenge_methods_supported == ["S256", "plain"]
        assert "refresh_token" in document.grant_types_supported
        assert "reservations:read" in document.scopes_supported


@pytest.mark.parametrize("verifier", ["verifier123", "x" * 128])
async def test_challenge_helper_matches_service(
    verifier: str,
    token_service: TokenService,
    public_client: ClientRegistrationResponse,
) -> None:
    code = await authorize(token_service, public_client, verifier=verifier)

    result = await token_service.exchange_authorization_code(
        code=code,
        client_id=public_client.client.client_id,
        redirect_uri=REDIRECT_URI,
        code_verifier=verifier,
    )

    assert result.is_ok()
