# CampAuth - Campground OAuth2 Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""OAuth2 authorization server implementation.

``TokenService`` orchestrates every grant flow. Protocol failures are
returned as ``Err(OAuth2Error)``; only infrastructure faults raise.
Raw tokens, codes and secrets are handed back to the caller once and are
never persisted or logged; the credential store only sees SHA-256 hashes
(tokens) or argon2 hashes (client secrets).
"""

from collections.abc import Callable
from datetime import datetime, timedelta
from uuid import UUID, uuid4

from beartype import beartype

from ....models.base import utc_now
from ....models.oauth2 import (
    AuthorizationCodeEntry,
    AuthorizationGrant,
    OAuthClient,
    OAuthToken,
)
from ....schemas.oauth2 import (
    AccessTokenValidation,
    ClientRegistrationResponse,
    ClientResponse,
    DiscoveryDocument,
    IntrospectionResponse,
    SecretRotationResponse,
    TokenResponse,
)
from ...config import Settings
from ...logging_utils import get_logger
from ...result_types import Err, Ok, Result
from ...security import (
    generate_token_hex,
    hash_client_secret,
    hash_token,
    verify_client_secret,
)
from .code_store import AuthorizationCodeStore
from .credential_store import CredentialStore
from .errors import OAuth2Error, OAuth2ErrorCode, oauth2_err
from .pkce import PKCE_METHODS, verify_code_challenge
from .scopes import (
    ALL_SCOPES,
    DEFAULT_API_SCOPES,
    ScopeValidator,
    parse_scopes,
    scopes_to_string,
)

logger = get_logger(__name__)

SUPPORTED_GRANT_TYPES: tuple[str, ...] = (
    "client_credentials",
    "authorization_code",
    "refresh_token",
)
PUBLIC_CLIENT_GRANT_TYPES: tuple[str, ...] = ("authorization_code", "refresh_token")
TOKEN_ENDPOINT_AUTH_METHODS: tuple[str, ...] = (
    "client_secret_post",
    "client_secret_basic",
    "none",
)

CLIENT_ID_PREFIX = "cs_"
CLIENT_ID_BYTES = 12
CLIENT_SECRET_BYTES = 32
ACCESS_TOKEN_BYTES = 32
REFRESH_TOKEN_BYTES = 48
AUTH_CODE_BYTES = 32


class TokenService:
    """OAuth2 authorization server core."""

    def __init__(
        self,
        credential_store: CredentialStore,
        code_store: AuthorizationCodeStore,
        settings: Settings,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the service.

        Args:
            credential_store: Persistence for clients and tokens
            code_store: Short-lived storage for pending authorization codes
            settings: Token lifetimes and issuer
            clock: Source of the current time (injectable for tests)
        """
        self._store = credential_store
        self._codes = code_store
        self._settings = settings
        self._clock = clock

        self._access_token_ttl = settings.oauth2_access_token_ttl
        self._refresh_token_ttl = settings.oauth2_refresh_token_ttl
        self._auth_code_ttl = settings.oauth2_auth_code_ttl

    # Grants

    @beartype
    async def issue_client_credentials_token(
        self,
        client_id: str,
        client_secret: str,
        scope: str | None = None,
    ) -> Result[TokenResponse, OAuth2Error]:
        """Client credentials grant (RFC 6749 section 4.4).

        Requested scopes are narrowed to what the client is allowed; with no
        request the client receives its full allowed set.
        """
        client_result = await self._authenticate_client(client_id, client_secret)
        if isinstance(client_result, Err):
            return client_result
        client = client_result.value

        if not client.is_confidential:
            logger.warning(
                "Public client attempted client_credentials grant client_id=%s",
                client.client_id,
            )
            return oauth2_err(
                OAuth2ErrorCode.UNAUTHORIZED_CLIENT,
                "Public clients cannot use the client_credentials grant",
            )

        grant_result = self._check_grant_type(client, "client_credentials")
        if isinstance(grant_result, Err):
            return grant_result

        scopes_result = self._narrow_scopes(parse_scopes(scope), client)
        if isinstance(scopes_result, Err):
            return scopes_result

        response = await self._issue_tokens(client, scopes_result.value, user_id=None)
        logger.info("Issued client_credentials token for client_id=%s", client.client_id)
        return Ok(response)

    @beartype
    async def validate_redirect_target(
        self, client_id: str, redirect_uri: str
    ) -> Result[OAuthClient, OAuth2Error]:
        """Check that ``redirect_uri`` is registered for an active client.

        Until this passes, authorization errors must not be redirected.
        """
        client = await self._store.get_client_by_client_id(client_id)
        if client is None or not client.is_active:
            return oauth2_err(OAuth2ErrorCode.INVALID_CLIENT, "Invalid client")

        if redirect_uri not in client.redirect_uris:
            return oauth2_err(OAuth2ErrorCode.INVALID_REQUEST, "Invalid redirect_uri")
        return Ok(client)

    @beartype
    async def generate_authorization_code(
        self,
        client_id: str,
        redirect_uri: str,
        scopes: list[str],
        user_id: str,
        code_challenge: str | None = None,
        code_challenge_method: str | None = None,
    ) -> Result[str, OAuth2Error]:
        """Create a single-use authorization code for an approved request."""
        target_result = await self.validate_redirect_target(client_id, redirect_uri)
        if isinstance(target_result, Err):
            return target_result
        client = target_result.value

        grant_result = self._check_grant_type(client, "authorization_code")
        if isinstance(grant_result, Err):
            return grant_result

        if not client.is_confidential and not code_challenge:
            return oauth2_err(
                OAuth2ErrorCode.INVALID_REQUEST,
                "PKCE code_challenge is required for public clients",
            )

        if code_challenge_method is not None and code_challenge_method not in PKCE_METHODS:
            return oauth2_err(
                OAuth2ErrorCode.INVALID_REQUEST,
                f"Unsupported code_challenge_method: {code_challenge_method}",
            )

        scopes_result = self._narrow_scopes(scopes, client)
        if isinstance(scopes_result, Err):
            return scopes_result

        now = self._clock()
        code = generate_token_hex(AUTH_CODE_BYTES)
        entry = AuthorizationCodeEntry(
            code=code,
            grant=AuthorizationGrant(
                client_id=client_id,
                redirect_uri=redirect_uri,
                scopes=scopes_result.value,
                user_id=user_id,
                code_challenge=code_challenge or None,
                code_challenge_method=code_challenge_method if code_challenge else None,
            ),
            expires_at=now + timedelta(seconds=self._auth_code_ttl),
        )
        await self._codes.put(entry, self._auth_code_ttl)
        await self._codes.sweep(now)

        logger.info("Issued authorization code for client_id=%s", client_id)
        return Ok(code)

    @beartype
    async def exchange_authorization_code(
        self,
        code: str,
        client_id: str,
        redirect_uri: str,
        client_secret: str | None = None,
        code_verifier: str | None = None,
    ) -> Result[TokenResponse, OAuth2Error]:
        """Authorization code grant (RFC 6749 section 4.1.3, RFC 7636).

        The code is removed before anything else is checked, so it cannot be
        replayed even when this exchange fails.
        """
        entry = await self._codes.get_and_delete(code)
        if entry is None or entry.is_expired(self._clock()):
            return oauth2_err(
                OAuth2ErrorCode.INVALID_GRANT, "Invalid or expired authorization code"
            )

        grant = entry.grant
        if grant.client_id != client_id:
            return oauth2_err(OAuth2ErrorCode.INVALID_GRANT, "Client ID mismatch")

        if grant.redirect_uri != redirect_uri:
            return oauth2_err(OAuth2ErrorCode.INVALID_GRANT, "Redirect URI mismatch")

        client_result = await self._authenticate_client(client_id, client_secret)
        if isinstance(client_result, Err):
            return client_result
        client = client_result.value

        grant_result = self._check_grant_type(client, "authorization_code")
        if isinstance(grant_result, Err):
            return grant_result

        if grant.code_challenge:
            if not code_verifier:
                return oauth2_err(
                    OAuth2ErrorCode.INVALID_GRANT, "PKCE code_verifier required"
                )
            method = grant.code_challenge_method or "S256"
            if not verify_code_challenge(code_verifier, grant.code_challenge, method):
                return oauth2_err(OAuth2ErrorCode.INVALID_GRANT, "Invalid code_verifier")

        response = await self._issue_tokens(client, grant.scopes, user_id=grant.user_id)
        logger.info("Exchanged authorization code for client_id=%s", client_id)
        return Ok(response)

    @beartype
    async def refresh_access_token(
        self, refresh_token: str
    ) -> Result[TokenResponse, OAuth2Error]:
        """Refresh token grant with rotation (RFC 6749 section 6).

        The presented token is revoked with a conditional update; when two
        requests race on the same token only the one that performs the
        revocation receives a new pair.
        """
        now = self._clock()
        token = await self._store.get_token_by_refresh_hash(hash_token(refresh_token))
        if token is None or not token.is_refresh_active(now):
            return oauth2_err(OAuth2ErrorCode.INVALID_GRANT, "Invalid refresh token")

        client = await self._store.get_client(token.client_db_id)
        if client is None or not client.is_active:
            return oauth2_err(OAuth2ErrorCode.INVALID_GRANT, "Invalid refresh token")

        grant_result = self._check_grant_type(client, "refresh_token")
        if isinstance(grant_result, Err):
            return grant_result

        if not await self._store.revoke_token_if_active(token.id, now):
            logger.warning(
                "Refresh token reuse detected for client_id=%s", client.client_id
            )
            return oauth2_err(OAuth2ErrorCode.INVALID_GRANT, "Invalid refresh token")

        response = await self._issue_tokens(client, token.scopes, user_id=token.user_id)
        logger.info("Rotated refresh token for client_id=%s", client.client_id)
        return Ok(response)

    # Token management

    @beartype
    async def revoke_token(
        self,
        token: str,
        token_type_hint: str | None = None,
    ) -> Result[None, OAuth2Error]:
        """Revoke an access or refresh token (RFC 7009).

        Always succeeds; an unknown or already revoked token is not reported.
        The hint only decides which lookup is tried first.
        """
        token_hash = hash_token(token)
        lookups = [
            self._store.get_token_by_access_hash,
            self._store.get_token_by_refresh_hash,
        ]
        if token_type_hint == "refresh_token":
            lookups.reverse()

        for lookup in lookups:
            record = await lookup(token_hash)
            if record is None:
                continue
            if await self._store.revoke_token_if_active(record.id, self._clock()):
                logger.info("Revoked token id=%s", record.id)
            break

        return Ok(None)

    @beartype
    async def introspect_token(
        self, token: str
    ) -> Result[IntrospectionResponse, OAuth2Error]:
        """Token introspection (RFC 7662)."""
        found = await self._find_active_access_token(token)
        if found is None:
            return Ok(IntrospectionResponse(active=False))

        record, client = found
        return Ok(
            IntrospectionResponse(
                active=True,
                scope=scopes_to_string(record.scopes),
                client_id=client.client_id,
                exp=int(record.expires_at.timestamp()),
                iat=int(record.created_at.timestamp()),
                sub=record.user_id or str(client.id),
                aud=client.client_id,
                iss=self._settings.oauth2_issuer,
                token_type="Bearer",
                tenant_id=client.tenant_id,
            )
        )

    @beartype
    async def validate_access_token(
        self, token: str
    ) -> Result[AccessTokenValidation, OAuth2Error]:
        """Check an access token on behalf of a resource server."""
        found = await self._find_active_access_token(token)
        if found is None:
            return Ok(AccessTokenValidation(valid=False))

        record, client = found
        return Ok(
            AccessTokenValidation(
                valid=True,
                client_id=client.client_id,
                tenant_id=client.tenant_id,
                scopes=list(record.scopes),
                user_id=record.user_id,
                token_id=record.id,
            )
        )

    # Client management

    @beartype
    async def register_client(
        self,
        tenant_id: str,
        name: str,
        redirect_uris: list[str],
        scopes: list[str] | None = None,
        grant_types: list[str] | None = None,
        is_confidential: bool = True,
    ) -> Result[ClientRegistrationResponse, OAuth2Error]:
        """Register a client. The raw secret is returned here and nowhere else."""
        if not grant_types:
            grant_types = (
                ["client_credentials"] if is_confidential else list(PUBLIC_CLIENT_GRANT_TYPES)
            )
        grant_types = list(dict.fromkeys(grant_types))
        unsupported = [g for g in grant_types if g not in SUPPORTED_GRANT_TYPES]
        if unsupported:
            return oauth2_err(
                OAuth2ErrorCode.INVALID_REQUEST,
                f"Unsupported grant types: {', '.join(unsupported)}",
            )

        if not is_confidential and "client_credentials" in grant_types:
            return oauth2_err(
                OAuth2ErrorCode.INVALID_REQUEST,
                "Public clients cannot use the client_credentials grant",
            )

        scopes = list(dict.fromkeys(scopes or DEFAULT_API_SCOPES))
        unknown = ScopeValidator.unknown_scopes(scopes)
        if unknown:
            return oauth2_err(
                OAuth2ErrorCode.INVALID_SCOPE, f"Unknown scopes: {', '.join(unknown)}"
            )

        client_secret = generate_token_hex(CLIENT_SECRET_BYTES) if is_confidential else None
        now = self._clock()
        client = OAuthClient(
            id=uuid4(),
            client_id=f"{CLIENT_ID_PREFIX}{generate_token_hex(CLIENT_ID_BYTES)}",
            client_secret_hash=hash_client_secret(client_secret) if client_secret else None,
            name=name,
            redirect_uris=list(dict.fromkeys(redirect_uris)),
            scopes=scopes,
            grant_types=grant_types,
            is_confidential=is_confidential,
            is_active=True,
            tenant_id=tenant_id,
            created_at=now,
            updated_at=now,
        )
        await self._store.create_client(client)

        logger.info(
            "Registered %s client client_id=%s for tenant %s",
            "confidential" if is_confidential else "public",
            client.client_id,
            tenant_id,
        )
        return Ok(
            ClientRegistrationResponse(
                client=ClientResponse.from_client(client),
                client_secret=client_secret,
            )
        )

    @beartype
    async def rotate_client_secret(
        self, client_db_id: UUID
    ) -> Result[SecretRotationResponse, OAuth2Error]:
        """Issue a new secret and revoke every outstanding token of the client."""
        client = await self._store.get_client(client_db_id)
        if client is None:
            return oauth2_err(OAuth2ErrorCode.INVALID_CLIENT, "Client not found")
        if not client.is_confidential:
            return oauth2_err(
                OAuth2ErrorCode.INVALID_REQUEST, "Public clients do not have a secret"
            )

        client_secret = generate_token_hex(CLIENT_SECRET_BYTES)
        revoked = await self._store.rotate_client_secret(
            client_db_id, hash_client_secret(client_secret), self._clock()
        )

        logger.info(
            "Rotated secret for client_id=%s, revoked %d tokens",
            client.client_id,
            revoked,
        )
        return Ok(
            SecretRotationResponse(client_id=client.client_id, client_secret=client_secret)
        )

    @beartype
    async def deactivate_client(self, client_db_id: UUID) -> Result[None, OAuth2Error]:
        """Soft-disable a client. Its tokens stop validating immediately."""
        if not await self._store.set_client_active(client_db_id, False, self._clock()):
            return oauth2_err(OAuth2ErrorCode.INVALID_CLIENT, "Client not found")

        logger.info("Deactivated client id=%s", client_db_id)
        return Ok(None)

    # Metadata

    @beartype
    def discovery_document(self) -> DiscoveryDocument:
        """Authorization server metadata for the discovery endpoint."""
        issuer = self._settings.oauth2_issuer
        return DiscoveryDocument(
            issuer=issuer,
            authorization_endpoint=f"{issuer}/oauth/authorize",
            token_endpoint=f"{issuer}/oauth/token",
            revocation_endpoint=f"{issuer}/oauth/revoke",
            introspection_endpoint=f"{issuer}/oauth/introspect",
            response_types_supported=["code"],
            grant_types_supported=list(SUPPORTED_GRANT_TYPES),
            token_endpoint_auth_methods_supported=list(TOKEN_ENDPOINT_AUTH_METHODS),
            scopes_supported=list(ALL_SCOPES),
            code_challenge_methods_supported=list(PKCE_METHODS),
            subject_types_supported=["public"],
        )

    # Helpers

    @beartype
    async def _authenticate_client(
        self, client_id: str, client_secret: str | None
    ) -> Result[OAuthClient, OAuth2Error]:
        """Look up an active client and verify its secret if it is confidential."""
        client = await self._store.get_client_by_client_id(client_id)
        if client is None or not client.is_active:
            logger.warning("Client authentication failed for client_id=%s", client_id)
            return oauth2_err(OAuth2ErrorCode.INVALID_CLIENT, "Invalid client")

        if client.is_confidential:
            if not client_secret:
                logger.warning("Missing client secret for client_id=%s", client_id)
                return oauth2_err(OAuth2ErrorCode.INVALID_CLIENT, "Client secret required")
            if client.client_secret_hash is None or not verify_client_secret(
                client_secret, client.client_secret_hash
            ):
                logger.warning("Invalid client secret for client_id=%s", client_id)
                return oauth2_err(
                    OAuth2ErrorCode.INVALID_CLIENT, "Invalid client credentials"
                )

        return Ok(client)

    @beartype
    def _check_grant_type(
        self, client: OAuthClient, grant_type: str
    ) -> Result[None, OAuth2Error]:
        if grant_type not in client.grant_types:
            logger.warning(
                "Client client_id=%s not registered for grant %s",
                client.client_id,
                grant_type,
            )
            return oauth2_err(
                OAuth2ErrorCode.UNAUTHORIZED_CLIENT,
                "Client not authorized for this grant type",
            )
        return Ok(None)

    @beartype
    def _narrow_scopes(
        self, requested: list[str], client: OAuthClient
    ) -> Result[list[str], OAuth2Error]:
        allowed = client.scopes or DEFAULT_API_SCOPES
        granted = ScopeValidator.narrow_scopes(requested, allowed)
        if requested and not granted:
            return oauth2_err(
                OAuth2ErrorCode.INVALID_SCOPE, "None of the requested scopes are allowed"
            )
        return Ok(granted)

    @beartype
    async def _find_active_access_token(
        self, token: str
    ) -> tuple[OAuthToken, OAuthClient] | None:
        record = await self._store.get_token_by_access_hash(hash_token(token))
        if record is None or not record.is_access_active(self._clock()):
            return None

        client = await self._store.get_client(record.client_db_id)
        if client is None or not client.is_active:
            return None
        return record, client

    @beartype
    async def _issue_tokens(
        self,
        client: OAuthClient,
        scopes: list[str],
        user_id: str | None,
    ) -> TokenResponse:
        """Generate and persist a new token pair."""
        access_token = generate_token_hex(ACCESS_TOKEN_BYTES)
        refresh_token = generate_token_hex(REFRESH_TOKEN_BYTES)
        now = self._clock()

        await self._store.create_token(
            OAuthToken(
                id=uuid4(),
                client_db_id=client.id,
                user_id=user_id,
                access_token_hash=hash_token(access_token),
                refresh_token_hash=hash_token(refresh_token),
                scopes=list(scopes),
                expires_at=now + timedelta(seconds=self._access_token_ttl),
                refresh_expires_at=now + timedelta(seconds=self._refresh_token_ttl),
                created_at=now,
            )
        )

        return TokenResponse(
            access_token=access_token,
            expires_in=self._access_token_ttl,
            refresh_token=refresh_token,
            scope=scopes_to_string(scopes),
            tenant_id=client.tenant_id,
        )
