# CampAuth - Campground OAuth2 Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""OAuth2 request and response schemas."""

from datetime import datetime
from typing import Literal
from urllib.parse import urlparse
from uuid import UUID

from beartype import beartype
from pydantic import Field, field_validator

from ..models.base import BaseModelConfig
from ..models.oauth2 import OAuthClient


@beartype
class TokenResponse(BaseModelConfig):
    """Successful token endpoint response (RFC 6749 section 5.1)."""

    access_token: str = Field(..., description="Bearer access token")
    token_type: Literal["Bearer"] = Field(default="Bearer")
    expires_in: int = Field(..., gt=0, description="Access token lifetime in seconds")
    refresh_token: str | None = Field(default=None)
    scope: str = Field(..., description="Space-delimited granted scopes")
    tenant_id: str = Field(..., description="Campground the token is bound to")


@beartype
class OAuth2ErrorResponse(BaseModelConfig):
    """Error body returned by the OAuth2 endpoints."""

    error: str
    error_description: str | None = None


@beartype
class IntrospectionResponse(BaseModelConfig):
    """Token introspection response (RFC 7662)."""

    active: bool
    scope: str | None = None
    client_id: str | None = None
    exp: int | None = None
    iat: int | None = None
    sub: str | None = None
    aud: str | None = None
    iss: str | None = None
    token_type: str | None = None
    tenant_id: str | None = None


@beartype
class AccessTokenValidation(BaseModelConfig):
    """Result of validating an access token for a resource server."""

    valid: bool
    client_id: str | None = None
    tenant_id: str | None = None
    scopes: list[str] = Field(default_factory=list)
    user_id: str | None = None
    token_id: UUID | None = None


@beartype
class DiscoveryDocument(BaseModelConfig):
    """Authorization server metadata."""

    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    revocation_endpoint: str
    introspection_endpoint: str
    response_types_supported: list[str]
    grant_types_supported: list[str]
    token_endpoint_auth_methods_supported: list[str]
    scopes_supported: list[str]
    code_challenge_methods_supported: list[str]
    subject_types_supported: list[str]


@beartype
class ClientRegistrationRequest(BaseModelConfig):
    """Admin request to register a new client."""

    tenant_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=255)
    redirect_uris: list[str] = Field(default_factory=list, max_length=20)
    scopes: list[str] | None = Field(default=None)
    grant_types: list[str] | None = Field(default=None)
    is_confidential: bool = Field(default=True)

    @field_validator("redirect_uris")
    @classmethod
    def validate_redirect_uris(cls, v: list[str]) -> list[str]:
        """Redirect URIs must be absolute (scheme and host)."""
        for uri in v:
            parsed = urlparse(uri)
            if not parsed.scheme or not parsed.netloc:
                raise ValueError(f"Invalid redirect URI: {uri}")
        return v


@beartype
class ClientResponse(BaseModelConfig):
    """Public view of a registered client; never includes the secret hash."""

    id: UUID
    client_id: str
    name: str
    redirect_uris: list[str]
    scopes: list[str]
    grant_types: list[str]
    is_confidential: bool
    is_active: bool
    tenant_id: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_client(cls, client: OAuthClient) -> "ClientResponse":
        """Build the public view of a client."""
        return cls(**client.model_dump(exclude={"client_secret_hash"}))


@beartype
class ClientRegistrationResponse(BaseModelConfig):
    """Registered client plus its secret, shown exactly once."""

    client: ClientResponse
    client_secret: str | None = Field(
        default=None, description="Raw secret; absent for public clients"
    )


@beartype
class SecretRotationResponse(BaseModelConfig):
    """Newly issued client secret, shown exactly once."""

    client_id: str
    client_secret: str
