# CampAuth - Campground OAuth2 Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""OAuth2 domain models: clients, issued tokens and pending authorization codes."""

from datetime import datetime
from uuid import UUID

from beartype import beartype
from pydantic import Field, model_validator

from .base import BaseModelConfig, IdentifiableModel


@beartype
class OAuthClient(IdentifiableModel):
    """A registered OAuth2 client belonging to one tenant (campground)."""

    client_id: str = Field(..., min_length=1, description="Public client identifier")
    client_secret_hash: str | None = Field(
        default=None, description="argon2 hash of the secret; None for public clients"
    )
    name: str = Field(..., min_length=1, max_length=255)
    redirect_uris: list[str] = Field(default_factory=list)
    scopes: list[str] = Field(default_factory=list, description="Scopes the client may hold")
    grant_types: list[str] = Field(default_factory=list)
    is_confidential: bool = Field(default=True)
    is_active: bool = Field(default=True)
    tenant_id: str = Field(..., min_length=1, description="Owning campground id")
    updated_at: datetime = Field(...)

    @model_validator(mode="after")
    def public_clients_hold_no_secret(self) -> "OAuthClient":
        """A non-confidential client never carries a secret hash."""
        if not self.is_confidential and self.client_secret_hash is not None:
            raise ValueError("Public clients cannot have a client secret")
        return self


@beartype
class OAuthToken(IdentifiableModel):
    """A persisted token pair. Only hashes of the raw values are stored."""

    client_db_id: UUID = Field(..., description="Internal id of the owning client")
    user_id: str | None = Field(
        default=None, description="Resource owner; None for machine-to-machine grants"
    )
    access_token_hash: str = Field(..., min_length=64, max_length=64)
    refresh_token_hash: str | None = Field(default=None, min_length=64, max_length=64)
    scopes: list[str] = Field(default_factory=list)
    expires_at: datetime = Field(...)
    refresh_expires_at: datetime | None = Field(default=None)
    revoked_at: datetime | None = Field(default=None)

    @property
    def is_revoked(self) -> bool:
        """Revocation is terminal."""
        return self.revoked_at is not None

    def is_access_active(self, now: datetime) -> bool:
        """Access token is neither revoked nor expired."""
        return not self.is_revoked and self.expires_at > now

    def is_refresh_active(self, now: datetime) -> bool:
        """Refresh token is present, not revoked and not expired."""
        return (
            not self.is_revoked
            and self.refresh_token_hash is not None
            and self.refresh_expires_at is not None
            and self.refresh_expires_at > now
        )


@beartype
class AuthorizationGrant(BaseModelConfig):
    """What the resource owner approved at the authorization endpoint."""

    client_id: str = Field(..., min_length=1)
    redirect_uri: str = Field(..., min_length=1)
    scopes: list[str] = Field(default_factory=list)
    user_id: str = Field(..., min_length=1)
    code_challenge: str | None = Field(default=None)
    code_challenge_method: str | None = Field(default=None)


@beartype
class AuthorizationCodeEntry(BaseModelConfig):
    """A pending authorization code. The code itself is the lookup key."""

    code: str = Field(..., min_length=1)
    grant: AuthorizationGrant
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        """Check whether the code is past its lifetime."""
        return self.expires_at <= now
