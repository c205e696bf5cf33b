# CampAuth - Campground OAuth2 Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Durable storage for OAuth2 clients and issued tokens.

Tokens are looked up by the SHA-256 hash of their raw value. The only
mutation a token row ever sees is ``revoked_at`` being set, and
``revoke_token_if_active`` does that conditionally so that two concurrent
refreshes of the same token cannot both succeed.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any
from uuid import UUID

from beartype import beartype

from ....models.oauth2 import OAuthClient, OAuthToken
from ...database import Database
from ...logging_utils import get_logger

logger = get_logger(__name__)


class CredentialStore(ABC):
    """Storage contract for clients and tokens."""

    @abstractmethod
    async def create_client(self, client: OAuthClient) -> None:
        """Persist a newly registered client."""

    @abstractmethod
    async def get_client(self, client_db_id: UUID) -> OAuthClient | None:
        """Look up a client by internal id."""

    @abstractmethod
    async def get_client_by_client_id(self, client_id: str) -> OAuthClient | None:
        """Look up a client by its public identifier."""

    @abstractmethod
    async def set_client_active(
        self, client_db_id: UUID, is_active: bool, now: datetime
    ) -> bool:
        """Enable or disable a client. Returns False if it does not exist."""

    @abstractmethod
    async def rotate_client_secret(
        self, client_db_id: UUID, secret_hash: str, now: datetime
    ) -> int:
        """Replace the secret hash and revoke every live token of the client.

        Returns the number of tokens revoked.
        """

    @abstractmethod
    async def create_token(self, token: OAuthToken) -> None:
        """Persist a newly issued token pair."""

    @abstractmethod
    async def get_token_by_access_hash(self, access_hash: str) -> OAuthToken | None:
        """Look up a token row by access token hash."""

    @abstractmethod
    async def get_token_by_refresh_hash(self, refresh_hash: str) -> OAuthToken | None:
        """Look up a token row by refresh token hash."""

    @abstractmethod
    async def revoke_token_if_active(self, token_id: UUID, now: datetime) -> bool:
        """Set ``revoked_at`` only if the row is not already revoked.

        Returns True if this call performed the revocation.
        """


class InMemoryCredentialStore(CredentialStore):
    """Process-local credential store."""

    def __init__(self) -> None:
        self._clients: dict[UUID, OAuthClient] = {}
        self._client_ids: dict[str, UUID] = {}
        self._tokens: dict[UUID, OAuthToken] = {}
        self._access_index: dict[str, UUID] = {}
        self._refresh_index: dict[str, UUID] = {}
        self._lock = asyncio.Lock()

    @beartype
    async def create_client(self, client: OAuthClient) -> None:
        async with self._lock:
            if client.client_id in self._client_ids:
                raise ValueError(f"Duplicate client_id: {client.client_id}")
            self._clients[client.id] = client
            self._client_ids[client.client_id] = client.id

    @beartype
    async def get_client(self, client_db_id: UUID) -> OAuthClient | None:
        return self._clients.get(client_db_id)

    @beartype
    async def get_client_by_client_id(self, client_id: str) -> OAuthClient | None:
        client_db_id = self._client_ids.get(client_id)
        return self._clients.get(client_db_id) if client_db_id else None

    @beartype
    async def set_client_active(
        self, client_db_id: UUID, is_active: bool, now: datetime
    ) -> bool:
        async with self._lock:
            client = self._clients.get(client_db_id)
            if client is None:
                return False
            self._clients[client_db_id] = client.model_copy(
                update={"is_active": is_active, "updated_at": now}
            )
            return True

    @beartype
    async def rotate_client_secret(
        self, client_db_id: UUID, secret_hash: str, now: datetime
    ) -> int:
        async with self._lock:
            client = self._clients.get(client_db_id)
            if client is None:
                raise LookupError(f"Client {client_db_id} not found")
            self._clients[client_db_id] = client.model_copy(
                update={"client_secret_hash": secret_hash, "updated_at": now}
            )
            revoked = 0
            for token_id, token in self._tokens.items():
                if token.client_db_id == client_db_id and not token.is_revoked:
                    self._tokens[token_id] = token.model_copy(update={"revoked_at": now})
                    revoked += 1
            return revoked

    @beartype
    async def create_token(self, token: OAuthToken) -> None:
        async with self._lock:
            self._tokens[token.id] = token
            self._access_index[token.access_token_hash] = token.id
            if token.refresh_token_hash is not None:
                self._refresh_index[token.refresh_token_hash] = token.id

    @beartype
    async def get_token_by_access_hash(self, access_hash: str) -> OAuthToken | None:
        token_id = self._access_index.get(access_hash)
        return self._tokens.get(token_id) if token_id else None

    @beartype
    async def get_token_by_refresh_hash(self, refresh_hash: str) -> OAuthToken | None:
        token_id = self._refresh_index.get(refresh_hash)
        return self._tokens.get(token_id) if token_id else None

    @beartype
    async def revoke_token_if_active(self, token_id: UUID, now: datetime) -> bool:
        async with self._lock:
            token = self._tokens.get(token_id)
            if token is None or token.is_revoked:
                return False
            self._tokens[token_id] = token.model_copy(update={"revoked_at": now})
            return True


_CLIENT_COLUMNS = (
    "id, client_id, client_secret_hash, name, redirect_uris, scopes, grant_types, "
    "is_confidential, is_active, tenant_id, created_at, updated_at"
)
_TOKEN_COLUMNS = (
    "id, client_db_id, user_id, access_token_hash, refresh_token_hash, scopes, "
    "expires_at, refresh_expires_at, revoked_at, created_at"
)


def _affected_rows(status: str) -> int:
    """Parse the row count from an asyncpg command tag such as ``UPDATE 3``."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except ValueError:
        return 0


class PostgresCredentialStore(CredentialStore):
    """Credential store backed by the ``oauth_clients``/``oauth_tokens`` tables."""

    def __init__(self, db: Database) -> None:
        self._db = db

    @staticmethod
    def _client_from_row(row: Any) -> OAuthClient:
        data = dict(row)
        for column in ("redirect_uris", "scopes", "grant_types"):
            data[column] = list(data.get(column) or [])
        return OAuthClient(**data)

    @staticmethod
    def _token_from_row(row: Any) -> OAuthToken:
        data = dict(row)
        data["scopes"] = list(data.get("scopes") or [])
        return OAuthToken(**data)

    @beartype
    async def create_client(self, client: OAuthClient) -> None:
        await self._db.execute(
            f"""
            INSERT INTO oauth_clients ({_CLIENT_COLUMNS})
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12)
            """,
            client.id,
            client.client_id,
            client.client_secret_hash,
            client.name,
            client.redirect_uris,
            client.scopes,
            client.grant_types,
            client.is_confidential,
            client.is_active,
            client.tenant_id,
            client.created_at,
            client.updated_at,
        )

    @beartype
    async def get_client(self, client_db_id: UUID) -> OAuthClient | None:
        row = await self._db.fetchrow(
            f"SELECT {_CLIENT_COLUMNS} FROM oauth_clients WHERE id = $1",
            client_db_id,
        )
        return self._client_from_row(row) if row else None

    @beartype
    async def get_client_by_client_id(self, client_id: str) -> OAuthClient | None:
        row = await self._db.fetchrow(
            f"SELECT {_CLIENT_COLUMNS} FROM oauth_clients WHERE client_id = $1",
            client_id,
        )
        return self._client_from_row(row) if row else None

    @beartype
    async def set_client_active(
        self, client_db_id: UUID, is_active: bool, now: datetime
    ) -> bool:
        status = await self._db.execute(
            """
            UPDATE oauth_clients
            SET is_active = $2, updated_at = $3
            WHERE id = $1
            """,
            client_db_id,
            is_active,
            now,
        )
        return _affected_rows(status) > 0

    @beartype
    async def rotate_client_secret(
        self, client_db_id: UUID, secret_hash: str, now: datetime
    ) -> int:
        async with self._db.transaction() as conn:
            status = await conn.execute(
                """
                UPDATE oauth_clients
                SET client_secret_hash = $2, updated_at = $3
                WHERE id = $1
                """,
                client_db_id,
                secret_hash,
                now,
            )
            if _affected_rows(status) == 0:
                raise LookupError(f"Client {client_db_id} not found")

            status = await conn.execute(
                """
                UPDATE oauth_tokens
                SET revoked_at = $2
                WHERE client_db_id = $1 AND revoked_at IS NULL
                """,
                client_db_id,
                now,
            )
        return _affected_rows(status)

    @beartype
    async def create_token(self, token: OAuthToken) -> None:
        await self._db.execute(
            f"""
            INSERT INTO oauth_tokens ({_TOKEN_COLUMNS})
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
            """,
            token.id,
            token.client_db_id,
            token.user_id,
            token.access_token_hash,
            token.refresh_token_hash,
            token.scopes,
            token.expires_at,
            token.refresh_expires_at,
            token.revoked_at,
            token.created_at,
        )

    @beartype
    async def get_token_by_access_hash(self, access_hash: str) -> OAuthToken | None:
        row = await self._db.fetchrow(
            f"SELECT {_TOKEN_COLUMNS} FROM oauth_tokens WHERE access_token_hash = $1",
            access_hash,
        )
        return self._token_from_row(row) if row else None

    @beartype
    async def get_token_by_refresh_hash(self, refresh_hash: str) -> OAuthToken | None:
        row = await self._db.fetchrow(
            f"SELECT {_TOKEN_COLUMNS} FROM oauth_tokens WHERE refresh_token_hash = $1",
            refresh_hash,
        )
        return self._token_from_row(row) if row else None

    @beartype
    async def revoke_token_if_active(self, token_id: UUID, now: datetime) -> bool:
        revoked_id = await self._db.fetchval(
            """
            UPDATE oauth_tokens
            SET revoked_at = $2
            WHERE id = $1 AND revoked_at IS NULL
            RETURNING id
            """,
            token_id,
            now,
        )
        return revoked_id is not None
