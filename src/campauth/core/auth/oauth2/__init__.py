# CampAuth - Campground OAuth2 Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""OAuth2 authorization server implementation."""

from .code_store import (
    AuthorizationCodeStore,
    InMemoryAuthorizationCodeStore,
    RedisAuthorizationCodeStore,
    run_periodic_sweep,
)
from .credential_store import (
    CredentialStore,
    InMemoryCredentialStore,
    PostgresCredentialStore,
)
from .errors import OAuth2Error, OAuth2ErrorCode, oauth2_err
from .scopes import (
    ALL_SCOPES,
    DEFAULT_API_SCOPES,
    SCOPES,
    OAuth2Scope,
    Scope,
    ScopeCategory,
    ScopeValidator,
)
from .server import TokenService

__all__ = [
    "TokenService",
    "OAuth2Error",
    "OAuth2ErrorCode",
    "oauth2_err",
    "AuthorizationCodeStore",
    "InMemoryAuthorizationCodeStore",
    "RedisAuthorizationCodeStore",
    "run_periodic_sweep",
    "CredentialStore",
    "InMemoryCredentialStore",
    "PostgresCredentialStore",
    "OAuth2Scope",
    "Scope",
    "ScopeCategory",
    "ScopeValidator",
    "SCOPES",
    "ALL_SCOPES",
    "DEFAULT_API_SCOPES",
]
