# CampAuth - Campground OAuth2 Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""OAuth2 scope definitions and validation."""

from enum import Enum
from typing import Dict, List, Optional, Set

from beartype import beartype


class OAuth2Scope(str, Enum):
    """Every scope the authorization server knows about."""

    RESERVATIONS_READ = "reservations:read"
    RESERVATIONS_WRITE = "reservations:write"
    GUESTS_READ = "guests:read"
    GUESTS_WRITE = "guests:write"
    SITES_READ = "sites:read"
    SITES_WRITE = "sites:write"
    WEBHOOKS_READ = "webhooks:read"
    WEBHOOKS_WRITE = "webhooks:write"
    TOKENS_READ = "tokens:read"
    TOKENS_WRITE = "tokens:write"
    OFFLINE_ACCESS = "offline_access"
    OPENID = "openid"
    PROFILE = "profile"


class ScopeCategory(str, Enum):
    """Scope categories."""

    RESERVATIONS = "reservations"
    GUESTS = "guests"
    SITES = "sites"
    WEBHOOKS = "webhooks"
    TOKENS = "tokens"
    IDENTITY = "identity"


class Scope:
    """OAuth2 scope definition."""

    def __init__(
        self,
        name: str,
        description: str,
        category: ScopeCategory,
        includes: Optional[List[str]] = None,
    ) -> None:
        """Initialize scope.

        Args:
            name: Scope identifier
            description: Human-readable description
            category: Scope category
            includes: List of scopes this scope includes
        """
        self.name = name
        self.description = description
        self.category = category
        self.includes = includes or []


def _resource_scopes(
    resource: str, category: ScopeCategory, noun: str
) -> Dict[str, Scope]:
    read = f"{resource}:read"
    write = f"{resource}:write"
    return {
        read: Scope(read, f"Read {noun}", category),
        write: Scope(write, f"Create and update {noun}", category, includes=[read]),
    }


# Define all available scopes
SCOPES: Dict[str, Scope] = {
    **_resource_scopes("reservations", ScopeCategory.RESERVATIONS, "reservations"),
    **_resource_scopes("guests", ScopeCategory.GUESTS, "guest records"),
    **_resource_scopes("sites", ScopeCategory.SITES, "sites and site classes"),
    **_resource_scopes("webhooks", ScopeCategory.WEBHOOKS, "webhook subscriptions"),
    **_resource_scopes("tokens", ScopeCategory.TOKENS, "API tokens"),
    "offline_access": Scope(
        "offline_access",
        "Obtain refresh tokens for long-lived access",
        ScopeCategory.IDENTITY,
    ),
    "openid": Scope(
        "openid",
        "Authenticate the end user",
        ScopeCategory.IDENTITY,
    ),
    "profile": Scope(
        "profile",
        "Read the end user's basic profile",
        ScopeCategory.IDENTITY,
    ),
}

ALL_SCOPES: List[str] = [scope.value for scope in OAuth2Scope]

# Granted to new clients when registration names no scopes
DEFAULT_API_SCOPES: List[str] = [
    name for name, scope in SCOPES.items() if scope.category != ScopeCategory.IDENTITY
]


@beartype
def parse_scopes(scope: Optional[str]) -> List[str]:
    """Split a space-delimited scope string, dropping blanks and duplicates."""
    if not scope:
        return []
    return list(dict.fromkeys(scope.split()))


@beartype
def scopes_to_string(scopes: List[str]) -> str:
    """Join scopes into the space-delimited wire form."""
    return " ".join(scopes)


class ScopeValidator:
    """Validate and expand OAuth2 scopes."""

    @staticmethod
    @beartype
    def narrow_scopes(requested: List[str], allowed: List[str]) -> List[str]:
        """Narrow requested scopes to those the client may hold.

        An empty request yields the full allowed set. Otherwise the result is
        the intersection, in request order, and may be empty; callers decide
        whether that is an ``invalid_scope`` failure.
        """
        if not requested:
            return list(allowed)
        allowed_set = set(allowed)
        return [s for s in requested if s in allowed_set]

    @staticmethod
    @beartype
    def expand_scopes(scopes: List[str]) -> Set[str]:
        """Expand scopes to include all dependencies.

        Args:
            scopes: List of scope names

        Returns:
            Set of expanded scope names including all dependencies
        """
        expanded: Set[str] = set()

        def add_scope_with_includes(scope_name: str) -> None:
            if scope_name in expanded:
                return

            expanded.add(scope_name)

            scope = SCOPES.get(scope_name)
            if scope and scope.includes:
                for included in scope.includes:
                    add_scope_with_includes(included)

        for scope in scopes:
            add_scope_with_includes(scope)

        return expanded

    @staticmethod
    @beartype
    def check_scope_permission(
        token_scopes: List[str],
        required_scope: str,
    ) -> bool:
        """Check if token has required scope (directly or through inclusion)."""
        expanded = ScopeValidator.expand_scopes(token_scopes)
        return required_scope in expanded

    @staticmethod
    @beartype
    def unknown_scopes(scopes: List[str]) -> List[str]:
        """Return the scopes that are not in the catalogue."""
        return [s for s in scopes if s not in SCOPES]
