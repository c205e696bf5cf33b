# CampAuth - Campground OAuth2 Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""FastAPI dependencies for authentication and service access.

This module provides reusable dependencies that can be injected into
API endpoints for cross-cutting concerns.
"""

from collections.abc import Awaitable, Callable

from beartype import beartype
from fastapi import Depends, Header, HTTPException, Request, Security, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..core.auth.oauth2 import OAuth2Error, OAuth2ErrorCode, ScopeValidator, TokenService
from ..core.config import Settings
from ..core.logging_utils import get_logger
from ..core.security import constant_time_compare, decode_user_jwt
from ..schemas.oauth2 import AccessTokenValidation

logger = get_logger(__name__)

# Security scheme; missing credentials are reported as 401 by the dependencies
security = HTTPBearer(auto_error=False)


class OAuth2HTTPException(HTTPException):
    """HTTP exception whose body is an OAuth2 error object."""

    def __init__(
        self,
        error: OAuth2Error,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(
            status_code=error.status_code,
            detail=error.description,
            headers=headers,
        )
        self.error = error


@beartype
def oauth2_error_response(
    error: OAuth2Error, headers: dict[str, str] | None = None
) -> JSONResponse:
    """Render an OAuth2 error as a JSON response."""
    return JSONResponse(
        status_code=error.status_code,
        content=error.to_dict(),
        headers=headers,
    )


@beartype
def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    settings: Settings = request.app.state.settings
    return settings


@beartype
def get_token_service(request: Request) -> TokenService:
    """Token service built during application startup."""
    service: TokenService = request.app.state.token_service
    return service


@beartype
async def get_authenticated_user(
    credentials: HTTPAuthorizationCredentials | None = Security(security),
    settings: Settings = Depends(get_app_settings),
) -> str:
    """Validate the end-user session JWT and return the user id.

    Raises:
        HTTPException: If the token is missing, invalid or expired
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = decode_user_jwt(credentials.credentials, settings)
    if result.is_err():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return result.unwrap()


@beartype
async def require_admin_key(
    x_admin_key: str | None = Header(None),
    settings: Settings = Depends(get_app_settings),
) -> None:
    """Guard for client administration endpoints."""
    if not settings.admin_api_key:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Client administration is disabled",
        )

    if x_admin_key is None or not constant_time_compare(x_admin_key, settings.admin_api_key):
        logger.warning("Rejected client administration request with invalid admin key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin key",
        )


def require_scopes(
    *required: str,
) -> Callable[..., Awaitable[AccessTokenValidation]]:
    """Build a dependency that admits only access tokens holding ``required``.

    Write scopes imply the matching read scope.

    Example:
        @router.get("/reservations", dependencies=[Depends(require_scopes("reservations:read"))])
    """

    @beartype
    async def dependency(
        credentials: HTTPAuthorizationCredentials | None = Security(security),
        service: TokenService = Depends(get_token_service),
    ) -> AccessTokenValidation:
        challenge = 'Bearer error="invalid_token"'
        if credentials is None:
            raise OAuth2HTTPException(
                OAuth2Error(OAuth2ErrorCode.INVALID_TOKEN, "Missing access token"),
                headers={"WWW-Authenticate": challenge},
            )

        validation = (await service.validate_access_token(credentials.credentials)).unwrap()
        if not validation.valid:
            raise OAuth2HTTPException(
                OAuth2Error(OAuth2ErrorCode.INVALID_TOKEN, "Invalid or expired access token"),
                headers={"WWW-Authenticate": challenge},
            )

        missing = [
            scope
            for scope in required
            if not ScopeValidator.check_scope_permission(validation.scopes, scope)
        ]
        if missing:
            raise OAuth2HTTPException(
                OAuth2Error(
                    OAuth2ErrorCode.INSUFFICIENT_SCOPE,
                    f"Requires scope: {' '.join(missing)}",
                ),
                headers={
                    "WWW-Authenticate": (
                        f'Bearer error="insufficient_scope", scope="{" ".join(required)}"'
                    )
                },
            )

        return validation

    return dependency
