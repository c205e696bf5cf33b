# CampAuth - Campground OAuth2 Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""OAuth2 client administration endpoints."""

from uuid import UUID

from beartype import beartype
from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse

from ...core.auth.oauth2 import OAuth2Error, OAuth2ErrorCode, TokenService
from ...core.result_types import Err
from ...schemas.oauth2 import (
    ClientRegistrationRequest,
    ClientRegistrationResponse,
    OAuth2ErrorResponse,
    SecretRotationResponse,
)
from ..dependencies import get_token_service, oauth2_error_response, require_admin_key

router = APIRouter(
    prefix="/oauth/clients",
    tags=["oauth2-clients"],
    dependencies=[Depends(require_admin_key)],
    responses={
        400: {"model": OAuth2ErrorResponse},
        401: {"model": OAuth2ErrorResponse},
        404: {"model": OAuth2ErrorResponse},
    },
)


@beartype
def _admin_error_response(error: OAuth2Error) -> JSONResponse:
    """Unknown clients are a 404 here rather than an authentication failure."""
    if error.code == OAuth2ErrorCode.INVALID_CLIENT:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=error.to_dict())
    return oauth2_error_response(error)


@router.post(
    "",
    response_model=ClientRegistrationResponse,
    status_code=status.HTTP_201_CREATED,
)
@beartype
async def register_client(
    payload: ClientRegistrationRequest,
    service: TokenService = Depends(get_token_service),
) -> ClientRegistrationResponse | JSONResponse:
    """Register a client. The secret in the response is not retrievable later."""
    result = await service.register_client(
        tenant_id=payload.tenant_id,
        name=payload.name,
        redirect_uris=payload.redirect_uris,
        scopes=payload.scopes,
        grant_types=payload.grant_types,
        is_confidential=payload.is_confidential,
    )
    if isinstance(result, Err):
        return _admin_error_response(result.error)
    return result.value


@router.post("/{client_db_id}/rotate-secret", response_model=SecretRotationResponse)
@beartype
async def rotate_client_secret(
    client_db_id: UUID,
    service: TokenService = Depends(get_token_service),
) -> SecretRotationResponse | JSONResponse:
    """Issue a new secret and revoke every outstanding token of the client."""
    result = await service.rotate_client_secret(client_db_id)
    if isinstance(result, Err):
        return _admin_error_response(result.error)
    return result.value


@router.post("/{client_db_id}/deactivate", status_code=status.HTTP_204_NO_CONTENT)
@beartype
async def deactivate_client(
    client_db_id: UUID,
    service: TokenService = Depends(get_token_service),
) -> Response:
    """Soft-disable a client."""
    result = await service.deactivate_client(client_db_id)
    if isinstance(result, Err):
        return _admin_error_response(result.error)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
