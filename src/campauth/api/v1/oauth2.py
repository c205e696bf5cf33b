# CampAuth - Campground OAuth2 Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""OAuth2 authorization endpoints."""

from urllib.parse import parse_qsl, unquote, urlencode, urlsplit, urlunsplit

from beartype import beartype
from fastapi import APIRouter, Depends, Form, Query, Security
from fastapi.responses import JSONResponse, RedirectResponse, Response
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from ...core.auth.oauth2 import OAuth2Error, OAuth2ErrorCode, TokenService
from ...core.auth.oauth2.pkce import is_valid_code_challenge
from ...core.auth.oauth2.scopes import parse_scopes
from ...core.logging_utils import get_logger
from ...core.result_types import Err, Result
from ...schemas.oauth2 import DiscoveryDocument, TokenResponse
from ..dependencies import get_authenticated_user, get_token_service, oauth2_error_response

logger = get_logger(__name__)

router = APIRouter(prefix="/oauth", tags=["oauth2"])

basic_auth = HTTPBasic(auto_error=False)

NO_STORE_HEADERS = {"Cache-Control": "no-store", "Pragma": "no-cache"}
TOKEN_TYPE_HINTS = ("access_token", "refresh_token")


@beartype
def _token_endpoint_response(result: Result[TokenResponse, OAuth2Error]) -> JSONResponse:
    """Render a grant result with the headers RFC 6749 requires."""
    if isinstance(result, Err):
        headers = dict(NO_STORE_HEADERS)
        if result.error.code == OAuth2ErrorCode.INVALID_CLIENT:
            headers["WWW-Authenticate"] = 'Basic realm="oauth"'
        return oauth2_error_response(result.error, headers=headers)

    return JSONResponse(
        content=result.value.model_dump(exclude_none=True),
        headers=NO_STORE_HEADERS,
    )


@beartype
def _invalid_request(description: str) -> JSONResponse:
    return oauth2_error_response(
        OAuth2Error(OAuth2ErrorCode.INVALID_REQUEST, description),
        headers=NO_STORE_HEADERS,
    )


@beartype
def _has_scheme_and_host(uri: str) -> bool:
    try:
        parts = urlsplit(uri)
    except ValueError:
        return False
    return bool(parts.scheme and parts.netloc)


@beartype
def _redirect_with(redirect_uri: str, params: dict[str, str | None]) -> RedirectResponse:
    """Append ``params`` to the redirect URI's query, keeping what is there."""
    parts = urlsplit(redirect_uri)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend((k, v) for k, v in params.items() if v is not None)
    url = urlunsplit(parts._replace(query=urlencode(query)))
    return RedirectResponse(url=url, status_code=302)


@beartype
def _redirect_with_error(
    redirect_uri: str, error: OAuth2Error, state: str | None
) -> RedirectResponse:
    return _redirect_with(
        redirect_uri,
        {
            "error": error.code.value,
            "error_description": error.description or None,
            "state": state,
        },
    )


@router.get("/authorize")
@beartype
async def authorize(
    client_id: str = Query(..., description="OAuth2 client ID"),
    response_type: str = Query(..., description="OAuth2 response type (only code)"),
    redirect_uri: str = Query(..., description="Redirect URI for response"),
    scope: str | None = Query(None, description="Space-separated list of scopes"),
    state: str | None = Query(None, description="State parameter for CSRF protection"),
    code_challenge: str | None = Query(None, description="PKCE code challenge"),
    code_challenge_method: str | None = Query(None, description="PKCE method (S256 or plain)"),
    nonce: str | None = Query(None, description="Accepted for OpenID clients; unused"),
    user_id: str = Depends(get_authenticated_user),
    service: TokenService = Depends(get_token_service),
) -> Response:
    """OAuth2 authorization endpoint.

    The caller is already authenticated; approving the request issues a
    code and redirects back to the client. An unknown client or an
    unregistered redirect URI is answered with a JSON error; every later
    failure is reported through the redirect.
    """
    if not _has_scheme_and_host(redirect_uri):
        return oauth2_error_response(
            OAuth2Error(OAuth2ErrorCode.INVALID_REQUEST, "Invalid redirect_uri")
        )

    # Errors are only redirected to a URI registered for this client
    target_result = await service.validate_redirect_target(client_id, redirect_uri)
    if isinstance(target_result, Err):
        return oauth2_error_response(target_result.error)

    if response_type != "code":
        return _redirect_with_error(
            redirect_uri,
            OAuth2Error(
                OAuth2ErrorCode.UNSUPPORTED_RESPONSE_TYPE,
                "Only 'code' response type is supported",
            ),
            state,
        )

    if code_challenge is not None and not is_valid_code_challenge(code_challenge):
        return _redirect_with_error(
            redirect_uri,
            OAuth2Error(OAuth2ErrorCode.INVALID_REQUEST, "Malformed code_challenge"),
            state,
        )

    try:
        result = await service.generate_authorization_code(
            client_id=client_id,
            redirect_uri=redirect_uri,
            scopes=parse_scopes(scope),
            user_id=user_id,
            code_challenge=code_challenge,
            code_challenge_method=code_challenge_method,
        )
    except Exception:
        logger.exception("Authorization request failed for client_id=%s", client_id)
        return _redirect_with_error(
            redirect_uri,
            OAuth2Error(OAuth2ErrorCode.SERVER_ERROR, "Internal server error"),
            state,
        )

    if isinstance(result, Err):
        return _redirect_with_error(redirect_uri, result.error, state)

    return _redirect_with(redirect_uri, {"code": result.value, "state": state})


@router.post("/token")
@beartype
async def token(
    grant_type: str | None = Form(None),
    client_id: str | None = Form(None),
    client_secret: str | None = Form(None),
    code: str | None = Form(None),
    redirect_uri: str | None = Form(None),
    refresh_token: str | None = Form(None),
    scope: str | None = Form(None),
    code_verifier: str | None = Form(None),
    basic: HTTPBasicCredentials | None = Security(basic_auth),
    service: TokenService = Depends(get_token_service),
) -> JSONResponse:
    """OAuth2 token endpoint.

    Supports the client_credentials, authorization_code and refresh_token
    grants. Client credentials may be posted in the form body or sent with
    HTTP Basic authentication.
    """
    if basic is not None:
        client_id = unquote(basic.username)
        client_secret = unquote(basic.password)

    if grant_type == "client_credentials":
        if not client_id or not client_secret:
            return _invalid_request("client_id and client_secret are required")
        result = await service.issue_client_credentials_token(
            client_id, client_secret, scope
        )

    elif grant_type == "authorization_code":
        if not code or not client_id or not redirect_uri:
            return _invalid_request("code, client_id, and redirect_uri are required")
        result = await service.exchange_authorization_code(
            code=code,
            client_id=client_id,
            redirect_uri=redirect_uri,
            client_secret=client_secret or None,
            code_verifier=code_verifier or None,
        )

    elif grant_type == "refresh_token":
        if not refresh_token:
            return _invalid_request("refresh_token is required")
        result = await service.refresh_access_token(refresh_token)

    elif not grant_type:
        return _invalid_request("grant_type is required")

    else:
        result = Err(
            OAuth2Error(
                OAuth2ErrorCode.UNSUPPORTED_GRANT_TYPE,
                f'Grant type "{grant_type}" is not supported',
            )
        )

    return _token_endpoint_response(result)


@router.post("/revoke")
@beartype
async def revoke(
    token: str | None = Form(None),
    token_type_hint: str | None = Form(None),
    service: TokenService = Depends(get_token_service),
) -> Response:
    """Token revocation endpoint (RFC 7009).

    Answers 200 whether or not the token existed.
    """
    if not token:
        return _invalid_request("token is required")

    if token_type_hint not in TOKEN_TYPE_HINTS:
        token_type_hint = None

    await service.revoke_token(token, token_type_hint)
    return Response(status_code=200)


@router.post("/introspect")
@beartype
async def introspect(
    token: str | None = Form(None),
    token_type_hint: str | None = Form(None),
    service: TokenService = Depends(get_token_service),
) -> JSONResponse:
    """Token introspection endpoint (RFC 7662)."""
    if not token:
        return _invalid_request("token is required")

    result = await service.introspect_token(token)
    return JSONResponse(
        content=result.unwrap().model_dump(exclude_none=True),
        headers=NO_STORE_HEADERS,
    )


@router.get("/.well-known/openid-configuration", response_model=DiscoveryDocument)
@beartype
async def discovery(
    service: TokenService = Depends(get_token_service),
) -> DiscoveryDocument:
    """Authorization server metadata."""
    return service.discovery_document()
