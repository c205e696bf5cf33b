# CampAuth - Campground OAuth2 Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""OAuth2 protocol error values (RFC 6749 section 5.2)."""

from enum import Enum

from attrs import field, frozen
from beartype import beartype

from ...result_types import Err


class OAuth2ErrorCode(str, Enum):
    """Protocol error codes returned to clients."""

    INVALID_REQUEST = "invalid_request"
    INVALID_CLIENT = "invalid_client"
    INVALID_GRANT = "invalid_grant"
    INVALID_SCOPE = "invalid_scope"
    UNAUTHORIZED_CLIENT = "unauthorized_client"
    UNSUPPORTED_GRANT_TYPE = "unsupported_grant_type"
    UNSUPPORTED_RESPONSE_TYPE = "unsupported_response_type"
    INVALID_TOKEN = "invalid_token"
    ACCESS_DENIED = "access_denied"
    INSUFFICIENT_SCOPE = "insufficient_scope"
    SERVER_ERROR = "server_error"


_STATUS_CODES: dict[OAuth2ErrorCode, int] = {
    OAuth2ErrorCode.INVALID_REQUEST: 400,
    OAuth2ErrorCode.INVALID_CLIENT: 401,
    OAuth2ErrorCode.INVALID_GRANT: 400,
    OAuth2ErrorCode.INVALID_SCOPE: 400,
    OAuth2ErrorCode.UNAUTHORIZED_CLIENT: 400,
    OAuth2ErrorCode.UNSUPPORTED_GRANT_TYPE: 400,
    OAuth2ErrorCode.UNSUPPORTED_RESPONSE_TYPE: 400,
    OAuth2ErrorCode.INVALID_TOKEN: 401,
    OAuth2ErrorCode.ACCESS_DENIED: 401,
    OAuth2ErrorCode.INSUFFICIENT_SCOPE: 403,
    OAuth2ErrorCode.SERVER_ERROR: 500,
}


@frozen
class OAuth2Error:
    """A protocol failure: error code plus human-readable description."""

    code: OAuth2ErrorCode = field()
    description: str = field(default="")

    @property
    def status_code(self) -> int:
        """HTTP status the token endpoint answers with."""
        return _STATUS_CODES[self.code]

    @beartype
    def to_dict(self) -> dict[str, str]:
        """Render as an RFC 6749 error body."""
        body = {"error": self.code.value}
        if self.description:
            body["error_description"] = self.description
        return body


@beartype
def oauth2_err(code: OAuth2ErrorCode, description: str = "") -> Err[OAuth2Error]:
    """Shorthand for ``Err(OAuth2Error(code, description))``."""
    return Err(OAuth2Error(code, description))

