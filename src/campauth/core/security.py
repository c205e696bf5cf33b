# CampAuth - Campground OAuth2 Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Security utilities for token hashing, client secrets and session JWTs."""

import hashlib
import secrets

from beartype import beartype
from jose import JWTError, jwt  # type: ignore[import-untyped]
from passlib.context import CryptContext

from .config import Settings
from .result_types import Err, Ok, Result

# Client secret hashing
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


@beartype
def generate_token_hex(num_bytes: int) -> str:
    """Return ``num_bytes`` of CSPRNG output as lowercase hex."""
    return secrets.token_hex(num_bytes)


@beartype
def hash_token(token: str) -> str:
    """SHA-256 hex digest used as the persisted lookup key for a token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


@beartype
def hash_client_secret(secret: str) -> str:
    """Hash a client secret with argon2."""
    return pwd_context.hash(secret)


@beartype
def verify_client_secret(secret: str, secret_hash: str) -> bool:
    """Verify a client secret against its stored hash."""
    try:
        return bool(pwd_context.verify(secret, secret_hash))
    except ValueError:
        # Malformed or unknown hash format
        return False


@beartype
def constant_time_compare(a: str, b: str) -> bool:
    """Compare two strings in constant time."""
    return secrets.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


@beartype
def decode_user_jwt(token: str, settings: Settings) -> Result[str, str]:
    """Decode an end-user session JWT and return its subject."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        return Err(f"Invalid session token: {e}")

    sub = payload.get("sub")
    if not isinstance(sub, str) or not sub:
        return Err("Session token has no subject")
    return Ok(sub)
