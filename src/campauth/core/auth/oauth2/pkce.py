# CampAuth - Campground OAuth2 Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Proof Key for Code Exchange (RFC 7636) helpers."""

import base64
import hashlib
import re
import secrets
import string

from beartype import beartype

PKCE_METHODS: tuple[str, ...] = ("S256", "plain")

# Unreserved URI characters (RFC 3986 section 2.3)
VERIFIER_CHARSET = string.ascii_uppercase + string.ascii_lowercase + string.digits + "-._~"
MIN_VERIFIER_LENGTH = 43
MAX_VERIFIER_LENGTH = 128

_CHALLENGE_PATTERN = re.compile(r"^[A-Za-z0-9\-._~]+$")


@beartype
def generate_code_verifier(length: int = 64) -> str:
    """Generate a random code verifier of ``length`` unreserved characters."""
    if not MIN_VERIFIER_LENGTH <= length <= MAX_VERIFIER_LENGTH:
        raise ValueError(
            f"Code verifier length must be between {MIN_VERIFIER_LENGTH} "
            f"and {MAX_VERIFIER_LENGTH}, got {length}"
        )
    return "".join(secrets.choice(VERIFIER_CHARSET) for _ in range(length))


@beartype
def generate_code_challenge(verifier: str, method: str = "S256") -> str:
    """Derive the code challenge for ``verifier``.

    ``plain`` returns the verifier unchanged; ``S256`` returns the unpadded
    base64url encoding of its SHA-256 digest.
    """
    if method == "plain":
        return verifier
    if method == "S256":
        digest = hashlib.sha256(verifier.encode("ascii")).digest()
        return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    raise ValueError(f"Unsupported code challenge method: {method}")


@beartype
def verify_code_challenge(verifier: str, challenge: str, method: str = "S256") -> bool:
    """Recompute the challenge from ``verifier`` and compare for exact equality."""
    try:
        expected = generate_code_challenge(verifier, method)
    except ValueError:
        return False
    return secrets.compare_digest(expected.encode("utf-8"), challenge.encode("utf-8"))


@beartype
def is_valid_code_challenge(value: str) -> bool:
    """Check that a challenge uses only unreserved URI characters."""
    return bool(_CHALLENGE_PATTERN.fullmatch(value))
