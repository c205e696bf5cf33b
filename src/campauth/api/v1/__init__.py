# CampAuth - Campground OAuth2 Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""API router aggregation.

The OAuth2 protocol endpoints live at the server root (``/oauth/...``) so
that their URLs match the discovery document; administrative routes are
versioned under ``/api/v1``.
"""

from fastapi import APIRouter

from .clients import router as clients_router
from .oauth2 import router as oauth2_router

# Create main v1 router
router = APIRouter(prefix="/api/v1")

# Admin endpoints
router.include_router(clients_router)


__all__ = ["router", "oauth2_router"]
