# CampAuth - Campground OAuth2 Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Health check schemas."""

from typing import Literal

from beartype import beartype
from pydantic import Field

from ..models.base import BaseModelConfig


@beartype
class HealthResponse(BaseModelConfig):
    """Liveness check response."""

    status: Literal["healthy"] = Field(default="healthy")
    version: str = Field(..., description="Application version")
    environment: str = Field(..., description="Deployment environment")
