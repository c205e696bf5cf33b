# CampAuth - Campground OAuth2 Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Base Pydantic model configuration for all domain models.

Every model is immutable; state changes (revoking a token, rotating a
secret) produce a new instance via ``model_copy(update=...)`` which the
credential store then persists.
"""

from datetime import datetime, timezone
from uuid import UUID

from beartype import beartype
from pydantic import BaseModel, ConfigDict, Field


@beartype
def utc_now() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


@beartype
class BaseModelConfig(BaseModel):
    """Base model with strict configuration for all domain entities.

    Enforces:
    - Immutability (frozen=True)
    - No extra fields allowed (extra="forbid")
    - Validation on assignment
    - Automatic whitespace stripping
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_assignment=True,
        str_strip_whitespace=True,
        validate_default=True,
    )


@beartype
class IdentifiableModel(BaseModelConfig):
    """Base model with UUID identifier and creation timestamp."""

    id: UUID = Field(..., description="Unique identifier for the entity")
    created_at: datetime = Field(
        ..., description="Timestamp when the entity was created"
    )
