# DID Connect - Wallet DID Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Base Pydantic model configuration for all domain models.

Domain records are immutable; state changes such as redeeming a code or
deactivating a client produce a new instance via ``model_copy``.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class BaseModelConfig(BaseModel):
    """Base model with strict configuration for all domain entities.

    Enforces:
    - Immutability (frozen=True)
    - No extra fields allowed (extra="forbid")
    - Automatic whitespace stripping
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_assignment=True,
        str_strip_whitespace=True,
        validate_default=True,
    )


class VerbatimModel(BaseModel):
    """Immutable model that keeps string values exactly as received.

    Used for ledger-sourced data and the credentials derived from it, where
    a stripped value would no longer compare equal to the stored one.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
    )


class ExpiringModel(VerbatimModel):
    """Base model for credentials with a creation and expiry instant."""

    created_at: datetime = Field(..., description="When the credential was issued")
    expires_at: datetime = Field(..., description="First instant it is no longer valid")

    def is_expired(self, now: datetime) -> bool:
        """A credential is expired from ``expires_at`` onwards."""
        return now >= self.expires_at
