# DID Connect - Wallet DID Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Domain records: clients, credentials and identity profiles."""

from datetime import datetime
from enum import Enum

from beartype import beartype
from pydantic import Field

from ..core.config import ClientConfig
from .base import BaseModelConfig, ExpiringModel, VerbatimModel


class Client(BaseModelConfig):
    """A registered relying-party application."""

    id: str = Field(..., min_length=1, description="Opaque client identifier")
    secret: str | None = Field(default=None, description="Optional client secret")
    name: str = Field(..., description="Display name")
    redirect_uris: frozenset[str] = Field(..., description="Allowed redirect URIs")
    active: bool = Field(default=True, description="Whether the client may authorize")

    @classmethod
    @beartype
    def from_config(cls, config: ClientConfig) -> "Client":
        return cls(
            id=config.id,
            secret=config.secret,
            name=config.name,
            redirect_uris=frozenset(config.redirect_uris),
            active=config.active,
        )


class IdentityProfile(VerbatimModel):
    """Canonical DID profile as resolved from the ledger."""

    did: str = Field(..., min_length=1, description="Decentralized identifier")
    name: str = Field(default="", description="Display name, may be empty")
    email: str = Field(default="", description="Email, may be empty")
    address: str = Field(..., min_length=1, description="Wallet address")


class AuthorizationCode(ExpiringModel):
    """Short-lived, single-use proof of a completed identity verification."""

    code: str = Field(..., min_length=1, description="Opaque code value")
    client_id: str = Field(..., min_length=1)
    subject_address: str = Field(..., min_length=1)
    did: str = Field(..., min_length=1)
    name: str = Field(default="", description="Profile name seen at verification")
    email: str = Field(default="", description="Profile email seen at verification")
    used: bool = Field(default=False, description="Set once, by atomic redemption")

    @beartype
    def is_redeemable_by(self, client_id: str, now: datetime) -> bool:
        if self.used or self.client_id != client_id:
            return False
        return not self.is_expired(now)


class AccessToken(ExpiringModel):
    """Bearer credential minted from a redeemed authorization code."""

    token: str = Field(..., min_length=1, description="Opaque token value")
    client_id: str = Field(..., min_length=1)
    subject_address: str = Field(..., min_length=1)
    did: str = Field(..., min_length=1)
    name: str = Field(default="", description="Profile name captured at issuance")
    email: str = Field(default="", description="Profile email captured at issuance")

    @beartype
    def snapshot_profile(self) -> IdentityProfile:
        """Profile fields captured when the originating code was verified."""
        return IdentityProfile(
            did=self.did,
            name=self.name,
            email=self.email,
            address=self.subject_address,
        )


class AssertionSource(str, Enum):
    """Where the fields of an identity assertion came from."""

    LEDGER = "ledger"
    SNAPSHOT = "snapshot"


class IdentityAssertion(VerbatimModel):
    """Identity served to a bearer-token holder."""

    did: str
    name: str
    email: str
    address: str
    source: AssertionSource = Field(default=AssertionSource.LEDGER)
