# DID Connect - Wallet DID Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Request and response schemas for the authorization endpoints."""

from urllib.parse import quote, urlencode

from beartype import beartype
from pydantic import BaseModel, ConfigDict, Field

from ..models.base import BaseModelConfig, VerbatimModel

# ":" and "/" are legal inside a query component and keep forwarded URIs readable.
_QUERY_SAFE = ":/"


class LoginHandoff(VerbatimModel):
    """Parameters forwarded unchanged from ``/authorize`` to the login page."""

    client_id: str
    redirect_uri: str
    response_type: str
    state: str | None = None

    @beartype
    def query_params(self) -> list[tuple[str, str]]:
        params = [("client_id", self.client_id), ("redirect_uri", self.redirect_uri)]
        if self.state is not None:
            params.append(("state", self.state))
        params.append(("response_type", self.response_type))
        return params

    @beartype
    def to_url(self, login_url: str) -> str:
        """Append the handoff parameters to ``login_url``."""
        query = urlencode(self.query_params(), quote_via=quote, safe=_QUERY_SAFE)
        separator = "&" if "?" in login_url else "?"
        return f"{login_url}{separator}{query}"


class TokenGrant(VerbatimModel):
    """Successful token response."""

    access_token: str
    token_type: str = Field(default="Bearer")
    expires_in: int = Field(..., ge=0)
    did: str


class RequestBody(BaseModel):
    """Lenient base for JSON request bodies; presence checks happen in handlers.

    Values are not stripped: DIDs and secrets are compared byte-for-byte.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )


class CodeRequest(RequestBody):
    client_id: str | None = Field(default=None, alias="clientId")
    address: str | None = None
    did: str | None = None


class TokenRequest(RequestBody):
    code: str | None = None
    client_id: str | None = None
    client_secret: str | None = None


class LookupRequest(RequestBody):
    address: str | None = None


class CodeResponse(BaseModelConfig):
    code: str


class UserInfoResponse(VerbatimModel):
    did: str
    name: str
    email: str
    address: str


class LookupResponse(VerbatimModel):
    authenticated: bool
    did: str | None = None


class HealthResponse(BaseModelConfig):
    status: str = Field(..., pattern="^(healthy|degraded)$")
    credential_backend: str
    store_available: bool
    registered_clients: int = Field(..., ge=0)
