# DID Connect - Wallet DID Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""API schemas."""

from .auth import (
    CodeRequest,
    CodeResponse,
    HealthResponse,
    LoginHandoff,
    LookupRequest,
    LookupResponse,
    TokenGrant,
    TokenRequest,
    UserInfoResponse,
)

__all__ = [
    "CodeRequest",
    "CodeResponse",
    "HealthResponse",
    "LoginHandoff",
    "LookupRequest",
    "LookupResponse",
    "TokenGrant",
    "TokenRequest",
    "UserInfoResponse",
]
