# DID Connect - Wallet DID Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Error taxonomy shared by the registry, ledger gateway, stores and server."""

from enum import Enum
from typing import Any

from attrs import frozen
from beartype import beartype


class ErrorKind(str, Enum):
    """Machine-readable error codes, used verbatim on the wire."""

    INVALID_REQUEST = "invalid_request"
    INVALID_CLIENT = "invalid_client"
    INVALID_REDIRECT = "invalid_redirect"
    UNSUPPORTED_RESPONSE_TYPE = "unsupported_response_type"
    IDENTITY_MISMATCH = "identity_mismatch"
    IDENTITY_NOT_FOUND = "identity_not_found"
    INVALID_GRANT = "invalid_grant"
    INVALID_TOKEN = "invalid_token"
    LEDGER_UNAVAILABLE = "ledger_unavailable"
    STORE_UNAVAILABLE = "store_unavailable"

    @property
    def is_server_error(self) -> bool:
        """Ledger and store outages are the server's fault, not the caller's."""
        return self in _SERVER_ERRORS


_SERVER_ERRORS = frozenset({ErrorKind.LEDGER_UNAVAILABLE, ErrorKind.STORE_UNAVAILABLE})

# Every redemption failure shares this text so callers cannot probe codes.
INVALID_GRANT_MESSAGE = "Invalid or expired authorization code"


@frozen
class AuthError:
    """Structured ``{kind, message}`` error returned through ``Err``."""

    kind: ErrorKind
    message: str

    @beartype
    def to_dict(self) -> dict[str, Any]:
        """Render as an OAuth2-style error body."""
        return {"error": self.kind.value, "error_description": self.message}

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


@beartype
def invalid_request(message: str) -> AuthError:
    return AuthError(ErrorKind.INVALID_REQUEST, message)


@beartype
def invalid_client(message: str = "Invalid client") -> AuthError:
    return AuthError(ErrorKind.INVALID_CLIENT, message)


@beartype
def invalid_grant() -> AuthError:
    return AuthError(ErrorKind.INVALID_GRANT, INVALID_GRANT_MESSAGE)


@beartype
def invalid_token(message: str = "Invalid or expired token") -> AuthError:
    return AuthError(ErrorKind.INVALID_TOKEN, message)


@beartype
def ledger_unavailable(message: str) -> AuthError:
    return AuthError(ErrorKind.LEDGER_UNAVAILABLE, message)


@beartype
def store_unavailable(message: str) -> AuthError:
    return AuthError(ErrorKind.STORE_UNAVAILABLE, message)
