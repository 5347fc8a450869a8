# DID Connect - Wallet DID Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Mapping of domain errors onto HTTP responses."""

from typing import Any

from beartype import beartype
from fastapi.responses import JSONResponse

from ..core.errors import AuthError, ErrorKind

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.INVALID_REDIRECT: 400,
    ErrorKind.UNSUPPORTED_RESPONSE_TYPE: 400,
    ErrorKind.INVALID_GRANT: 400,
    ErrorKind.INVALID_CLIENT: 401,
    ErrorKind.IDENTITY_MISMATCH: 401,
    ErrorKind.INVALID_TOKEN: 401,
    ErrorKind.IDENTITY_NOT_FOUND: 404,
    ErrorKind.LEDGER_UNAVAILABLE: 500,
    ErrorKind.STORE_UNAVAILABLE: 500,
}

# Error codes the error page understands; anything else is a request problem.
REDIRECT_ERROR_CODES: dict[ErrorKind, str] = {
    ErrorKind.INVALID_REQUEST: "invalid_request",
    ErrorKind.INVALID_REDIRECT: "invalid_request",
    ErrorKind.INVALID_CLIENT: "invalid_client",
    ErrorKind.UNSUPPORTED_RESPONSE_TYPE: "unsupported_response_type",
}


@beartype
def status_for(error: AuthError) -> int:
    return STATUS_BY_KIND.get(error.kind, 500)


@beartype
def error_response(
    error: AuthError, headers: dict[str, str] | None = None
) -> JSONResponse:
    """Render ``error`` as ``{"error", "error_description"}`` with its status."""
    return JSONResponse(
        status_code=status_for(error),
        content=error.to_dict(),
        headers=headers,
    )


@beartype
def redirect_error_code(error: AuthError) -> str:
    if error.kind.is_server_error:
        return "server_error"
    return REDIRECT_ERROR_CODES.get(error.kind, "invalid_request")


@beartype
def json_body(model: Any) -> dict[str, Any]:
    return model.model_dump(mode="json")
