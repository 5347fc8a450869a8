# DID Connect - Wallet DID Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""HTTP endpoints of the wallet DID authorization flow."""

from typing import Annotated
from urllib.parse import urlencode, urljoin

from beartype import beartype
from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse

from ..core.auth.server import AuthorizationServer
from ..core.config import Settings
from ..core.errors import AuthError, ErrorKind
from ..core.logging_utils import get_logger
from ..schemas.auth import (
    CodeRequest,
    CodeResponse,
    HealthResponse,
    LookupRequest,
    LookupResponse,
    TokenRequest,
    UserInfoResponse,
)
from .dependencies import get_app_settings, get_authorization_server
from .response_patterns import error_response, json_body, redirect_error_code

logger = get_logger(__name__)

router = APIRouter(tags=["authorization"])

IDENTITY_SOURCE_HEADER = "X-Identity-Source"
_BEARER_PREFIX = "bearer "

ServerDep = Annotated[AuthorizationServer, Depends(get_authorization_server)]
SettingsDep = Annotated[Settings, Depends(get_app_settings)]


@beartype
def _absolute(request: Request, url: str) -> str:
    """Resolve app-relative URLs such as ``/auth`` against the request origin."""
    return urljoin(str(request.base_url), url)


@beartype
def _error_redirect(
    request: Request, settings: Settings, error: AuthError
) -> RedirectResponse:
    query = urlencode(
        {"error": redirect_error_code(error), "error_description": error.message}
    )
    target = _absolute(request, settings.error_url)
    separator = "&" if "?" in target else "?"
    return RedirectResponse(url=f"{target}{separator}{query}")


@router.get("/authorize")
@beartype
async def authorize(
    request: Request,
    server: ServerDep,
    settings: SettingsDep,
    client_id: Annotated[str | None, Query(description="Registered client ID")] = None,
    redirect_uri: Annotated[
        str | None, Query(description="Registered redirect URI")
    ] = None,
    response_type: Annotated[str | None, Query(description="Must be 'code'")] = None,
    state: Annotated[
        str | None, Query(description="Opaque value forwarded unchanged")
    ] = None,
) -> RedirectResponse:
    """Validate the relying party and hand the request over to the login page."""
    result = server.initiate(client_id, redirect_uri, response_type, state)
    if result.is_err():
        error = result.unwrap_err()
        logger.info("Authorization request rejected: %s", error)
        return _error_redirect(request, settings, error)

    handoff = result.unwrap()
    return RedirectResponse(url=handoff.to_url(_absolute(request, settings.login_url)))


@router.post("/code")
@beartype
async def issue_code(
    body: CodeRequest,
    server: ServerDep,
) -> JSONResponse:
    """Verify the wallet's DID on the ledger and issue an authorization code."""
    result = await server.issue_code(body.client_id, body.address, body.did)
    if result.is_err():
        return error_response(result.unwrap_err())
    return JSONResponse(content=json_body(CodeResponse(code=result.unwrap())))


@router.post("/token")
@beartype
async def token(
    body: TokenRequest,
    server: ServerDep,
) -> JSONResponse:
    """Exchange an authorization code for a bearer access token."""
    result = await server.exchange_token(body.code, body.client_id, body.client_secret)
    if result.is_err():
        return error_response(result.unwrap_err())
    return JSONResponse(
        content=json_body(result.unwrap()),
        headers={"Cache-Control": "no-store", "Pragma": "no-cache"},
    )


@router.get("/userinfo")
@beartype
async def userinfo(
    server: ServerDep,
    authorization: Annotated[str | None, Header()] = None,
) -> JSONResponse:
    """Serve the identity bound to the presented bearer token."""
    bearer = None
    if authorization and authorization.lower().startswith(_BEARER_PREFIX):
        bearer = authorization[len(_BEARER_PREFIX):].strip() or None

    result = await server.fetch_assertion(bearer)
    if result.is_err():
        error = result.unwrap_err()
        headers = None
        if error.kind is ErrorKind.INVALID_TOKEN:
            headers = {"WWW-Authenticate": 'Bearer error="invalid_token"'}
        return error_response(error, headers=headers)

    assertion = result.unwrap()
    payload = UserInfoResponse(
        did=assertion.did,
        name=assertion.name,
        email=assertion.email,
        address=assertion.address,
    )
    return JSONResponse(
        content=json_body(payload),
        headers={IDENTITY_SOURCE_HEADER: assertion.source.value},
    )


@router.post("/lookup")
@beartype
async def lookup(
    body: LookupRequest,
    server: ServerDep,
) -> JSONResponse:
    """Report whether a wallet address has a DID registered on the ledger."""
    result = await server.lookup_identity(body.address)
    if result.is_err():
        return error_response(result.unwrap_err())

    profile = result.unwrap()
    payload = LookupResponse(
        authenticated=profile is not None,
        did=profile.did if profile is not None else None,
    )
    return JSONResponse(content=json_body(payload))


@router.get("/health")
@beartype
async def health(
    server: ServerDep,
) -> JSONResponse:
    """Credential store reachability and registry size."""
    available = await server.store.health_check()
    payload = HealthResponse(
        status="healthy" if available else "degraded",
        credential_backend=server.store.backend_name,
        store_available=available,
        registered_clients=len(server.registry),
    )
    return JSONResponse(
        status_code=200 if available else 503, content=json_body(payload)
    )
