# DID Connect - Wallet DID Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""FastAPI dependencies resolving the components built by the app factory."""

from beartype import beartype
from fastapi import Request

from ..core.auth.server import AuthorizationServer
from ..core.config import Settings


@beartype
def get_authorization_server(request: Request) -> AuthorizationServer:
    """Authorization server attached to the application at startup."""
    return request.app.state.authorization_server


@beartype
def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
