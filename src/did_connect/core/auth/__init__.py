# DID Connect - Wallet DID Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Client registry and authorization server."""

from .clients import ClientRegistry
from .server import AuthorizationServer

__all__ = ["AuthorizationServer", "ClientRegistry"]
