# DID Connect - Wallet DID Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Registry of relying-party clients."""

from collections.abc import Iterable

from beartype import beartype

from ...models.credentials import Client
from ..config import Settings
from ..logging_utils import get_logger

logger = get_logger(__name__)


class ClientRegistry:
    """In-memory lookup of registered clients.

    Built once at startup from configuration and passed to the authorization
    server. Missing data never raises: unknown ids simply resolve to ``None``.
    """

    def __init__(self, clients: Iterable[Client]) -> None:
        self._clients: dict[str, Client] = {client.id: client for client in clients}

    @classmethod
    @beartype
    def from_settings(cls, settings: Settings) -> "ClientRegistry":
        registry = cls(Client.from_config(config) for config in settings.clients)
        logger.info("Loaded %d registered client(s)", len(registry))
        return registry

    def __len__(self) -> int:
        return len(self._clients)

    @beartype
    def lookup(self, client_id: str | None) -> Client | None:
        """Return the client registered under ``client_id``, if any."""
        if not client_id:
            return None
        return self._clients.get(client_id)

    @beartype
    def is_redirect_allowed(self, client_id: str | None, uri: str | None) -> bool:
        """Exact string match against the client's registered redirect URIs."""
        client = self.lookup(client_id)
        if client is None or uri is None:
            return False
        return uri in client.redirect_uris

    @beartype
    def active_clients(self) -> list[Client]:
        return [client for client in self._clients.values() if client.active]

    @beartype
    def set_active(self, client_id: str, active: bool) -> bool:
        """Toggle a client's ``active`` flag. Returns False for unknown ids."""
        client = self._clients.get(client_id)
        if client is None:
            return False
        self._clients[client_id] = client.model_copy(update={"active": active})
        logger.info("Client %s active=%s", client_id, active)
        return True
