# DID Connect - Wallet DID Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Credential store interface.

Every backend persists two credential kinds, authorization codes and access
tokens, and must honor the same contract:

* ``take_code`` is atomic. It validates (unused, unexpired, issued to the
  requesting client) and marks the code used in one indivisible step, so that
  among N concurrent redemptions of one code exactly one succeeds.
* Expired credentials are never returned as valid, whether or not the backend
  has physically purged them yet.
* Transport failures surface as ``STORE_UNAVAILABLE``; they are never retried
  here.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from ..core.errors import AuthError
from ..core.result_types import Result
from ..models.credentials import AccessToken, AuthorizationCode

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CredentialStore(ABC):
    """Backend-agnostic persistence for codes and tokens."""

    backend_name: str = "abstract"

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock

    async def connect(self) -> None:
        """Open connections. Backends without connections do nothing."""

    async def disconnect(self) -> None:
        """Release connections."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Cheap liveness probe of the underlying storage."""

    @abstractmethod
    async def put_code(
        self, code: AuthorizationCode, ttl: timedelta
    ) -> Result[None, AuthError]:
        """Persist a freshly issued authorization code."""

    @abstractmethod
    async def take_code(
        self, code_value: str, client_id: str
    ) -> Result[AuthorizationCode, AuthError]:
        """Atomically redeem a code for ``client_id``.

        Returns the redeemed code with ``used=True``. Unknown, used, expired
        and foreign codes all yield the same ``INVALID_GRANT`` error.
        """

    @abstractmethod
    async def put_token(
        self, token: AccessToken, ttl: timedelta
    ) -> Result[None, AuthError]:
        """Persist a freshly minted access token."""

    @abstractmethod
    async def get_token(self, token_value: str) -> Result[AccessToken, AuthError]:
        """Return a live token or ``INVALID_TOKEN``."""

    @abstractmethod
    async def purge_expired(self) -> int:
        """Physically delete expired credentials; returns how many were removed."""
