# DID Connect - Wallet DID Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Ephemeral in-process credential store.

Suitable for development and single-process deployments; everything is lost
on restart.
"""

import asyncio
from datetime import timedelta

from beartype import beartype

from ..core.errors import AuthError, invalid_grant, invalid_token
from ..core.logging_utils import get_logger, mask_credential
from ..core.result_types import Err, Ok, Result
from ..models.credentials import AccessToken, AuthorizationCode
from .base import Clock, CredentialStore, utc_now

logger = get_logger(__name__)


class InMemoryCredentialStore(CredentialStore):
    """Dictionary-backed store guarded by an asyncio lock."""

    backend_name = "memory"

    def __init__(self, clock: Clock = utc_now) -> None:
        super().__init__(clock)
        self._codes: dict[str, AuthorizationCode] = {}
        self._tokens: dict[str, AccessToken] = {}
        self._lock = asyncio.Lock()

    @beartype
    async def health_check(self) -> bool:
        return True

    @beartype
    async def put_code(
        self, code: AuthorizationCode, ttl: timedelta
    ) -> Result[None, AuthError]:
        async with self._lock:
            self._codes[code.code] = code
        return Ok(None)

    @beartype
    async def take_code(
        self, code_value: str, client_id: str
    ) -> Result[AuthorizationCode, AuthError]:
        async with self._lock:
            stored = self._codes.get(code_value)
            if stored is None or not stored.is_redeemable_by(client_id, self._clock()):
                logger.debug("Rejected redemption of %s", mask_credential(code_value))
                return Err(invalid_grant())
            redeemed = stored.model_copy(update={"used": True})
            self._codes[code_value] = redeemed
        return Ok(redeemed)

    @beartype
    async def put_token(
        self, token: AccessToken, ttl: timedelta
    ) -> Result[None, AuthError]:
        async with self._lock:
            self._tokens[token.token] = token
        return Ok(None)

    @beartype
    async def get_token(self, token_value: str) -> Result[AccessToken, AuthError]:
        token = self._tokens.get(token_value)
        if token is None or token.is_expired(self._clock()):
            return Err(invalid_token())
        return Ok(token)

    @beartype
    async def purge_expired(self) -> int:
        now = self._clock()
        async with self._lock:
            expired_codes = [k for k, v in self._codes.items() if v.is_expired(now)]
            expired_tokens = [k for k, v in self._tokens.items() if v.is_expired(now)]
            for key in expired_codes:
                del self._codes[key]
            for key in expired_tokens:
                del self._tokens[key]
        return len(expired_codes) + len(expired_tokens)
