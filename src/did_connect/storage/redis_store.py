# DID Connect - Wallet DID Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Redis-backed credential store.

Codes and tokens are stored as JSON strings with a ``PX`` expiry, so Redis
purges them on its own. Redemption is claimed with ``SET NX`` on a companion
``authcode:<code>:redeemed`` key: whichever caller creates that key first
owns the code, every later caller observes ``INVALID_GRANT``. The code record
itself is never rewritten, so ``used`` is derived from the claim key.
"""

from datetime import timedelta
from typing import TYPE_CHECKING

import redis.asyncio as redis
from beartype import beartype
from pydantic import ValidationError
from redis.exceptions import RedisError

from ..core.errors import (
    AuthError,
    invalid_grant,
    invalid_token,
    store_unavailable,
)
from ..core.logging_utils import get_logger, mask_credential
from ..core.result_types import Err, Ok, Result
from ..models.credentials import AccessToken, AuthorizationCode
from .base import Clock, CredentialStore, utc_now

if TYPE_CHECKING:
    from redis.asyncio import Redis as RedisType
else:
    RedisType = redis.Redis

logger = get_logger(__name__)

CODE_PREFIX = "authcode:"
TOKEN_PREFIX = "token:"
REDEEMED_SUFFIX = ":redeemed"


def _ttl_ms(ttl: timedelta) -> int:
    return max(1, int(ttl.total_seconds() * 1000))


class RedisCredentialStore(CredentialStore):
    """Credential store on a managed key-value service.

    The constructor optionally accepts an already-created client, in which
    case ``connect`` is a no-op. Tests pass a fakeredis instance this way.
    """

    backend_name = "redis"

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        *,
        redis_client: RedisType | None = None,
        clock: Clock = utc_now,
        max_connections: int = 10,
    ) -> None:
        super().__init__(clock)
        self._url = url
        self._redis: RedisType | None = redis_client
        self._max_connections = max_connections

    @beartype
    async def connect(self) -> None:
        if self._redis is not None:
            return
        self._redis = redis.from_url(
            self._url,
            max_connections=self._max_connections,
            decode_responses=True,
        )

    @beartype
    async def disconnect(self) -> None:
        if self._redis is None:
            return
        await self._redis.aclose()
        self._redis = None

    @beartype
    async def health_check(self) -> bool:
        if self._redis is None:
            return False
        try:
            return bool(await self._redis.ping())
        except (RedisError, OSError):
            return False

    def _client(self) -> RedisType:
        if self._redis is None:
            raise RedisError("Credential store not connected")
        return self._redis

    @beartype
    async def put_code(
        self, code: AuthorizationCode, ttl: timedelta
    ) -> Result[None, AuthError]:
        try:
            await self._client().set(
                f"{CODE_PREFIX}{code.code}", code.model_dump_json(), px=_ttl_ms(ttl)
            )
        except (RedisError, OSError) as e:
            logger.error("Failed to store authorization code: %s", e)
            return Err(store_unavailable("Failed to store authorization code"))
        return Ok(None)

    @beartype
    async def take_code(
        self, code_value: str, client_id: str
    ) -> Result[AuthorizationCode, AuthError]:
        key = f"{CODE_PREFIX}{code_value}"
        try:
            client = self._client()
            raw = await client.get(key)
            if raw is None:
                return Err(invalid_grant())

            stored = AuthorizationCode.model_validate_json(raw)
            now = self._clock()
            if stored.client_id != client_id or stored.is_expired(now):
                return Err(invalid_grant())

            # client_id and expires_at never change after issuance, so only the
            # used flag needs the compare-and-set.
            claimed = await client.set(
                f"{key}{REDEEMED_SUFFIX}",
                now.isoformat(),
                nx=True,
                px=_ttl_ms(stored.expires_at - now),
            )
        except ValidationError as e:
            logger.error("Corrupt code record %s: %s", mask_credential(code_value), e)
            return Err(invalid_grant())
        except (RedisError, OSError) as e:
            logger.error("Failed to redeem authorization code: %s", e)
            return Err(store_unavailable("Failed to redeem authorization code"))

        if not claimed:
            logger.debug("Code %s already redeemed", mask_credential(code_value))
            return Err(invalid_grant())
        return Ok(stored.model_copy(update={"used": True}))

    @beartype
    async def put_token(
        self, token: AccessToken, ttl: timedelta
    ) -> Result[None, AuthError]:
        try:
            await self._client().set(
                f"{TOKEN_PREFIX}{token.token}", token.model_dump_json(), px=_ttl_ms(ttl)
            )
        except (RedisError, OSError) as e:
            logger.error("Failed to store access token: %s", e)
            return Err(store_unavailable("Failed to store access token"))
        return Ok(None)

    @beartype
    async def get_token(self, token_value: str) -> Result[AccessToken, AuthError]:
        try:
            raw = await self._client().get(f"{TOKEN_PREFIX}{token_value}")
        except (RedisError, OSError) as e:
            logger.error("Failed to read access token: %s", e)
            return Err(store_unavailable("Failed to read access token"))

        if raw is None:
            return Err(invalid_token())
        try:
            token = AccessToken.model_validate_json(raw)
        except ValidationError as e:
            logger.error("Corrupt token record %s: %s", mask_credential(token_value), e)
            return Err(invalid_token())
        if token.is_expired(self._clock()):
            return Err(invalid_token())
        return Ok(token)

    @beartype
    async def purge_expired(self) -> int:
        # Keys carry a PX expiry; Redis evicts them itself.
        return 0
