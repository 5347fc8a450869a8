# DID Connect - Wallet DID Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""PostgreSQL-backed credential store.

Redemption is a single conditional ``UPDATE ... RETURNING``: the row lock
taken by the update serializes concurrent redeemers, and only the first one
still sees ``used = false``.
"""

import asyncio
from datetime import timedelta
from typing import Any

import asyncpg
from beartype import beartype

from ..core.database import Database
from ..core.errors import (
    AuthError,
    invalid_grant,
    invalid_token,
    store_unavailable,
)
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..models.credentials import AccessToken, AuthorizationCode
from .base import Clock, CredentialStore, utc_now

logger = get_logger(__name__)

_STORE_ERRORS = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    asyncio.TimeoutError,
)

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS authorization_codes (
        code TEXT PRIMARY KEY,
        client_id TEXT NOT NULL,
        subject_address TEXT NOT NULL,
        did TEXT NOT NULL,
        name TEXT NOT NULL DEFAULT '',
        email TEXT NOT NULL DEFAULT '',
        created_at TIMESTAMPTZ NOT NULL,
        expires_at TIMESTAMPTZ NOT NULL,
        used BOOLEAN NOT NULL DEFAULT FALSE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS access_tokens (
        token TEXT PRIMARY KEY,
        client_id TEXT NOT NULL,
        subject_address TEXT NOT NULL,
        did TEXT NOT NULL,
        name TEXT NOT NULL DEFAULT '',
        email TEXT NOT NULL DEFAULT '',
        created_at TIMESTAMPTZ NOT NULL,
        expires_at TIMESTAMPTZ NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_authorization_codes_expires_at"
    " ON authorization_codes (expires_at)",
    "CREATE INDEX IF NOT EXISTS idx_access_tokens_expires_at"
    " ON access_tokens (expires_at)",
)


def _deleted_count(status: str) -> int:
    # asyncpg returns status tags such as "DELETE 3".
    try:
        return int(status.rsplit(" ", 1)[-1])
    except ValueError:
        return 0


class PostgresCredentialStore(CredentialStore):
    """Relational credential store on top of ``Database``."""

    backend_name = "postgres"

    def __init__(self, database: Database, clock: Clock = utc_now) -> None:
        super().__init__(clock)
        self._db = database

    @beartype
    async def connect(self) -> None:
        await self._db.connect()
        await self.create_schema()

    @beartype
    async def disconnect(self) -> None:
        await self._db.disconnect()

    @beartype
    async def create_schema(self) -> None:
        """Create the credential tables if they do not exist."""
        for statement in SCHEMA_STATEMENTS:
            await self._db.execute(statement)

    @beartype
    async def health_check(self) -> bool:
        return await self._db.health_check()

    @beartype
    async def put_code(
        self, code: AuthorizationCode, ttl: timedelta
    ) -> Result[None, AuthError]:
        try:
            await self._db.execute(
                """
                INSERT INTO authorization_codes (
                    code, client_id, subject_address, did, name, email,
                    created_at, expires_at, used
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                """,
                code.code,
                code.client_id,
                code.subject_address,
                code.did,
                code.name,
                code.email,
                code.created_at,
                code.expires_at,
                code.used,
            )
        except _STORE_ERRORS as e:
            logger.error("Failed to store authorization code: %s", e)
            return Err(store_unavailable("Failed to store authorization code"))
        return Ok(None)

    @beartype
    async def take_code(
        self, code_value: str, client_id: str
    ) -> Result[AuthorizationCode, AuthError]:
        try:
            row = await self._db.fetchrow(
                """
                UPDATE authorization_codes
                SET used = TRUE
                WHERE code = $1
                  AND client_id = $2
                  AND used = FALSE
                  AND expires_at > $3
                RETURNING code, client_id, subject_address, did, name, email,
                          created_at, expires_at, used
                """,
                code_value,
                client_id,
                self._clock(),
            )
        except _STORE_ERRORS as e:
            logger.error("Failed to redeem authorization code: %s", e)
            return Err(store_unavailable("Failed to redeem authorization code"))

        if row is None:
            return Err(invalid_grant())
        return Ok(AuthorizationCode(**_row_to_dict(row)))

    @beartype
    async def put_token(
        self, token: AccessToken, ttl: timedelta
    ) -> Result[None, AuthError]:
        try:
            await self._db.execute(
                """
                INSERT INTO access_tokens (
                    token, client_id, subject_address, did, name, email,
                    created_at, expires_at
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                """,
                token.token,
                token.client_id,
                token.subject_address,
                token.did,
                token.name,
                token.email,
                token.created_at,
                token.expires_at,
            )
        except _STORE_ERRORS as e:
            logger.error("Failed to store access token: %s", e)
            return Err(store_unavailable("Failed to store access token"))
        return Ok(None)

    @beartype
    async def get_token(self, token_value: str) -> Result[AccessToken, AuthError]:
        try:
            row = await self._db.fetchrow(
                """
                SELECT token, client_id, subject_address, did, name, email,
                       created_at, expires_at
                FROM access_tokens
                WHERE token = $1 AND expires_at > $2
                """,
                token_value,
                self._clock(),
            )
        except _STORE_ERRORS as e:
            logger.error("Failed to read access token: %s", e)
            return Err(store_unavailable("Failed to read access token"))

        if row is None:
            return Err(invalid_token())
        return Ok(AccessToken(**_row_to_dict(row)))

    @beartype
    async def purge_expired(self) -> int:
        now = self._clock()
        codes = await self._db.execute(
            "DELETE FROM authorization_codes WHERE expires_at <= $1", now
        )
        tokens = await self._db.execute(
            "DELETE FROM access_tokens WHERE expires_at <= $1", now
        )
        return _deleted_count(codes) + _deleted_count(tokens)


def _row_to_dict(row: Any) -> dict[str, Any]:
    return dict(row.items())
