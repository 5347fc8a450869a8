# DID Connect - Wallet DID Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Database connection management with asyncpg and connection pooling."""

import contextlib
from collections.abc import AsyncIterator
from typing import Any

import asyncpg
from attrs import field, frozen
from beartype import beartype

from .config import Settings
from .logging_utils import get_logger

logger = get_logger(__name__)


@frozen
class PoolConfig:
    """Immutable pool configuration."""

    dsn: str = field()
    min_connections: int = field(default=2)
    max_connections: int = field(default=10)
    command_timeout: float = field(default=10.0)
    max_inactive_connection_lifetime: float = field(default=300.0)

    @classmethod
    @beartype
    def from_settings(cls, settings: Settings) -> "PoolConfig":
        return cls(
            dsn=settings.database_url,
            min_connections=settings.database_pool_min,
            max_connections=settings.database_pool_max,
            command_timeout=settings.database_command_timeout,
        )


class Database:
    """Thin asyncpg pool wrapper used by the Postgres credential store."""

    def __init__(self, config: PoolConfig) -> None:
        self._config = config
        self._pool: asyncpg.Pool | None = None

    @beartype
    async def connect(self) -> None:
        """Create the connection pool."""
        if self._pool is not None:
            return

        self._pool = await asyncpg.create_pool(
            self._config.dsn,
            min_size=self._config.min_connections,
            max_size=self._config.max_connections,
            command_timeout=self._config.command_timeout,
            max_inactive_connection_lifetime=(
                self._config.max_inactive_connection_lifetime
            ),
        )
        logger.info(
            "Database pool ready (min=%d, max=%d)",
            self._config.min_connections,
            self._config.max_connections,
        )

    @beartype
    async def disconnect(self) -> None:
        """Close the connection pool."""
        if self._pool is None:
            return
        await self._pool.close()
        self._pool = None

    @contextlib.asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Acquire a pooled connection."""
        if self._pool is None:
            raise asyncpg.InterfaceError("Database pool not initialized")
        async with self._pool.acquire() as conn:
            yield conn

    @beartype
    async def execute(self, query: str, *args: Any) -> str:
        """Execute a statement and return its status tag."""
        async with self.acquire() as conn:
            return await conn.execute(query, *args)

    @beartype
    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        """Execute a query and fetch a single row."""
        async with self.acquire() as conn:
            return await conn.fetchrow(query, *args)

    @beartype
    async def fetchval(self, query: str, *args: Any) -> Any:
        """Execute a query and fetch a single value."""
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args)

    @beartype
    async def health_check(self) -> bool:
        """Round-trip a trivial query."""
        if self._pool is None:
            return False
        try:
            return await self.fetchval("SELECT 1") == 1
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError):
            return False

    @property
    def is_connected(self) -> bool:
        return self._pool is not None
