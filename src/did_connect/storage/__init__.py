# DID Connect - Wallet DID Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Credential store backends and the factory that selects one."""

from beartype import beartype

from ..core.config import Settings
from ..core.database import Database, PoolConfig
from .base import Clock, CredentialStore, utc_now
from .memory import InMemoryCredentialStore
from .postgres import PostgresCredentialStore
from .redis_store import RedisCredentialStore
from .sweeper import CredentialSweeper

__all__ = [
    "Clock",
    "CredentialStore",
    "CredentialSweeper",
    "InMemoryCredentialStore",
    "PostgresCredentialStore",
    "RedisCredentialStore",
    "build_credential_store",
    "utc_now",
]


@beartype
def build_credential_store(
    settings: Settings, clock: Clock = utc_now
) -> CredentialStore:
    """Instantiate the backend named by ``settings.credential_backend``."""
    if settings.credential_backend == "redis":
        return RedisCredentialStore(settings.redis_url, clock=clock)
    if settings.credential_backend == "postgres":
        return PostgresCredentialStore(
            Database(PoolConfig.from_settings(settings)), clock=clock
        )
    return InMemoryCredentialStore(clock=clock)
