# DID Connect - Wallet DID Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Background task that purges expired credentials.

Purely housekeeping: every read path re-checks expiry, so a stalled or
disabled sweeper never lets an expired credential through.
"""

import asyncio
import contextlib

from beartype import beartype

from ..core.logging_utils import get_logger
from .base import CredentialStore

logger = get_logger(__name__)


class CredentialSweeper:
    """Runs ``purge_expired`` on a fixed interval."""

    def __init__(self, store: CredentialStore, interval_seconds: float) -> None:
        self._store = store
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @beartype
    async def run_once(self) -> int:
        """Purge once; failures are logged and reported as zero removals."""
        try:
            removed = await self._store.purge_expired()
        except Exception as e:
            logger.warning(
                "Credential sweep on %s failed: %s", self._store.backend_name, e
            )
            return 0
        if removed:
            logger.info("Purged %d expired credential(s)", removed)
        return removed

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self.run_once()

    @beartype
    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop(), name="credential-sweeper")

    @beartype
    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
