"""Unit tests for the expired-credential sweeper."""

import asyncio

import pytest

from did_connect.storage import CredentialSweeper, InMemoryCredentialStore


class ExplodingStore(InMemoryCredentialStore):
    async def purge_expired(self) -> int:
        raise ConnectionError("backend gone")


class CountingStore(InMemoryCredentialStore):
    def __init__(self) -> None:
        super().__init__()
        self.purges = 0

    async def purge_expired(self) -> int:
        self.purges += 1
        return 2


class TestCredentialSweeper:
    """Test the background purge loop."""

    @pytest.mark.asyncio
    async def test_run_once_reports_removals(self) -> None:
        store = CountingStore()

        assert await CredentialSweeper(store, 60).run_once() == 2
        assert store.purges == 1

    @pytest.mark.asyncio
    async def test_failures_are_contained(self, caplog: pytest.LogCaptureFixture) -> None:
        sweeper = CredentialSweeper(ExplodingStore(), 60)

        with caplog.at_level("WARNING"):
            assert await sweeper.run_once() == 0

        assert "backend gone" in caplog.text

    @pytest.mark.asyncio
    async def test_loop_runs_until_stopped(self) -> None:
        store = CountingStore()
        sweeper = CredentialSweeper(store, 0.01)

        sweeper.start()
        assert sweeper.is_running
        await asyncio.sleep(0.05)
        await sweeper.stop()

        assert not sweeper.is_running
        assert store.purges >= 1

    @pytest.mark.asyncio
    async def test_start_is_idempotent_and_stop_without_start(self) -> None:
        sweeper = CredentialSweeper(CountingStore(), 60)

        await sweeper.stop()
        sweeper.start()
        task = sweeper._task
        sweeper.start()

        assert sweeper._task is task
        await sweeper.stop()
