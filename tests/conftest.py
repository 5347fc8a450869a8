"""Test configuration and shared fixtures.

Provides a controllable clock, an in-process fake of the ledger contract, a
registry with active and inactive clients, and an authorization server wired
to the in-memory credential store.
"""

import pytest

from did_connect.core.auth import AuthorizationServer, ClientRegistry
from did_connect.core.config import Settings
from did_connect.core.ledger import IdentityLedgerGateway
from did_connect.storage import InMemoryCredentialStore
from tests.fixtures.identity import (
    ALICE_ADDRESS,
    ALICE_PROFILE,
    FakeClock,
    FakeProfileReader,
    make_client_configs,
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def reader() -> FakeProfileReader:
    return FakeProfileReader({ALICE_ADDRESS: ALICE_PROFILE})


@pytest.fixture
def ledger(reader: FakeProfileReader) -> IdentityLedgerGateway:
    return IdentityLedgerGateway(reader, timeout_seconds=0.5)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        clients=make_client_configs(),
        credential_backend="memory",
        sweep_interval_seconds=0,
    )


@pytest.fixture
def registry(settings: Settings) -> ClientRegistry:
    return ClientRegistry.from_settings(settings)


@pytest.fixture
def memory_store(clock: FakeClock) -> InMemoryCredentialStore:
    return InMemoryCredentialStore(clock=clock)


@pytest.fixture
def server(
    settings: Settings,
    registry: ClientRegistry,
    ledger: IdentityLedgerGateway,
    memory_store: InMemoryCredentialStore,
    clock: FakeClock,
) -> AuthorizationServer:
    return AuthorizationServer.from_settings(
        settings, registry, ledger, memory_store, clock=clock
    )
