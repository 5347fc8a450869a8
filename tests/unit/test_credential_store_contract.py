"""Contract tests shared by every credential store backend.

Memory and Redis (through fakeredis) always run. The Postgres backend runs
only when ``TEST_DATABASE_URL`` points at a disposable database.
"""

import asyncio
import os
from collections.abc import AsyncGenerator
from datetime import timedelta

import fakeredis
import pytest
import pytest_asyncio

from did_connect.core.database import Database, PoolConfig
from did_connect.core.errors import ErrorKind
from did_connect.models.credentials import AccessToken, AuthorizationCode
from did_connect.storage import (
    CredentialStore,
    InMemoryCredentialStore,
    PostgresCredentialStore,
    RedisCredentialStore,
)
from tests.fixtures.identity import (
    ALICE_ADDRESS,
    ALICE_DID,
    CLIENT_ID,
    OTHER_CLIENT_ID,
    FakeClock,
)

CODE_TTL = timedelta(minutes=10)
TOKEN_TTL = timedelta(days=7)

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL")

BACKENDS = [
    "memory",
    "redis",
    pytest.param(
        "postgres",
        marks=[
            pytest.mark.postgres,
            pytest.mark.skipif(
                not TEST_DATABASE_URL, reason="TEST_DATABASE_URL not set"
            ),
        ],
    ),
]


@pytest_asyncio.fixture(params=BACKENDS)
async def store(
    request: pytest.FixtureRequest, clock: FakeClock
) -> AsyncGenerator[CredentialStore, None]:
    if request.param == "memory":
        backend: CredentialStore = InMemoryCredentialStore(clock=clock)
    elif request.param == "redis":
        backend = RedisCredentialStore(
            redis_client=fakeredis.FakeAsyncRedis(
                server=fakeredis.FakeServer(), decode_responses=True
            ),
            clock=clock,
        )
    else:
        backend = PostgresCredentialStore(
            Database(PoolConfig(dsn=TEST_DATABASE_URL or "")), clock=clock
        )

    await backend.connect()
    yield backend
    if isinstance(backend, PostgresCredentialStore):
        await backend._db.execute("TRUNCATE authorization_codes, access_tokens")
    await backend.disconnect()


def make_code(
    clock: FakeClock, value: str = "c0de", client_id: str = CLIENT_ID
) -> AuthorizationCode:
    now = clock()
    return AuthorizationCode(
        code=value,
        client_id=client_id,
        subject_address=ALICE_ADDRESS,
        did=ALICE_DID,
        name="Alice",
        email="a@x.com",
        created_at=now,
        expires_at=now + CODE_TTL,
    )


def make_token(clock: FakeClock, value: str = "t0ken") -> AccessToken:
    now = clock()
    return AccessToken(
        token=value,
        client_id=CLIENT_ID,
        subject_address=ALICE_ADDRESS,
        did=ALICE_DID,
        name="Alice",
        email="a@x.com",
        created_at=now,
        expires_at=now + TOKEN_TTL,
    )


class TestAuthorizationCodes:
    """Test code persistence and single-use redemption."""

    @pytest.mark.asyncio
    async def test_put_then_take(self, store: CredentialStore, clock: FakeClock) -> None:
        assert (await store.put_code(make_code(clock), CODE_TTL)).is_ok()

        result = await store.take_code("c0de", CLIENT_ID)

        assert result.is_ok()
        redeemed = result.unwrap()
        assert redeemed.used is True
        assert redeemed.did == ALICE_DID
        assert redeemed.subject_address == ALICE_ADDRESS
        assert redeemed.name == "Alice"
        assert redeemed.email == "a@x.com"

    @pytest.mark.asyncio
    async def test_second_take_fails(self, store: CredentialStore, clock: FakeClock) -> None:
        await store.put_code(make_code(clock), CODE_TTL)
        await store.take_code("c0de", CLIENT_ID)

        result = await store.take_code("c0de", CLIENT_ID)

        assert result.is_err()
        assert result.unwrap_err().kind is ErrorKind.INVALID_GRANT

    @pytest.mark.asyncio
    async def test_unknown_code(self, store: CredentialStore) -> None:
        result = await store.take_code("missing", CLIENT_ID)

        assert result.is_err()
        assert result.unwrap_err().kind is ErrorKind.INVALID_GRANT

    @pytest.mark.asyncio
    async def test_wrong_client_leaves_code_redeemable(
        self, store: CredentialStore, clock: FakeClock
    ) -> None:
        await store.put_code(make_code(clock), CODE_TTL)

        foreign = await store.take_code("c0de", OTHER_CLIENT_ID)
        owner = await store.take_code("c0de", CLIENT_ID)

        assert foreign.is_err()
        assert foreign.unwrap_err().kind is ErrorKind.INVALID_GRANT
        assert owner.is_ok()

    @pytest.mark.asyncio
    async def test_expired_code(self, store: CredentialStore, clock: FakeClock) -> None:
        await store.put_code(make_code(clock), CODE_TTL)
        clock.advance(minutes=10)

        result = await store.take_code("c0de", CLIENT_ID)

        assert result.is_err()
        assert result.unwrap_err().kind is ErrorKind.INVALID_GRANT

    @pytest.mark.asyncio
    async def test_just_before_expiry(self, store: CredentialStore, clock: FakeClock) -> None:
        await store.put_code(make_code(clock), CODE_TTL)
        clock.advance(minutes=9, seconds=59)

        assert (await store.take_code("c0de", CLIENT_ID)).is_ok()

    @pytest.mark.asyncio
    async def test_concurrent_redemption_has_one_winner(
        self, store: CredentialStore, clock: FakeClock
    ) -> None:
        await store.put_code(make_code(clock), CODE_TTL)

        results = await asyncio.gather(
            *(store.take_code("c0de", CLIENT_ID) for _ in range(20))
        )

        winners = [r for r in results if r.is_ok()]
        losers = [r for r in results if r.is_err()]
        assert len(winners) == 1
        assert len(losers) == 19
        assert all(r.unwrap_err().kind is ErrorKind.INVALID_GRANT for r in losers)


class TestAccessTokens:
    """Test token persistence and lazy expiry."""

    @pytest.mark.asyncio
    async def test_put_then_get(self, store: CredentialStore, clock: FakeClock) -> None:
        assert (await store.put_token(make_token(clock), TOKEN_TTL)).is_ok()

        result = await store.get_token("t0ken")

        assert result.is_ok()
        token = result.unwrap()
        assert token.did == ALICE_DID
        assert token.client_id == CLIENT_ID

    @pytest.mark.asyncio
    async def test_token_is_reusable(self, store: CredentialStore, clock: FakeClock) -> None:
        await store.put_token(make_token(clock), TOKEN_TTL)

        assert (await store.get_token("t0ken")).is_ok()
        assert (await store.get_token("t0ken")).is_ok()

    @pytest.mark.asyncio
    async def test_unknown_token(self, store: CredentialStore) -> None:
        result = await store.get_token("missing")

        assert result.is_err()
        assert result.unwrap_err().kind is ErrorKind.INVALID_TOKEN

    @pytest.mark.asyncio
    async def test_expired_token(self, store: CredentialStore, clock: FakeClock) -> None:
        await store.put_token(make_token(clock), TOKEN_TTL)
        clock.advance(days=7)

        result = await store.get_token("t0ken")

        assert result.is_err()
        assert result.unwrap_err().kind is ErrorKind.INVALID_TOKEN


class TestHousekeeping:
    """Test health checks and purging."""

    @pytest.mark.asyncio
    async def test_health_check(self, store: CredentialStore) -> None:
        assert await store.health_check() is True

    @pytest.mark.asyncio
    async def test_purge_never_removes_live_credentials(
        self, store: CredentialStore, clock: FakeClock
    ) -> None:
        await store.put_code(make_code(clock), CODE_TTL)
        await store.put_token(make_token(clock), TOKEN_TTL)

        assert await store.purge_expired() == 0
        assert (await store.get_token("t0ken")).is_ok()
        assert (await store.take_code("c0de", CLIENT_ID)).is_ok()


class TestInMemoryPurge:
    """The in-memory store physically removes expired records."""

    @pytest.mark.asyncio
    async def test_purge_expired(
        self, memory_store: InMemoryCredentialStore, clock: FakeClock
    ) -> None:
        await memory_store.put_code(make_code(clock), CODE_TTL)
        await memory_store.put_token(make_token(clock), TOKEN_TTL)
        clock.advance(minutes=10)

        assert await memory_store.purge_expired() == 1

        clock.advance(days=7)
        assert await memory_store.purge_expired() == 1
        assert await memory_store.purge_expired() == 0


class TestRedisUnavailable:
    """Transport failures surface as STORE_UNAVAILABLE."""

    @pytest.mark.asyncio
    async def test_not_connected(self, clock: FakeClock) -> None:
        store = RedisCredentialStore(clock=clock)

        put = await store.put_code(make_code(clock), CODE_TTL)
        take = await store.take_code("c0de", CLIENT_ID)
        get = await store.get_token("t0ken")

        assert put.unwrap_err().kind is ErrorKind.STORE_UNAVAILABLE
        assert take.unwrap_err().kind is ErrorKind.STORE_UNAVAILABLE
        assert get.unwrap_err().kind is ErrorKind.STORE_UNAVAILABLE
        assert await store.health_check() is False

    @pytest.mark.asyncio
    async def test_corrupt_record_is_invalid_grant(self, clock: FakeClock) -> None:
        client = fakeredis.FakeAsyncRedis(
            server=fakeredis.FakeServer(), decode_responses=True
        )
        store = RedisCredentialStore(redis_client=client, clock=clock)
        await client.set("authcode:c0de", "{not json")

        result = await store.take_code("c0de", CLIENT_ID)

        assert result.unwrap_err().kind is ErrorKind.INVALID_GRANT
