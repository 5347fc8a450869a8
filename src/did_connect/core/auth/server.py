# DID Connect - Wallet DID Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Authorization server driving the wallet DID flow.

The flow moves through REQUESTED, CLIENT_VALIDATED, REDIRECT_VALIDATED,
AWAITING_IDENTITY, IDENTITY_VERIFIED, CODE_ISSUED, TOKEN_ISSUED and
ASSERTION_SERVED. Each public method triggers one or more of those transitions;
the first failing guard ends the call with a typed ``AuthError`` and nothing is
persisted.

The server itself keeps no per-request state. Everything durable lives in the
credential store, which is why ``take_code`` has to be atomic.
"""

import hmac
import secrets
from datetime import timedelta

from beartype import beartype

from ...models.credentials import (
    AccessToken,
    AssertionSource,
    AuthorizationCode,
    Client,
    IdentityAssertion,
    IdentityProfile,
)
from ...schemas.auth import LoginHandoff, TokenGrant
from ...storage.base import Clock, CredentialStore, utc_now
from ..config import Settings
from ..errors import (
    AuthError,
    ErrorKind,
    invalid_client,
    invalid_request,
    invalid_token,
)
from ..ledger import IdentityLedgerGateway
from ..logging_utils import get_logger, mask_credential
from ..result_types import Err, Ok, Result
from .clients import ClientRegistry

logger = get_logger(__name__)

SUPPORTED_RESPONSE_TYPES = frozenset({"code"})

# 32 random bytes -> 64 hex characters; 64 bytes -> 128 hex characters.
CODE_BYTES = 32
TOKEN_BYTES = 64


@beartype
def generate_authorization_code() -> str:
    return secrets.token_hex(CODE_BYTES)


@beartype
def generate_access_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


class AuthorizationServer:
    """Issues codes, exchanges them for tokens and serves identity assertions."""

    def __init__(
        self,
        registry: ClientRegistry,
        ledger: IdentityLedgerGateway,
        store: CredentialStore,
        *,
        code_ttl: timedelta = timedelta(minutes=10),
        token_ttl: timedelta = timedelta(days=7),
        clock: Clock = utc_now,
    ) -> None:
        self._registry = registry
        self._ledger = ledger
        self._store = store
        self._code_ttl = code_ttl
        self._token_ttl = token_ttl
        self._clock = clock

    @classmethod
    @beartype
    def from_settings(
        cls,
        settings: Settings,
        registry: ClientRegistry,
        ledger: IdentityLedgerGateway,
        store: CredentialStore,
        clock: Clock = utc_now,
    ) -> "AuthorizationServer":
        return cls(
            registry,
            ledger,
            store,
            code_ttl=settings.code_ttl,
            token_ttl=settings.token_ttl,
            clock=clock,
        )

    @property
    def registry(self) -> ClientRegistry:
        return self._registry

    @property
    def store(self) -> CredentialStore:
        return self._store

    @property
    def token_ttl_seconds(self) -> int:
        return int(self._token_ttl.total_seconds())

    @beartype
    def _active_client(self, client_id: str | None) -> Client | None:
        client = self._registry.lookup(client_id)
        if client is None or not client.active:
            return None
        return client

    @beartype
    def initiate(
        self,
        client_id: str | None,
        redirect_uri: str | None,
        response_type: str | None,
        state: str | None = None,
    ) -> Result[LoginHandoff, AuthError]:
        """Validate an authorization request and build the login handoff.

        Guards run in a fixed order so the reported error is deterministic:
        missing client id, unknown or inactive client, missing redirect URI,
        unregistered redirect URI, unsupported response type.

        Args:
            client_id: Client identifier
            redirect_uri: Where the relying party expects the code
            response_type: Must be ``"code"``
            state: Opaque relying-party value, forwarded byte-for-byte

        Returns:
            Result containing the login handoff or the first failing guard
        """
        if not client_id:
            return Err(invalid_request("Missing client_id parameter"))

        if self._active_client(client_id) is None:
            logger.info("Authorization request for invalid client %s", client_id)
            return Err(invalid_client())

        if not redirect_uri:
            return Err(invalid_request("Missing redirect_uri parameter"))

        if not self._registry.is_redirect_allowed(client_id, redirect_uri):
            logger.info(
                "Redirect URI %s not registered for %s", redirect_uri, client_id
            )
            return Err(
                AuthError(
                    ErrorKind.INVALID_REDIRECT,
                    "Redirect URI not allowed for this client",
                )
            )

        if response_type not in SUPPORTED_RESPONSE_TYPES:
            return Err(
                AuthError(
                    ErrorKind.UNSUPPORTED_RESPONSE_TYPE,
                    "Only code response type is supported",
                )
            )

        return Ok(
            LoginHandoff(
                client_id=client_id,
                redirect_uri=redirect_uri,
                response_type=response_type,
                state=state,
            )
        )

    @beartype
    async def issue_code(
        self,
        client_id: str | None,
        address: str | None,
        claimed_did: str | None,
    ) -> Result[str, AuthError]:
        """Verify a wallet's DID against the ledger and issue an authorization code.

        Args:
            client_id: Client the code will be bound to
            address: Wallet address that signed in
            claimed_did: DID the wallet claims to own

        Returns:
            Result containing the code value only
        """
        if not client_id or not address or not claimed_did:
            return Err(invalid_request("Missing required parameters"))

        if self._active_client(client_id) is None:
            return Err(invalid_client("Invalid client ID"))

        resolved = await self._ledger.resolve_profile(address)
        if resolved.is_err():
            return Err(resolved.unwrap_err())

        profile = resolved.unwrap()
        if profile is None or profile.did != claimed_did:
            logger.info("DID verification failed for %s", address)
            return Err(
                AuthError(
                    ErrorKind.IDENTITY_MISMATCH,
                    "Invalid DID or DID not registered to this address",
                )
            )

        now = self._clock()
        code = AuthorizationCode(
            code=generate_authorization_code(),
            client_id=client_id,
            subject_address=address,
            did=claimed_did,
            name=profile.name,
            email=profile.email,
            created_at=now,
            expires_at=now + self._code_ttl,
        )

        stored = await self._store.put_code(code, self._code_ttl)
        if stored.is_err():
            return Err(stored.unwrap_err())

        logger.info(
            "Issued code %s to client %s for %s",
            mask_credential(code.code),
            client_id,
            claimed_did,
        )
        return Ok(code.code)

    @beartype
    async def exchange_token(
        self,
        code: str | None,
        client_id: str | None,
        client_secret: str | None = None,
    ) -> Result[TokenGrant, AuthError]:
        """Redeem an authorization code for a bearer access token.

        The code is consumed only if redemption itself succeeds; client
        authentication failures leave it untouched.

        Args:
            code: Authorization code value
            client_id: Client redeeming the code
            client_secret: Checked against the registered secret when non-empty

        Returns:
            Result containing the token grant
        """
        if not code or not client_id:
            return Err(invalid_request("Missing required parameters"))

        client = self._active_client(client_id)
        if client is None:
            return Err(invalid_client("Invalid client ID"))

        if client_secret and not _secrets_match(client.secret, client_secret):
            logger.info("Client %s presented a wrong secret", client_id)
            return Err(invalid_client("Invalid client credentials"))

        taken = await self._store.take_code(code, client_id)
        if taken.is_err():
            return Err(taken.unwrap_err())
        redeemed = taken.unwrap()

        now = self._clock()
        token = AccessToken(
            token=generate_access_token(),
            client_id=redeemed.client_id,
            subject_address=redeemed.subject_address,
            did=redeemed.did,
            name=redeemed.name,
            email=redeemed.email,
            created_at=now,
            expires_at=now + self._token_ttl,
        )

        stored = await self._store.put_token(token, self._token_ttl)
        if stored.is_err():
            # The code is spent at this point; the client has to restart the flow.
            logger.error(
                "Code %s redeemed but token could not be stored",
                mask_credential(code),
            )
            return Err(stored.unwrap_err())

        logger.info("Token issued to client %s for %s", client_id, token.did)
        return Ok(
            TokenGrant(
                access_token=token.token,
                token_type="Bearer",
                expires_in=self.token_ttl_seconds,
                did=token.did,
            )
        )

    @beartype
    async def fetch_assertion(
        self, bearer_token: str | None
    ) -> Result[IdentityAssertion, AuthError]:
        """Serve the identity bound to a bearer token.

        The profile is re-resolved so ledger updates since issuance are
        reflected. If the ledger cannot be reached the assertion falls back to
        the profile captured when the code was verified: the token already
        proves that verification happened. Such assertions carry
        ``source=SNAPSHOT`` and the fallback is logged at WARNING.

        Args:
            bearer_token: Access token from the Authorization header

        Returns:
            Result containing the identity assertion
        """
        if not bearer_token:
            return Err(invalid_token("Missing or invalid authorization header"))

        found = await self._store.get_token(bearer_token)
        if found.is_err():
            return Err(found.unwrap_err())
        token = found.unwrap()

        resolved = await self._ledger.resolve_profile(token.subject_address)
        if resolved.is_err():
            logger.warning(
                "Ledger unavailable for %s (%s); serving profile captured at issuance",
                token.subject_address,
                resolved.unwrap_err().message,
            )
            snapshot = token.snapshot_profile()
            return Ok(_assertion(token.did, snapshot, AssertionSource.SNAPSHOT))

        profile = resolved.unwrap()
        if profile is None:
            return Err(
                AuthError(ErrorKind.IDENTITY_NOT_FOUND, "User profile not found")
            )
        return Ok(_assertion(token.did, profile, AssertionSource.LEDGER))

    @beartype
    async def lookup_identity(
        self, address: str | None
    ) -> Result[IdentityProfile | None, AuthError]:
        """Read-only DID lookup used by the login page before it asks for a code."""
        if not address:
            return Err(invalid_request("Wallet address is required"))
        return await self._ledger.resolve_profile(address)


def _secrets_match(expected: str | None, supplied: str) -> bool:
    if expected is None:
        return False
    return hmac.compare_digest(expected.encode(), supplied.encode())


def _assertion(
    did: str, profile: IdentityProfile, source: AssertionSource
) -> IdentityAssertion:
    return IdentityAssertion(
        did=did,
        name=profile.name,
        email=profile.email,
        address=profile.address,
        source=source,
    )
