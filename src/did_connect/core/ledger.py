# DID Connect - Wallet DID Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Read-only gateway to the identity ledger.

The ledger is a smart contract exposing
``profiles(address) returns (string did, string name, string email)``.
Depending on the client library and ABI the call result arrives as a
positional tuple, a mapping or an attribute object; ``IdentityLedgerGateway``
normalizes every shape into ``IdentityProfile`` so callers never see the wire
format.
"""

import asyncio
from collections.abc import Mapping
from typing import Any, Final, Protocol, runtime_checkable

from beartype import beartype
from web3 import AsyncHTTPProvider, AsyncWeb3

from ..models.credentials import IdentityProfile
from .config import Settings
from .errors import AuthError, ledger_unavailable
from .logging_utils import get_logger
from .result_types import Err, Ok, Result

logger = get_logger(__name__)

PROFILE_FIELDS: Final = ("did", "name", "email")

PROFILE_CONTRACT_ABI: Final = [
    {
        "type": "function",
        "name": "profiles",
        "stateMutability": "view",
        "inputs": [{"name": "", "type": "address"}],
        "outputs": [
            {"name": "did", "type": "string"},
            {"name": "name", "type": "string"},
            {"name": "email", "type": "string"},
        ],
    }
]


class LedgerDecodeError(ValueError):
    """The ledger answered with a shape we cannot interpret."""


@runtime_checkable
class ProfileReader(Protocol):
    """Performs the raw profile query for one wallet address."""

    async def read_profile(self, address: str) -> Any:
        """Return the raw contract result, or ``None`` when nothing is stored."""
        ...


class Web3ProfileReader:
    """Profile reader backed by an Ethereum JSON-RPC node through web3.py."""

    def __init__(self, rpc_url: str, contract_address: str) -> None:
        self._w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))
        self._contract = self._w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(contract_address),
            abi=PROFILE_CONTRACT_ABI,
        )

    async def read_profile(self, address: str) -> Any:
        if not AsyncWeb3.is_address(address):
            # A malformed address cannot own a profile.
            return None
        checksum = AsyncWeb3.to_checksum_address(address)
        return await self._contract.functions.profiles(checksum).call()


class IdentityLedgerGateway:
    """Resolves wallet addresses to canonical identity profiles."""

    def __init__(self, reader: ProfileReader, timeout_seconds: float = 10.0) -> None:
        self._reader = reader
        self._timeout = timeout_seconds

    @classmethod
    @beartype
    def from_settings(cls, settings: Settings) -> "IdentityLedgerGateway":
        reader = Web3ProfileReader(
            settings.ledger_rpc_url, settings.ledger_contract_address
        )
        return cls(reader, timeout_seconds=settings.ledger_timeout_seconds)

    @beartype
    async def resolve_profile(
        self, address: str
    ) -> Result[IdentityProfile | None, AuthError]:
        """Look up the DID profile registered for ``address``.

        Returns:
            ``Ok(profile)`` when a DID is registered, ``Ok(None)`` when the
            ledger holds nothing for the address, and ``Err`` with
            ``LEDGER_UNAVAILABLE`` on transport, timeout or decoding failure.
        """
        try:
            raw = await asyncio.wait_for(
                self._reader.read_profile(address), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Ledger read for %s timed out after %.1fs", address, self._timeout
            )
            return Err(ledger_unavailable("Ledger request timed out"))
        except Exception as e:
            logger.error("Ledger read for %s failed: %s", address, e)
            return Err(ledger_unavailable("Failed to query the identity ledger"))

        try:
            return Ok(normalize_profile(raw, address))
        except LedgerDecodeError as e:
            logger.error("Undecodable ledger response for %s: %s", address, e)
            return Err(ledger_unavailable("Unreadable identity ledger response"))


@beartype
def normalize_profile(raw: Any, address: str) -> IdentityProfile | None:
    """Convert a raw ``profiles`` result into an ``IdentityProfile``.

    An empty DID means the address never registered, which is reported as
    ``None`` rather than as a profile with blank fields.
    """
    if raw is None:
        return None

    if isinstance(raw, Mapping):
        values = [raw.get(field) for field in PROFILE_FIELDS]
    elif isinstance(raw, (list, tuple)):
        if len(raw) != len(PROFILE_FIELDS):
            raise LedgerDecodeError(
                f"expected {len(PROFILE_FIELDS)} positional values, got {len(raw)}"
            )
        values = list(raw)
    elif all(hasattr(raw, field) for field in PROFILE_FIELDS):
        values = [getattr(raw, field) for field in PROFILE_FIELDS]
    else:
        raise LedgerDecodeError(f"unsupported result type {type(raw).__name__}")

    did, name, email = (_as_text(value) for value in values)
    if not did.strip():
        return None
    return IdentityProfile(did=did, name=name, email=email, address=address)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise LedgerDecodeError("profile field is not valid UTF-8") from e
    if isinstance(value, str):
        return value
    raise LedgerDecodeError(f"profile field has type {type(value).__name__}")
