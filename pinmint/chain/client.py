"""web3.py adapter for one RPC endpoint.

Every call goes through :meth:`ChainClient._rpc`, which turns transport and
JSON-RPC failures into a :class:`ChainRPCError` carrying a typed ``kind``.
Callers branch on the kind, never on exception text.
"""

import asyncio
from collections.abc import Awaitable, Mapping
from enum import Enum
from typing import Any, TypeVar

import aiohttp
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3RPCError

from pinmint.chain.contract import MINT_FUNCTION, NFT_ABI

T = TypeVar("T")

# Error codes geth-compatible nodes use for transaction pool rejections.
TXPOOL_ERROR_CODES = {-32000, -32003, -32010}
RATE_LIMIT_ERROR_CODE = -32005
# Hosted providers answer a bad or missing project key with these.
AUTH_ERROR_CODES = {-32001, -32002}


class ChainErrorKind(str, Enum):
    """Failure kinds reported by the RPC layer."""

    AUTHENTICATION = "authentication"
    NETWORK = "network"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    UNDERPRICED = "underpriced"
    ALREADY_KNOWN = "already_known"
    NONCE_TOO_LOW = "nonce_too_low"
    REVERTED = "reverted"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class ChainRPCError(Exception):
    """A failed call against an RPC endpoint."""

    def __init__(
        self, kind: ChainErrorKind, message: str, code: int | None = None
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.code = code

    def __repr__(self) -> str:
        return (
            f"ChainRPCError(kind={self.kind.value!r}, code={self.code!r}, "
            f"message={self.message!r})"
        )


def _txpool_kind(message: str) -> ChainErrorKind:
    text = message.lower()
    if text.startswith("insufficient funds"):
        return ChainErrorKind.INSUFFICIENT_FUNDS
    if text.startswith(
        ("transaction underpriced", "replacement transaction underpriced")
    ):
        return ChainErrorKind.UNDERPRICED
    if text.startswith(("already known", "known transaction")):
        return ChainErrorKind.ALREADY_KNOWN
    if text.startswith("nonce too low"):
        return ChainErrorKind.NONCE_TOO_LOW
    return ChainErrorKind.UNKNOWN


def classify_error(exc: BaseException) -> ChainRPCError:
    """Map a web3/aiohttp exception onto a typed :class:`ChainRPCError`."""
    if isinstance(exc, ChainRPCError):
        return exc
    if isinstance(exc, TimeExhausted):
        return ChainRPCError(ChainErrorKind.TIMEOUT, str(exc))
    if isinstance(exc, ContractLogicError):
        return ChainRPCError(ChainErrorKind.REVERTED, str(exc))
    if isinstance(exc, aiohttp.ClientResponseError):
        if exc.status in (401, 403):
            return ChainRPCError(ChainErrorKind.AUTHENTICATION, exc.message, exc.status)
        if exc.status == 429 or exc.status >= 500:
            return ChainRPCError(ChainErrorKind.NETWORK, exc.message, exc.status)
        return ChainRPCError(ChainErrorKind.UNKNOWN, exc.message, exc.status)
    if isinstance(exc, (aiohttp.ClientConnectionError, asyncio.TimeoutError, OSError)):
        return ChainRPCError(ChainErrorKind.NETWORK, f"{type(exc).__name__}: {exc}")
    if isinstance(exc, Web3RPCError):
        error = (exc.rpc_response or {}).get("error") or {}
        code = error.get("code") if isinstance(error, Mapping) else None
        message = str(error.get("message", "")) if isinstance(error, Mapping) else ""
        if code == RATE_LIMIT_ERROR_CODE:
            kind = ChainErrorKind.NETWORK
        elif code in AUTH_ERROR_CODES:
            kind = ChainErrorKind.AUTHENTICATION
        elif code in TXPOOL_ERROR_CODES:
            kind = _txpool_kind(message)
        else:
            kind = ChainErrorKind.UNKNOWN
        return ChainRPCError(kind, message or str(exc), code)
    return ChainRPCError(ChainErrorKind.UNKNOWN, f"{type(exc).__name__}: {exc}")


class ChainClient:
    """Async access to the minting contract through a single endpoint."""

    def __init__(
        self,
        url: str,
        contract_address: str,
        timeout: float = 30.0,
        w3: AsyncWeb3 | None = None,
    ) -> None:
        self.url = url
        self.w3 = w3 or AsyncWeb3(
            AsyncHTTPProvider(
                url, request_kwargs={"timeout": aiohttp.ClientTimeout(total=timeout)}
            )
        )
        self.contract_address = Web3.to_checksum_address(contract_address)
        self.contract = self.w3.eth.contract(address=self.contract_address, abi=NFT_ABI)
        self._chain_id: int | None = None

    async def _rpc(self, call: Awaitable[T]) -> T:
        try:
            return await call
        except Exception as e:
            raise classify_error(e) from e

    async def gas_price(self) -> int:
        return int(await self._rpc(self.w3.eth.gas_price))

    async def pending_nonce(self, address: str) -> int:
        return int(
            await self._rpc(self.w3.eth.get_transaction_count(address, "pending"))
        )

    async def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = int(await self._rpc(self.w3.eth.chain_id))
        return self._chain_id

    def encode_mint(self, recipient: str, token_uri: str) -> str:
        """ABI-encode ``mintWithIPFS(recipient, token_uri)`` call data."""
        return self.contract.encode_abi(MINT_FUNCTION, args=[recipient, token_uri])

    async def send_raw_transaction(self, raw_transaction: bytes) -> str:
        tx_hash = await self._rpc(self.w3.eth.send_raw_transaction(raw_transaction))
        return Web3.to_hex(tx_hash)

    async def wait_for_receipt(
        self, tx_hash: str, timeout: float, poll_latency: float
    ) -> Mapping[str, Any]:
        return await self._rpc(
            self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=timeout, poll_latency=poll_latency
            )
        )

    async def owner_of(self, token_id: int) -> str:
        return await self._rpc(self.contract.functions.ownerOf(token_id).call())

    async def token_uri(self, token_id: int) -> str:
        return await self._rpc(self.contract.functions.tokenURI(token_id).call())

    async def token_counter(self) -> int:
        return int(await self._rpc(self.contract.functions.tokenCounter().call()))

    async def close(self) -> None:
        await self.w3.provider.disconnect()
