"""Build, sign and broadcast mint transactions."""

import asyncio

from eth_account import Account
from eth_account.datastructures import SignedTransaction
from eth_account.signers.local import LocalAccount
from web3 import Web3

from pinmint.chain.client import ChainClient, ChainErrorKind, ChainRPCError
from pinmint.chain.contract import canonicalize_content_uri
from pinmint.chain.endpoints import ChainEndpointSelector
from pinmint.core.config import Settings
from pinmint.core.errors import ErrorCategory, SubmissionFailed, ValidationError
from pinmint.core.logging import get_logger
from pinmint.mint.models import PendingTransaction

logger = get_logger(__name__)

KIND_TO_CATEGORY: dict[ChainErrorKind, ErrorCategory] = {
    ChainErrorKind.AUTHENTICATION: ErrorCategory.AUTHENTICATION,
    ChainErrorKind.NETWORK: ErrorCategory.NETWORK,
    ChainErrorKind.INSUFFICIENT_FUNDS: ErrorCategory.INSUFFICIENT_FUNDS,
    ChainErrorKind.UNDERPRICED: ErrorCategory.UNDERPRICED,
}


def validate_recipient(recipient: str | None) -> str:
    """Return the checksummed form of ``recipient``.

    Raises:
        ValidationError: If it is not a valid address
    """
    if not isinstance(recipient, str) or not Web3.is_address(recipient):
        raise ValidationError("Invalid Ethereum address", details=repr(recipient))
    return Web3.to_checksum_address(recipient)


def validate_content_uri(content_id: str | None) -> str:
    """Return the canonical ipfs:// URI for ``content_id``.

    Raises:
        ValidationError: If no identifier is present
    """
    try:
        return canonicalize_content_uri(content_id or "")
    except ValueError as e:
        raise ValidationError("IPFS hash cannot be empty") from e


class TransactionSubmitter:
    """Submits ``mintWithIPFS`` calls from the single signing identity.

    All submissions are serialized through one lock so concurrent mints never
    read and reuse the same account nonce.
    """

    def __init__(
        self,
        selector: ChainEndpointSelector,
        private_key: str | None,
        gas_limit: int = 500_000,
        gas_price_multiplier_percent: int = 120,
        max_endpoint_attempts: int = 3,
        chain_id: int | None = None,
    ) -> None:
        self.selector = selector
        self.account: LocalAccount | None = (
            Account.from_key(private_key) if private_key else None
        )
        self.gas_limit = gas_limit
        self.gas_price_multiplier_percent = gas_price_multiplier_percent
        self.max_endpoint_attempts = max_endpoint_attempts
        self.chain_id = chain_id
        self._lock = asyncio.Lock()
        self._last_nonce: int | None = None

    @classmethod
    def from_settings(
        cls, settings: Settings, selector: ChainEndpointSelector
    ) -> "TransactionSubmitter":
        return cls(
            selector,
            private_key=settings.PRIVATE_KEY,
            gas_limit=settings.MINT_GAS_LIMIT,
            gas_price_multiplier_percent=settings.GAS_PRICE_MULTIPLIER_PERCENT,
            max_endpoint_attempts=settings.CHAIN_MAX_ENDPOINT_ATTEMPTS,
            chain_id=settings.CHAIN_ID,
        )

    @property
    def sender(self) -> str | None:
        return self.account.address if self.account else None

    def uplift(self, gas_price: int) -> int:
        """Apply the fixed gas price multiplier."""
        return gas_price * self.gas_price_multiplier_percent // 100

    async def submit(self, recipient: str, content_id: str) -> PendingTransaction:
        """Broadcast a mint of ``content_id`` to ``recipient``.

        Returns as soon as a node accepted the transaction; it does not wait
        for confirmation.

        Raises:
            ValidationError: Bad recipient or empty content identifier
            SubmissionFailed: No transaction was accepted by any endpoint
        """
        checksum_recipient = validate_recipient(recipient)
        token_uri = validate_content_uri(content_id)

        account = self.account
        if account is None:
            raise SubmissionFailed(
                ErrorCategory.RPC_CONFIG, details="No private key found in configuration"
            )
        self.selector.resolve()
        urls = self.selector.candidates(self.max_endpoint_attempts)

        async with self._lock:
            return await self._submit_locked(
                account, urls, checksum_recipient, token_uri
            )

    async def resync_nonce(self, reason: str) -> None:
        """Drop the local nonce cursor so the next mint reads it from the node.

        Called when a submitted transaction was not observed on-chain; it may
        have been dropped, which would otherwise leave a nonce gap.
        """
        async with self._lock:
            self._reset_nonce_cursor(reason)

    def _reset_nonce_cursor(self, reason: str) -> None:
        if self._last_nonce is not None:
            logger.warning(
                "nonce_cursor_reset", last_nonce=self._last_nonce, reason=reason
            )
        self._last_nonce = None

    async def _sign(
        self,
        account: LocalAccount,
        client: ChainClient,
        recipient: str,
        token_uri: str,
    ) -> tuple[SignedTransaction, int, int]:
        gas_price = self.uplift(await client.gas_price())
        pending = await client.pending_nonce(account.address)
        if self._last_nonce is None:
            nonce = pending
        else:
            nonce = max(pending, self._last_nonce + 1)
        chain_id = self.chain_id
        if chain_id is None:
            chain_id = await client.chain_id()

        transaction = {
            "to": client.contract_address,
            "data": client.encode_mint(recipient, token_uri),
            "value": 0,
            "gas": self.gas_limit,
            "gasPrice": gas_price,
            "nonce": nonce,
            "chainId": chain_id,
        }
        return account.sign_transaction(transaction), nonce, gas_price

    async def _submit_locked(
        self,
        account: LocalAccount,
        urls: list[str],
        recipient: str,
        token_uri: str,
    ) -> PendingTransaction:
        signed: SignedTransaction | None = None
        nonce = gas_price = 0
        last_error: ChainRPCError | None = None

        for url in urls:
            client = self.selector.client_for(url)
            try:
                if signed is None:
                    signed, nonce, gas_price = await self._sign(
                        account, client, recipient, token_uri
                    )
                try:
                    tx_hash = await client.send_raw_transaction(signed.raw_transaction)
                except ChainRPCError as e:
                    if e.kind is not ChainErrorKind.ALREADY_KNOWN:
                        raise
                    # The node already holds this exact signed transaction.
                    tx_hash = Web3.to_hex(signed.hash)
            except ChainRPCError as e:
                last_error = e
                if e.kind is ChainErrorKind.NETWORK:
                    logger.warning(
                        "rpc_endpoint_failed",
                        url=url,
                        error=e.message,
                        signed=signed is not None,
                    )
                    continue
                if e.kind is ChainErrorKind.NONCE_TOO_LOW:
                    self._reset_nonce_cursor("nonce_too_low")
                logger.error(
                    "tx_submit_failed", url=url, kind=e.kind.value, error=e.message
                )
                raise SubmissionFailed(
                    KIND_TO_CATEGORY.get(e.kind, ErrorCategory.UNKNOWN),
                    details=e.message,
                ) from e

            self._last_nonce = nonce
            logger.info(
                "tx_submitted",
                tx_hash=tx_hash,
                url=url,
                nonce=nonce,
                gas_price=gas_price,
                recipient=recipient,
                token_uri=token_uri,
            )
            return PendingTransaction(
                tx_hash=tx_hash, endpoint=url, nonce=nonce, gas_price=gas_price
            )

        details = last_error.message if last_error else "No RPC endpoint reachable"
        if signed is not None:
            details = (
                f"{details}; signed transaction {Web3.to_hex(signed.hash)} "
                "may still reach the network"
            )
        raise SubmissionFailed(ErrorCategory.NETWORK, details=details)
