"""Wait for mint transactions to be mined."""

from collections.abc import Mapping
from typing import Any

from pinmint.chain.client import ChainErrorKind, ChainRPCError
from pinmint.chain.endpoints import ChainEndpointSelector
from pinmint.core.errors import ConfirmationFailed
from pinmint.core.logging import get_logger
from pinmint.mint.models import PendingTransaction

logger = get_logger(__name__)


class ReceiptWaiter:
    """Waits for a receipt with an explicit deadline.

    A transaction that outlives the deadline is reported as
    ``ConfirmationFailed``; it may still be mined later.
    """

    def __init__(
        self,
        selector: ChainEndpointSelector,
        timeout: float = 180.0,
        poll_interval: float = 2.0,
    ) -> None:
        if timeout <= 0:
            raise ValueError("Confirmation timeout must be positive")
        self.selector = selector
        self.timeout = timeout
        self.poll_interval = poll_interval

    async def wait(self, pending: PendingTransaction) -> Mapping[str, Any]:
        """Block until ``pending`` is mined.

        Raises:
            ConfirmationFailed: On timeout, endpoint failure or revert
        """
        client = self.selector.client_for(pending.endpoint)
        try:
            receipt = await client.wait_for_receipt(
                pending.tx_hash, timeout=self.timeout, poll_latency=self.poll_interval
            )
        except ChainRPCError as e:
            reason = "timeout" if e.kind is ChainErrorKind.TIMEOUT else "endpoint"
            logger.error(
                "tx_confirmation_failed",
                tx_hash=pending.tx_hash,
                reason=reason,
                error=e.message,
            )
            raise ConfirmationFailed(pending.tx_hash, reason, details=e.message) from e

        if receipt.get("status") == 0:
            logger.error(
                "tx_reverted",
                tx_hash=pending.tx_hash,
                block_number=receipt.get("blockNumber"),
            )
            raise ConfirmationFailed(
                pending.tx_hash, "reverted", details="Transaction reverted on-chain"
            )

        logger.info(
            "tx_confirmed",
            tx_hash=pending.tx_hash,
            block_number=receipt.get("blockNumber"),
            log_count=len(receipt.get("logs") or []),
        )
        return receipt
