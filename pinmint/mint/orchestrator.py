"""End-to-end pin-then-mint pipeline.

A mint moves through ``MintState`` in order:

    RECEIVED -> [PINNING -> PINNED | PIN_SKIPPED_OR_FAILED] -> SUBMITTING
    -> SUBMITTED -> CONFIRMING -> CONFIRMED -> DECODING
    -> DECODED | DECODE_FAILED -> RECORDING -> DONE

``SUBMIT_FAILED`` and ``CONFIRM_FAILED`` are the only failure states once a
request passed validation. Everything from ``SUBMITTING`` on runs shielded
from caller cancellation: a transaction that may have reached a node is always
followed through to a result.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from enum import Enum
from typing import Any

from pinmint.chain.decoder import EventDecoder
from pinmint.chain.receipts import ReceiptWaiter
from pinmint.chain.submitter import (
    TransactionSubmitter,
    validate_content_uri,
    validate_recipient,
)
from pinmint.core.errors import (
    ConfirmationFailed,
    ContentNotFound,
    ContentStoreUnavailable,
    MintCancelled,
    MintError,
    SubmissionFailed,
    ValidationError,
)
from pinmint.core.logging import get_logger
from pinmint.core.metrics import MINT_STAGE_SECONDS, MINTS_TOTAL
from pinmint.database.models import ContentRecordModel
from pinmint.database.repositories import ContentRecordRepository
from pinmint.mint.correlation import CorrelationStore, SessionFactoryProvider
from pinmint.mint.models import ErrorResult, MintRequest, MintResult, PendingTransaction
from pinmint.pinning.pinner import ContentPinner

logger = get_logger(__name__)

CancelCheck = Callable[[], Awaitable[bool]]

NO_EVENT_MESSAGE = "Transaction confirmed but mint event not found"


class MintState(str, Enum):
    RECEIVED = "received"
    PINNING = "pinning"
    PINNED = "pinned"
    PIN_SKIPPED_OR_FAILED = "pin_skipped_or_failed"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    SUBMIT_FAILED = "submit_failed"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"
    CONFIRM_FAILED = "confirm_failed"
    DECODING = "decoding"
    DECODED = "decoded"
    DECODE_FAILED = "decode_failed"
    RECORDING = "recording"
    DONE = "done"


@contextmanager
def _timed(stage: str) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        MINT_STAGE_SECONDS.labels(stage=stage).observe(time.perf_counter() - start)


class MintOrchestrator:
    """Composes pinning, submission, confirmation, decoding and recording."""

    def __init__(
        self,
        pinner: ContentPinner,
        submitter: TransactionSubmitter,
        waiter: ReceiptWaiter,
        decoder: EventDecoder,
        correlation_store: CorrelationStore,
        session_factory: SessionFactoryProvider,
        contract_address: str,
    ) -> None:
        self.pinner = pinner
        self.submitter = submitter
        self.waiter = waiter
        self.decoder = decoder
        self.correlation_store = correlation_store
        self._session_factory = session_factory
        self.contract_address = contract_address
        self._in_flight: set[asyncio.Task[MintResult | ErrorResult]] = set()

    def _transition(self, state: MintState, **context: Any) -> None:
        logger.info("mint_state", state=state.value, **context)

    async def mint(
        self, request: MintRequest, is_cancelled: CancelCheck | None = None
    ) -> MintResult | ErrorResult:
        """Run one mint to a terminal result.

        Args:
            request: Recipient plus a content identifier or record reference
            is_cancelled: Polled once before submission; a true result aborts

        Returns:
            MintResult on confirmation, ErrorResult otherwise
        """
        self._transition(MintState.RECEIVED, recipient=request.recipient)
        try:
            recipient = self._preflight(request)
            record, content_id, retrieval_url = await self._resolve_content(request)

            if is_cancelled is not None and await is_cancelled():
                raise MintCancelled("Request cancelled before submission")
        except MintError as e:
            return self._error(e)

        # From here on the transaction may reach a node, so the caller can no
        # longer cancel the work, only stop waiting for it.
        task = asyncio.ensure_future(
            self._submit_and_complete(recipient, content_id, retrieval_url, record)
        )
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return await asyncio.shield(task)

    def _preflight(self, request: MintRequest) -> str:
        recipient = validate_recipient(request.recipient)
        if request.content_id and request.content_id.strip():
            validate_content_uri(request.content_id)
        elif not (request.content_record_id and request.content_record_id.strip()):
            raise ValidationError("IPFS hash cannot be empty")
        return recipient

    async def _resolve_content(
        self, request: MintRequest
    ) -> tuple[ContentRecordModel | None, str, str | None]:
        # An explicit identifier wins over a record reference.
        if request.content_id and request.content_id.strip():
            content_id = request.content_id.strip()
            return None, content_id, self.pinner.gateway_link(content_id)

        record_id = (request.content_record_id or "").strip()
        factory = self._session_factory()
        if factory is None:
            raise ContentStoreUnavailable("Content store is not available")

        async with factory() as session:
            repository = ContentRecordRepository(session)
            record = await repository.get_by_id(record_id)
            if record is None:
                raise ContentNotFound(f"Content record {record_id} not found")
            if record.content_id:
                return (
                    record,
                    record.content_id,
                    record.retrieval_url or self.pinner.gateway_link(record.content_id),
                )

            self._transition(MintState.PINNING, content_record_id=record_id)
            with _timed("pin"):
                pinned = await self.pinner.pin(record.data, f"content-{record_id}")
            if pinned is None:
                self._transition(
                    MintState.PIN_SKIPPED_OR_FAILED, content_record_id=record_id
                )
                raise ValidationError(
                    "IPFS hash cannot be empty",
                    details="Content record has no IPFS hash and pinning produced none",
                )
            record = await repository.set_pinned(
                record, pinned.content_id, pinned.retrieval_url
            )
            self._transition(
                MintState.PINNED, content_record_id=record_id, content_id=record.content_id
            )
            return record, record.content_id, record.retrieval_url

    async def _submit_and_complete(
        self,
        recipient: str,
        content_id: str,
        retrieval_url: str | None,
        record: ContentRecordModel | None,
    ) -> MintResult | ErrorResult:
        self._transition(MintState.SUBMITTING, content_id=content_id)
        try:
            with _timed("submit"):
                pending = await self.submitter.submit(recipient, content_id)
        except MintError as e:
            if isinstance(e, SubmissionFailed):
                self._transition(MintState.SUBMIT_FAILED, category=e.category.value)
            return self._error(e)

        self._transition(MintState.SUBMITTED, tx_hash=pending.tx_hash)
        return await self._complete(
            pending, recipient, content_id, retrieval_url, record
        )

    async def _complete(
        self,
        pending: PendingTransaction,
        recipient: str,
        content_id: str,
        retrieval_url: str | None,
        record: ContentRecordModel | None,
    ) -> MintResult | ErrorResult:
        self._transition(MintState.CONFIRMING, tx_hash=pending.tx_hash)
        try:
            with _timed("confirm"):
                receipt = await self.waiter.wait(pending)
        except ConfirmationFailed as e:
            self._transition(
                MintState.CONFIRM_FAILED, tx_hash=pending.tx_hash, reason=e.reason
            )
            if e.reason != "reverted":
                # A reverted transaction still consumed its nonce
                await self.submitter.resync_nonce(e.reason)
            return self._error(e)
        self._transition(MintState.CONFIRMED, tx_hash=pending.tx_hash)

        self._transition(MintState.DECODING, tx_hash=pending.tx_hash)
        decoded = self.decoder.decode(receipt)
        if decoded is None:
            self._transition(MintState.DECODE_FAILED, tx_hash=pending.tx_hash)
        else:
            self._transition(
                MintState.DECODED, tx_hash=pending.tx_hash, token_id=decoded.token_id
            )

        result = MintResult(
            tx_hash=pending.tx_hash,
            token_id=str(decoded.token_id) if decoded else None,
            block_number=receipt.get("blockNumber"),
            recipient=recipient,
            content_id=content_id,
            retrieval_url=retrieval_url,
            contract_address=self.contract_address,
            message=None if decoded else NO_EVENT_MESSAGE,
        )

        self._transition(MintState.RECORDING, tx_hash=pending.tx_hash)
        correlation_id = await self.correlation_store.record(record, content_id, result)
        if correlation_id is not None:
            result = result.model_copy(update={"correlation_id": correlation_id})

        outcome = "success" if decoded else "success_without_token"
        MINTS_TOTAL.labels(outcome=outcome).inc()
        self._transition(
            MintState.DONE, tx_hash=result.tx_hash, token_id=result.token_id
        )
        return result

    def _error(self, error: MintError) -> ErrorResult:
        MINTS_TOTAL.labels(outcome=error.category.value).inc()
        logger.warning(
            "mint_failed",
            category=error.category.value,
            error=error.message,
            details=error.details,
        )
        return ErrorResult(
            category=error.category,
            error=error.message,
            details=error.details,
            tx_hash=getattr(error, "tx_hash", None),
        )
