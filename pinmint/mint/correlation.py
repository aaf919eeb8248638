"""Best-effort persistence of content-to-mint correlation records."""

from collections.abc import Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pinmint.core.logging import get_logger
from pinmint.core.metrics import CORRELATION_WRITES
from pinmint.database.models import ContentRecordModel
from pinmint.database.repositories import CorrelationRepository
from pinmint.mint.models import MintResult

logger = get_logger(__name__)

SessionFactoryProvider = Callable[[], async_sessionmaker[AsyncSession] | None]


class CorrelationStore:
    """Appends correlation records; a failed write never reaches the caller."""

    def __init__(self, session_factory: SessionFactoryProvider) -> None:
        self._session_factory = session_factory

    async def record(
        self,
        content_record: ContentRecordModel | None,
        content_id: str,
        mint_result: MintResult,
    ) -> str | None:
        """Persist a correlation record.

        Returns:
            The new record id, or None when the write failed
        """
        try:
            factory = self._session_factory()
            if factory is None:
                raise RuntimeError("Database not initialized - cannot create session")
            async with factory() as session:
                record = await CorrelationRepository(session).create(
                    content_record_id=content_record.id if content_record else None,
                    content_id=content_id,
                    retrieval_url=mint_result.retrieval_url,
                    original_data=content_record.data if content_record else None,
                    tx_hash=mint_result.tx_hash,
                    token_id=mint_result.token_id,
                    block_number=mint_result.block_number,
                    recipient=mint_result.recipient,
                    contract_address=mint_result.contract_address,
                )
        except Exception as e:
            CORRELATION_WRITES.labels(status="failed").inc()
            logger.error(
                "correlation_record_failed",
                tx_hash=mint_result.tx_hash,
                error_type=type(e).__name__,
                error=str(e),
            )
            return None

        CORRELATION_WRITES.labels(status="stored").inc()
        logger.info(
            "correlation_recorded", record_id=record.id, tx_hash=mint_result.tx_hash
        )
        return record.id
