"""Repository pattern for database operations."""

from abc import ABC
from typing import Any, Generic, Optional, Sequence, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import ContentRecordModel, CorrelationRecordModel

ModelType = TypeVar("ModelType")


class BaseRepository(ABC, Generic[ModelType]):
    """Base repository for common database operations."""

    def __init__(self, session: AsyncSession, model: type[ModelType]):
        self.session = session
        self.model = model

    async def get_by_id(self, id: str) -> Optional[ModelType]:
        """Get entity by ID."""
        result = await self.session.get(self.model, id)
        return result

    async def create(self, **kwargs) -> ModelType:
        """Create new entity."""
        instance = self.model(**kwargs)
        self.session.add(instance)
        await self.session.commit()
        await self.session.refresh(instance)
        return instance


class ContentRecordRepository(BaseRepository[ContentRecordModel]):
    """Document store for raw JSON payloads."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, ContentRecordModel)

    async def create_record(self, data: Any) -> ContentRecordModel:
        """Store a payload and return the new record."""
        return await self.create(data=data)

    async def set_pinned(
        self, record: ContentRecordModel, content_id: str, retrieval_url: str | None
    ) -> ContentRecordModel:
        """Attach a content identifier to a record that has none yet.

        A record is immutable once pinned; an existing identifier is kept.
        """
        if record.content_id:
            return record
        record.content_id = content_id
        record.retrieval_url = retrieval_url
        await self.session.commit()
        await self.session.refresh(record)
        return record


class CorrelationRepository(BaseRepository[CorrelationRecordModel]):
    """Append-only access to correlation records."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, CorrelationRecordModel)

    async def latest(self, limit: int = 10) -> Sequence[CorrelationRecordModel]:
        """Most recent records first."""
        query = (
            select(self.model).order_by(self.model.created_at.desc()).limit(limit)
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def by_tx_hash(self, tx_hash: str) -> Sequence[CorrelationRecordModel]:
        """All records for a transaction hash (case-insensitive)."""
        query = (
            select(self.model)
            .filter(func.lower(self.model.tx_hash) == tx_hash.lower())
            .order_by(self.model.created_at.asc())
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def by_token_id(self, token_id: str) -> Sequence[CorrelationRecordModel]:
        """All records for a token id."""
        query = (
            select(self.model)
            .filter(self.model.token_id == token_id)
            .order_by(self.model.created_at.asc())
        )
        result = await self.session.execute(query)
        return result.scalars().all()
