"""SQLAlchemy models for content and correlation records."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import BigInteger, Column, DateTime, Index, Text
from sqlalchemy.dialects.postgresql import JSONB

from .base import Base


class ContentRecordModel(Base):
    """A JSON document submitted by a caller, optionally pinned to IPFS."""

    __tablename__ = "content_record"

    id = Column(
        Text,
        primary_key=True,
        default=lambda: str(uuid4()),
        nullable=False,
    )
    data = Column(JSONB, nullable=False)
    content_id = Column(Text, nullable=True)
    retrieval_url = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class CorrelationRecordModel(Base):
    """Append-only link from content to the transaction that minted it.

    No uniqueness constraint: the same content may be minted many times.
    """

    __tablename__ = "correlation_record"

    id = Column(
        Text,
        primary_key=True,
        default=lambda: str(uuid4()),
        nullable=False,
    )
    content_record_id = Column(Text, nullable=True)
    content_id = Column(Text, nullable=False)
    retrieval_url = Column(Text, nullable=True)
    original_data = Column(JSONB, nullable=True)
    tx_hash = Column(Text, nullable=False)
    token_id = Column(Text, nullable=True)
    block_number = Column(BigInteger, nullable=True)
    recipient = Column(Text, nullable=False)
    contract_address = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_correlation_record_tx_hash", "tx_hash"),
        Index("ix_correlation_record_token_id", "token_id"),
        Index("ix_correlation_record_created_at", "created_at"),
    )
