"""Request and result models for the mint pipeline."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from pinmint.core.errors import ErrorCategory


class PinResult(BaseModel):
    """Outcome of a successful pin."""

    content_id: str
    retrieval_url: str
    timestamp: datetime
    pin_size: int | None = None


class MintRequest(BaseModel):
    """A request to mint one NFT.

    Exactly one of ``content_id`` or ``content_record_id`` must resolve to a
    non-empty content identifier before anything is submitted.
    """

    model_config = ConfigDict(populate_by_name=True)

    recipient: str = Field(
        ..., alias="recipientAddress", description="Address receiving the token"
    )
    content_id: str | None = Field(
        None, alias="ipfsHash", description="Raw CID or ipfs:// URI"
    )
    content_record_id: str | None = Field(
        None, alias="contentRecordId", description="Id of a stored content record"
    )


@dataclass
class PendingTransaction:
    """A broadcast transaction that has not been confirmed yet."""

    tx_hash: str
    endpoint: str
    nonce: int
    gas_price: int
    submitted_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class DecodedMint:
    """Identifiers extracted from a mint receipt."""

    token_id: int
    recipient: str
    content_reference: str | None
    event: Literal["NFTMinted", "Transfer"]


class MintResult(BaseModel):
    """A confirmed mint; ``token_id`` is absent when no event was decoded."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: Literal[True] = True
    tx_hash: str
    token_id: str | None = None
    block_number: int | None = None
    recipient: str
    content_id: str
    retrieval_url: str | None = None
    contract_address: str
    correlation_id: str | None = None
    message: str | None = None


class ErrorResult(BaseModel):
    """A mint that did not reach confirmation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: Literal[False] = False
    category: ErrorCategory
    error: str
    details: str | None = None
    tx_hash: str | None = None


class NFTDetails(BaseModel):
    """Current on-chain state of a token."""

    token_id: str
    owner: str
    token_uri: str | None = None
    contract_address: str
    gateway_url: str | None = None
    metadata: dict[str, Any] | None = None
    source: Literal["chain", "fixture"] = "chain"


class ContentRecordOut(BaseModel):
    """Serialized content record."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    data: Any
    content_id: str | None = None
    retrieval_url: str | None = None
    created_at: datetime


class CorrelationRecordOut(BaseModel):
    """Serialized correlation record."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    content_record_id: str | None = None
    content_id: str
    retrieval_url: str | None = None
    original_data: Any = None
    tx_hash: str
    token_id: str | None = None
    block_number: int | None = None
    recipient: str
    contract_address: str
    created_at: datetime
