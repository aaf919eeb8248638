"""Content record API endpoints."""

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED, HTTP_404_NOT_FOUND

from pinmint.api.v1.dependencies import get_mint_service
from pinmint.core.db import get_session
from pinmint.core.events import MintService
from pinmint.core.logging import get_logger
from pinmint.database.repositories import ContentRecordRepository
from pinmint.mint.models import ContentRecordOut

logger = get_logger(__name__)

router = APIRouter(prefix="/content", tags=["content"])


@router.post("", response_model=ContentRecordOut, status_code=HTTP_201_CREATED)
async def create_content(
    payload: Any = Body(..., description="Arbitrary JSON document"),
    pin: bool = Query(False, description="Pin the document to IPFS immediately"),
    label: str | None = Query(None, description="Name shown by the pinning service"),
    session: AsyncSession = Depends(get_session),
    service: MintService = Depends(get_mint_service),
) -> ContentRecordOut:
    """
    Store a JSON document.

    With ``pin=true`` the document is also pinned and its IPFS hash saved on
    the record. A failed pin still stores the record, without a hash.
    """
    repository = ContentRecordRepository(session)
    record = await repository.create_record(payload)
    logger.info("content_record_created", record_id=record.id, pin=pin)

    if pin:
        pinned = await service.pinner.pin(payload, label or f"content-{record.id}")
        if pinned is not None:
            record = await repository.set_pinned(
                record, pinned.content_id, pinned.retrieval_url
            )

    return ContentRecordOut.model_validate(record)


@router.get("/{record_id}", response_model=ContentRecordOut)
async def get_content(
    record_id: str,
    session: AsyncSession = Depends(get_session),
) -> ContentRecordOut:
    """Fetch a stored document and its IPFS hash, if pinned."""
    record = await ContentRecordRepository(session).get_by_id(record_id)
    if record is None:
        raise HTTPException(
            status_code=HTTP_404_NOT_FOUND,
            detail=f"Content record {record_id} not found",
        )
    return ContentRecordOut.model_validate(record)
