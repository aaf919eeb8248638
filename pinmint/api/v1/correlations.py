"""Correlation record endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_404_NOT_FOUND

from pinmint.core.db import get_session
from pinmint.database.repositories import CorrelationRepository
from pinmint.mint.models import CorrelationRecordOut

router = APIRouter(prefix="/correlations", tags=["correlations"])


@router.get("", response_model=list[CorrelationRecordOut])
async def list_correlations(
    limit: int = Query(10, ge=1, le=100, description="Number of records"),
    session: AsyncSession = Depends(get_session),
) -> list[CorrelationRecordOut]:
    """Most recent content-to-mint records first."""
    records = await CorrelationRepository(session).latest(limit)
    return [CorrelationRecordOut.model_validate(record) for record in records]


@router.get("/tx/{tx_hash}", response_model=list[CorrelationRecordOut])
async def get_by_transaction(
    tx_hash: str,
    session: AsyncSession = Depends(get_session),
) -> list[CorrelationRecordOut]:
    """Records for one transaction hash."""
    records = await CorrelationRepository(session).by_tx_hash(tx_hash)
    if not records:
        raise HTTPException(
            status_code=HTTP_404_NOT_FOUND,
            detail=f"No correlation records for transaction {tx_hash}",
        )
    return [CorrelationRecordOut.model_validate(record) for record in records]


@router.get("/token/{token_id}", response_model=list[CorrelationRecordOut])
async def get_by_token(
    token_id: str,
    session: AsyncSession = Depends(get_session),
) -> list[CorrelationRecordOut]:
    """Records for one token id."""
    records = await CorrelationRepository(session).by_token_id(token_id)
    if not records:
        raise HTTPException(
            status_code=HTTP_404_NOT_FOUND,
            detail=f"No correlation records for token {token_id}",
        )
    return [CorrelationRecordOut.model_validate(record) for record in records]
