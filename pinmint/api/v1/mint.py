"""Mint and NFT lookup endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_502_BAD_GATEWAY,
)

from pinmint.api.v1.dependencies import get_mint_service
from pinmint.chain.client import ChainRPCError
from pinmint.chain.lookup import parse_token_id
from pinmint.core.errors import ErrorCategory, SubmissionFailed
from pinmint.core.events import MintService
from pinmint.mint.models import ErrorResult, MintRequest, MintResult, NFTDetails

router = APIRouter(tags=["mint"])

CATEGORY_STATUS: dict[ErrorCategory, int] = {
    ErrorCategory.VALIDATION: 422,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.AUTHENTICATION: 401,
    ErrorCategory.INSUFFICIENT_FUNDS: 402,
    ErrorCategory.NETWORK: 502,
    ErrorCategory.UNDERPRICED: 502,
    ErrorCategory.RPC_CONFIG: 502,
    ErrorCategory.UNKNOWN: 502,
    ErrorCategory.CONFIRMATION: 504,
    ErrorCategory.CANCELLED: 499,
    ErrorCategory.STORAGE: 503,
}


@router.post(
    "/mint",
    response_model=MintResult,
    responses={
        401: {"model": ErrorResult},
        402: {"model": ErrorResult},
        404: {"model": ErrorResult},
        422: {"model": ErrorResult},
        499: {"model": ErrorResult},
        502: {"model": ErrorResult},
        503: {"model": ErrorResult},
        504: {"model": ErrorResult},
    },
)
async def mint_nft(
    body: MintRequest,
    request: Request,
    service: MintService = Depends(get_mint_service),
) -> MintResult | JSONResponse:
    """
    Pin (when needed) and mint an NFT to ``recipientAddress``.

    Waits for confirmation. A confirmed mint whose event could not be decoded
    is still a success, with ``tokenId`` null.
    """
    result = await service.orchestrator.mint(body, is_cancelled=request.is_disconnected)
    if isinstance(result, ErrorResult):
        return JSONResponse(
            status_code=CATEGORY_STATUS.get(result.category, HTTP_502_BAD_GATEWAY),
            content=result.model_dump(mode="json", by_alias=True),
        )
    return result


@router.get("/nft/counter")
async def get_token_counter(
    service: MintService = Depends(get_mint_service),
) -> dict[str, int]:
    """Number of tokens minted by the contract so far."""
    try:
        count = await service.lookup.token_counter()
    except (ChainRPCError, SubmissionFailed) as e:
        raise HTTPException(status_code=HTTP_502_BAD_GATEWAY, detail=e.message) from e
    return {"token_counter": count}


@router.get("/nft/{token_id}", response_model=NFTDetails)
async def get_nft(
    token_id: str,
    service: MintService = Depends(get_mint_service),
) -> NFTDetails:
    """Current owner, token URI and gateway metadata of a token."""
    try:
        parse_token_id(token_id)
    except ValueError as e:
        raise HTTPException(
            status_code=HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid token id: {token_id}",
        ) from e
    try:
        return await service.lookup.lookup(token_id)
    except (ChainRPCError, SubmissionFailed) as e:
        raise HTTPException(status_code=HTTP_502_BAD_GATEWAY, detail=e.message) from e
