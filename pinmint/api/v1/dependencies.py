"""Shared FastAPI dependencies."""

from fastapi import HTTPException, Request
from starlette.status import HTTP_503_SERVICE_UNAVAILABLE

from pinmint.core.events import MintService


def get_mint_service(request: Request) -> MintService:
    """The pipeline container built at startup."""
    service: MintService | None = getattr(request.app.state, "mint_service", None)
    if service is None:
        raise HTTPException(
            status_code=HTTP_503_SERVICE_UNAVAILABLE,
            detail="Mint service is not initialized",
        )
    return service
