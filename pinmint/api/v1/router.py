"""API v1 router module."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.status import HTTP_200_OK, HTTP_503_SERVICE_UNAVAILABLE

from pinmint.api.v1.content import router as content_router
from pinmint.api.v1.correlations import router as correlations_router
from pinmint.api.v1.dependencies import get_mint_service
from pinmint.api.v1.mint import router as mint_router
from pinmint.core.config import settings
from pinmint.core.events import MintService

router = APIRouter(default_response_class=JSONResponse)

router.include_router(content_router)
router.include_router(mint_router)
router.include_router(correlations_router)


@router.get("/")
async def get_api_metadata() -> dict[str, str]:
    """Basic information about this API."""
    return {
        "name": settings.app_name,
        "version": settings.version,
        "contract_address": settings.NFT_CONTRACT_ADDRESS,
        "documentation_url": "/docs",
    }


@router.get("/health")
async def health_check(
    request: Request,
    service: MintService = Depends(get_mint_service),
) -> JSONResponse:
    """
    Health check endpoint.

    Returns 503 when the database is unreachable; missing pinning credentials
    or signing key only degrade the status.
    """
    health = await service.health_check()
    health["version"] = settings.version
    health["correlation_id"] = getattr(request.state, "correlation_id", None)
    status_code = (
        HTTP_503_SERVICE_UNAVAILABLE if health["status"] == "unhealthy" else HTTP_200_OK
    )
    return JSONResponse(status_code=status_code, content=health)
