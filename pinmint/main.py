"""Main FastAPI application module."""

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette import status

from pinmint.api.v1.router import router as v1_router
from pinmint.core.config import settings
from pinmint.core.events import lifespan
from pinmint.middleware.correlation import CorrelationMiddleware
from pinmint.middleware.errors import (
    ErrorHandlingMiddleware,
    register_exception_handlers,
)
from pinmint.middleware.metrics import MetricsMiddleware
from pinmint.middleware.security import SecurityHeadersMiddleware


def create_app() -> FastAPI:
    """Build the application with its middleware stack and routes."""
    app = FastAPI(
        title=settings.app_name,
        description="Pin JSON documents to IPFS and mint them as NFTs",
        version=settings.version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        default_response_class=JSONResponse,
        lifespan=lifespan,
    )

    # Added inside -> out, so CORS ends up outermost and error handling innermost
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(CorrelationMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
        max_age=600,
    )
    register_exception_handlers(app)

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Expose Prometheus metrics."""
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/", include_in_schema=False)
    async def root_redirect() -> Response:
        """Redirect root path to docs."""
        return RedirectResponse(
            url="/docs", status_code=status.HTTP_307_TEMPORARY_REDIRECT
        )

    app.include_router(v1_router, prefix=settings.api_prefix)
    return app


app = create_app()
