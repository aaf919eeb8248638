"""Request metrics middleware for Prometheus monitoring."""

import time

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from pinmint.core.logging import get_logger
from pinmint.core.metrics import REQUESTS_TOTAL, RESPONSES_TOTAL

logger = get_logger(__name__)


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Counts requests by method and route, and responses by status code.

    Paths are labelled by their route template (``/api/v1/nft/{token_id}``)
    when one matched, so token ids and hashes do not explode label cardinality.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error("request_failed", error=str(e))
            raise

        route = request.scope.get("route")
        path = getattr(route, "path", None) or request.url.path.rstrip("/") or "/"
        REQUESTS_TOTAL.labels(method=request.method, path=path).inc()
        RESPONSES_TOTAL.labels(status_code=str(response.status_code)).inc()

        logger.info(
            "request_processed",
            status_code=response.status_code,
            duration=time.perf_counter() - start_time,
        )
        return response
