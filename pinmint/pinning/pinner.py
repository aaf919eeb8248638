"""Pinata client that publishes JSON documents to IPFS."""

from datetime import UTC, datetime
from typing import Any

import httpx

from pinmint.chain.contract import strip_content_scheme
from pinmint.core.config import Settings
from pinmint.core.errors import PinningDegraded
from pinmint.core.logging import get_logger
from pinmint.core.metrics import PIN_ATTEMPTS
from pinmint.core.retry import with_async_retry
from pinmint.mint.models import PinResult

logger = get_logger(__name__)

PIN_JSON_PATH = "/pinning/pinJSONToIPFS"


class RetryablePinError(Exception):
    """A pinning failure worth another attempt."""


def _is_retryable_status(status: int) -> bool:
    return status >= 500 or status in {408, 429}


class ContentPinner:
    """Publishes JSON documents to a pinning service.

    Pinning is an enhancement to minting, never a precondition: every
    failure is logged and reported as ``None``.
    """

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_url = settings.PINATA_API_URL.rstrip("/")
        self.gateway_url = settings.IPFS_GATEWAY_URL.rstrip("/")
        self.jwt = settings.PINATA_JWT
        self.api_key = settings.PINATA_API_KEY
        self.secret_key = settings.PINATA_SECRET_KEY
        self.timeout = settings.PIN_TIMEOUT
        self.max_retries = settings.PIN_MAX_RETRIES
        self.base_delay = settings.PIN_RETRY_BASE_DELAY
        self.max_delay = settings.PIN_RETRY_MAX_DELAY
        self._client = client
        self._owns_client = client is None

    @property
    def is_configured(self) -> bool:
        """Whether credentials for the pinning service are present."""
        return bool(self.jwt) or bool(self.api_key and self.secret_key)

    def _auth_headers(self) -> dict[str, str]:
        if self.jwt:
            return {"Authorization": f"Bearer {self.jwt}"}
        return {
            "pinata_api_key": self.api_key or "",
            "pinata_secret_api_key": self.secret_key or "",
        }

    def gateway_link(self, content_id: str) -> str:
        """Public gateway URL for a CID or ipfs:// URI."""
        return f"{self.gateway_url}/ipfs/{strip_content_scheme(content_id)}"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this pinner created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _post_pin(self, document: Any, label: str) -> dict[str, Any]:
        try:
            response = await self._get_client().post(
                f"{self.api_url}{PIN_JSON_PATH}",
                headers=self._auth_headers(),
                json={
                    "pinataContent": document,
                    "pinataMetadata": {"name": label},
                },
            )
        except httpx.TransportError as e:
            PIN_ATTEMPTS.labels(outcome="retry").inc()
            raise RetryablePinError(f"{type(e).__name__}: {e}") from e

        if _is_retryable_status(response.status_code):
            PIN_ATTEMPTS.labels(outcome="retry").inc()
            raise RetryablePinError(
                f"Pinning service returned {response.status_code}: {response.text}"
            )
        if response.status_code >= 400:
            raise PinningDegraded(
                f"Pinning service rejected request with {response.status_code}",
                details=response.text,
            )

        body = response.json()
        if not isinstance(body, dict) or not body.get("IpfsHash"):
            raise PinningDegraded("Missing IpfsHash in pinning response")
        return body

    async def pin(self, document: Any, label: str) -> PinResult | None:
        """Publish ``document`` and return its content identifier.

        Args:
            document: JSON-serializable payload
            label: Human-readable name shown by the pinning service

        Returns:
            PinResult, or None when unconfigured or when pinning failed
        """
        if not self.is_configured:
            PIN_ATTEMPTS.labels(outcome="skipped").inc()
            logger.info("pin_skipped", reason="no pinning credentials configured")
            return None

        post = with_async_retry(
            max_attempts=self.max_retries,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            retry_on=(RetryablePinError,),
        )(self._post_pin)

        try:
            body = await post(document, label)
        except (
            RetryablePinError,
            PinningDegraded,
            httpx.HTTPError,
            ValueError,
            TypeError,
        ) as e:
            PIN_ATTEMPTS.labels(outcome="failed").inc()
            logger.warning(
                "pin_failed",
                label=label,
                error_type=type(e).__name__,
                error=str(e),
            )
            return None

        cid = body["IpfsHash"]
        PIN_ATTEMPTS.labels(outcome="pinned").inc()
        logger.info("pin_succeeded", label=label, content_id=cid)
        return PinResult(
            content_id=cid,
            retrieval_url=self.gateway_link(cid),
            timestamp=_parse_timestamp(body.get("Timestamp")),
            pin_size=body.get("PinSize"),
        )


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
    return datetime.now(UTC)
