"""RPC endpoint selection."""

from collections.abc import Callable, Sequence

from pinmint.chain.client import ChainClient
from pinmint.core.config import Settings
from pinmint.core.errors import ErrorCategory, SubmissionFailed
from pinmint.core.logging import get_logger

logger = get_logger(__name__)

ClientFactory = Callable[[str], ChainClient]


class ChainEndpointSelector:
    """Picks RPC endpoints from a priority-ordered list.

    ``resolve`` returns the first configured URL without probing it. A dead
    endpoint surfaces as an error from whoever uses the returned client.
    """

    def __init__(
        self,
        urls: Sequence[str | None],
        client_factory: ClientFactory,
    ) -> None:
        self._urls = list(urls)
        self._client_factory = client_factory
        self._clients: dict[str, ChainClient] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChainEndpointSelector":
        """Configured endpoint first, public fallbacks after."""

        def factory(url: str) -> ChainClient:
            return ChainClient(
                url,
                contract_address=settings.NFT_CONTRACT_ADDRESS,
                timeout=settings.RPC_TIMEOUT,
            )

        return cls([settings.SEPOLIA_RPC_URL, *settings.PUBLIC_RPC_URLS], factory)

    def candidates(self, limit: int | None = None) -> list[str]:
        """Non-empty, de-duplicated URLs in priority order."""
        seen: list[str] = []
        for url in self._urls:
            if url and url.strip() and url.strip() not in seen:
                seen.append(url.strip())
        return seen[:limit] if limit is not None else seen

    def resolve(self) -> str:
        """Return the first usable endpoint URL.

        Raises:
            SubmissionFailed: If no endpoint is configured at all
        """
        candidates = self.candidates(1)
        if not candidates:
            raise SubmissionFailed(
                ErrorCategory.RPC_CONFIG, details="No RPC URL configured"
            )
        logger.debug("rpc_endpoint_resolved", url=candidates[0])
        return candidates[0]

    def client_for(self, url: str) -> ChainClient:
        """Cached client for ``url``."""
        client = self._clients.get(url)
        if client is None:
            client = self._client_factory(url)
            self._clients[url] = client
        return client

    async def close(self) -> None:
        for client in self._clients.values():
            await client.close()
        self._clients.clear()
