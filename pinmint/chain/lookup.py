"""Read the current state of a minted token.

Which strategy serves lookups is decided once, from configuration. The
fixture strategies exist for local demos only and are refused in
production by the settings validator.
"""

from abc import ABC, abstractmethod
from typing import Any

import httpx

from pinmint.chain.client import ChainErrorKind, ChainRPCError
from pinmint.chain.contract import IPFS_SCHEME, strip_content_scheme
from pinmint.chain.endpoints import ChainEndpointSelector
from pinmint.core.config import Settings
from pinmint.core.errors import SubmissionFailed, TokenNotFound
from pinmint.core.logging import get_logger
from pinmint.mint.models import NFTDetails

logger = get_logger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def parse_token_id(token_id: str | int) -> int:
    """Parse a decimal token id.

    Raises:
        ValueError: If it is not a non-negative integer
    """
    value = int(str(token_id).strip())
    if value < 0:
        raise ValueError("Token id must be non-negative")
    return value


class NFTLookup(ABC):
    """Strategy interface for token lookups."""

    @abstractmethod
    async def lookup(self, token_id: str | int) -> NFTDetails:
        """Return token details.

        Raises:
            TokenNotFound: If the token does not exist
        """

    @abstractmethod
    async def token_counter(self) -> int:
        """Number of tokens minted so far."""


class ChainLookup(NFTLookup):
    """Reads ownership and token URI from the contract."""

    def __init__(
        self,
        selector: ChainEndpointSelector,
        gateway_url: str,
        http_client: httpx.AsyncClient | None = None,
        metadata_timeout: float = 10.0,
    ) -> None:
        self.selector = selector
        self.gateway_url = gateway_url.rstrip("/")
        self._http_client = http_client
        self.metadata_timeout = metadata_timeout

    def gateway_link(self, token_uri: str | None) -> str | None:
        if token_uri and token_uri.startswith(IPFS_SCHEME):
            return f"{self.gateway_url}/ipfs/{strip_content_scheme(token_uri)}"
        return None

    async def _fetch_metadata(self, url: str) -> dict[str, Any] | None:
        try:
            if self._http_client is not None:
                response = await self._http_client.get(url, timeout=self.metadata_timeout)
            else:
                async with httpx.AsyncClient(timeout=self.metadata_timeout) as client:
                    response = await client.get(url)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.info("token_metadata_unavailable", url=url, error=str(e))
            return None
        return body if isinstance(body, dict) else None

    async def lookup(self, token_id: str | int) -> NFTDetails:
        numeric_id = parse_token_id(token_id)
        client = self.selector.client_for(self.selector.resolve())
        try:
            owner = await client.owner_of(numeric_id)
            token_uri = await client.token_uri(numeric_id)
        except ChainRPCError as e:
            if e.kind is ChainErrorKind.REVERTED:
                raise TokenNotFound(f"Token {numeric_id} does not exist") from e
            raise
        if not owner or owner == ZERO_ADDRESS:
            raise TokenNotFound(f"Token {numeric_id} does not exist")

        gateway_url = self.gateway_link(token_uri)
        metadata = await self._fetch_metadata(gateway_url) if gateway_url else None
        return NFTDetails(
            token_id=str(numeric_id),
            owner=owner,
            token_uri=token_uri,
            contract_address=client.contract_address,
            gateway_url=gateway_url,
            metadata=metadata,
            source="chain",
        )

    async def token_counter(self) -> int:
        client = self.selector.client_for(self.selector.resolve())
        return await client.token_counter()


class FixtureLookup(NFTLookup):
    """Deterministic placeholder data for local and demo runs."""

    def __init__(self, contract_address: str, owner: str = ZERO_ADDRESS) -> None:
        self.contract_address = contract_address
        self.owner = owner

    async def lookup(self, token_id: str | int) -> NFTDetails:
        numeric_id = parse_token_id(token_id)
        return NFTDetails(
            token_id=str(numeric_id),
            owner=self.owner,
            token_uri=f"{IPFS_SCHEME}placeholder-{numeric_id}",
            contract_address=self.contract_address,
            metadata={
                "name": f"NFT #{numeric_id}",
                "description": "Placeholder token details",
            },
            source="fixture",
        )

    async def token_counter(self) -> int:
        return 0


class FallbackLookup(NFTLookup):
    """Chain first; chain errors (not missing tokens) fall back to fixtures."""

    def __init__(self, primary: NFTLookup, fallback: NFTLookup) -> None:
        self.primary = primary
        self.fallback = fallback

    async def lookup(self, token_id: str | int) -> NFTDetails:
        try:
            return await self.primary.lookup(token_id)
        except (ChainRPCError, SubmissionFailed) as e:
            logger.warning(
                "lookup_fixture_fallback", token_id=str(token_id), error=e.message
            )
            return await self.fallback.lookup(token_id)

    async def token_counter(self) -> int:
        try:
            return await self.primary.token_counter()
        except (ChainRPCError, SubmissionFailed) as e:
            logger.warning("lookup_fixture_fallback", error=e.message)
            return await self.fallback.token_counter()


def build_lookup(
    settings: Settings,
    selector: ChainEndpointSelector,
    http_client: httpx.AsyncClient | None = None,
) -> NFTLookup:
    """Select the lookup strategy named by ``NFT_LOOKUP_MODE``."""
    fixture = FixtureLookup(settings.NFT_CONTRACT_ADDRESS)
    if settings.NFT_LOOKUP_MODE == "fixture":
        return fixture
    chain = ChainLookup(selector, settings.IPFS_GATEWAY_URL, http_client=http_client)
    if settings.NFT_LOOKUP_MODE == "chain_with_fixture":
        return FallbackLookup(chain, fixture)
    return chain
