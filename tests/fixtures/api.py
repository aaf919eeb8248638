"""API test fixtures."""

from collections.abc import AsyncGenerator, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient, Timeout

from pinmint.chain.decoder import EventDecoder
from pinmint.chain.endpoints import ChainEndpointSelector
from pinmint.chain.lookup import build_lookup
from pinmint.chain.receipts import ReceiptWaiter
from pinmint.chain.submitter import TransactionSubmitter
from pinmint.core.config import Settings
from pinmint.core.db import get_session
from pinmint.core.events import MintService
from pinmint.main import create_app
from pinmint.mint.correlation import CorrelationStore
from pinmint.mint.orchestrator import MintOrchestrator
from pinmint.pinning.pinner import ContentPinner

DEFAULT_TIMEOUT: Timeout = Timeout(timeout=5.0, connect=2.0)


def build_mint_service(
    settings: Settings,
    selector: ChainEndpointSelector,
    session_provider: Callable[[], MagicMock],
) -> MintService:
    """Wire a MintService over injected fakes, as startup would over real ones."""
    pinner = ContentPinner(settings)
    submitter = TransactionSubmitter.from_settings(settings, selector)
    waiter = ReceiptWaiter(
        selector,
        timeout=settings.CONFIRMATION_TIMEOUT,
        poll_interval=settings.RECEIPT_POLL_INTERVAL,
    )
    decoder = EventDecoder(settings.NFT_CONTRACT_ADDRESS)
    correlation_store = CorrelationStore(session_provider)
    orchestrator = MintOrchestrator(
        pinner=pinner,
        submitter=submitter,
        waiter=waiter,
        decoder=decoder,
        correlation_store=correlation_store,
        session_factory=session_provider,
        contract_address=settings.NFT_CONTRACT_ADDRESS,
    )
    return MintService(
        pinner=pinner,
        selector=selector,
        submitter=submitter,
        waiter=waiter,
        decoder=decoder,
        lookup=build_lookup(settings, selector),
        correlation_store=correlation_store,
        orchestrator=orchestrator,
        session_factory=session_provider,
    )


@pytest.fixture
def mint_service(
    test_settings: Settings,
    selector: ChainEndpointSelector,
    session_provider: Callable[[], MagicMock],
) -> MintService:
    return build_mint_service(test_settings, selector, session_provider)


@pytest.fixture
def test_app(mint_service: MintService, db_session: AsyncMock) -> FastAPI:
    """The real application, with fakes behind the session and service."""
    app = create_app()

    async def override_session() -> AsyncGenerator[AsyncMock, None]:
        yield db_session

    app.dependency_overrides[get_session] = override_session
    app.state.mint_service = mint_service
    return app


@pytest_asyncio.fixture
async def api_client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async client bound to the test app without running startup handlers."""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
        timeout=DEFAULT_TIMEOUT,
    ) as client:
        yield client
