"""Application startup and shutdown events."""

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

import httpx
from sqlalchemy import text

from pinmint.chain.decoder import EventDecoder
from pinmint.chain.endpoints import ChainEndpointSelector
from pinmint.chain.lookup import NFTLookup, build_lookup
from pinmint.chain.receipts import ReceiptWaiter
from pinmint.chain.submitter import TransactionSubmitter
from pinmint.core.config import Settings, settings
from pinmint.core.db import dispose_engine, get_session_factory, init_models
from pinmint.core.errors import SubmissionFailed
from pinmint.core.logging import configure_logging, get_logger
from pinmint.mint.correlation import CorrelationStore, SessionFactoryProvider
from pinmint.mint.orchestrator import MintOrchestrator
from pinmint.pinning.pinner import ContentPinner

logger = get_logger(__name__)


class MintService:
    """Long-lived pipeline components shared by all requests."""

    def __init__(
        self,
        pinner: ContentPinner,
        selector: ChainEndpointSelector,
        submitter: TransactionSubmitter,
        waiter: ReceiptWaiter,
        decoder: EventDecoder,
        lookup: NFTLookup,
        correlation_store: CorrelationStore,
        orchestrator: MintOrchestrator,
        session_factory: SessionFactoryProvider,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.pinner = pinner
        self.selector = selector
        self.submitter = submitter
        self.waiter = waiter
        self.decoder = decoder
        self.lookup = lookup
        self.correlation_store = correlation_store
        self.orchestrator = orchestrator
        self.session_factory = session_factory
        self.http_client = http_client

    @classmethod
    def from_settings(
        cls,
        config: Settings,
        session_factory: SessionFactoryProvider = get_session_factory,
    ) -> "MintService":
        """Wire every component from configuration."""
        http_client = httpx.AsyncClient(timeout=config.PIN_TIMEOUT)
        pinner = ContentPinner(config, client=http_client)
        selector = ChainEndpointSelector.from_settings(config)
        submitter = TransactionSubmitter.from_settings(config, selector)
        waiter = ReceiptWaiter(
            selector,
            timeout=config.CONFIRMATION_TIMEOUT,
            poll_interval=config.RECEIPT_POLL_INTERVAL,
        )
        decoder = EventDecoder(config.NFT_CONTRACT_ADDRESS)
        correlation_store = CorrelationStore(session_factory)
        orchestrator = MintOrchestrator(
            pinner=pinner,
            submitter=submitter,
            waiter=waiter,
            decoder=decoder,
            correlation_store=correlation_store,
            session_factory=session_factory,
            contract_address=config.NFT_CONTRACT_ADDRESS,
        )
        return cls(
            pinner=pinner,
            selector=selector,
            submitter=submitter,
            waiter=waiter,
            decoder=decoder,
            lookup=build_lookup(config, selector, http_client=http_client),
            correlation_store=correlation_store,
            orchestrator=orchestrator,
            session_factory=session_factory,
            http_client=http_client,
        )

    async def health_check(self) -> dict[str, Any]:
        """Check health of all components.

        Returns:
            Dict containing health status of all components
        """
        health_status: dict[str, Any] = {
            "status": "healthy",
            "components": {
                "database": False,
                "pinning": self.pinner.is_configured,
                "rpc": False,
                "signer": self.submitter.sender is not None,
            },
            "details": {},
        }

        try:
            endpoint = self.selector.resolve()
            health_status["components"]["rpc"] = True
            health_status["details"]["rpc"] = {"endpoint": endpoint}
        except SubmissionFailed as e:
            health_status["details"]["rpc"] = {"error": e.details}

        try:
            factory = self.session_factory()
            if factory is None:
                raise RuntimeError("Database not initialized")
            async with factory() as session:
                await session.execute(text("SELECT 1"))
            health_status["components"]["database"] = True
        except Exception as e:
            health_status["details"]["database"] = {"error": str(e)}
            logger.error("health_check_failed", component="database", error=str(e))

        if not health_status["components"]["database"]:
            health_status["status"] = "unhealthy"
        elif not all(health_status["components"].values()):
            health_status["status"] = "degraded"
        return health_status

    async def close(self) -> None:
        await self.selector.close()
        await self.pinner.close()
        if self.http_client is not None:
            await self.http_client.aclose()


def create_start_app_handler(app: Any) -> Callable[[], Awaitable[None]]:
    """Create startup event handler.

    Args:
        app: FastAPI application instance

    Returns:
        Startup handler function
    """

    async def start_app() -> None:
        configure_logging(
            testing=settings.ENVIRONMENT == "test" or not settings.JSON_LOGS,
            level=settings.LOG_LEVEL,
        )
        await init_models()
        app.state.mint_service = MintService.from_settings(settings)

        logger.info(
            "application_started",
            environment=settings.ENVIRONMENT,
            contract_address=settings.NFT_CONTRACT_ADDRESS,
            pinning_configured=settings.pinning_configured,
            lookup_mode=settings.NFT_LOOKUP_MODE,
        )

    return start_app


def create_stop_app_handler(app: Any) -> Callable[[], Awaitable[None]]:
    """Create shutdown event handler.

    Args:
        app: FastAPI application instance

    Returns:
        Shutdown handler function
    """

    async def stop_app() -> None:
        service: MintService | None = getattr(app.state, "mint_service", None)
        try:
            if service is not None:
                await service.close()
            await dispose_engine()
            logger.info("application_stopped")
        except Exception as e:
            logger.error("shutdown_failed", error=str(e))
            raise

    return stop_app


@asynccontextmanager
async def lifespan(app: Any) -> AsyncIterator[None]:
    """Build the mint service on startup and release it on shutdown."""
    await create_start_app_handler(app)()
    try:
        yield
    finally:
        await create_stop_app_handler(app)()
