"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from priceinsure import __version__
from priceinsure.api.errors import register_exception_handlers
from priceinsure.config import Settings, get_settings
from priceinsure.ledger import LedgerConnector
from priceinsure.signing import FaucetSigner
from priceinsure.web.services import OrderService, QueryService, TransactionBuilder

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    connector: Optional[LedgerConnector] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use (default: ``get_settings()``)
        connector: Pre-built ledger connector; the app will not close it
        transport: httpx transport for a connector built here
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        # Startup
        owned = connector is None
        ledger = connector or LedgerConnector.from_settings(settings, transport=transport)

        app.state.settings = settings
        app.state.connector = ledger
        app.state.transaction_builder = TransactionBuilder(ledger, settings)
        app.state.order_service = OrderService(ledger, settings)
        app.state.query_service = QueryService(ledger, settings)
        app.state.faucet = None

        if settings.has_faucet:
            app.state.faucet = FaucetSigner.from_settings(ledger, settings)
            await app.state.faucet.start()
        else:
            logger.warning("FAUCET_PRIVATE_KEY not set - faucet disabled")

        logger.info(f"Gateway ready: rpc={settings.rpc_url}")
        yield

        # Shutdown
        if app.state.faucet is not None:
            await app.state.faucet.stop()
        if owned:
            await ledger.aclose()

    app = FastAPI(
        title="PriceInsure Gateway",
        description="Non-custodial gateway for a price-insurance market",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Register routes
    from priceinsure.api.routes import faucet, health
    from priceinsure.web.controllers import queries_router, transactions_router

    app.include_router(health.router, tags=["Health"])
    app.include_router(transactions_router)
    app.include_router(faucet.router)
    app.include_router(queries_router)

    return app
