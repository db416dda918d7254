"""Health check endpoints."""

import logging

from fastapi import APIRouter, Request

from priceinsure import __version__
from priceinsure.errors import GatewayError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def root(request: Request):
    """Service banner with the endpoint map."""
    return {
        "service": "priceinsure",
        "version": __version__,
        "mode": "non-custodial",
        "endpoints": {
            "transactions": "/api/transactions",
            "queries": "/api/queries",
            "faucet": "/api/transactions/faucet",
            "health": "/health",
        },
    }


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "priceinsure"}


@router.get("/health/detailed")
async def detailed_health(request: Request):
    """Detailed health check with ledger reachability and configuration info."""
    settings = request.app.state.settings
    connector = request.app.state.connector
    faucet = request.app.state.faucet

    ledger = {"rpc_url": settings.rpc_url}
    status = "healthy"
    try:
        ledger["block_number"] = await connector.block_number()
        ledger["reachable"] = True
    except GatewayError as e:
        logger.warning(f"Health check could not reach ledger: {e.message}")
        ledger["reachable"] = False
        ledger["error"] = e.to_dict()
        status = "degraded"

    return {
        "status": status,
        "service": "priceinsure",
        "version": __version__,
        "ledger": ledger,
        "faucet": {
            "enabled": faucet is not None,
            "address": faucet.address if faucet is not None else None,
        },
        "config": settings.get_safe_dict(),
    }
