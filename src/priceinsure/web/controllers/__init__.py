"""HTTP controllers for web API endpoints.

SECURITY: These controllers MUST NOT:
- Access private keys
- Sign or broadcast transactions

All operations are read-only or prepare data for client-side signing.
The faucet route lives under api/routes because it signs.
"""

from priceinsure.web.controllers.queries import router as queries_router
from priceinsure.web.controllers.transactions import router as transactions_router

__all__ = [
    "queries_router",
    "transactions_router",
]
