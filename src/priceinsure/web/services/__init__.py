"""Web services for read-only ledger operations.

SECURITY: These services MUST NOT:
- Import from signing/
- Access private keys
- Sign or broadcast transactions

These services CAN:
- Query ledger state (orders, balances, pool status)
- Prepare unsigned transactions for client signing
"""

from priceinsure.web.services.order_service import OrderService
from priceinsure.web.services.query_service import QueryService
from priceinsure.web.services.transaction_builder import TransactionBuilder

__all__ = [
    "OrderService",
    "QueryService",
    "TransactionBuilder",
]
