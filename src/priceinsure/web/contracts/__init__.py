"""Request and response contracts for the web layer.

These Pydantic models define the API interface for web clients.
All contracts are for READ-ONLY or non-custodial operations.
"""

from priceinsure.web.contracts.common import ApiModel, BigInt
from priceinsure.web.contracts.orders import (
    AllOrdersResponse,
    ContractAddressesResponse,
    OrdersResponse,
    OrderView,
    PoolStatusResponse,
    StrikeInfoResponse,
    UserBalancesResponse,
    UserTokensResponse,
)
from priceinsure.web.contracts.transactions import (
    CancelOrderRequest,
    CollateralRequest,
    CreateInsuranceOrderRequest,
    CreateOrderRequest,
    FaucetRequest,
    FaucetResponse,
    FillOrderRequest,
    FinalizeRequest,
    IssueInsuranceRequest,
    PreparedTransactionResponse,
    RedeemInsuranceRequest,
    SettleInsuranceRequest,
    UnsignedTransaction,
)

__all__ = [
    "ApiModel",
    "BigInt",
    # Order and query contracts
    "AllOrdersResponse",
    "ContractAddressesResponse",
    "OrdersResponse",
    "OrderView",
    "PoolStatusResponse",
    "StrikeInfoResponse",
    "UserBalancesResponse",
    "UserTokensResponse",
    # Transaction contracts
    "CancelOrderRequest",
    "CollateralRequest",
    "CreateInsuranceOrderRequest",
    "CreateOrderRequest",
    "FaucetRequest",
    "FaucetResponse",
    "FillOrderRequest",
    "FinalizeRequest",
    "IssueInsuranceRequest",
    "PreparedTransactionResponse",
    "RedeemInsuranceRequest",
    "SettleInsuranceRequest",
    "UnsignedTransaction",
]
