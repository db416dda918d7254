"""Read-only query endpoints.

SECURITY: This controller only reads ledger state.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from priceinsure.config import Settings
from priceinsure.errors import ValidationError
from priceinsure.units import from_fixed_point
from priceinsure.web.contracts.orders import (
    AllOrdersResponse,
    ContractAddressesResponse,
    OrdersResponse,
    OrderView,
    PoolStatusResponse,
    StrikeInfoResponse,
    TokenBalance,
    TokenInfoView,
    UserBalancesResponse,
    UserTokensResponse,
)
from priceinsure.web.dependencies import (
    get_app_settings,
    get_order_service,
    get_query_service,
)
from priceinsure.web.services import OrderService, QueryService

router = APIRouter(prefix="/api/queries", tags=["queries"])


def parse_order_ids(raw: str) -> list[int]:
    """Parse a comma-separated id list such as ``"1,2,3"``."""
    ids = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        if not part.isdigit() or int(part) <= 0:
            raise ValidationError(f"Invalid order id: {part!r}", {"field": "orderIds"})
        ids.append(int(part))
    if not ids:
        raise ValidationError("orderIds must not be empty", {"field": "orderIds"})
    return ids


@router.get("/order/{order_id}", response_model=OrderView)
async def get_order(
    order_id: int,
    orders: OrderService = Depends(get_order_service),
    settings: Settings = Depends(get_app_settings),
) -> OrderView:
    order = await orders.get_order(order_id)
    return OrderView.from_order(order, settings.instrument_decimals)


@router.get("/orders", response_model=OrdersResponse)
async def get_orders(
    order_ids: str = Query(..., alias="orderIds", description="Comma-separated ids"),
    orders: OrderService = Depends(get_order_service),
    settings: Settings = Depends(get_app_settings),
) -> OrdersResponse:
    found = await orders.get_orders(parse_order_ids(order_ids))
    views = [OrderView.from_order(o, settings.instrument_decimals) for o in found]
    return OrdersResponse(orders=views, count=len(views))


@router.get("/all-orders", response_model=AllOrdersResponse)
async def get_all_orders(
    limit: Optional[int] = Query(None, description="Highest order id to scan"),
    orders: OrderService = Depends(get_order_service),
    settings: Settings = Depends(get_app_settings),
) -> AllOrdersResponse:
    """All open orders with id <= limit, grouped by strike price.

    Orders above the scan limit are not examined. Ids that could not be
    read are listed in ``unreadableOrderIds``.
    """
    snapshot = await orders.scan_open_orders(limit)
    return AllOrdersResponse.from_snapshot(snapshot, settings.instrument_decimals)


@router.get("/balances/{address}", response_model=UserBalancesResponse)
async def get_user_balances(
    address: str,
    queries: QueryService = Depends(get_query_service),
    settings: Settings = Depends(get_app_settings),
) -> UserBalancesResponse:
    balances = await queries.get_user_balances(address)
    decimals = settings.base_asset_decimals
    return UserBalancesResponse(
        address=balances.address,
        usdc=balances.wallet_balance,
        usdc_formatted=from_fixed_point(balances.wallet_balance, decimals),
        collateral=balances.collateral_balance,
        collateral_formatted=from_fixed_point(balances.collateral_balance, decimals),
    )


@router.get("/tokens/{address}/{strike_price}", response_model=UserTokensResponse)
async def get_user_tokens(
    address: str,
    strike_price: str,
    queries: QueryService = Depends(get_query_service),
) -> UserTokensResponse:
    balances = await queries.get_user_tokens_for_strike(address, strike_price)
    return UserTokensResponse(
        strike_price=balances.strike_price,
        collateral_token=TokenBalance(
            address=balances.tokens.collateral_token,
            balance=balances.collateral_token_balance,
        ),
        claim_token=TokenBalance(
            address=balances.tokens.claim_token,
            balance=balances.claim_token_balance,
        ),
    )


@router.get("/strike/{strike_price}", response_model=StrikeInfoResponse)
async def get_strike_info(
    strike_price: str,
    queries: QueryService = Depends(get_query_service),
    settings: Settings = Depends(get_app_settings),
) -> StrikeInfoResponse:
    info = await queries.get_strike_info(strike_price)

    def view(token) -> TokenInfoView:
        return TokenInfoView(
            address=token.address, name=token.name, symbol=token.symbol, decimals=token.decimals
        )

    return StrikeInfoResponse(
        strike_price=from_fixed_point(info.strike_price, settings.price_decimals),
        collateral_token=view(info.collateral_token),
        claim_token=view(info.claim_token),
    )


@router.get("/pool-status", response_model=PoolStatusResponse)
async def get_pool_status(
    queries: QueryService = Depends(get_query_service),
    settings: Settings = Depends(get_app_settings),
) -> PoolStatusResponse:
    status = await queries.get_pool_status()
    return PoolStatusResponse(
        is_finalized=status.is_finalized,
        final_price=status.final_price,
        final_price_formatted=(
            from_fixed_point(status.final_price, settings.price_decimals)
            if status.is_finalized
            else None
        ),
    )


@router.get("/contracts", response_model=ContractAddressesResponse)
async def get_contracts(
    settings: Settings = Depends(get_app_settings),
) -> ContractAddressesResponse:
    return ContractAddressesResponse.model_validate(settings.get_contract_addresses())
