"""Order and query contracts.

All fixed-point quantities are strings; each comes with a ``...Formatted``
decimal rendering for display.
"""

from typing import Optional

from pydantic import Field

from priceinsure.ledger import InstrumentPair
from priceinsure.units import PRICE_DECIMALS, from_fixed_point
from priceinsure.web.contracts.common import ApiModel, BigInt


class TokenPair(ApiModel):
    collateral_token: str
    claim_token: str

    @classmethod
    def from_pair(cls, pair: InstrumentPair) -> "TokenPair":
        return cls(collateral_token=pair.collateral_token, claim_token=pair.claim_token)


class OrderView(ApiModel):
    order_id: int
    maker: str
    strike_price: BigInt
    strike_price_formatted: str
    amount: BigInt = Field(..., description="Remaining instrument amount")
    amount_formatted: str
    price: BigInt = Field(..., description="Base asset per instrument unit")
    price_formatted: str
    is_claim_token_order: bool
    is_fillable: bool
    tokens: TokenPair

    @classmethod
    def from_order(cls, order, instrument_decimals: int = 18) -> "OrderView":
        record = order.record
        return cls(
            order_id=record.order_id,
            maker=record.maker,
            strike_price=record.strike_price,
            strike_price_formatted=from_fixed_point(record.strike_price, PRICE_DECIMALS),
            amount=record.remaining_amount,
            amount_formatted=from_fixed_point(record.remaining_amount, instrument_decimals),
            price=record.unit_price,
            price_formatted=from_fixed_point(record.unit_price, PRICE_DECIMALS),
            is_claim_token_order=record.is_claim_token_order,
            is_fillable=order.is_fillable,
            tokens=TokenPair.from_pair(order.tokens),
        )


class OrdersResponse(ApiModel):
    """Live orders among the requested ids; dead or unreadable ids are omitted."""

    orders: list[OrderView]
    count: int


class StrikeGroupView(ApiModel):
    strike_price: BigInt
    strike_price_formatted: str
    tokens: TokenPair
    claim_token_orders: list[OrderView]
    insurance_orders: list[OrderView]


class AllOrdersResponse(ApiModel):
    """Open orders with ids up to ``scanLimit``; higher ids were not examined."""

    scan_limit: int
    total_orders: int
    unreadable_order_ids: list[int] = Field(
        default_factory=list, description="Ids that could not be read and were skipped"
    )
    orders_by_strike_price: list[StrikeGroupView]
    all_orders: list[OrderView]

    @classmethod
    def from_snapshot(cls, snapshot, instrument_decimals: int = 18) -> "AllOrdersResponse":
        def view(order) -> OrderView:
            return OrderView.from_order(order, instrument_decimals)

        groups = [
            StrikeGroupView(
                strike_price=group.strike_price,
                strike_price_formatted=from_fixed_point(group.strike_price, PRICE_DECIMALS),
                tokens=TokenPair.from_pair(group.tokens),
                claim_token_orders=[view(o) for o in group.claim_token_orders],
                insurance_orders=[view(o) for o in group.insurance_orders],
            )
            for group in snapshot.by_strike_price()
        ]
        return cls(
            scan_limit=snapshot.scan_limit,
            total_orders=snapshot.total_orders,
            unreadable_order_ids=list(snapshot.unreadable_ids),
            orders_by_strike_price=groups,
            all_orders=[view(o) for o in snapshot.orders],
        )


# ----------------------------------------------------------------------
# Balances, strikes, pool
# ----------------------------------------------------------------------


class UserBalancesResponse(ApiModel):
    address: str
    usdc: BigInt = Field(..., description="Base asset held in the wallet")
    usdc_formatted: str
    collateral: BigInt = Field(..., description="Base asset deposited in the order book")
    collateral_formatted: str


class TokenBalance(ApiModel):
    address: str
    balance: BigInt


class UserTokensResponse(ApiModel):
    strike_price: BigInt
    collateral_token: TokenBalance
    claim_token: TokenBalance


class TokenInfoView(ApiModel):
    address: str
    name: str
    symbol: str
    decimals: int


class StrikeInfoResponse(ApiModel):
    strike_price: str
    collateral_token: TokenInfoView
    claim_token: TokenInfoView


class PoolStatusResponse(ApiModel):
    is_finalized: bool
    final_price: BigInt
    final_price_formatted: Optional[str] = None


class ContractAddressesResponse(ApiModel):
    mock_token: str
    insurance_pool: str
    insurance_orderbook: str
