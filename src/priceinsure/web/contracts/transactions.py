"""Transaction contracts for non-custodial operations.

These contracts define unsigned transactions that clients sign locally.
NO signing or broadcasting happens server-side in web mode.
"""

from typing import Optional

from pydantic import Field

from priceinsure.ledger import TransactionDescriptor
from priceinsure.units import from_fixed_point
from priceinsure.web.contracts.common import ApiModel, BigInt


class UnsignedTransaction(ApiModel):
    """An unsigned transaction for client-side signing.

    The client is responsible for:
    1. Signing this transaction with their private key
    2. Broadcasting the signed transaction to the network
    """

    to: str = Field(..., description="Target program address")
    data: str = Field(default="0x", description="ABI-encoded call data (hex)")
    value: str = Field(default="0x0", description="Native value in wei (hex)")

    @classmethod
    def from_descriptor(cls, descriptor: TransactionDescriptor) -> "UnsignedTransaction":
        return cls(to=descriptor.to, data=descriptor.data, value=hex(descriptor.value))


class PreparedTransactionResponse(ApiModel):
    """Ordered transactions: sign and submit ``preparatory`` first, in order."""

    preparatory: list[UnsignedTransaction] = Field(default_factory=list)
    transaction: UnsignedTransaction
    gas_limit: int = Field(..., description="Suggested gas limit for the primary transaction")
    payment_obligation: Optional[BigInt] = Field(
        None, description="Base asset the signer pays, rounded up (base units)"
    )
    payment_obligation_formatted: Optional[str] = None
    refund_preview: Optional[BigInt] = Field(
        None, description="Base asset returned to the signer, rounded down (base units)"
    )
    refund_preview_formatted: Optional[str] = None
    description: Optional[str] = Field(None, description="Human-readable description")
    warnings: list[str] = Field(default_factory=list, description="Any warnings")

    @classmethod
    def from_plan(cls, plan, base_asset_decimals: int) -> "PreparedTransactionResponse":
        def fmt(value: Optional[int]) -> Optional[str]:
            return None if value is None else from_fixed_point(value, base_asset_decimals)

        return cls(
            preparatory=[UnsignedTransaction.from_descriptor(d) for d in plan.preparatory],
            transaction=UnsignedTransaction.from_descriptor(plan.transaction),
            gas_limit=plan.gas_limit,
            payment_obligation=plan.payment_obligation,
            payment_obligation_formatted=fmt(plan.payment_obligation),
            refund_preview=plan.refund_preview,
            refund_preview_formatted=fmt(plan.refund_preview),
            description=plan.description or None,
            warnings=list(plan.warnings),
        )


# ----------------------------------------------------------------------
# Requests. Quantities are decimal strings ("0.001"), never JSON numbers.
# ----------------------------------------------------------------------


class IssueInsuranceRequest(ApiModel):
    strike_price: str = Field(..., description='Strike price, e.g. "20000"')
    amount: str = Field(..., description="Amount of insurance to issue")
    collateral_token_recipient: str
    claim_token_recipient: str


class CreateOrderRequest(ApiModel):
    strike_price: str
    amount: str = Field(..., description="Instrument amount")
    price: str = Field(..., description="Base asset per instrument unit")


class CreateInsuranceOrderRequest(CreateOrderRequest):
    maker: Optional[str] = Field(
        None, description="Maker address; enables the deposited-collateral check"
    )


class FillOrderRequest(ApiModel):
    order_id: int = Field(..., gt=0)
    amount: str


class CancelOrderRequest(ApiModel):
    order_id: int = Field(..., gt=0)


class CollateralRequest(ApiModel):
    amount: str = Field(..., description="Base asset amount")


class RedeemInsuranceRequest(ApiModel):
    strike_price: str
    amount: str


class SettleInsuranceRequest(ApiModel):
    strike_prices: list[str] = Field(..., min_length=1)


class FinalizeRequest(ApiModel):
    final_price: str


# ----------------------------------------------------------------------
# Faucet
# ----------------------------------------------------------------------


class FaucetRequest(ApiModel):
    address: str = Field(..., description="Recipient wallet address")


class FaucetTransaction(ApiModel):
    hash: str
    block_number: Optional[int] = None
    from_address: str = Field(..., alias="from")
    to: str


class FaucetResponse(ApiModel):
    success: bool = True
    amount: str
    amount_received: Optional[str] = Field(
        None, description="Balance delta observed after confirmation"
    )
    transaction: FaucetTransaction
    message: str
