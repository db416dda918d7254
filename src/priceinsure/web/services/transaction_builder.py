"""Transaction builder for preparing unsigned transaction sequences.

This service turns a user intent into an ordered list of unsigned
transactions: zero or more authorizations followed by exactly one primary
action. NO signing or broadcasting happens here - this is non-custodial.

Prices and fillability are read when the plan is built. They can change
before the user submits; the ledger programs re-check on execution and the
client sees a revert in that case. This race is inherent to preparing
transactions for someone else's signer and is not hidden here.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from web3 import Web3

from priceinsure.config import Settings, get_settings
from priceinsure.errors import (
    InsufficientPrerequisite,
    OrderNotFillable,
    OrderNotFound,
    ProgramCallFailed,
    ValidationError,
)
from priceinsure.ledger import MAX_UINT256, LedgerConnector, TransactionDescriptor
from priceinsure.units import (
    DecimalLike,
    from_fixed_point,
    payment_obligation,
    refund_preview,
    to_fixed_point,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransactionPlan:
    """Ordered transactions for the client to sign: preparatory first."""

    transaction: TransactionDescriptor
    gas_limit: int
    preparatory: tuple[TransactionDescriptor, ...] = ()
    payment_obligation: Optional[int] = None
    refund_preview: Optional[int] = None
    description: str = ""
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def sequence(self) -> list[TransactionDescriptor]:
        return [*self.preparatory, self.transaction]


def checksum_address(address: str, field_name: str = "address") -> str:
    """Validate an address and return its checksummed form."""
    if not isinstance(address, str) or not Web3.is_address(address):
        raise ValidationError(f"Invalid {field_name}: {address!r}", {"field": field_name})
    return Web3.to_checksum_address(address)


class TransactionBuilder:
    """Builds unsigned transaction plans for client-side signing.

    This service NEVER:
    - Accesses private keys
    - Signs transactions
    - Broadcasts transactions

    Authorizations are always issued for the unlimited amount. Reading the
    current allowance first would race with the user's own submission.
    """

    def __init__(self, connector: LedgerConnector, settings: Optional[Settings] = None):
        self.connector = connector
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Normalization helpers
    # ------------------------------------------------------------------

    def _price(self, value: DecimalLike, field_name: str) -> int:
        return self._positive(to_fixed_point(value, self.settings.price_decimals, field_name), field_name)

    def _instrument_amount(self, value: DecimalLike, field_name: str = "amount") -> int:
        return self._positive(
            to_fixed_point(value, self.settings.instrument_decimals, field_name), field_name
        )

    def _base_amount(self, value: DecimalLike, field_name: str = "amount") -> int:
        return self._positive(
            to_fixed_point(value, self.settings.base_asset_decimals, field_name), field_name
        )

    @staticmethod
    def _positive(value: int, field_name: str) -> int:
        if value <= 0:
            raise ValidationError(f"{field_name} must be greater than zero", {"field": field_name})
        return value

    @staticmethod
    def _order_id(order_id: int) -> int:
        if isinstance(order_id, bool) or not isinstance(order_id, int) or order_id <= 0:
            raise ValidationError(f"Invalid order id: {order_id!r}", {"field": "order_id"})
        return order_id

    def _obligation(self, amount: int, price: int) -> int:
        return payment_obligation(
            amount,
            price,
            amount_precision=self.settings.instrument_decimals,
            price_precision=self.settings.price_decimals,
            settlement_precision=self.settings.base_asset_decimals,
        )

    def _format_base(self, value: int) -> str:
        return from_fixed_point(value, self.settings.base_asset_decimals)

    def _approve_base_asset(self, spender: str) -> TransactionDescriptor:
        return self.connector.stable_token().build_approve(spender, MAX_UINT256)

    # ------------------------------------------------------------------
    # Insurance pool
    # ------------------------------------------------------------------

    async def build_issue_insurance(
        self,
        strike_price: DecimalLike,
        amount: DecimalLike,
        collateral_token_recipient: str,
        claim_token_recipient: str,
    ) -> TransactionPlan:
        """Issue a collateral-side/claim-side pair against a strike.

        The pool pulls ``amount x strike`` of the base asset from the signer,
        so the plan starts with an approval of the base asset to the pool.
        """
        strike = self._price(strike_price, "strike_price")
        quantity = self._instrument_amount(amount)
        collateral_recipient = checksum_address(
            collateral_token_recipient, "collateral_token_recipient"
        )
        claim_recipient = checksum_address(claim_token_recipient, "claim_token_recipient")

        pool = self.connector.insurance_pool()
        obligation = self._obligation(quantity, strike)

        logger.info(
            f"Building issueInsurance: strike={strike} amount={quantity} obligation={obligation}"
        )

        return TransactionPlan(
            preparatory=(self._approve_base_asset(pool.address),),
            transaction=pool.build_issue_insurance(
                strike, quantity, collateral_recipient, claim_recipient
            ),
            gas_limit=self.settings.gas_limit_issue,
            payment_obligation=obligation,
            description=(
                f"Issue {from_fixed_point(quantity, self.settings.instrument_decimals)} insurance "
                f"at strike {from_fixed_point(strike, self.settings.price_decimals)} "
                f"for {self._format_base(obligation)} collateral"
            ),
            warnings=("The first transaction approves unlimited spending of the base asset.",),
        )

    async def build_redeem_insurance(
        self, strike_price: DecimalLike, amount: DecimalLike
    ) -> TransactionPlan:
        """Burn a matched pair before finalization and get collateral back."""
        strike = self._price(strike_price, "strike_price")
        quantity = self._instrument_amount(amount)
        pool = self.connector.insurance_pool()

        refund = refund_preview(
            quantity,
            strike,
            amount_precision=self.settings.instrument_decimals,
            price_precision=self.settings.price_decimals,
            settlement_precision=self.settings.base_asset_decimals,
        )

        return TransactionPlan(
            transaction=pool.build_redeem_insurance(strike, quantity),
            gas_limit=self.settings.gas_limit_settle,
            refund_preview=refund,
            description=f"Redeem insurance pair for about {self._format_base(refund)} collateral",
        )

    async def build_settle_insurance(self, strike_prices: Sequence[DecimalLike]) -> TransactionPlan:
        if not strike_prices:
            raise ValidationError("strike_prices must not be empty", {"field": "strike_prices"})
        strikes = [self._price(sp, "strike_prices") for sp in strike_prices]

        return TransactionPlan(
            transaction=self.connector.insurance_pool().build_settle_insurance(strikes),
            gas_limit=self.settings.gas_limit_settle,
            description=f"Settle positions for {len(strikes)} strike(s)",
        )

    async def build_finalize(self, final_price: DecimalLike) -> TransactionPlan:
        """Administrative finalization. Only the pool owner's signature succeeds."""
        price = self._price(final_price, "final_price")

        return TransactionPlan(
            transaction=self.connector.insurance_pool().build_finalize(price),
            gas_limit=self.settings.gas_limit_small,
            description=f"Finalize pool at {from_fixed_point(price, self.settings.price_decimals)}",
            warnings=("Only the pool owner can execute this transaction.",),
        )

    # ------------------------------------------------------------------
    # Order book
    # ------------------------------------------------------------------

    async def build_create_claim_token_order(
        self, strike_price: DecimalLike, amount: DecimalLike, price: DecimalLike
    ) -> TransactionPlan:
        """Offer claim-side tokens. The order book escrows them on creation."""
        strike = self._price(strike_price, "strike_price")
        quantity = self._instrument_amount(amount)
        unit_price = self._price(price, "price")

        pair = await self.connector.insurance_pool().get_insurance_tokens(strike)
        if not pair.exists:
            raise InsufficientPrerequisite(
                "No insurance tokens exist for this strike price",
                {"strike_price": str(strike)},
            )

        order_book = self.connector.order_book()
        approve = self.connector.token(pair.claim_token).build_approve(
            order_book.address, MAX_UINT256
        )

        return TransactionPlan(
            preparatory=(approve,),
            transaction=order_book.build_create_claim_token_order(strike, quantity, unit_price),
            gas_limit=self.settings.gas_limit_order,
            description="Create claim token order",
            warnings=("The first transaction approves unlimited spending of the claim token.",),
        )

    async def build_create_insurance_order(
        self,
        strike_price: DecimalLike,
        amount: DecimalLike,
        price: DecimalLike,
        maker: Optional[str] = None,
    ) -> TransactionPlan:
        """Offer collateral-side exposure backed by deposited collateral.

        Nothing leaves the wallet, so no approval is needed. When the maker is
        known, the locked collateral is checked against ``amount x strike``.
        """
        strike = self._price(strike_price, "strike_price")
        quantity = self._instrument_amount(amount)
        unit_price = self._price(price, "price")
        order_book = self.connector.order_book()

        required = self._obligation(quantity, strike)
        if maker is not None:
            maker = checksum_address(maker, "maker")
            deposited = await order_book.user_collateral_balance(maker)
            if deposited < required:
                raise InsufficientPrerequisite(
                    "Insufficient collateral deposited",
                    {
                        "required": str(required),
                        "deposited": str(deposited),
                        "required_formatted": self._format_base(required),
                    },
                )

        return TransactionPlan(
            transaction=order_book.build_create_insurance_order(strike, quantity, unit_price),
            gas_limit=self.settings.gas_limit_order,
            payment_obligation=required,
            description="Create insurance order",
        )

    async def build_fill_order(self, order_id: int, amount: DecimalLike) -> TransactionPlan:
        """Fill (part of) an open order.

        Raises:
            OrderNotFound: If the order cannot be read or has nothing left
            OrderNotFillable: If the order book reports it is not fillable
        """
        order_id = self._order_id(order_id)
        quantity = self._instrument_amount(amount)
        order_book = self.connector.order_book()

        try:
            order = await order_book.get_order(order_id)
        except ProgramCallFailed:
            raise OrderNotFound(order_id)

        if not order.is_live:
            raise OrderNotFound(order_id)

        if not await order_book.is_order_fillable(order_id):
            raise OrderNotFillable(order_id)

        if quantity > order.remaining_amount:
            raise ValidationError(
                "Fill amount exceeds the order's remaining amount",
                {"order_id": order_id, "remaining": str(order.remaining_amount)},
            )

        obligation = self._obligation(quantity, order.unit_price)

        logger.info(
            f"Building fillOrder: order={order_id} amount={quantity} "
            f"price={order.unit_price} obligation={obligation}"
        )

        return TransactionPlan(
            preparatory=(self._approve_base_asset(order_book.address),),
            transaction=order_book.build_fill_order(order_id, quantity),
            gas_limit=self.settings.gas_limit_order,
            payment_obligation=obligation,
            description=f"Fill order {order_id} for {self._format_base(obligation)}",
            warnings=(
                "The first transaction approves unlimited spending of the base asset.",
                "Price and fillability were read now and may change before you submit.",
            ),
        )

    async def build_cancel_order(self, order_id: int) -> TransactionPlan:
        order_id = self._order_id(order_id)

        return TransactionPlan(
            transaction=self.connector.order_book().build_cancel_order(order_id),
            gas_limit=self.settings.gas_limit_small,
            description=f"Cancel order {order_id}",
        )

    async def build_deposit_collateral(self, amount: DecimalLike) -> TransactionPlan:
        quantity = self._base_amount(amount)
        order_book = self.connector.order_book()

        return TransactionPlan(
            preparatory=(self._approve_base_asset(order_book.address),),
            transaction=order_book.build_deposit_collateral(quantity),
            gas_limit=self.settings.gas_limit_small,
            payment_obligation=quantity,
            description=f"Deposit {self._format_base(quantity)} collateral",
            warnings=("The first transaction approves unlimited spending of the base asset.",),
        )

    async def build_withdraw_collateral(self, amount: DecimalLike) -> TransactionPlan:
        quantity = self._base_amount(amount)

        return TransactionPlan(
            transaction=self.connector.order_book().build_withdraw_collateral(quantity),
            gas_limit=self.settings.gas_limit_small,
            description=f"Withdraw {self._format_base(quantity)} collateral",
        )
