"""Typed handles for the ledger-resident programs.

Each handle knows its program's fixed ABI, performs read calls through the
shared connector and builds unsigned ``TransactionDescriptor`` values for
write calls. Handles never sign or submit anything.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Sequence

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError
from web3 import Web3

from priceinsure.errors import ProgramCallFailed, UnsupportedProgramVersion, ValidationError
from priceinsure.ledger.abis import (
    INSURANCE_POOL_ABI,
    ORDER_BOOK_ABI,
    TOKEN_ABI,
    ZERO_ADDRESS,
    selector,
)

if TYPE_CHECKING:
    from priceinsure.ledger.connector import LedgerConnector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransactionDescriptor:
    """An unsigned call: target program, encoded call data and native value."""

    to: str
    data: str
    value: int = 0


@dataclass(frozen=True)
class InstrumentPair:
    """Collateral-side and claim-side tokens issued against one strike."""

    collateral_token: str
    claim_token: str

    @property
    def exists(self) -> bool:
        return self.collateral_token != ZERO_ADDRESS


@dataclass(frozen=True)
class OrderRecord:
    """Raw order as stored by the order book."""

    order_id: int
    maker: str
    strike_price: int
    remaining_amount: int
    unit_price: int
    is_claim_token_order: bool

    @property
    def is_live(self) -> bool:
        return self.remaining_amount > 0


class ProgramHandle:
    """Base handle bound to one program address."""

    abi: list[dict] = []
    role = "program"

    def __init__(self, connector: "LedgerConnector", address: str):
        self.connector = connector
        self.address = Web3.to_checksum_address(address)
        self._functions = {entry["name"]: entry for entry in self.abi}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.address})"

    def _entry(self, name: str) -> dict:
        try:
            return self._functions[name]
        except KeyError:
            raise UnsupportedProgramVersion(
                f"{self.role} has no function {name!r} in its known interface",
                {"program": self.role, "function": name},
            )

    def encode(self, name: str, *args: Any) -> str:
        """ABI-encode a call to ``name`` as a 0x-prefixed hex string."""
        entry = self._entry(name)
        types = [i["type"] for i in entry["inputs"]]
        if len(args) != len(types):
            raise UnsupportedProgramVersion(
                f"{self.role}.{name} takes {len(types)} arguments, got {len(args)}",
                {"program": self.role, "function": name},
            )
        try:
            payload = encode(types, list(args))
        except (EncodingError, TypeError, ValueError) as e:
            raise ValidationError(f"Cannot encode {name} arguments: {e}")
        return Web3.to_hex(selector(entry) + payload)

    def transaction(self, name: str, *args: Any) -> TransactionDescriptor:
        return TransactionDescriptor(to=self.address, data=self.encode(name, *args), value=0)

    async def call(self, name: str, *args: Any) -> Any:
        """Execute a read call and decode its outputs.

        Single-output functions return the bare value, others a tuple.
        """
        entry = self._entry(name)
        raw = await self.connector.eth_call(self.address, self.encode(name, *args))
        output_types = [o["type"] for o in entry["outputs"]]
        try:
            values = decode(output_types, raw)
        except (DecodingError, ValueError) as e:
            raise ProgramCallFailed(
                f"{self.role}.{name} returned undecodable data",
                {"program": self.role, "function": name},
            ) from e
        return values[0] if len(values) == 1 else tuple(values)


class TokenProgram(ProgramHandle):
    """Fungible token: the stable base asset or an instrument token."""

    abi = TOKEN_ABI
    role = "token"

    async def balance_of(self, owner: str) -> int:
        return await self.call("balanceOf", owner)

    async def allowance(self, owner: str, spender: str) -> int:
        return await self.call("allowance", owner, spender)

    async def decimals(self) -> int:
        return await self.call("decimals")

    async def symbol(self) -> str:
        return await self.call("symbol")

    async def name(self) -> str:
        return await self.call("name")

    def build_approve(self, spender: str, amount: int) -> TransactionDescriptor:
        return self.transaction("approve", spender, amount)

    def build_mint(self, recipient: str, amount: int) -> TransactionDescriptor:
        return self.transaction("mint", recipient, amount)


class InsurancePoolProgram(ProgramHandle):
    """Issues, redeems and settles instrument pairs per strike."""

    abi = INSURANCE_POOL_ABI
    role = "insurance_pool"

    async def get_insurance_tokens(self, strike_price: int) -> InstrumentPair:
        collateral_token, claim_token = await self.call("getInsuranceTokens", strike_price)
        return InstrumentPair(collateral_token=collateral_token, claim_token=claim_token)

    async def is_finalized(self) -> bool:
        return await self.call("finalized")

    async def final_price(self) -> int:
        return await self.call("FinalPrice")

    async def collateral_token(self) -> str:
        return await self.call("COLLATERAL_TOKEN")

    def build_issue_insurance(
        self,
        strike_price: int,
        amount: int,
        collateral_token_recipient: str,
        claim_token_recipient: str,
    ) -> TransactionDescriptor:
        return self.transaction(
            "issueInsurance", strike_price, amount, collateral_token_recipient, claim_token_recipient
        )

    def build_redeem_insurance(self, strike_price: int, amount: int) -> TransactionDescriptor:
        return self.transaction("redeemInsurance", strike_price, amount)

    def build_finalize(self, final_price: int) -> TransactionDescriptor:
        return self.transaction("finalize", final_price)

    def build_settle_insurance(self, strike_prices: Sequence[int]) -> TransactionDescriptor:
        return self.transaction("settleInsurance", list(strike_prices))


class OrderBookProgram(ProgramHandle):
    """Peer-to-peer order book for instrument tokens."""

    abi = ORDER_BOOK_ABI
    role = "order_book"

    async def get_order(self, order_id: int) -> OrderRecord:
        maker, strike_price, amount, price, is_claim = await self.call("getOrder", order_id)
        return OrderRecord(
            order_id=order_id,
            maker=maker,
            strike_price=strike_price,
            remaining_amount=amount,
            unit_price=price,
            is_claim_token_order=is_claim,
        )

    async def is_order_fillable(self, order_id: int) -> bool:
        return await self.call("isOrderFillable", order_id)

    async def user_collateral_balance(self, owner: str) -> int:
        return await self.call("userCollateralBalance", owner)

    async def fee_rate(self) -> int:
        return await self.call("feeRate")

    def build_deposit_collateral(self, amount: int) -> TransactionDescriptor:
        return self.transaction("depositCollateral", amount)

    def build_withdraw_collateral(self, amount: int) -> TransactionDescriptor:
        return self.transaction("withdrawCollateral", amount)

    def build_create_claim_token_order(
        self, strike_price: int, amount: int, price: int
    ) -> TransactionDescriptor:
        return self.transaction("createClaimTokenOrder", strike_price, amount, price)

    def build_create_insurance_order(
        self, strike_price: int, amount: int, price: int
    ) -> TransactionDescriptor:
        return self.transaction("createInsuranceOrder", strike_price, amount, price)

    def build_cancel_order(self, order_id: int) -> TransactionDescriptor:
        return self.transaction("cancelOrder", order_id)

    def build_fill_order(self, order_id: int, amount: int) -> TransactionDescriptor:
        return self.transaction("fillOrder", order_id, amount)
