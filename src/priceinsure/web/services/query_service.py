"""Read-only queries against the insurance pool and tokens.

SECURITY: This service:
- Only queries public ledger state
- Never accesses private keys
- Never signs transactions
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from priceinsure.config import Settings, get_settings
from priceinsure.errors import StrikeNotIssued
from priceinsure.ledger import InstrumentPair, LedgerConnector
from priceinsure.units import DecimalLike, to_fixed_point
from priceinsure.web.services.transaction_builder import checksum_address

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserBalances:
    address: str
    wallet_balance: int
    collateral_balance: int


@dataclass(frozen=True)
class StrikeTokenBalances:
    strike_price: int
    tokens: InstrumentPair
    collateral_token_balance: int
    claim_token_balance: int


@dataclass(frozen=True)
class TokenInfo:
    address: str
    name: str
    symbol: str
    decimals: int


@dataclass(frozen=True)
class StrikeInfo:
    strike_price: int
    collateral_token: TokenInfo
    claim_token: TokenInfo


@dataclass(frozen=True)
class PoolStatus:
    is_finalized: bool
    final_price: int


class QueryService:
    """Balances, strike metadata and pool status."""

    def __init__(self, connector: LedgerConnector, settings: Optional[Settings] = None):
        self.connector = connector
        self.settings = settings or get_settings()

    def _strike(self, strike_price: DecimalLike) -> int:
        return to_fixed_point(strike_price, self.settings.price_decimals, "strike_price")

    async def get_user_balances(self, address: str) -> UserBalances:
        """Wallet balance of the base asset and collateral held by the order book."""
        owner = checksum_address(address)
        wallet, collateral = await asyncio.gather(
            self.connector.stable_token().balance_of(owner),
            self.connector.order_book().user_collateral_balance(owner),
        )
        return UserBalances(address=owner, wallet_balance=wallet, collateral_balance=collateral)

    async def get_user_tokens_for_strike(
        self, address: str, strike_price: DecimalLike
    ) -> StrikeTokenBalances:
        """Instrument balances of a user for one strike (zeros if never issued)."""
        owner = checksum_address(address)
        strike = self._strike(strike_price)

        pair = await self.connector.insurance_pool().get_insurance_tokens(strike)
        if not pair.exists:
            return StrikeTokenBalances(
                strike_price=strike,
                tokens=pair,
                collateral_token_balance=0,
                claim_token_balance=0,
            )

        collateral_balance, claim_balance = await asyncio.gather(
            self.connector.token(pair.collateral_token).balance_of(owner),
            self.connector.token(pair.claim_token).balance_of(owner),
        )
        return StrikeTokenBalances(
            strike_price=strike,
            tokens=pair,
            collateral_token_balance=collateral_balance,
            claim_token_balance=claim_balance,
        )

    async def get_token_info(self, address: str) -> TokenInfo:
        token = self.connector.token(address)
        asset = await self.connector.asset(token.address)
        name = await token.name()
        return TokenInfo(
            address=token.address,
            name=name,
            symbol=asset.symbol or "",
            decimals=asset.precision,
        )

    async def get_strike_info(self, strike_price: DecimalLike) -> StrikeInfo:
        """Token addresses and metadata for a strike.

        Raises:
            StrikeNotIssued: If nothing was ever issued at this strike
        """
        strike = self._strike(strike_price)
        pair = await self.connector.insurance_pool().get_insurance_tokens(strike)
        if not pair.exists:
            raise StrikeNotIssued(
                "No tokens exist for this strike price", {"strike_price": str(strike)}
            )

        collateral_info, claim_info = await asyncio.gather(
            self.get_token_info(pair.collateral_token),
            self.get_token_info(pair.claim_token),
        )
        return StrikeInfo(strike_price=strike, collateral_token=collateral_info, claim_token=claim_info)

    async def get_pool_status(self) -> PoolStatus:
        pool = self.connector.insurance_pool()
        is_finalized, final_price = await asyncio.gather(pool.is_finalized(), pool.final_price())
        return PoolStatus(is_finalized=is_finalized, final_price=final_price)
