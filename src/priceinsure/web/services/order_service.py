"""Open-order view reconstructed from the order book.

The order book exposes no index and no order count, only ``getOrder(id)``
for ids assigned monotonically from 1. The open-order list is rebuilt by
scanning ids ``1..limit``. This is a best-effort scan: unreadable ids are
skipped and reported, and orders above ``limit`` are not seen at all.

SECURITY: read-only. Nothing here builds or signs transactions.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

from priceinsure.config import Settings, get_settings
from priceinsure.errors import (
    LedgerConnectionError,
    LedgerTimeout,
    OrderNotFound,
    ProgramCallFailed,
    ValidationError,
)
from priceinsure.ledger import InstrumentPair, LedgerConnector, OrderRecord

logger = logging.getLogger(__name__)

ReadFailure = Union[ProgramCallFailed, LedgerConnectionError, LedgerTimeout]


@dataclass(frozen=True)
class OpenOrder:
    """A live order joined with its fillability and instrument pair."""

    record: OrderRecord
    is_fillable: bool
    tokens: InstrumentPair

    @property
    def order_id(self) -> int:
        return self.record.order_id

    @property
    def strike_price(self) -> int:
        return self.record.strike_price

    @property
    def is_claim_token_order(self) -> bool:
        return self.record.is_claim_token_order


@dataclass
class StrikeGroup:
    """Open orders for one strike, split by side."""

    strike_price: int
    tokens: InstrumentPair
    claim_token_orders: list[OpenOrder] = field(default_factory=list)
    insurance_orders: list[OpenOrder] = field(default_factory=list)


@dataclass(frozen=True)
class OrderBookSnapshot:
    """Result of one scan. Only ids up to ``scan_limit`` were examined."""

    scan_limit: int
    orders: tuple[OpenOrder, ...]
    unreadable_ids: tuple[int, ...] = ()

    @property
    def total_orders(self) -> int:
        return len(self.orders)

    def by_strike_price(self) -> list[StrikeGroup]:
        """Group orders by strike, groups in order of first appearance."""
        groups: dict[int, StrikeGroup] = {}
        for order in self.orders:
            group = groups.get(order.strike_price)
            if group is None:
                group = StrikeGroup(strike_price=order.strike_price, tokens=order.tokens)
                groups[order.strike_price] = group
            if order.is_claim_token_order:
                group.claim_token_orders.append(order)
            else:
                group.insurance_orders.append(order)
        return list(groups.values())


class OrderService:
    """Reads orders from the order book."""

    def __init__(self, connector: LedgerConnector, settings: Optional[Settings] = None):
        self.connector = connector
        self.settings = settings or get_settings()

    def resolve_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.settings.order_scan_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise ValidationError(f"Invalid scan limit: {limit!r}", {"field": "limit"})
        if limit > self.settings.order_scan_max:
            raise ValidationError(
                f"Scan limit must not exceed {self.settings.order_scan_max}",
                {"field": "limit", "max": self.settings.order_scan_max},
            )
        return limit

    async def _pair_for(self, strike_price: int, pairs: dict[int, InstrumentPair]) -> InstrumentPair:
        pair = pairs.get(strike_price)
        if pair is None:
            pair = await self.connector.insurance_pool().get_insurance_tokens(strike_price)
            pairs[strike_price] = pair
        return pair

    async def _read_open_order(
        self, order_id: int, pairs: dict[int, InstrumentPair]
    ) -> Optional[OpenOrder]:
        """Read one order; None when it is filled or cancelled."""
        order_book = self.connector.order_book()
        record = await order_book.get_order(order_id)
        if not record.is_live:
            return None

        is_fillable = await order_book.is_order_fillable(order_id)
        tokens = await self._pair_for(record.strike_price, pairs)
        return OpenOrder(record=record, is_fillable=is_fillable, tokens=tokens)

    async def _collect(self, order_ids: list[int]) -> tuple[list[OpenOrder], list[int]]:
        """Read many ids, absorbing per-id failures.

        Returns live orders in the order of ``order_ids`` plus the ids that
        could not be read. Raises the last connectivity error only when not a
        single id could be read and every failure was connectivity, so an
        unreachable ledger never looks like an empty order book.
        """
        semaphore = asyncio.Semaphore(max(1, self.settings.order_scan_concurrency))
        timeout = self.settings.order_read_timeout
        pairs: dict[int, InstrumentPair] = {}

        async def read(order_id: int) -> Union[Optional[OpenOrder], ReadFailure]:
            async with semaphore:
                try:
                    return await asyncio.wait_for(self._read_open_order(order_id, pairs), timeout)
                except asyncio.TimeoutError:
                    return LedgerTimeout(
                        f"Reading order {order_id} exceeded {timeout}s", {"order_id": order_id}
                    )
                except (ProgramCallFailed, LedgerConnectionError, LedgerTimeout) as e:
                    return e

        results = await asyncio.gather(*(read(order_id) for order_id in order_ids))

        orders: list[OpenOrder] = []
        unreadable: list[int] = []
        last_connectivity_error: Optional[Exception] = None
        only_connectivity = True

        for order_id, result in zip(order_ids, results):
            if isinstance(result, Exception):
                logger.debug(f"Order {order_id} unreadable: {result}")
                unreadable.append(order_id)
                if isinstance(result, (LedgerConnectionError, LedgerTimeout)):
                    last_connectivity_error = result
                else:
                    only_connectivity = False
            elif result is not None:
                orders.append(result)

        if order_ids and len(unreadable) == len(order_ids) and only_connectivity:
            raise last_connectivity_error

        if unreadable:
            logger.warning(f"Skipped {len(unreadable)} unreadable order id(s)")

        return orders, unreadable

    async def scan_open_orders(self, limit: Optional[int] = None) -> OrderBookSnapshot:
        """Scan ids ``1..limit`` and return every live order found.

        Args:
            limit: Highest id to examine (default from settings)

        Returns:
            OrderBookSnapshot in ascending id order
        """
        scan_limit = self.resolve_limit(limit)
        orders, unreadable = await self._collect(list(range(1, scan_limit + 1)))

        logger.info(
            f"Order scan 1..{scan_limit}: {len(orders)} open, {len(unreadable)} unreadable"
        )

        return OrderBookSnapshot(
            scan_limit=scan_limit,
            orders=tuple(orders),
            unreadable_ids=tuple(unreadable),
        )

    async def get_orders(self, order_ids: Iterable[int]) -> list[OpenOrder]:
        """Live orders among ``order_ids``; dead or unreadable ids are skipped."""
        ids = list(order_ids)
        for order_id in ids:
            if isinstance(order_id, bool) or not isinstance(order_id, int) or order_id <= 0:
                raise ValidationError(f"Invalid order id: {order_id!r}", {"field": "order_ids"})
        orders, _ = await self._collect(ids)
        return orders

    async def get_order(self, order_id: int) -> OpenOrder:
        """A single live order.

        Raises:
            OrderNotFound: If the record is unreadable or has nothing left
        """
        if isinstance(order_id, bool) or not isinstance(order_id, int) or order_id <= 0:
            raise ValidationError(f"Invalid order id: {order_id!r}", {"field": "order_id"})
        try:
            order = await self._read_open_order(order_id, {})
        except ProgramCallFailed:
            raise OrderNotFound(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return order
