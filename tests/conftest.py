"""Pytest configuration and fixtures."""

import os

import pytest
import pytest_asyncio

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "true"

from priceinsure.config import Settings
from priceinsure.ledger import LedgerConnector, ProgramAddresses

from fake_ledger import (
    CLAIM_TOKEN,
    COLLATERAL_TOKEN,
    FAUCET_KEY,
    MAKER,
    ONE,
    OTHER_STRIKE,
    RPC_URL,
    STRIKE,
    FakeLedger,
    FakeOrder,
)


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at the in-memory ledger, with fast faucet polling."""
    return Settings(
        _env_file=None,
        rpc_url=RPC_URL,
        faucet_private_key=FAUCET_KEY,
        faucet_confirmation_timeout=0.2,
        faucet_poll_interval=0.01,
        order_scan_limit=10,
        order_scan_max=50,
        order_read_timeout=2.0,
    )


@pytest.fixture
def fake_ledger(settings: Settings) -> FakeLedger:
    """Empty ledger with only the stable token deployed."""
    return FakeLedger(ProgramAddresses.from_settings(settings))


@pytest.fixture
def market(fake_ledger: FakeLedger) -> FakeLedger:
    """Ledger with one issued strike and a handful of orders.

    1: live claim token order at STRIKE
    2: live insurance order at STRIKE
    3: filled (zero remaining)
    4: live but not fillable
    5: live claim token order at OTHER_STRIKE
    """
    fake_ledger.add_strike(STRIKE, COLLATERAL_TOKEN, CLAIM_TOKEN)
    fake_ledger.add_order(1, FakeOrder(MAKER, STRIKE, 5 * ONE, ONE // 10, True))
    fake_ledger.add_order(2, FakeOrder(MAKER, STRIKE, 2 * ONE, ONE // 20, False))
    fake_ledger.add_order(3, FakeOrder(MAKER, STRIKE, 0, ONE // 10, True))
    fake_ledger.add_order(4, FakeOrder(MAKER, STRIKE, ONE, ONE // 10, True, fillable=False))
    fake_ledger.add_order(5, FakeOrder(MAKER, OTHER_STRIKE, 3 * ONE, ONE // 4, True))
    return fake_ledger


@pytest_asyncio.fixture
async def connector(settings: Settings, fake_ledger: FakeLedger):
    """Ledger connector talking to the in-memory node."""
    ledger = LedgerConnector.from_settings(settings, transport=fake_ledger.transport())
    yield ledger
    await ledger.aclose()
