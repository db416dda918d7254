"""Tests for the FastAPI endpoints."""

import pytest
import pytest_asyncio
from eth_account import Account
from httpx import ASGITransport, AsyncClient

from priceinsure.api.app import create_app

from fake_ledger import FAUCET_KEY, USER


@pytest_asyncio.fixture
async def test_app(settings, fake_ledger):
    """Create test application wired to the in-memory ledger."""
    app = create_app(settings, transport=fake_ledger.transport())
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def client(test_app):
    """Create async test client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def assert_error(response, status_code, kind):
    assert response.status_code == status_code
    body = response.json()
    assert body["error"]["kind"] == kind
    assert body["error"]["message"]
    assert "details" in body["error"]
    assert body["path"] == response.request.url.path
    assert body["timestamp"]
    return body


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    @pytest.mark.asyncio
    async def test_root(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["mode"] == "non-custodial"

    @pytest.mark.asyncio
    async def test_health_check(self, client):
        """Test basic health check."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "priceinsure"

    @pytest.mark.asyncio
    async def test_detailed_health(self, client):
        """Test detailed health check."""
        response = await client.get("/health/detailed")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["ledger"]["reachable"] is True
        assert data["faucet"]["enabled"] is True
        assert data["config"]["faucet"]["private_key"] == "***"
        assert FAUCET_KEY not in response.text

    @pytest.mark.asyncio
    async def test_detailed_health_degraded(self, client, fake_ledger):
        fake_ledger.unreachable = True

        response = await client.get("/health/detailed")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
        assert response.json()["ledger"]["error"]["kind"] == "connection_error"


class TestTransactionEndpoints:
    """Prepared transactions are returned unsigned, with big integers as strings."""

    @pytest.mark.asyncio
    async def test_issue_insurance(self, client):
        response = await client.post(
            "/api/transactions/issue-insurance",
            json={
                "strikePrice": "20000",
                "amount": "0.001",
                "collateralTokenRecipient": USER,
                "claimTokenRecipient": USER,
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["paymentObligation"] == "20000000"
        assert data["paymentObligationFormatted"] == "20"
        assert data["gasLimit"] == 5_000_000
        assert len(data["preparatory"]) == 1
        assert data["transaction"]["data"].startswith("0x")
        assert data["transaction"]["value"] == "0x0"
        assert "hash" not in data["transaction"]

    @pytest.mark.asyncio
    async def test_fill_order(self, client, market):
        response = await client.post(
            "/api/transactions/fill-order", json={"orderId": 1, "amount": "2"}
        )

        assert response.status_code == 200
        assert response.json()["paymentObligation"] == "200000"

    @pytest.mark.asyncio
    async def test_fill_unfillable_order(self, client, market):
        response = await client.post(
            "/api/transactions/fill-order", json={"orderId": 4, "amount": "1"}
        )

        body = assert_error(response, 409, "order_not_fillable")
        assert "transaction" not in body

    @pytest.mark.asyncio
    async def test_fill_dead_order(self, client, market):
        response = await client.post(
            "/api/transactions/fill-order", json={"orderId": 3, "amount": "1"}
        )

        assert_error(response, 404, "order_not_found")

    @pytest.mark.asyncio
    async def test_missing_field(self, client):
        response = await client.post("/api/transactions/deposit-collateral", json={})

        assert_error(response, 400, "validation_error")

    @pytest.mark.asyncio
    async def test_bad_decimal(self, client):
        response = await client.post(
            "/api/transactions/deposit-collateral", json={"amount": "1.0000001"}
        )

        assert_error(response, 400, "validation_error")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["1e10000000", "1e-3000000"])
    async def test_extreme_exponent_rejected(self, client, amount):
        response = await client.post(
            "/api/transactions/deposit-collateral", json={"amount": amount}
        )

        assert_error(response, 400, "validation_error")

    @pytest.mark.asyncio
    async def test_claim_order_without_strike(self, client, market):
        response = await client.post(
            "/api/transactions/create-claim-token-order",
            json={"strikePrice": "12345", "amount": "1", "price": "0.1"},
        )

        assert_error(response, 409, "insufficient_prerequisite")

    @pytest.mark.asyncio
    async def test_settle(self, client):
        response = await client.post(
            "/api/transactions/settle-insurance", json={"strikePrices": ["20000"]}
        )

        assert response.status_code == 200
        assert response.json()["gasLimit"] == 3_000_000

    @pytest.mark.asyncio
    async def test_ledger_unreachable(self, client, market):
        market.unreachable = True

        response = await client.post(
            "/api/transactions/fill-order", json={"orderId": 1, "amount": "1"}
        )

        assert_error(response, 503, "connection_error")

    @pytest.mark.asyncio
    async def test_unknown_route_uses_error_body(self, client):
        response = await client.get("/api/transactions/does-not-exist")

        assert_error(response, 404, "not_found")


class TestQueryEndpoints:
    """Read-only queries."""

    @pytest.mark.asyncio
    async def test_all_orders(self, client, market):
        response = await client.get("/api/queries/all-orders")

        assert response.status_code == 200
        data = response.json()
        assert data["totalOrders"] == 4
        assert data["scanLimit"] == 10
        group = data["ordersByStrikePrice"][0]
        assert group["strikePrice"] == str(20_000 * 10**18)
        assert group["strikePriceFormatted"] == "20000"
        assert [o["orderId"] for o in group["claimTokenOrders"]] == [1, 4]
        assert group["claimTokenOrders"][0]["amount"] == str(5 * 10**18)

    @pytest.mark.asyncio
    async def test_all_orders_limit_too_high(self, client, market):
        response = await client.get("/api/queries/all-orders", params={"limit": 5000})

        assert_error(response, 400, "validation_error")

    @pytest.mark.asyncio
    async def test_all_orders_unreachable(self, client, market):
        market.unreachable = True

        response = await client.get("/api/queries/all-orders")

        assert_error(response, 503, "connection_error")

    @pytest.mark.asyncio
    async def test_orders_by_id(self, client, market):
        response = await client.get("/api/queries/orders", params={"orderIds": "1,3,5"})

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 2
        assert [o["orderId"] for o in data["orders"]] == [1, 5]

    @pytest.mark.asyncio
    async def test_orders_bad_ids(self, client, market):
        response = await client.get("/api/queries/orders", params={"orderIds": "1,x"})

        assert_error(response, 400, "validation_error")

    @pytest.mark.asyncio
    async def test_single_order(self, client, market):
        response = await client.get("/api/queries/order/2")

        assert response.status_code == 200
        assert response.json()["isClaimTokenOrder"] is False

    @pytest.mark.asyncio
    async def test_single_dead_order(self, client, market):
        response = await client.get("/api/queries/order/3")

        assert_error(response, 404, "order_not_found")

    @pytest.mark.asyncio
    async def test_balances(self, client, market):
        market.stable.credit(USER, 1_500_000)

        response = await client.get(f"/api/queries/balances/{USER}")

        assert response.status_code == 200
        data = response.json()
        assert data["usdc"] == "1500000"
        assert data["usdcFormatted"] == "1.5"
        assert data["collateral"] == "0"

    @pytest.mark.asyncio
    async def test_tokens_for_unissued_strike(self, client, market):
        response = await client.get(f"/api/queries/tokens/{USER}/12345")

        assert response.status_code == 200
        data = response.json()
        assert data["collateralToken"]["balance"] == "0"
        assert data["claimToken"]["balance"] == "0"

    @pytest.mark.asyncio
    async def test_strike_info(self, client, market):
        response = await client.get("/api/queries/strike/20000")

        assert response.status_code == 200
        data = response.json()
        assert data["strikePrice"] == "20000"
        assert data["collateralToken"]["symbol"] == "INS"
        assert data["claimToken"]["decimals"] == 18

    @pytest.mark.asyncio
    async def test_strike_not_issued(self, client, market):
        response = await client.get("/api/queries/strike/12345")

        assert_error(response, 404, "strike_not_issued")

    @pytest.mark.asyncio
    async def test_pool_status(self, client, market):
        market.finalized = True
        market.final_price = 25_000 * 10**18

        response = await client.get("/api/queries/pool-status")

        assert response.status_code == 200
        data = response.json()
        assert data["isFinalized"] is True
        assert data["finalPrice"] == str(25_000 * 10**18)
        assert data["finalPriceFormatted"] == "25000"

    @pytest.mark.asyncio
    async def test_contracts(self, client, settings):
        response = await client.get("/api/queries/contracts")

        assert response.status_code == 200
        data = response.json()
        assert data["mockToken"] == settings.stable_token_address
        assert data["insuranceOrderbook"] == settings.order_book_address


class TestFaucetEndpoint:
    """The only endpoint that signs."""

    @pytest.mark.asyncio
    async def test_faucet(self, client, fake_ledger):
        response = await client.post("/api/transactions/faucet", json={"address": USER})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["amount"] == "10000"
        assert data["amountReceived"] == "10000"
        assert data["transaction"]["hash"] == fake_ledger.sent[0]["hash"]
        assert data["transaction"]["from"] == Account.from_key(FAUCET_KEY).address

    @pytest.mark.asyncio
    async def test_faucet_invalid_address(self, client, fake_ledger):
        response = await client.post("/api/transactions/faucet", json={"address": "nope"})

        assert_error(response, 400, "validation_error")
        assert fake_ledger.sent == []

    @pytest.mark.asyncio
    async def test_faucet_confirmation_timeout(self, client, fake_ledger):
        fake_ledger.hold_receipts = True

        response = await client.post("/api/transactions/faucet", json={"address": USER})

        body = assert_error(response, 202, "confirmation_timeout")
        assert body["error"]["details"]["tx_hash"] == fake_ledger.sent[0]["hash"]

    @pytest.mark.asyncio
    async def test_faucet_disabled(self, settings, fake_ledger):
        settings.faucet_private_key = None
        app = create_app(settings, transport=fake_ledger.transport())

        async with app.router.lifespan_context(app):
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as ac:
                response = await ac.post("/api/transactions/faucet", json={"address": USER})

        assert_error(response, 503, "faucet_unavailable")
