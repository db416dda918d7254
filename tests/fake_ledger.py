"""In-memory JSON-RPC node for tests.

Serves the token, insurance pool and order book interfaces through an
``httpx.MockTransport`` so the real connector, ABI encoding and error
mapping are exercised end to end.
"""

import asyncio
import json
from dataclasses import dataclass, field

import httpx
import rlp
from eth_abi import decode, encode
from eth_account import Account
from web3 import Web3

from priceinsure.ledger import ProgramAddresses
from priceinsure.ledger.abis import (
    INSURANCE_POOL_ABI,
    ORDER_BOOK_ABI,
    TOKEN_ABI,
    ZERO_ADDRESS,
    selector,
)

RPC_URL = "http://ledger.test"
CHAIN_ID = 1114
GAS_PRICE = 10**9

# Well-known development key; never funded anywhere real
FAUCET_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"

USER = "0x1111111111111111111111111111111111111111"
OTHER_USER = "0x2222222222222222222222222222222222222222"
MAKER = "0x3333333333333333333333333333333333333333"

COLLATERAL_TOKEN = "0x00000000000000000000000000000000000000c1"
CLAIM_TOKEN = "0x00000000000000000000000000000000000000c2"

ONE = 10**18
STRIKE = 20_000 * ONE
OTHER_STRIKE = 30_000 * ONE


def _key(address: str) -> str:
    return address.lower()


@dataclass
class FakeToken:
    symbol: str
    name: str
    decimals: int
    balances: dict = field(default_factory=dict)

    def balance_of(self, owner: str) -> int:
        return self.balances.get(_key(owner), 0)

    def credit(self, owner: str, amount: int) -> None:
        self.balances[_key(owner)] = self.balance_of(owner) + amount


@dataclass
class FakeOrder:
    maker: str
    strike_price: int
    amount: int
    price: int
    is_claim_token_order: bool
    fillable: bool = True


class FakeLedger:
    """A deterministic stand-in for the ledger network."""

    def __init__(self, addresses: ProgramAddresses):
        self.addresses = addresses
        self.tokens: dict[str, FakeToken] = {
            _key(addresses.stable_token): FakeToken("USDC", "Mock USDC", 6),
        }
        self.pairs: dict[int, tuple[str, str]] = {}
        self.orders: dict[int, FakeOrder] = {}
        self.collateral: dict[str, int] = {}
        self.finalized = False
        self.final_price = 0
        self.block = 100

        # Failure injection
        self.unreachable = False
        self.timeout_methods: set[str] = set()
        self.failing_order_ids: set[int] = set()
        self.slow_order_ids: set[int] = set()
        self.slow_delay = 5.0
        self.hold_receipts = False
        self.revert_transactions = False
        self.reject_sends = False
        self.send_timeouts = False
        self.null_receipt_status = False

        # Observations
        self.methods: list[str] = []
        self.sent: list[dict] = []
        self.nonces: dict[str, int] = {}
        self.receipts: dict[str, dict] = {}

        self._dispatch = {}
        for program, abi in (
            (addresses.stable_token, TOKEN_ABI),
            (addresses.insurance_pool, INSURANCE_POOL_ABI),
            (addresses.order_book, ORDER_BOOK_ABI),
        ):
            for entry in abi:
                self._dispatch[(_key(program), selector(entry))] = entry

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    @property
    def stable(self) -> FakeToken:
        return self.tokens[_key(self.addresses.stable_token)]

    def add_strike(self, strike_price: int, collateral_token: str, claim_token: str) -> None:
        self.pairs[strike_price] = (collateral_token, claim_token)
        for address, kind in ((collateral_token, "INS"), (claim_token, "CLM")):
            self.tokens[_key(address)] = FakeToken(kind, f"{kind} token", 18)
            for entry in TOKEN_ABI:
                self._dispatch[(_key(address), selector(entry))] = entry

    def add_order(self, order_id: int, order: FakeOrder) -> None:
        self.orders[order_id] = order

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def async_transport(self) -> httpx.MockTransport:
        """Transport whose reads of ``slow_order_ids`` stall for ``slow_delay``."""
        return httpx.MockTransport(self.handle_async)

    # ------------------------------------------------------------------
    # JSON-RPC
    # ------------------------------------------------------------------

    def handle(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        method = payload["method"]
        params = payload["params"]
        self.methods.append(method)

        if self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)
        if method in self.timeout_methods:
            raise httpx.ReadTimeout("read timed out", request=request)

        try:
            result = getattr(self, f"_rpc_{method}")(*params)
        except RpcError as e:
            body = {"jsonrpc": "2.0", "id": payload["id"], "error": {"code": -32000, "message": str(e)}}
        else:
            body = {"jsonrpc": "2.0", "id": payload["id"], "result": result}
        return httpx.Response(200, json=body)

    async def handle_async(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        if payload["method"] == "eth_call" and self._order_id(payload["params"][0]) in self.slow_order_ids:
            await asyncio.sleep(self.slow_delay)
        return self.handle(request)

    def _order_id(self, call: dict):
        data = Web3.to_bytes(hexstr=call["data"])
        entry = self._dispatch.get((_key(call["to"]), data[:4]))
        if entry is None or entry["name"] not in ("getOrder", "isOrderFillable"):
            return None
        return decode(["uint256"], data[4:])[0]

    def _rpc_eth_blockNumber(self):
        return hex(self.block)

    def _rpc_eth_chainId(self):
        return hex(CHAIN_ID)

    def _rpc_eth_gasPrice(self):
        return hex(GAS_PRICE)

    def _rpc_eth_getTransactionCount(self, address, block_tag):
        return hex(self.nonces.get(_key(address), 0))

    def _rpc_eth_getTransactionReceipt(self, tx_hash):
        if self.hold_receipts:
            return None
        return self.receipts.get(tx_hash)

    def _rpc_eth_sendRawTransaction(self, raw_hex):
        if self.send_timeouts:
            # Accepted by the node, but the response never arrives
            self._accept(raw_hex)
            raise httpx.ReadTimeout("read timed out")
        if self.reject_sends:
            raise RpcError("insufficient funds for gas * price + value")
        return self._accept(raw_hex)

    def _accept(self, raw_hex: str) -> str:
        raw = Web3.to_bytes(hexstr=raw_hex)
        fields = rlp.decode(raw)
        nonce = int.from_bytes(fields[0], "big")
        to = Web3.to_checksum_address("0x" + bytes(fields[3]).hex())
        data = bytes(fields[5])
        sender = Account.recover_transaction(raw)

        expected = self.nonces.get(_key(sender), 0)
        if nonce != expected:
            raise RpcError(f"nonce too low: next nonce {expected}, tx nonce {nonce}")
        self.nonces[_key(sender)] = expected + 1

        tx_hash = Web3.to_hex(Web3.keccak(raw))
        self.sent.append({"hash": tx_hash, "nonce": nonce, "from": sender, "to": to, "data": data})

        self.block += 1
        status = 0 if self.revert_transactions else 1
        if status and _key(to) == _key(self.addresses.stable_token):
            entry = self._dispatch[(_key(to), data[:4])]
            if entry["name"] == "mint":
                recipient, amount = decode(["address", "uint256"], data[4:])
                self.stable.credit(recipient, amount)

        self.receipts[tx_hash] = {
            "transactionHash": tx_hash,
            "blockNumber": hex(self.block),
            "status": None if self.null_receipt_status else hex(status),
        }
        return tx_hash

    def _rpc_eth_call(self, call, block_tag):
        to = _key(call["to"])
        data = Web3.to_bytes(hexstr=call["data"])
        entry = self._dispatch.get((to, data[:4]))
        if entry is None:
            raise RpcError("execution reverted")

        args = decode([i["type"] for i in entry["inputs"]], data[4:])
        handler = getattr(self, f"_call_{entry['name']}")
        if to in self.tokens and entry in TOKEN_ABI:
            values = handler(self.tokens[to], *args)
        else:
            values = handler(*args)
        return Web3.to_hex(encode([o["type"] for o in entry["outputs"]], list(values)))

    # ------------------------------------------------------------------
    # Program state
    # ------------------------------------------------------------------

    def _call_balanceOf(self, token, owner):
        return (token.balance_of(owner),)

    def _call_allowance(self, token, owner, spender):
        return (0,)

    def _call_decimals(self, token):
        return (token.decimals,)

    def _call_symbol(self, token):
        return (token.symbol,)

    def _call_name(self, token):
        return (token.name,)

    def _call_getInsuranceTokens(self, strike_price):
        return self.pairs.get(strike_price, (ZERO_ADDRESS, ZERO_ADDRESS))

    def _call_finalized(self):
        return (self.finalized,)

    def _call_FinalPrice(self):
        return (self.final_price,)

    def _call_COLLATERAL_TOKEN(self):
        return (self.addresses.stable_token,)

    def _call_getOrder(self, order_id):
        if order_id in self.failing_order_ids:
            raise RpcError("execution reverted")
        order = self.orders.get(order_id)
        if order is None:
            return (ZERO_ADDRESS, 0, 0, 0, False)
        return (order.maker, order.strike_price, order.amount, order.price, order.is_claim_token_order)

    def _call_isOrderFillable(self, order_id):
        order = self.orders.get(order_id)
        return (bool(order and order.amount > 0 and order.fillable),)

    def _call_userCollateralBalance(self, owner):
        return (self.collateral.get(_key(owner), 0),)

    def _call_feeRate(self):
        return (0,)


class RpcError(Exception):
    """Rendered as a JSON-RPC error object."""

