"""JSON-RPC connection to the ledger network.

One ``LedgerConnector`` is built per process and injected wherever ledger
access is needed. It owns a single ``httpx.AsyncClient`` and hands out typed
program handles bound to it. Nothing here retries: timeouts and transport
failures are raised to the caller as ``LedgerTimeout`` and
``LedgerConnectionError``.
"""

import itertools
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from web3 import Web3

from priceinsure.config import Settings
from priceinsure.errors import LedgerConnectionError, LedgerTimeout, ProgramCallFailed
from priceinsure.ledger.programs import (
    InsurancePoolProgram,
    OrderBookProgram,
    TokenProgram,
)
from priceinsure.units import Asset

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgramAddresses:
    """Deployed addresses of the programs this service talks to."""

    stable_token: str
    insurance_pool: str
    order_book: str

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProgramAddresses":
        return cls(
            stable_token=Web3.to_checksum_address(settings.stable_token_address),
            insurance_pool=Web3.to_checksum_address(settings.insurance_pool_address),
            order_book=Web3.to_checksum_address(settings.order_book_address),
        )


class LedgerConnector:
    """Read connection plus typed accessors for each external program."""

    def __init__(
        self,
        rpc_url: str,
        addresses: ProgramAddresses,
        timeout: float = 10.0,
        chain_id: Optional[int] = None,
        base_asset_decimals: int = 6,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the connector.

        Args:
            rpc_url: JSON-RPC endpoint
            addresses: Deployed program addresses
            timeout: Timeout applied to every RPC call (seconds)
            chain_id: Chain ID; read from the node on first use when None
            base_asset_decimals: Precision of the stable token
            transport: Optional httpx transport (tests use ``httpx.MockTransport``)
        """
        self.rpc_url = rpc_url
        self.addresses = addresses
        self.timeout = timeout
        self.base_asset_decimals = base_asset_decimals
        self._chain_id = chain_id
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._request_ids = itertools.count(1)

        self._stable_token: Optional[TokenProgram] = None
        self._insurance_pool: Optional[InsurancePoolProgram] = None
        self._order_book: Optional[OrderBookProgram] = None
        self._tokens: dict[str, TokenProgram] = {}
        self._assets: dict[str, Asset] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "LedgerConnector":
        return cls(
            rpc_url=settings.rpc_url,
            addresses=ProgramAddresses.from_settings(settings),
            timeout=settings.rpc_timeout,
            chain_id=settings.chain_id,
            base_asset_decimals=settings.base_asset_decimals,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Program accessors
    # ------------------------------------------------------------------

    def stable_token(self) -> TokenProgram:
        if self._stable_token is None:
            self._stable_token = TokenProgram(self, self.addresses.stable_token)
        return self._stable_token

    def insurance_pool(self) -> InsurancePoolProgram:
        if self._insurance_pool is None:
            self._insurance_pool = InsurancePoolProgram(self, self.addresses.insurance_pool)
        return self._insurance_pool

    def order_book(self) -> OrderBookProgram:
        if self._order_book is None:
            self._order_book = OrderBookProgram(self, self.addresses.order_book)
        return self._order_book

    def token(self, address: str) -> TokenProgram:
        """Handle for an arbitrary token (e.g. an instrument token)."""
        key = Web3.to_checksum_address(address)
        if key == self.addresses.stable_token:
            return self.stable_token()
        if key not in self._tokens:
            self._tokens[key] = TokenProgram(self, key)
        return self._tokens[key]

    def base_asset(self) -> Asset:
        """The stable token, at its configured precision."""
        return Asset(address=self.addresses.stable_token, precision=self.base_asset_decimals)

    async def asset(self, address: str) -> Asset:
        """Asset with precision read from the ledger once and cached."""
        key = Web3.to_checksum_address(address)
        if key == self.addresses.stable_token:
            return self.base_asset()
        if key not in self._assets:
            token = self.token(key)
            precision = await token.decimals()
            symbol = await token.symbol()
            self._assets[key] = Asset(address=key, precision=precision, symbol=symbol)
            logger.debug(f"Cached precision {precision} for {symbol} ({key})")
        return self._assets[key]

    # ------------------------------------------------------------------
    # JSON-RPC
    # ------------------------------------------------------------------

    async def rpc(self, method: str, params: list) -> Any:
        """Send one JSON-RPC request and return its ``result``.

        Raises:
            LedgerTimeout: If the call exceeded the timeout
            LedgerConnectionError: If the endpoint is unreachable or misbehaves
            ProgramCallFailed: If the node returned a JSON-RPC error
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": next(self._request_ids),
        }

        # request_sent tells a writer whether the node may have seen the request
        try:
            response = await self._client.post(self.rpc_url, json=payload)
        except httpx.TimeoutException as e:
            logger.warning(f"RPC {method} timed out after {self.timeout}s")
            raise LedgerTimeout(
                f"Ledger call {method} timed out after {self.timeout}s",
                {"method": method, "request_sent": not isinstance(e, httpx.ConnectTimeout)},
            ) from e
        except httpx.TransportError as e:
            logger.error(f"Ledger endpoint unreachable ({method}): {e}")
            raise LedgerConnectionError(
                f"Ledger endpoint unreachable: {e}",
                {"method": method, "request_sent": not isinstance(e, httpx.ConnectError)},
            ) from e

        if response.status_code != 200:
            raise LedgerConnectionError(
                f"Ledger endpoint returned HTTP {response.status_code}",
                {"method": method, "status": response.status_code},
            )

        try:
            data = response.json()
        except ValueError as e:
            raise LedgerConnectionError(
                "Ledger endpoint returned invalid JSON", {"method": method}
            ) from e

        error = data.get("error")
        if error:
            message = error.get("message", "unknown error") if isinstance(error, dict) else str(error)
            raise ProgramCallFailed(
                f"{method} failed: {message}",
                {"method": method, "code": error.get("code") if isinstance(error, dict) else None},
            )

        return data.get("result")

    async def eth_call(self, to: str, data: str) -> bytes:
        result = await self.rpc("eth_call", [{"to": to, "data": data}, "latest"])
        if not isinstance(result, str):
            raise ProgramCallFailed(f"eth_call to {to} returned no data", {"to": to})
        return Web3.to_bytes(hexstr=result)

    async def block_number(self) -> int:
        return int(await self.rpc("eth_blockNumber", []), 16)

    async def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = int(await self.rpc("eth_chainId", []), 16)
        return self._chain_id

    async def gas_price(self) -> int:
        return int(await self.rpc("eth_gasPrice", []), 16)

    async def pending_nonce(self, address: str) -> int:
        """Transaction count including pending transactions."""
        return int(await self.rpc("eth_getTransactionCount", [address, "pending"]), 16)

    async def send_raw_transaction(self, raw_tx: bytes) -> str:
        """Broadcast a signed transaction and return its hash."""
        return await self.rpc("eth_sendRawTransaction", [Web3.to_hex(raw_tx)])

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[dict]:
        """Receipt of a mined transaction, or None while it is pending."""
        return await self.rpc("eth_getTransactionReceipt", [tx_hash])
