"""Faucet signer: the one credentialed identity of this service.

Mints test stable tokens to a requester. All submissions from the faucet
key go through a single worker task that owns a queue, so exactly one
transaction is in flight at a time and nonces are consumed in order.

Submission flow per job:
1. Read recipient balance
2. Read pending nonce, sign mint(recipient, amount)
3. Broadcast, obtain the transaction hash
4. Poll for the receipt
5. Read recipient balance again and report what actually arrived

A job whose receipt never shows up fails with ``ConfirmationTimeout`` and
carries the hash. It is never resubmitted: the first attempt may still land.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from eth_account import Account
from web3 import Web3

from priceinsure.config import Settings
from priceinsure.errors import (
    AmbiguousSubmission,
    ConfirmationTimeout,
    FaucetUnavailable,
    GatewayError,
    LedgerConnectionError,
    LedgerTimeout,
    ProgramCallFailed,
    SubmissionFailed,
    TransactionReverted,
    ValidationError,
)
from priceinsure.ledger import LedgerConnector
from priceinsure.units import to_fixed_point

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FaucetReceipt:
    """Outcome of a confirmed faucet mint."""

    tx_hash: str
    block_number: Optional[int]
    sender: str
    recipient: str
    requested_amount: int
    received_amount: Optional[int]  # None if the post-mint balance read failed


@dataclass
class _FaucetJob:
    recipient: str
    future: asyncio.Future


class FaucetSigner:
    """Single-writer actor around the faucet key."""

    def __init__(
        self,
        connector: LedgerConnector,
        private_key: str,
        amount: int,
        gas_limit: int = 2_000_000,
        confirmation_timeout: float = 120.0,
        poll_interval: float = 2.0,
    ):
        """Initialize the faucet.

        Args:
            connector: Shared ledger connector
            private_key: Hex private key of the stable token owner
            amount: Amount minted per request (base units)
            gas_limit: Gas limit for each mint
            confirmation_timeout: Max time to wait for a receipt (seconds)
            poll_interval: Receipt polling interval (seconds)
        """
        self.connector = connector
        self.amount = amount
        self.gas_limit = gas_limit
        self.confirmation_timeout = confirmation_timeout
        self.poll_interval = poll_interval
        self._account = Account.from_key(private_key)
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._dispatched_hash: Optional[str] = None

    @classmethod
    def from_settings(cls, connector: LedgerConnector, settings: Settings) -> "FaucetSigner":
        if not settings.faucet_private_key:
            raise FaucetUnavailable("Faucet not configured: missing private key")
        return cls(
            connector=connector,
            private_key=settings.faucet_private_key,
            amount=to_fixed_point(settings.faucet_amount, settings.base_asset_decimals),
            gas_limit=settings.faucet_gas_limit,
            confirmation_timeout=settings.faucet_confirmation_timeout,
            poll_interval=settings.faucet_poll_interval,
        )

    @property
    def address(self) -> str:
        return self._account.address

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def __repr__(self) -> str:
        return f"FaucetSigner(address={self.address})"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue()
        self._worker = asyncio.create_task(self._run(), name="faucet-signer")
        logger.info(f"Faucet signer started for {self.address}")

    async def stop(self) -> None:
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None

        # Jobs still queued were never dispatched
        while self._queue is not None and not self._queue.empty():
            job = self._queue.get_nowait()
            if not job.future.done():
                job.future.set_exception(FaucetUnavailable("Faucet stopped before dispatch"))
        logger.info("Faucet signer stopped")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def request_funds(self, recipient: str) -> FaucetReceipt:
        """Queue a mint to ``recipient`` and wait for its outcome.

        Raises:
            ValidationError: If the address is malformed (nothing is sent)
            SubmissionFailed: If the node never accepted the transaction
            AmbiguousSubmission: If it was dispatched but the outcome is unknown
            TransactionReverted: If it was mined with a failure status
        """
        if not isinstance(recipient, str) or not Web3.is_address(recipient):
            raise ValidationError("Invalid Ethereum address", {"field": "address"})
        recipient = Web3.to_checksum_address(recipient)

        if not self.running:
            await self.start()

        future = asyncio.get_running_loop().create_future()
        await self._queue.put(_FaucetJob(recipient=recipient, future=future))
        logger.debug(f"Faucet job queued for {recipient} (queue size {self._queue.qsize()})")
        return await future

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                if job.future.cancelled():
                    continue
                self._dispatched_hash = None
                try:
                    receipt = await self._process(job.recipient)
                except asyncio.CancelledError:
                    # Stopped mid-job: once signed and sent, the mint may still land
                    if self._dispatched_hash is None:
                        job.future.cancel()
                    elif not job.future.done():
                        job.future.set_exception(
                            AmbiguousSubmission(
                                "Faucet stopped before confirmation; check the hash before retrying",
                                self._dispatched_hash,
                            )
                        )
                    raise
                except GatewayError as e:
                    if not job.future.done():
                        job.future.set_exception(e)
                except Exception as e:
                    logger.exception(f"Unexpected faucet failure for {job.recipient}")
                    if not job.future.done():
                        job.future.set_exception(e)
                else:
                    if not job.future.done():
                        job.future.set_result(receipt)
            finally:
                self._queue.task_done()

    async def _process(self, recipient: str) -> FaucetReceipt:
        token = self.connector.stable_token()
        balance_before = await token.balance_of(recipient)

        tx_hash = await self._submit(recipient)
        receipt = await self._wait_for_receipt(tx_hash)

        block_number = receipt.get("blockNumber")
        block_number = int(block_number, 16) if block_number else None
        if int(receipt.get("status") or "0x1", 16) != 1:
            logger.error(f"Faucet mint {tx_hash} reverted in block {block_number}")
            raise TransactionReverted(tx_hash, block_number)

        try:
            balance_after = await token.balance_of(recipient)
            received = balance_after - balance_before
        except (LedgerConnectionError, LedgerTimeout, ProgramCallFailed) as e:
            logger.warning(f"Mint {tx_hash} confirmed but balance re-read failed: {e}")
            received = None

        logger.info(f"Faucet mint confirmed: {tx_hash} -> {recipient}, received {received}")

        return FaucetReceipt(
            tx_hash=tx_hash,
            block_number=block_number,
            sender=self.address,
            recipient=recipient,
            requested_amount=self.amount,
            received_amount=received,
        )

    async def _submit(self, recipient: str) -> str:
        """Sign and broadcast one mint. Only ever called from the worker."""
        nonce = await self.connector.pending_nonce(self.address)
        gas_price = await self.connector.gas_price()
        chain_id = await self.connector.chain_id()

        call = self.connector.stable_token().build_mint(recipient, self.amount)
        tx = {
            "to": call.to,
            "data": call.data,
            "value": call.value,
            "gas": self.gas_limit,
            "gasPrice": gas_price,
            "nonce": nonce,
            "chainId": chain_id,
        }
        signed = self._account.sign_transaction(tx)
        local_hash = Web3.to_hex(signed.hash)

        logger.info(f"Faucet dispatch: nonce={nonce} to={recipient} hash={local_hash}")
        self._dispatched_hash = local_hash

        try:
            return await self.connector.send_raw_transaction(signed.raw_transaction)
        except ProgramCallFailed as e:
            raise SubmissionFailed(
                f"Node rejected faucet transaction: {e.message}", {"nonce": nonce}
            ) from e
        except (LedgerConnectionError, LedgerTimeout) as e:
            if not e.details.get("request_sent", True):
                raise SubmissionFailed(
                    f"Faucet transaction not sent: {e.message}", {"nonce": nonce}
                ) from e
            raise AmbiguousSubmission(
                "Faucet transaction may have been broadcast; check its hash before retrying",
                local_hash,
                {"nonce": nonce},
            ) from e

    async def _wait_for_receipt(self, tx_hash: str) -> dict:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.confirmation_timeout

        while True:
            try:
                receipt = await self.connector.get_transaction_receipt(tx_hash)
            except (LedgerConnectionError, LedgerTimeout, ProgramCallFailed) as e:
                logger.warning(f"Receipt poll for {tx_hash} failed: {e}")
                receipt = None

            if receipt:
                return receipt

            if loop.time() >= deadline:
                raise ConfirmationTimeout(
                    f"Transaction {tx_hash} not confirmed within {self.confirmation_timeout}s",
                    tx_hash,
                )
            await asyncio.sleep(self.poll_interval)
