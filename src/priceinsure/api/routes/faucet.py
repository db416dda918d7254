"""Test token faucet.

This is the only endpoint that signs and broadcasts. It never touches user
funds: it mints test stable tokens from the service's own key.
"""

from fastapi import APIRouter, Request

from priceinsure.errors import FaucetUnavailable
from priceinsure.units import from_fixed_point
from priceinsure.web.contracts.transactions import (
    FaucetRequest,
    FaucetResponse,
    FaucetTransaction,
)

router = APIRouter(prefix="/api/transactions", tags=["faucet"])


@router.post("/faucet", response_model=FaucetResponse)
async def request_faucet_funds(body: FaucetRequest, request: Request) -> FaucetResponse:
    """Mint test stable tokens to ``address`` and wait for confirmation.

    A 202 response with kind ``confirmation_timeout`` carries the transaction
    hash; the mint may still land, so do not request again blindly.
    """
    faucet = request.app.state.faucet
    if faucet is None:
        raise FaucetUnavailable("Faucet not configured")

    receipt = await faucet.request_funds(body.address)
    decimals = request.app.state.settings.base_asset_decimals

    amount = from_fixed_point(receipt.requested_amount, decimals)
    received = (
        None
        if receipt.received_amount is None
        else from_fixed_point(receipt.received_amount, decimals)
    )

    return FaucetResponse(
        success=True,
        amount=amount,
        amount_received=received,
        transaction=FaucetTransaction(
            hash=receipt.tx_hash,
            block_number=receipt.block_number,
            from_address=receipt.sender,
            to=receipt.recipient,
        ),
        message=f"Successfully sent {amount} test tokens to {receipt.recipient}",
    )
