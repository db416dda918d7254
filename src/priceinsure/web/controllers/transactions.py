"""Transaction API endpoints for non-custodial operations.

These endpoints prepare unsigned transactions for client-side signing.
NO signing or broadcasting happens here; the response never contains a
transaction hash.
"""

from fastapi import APIRouter, Depends

from priceinsure.config import Settings
from priceinsure.web.contracts.transactions import (
    CancelOrderRequest,
    CollateralRequest,
    CreateInsuranceOrderRequest,
    CreateOrderRequest,
    FillOrderRequest,
    FinalizeRequest,
    IssueInsuranceRequest,
    PreparedTransactionResponse,
    RedeemInsuranceRequest,
    SettleInsuranceRequest,
)
from priceinsure.web.dependencies import get_app_settings, get_transaction_builder
from priceinsure.web.services.transaction_builder import TransactionBuilder, TransactionPlan

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


def _respond(plan: TransactionPlan, settings: Settings) -> PreparedTransactionResponse:
    return PreparedTransactionResponse.from_plan(plan, settings.base_asset_decimals)


@router.post("/issue-insurance", response_model=PreparedTransactionResponse)
async def issue_insurance(
    request: IssueInsuranceRequest,
    builder: TransactionBuilder = Depends(get_transaction_builder),
    settings: Settings = Depends(get_app_settings),
) -> PreparedTransactionResponse:
    """Prepare issuance of a collateral/claim token pair.

    The client must sign and submit the base asset approval in
    ``preparatory`` before the issue transaction.
    """
    plan = await builder.build_issue_insurance(
        strike_price=request.strike_price,
        amount=request.amount,
        collateral_token_recipient=request.collateral_token_recipient,
        claim_token_recipient=request.claim_token_recipient,
    )
    return _respond(plan, settings)


@router.post("/create-claim-token-order", response_model=PreparedTransactionResponse)
async def create_claim_token_order(
    request: CreateOrderRequest,
    builder: TransactionBuilder = Depends(get_transaction_builder),
    settings: Settings = Depends(get_app_settings),
) -> PreparedTransactionResponse:
    """Prepare a sell order for claim tokens."""
    plan = await builder.build_create_claim_token_order(
        strike_price=request.strike_price,
        amount=request.amount,
        price=request.price,
    )
    return _respond(plan, settings)


@router.post("/create-insurance-order", response_model=PreparedTransactionResponse)
async def create_insurance_order(
    request: CreateInsuranceOrderRequest,
    builder: TransactionBuilder = Depends(get_transaction_builder),
    settings: Settings = Depends(get_app_settings),
) -> PreparedTransactionResponse:
    """Prepare an insurance order backed by deposited collateral."""
    plan = await builder.build_create_insurance_order(
        strike_price=request.strike_price,
        amount=request.amount,
        price=request.price,
        maker=request.maker,
    )
    return _respond(plan, settings)


@router.post("/fill-order", response_model=PreparedTransactionResponse)
async def fill_order(
    request: FillOrderRequest,
    builder: TransactionBuilder = Depends(get_transaction_builder),
    settings: Settings = Depends(get_app_settings),
) -> PreparedTransactionResponse:
    plan = await builder.build_fill_order(order_id=request.order_id, amount=request.amount)
    return _respond(plan, settings)


@router.post("/cancel-order", response_model=PreparedTransactionResponse)
async def cancel_order(
    request: CancelOrderRequest,
    builder: TransactionBuilder = Depends(get_transaction_builder),
    settings: Settings = Depends(get_app_settings),
) -> PreparedTransactionResponse:
    plan = await builder.build_cancel_order(request.order_id)
    return _respond(plan, settings)


@router.post("/deposit-collateral", response_model=PreparedTransactionResponse)
async def deposit_collateral(
    request: CollateralRequest,
    builder: TransactionBuilder = Depends(get_transaction_builder),
    settings: Settings = Depends(get_app_settings),
) -> PreparedTransactionResponse:
    plan = await builder.build_deposit_collateral(request.amount)
    return _respond(plan, settings)


@router.post("/withdraw-collateral", response_model=PreparedTransactionResponse)
async def withdraw_collateral(
    request: CollateralRequest,
    builder: TransactionBuilder = Depends(get_transaction_builder),
    settings: Settings = Depends(get_app_settings),
) -> PreparedTransactionResponse:
    plan = await builder.build_withdraw_collateral(request.amount)
    return _respond(plan, settings)


@router.post("/redeem-insurance", response_model=PreparedTransactionResponse)
async def redeem_insurance(
    request: RedeemInsuranceRequest,
    builder: TransactionBuilder = Depends(get_transaction_builder),
    settings: Settings = Depends(get_app_settings),
) -> PreparedTransactionResponse:
    plan = await builder.build_redeem_insurance(request.strike_price, request.amount)
    return _respond(plan, settings)


@router.post("/settle-insurance", response_model=PreparedTransactionResponse)
async def settle_insurance(
    request: SettleInsuranceRequest,
    builder: TransactionBuilder = Depends(get_transaction_builder),
    settings: Settings = Depends(get_app_settings),
) -> PreparedTransactionResponse:
    """Prepare settlement of the caller's positions after finalization."""
    plan = await builder.build_settle_insurance(request.strike_prices)
    return _respond(plan, settings)


@router.post("/finalize", response_model=PreparedTransactionResponse)
async def finalize(
    request: FinalizeRequest,
    builder: TransactionBuilder = Depends(get_transaction_builder),
    settings: Settings = Depends(get_app_settings),
) -> PreparedTransactionResponse:
    plan = await builder.build_finalize(request.final_price)
    return _respond(plan, settings)
