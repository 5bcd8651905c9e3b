from typing import Dict, List, Union

from fastapi import APIRouter, Query, Request
from fastapi.params import Depends

from ln_middleware.lightning.docs import (
    estimate_channel_open_fee_desc,
    estimate_fee_desc,
    sync_status_desc,
    tx_classification_desc,
)
from ln_middleware.lightning.models import (
    ChannelRecord,
    EstimationError,
    FeeEstimate,
    PendingChannel,
    SyncStatus,
    TransactionRecord,
    WalletBalance,
)
from ln_middleware.lightning.service import LightningService

_PREFIX = "lnd"

router = APIRouter(prefix=f"/v1/{_PREFIX}", tags=["Lightning"])

FeeEstimateResponse = Union[
    FeeEstimate, EstimationError, Dict[str, Union[FeeEstimate, EstimationError]]
]


def get_lightning_service(request: Request) -> LightningService:
    return request.app.state.lightning_service


@router.get(
    "/channel",
    name=f"{_PREFIX}.channel",
    summary="Lists all open and pending channels of the node.",
    description="Order: waiting close, force closing, pending open, pending closing, open.",
    response_model=List[ChannelRecord],
)
async def channel_path(svc: LightningService = Depends(get_lightning_service)):
    return await svc.reconcile_channels()


@router.get(
    "/channel/count",
    name=f"{_PREFIX}.channel-count",
    summary="Returns the number of open channels.",
    response_model=Dict[str, int],
)
async def channel_count_path(svc: LightningService = Depends(get_lightning_service)):
    return {"count": await svc.get_channel_count()}


@router.get(
    "/channel/pending",
    name=f"{_PREFIX}.channel-pending",
    summary="Returns the details of a pending channel with the given peer.",
    response_model=PendingChannel,
)
async def channel_pending_path(
    channel_type: str = Query(
        ...,
        alias="type",
        description="One of pending_open_channels, pending_closing_channels, pending_force_closing_channels or waiting_close_channels",
    ),
    pubkey: str = Query(..., alias="pubKey", description="Public key of the peer"),
    svc: LightningService = Depends(get_lightning_service),
):
    return await svc.get_pending_channel_details(channel_type, pubkey)


@router.get(
    "/channel/estimateFee",
    name=f"{_PREFIX}.channel-estimate-fee",
    summary="Estimates the on-chain fee of opening a channel.",
    description=estimate_channel_open_fee_desc,
    response_model=FeeEstimateResponse,
)
async def channel_estimate_fee_path(
    amount: int = Query(0, alias="amt", ge=0, description="Channel size in satoshis"),
    conf_target: int = Query(
        0, alias="confTarget", ge=0, description="Confirmation target in blocks"
    ),
    sweep: bool = Query(False, description="Use the whole confirmed wallet balance"),
    svc: LightningService = Depends(get_lightning_service),
):
    return await svc.estimate_channel_open_fee(amount, conf_target, sweep)


@router.get(
    "/transaction",
    name=f"{_PREFIX}.transaction",
    summary="Lists all on-chain transactions of the wallet, most recent first.",
    description=tx_classification_desc,
    response_model=List[TransactionRecord],
)
async def transaction_path(svc: LightningService = Depends(get_lightning_service)):
    return await svc.list_transactions()


@router.get(
    "/transaction/estimateFee",
    name=f"{_PREFIX}.transaction-estimate-fee",
    summary="Estimates the fee of an on-chain transaction.",
    description=estimate_fee_desc,
    response_model=FeeEstimateResponse,
)
async def transaction_estimate_fee_path(
    address: str = Query(..., description="Destination address"),
    amount: int = Query(0, alias="amt", ge=0, description="Amount in satoshis"),
    conf_target: int = Query(
        0, alias="confTarget", ge=0, description="Confirmation target in blocks"
    ),
    sweep: bool = Query(False, description="Send the whole confirmed wallet balance"),
    svc: LightningService = Depends(get_lightning_service),
):
    return await svc.estimate_fee(address, amount, conf_target, sweep)


@router.get(
    "/info/sync",
    name=f"{_PREFIX}.info-sync",
    summary="Returns the chain sync progress of the node.",
    description=sync_status_desc,
    response_model=SyncStatus,
)
async def sync_status_path(svc: LightningService = Depends(get_lightning_service)):
    return await svc.get_sync_status()


@router.get(
    "/wallet/balance",
    name=f"{_PREFIX}.wallet-balance",
    summary="Returns the on-chain wallet balance.",
    response_model=WalletBalance,
)
async def wallet_balance_path(svc: LightningService = Depends(get_lightning_service)):
    return await svc.get_wallet_balance()
