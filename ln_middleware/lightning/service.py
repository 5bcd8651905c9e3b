from typing import List, Optional, Union

from fastapi.exceptions import HTTPException
from loguru import logger

from ln_middleware.lightning.channels import ChannelReconciler
from ln_middleware.lightning.fees import FeeEstimateResult, FeeEstimator, TieredFeeEstimate
from ln_middleware.lightning.impl.ln_base import FeeOracleBase, LightningNodeBase
from ln_middleware.lightning.models import (
    ChannelRecord,
    PendingChannel,
    SyncStatus,
    TransactionRecord,
    WalletBalance,
)
from ln_middleware.lightning.sync import SyncStatusEstimator
from ln_middleware.lightning.transactions import TransactionClassifier


class LightningService:
    """Entry point for the REST layer.

    Every call builds its result from fresh node responses, nothing is cached
    between calls.
    """

    def __init__(
        self,
        node: LightningNodeBase,
        fee_oracle: FeeOracleBase,
        required_confirmations: Optional[int] = None,
    ) -> None:
        self.node = node
        self._channels = ChannelReconciler(node, required_confirmations)
        self._transactions = TransactionClassifier(node)
        self._fees = FeeEstimator(node, fee_oracle)
        self._sync = SyncStatusEstimator(node)

    async def reconcile_channels(self) -> List[ChannelRecord]:
        return await self._channels.reconcile_channels()

    async def get_channel_count(self) -> int:
        return await self._channels.get_channel_count()

    async def get_pending_channel_details(
        self, channel_type: str, pubkey: str
    ) -> PendingChannel:
        return await self._channels.get_pending_channel_details(channel_type, pubkey)

    async def list_transactions(self) -> List[TransactionRecord]:
        return await self._transactions.list_transactions()

    async def estimate_fee(
        self, address: str, amount: int, conf_target: int, sweep: bool
    ) -> Union[FeeEstimateResult, TieredFeeEstimate]:
        return await self._fees.estimate_fee(address, amount, conf_target, sweep)

    async def estimate_channel_open_fee(
        self, amount: int, conf_target: int, sweep: bool
    ) -> Union[FeeEstimateResult, TieredFeeEstimate]:
        return await self._fees.estimate_channel_open_fee(amount, conf_target, sweep)

    async def get_sync_status(self) -> SyncStatus:
        return await self._sync.get_sync_status()

    @logger.catch(exclude=(HTTPException,), reraise=True)
    async def get_wallet_balance(self) -> WalletBalance:
        return await self.node.get_wallet_balance()

    async def close(self) -> None:
        await self.node.close()
