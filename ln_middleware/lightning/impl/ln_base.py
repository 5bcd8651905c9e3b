from abc import abstractmethod
from typing import List

from ln_middleware.lightning.models import (
    ClosedChannel,
    LnInfo,
    NodeFeeEstimate,
    OnChainTransaction,
    OpenChannel,
    PendingChannels,
    WalletBalance,
)


class LightningNodeBase:
    """Node RPC service consumed by the lightning engines.

    Implementations raise `NodeRpcError` for any failed call.
    """

    @abstractmethod
    def get_implementation_name(self) -> str:
        raise NotImplementedError()

    @abstractmethod
    async def list_open_channels(self) -> List[OpenChannel]:
        raise NotImplementedError()

    @abstractmethod
    async def get_pending_channels(self) -> PendingChannels:
        raise NotImplementedError()

    @abstractmethod
    async def get_closed_channels(self) -> List[ClosedChannel]:
        raise NotImplementedError()

    @abstractmethod
    async def get_on_chain_transactions(self) -> List[OnChainTransaction]:
        raise NotImplementedError()

    @abstractmethod
    async def estimate_fee(
        self, address: str, amount: int, conf_target: int
    ) -> NodeFeeEstimate:
        raise NotImplementedError()

    @abstractmethod
    async def get_wallet_balance(self) -> WalletBalance:
        raise NotImplementedError()

    @abstractmethod
    async def get_node_alias(self, pubkey: str) -> str:
        """Raises `NodeNotFoundError` if the node is not in the graph."""
        raise NotImplementedError()

    @abstractmethod
    async def get_ln_info(self) -> LnInfo:
        raise NotImplementedError()

    @abstractmethod
    async def new_address(self) -> str:
        raise NotImplementedError()

    async def close(self) -> None:
        pass


class FeeOracleBase:
    @abstractmethod
    async def get_mempool_min_fee(self) -> float:
        """Minimum fee rate for transactions to be accepted, in BTC/kvB"""
        raise NotImplementedError()
