import math
import time

from fastapi.exceptions import HTTPException
from loguru import logger

from ln_middleware.lightning.impl.ln_base import LightningNodeBase
from ln_middleware.lightning.models import SyncStatus

MAINNET_GENESIS_BLOCK_TIMESTAMP = 1231035305
TESTNET_GENESIS_BLOCK_TIMESTAMP = 1296717402


class SyncStatusEstimator:
    """Estimates how far the node is synced to the chain.

    LND's getinfo returns the timestamp of the latest block header it knows
    about. Using the known date of the genesis block, that timestamp is
    interpolated to roughly calculate the percentage processed.
    """

    def __init__(self, node: LightningNodeBase, clock=time.time) -> None:
        self._node = node
        self._clock = clock

    @logger.catch(exclude=(HTTPException,), reraise=True)
    async def get_sync_status(self) -> SyncStatus:
        info = await self._node.get_ln_info()

        if info.synced_to_chain:
            return SyncStatus(
                percent=1,
                known_block_count=info.block_height,
                processed_blocks=info.block_height,
            )

        genesis_timestamp = MAINNET_GENESIS_BLOCK_TIMESTAMP
        if len(info.chains) > 0 and info.chains[0].network == "testnet":
            genesis_timestamp = TESTNET_GENESIS_BLOCK_TIMESTAMP

        current_time = math.floor(self._clock())
        percent = (info.best_header_timestamp - genesis_timestamp) / (
            current_time - genesis_timestamp
        )

        # never report more than 100% or more blocks than the node knows about
        if percent < 1:
            percent = max(0.0, percent)
            processed_blocks = math.floor(percent * info.block_height)
        else:
            percent = 1
            processed_blocks = info.block_height

        logger.trace(f"get_sync_status() -> {percent:.4f}")

        return SyncStatus(
            percent=round(percent, 4),
            known_block_count=info.block_height,
            processed_blocks=processed_blocks,
        )
