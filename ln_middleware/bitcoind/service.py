from aiohttp import client_exceptions
from fastapi.exceptions import HTTPException
from loguru import logger
from starlette import status

from ln_middleware.bitcoind.utils import bitcoin_rpc_async
from ln_middleware.lightning.impl.ln_base import FeeOracleBase


class MempoolFeeOracle(FeeOracleBase):
    """Reads the minimum relay fee from the Bitcoin Core mempool"""

    @logger.catch(exclude=(HTTPException,), reraise=True)
    async def get_mempool_min_fee(self) -> float:
        try:
            result = await bitcoin_rpc_async("getmempoolinfo")
        except client_exceptions.ClientConnectorError as e:
            logger.error(f"Unable to connect to Bitcoin Core: {e}")
            raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

        if result.get("error") is not None:
            raise HTTPException(result.get("status", 500), detail=result["error"])

        # BTC/kvB
        mempool_min_fee = result["result"]["mempoolminfee"]
        logger.trace(f"get_mempool_min_fee() -> {mempool_min_fee}")

        return mempool_min_fee
