import asyncio
from typing import Dict, Union

from fastapi.exceptions import HTTPException
from loguru import logger

from ln_middleware.lightning.exceptions import FeeRateTooLowError, NodeRpcError
from ln_middleware.lightning.impl.ln_base import FeeOracleBase, LightningNodeBase
from ln_middleware.lightning.models import (
    FEE_RATE_TOO_LOW_ERROR,
    INSUFFICIENT_FUNDS_ERROR,
    INVALID_ADDRESS_ERROR,
    OUTPUT_IS_DUST_ERROR,
    EstimationError,
    FeeEstimate,
)
from ln_middleware.lightning.utils import btc_to_sat

FAST_BLOCK_CONF_TARGET = 2
NORMAL_BLOCK_CONF_TARGET = 6
SLOW_BLOCK_CONF_TARGET = 24
CHEAPEST_BLOCK_CONF_TARGET = 144

FEE_TIERS = {
    "fast": FAST_BLOCK_CONF_TARGET,
    "normal": NORMAL_BLOCK_CONF_TARGET,
    "slow": SLOW_BLOCK_CONF_TARGET,
    "cheapest": CHEAPEST_BLOCK_CONF_TARGET,
}

# vbytes a channel funding tx needs on top of the single output estimate
OPEN_CHANNEL_EXTRA_WEIGHT = 10

FeeEstimateResult = Union[FeeEstimate, EstimationError]
TieredFeeEstimate = Dict[str, FeeEstimateResult]

# Failures which are translated into an EstimationError
_estimation_failures = (NodeRpcError, FeeRateTooLowError)


def handle_estimate_fee_error(error: Exception) -> EstimationError:
    if isinstance(error, FeeRateTooLowError):
        return FEE_RATE_TOO_LOW_ERROR.model_copy()

    details = getattr(error, "details", None) or str(error)
    if "transaction output is dust" in details:
        return OUTPUT_IS_DUST_ERROR.model_copy()
    if "insufficient funds available to construct transaction" in details:
        return INSUFFICIENT_FUNDS_ERROR.model_copy()

    logger.debug(f"Mapping unknown fee estimation error to INVALID_ADDRESS: {details}")
    return INVALID_ADDRESS_ERROR.model_copy()


def check_fee_rate(estimate: FeeEstimate, min_relay_fee_sat_per_kvb: int) -> None:
    sat_per_kvbyte = estimate.sat_per_vbyte * 1000
    if sat_per_kvbyte < min_relay_fee_sat_per_kvb:
        raise FeeRateTooLowError(sat_per_kvbyte, min_relay_fee_sat_per_kvb)


class FeeEstimator:
    """Estimates on-chain fees on top of the node's single amount fee estimator.

    The node can only estimate the fee for a given amount. Sweeping searches
    for the largest amount that can be sent from the confirmed balance.
    """

    def __init__(self, node: LightningNodeBase, fee_oracle: FeeOracleBase) -> None:
        self._node = node
        self._fee_oracle = fee_oracle

    async def _estimate_fixed(
        self, address: str, amount: int, conf_target: int, min_fee: int
    ) -> FeeEstimate:
        res = await self._node.estimate_fee(address, amount, conf_target)
        estimate = FeeEstimate.from_node_estimate(res, amount, conf_target)
        check_fee_rate(estimate, min_fee)

        return estimate

    async def _estimate_sweep(
        self, address: str, balance: int, conf_target: int, min_fee: int
    ) -> FeeEstimateResult:
        """Binary search for the largest amount the node can estimate a fee for.

        Feasibility is assumed to be monotonic. The search is done once the
        interval collapsed, i.e. `low == mid`.
        """
        low, high = 0, balance

        while True:
            mid = low + (high - low) // 2

            try:
                res = await self._node.estimate_fee(address, mid, conf_target)
            except NodeRpcError as error:
                if low == mid:
                    return handle_estimate_fee_error(error)

                high = mid
                continue

            if low == mid:
                estimate = FeeEstimate.from_node_estimate(res, mid, conf_target)
                estimate.sweep_amount = mid

                try:
                    check_fee_rate(estimate, min_fee)
                except FeeRateTooLowError as error:
                    return handle_estimate_fee_error(error)

                return estimate

            low = mid

    async def _estimate_tiers(self, estimate_func) -> TieredFeeEstimate:
        async def _isolated(conf_target: int) -> FeeEstimateResult:
            try:
                return await estimate_func(conf_target)
            except _estimation_failures as error:
                logger.debug(f"Fee estimation for conf_target={conf_target} failed")
                return handle_estimate_fee_error(error)

        results = await asyncio.gather(*[_isolated(t) for t in FEE_TIERS.values()])

        return dict(zip(FEE_TIERS.keys(), results))

    @logger.catch(exclude=(HTTPException,), reraise=True)
    async def estimate_fee(
        self, address: str, amount: int, conf_target: int, sweep: bool
    ) -> Union[FeeEstimateResult, TieredFeeEstimate]:
        logger.trace(
            f"estimate_fee(address={address}, amount={amount}, conf_target={conf_target}, sweep={sweep})"
        )

        min_fee = btc_to_sat(await self._fee_oracle.get_mempool_min_fee())

        if sweep:
            balance = (await self._node.get_wallet_balance()).confirmed_balance

            if conf_target == 0:
                return await self._estimate_tiers(
                    lambda t: self._estimate_sweep(address, balance, t, min_fee)
                )

            return await self._estimate_sweep(address, balance, conf_target, min_fee)

        if conf_target == 0:
            return await self._estimate_tiers(
                lambda t: self._estimate_fixed(address, amount, t, min_fee)
            )

        try:
            return await self._estimate_fixed(address, amount, conf_target, min_fee)
        except _estimation_failures as error:
            return handle_estimate_fee_error(error)

    @logger.catch(exclude=(HTTPException,), reraise=True)
    async def estimate_channel_open_fee(
        self, amount: int, conf_target: int, sweep: bool
    ) -> Union[FeeEstimateResult, TieredFeeEstimate]:
        """Estimates the cost of opening a channel.

        Uses a fresh wallet address as the estimate target. The real funding
        transaction is slightly larger than the single output estimate, so
        when estimating all tiers without sweeping, 10 sat per vbyte of the
        tier's fee rate are added on top.
        """
        address = await self._node.new_address()
        estimate = await self.estimate_fee(address, amount, conf_target, sweep)

        if conf_target == 0 and not sweep:
            for tier in estimate.values():
                if isinstance(tier, FeeEstimate):
                    tier.fee_sat += OPEN_CHANNEL_EXTRA_WEIGHT * tier.sat_per_vbyte

        return estimate
