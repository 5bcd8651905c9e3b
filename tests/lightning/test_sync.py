import pytest

from ln_middleware.lightning.exceptions import NodeRpcError
from ln_middleware.lightning.models import Chain, LnInfo
from ln_middleware.lightning.sync import (
    MAINNET_GENESIS_BLOCK_TIMESTAMP,
    TESTNET_GENESIS_BLOCK_TIMESTAMP,
    SyncStatusEstimator,
)
from tests.lightning.fakes import FakeNode, rpc_error


def _info(best_header_timestamp, synced=False, network="mainnet", height=800000):
    return LnInfo(
        block_height=height,
        best_header_timestamp=best_header_timestamp,
        synced_to_chain=synced,
        chains=[Chain(chain="bitcoin", network=network)],
    )


@pytest.mark.asyncio
async def test_synced_node():
    node = FakeNode(info=_info(0, synced=True, height=812345))
    res = await SyncStatusEstimator(node).get_sync_status()

    assert res.percent == 1
    assert res.known_block_count == 812345
    assert res.processed_blocks == 812345


@pytest.mark.asyncio
async def test_interpolates_from_mainnet_genesis():
    t0 = MAINNET_GENESIS_BLOCK_TIMESTAMP
    node = FakeNode(info=_info(t0 + 100_000_000))
    estimator = SyncStatusEstimator(node, clock=lambda: t0 + 400_000_000 + 0.7)

    res = await estimator.get_sync_status()

    assert res.percent == 0.25
    assert f"{res.percent:.4f}" == "0.2500"
    assert res.known_block_count == 800000
    assert res.processed_blocks == 200000


@pytest.mark.asyncio
async def test_testnet_uses_testnet_genesis():
    t0 = TESTNET_GENESIS_BLOCK_TIMESTAMP
    node = FakeNode(info=_info(t0 + 50_000_000, network="testnet", height=2_000_000))
    estimator = SyncStatusEstimator(node, clock=lambda: t0 + 100_000_000)

    res = await estimator.get_sync_status()

    assert res.percent == 0.5
    assert res.processed_blocks == 1_000_000


@pytest.mark.asyncio
async def test_percent_is_rounded():
    t0 = MAINNET_GENESIS_BLOCK_TIMESTAMP
    node = FakeNode(info=_info(t0 + 1, height=4))
    estimator = SyncStatusEstimator(node, clock=lambda: t0 + 3)

    res = await estimator.get_sync_status()

    assert res.percent == 0.3333
    assert res.processed_blocks == 1


@pytest.mark.asyncio
async def test_percent_is_clamped():
    t0 = MAINNET_GENESIS_BLOCK_TIMESTAMP
    now = t0 + 400_000_000

    # header from the future
    node = FakeNode(info=_info(now + 600))
    res = await SyncStatusEstimator(node, clock=lambda: now).get_sync_status()
    assert res.percent == 1
    assert res.processed_blocks == 800000

    # header before genesis
    node = FakeNode(info=_info(t0 - 600))
    res = await SyncStatusEstimator(node, clock=lambda: now).get_sync_status()
    assert res.percent == 0
    assert res.processed_blocks == 0


@pytest.mark.asyncio
async def test_info_failure_propagates():
    node = FakeNode(failures={"get_ln_info": rpc_error("unavailable")})

    with pytest.raises(NodeRpcError):
        await SyncStatusEstimator(node).get_sync_status()
