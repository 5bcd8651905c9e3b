import pytest

from ln_middleware.lightning.exceptions import NodeNotFoundError
from ln_middleware.lightning.utils import (
    alias_or_empty,
    btc_to_sat,
    get_txn_hash_from_channel_point,
)
from tests.lightning.fakes import rpc_error


@pytest.mark.asyncio
async def test_alias_or_empty():
    async def _alias(pub):
        return {"alice": "Alice", "nameless": ""}[pub]

    async def _not_found(pub):
        raise NodeNotFoundError(pub)

    async def _broken(pub):
        raise rpc_error("connection refused")

    assert await alias_or_empty(_alias, "alice") == "Alice"
    assert await alias_or_empty(_alias, "nameless") == ""
    assert await alias_or_empty(_alias, "") == ""
    assert await alias_or_empty(_not_found, "bob") == ""
    assert await alias_or_empty(_broken, "bob") == ""


@pytest.mark.asyncio
async def test_alias_or_empty_reraises_unexpected_errors():
    async def _bug(pub):
        raise KeyError(pub)

    with pytest.raises(KeyError):
        await alias_or_empty(_bug, "alice")


def test_get_txn_hash_from_channel_point():
    txid = "a" * 64
    assert get_txn_hash_from_channel_point(f"{txid}:1") == txid
    assert get_txn_hash_from_channel_point(txid) == txid


def test_btc_to_sat():
    assert btc_to_sat(0.00001) == 1000
    assert btc_to_sat(0.00001012) == 1012
    assert btc_to_sat(1) == 100000000
    assert btc_to_sat(0) == 0
