import asyncio
import json

import aiohttp
import pytest

from ln_middleware.lightning.exceptions import NodeNotFoundError, NodeRpcError
from ln_middleware.lightning.fees import FeeEstimator
from ln_middleware.lightning.impl.lnd_rest import LnNodeLNDRest
from ln_middleware.lightning.models import ChannelInitiator, EstimationError, FeeEstimate
from tests.lightning.fakes import FakeFeeOracle


class _Gateway:
    """Records requests and replays canned responses keyed by path."""

    def __init__(self, responses: dict) -> None:
        self.responses = responses
        self.requests = []

    async def __call__(self, method: str, path: str, params: dict = None) -> dict:
        self.requests.append((method, path, params))
        res = self.responses[path]
        if isinstance(res, Exception):
            raise res

        return res


def _node(monkeypatch, responses: dict):
    node = LnNodeLNDRest(
        rest_url="https://127.0.0.1:8080/",
        macaroon="0201abcd",
        cert_path="",
        timeout=5,
    )
    gateway = _Gateway(responses)
    monkeypatch.setattr(node, "_request", gateway)

    return node, gateway


def test_empty_macaroon_is_rejected():
    with pytest.raises(ValueError):
        LnNodeLNDRest(rest_url="https://127.0.0.1:8080", macaroon="", cert_path="", timeout=5)


@pytest.mark.asyncio
async def test_estimate_fee_params(monkeypatch):
    node, gateway = _node(
        monkeypatch,
        {"/v1/transactions/fee": {"fee_sat": "705", "sat_per_vbyte": "5"}},
    )

    res = await node.estimate_fee("bc1qxyz", 50000, 6)

    assert res.fee_sat == 705
    assert res.sat_per_vbyte == 5
    assert gateway.requests == [
        (
            "GET",
            "/v1/transactions/fee",
            {"AddrToAmount[bc1qxyz]": "50000", "target_conf": "6"},
        )
    ]


@pytest.mark.asyncio
async def test_estimate_fee_error_passes_through(monkeypatch):
    node, _ = _node(
        monkeypatch,
        {"/v1/transactions/fee": NodeRpcError("transaction output is dust")},
    )

    with pytest.raises(NodeRpcError) as exc_info:
        await node.estimate_fee("bc1qxyz", 10, 6)

    assert exc_info.value.details == "transaction output is dust"


@pytest.mark.asyncio
async def test_get_node_alias(monkeypatch):
    pub = "02" + "a" * 64
    node, gateway = _node(
        monkeypatch, {f"/v1/graph/node/{pub}": {"node": {"alias": "alice"}}}
    )

    assert await node.get_node_alias(pub) == "alice"
    assert gateway.requests[0][2] == {"include_channels": "false"}


@pytest.mark.asyncio
async def test_get_node_alias_not_found(monkeypatch):
    pub = "02" + "b" * 64
    node, _ = _node(
        monkeypatch,
        {f"/v1/graph/node/{pub}": NodeRpcError("unable to find node")},
    )

    with pytest.raises(NodeNotFoundError) as exc_info:
        await node.get_node_alias(pub)

    assert exc_info.value.node_pub == pub
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_get_node_alias_other_errors_are_reraised(monkeypatch):
    pub = "02" + "c" * 64
    node, _ = _node(
        monkeypatch, {f"/v1/graph/node/{pub}": NodeRpcError("connection refused")}
    )

    with pytest.raises(NodeRpcError) as exc_info:
        await node.get_node_alias(pub)

    assert not isinstance(exc_info.value, NodeNotFoundError)


@pytest.mark.asyncio
async def test_list_channels_and_pending(monkeypatch):
    channel = {
        "remote_node_pub": "03def",
        "channel_point": "ee:1",
        "capacity": "50000",
        "local_balance": "40000",
        "remote_balance": "10000",
        "initiator": "INITIATOR_LOCAL",
    }
    node, _ = _node(
        monkeypatch,
        {
            "/v1/channels": {
                "channels": [
                    {"remote_pubkey": "02abc", "channel_point": "ff:0", "capacity": "100000"}
                ]
            },
            "/v1/channels/pending": {
                "pending_open_channels": [{"channel": channel, "commit_fee": "281"}],
                "waiting_close_channels": [
                    {"channel": channel, "limbo_balance": "40000", "closing_txid": "cc"}
                ],
            },
            "/v1/channels/closed": {},
        },
    )

    open_channels = await node.list_open_channels()
    assert len(open_channels) == 1
    assert open_channels[0].capacity == 100000

    pending = await node.get_pending_channels()
    assert pending.pending_open_channels[0].channel.initiator == ChannelInitiator.LOCAL
    assert pending.waiting_close_channels[0].closing_txid == "cc"
    assert pending.pending_force_closing_channels == []

    assert await node.get_closed_channels() == []


@pytest.mark.asyncio
async def test_transactions_balance_and_info(monkeypatch):
    node, gateway = _node(
        monkeypatch,
        {
            "/v1/transactions": {
                "transactions": [{"tx_hash": "aa", "amount": "-5000", "dest_addresses": []}]
            },
            "/v1/balance/blockchain": {
                "total_balance": "3000",
                "confirmed_balance": "2000",
                "unconfirmed_balance": "1000",
            },
            "/v1/getinfo": {"block_height": 800000, "synced_to_chain": True},
            "/v1/newaddress": {"address": "bc1qnew"},
        },
    )

    txs = await node.get_on_chain_transactions()
    assert txs[0].amount == -5000

    balance = await node.get_wallet_balance()
    assert balance.confirmed_balance == 2000

    info = await node.get_ln_info()
    assert info.synced_to_chain
    assert info.block_height == 800000

    assert await node.new_address() == "bc1qnew"
    assert gateway.requests[-1] == (
        "GET",
        "/v1/newaddress",
        {"type": "WITNESS_PUBKEY_HASH"},
    )


@pytest.mark.asyncio
async def test_close_without_session():
    node = LnNodeLNDRest(
        rest_url="https://127.0.0.1:8080", macaroon="0201abcd", cert_path="", timeout=5
    )

    assert node.get_implementation_name() == "LND_REST"
    await node.close()


class _Response:
    def __init__(self, status_code: int, body=None, reason: str = "OK") -> None:
        self.status = status_code
        self.reason = reason
        self._body = body

    async def json(self, content_type=None):
        if isinstance(self._body, Exception):
            raise self._body

        return self._body


class _Exchange:
    def __init__(self, result) -> None:
        self._result = result

    async def __aenter__(self):
        if isinstance(self._result, Exception):
            raise self._result

        return self._result

    async def __aexit__(self, *args):
        return False


class _Session:
    """Stands in for the aiohttp session, `handler` decides each reply."""

    def __init__(self, handler) -> None:
        self.handler = handler
        self.requests = []

    def request(self, method, url, params=None):
        self.requests.append((method, url, params))
        return _Exchange(self.handler(url, params))


def _node_with_session(monkeypatch, handler):
    node = LnNodeLNDRest(
        rest_url="https://127.0.0.1:8080/",
        macaroon="0201abcd",
        cert_path="",
        timeout=5,
    )
    session = _Session(handler)
    monkeypatch.setattr(node, "_get_session", lambda: session)

    return node, session


@pytest.mark.asyncio
async def test_request_returns_json(monkeypatch):
    node, session = _node_with_session(
        monkeypatch, lambda url, params: _Response(200, {"address": "bc1qnew"})
    )

    assert await node._request("GET", "/v1/newaddress") == {"address": "bc1qnew"}
    assert session.requests == [("GET", "https://127.0.0.1:8080/v1/newaddress", None)]


@pytest.mark.asyncio
async def test_request_error_status_uses_node_message(monkeypatch):
    node, _ = _node_with_session(
        monkeypatch,
        lambda url, params: _Response(
            500, {"code": 2, "message": "wallet locked"}, reason="Internal Server Error"
        ),
    )

    with pytest.raises(NodeRpcError) as exc_info:
        await node._request("GET", "/v1/channels")

    assert exc_info.value.details == "wallet locked"

    node, _ = _node_with_session(
        monkeypatch,
        lambda url, params: _Response(502, ValueError("no json"), reason="Bad Gateway"),
    )

    with pytest.raises(NodeRpcError) as exc_info:
        await node._request("GET", "/v1/channels")

    assert exc_info.value.details == "Bad Gateway"


@pytest.mark.asyncio
async def test_request_timeout_becomes_node_rpc_error(monkeypatch):
    node, _ = _node_with_session(
        monkeypatch, lambda url, params: asyncio.TimeoutError()
    )

    with pytest.raises(NodeRpcError) as exc_info:
        await node._request("GET", "/v1/transactions/fee")

    assert "timed out" in exc_info.value.details


@pytest.mark.asyncio
async def test_request_invalid_json_becomes_node_rpc_error(monkeypatch):
    node, _ = _node_with_session(
        monkeypatch,
        lambda url, params: _Response(
            200, json.JSONDecodeError("Expecting value", "<html>", 0)
        ),
    )

    with pytest.raises(NodeRpcError):
        await node._request("GET", "/v1/getinfo")


@pytest.mark.asyncio
async def test_request_connection_error_becomes_node_rpc_error(monkeypatch):
    node, _ = _node_with_session(
        monkeypatch, lambda url, params: aiohttp.ClientConnectionError("refused")
    )

    with pytest.raises(NodeRpcError) as exc_info:
        await node._request("GET", "/v1/getinfo")

    assert exc_info.value.details == "refused"


@pytest.mark.asyncio
async def test_slow_tier_does_not_fail_other_tiers(monkeypatch):
    def _handler(url, params):
        if params["target_conf"] == "24":
            return asyncio.TimeoutError()

        return _Response(200, {"fee_sat": "705", "sat_per_vbyte": "5"})

    node, _ = _node_with_session(monkeypatch, _handler)

    res = await FeeEstimator(node, FakeFeeOracle()).estimate_fee("bc1qxyz", 50000, 0, False)

    assert isinstance(res["slow"], EstimationError)
    for tier in ["fast", "normal", "cheapest"]:
        assert isinstance(res[tier], FeeEstimate)
        assert res[tier].fee_sat == 705
