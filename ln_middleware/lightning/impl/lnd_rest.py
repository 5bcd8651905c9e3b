import asyncio
import ssl
from typing import List, Optional

import aiohttp
from decouple import config as dconfig
from fastapi.exceptions import HTTPException
from loguru import logger
from starlette import status

from ln_middleware.core_utils import config_get_hex_str
from ln_middleware.lightning.exceptions import NodeNotFoundError, NodeRpcError
from ln_middleware.lightning.impl.ln_base import LightningNodeBase
from ln_middleware.lightning.models import (
    ClosedChannel,
    LnInfo,
    NodeFeeEstimate,
    OnChainTransaction,
    OpenChannel,
    PendingChannels,
    WalletBalance,
)


class LnNodeLNDRest(LightningNodeBase):
    _lnd_connect_error_debug_msg = """
Unable to connect to LND. Possible reasons:
* Node is not reachable (ports, network down, ...)
* Macaroon is not correct
* REST listener is disabled (restlisten in lnd.conf)
* TLS certificate is wrong. (settings changed, ...)
    """

    def __init__(
        self,
        rest_url: Optional[str] = None,
        macaroon: Optional[str] = None,
        cert_path: Optional[str] = None,
        timeout: Optional[int] = None,
    ) -> None:
        if rest_url is None:
            rest_url = dconfig("lnd_rest_url", default="https://127.0.0.1:8080")
        if macaroon is None:
            macaroon = dconfig("lnd_macaroon")
        if cert_path is None:
            cert_path = dconfig("lnd_cert_path", default="")
        if timeout is None:
            timeout = dconfig("lnd_rest_timeout", default=60, cast=int)

        self._rest_url = rest_url.rstrip("/")
        self._macaroon = config_get_hex_str(macaroon, name="lnd_macaroon")
        self._cert_path = cert_path
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = None
        self._lnd_connect_error_debug_msg_sent = False

    def get_implementation_name(self) -> str:
        return "LND_REST"

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is not None and not self._session.closed:
            return self._session

        if self._cert_path:
            ssl_ctx = ssl.create_default_context(cafile=self._cert_path)
            # LND certificates are issued for localhost and the configured tlsextraip
            ssl_ctx.check_hostname = False
        else:
            ssl_ctx = False

        self._session = aiohttp.ClientSession(
            headers={"Grpc-Metadata-macaroon": self._macaroon},
            connector=aiohttp.TCPConnector(ssl=ssl_ctx),
            timeout=self._timeout,
        )

        logger.debug("Created LND REST session")

        return self._session

    async def _request(self, method: str, path: str, params: dict = None) -> dict:
        url = f"{self._rest_url}{path}"
        logger.trace(f"LND REST {method} {path} params={params}")

        try:
            async with self._get_session().request(method, url, params=params) as resp:
                if resp.status == status.HTTP_200_OK:
                    try:
                        return await resp.json(content_type=None)
                    except ValueError as error:
                        logger.debug(f"LND REST {path} returned invalid JSON: {error}")
                        raise NodeRpcError(details=f"invalid JSON response: {error}")

                try:
                    body = await resp.json(content_type=None)
                except ValueError:
                    body = None

                details = resp.reason
                if isinstance(body, dict):
                    details = body.get("message", body.get("error", details))

                logger.debug(f"LND REST {path} returned {resp.status}: {details}")
                raise NodeRpcError(details=details)
        except asyncio.TimeoutError:
            logger.debug(f"LND REST {method} {path} timed out")
            raise NodeRpcError(details=f"request to {path} timed out")
        except aiohttp.ClientError as error:
            if not self._lnd_connect_error_debug_msg_sent:
                logger.debug(self._lnd_connect_error_debug_msg)
                self._lnd_connect_error_debug_msg_sent = True

            raise NodeRpcError(details=str(error))

    @logger.catch(exclude=(HTTPException,), reraise=True)
    async def list_open_channels(self) -> List[OpenChannel]:
        logger.trace("list_open_channels()")

        res = await self._request("GET", "/v1/channels")
        return [OpenChannel.from_lnd_rest(c) for c in res.get("channels", [])]

    @logger.catch(exclude=(HTTPException,), reraise=True)
    async def get_pending_channels(self) -> PendingChannels:
        logger.trace("get_pending_channels()")

        res = await self._request("GET", "/v1/channels/pending")
        return PendingChannels.from_lnd_rest(res)

    @logger.catch(exclude=(HTTPException,), reraise=True)
    async def get_closed_channels(self) -> List[ClosedChannel]:
        logger.trace("get_closed_channels()")

        res = await self._request("GET", "/v1/channels/closed")
        return [ClosedChannel.from_lnd_rest(c) for c in res.get("channels", [])]

    @logger.catch(exclude=(HTTPException,), reraise=True)
    async def get_on_chain_transactions(self) -> List[OnChainTransaction]:
        logger.trace("get_on_chain_transactions()")

        res = await self._request("GET", "/v1/transactions")
        return [
            OnChainTransaction.from_lnd_rest(t) for t in res.get("transactions", [])
        ]

    @logger.catch(exclude=(HTTPException,), reraise=True)
    async def estimate_fee(
        self, address: str, amount: int, conf_target: int
    ) -> NodeFeeEstimate:
        logger.trace(
            f"estimate_fee(address={address}, amount={amount}, conf_target={conf_target})"
        )

        # map fields are passed to the REST gateway as map_name[key]=value
        params = {
            f"AddrToAmount[{address}]": str(amount),
            "target_conf": str(conf_target),
        }
        res = await self._request("GET", "/v1/transactions/fee", params=params)
        return NodeFeeEstimate.from_lnd_rest(res)

    @logger.catch(exclude=(HTTPException,), reraise=True)
    async def get_wallet_balance(self) -> WalletBalance:
        logger.trace("get_wallet_balance()")

        res = await self._request("GET", "/v1/balance/blockchain")
        return WalletBalance.from_lnd_rest(res)

    @logger.catch(exclude=(HTTPException,), reraise=True)
    async def get_node_alias(self, pubkey: str) -> str:
        logger.trace(f"get_node_alias(pubkey={pubkey})")

        try:
            res = await self._request(
                "GET", f"/v1/graph/node/{pubkey}", params={"include_channels": "false"}
            )
        except NodeRpcError as error:
            if "unable to find node" in error.details:
                raise NodeNotFoundError(pubkey)

            raise

        node = res.get("node") or {}
        return str(node.get("alias", ""))

    @logger.catch(exclude=(HTTPException,), reraise=True)
    async def get_ln_info(self) -> LnInfo:
        logger.trace("get_ln_info()")

        res = await self._request("GET", "/v1/getinfo")
        return LnInfo.from_lnd_rest(res)

    @logger.catch(exclude=(HTTPException,), reraise=True)
    async def new_address(self) -> str:
        logger.trace("new_address()")

        res = await self._request(
            "GET", "/v1/newaddress", params={"type": "WITNESS_PUBKEY_HASH"}
        )
        return res["address"]

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
            logger.debug("Closed LND REST session")
