import itertools
import json

import aiohttp
from decouple import config
from starlette import status


class _BitcoinConfig:
    def __init__(self) -> None:
        self.network = config("network", default="mainnet")

        if self.network == "testnet":
            self.ip = config("bitcoind_ip_testnet", default="127.0.0.1")
            self.rpc_port = config("bitcoind_port_rpc_testnet", default=18332, cast=int)
        elif self.network == "regtest":
            self.ip = config("bitcoind_ip_regtest", default="127.0.0.1")
            self.rpc_port = config("bitcoind_port_rpc_regtest", default=18443, cast=int)
        else:
            self.ip = config("bitcoind_ip_mainnet", default="127.0.0.1")
            self.rpc_port = config("bitcoind_port_rpc_mainnet", default=8332, cast=int)

        self.rpc_url = f"http://{self.ip}:{self.rpc_port}"

        self.username = config("bitcoind_user", default="")
        self.pw = config("bitcoind_pw", default="")


bitcoin_config = _BitcoinConfig()


# https://github.com/python/cpython/blob/3.10/Lib/asyncio/tasks.py#L31
_generate_rpc_id = itertools.count(1).__next__


async def bitcoin_rpc_async(method: str, params: list = None) -> dict:
    """Make an RPC request to the Bitcoin daemon

    Connection parameters are read from the .env file.

    Returns a dict with either a `result` or an `error` and `status` key.
    """
    auth = aiohttp.BasicAuth(bitcoin_config.username, bitcoin_config.pw)
    headers = {"Content-type": "text/json"}
    data = json.dumps(
        {
            "jsonrpc": "2.0",
            "method": method,
            "id": _generate_rpc_id(),
            "params": params if params is not None else [],
        }
    )

    async with aiohttp.ClientSession(auth=auth, headers=headers) as session:
        async with session.post(bitcoin_config.rpc_url, data=data) as resp:
            if resp.status == status.HTTP_200_OK:
                return await resp.json()
            elif resp.status == status.HTTP_401_UNAUTHORIZED:
                return {
                    "error": "Access denied to Bitcoin Core RPC. Check if username and password is correct",
                    "status": status.HTTP_403_FORBIDDEN,
                }
            elif resp.status == status.HTTP_403_FORBIDDEN:
                return {
                    "error": "Access denied to Bitcoin Core RPC. If this is a remote node, check if 'rpcallowip' is set.",
                    "status": status.HTTP_403_FORBIDDEN,
                }
            else:
                try:
                    e = await resp.json()
                except (aiohttp.ContentTypeError, ValueError):
                    e = {}

                if e.get("error"):
                    return {
                        "error": e["error"].get("message", resp.reason),
                        "status": status.HTTP_500_INTERNAL_SERVER_ERROR,
                    }

                return {
                    "error": f"Unknown answer from Bitcoin Core. Reason: {resp.reason}",
                    "status": resp.status,
                }
