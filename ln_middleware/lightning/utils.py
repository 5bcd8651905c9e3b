from loguru import logger

from ln_middleware.lightning.exceptions import NodeNotFoundError, NodeRpcError


async def alias_or_empty(func, node_pub: str) -> str:
    logger.debug(f"alias_or_empty({node_pub})")

    if not node_pub:
        logger.debug("alias_or_empty('') -> ''")

        return ""

    try:
        res = await func(node_pub)
        logger.debug(f"alias_or_empty -> {res}")

        return res if res else ""
    except NodeNotFoundError:
        logger.debug(f"NodeNotFoundError for node_pub={node_pub}")

        return ""
    except NodeRpcError as error:
        logger.debug(f"Alias lookup for node_pub={node_pub} failed: {error.details}")

        return ""


def get_txn_hash_from_channel_point(channel_point: str) -> str:
    return channel_point.split(":")[0]


def btc_to_sat(value) -> int:
    return round(value * 100000000)
