from fastapi import HTTPException, status


class NodeRpcError(HTTPException):
    """Raised when a call to the node RPC service fails.

    `details` carries the message returned by the node, if any.
    """

    def __init__(self, details: str = "", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR):
        self.status_code = status_code
        self.details = details if details is not None else ""
        self.detail = self.details
        self.headers = None


class NodeNotFoundError(HTTPException):
    """Raised when a node is not found in the graph."""

    node_pub: str = ""

    def __init__(self, node_pub=""):
        self.status_code = status.HTTP_404_NOT_FOUND
        self.detail = f"Node {node_pub} not found"
        self.headers = None
        self.node_pub = node_pub


class UnknownPendingChannelTypeError(HTTPException):
    """Raised when a pending channel list with an unknown name is requested."""

    def __init__(self, channel_type: str):
        self.status_code = status.HTTP_400_BAD_REQUEST
        self.detail = f"unknown pending channel type: {channel_type}"
        self.headers = None


class PendingChannelNotFoundError(HTTPException):
    """Raised when no pending channel matches the requested peer."""

    def __init__(self, pubkey: str):
        self.status_code = status.HTTP_404_NOT_FOUND
        self.detail = f"Could not find a pending channel for pubKey: {pubkey}"
        self.headers = None


class FeeRateTooLowError(Exception):
    """The estimated fee rate is below the mempool minimum relay fee."""

    def __init__(self, sat_per_kvbyte: int, min_sat_per_kvbyte: int):
        super().__init__("FEE_RATE_TOO_LOW")
        self.sat_per_kvbyte = sat_per_kvbyte
        self.min_sat_per_kvbyte = min_sat_per_kvbyte
