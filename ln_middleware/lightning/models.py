from enum import Enum
from typing import List, Optional

from fastapi.param_functions import Query
from pydantic import BaseModel

import ln_middleware.lightning.docs as docs


class ChannelInitiator(str, Enum):
    UNKNOWN = "unknown"
    LOCAL = "local"
    REMOTE = "remote"
    BOTH = "both"

    @classmethod
    def from_lnd(cls, i) -> "ChannelInitiator":
        # LND REST sends the enum name, gRPC the number
        if i in (1, "INITIATOR_LOCAL"):
            return ChannelInitiator.LOCAL
        elif i in (2, "INITIATOR_REMOTE"):
            return ChannelInitiator.REMOTE
        elif i in (3, "INITIATOR_BOTH"):
            return ChannelInitiator.BOTH

        return ChannelInitiator.UNKNOWN


class ChannelLifecycle(str, Enum):
    OPEN = "OPEN"
    PENDING_OPEN = "PENDING_OPEN"
    WAITING_CLOSE = "WAITING_CLOSE"
    FORCE_CLOSING = "FORCE_CLOSING"
    PENDING_CLOSING = "PENDING_CLOSING"


class TxClassification(str, Enum):
    CHANNEL_OPEN = "CHANNEL_OPEN"
    CHANNEL_CLOSE = "CHANNEL_CLOSE"
    PENDING_OPEN = "PENDING_OPEN"
    PENDING_CLOSE = "PENDING_CLOSE"
    ON_CHAIN_SENT = "ON_CHAIN_SENT"
    ON_CHAIN_RECEIVED = "ON_CHAIN_RECEIVED"
    UNKNOWN = "UNKNOWN"


class OpenChannel(BaseModel):
    remote_pubkey: str = Query(..., description="The identity pubkey of the remote node")
    channel_point: str = Query(
        ..., description="The outpoint (txid:index) of the funding transaction"
    )
    chan_id: int = Query(0, description="The unique channel ID for the channel")
    capacity: int = Query(0, description="The total amount of funds held in this channel")
    local_balance: int = Query(0, description="This node's current balance in this channel")
    remote_balance: int = Query(
        0, description="The counterparty's current balance in this channel"
    )
    commit_fee: int = Query(0, description="The amount calculated to be paid in fees")
    active: bool = Query(False, description="Whether this channel is active or not")
    initiator: bool = Query(False, description="True if we were the ones that created the channel")

    @classmethod
    def from_lnd_rest(cls, c: dict) -> "OpenChannel":
        return cls(
            remote_pubkey=c["remote_pubkey"],
            channel_point=c["channel_point"],
            chan_id=c.get("chan_id", 0),
            capacity=c.get("capacity", 0),
            local_balance=c.get("local_balance", 0),
            remote_balance=c.get("remote_balance", 0),
            commit_fee=c.get("commit_fee", 0),
            active=c.get("active", False),
            initiator=c.get("initiator", False),
        )


class PendingChannel(BaseModel):
    remote_node_pub: str = Query(..., description="The identity pubkey of the remote node")
    channel_point: str = Query(
        ..., description="The outpoint (txid:index) of the funding transaction"
    )
    capacity: int = Query(0, description="The total amount of funds held in this channel")
    local_balance: int = Query(0, description="This node's current balance in this channel")
    remote_balance: int = Query(
        0, description="The counterparty's current balance in this channel"
    )
    initiator: ChannelInitiator = Query(
        ChannelInitiator.UNKNOWN, description="The party that initiated opening the channel"
    )

    @classmethod
    def from_lnd_rest(cls, c: dict) -> "PendingChannel":
        return cls(
            remote_node_pub=c["remote_node_pub"],
            channel_point=c["channel_point"],
            capacity=c.get("capacity", 0),
            local_balance=c.get("local_balance", 0),
            remote_balance=c.get("remote_balance", 0),
            initiator=ChannelInitiator.from_lnd(c.get("initiator")),
        )


class PendingOpenChannel(BaseModel):
    channel: PendingChannel
    commit_fee: int = Query(0, description="The amount calculated to be paid in fees")
    confirmation_height: int = Query(
        0, description="The height at which the funding transaction was confirmed"
    )

    @classmethod
    def from_lnd_rest(cls, c: dict) -> "PendingOpenChannel":
        return cls(
            channel=PendingChannel.from_lnd_rest(c["channel"]),
            commit_fee=c.get("commit_fee", 0),
            confirmation_height=c.get("confirmation_height", 0),
        )


class WaitingCloseChannel(BaseModel):
    channel: PendingChannel
    limbo_balance: int = Query(
        0, description="The balance in satoshis encumbered in this channel"
    )
    closing_txid: str = Query("", description="The transaction id of the closing transaction")

    @classmethod
    def from_lnd_rest(cls, c: dict) -> "WaitingCloseChannel":
        return cls(
            channel=PendingChannel.from_lnd_rest(c["channel"]),
            limbo_balance=c.get("limbo_balance", 0),
            closing_txid=c.get("closing_txid", ""),
        )


class ForceClosingChannel(BaseModel):
    channel: PendingChannel
    closing_txid: str = Query("", description="The transaction id of the closing transaction")
    limbo_balance: int = Query(
        0, description="The balance in satoshis encumbered in this pending channel"
    )
    maturity_height: int = Query(
        0, description="The height at which funds can be swept into the wallet"
    )
    blocks_til_maturity: int = Query(
        0,
        description="Remaining number of blocks until the commitment output can be swept. Negative values indicate how many blocks have passed since maturity.",
    )
    recovered_balance: int = Query(
        0, description="The total value of funds successfully recovered from this channel"
    )

    @classmethod
    def from_lnd_rest(cls, c: dict) -> "ForceClosingChannel":
        return cls(
            channel=PendingChannel.from_lnd_rest(c["channel"]),
            closing_txid=c.get("closing_txid", ""),
            limbo_balance=c.get("limbo_balance", 0),
            maturity_height=c.get("maturity_height", 0),
            blocks_til_maturity=c.get("blocks_til_maturity", 0),
            recovered_balance=c.get("recovered_balance", 0),
        )


class PendingClosingChannel(BaseModel):
    channel: PendingChannel
    closing_txid: str = Query("", description="The transaction id of the closing transaction")

    @classmethod
    def from_lnd_rest(cls, c: dict) -> "PendingClosingChannel":
        return cls(
            channel=PendingChannel.from_lnd_rest(c["channel"]),
            closing_txid=c.get("closing_txid", ""),
        )


class PendingChannels(BaseModel):
    total_limbo_balance: int = Query(
        0, description="The balance in satoshis encumbered in pending channels"
    )
    pending_open_channels: List[PendingOpenChannel] = Query(
        [], description="Channels pending opening"
    )
    pending_closing_channels: List[PendingClosingChannel] = Query(
        [], description="Deprecated by LND. Channels pending closing."
    )
    pending_force_closing_channels: List[ForceClosingChannel] = Query(
        [], description="Channels pending force closing"
    )
    waiting_close_channels: List[WaitingCloseChannel] = Query(
        [], description="Channels waiting for closing tx to confirm"
    )

    @classmethod
    def from_lnd_rest(cls, r: dict) -> "PendingChannels":
        return cls(
            total_limbo_balance=r.get("total_limbo_balance", 0),
            pending_open_channels=[
                PendingOpenChannel.from_lnd_rest(c)
                for c in r.get("pending_open_channels", [])
            ],
            pending_closing_channels=[
                PendingClosingChannel.from_lnd_rest(c)
                for c in r.get("pending_closing_channels", [])
            ],
            pending_force_closing_channels=[
                ForceClosingChannel.from_lnd_rest(c)
                for c in r.get("pending_force_closing_channels", [])
            ],
            waiting_close_channels=[
                WaitingCloseChannel.from_lnd_rest(c)
                for c in r.get("waiting_close_channels", [])
            ],
        )


class ClosedChannel(BaseModel):
    channel_point: str = Query(
        ..., description="The outpoint (txid:index) of the funding transaction"
    )
    remote_pubkey: str = Query("", description="Public key of the remote peer")
    capacity: int = Query(0, description="Total capacity of the channel")
    closing_tx_hash: str = Query(
        "", description="The txid of the transaction which ultimately closed this channel"
    )
    settled_balance: int = Query(
        0, description="Settled balance at the time of channel closure"
    )
    close_height: int = Query(0, description="Height at which the funding transaction was spent")

    @classmethod
    def from_lnd_rest(cls, c: dict) -> "ClosedChannel":
        return cls(
            channel_point=c["channel_point"],
            remote_pubkey=c.get("remote_pubkey", ""),
            capacity=c.get("capacity", 0),
            closing_tx_hash=c.get("closing_tx_hash", ""),
            settled_balance=c.get("settled_balance", 0),
            close_height=c.get("close_height", 0),
        )


class OnChainTransaction(BaseModel):
    tx_hash: str = Query(..., description="The transaction hash")
    amount: int = Query(
        ..., description="The transaction amount, denominated in satoshis"
    )
    num_confirmations: int = Query(0, description="The number of confirmations")
    block_height: int = Query(
        0, description="The height of the block this transaction was included in"
    )
    time_stamp: int = Query(0, description="Timestamp of this transaction")
    total_fees: int = Query(0, description="Fees paid for this transaction")
    dest_addresses: List[str] = Query(
        [], description="Addresses that received funds for this transaction"
    )
    label: str = Query(
        "", description="An optional label that was set on transaction broadcast."
    )

    @classmethod
    def from_lnd_rest(cls, t: dict) -> "OnChainTransaction":
        return cls(
            tx_hash=t["tx_hash"],
            amount=t.get("amount", 0),
            num_confirmations=t.get("num_confirmations", 0),
            block_height=t.get("block_height", 0),
            time_stamp=t.get("time_stamp", 0),
            total_fees=t.get("total_fees", 0),
            dest_addresses=[a for a in t.get("dest_addresses", [])],
            label=t.get("label", ""),
        )


class TransactionRecord(OnChainTransaction):
    classification: TxClassification = Query(
        ..., description=docs.tx_classification_desc
    )

    @classmethod
    def from_transaction(
        cls, tx: OnChainTransaction, classification: TxClassification
    ) -> "TransactionRecord":
        return cls(**tx.model_dump(), classification=classification)


class NodeFeeEstimate(BaseModel):
    fee_sat: int = Query(..., description="The total fee in satoshis")
    sat_per_vbyte: int = Query(
        ..., description="The fee rate in satoshi/vbyte used for the estimate"
    )

    @classmethod
    def from_lnd_rest(cls, r: dict) -> "NodeFeeEstimate":
        return cls(
            fee_sat=r.get("fee_sat", 0),
            sat_per_vbyte=r.get("sat_per_vbyte", 0),
        )


class WalletBalance(BaseModel):
    confirmed_balance: int = Query(
        0, description="The confirmed on-chain balance in satoshis"
    )
    unconfirmed_balance: int = Query(
        0, description="The unconfirmed on-chain balance in satoshis"
    )
    total_balance: int = Query(
        0, description="Confirmed and unconfirmed on-chain balance combined"
    )

    @classmethod
    def from_lnd_rest(cls, r: dict) -> "WalletBalance":
        return cls(
            confirmed_balance=r.get("confirmed_balance", 0),
            unconfirmed_balance=r.get("unconfirmed_balance", 0),
            total_balance=r.get("total_balance", 0),
        )


class Chain(BaseModel):
    chain: str = Query(
        ..., description="The blockchain the node is on (eg bitcoin, litecoin)"
    )
    network: str = Query(
        ..., description="The network the node is on (eg regtest, testnet, mainnet)"
    )


class LnInfo(BaseModel):
    identity_pubkey: str = Query("", description="The identity pubkey of the current node.")
    alias: str = Query("", description="The alias of the node.")
    block_height: int = Query(
        ..., description="The node's current view of the height of the best block."
    )
    best_header_timestamp: int = Query(
        0, description="Timestamp of the block best known to the wallet."
    )
    synced_to_chain: bool = Query(
        False, description="Whether the wallet's view is synced to the main chain."
    )
    chains: List[Chain] = Query(
        [], description="A list of active chains the node is connected to"
    )
    uris: List[str] = Query([], description="The URIs of the current node.")

    @classmethod
    def from_lnd_rest(cls, i: dict) -> "LnInfo":
        return cls(
            identity_pubkey=i.get("identity_pubkey", ""),
            alias=i.get("alias", ""),
            block_height=i.get("block_height", 0),
            best_header_timestamp=i.get("best_header_timestamp", 0),
            synced_to_chain=i.get("synced_to_chain", False),
            chains=[
                Chain(chain=c.get("chain", ""), network=c.get("network", ""))
                for c in i.get("chains", [])
            ],
            uris=[u for u in i.get("uris", [])],
        )


class ChannelRecord(BaseModel):
    lifecycle_type: ChannelLifecycle = Query(..., description=docs.lifecycle_type_desc)
    remote_pubkey: str = Query(..., description="The identity pubkey of the remote node")
    channel_point: str = Query(
        ..., description="The outpoint (txid:index) of the funding transaction"
    )
    capacity: int = Query(..., description="The total amount of funds held in this channel")
    local_balance: int = Query(..., description="This node's current balance in this channel")
    remote_balance: int = Query(
        ..., description="The counterparty's current balance in this channel"
    )
    remote_alias: str = Query("", description="Alias of the remote node, if known")
    managed: bool = Query(
        True,
        description="False if the funding or closing transaction of a pending channel is not known to the wallet.",
    )
    remaining_confirmations: Optional[int] = Query(
        None, description=docs.remaining_confirmations_desc
    )

    # PENDING_OPEN
    initiator: Optional[bool] = Query(
        None, description="Deprecated. True if this node opened the channel."
    )
    initiator_text: Optional[str] = Query(
        None, description="Deprecated. Human readable description of the channel opener."
    )

    # closing variants
    closing_txid: Optional[str] = Query(
        None, description="The transaction id of the closing transaction"
    )
    limbo_balance: Optional[int] = Query(
        None, description="The balance in satoshis encumbered in this channel"
    )
    blocks_til_maturity: Optional[int] = Query(
        None, description="Force closing only. Blocks until funds can be swept."
    )
    maturity_height: Optional[int] = Query(
        None, description="Force closing only. Height at which funds can be swept."
    )

    # OPEN
    active: Optional[bool] = Query(None, description="Whether this channel is active or not")
    chan_id: Optional[int] = Query(None, description="The unique channel ID for the channel")


class EstimationErrorCode(str, Enum):
    FEE_RATE_TOO_LOW = "FEE_RATE_TOO_LOW"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    INVALID_ADDRESS = "INVALID_ADDRESS"
    OUTPUT_IS_DUST = "OUTPUT_IS_DUST"


class EstimationError(BaseModel):
    code: EstimationErrorCode = Query(..., description="Machine readable error code")
    text: str = Query(..., description="Human readable error description")


FEE_RATE_TOO_LOW_ERROR = EstimationError(
    code=EstimationErrorCode.FEE_RATE_TOO_LOW,
    text="Mempool reject low fee transaction. Increase fee rate.",
)

INSUFFICIENT_FUNDS_ERROR = EstimationError(
    code=EstimationErrorCode.INSUFFICIENT_FUNDS,
    text="Lower amount or increase confirmation target.",
)

INVALID_ADDRESS_ERROR = EstimationError(
    code=EstimationErrorCode.INVALID_ADDRESS,
    text="Please validate the Bitcoin address is correct.",
)

OUTPUT_IS_DUST_ERROR = EstimationError(
    code=EstimationErrorCode.OUTPUT_IS_DUST,
    text="Transaction output is dust.",
)


class FeeEstimate(BaseModel):
    amount_sat: int = Query(..., description="The amount the fee was estimated for")
    fee_sat: int = Query(..., description="The total fee in satoshis")
    sat_per_vbyte: int = Query(
        ..., description="The fee rate in satoshi/vbyte used for the estimate"
    )
    conf_target: int = Query(
        ..., description="The confirmation target in blocks used for the estimate"
    )
    sweep_amount: Optional[int] = Query(None, description=docs.sweep_amount_desc)

    @classmethod
    def from_node_estimate(
        cls, e: NodeFeeEstimate, amount: int, conf_target: int
    ) -> "FeeEstimate":
        return cls(
            amount_sat=amount,
            fee_sat=e.fee_sat,
            sat_per_vbyte=e.sat_per_vbyte,
            conf_target=conf_target,
        )


class SyncStatus(BaseModel):
    percent: float = Query(
        ..., ge=0, le=1, description="Rough estimate of the chain sync progress (0..1)"
    )
    known_block_count: int = Query(..., description="The node's current block height")
    processed_blocks: int = Query(
        ..., description="Estimated number of blocks processed by the node"
    )
