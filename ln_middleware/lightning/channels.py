import asyncio
from typing import Dict, List, Optional, Tuple, Union

from decouple import config as dconfig
from fastapi.exceptions import HTTPException
from loguru import logger

from ln_middleware.lightning.exceptions import (
    PendingChannelNotFoundError,
    UnknownPendingChannelTypeError,
)
from ln_middleware.lightning.impl.ln_base import LightningNodeBase
from ln_middleware.lightning.models import (
    ChannelInitiator,
    ChannelLifecycle,
    ChannelRecord,
    ForceClosingChannel,
    OnChainTransaction,
    OpenChannel,
    PendingChannel,
    PendingClosingChannel,
    PendingOpenChannel,
    WaitingCloseChannel,
)
from ln_middleware.lightning.utils import (
    alias_or_empty,
    get_txn_hash_from_channel_point,
)

PENDING_OPEN_CHANNELS = "pending_open_channels"
PENDING_CLOSING_CHANNELS = "pending_closing_channels"
PENDING_FORCE_CLOSING_CHANNELS = "pending_force_closing_channels"
WAITING_CLOSE_CHANNELS = "waiting_close_channels"
PENDING_CHANNEL_TYPES = [
    PENDING_OPEN_CHANNELS,
    PENDING_CLOSING_CHANNELS,
    PENDING_FORCE_CLOSING_CHANNELS,
    WAITING_CLOSE_CHANNELS,
]

# Number of confirmations LND waits for before a channel is usable
DEFAULT_REQUIRED_CONFIRMATIONS = 3

_initiator_texts = {
    ChannelInitiator.LOCAL: "Your node",
    ChannelInitiator.REMOTE: "Remote peer",
    ChannelInitiator.BOTH: "Both your node and remote peer",
}

PendingEntry = Union[
    WaitingCloseChannel, ForceClosingChannel, PendingOpenChannel, PendingClosingChannel
]


def _pending_record(
    lifecycle: ChannelLifecycle, entry: PendingEntry
) -> ChannelRecord:
    # pending channels have an inner channel object, hoist it into the record
    c = entry.channel
    record = ChannelRecord(
        lifecycle_type=lifecycle,
        remote_pubkey=c.remote_node_pub,
        channel_point=c.channel_point,
        capacity=c.capacity,
        local_balance=c.local_balance,
        remote_balance=c.remote_balance,
    )

    if lifecycle == ChannelLifecycle.PENDING_OPEN:
        # best guess as to whether this channel was created by us
        record.initiator = c.initiator == ChannelInitiator.LOCAL
        record.initiator_text = _initiator_texts.get(c.initiator, "Unknown")
    elif lifecycle == ChannelLifecycle.FORCE_CLOSING:
        record.closing_txid = entry.closing_txid
        record.limbo_balance = entry.limbo_balance
        record.blocks_til_maturity = entry.blocks_til_maturity
        record.maturity_height = entry.maturity_height
    elif lifecycle == ChannelLifecycle.WAITING_CLOSE:
        record.closing_txid = entry.closing_txid
        record.limbo_balance = entry.limbo_balance
    elif lifecycle == ChannelLifecycle.PENDING_CLOSING:
        record.closing_txid = entry.closing_txid

    return record


def _open_record(c: OpenChannel) -> ChannelRecord:
    return ChannelRecord(
        lifecycle_type=ChannelLifecycle.OPEN,
        remote_pubkey=c.remote_pubkey,
        channel_point=c.channel_point,
        capacity=c.capacity,
        local_balance=c.local_balance,
        remote_balance=c.remote_balance,
        active=c.active,
        chan_id=c.chan_id,
    )


class ChannelReconciler:
    """Merges open and pending channels of the node into one list of `ChannelRecord`s"""

    def __init__(
        self, node: LightningNodeBase, required_confirmations: Optional[int] = None
    ) -> None:
        if required_confirmations is None:
            required_confirmations = dconfig(
                "ln_required_confirmations",
                default=DEFAULT_REQUIRED_CONFIRMATIONS,
                cast=int,
            )

        self._node = node
        self._required_confirmations = required_confirmations

    def _remaining_confirmations(
        self,
        record: ChannelRecord,
        entry: PendingEntry,
        tx: OnChainTransaction,
    ) -> Optional[int]:
        if record.lifecycle_type == ChannelLifecycle.FORCE_CLOSING:
            # provided by LND once the closing tx has one confirmation
            return entry.blocks_til_maturity
        elif record.lifecycle_type == ChannelLifecycle.PENDING_CLOSING:
            # LND clears these after one confirmation, so they rarely show up here
            return 1
        elif record.lifecycle_type == ChannelLifecycle.PENDING_OPEN:
            return max(0, self._required_confirmations - tx.num_confirmations)

        return None

    @logger.catch(exclude=(HTTPException,), reraise=True)
    async def reconcile_channels(self) -> List[ChannelRecord]:
        logger.trace("reconcile_channels()")

        open_channels, pending = await asyncio.gather(
            self._node.list_open_channels(), self._node.get_pending_channels()
        )

        pending_records: List[Tuple[ChannelRecord, PendingEntry]] = []
        for c in pending.waiting_close_channels:
            pending_records.append(
                (_pending_record(ChannelLifecycle.WAITING_CLOSE, c), c)
            )
        for c in pending.pending_force_closing_channels:
            pending_records.append(
                (_pending_record(ChannelLifecycle.FORCE_CLOSING, c), c)
            )
        for c in pending.pending_open_channels:
            pending_records.append(
                (_pending_record(ChannelLifecycle.PENDING_OPEN, c), c)
            )
        for c in pending.pending_closing_channels:
            pending_records.append(
                (_pending_record(ChannelLifecycle.PENDING_CLOSING, c), c)
            )

        # The remaining confirmations of pending channels are only available
        # from the wallet's transaction list. This fetches the entire history.
        chain_txns: Dict[str, OnChainTransaction] = {}
        if len(pending_records) > 0:
            for tx in await self._node.get_on_chain_transactions():
                chain_txns[tx.tx_hash] = tx

        for record, entry in pending_records:
            tx = chain_txns.get(get_txn_hash_from_channel_point(record.channel_point))

            if tx is None:
                # channel is unknown to the wallet, skip the countdown
                logger.debug(
                    f"Funding tx of channel {record.channel_point} not found in wallet"
                )
                record.managed = False
                continue

            record.remaining_confirmations = self._remaining_confirmations(
                record, entry, tx
            )

        records = [r for r, _ in pending_records]
        records.extend(_open_record(c) for c in open_channels)

        aliases = await asyncio.gather(
            *[alias_or_empty(self._node.get_node_alias, r.remote_pubkey) for r in records]
        )
        for record, alias in zip(records, aliases):
            record.remote_alias = alias

        return records

    @logger.catch(exclude=(HTTPException,), reraise=True)
    async def get_channel_count(self) -> int:
        return len(await self._node.list_open_channels())

    @logger.catch(exclude=(HTTPException,), reraise=True)
    async def get_pending_channel_details(
        self, channel_type: str, pubkey: str
    ) -> PendingChannel:
        logger.trace(
            f"get_pending_channel_details(channel_type={channel_type}, pubkey={pubkey})"
        )

        if channel_type not in PENDING_CHANNEL_TYPES:
            raise UnknownPendingChannelTypeError(channel_type)

        pending = await self._node.get_pending_channels()
        for c in getattr(pending, channel_type):
            if c.channel.remote_node_pub and c.channel.remote_node_pub == pubkey:
                return c.channel

        raise PendingChannelNotFoundError(pubkey)
