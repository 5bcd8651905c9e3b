import asyncio
from typing import FrozenSet, List, NamedTuple

from fastapi.exceptions import HTTPException
from loguru import logger

from ln_middleware.lightning.impl.ln_base import LightningNodeBase
from ln_middleware.lightning.models import (
    ClosedChannel,
    OnChainTransaction,
    OpenChannel,
    PendingChannels,
    TransactionRecord,
    TxClassification,
)
from ln_middleware.lightning.utils import get_txn_hash_from_channel_point


class ChannelTxSets(NamedTuple):
    """Transaction hashes of the node's channels, grouped by their role"""

    funding: FrozenSet[str]
    closing: FrozenSet[str]
    pending_open: FrozenSet[str]
    pending_closing: FrozenSet[str]

    @classmethod
    def from_channels(
        cls,
        open_channels: List[OpenChannel],
        closed_channels: List[ClosedChannel],
        pending: PendingChannels,
    ) -> "ChannelTxSets":
        funding = {get_txn_hash_from_channel_point(c.channel_point) for c in open_channels}
        funding.update(
            get_txn_hash_from_channel_point(c.channel_point) for c in closed_channels
        )

        closing = {
            get_txn_hash_from_channel_point(c.closing_tx_hash)
            for c in closed_channels
            if c.closing_tx_hash
        }

        pending_open = {
            get_txn_hash_from_channel_point(c.channel.channel_point)
            for c in pending.pending_open_channels
        }

        pending_closing = set()
        for group in [
            pending.pending_force_closing_channels,
            pending.waiting_close_channels,
            pending.pending_closing_channels,
        ]:
            pending_closing.update(c.closing_txid for c in group if c.closing_txid)

        return cls(
            funding=frozenset(funding),
            closing=frozenset(closing),
            pending_open=frozenset(pending_open),
            pending_closing=frozenset(pending_closing),
        )


def classify_transaction(
    tx: OnChainTransaction, sets: ChannelTxSets
) -> TxClassification:
    if tx.tx_hash in sets.funding:
        return TxClassification.CHANNEL_OPEN
    if tx.tx_hash in sets.closing:
        return TxClassification.CHANNEL_CLOSE
    if tx.tx_hash in sets.pending_open:
        return TxClassification.PENDING_OPEN
    if tx.tx_hash in sets.pending_closing:
        return TxClassification.PENDING_CLOSE
    if tx.amount < 0:
        return TxClassification.ON_CHAIN_SENT
    if tx.amount > 0 and len(tx.dest_addresses) > 0:
        return TxClassification.ON_CHAIN_RECEIVED

    # Positive amounts are either incoming transactions or a waiting close
    # channel. There is no way to tell them apart until the transaction has
    # one confirmation. Then the channel becomes a pending closing channel
    # and has an associated closing txid.
    if tx.amount > 0:
        return TxClassification.PENDING_CLOSE

    return TxClassification.UNKNOWN


def classify_transactions(
    transactions: List[OnChainTransaction], sets: ChannelTxSets
) -> List[TransactionRecord]:
    """Classifies each transaction, most recent first.

    The input transactions are not modified.
    """
    return [
        TransactionRecord.from_transaction(tx, classify_transaction(tx, sets))
        for tx in reversed(transactions)
    ]


class TransactionClassifier:
    def __init__(self, node: LightningNodeBase) -> None:
        self._node = node

    @logger.catch(exclude=(HTTPException,), reraise=True)
    async def list_transactions(self) -> List[TransactionRecord]:
        logger.trace("list_transactions()")

        transactions, open_channels, closed_channels, pending = await asyncio.gather(
            self._node.get_on_chain_transactions(),
            self._node.list_open_channels(),
            self._node.get_closed_channels(),
            self._node.get_pending_channels(),
        )

        sets = ChannelTxSets.from_channels(open_channels, closed_channels, pending)
        return classify_transactions(transactions, sets)
