lifecycle_type_desc = """
The lifecycle state of the channel:

#### OPEN
The channel is open and usable.

#### PENDING_OPEN
The funding transaction was broadcast but has not reached the required
number of confirmations yet.

#### WAITING_CLOSE
The channel is waiting for the closing transaction to confirm.

#### FORCE_CLOSING
The channel was force closed, funds are time locked until maturity.

#### PENDING_CLOSING
The cooperative closing transaction was broadcast but has not confirmed yet.
"""

remaining_confirmations_desc = """
Number of confirmations left until the pending channel reaches its next state.
Null for open channels and for channels whose transaction is not (yet) known to the wallet.

* **PENDING_OPEN**: required confirmations minus the confirmations of the funding transaction
* **FORCE_CLOSING**: blocks until the time locked funds mature, as reported by the node
* **PENDING_CLOSING**: always 1
"""

tx_classification_desc = """
Semantic category of the on-chain transaction:

* **CHANNEL_OPEN**: funding transaction of an open or closed channel
* **CHANNEL_CLOSE**: closing transaction of a closed channel
* **PENDING_OPEN**: funding transaction of a channel that is not open yet
* **PENDING_CLOSE**: closing transaction of a channel that is not closed yet.
  Incoming transactions without destination addresses are reported here as well,
  they can't be told apart from closing outputs until they have one confirmation.
* **ON_CHAIN_SENT**: outgoing on-chain payment
* **ON_CHAIN_RECEIVED**: incoming on-chain payment
* **UNKNOWN**: none of the above
"""

sweep_amount_desc = """
Only set when sweeping. The largest amount that can be sent from the confirmed
wallet balance at this confirmation target after paying the fee.
"""

estimate_fee_desc = """
Estimates the fee of an on-chain transaction to the given address.

If `confTarget` is **0** the estimate is done for four standard confirmation targets:

| tier | blocks |
|---|---|
| fast | 2 |
| normal | 6 |
| slow | 24 |
| cheapest | 144 |

and a mapping of tier name to estimate is returned. A failing tier is reported as an
error object `{code, text}` and does not affect the other tiers.

If `sweep` is set, `amt` is ignored and the largest amount that can be sent from the
confirmed wallet balance is searched for. It is returned as `sweep_amount`.

Possible error codes: `FEE_RATE_TOO_LOW`, `INSUFFICIENT_FUNDS`, `INVALID_ADDRESS`, `OUTPUT_IS_DUST`
"""

estimate_channel_open_fee_desc = """
Estimates the on-chain fee of opening a channel with the given amount.

A fresh wallet address is used as the estimate target. When estimating all
tiers (`confTarget` = **0**) without sweeping, an extra 10 vbytes are added to
each fee to account for the larger channel funding output.
"""

sync_status_desc = """
Rough estimate of the chain synchronization progress of the node.

The timestamp of the best known block header is interpolated between the
genesis block and now.
"""
