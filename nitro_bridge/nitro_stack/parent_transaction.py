"""
Parsing of parent chain transaction receipts that deliver messages to a child
chain's inbox.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from eth_abi import abi
from eth_typing import ChecksumAddress
from hexbytes import HexBytes
from web3 import Web3
from web3.constants import ADDRESS_ZERO
from web3.logs import DISCARD
from web3.types import TxReceipt

from nitro_bridge.utils.chain import get_contract
from nitro_bridge.utils.config import (
    ABI_ARB_BRIDGE,
    ABI_DELAYED_INBOX,
    ARB1_NITRO_GENESIS_L1_BLOCK,
)
from nitro_bridge.utils.networks import ARBITRUM_ONE, ArbitrumNetwork

from .access import get_w3
from .custom_errors import NitroStackConfigError, NitroStackDataError
from .parent_to_child import (
    EthDepositMessage,
    ParentToChildMessage,
    ParentToChildMessageClassic,
    ParentToChildMessenger,
)
from .types import InboxMessageKind, ParentToChildMessageStatus, RetryableMessageParams

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MessageDeliveredEvent:
    message_index: int
    before_inbox_acc: HexBytes
    inbox: ChecksumAddress
    kind: int
    sender: ChecksumAddress
    message_data_hash: HexBytes
    base_fee_l1: int
    timestamp: int


@dataclass(frozen=True)
class InboxMessageDeliveredEvent:
    message_num: int
    data: HexBytes


@dataclass(frozen=True)
class MessageEvents:
    bridge_message_event: MessageDeliveredEvent
    inbox_message_event: InboxMessageDeliveredEvent


def decode_inbox_message_delivered_data(data: bytes) -> RetryableMessageParams:
    """
    decodes the data of an `InboxMessageDelivered` event for a retryable ticket

    Parameters
    ----------
    `data` : bytes

    Returns
    -------
    RetryableMessageParams
    """
    data = HexBytes(data)

    data_abi_types = [
        "uint256",  ## dest
        "uint256",  ## l2 call value
        "uint256",  ## msg val
        "uint256",  ## max submission
        "uint256",  ## excess fee refund addr
        "uint256",  ## call value refund addr
        "uint256",  ## max gas
        "uint256",  ## gas price bid
        "uint256",  ## data length
    ]

    try:
        decoded = abi.decode(data_abi_types, bytes(data), strict=False)
    except Exception as e:
        raise NitroStackDataError("Malformed retryable ticket message data", e)

    calldata_length = decoded[8]

    if calldata_length > len(data) - 9 * 32:
        raise NitroStackDataError(
            f"Retryable ticket message data is shorter than its calldata length {calldata_length}"
        )

    calldata = HexBytes(data[-calldata_length:]) if calldata_length > 0 else HexBytes("0x")

    def to_address(value: int) -> ChecksumAddress:
        return Web3.to_checksum_address("0x" + value.to_bytes(20, byteorder="big").hex())

    return RetryableMessageParams(
        dest_address=to_address(decoded[0]),
        l2_call_value=decoded[1],
        l1_value=decoded[2],
        max_submission_fee=decoded[3],
        excess_fee_refund_address=to_address(decoded[4]),
        call_value_refund_address=to_address(decoded[5]),
        gas_limit=decoded[6],
        max_fee_per_gas=decoded[7],
        data=calldata,
    )


def parse_eth_deposit_data(data: bytes) -> Tuple[ChecksumAddress, int]:
    """
    ETH deposit message data is the packed destination address followed by
    the value.

    Returns
    -------
    Tuple[to: ChecksumAddress, value: int]
    """
    data = HexBytes(data)

    if len(data) <= 20:
        raise NitroStackDataError(
            f"ETH deposit message data is too short: {len(data)} bytes"
        )

    to = Web3.to_checksum_address("0x" + bytes(data[:20]).hex())
    value = int.from_bytes(data[20:], byteorder="big")

    return to, value


def get_message_delivered_events(
    w3: Web3, receipt: TxReceipt, bridge: Optional[ChecksumAddress] = None
) -> List[MessageDeliveredEvent]:
    contract = get_contract(w3, bridge or ADDRESS_ZERO, ABI_ARB_BRIDGE)

    events = []
    for event in contract.events.MessageDelivered().process_receipt(receipt, errors=DISCARD):
        if bridge is not None and Web3.to_checksum_address(event["address"]) != bridge:
            continue

        args = event["args"]
        events.append(
            MessageDeliveredEvent(
                message_index=args["messageIndex"],
                before_inbox_acc=HexBytes(args["beforeInboxAcc"]),
                inbox=Web3.to_checksum_address(args["inbox"]),
                kind=args["kind"],
                sender=Web3.to_checksum_address(args["sender"]),
                message_data_hash=HexBytes(args["messageDataHash"]),
                base_fee_l1=args["baseFeeL1"],
                timestamp=args["timestamp"],
            )
        )

    return events


def get_inbox_message_delivered_events(
    w3: Web3, receipt: TxReceipt, inbox: Optional[ChecksumAddress] = None
) -> List[InboxMessageDeliveredEvent]:
    contract = get_contract(w3, inbox or ADDRESS_ZERO, ABI_DELAYED_INBOX)

    return [
        InboxMessageDeliveredEvent(
            message_num=event["args"]["messageNum"],
            data=HexBytes(event["args"]["data"]),
        )
        for event in contract.events.InboxMessageDelivered().process_receipt(
            receipt, errors=DISCARD
        )
        if inbox is None or Web3.to_checksum_address(event["address"]) == inbox
    ]


class ParentTransactionReceipt:
    """
    A parent chain receipt and the messages it delivered to a child chain.

    Parameters
    ----------
    `receipt` : TxReceipt
    `w3` : Web3, optional
        only used for event decoding, no requests are made
    `network` : ArbitrumNetwork, optional
        restricts events to the network's bridge and inbox
    """

    def __init__(
        self,
        receipt: TxReceipt,
        w3: Optional[Web3] = None,
        network: Optional[ArbitrumNetwork] = None,
    ) -> None:
        self.receipt = receipt
        self.w3 = w3 or Web3()
        self.network = network

    def is_classic(self, child_chain_id: int) -> bool:
        """
        Whether the messages of this receipt were delivered before the
        nitro upgrade of Arbitrum One.
        """
        if child_chain_id == ARBITRUM_ONE.chain_id:
            return self.receipt["blockNumber"] < ARB1_NITRO_GENESIS_L1_BLOCK

        return False

    def get_message_events(self) -> List[MessageEvents]:
        """
        `MessageDelivered` and `InboxMessageDelivered` events paired by
        message number.
        """
        bridge = self.network.eth_bridge.bridge if self.network else None
        inbox = self.network.eth_bridge.inbox if self.network else None

        bridge_events = get_message_delivered_events(self.w3, self.receipt, bridge)
        inbox_events = get_inbox_message_delivered_events(self.w3, self.receipt, inbox)

        if len(bridge_events) != len(inbox_events):
            raise NitroStackDataError(
                f"Unexpected missing events. Inbox message count: {len(inbox_events)} "
                f"does not equal bridge message count: {len(bridge_events)}."
            )

        messages = []
        for bridge_event in bridge_events:
            matching = [e for e in inbox_events if e.message_num == bridge_event.message_index]

            if len(matching) != 1:
                raise NitroStackDataError(
                    f"Unexpected events. Matching inbox events found: {len(matching)} "
                    f"for message {bridge_event.message_index}"
                )

            messages.append(MessageEvents(bridge_event, matching[0]))

        return messages

    def get_parent_to_child_messages(self, child_chain_id: int) -> List[ParentToChildMessage]:
        """
        Retryable tickets delivered by this transaction.

        Parameters
        ----------
        `child_chain_id` : int

        Returns
        -------
        List[ParentToChildMessage]
        """
        if self.is_classic(child_chain_id):
            raise NitroStackDataError(
                "This method is only for nitro transactions. Use "
                "`get_parent_to_child_messages_classic` for classic transactions."
            )

        return [
            ParentToChildMessage(
                chain_id=child_chain_id,
                sender=events.bridge_message_event.sender,
                message_number=events.bridge_message_event.message_index,
                parent_base_fee=events.bridge_message_event.base_fee_l1,
                message_data=decode_inbox_message_delivered_data(events.inbox_message_event.data),
            )
            for events in self.get_message_events()
            if events.bridge_message_event.kind == InboxMessageKind.SUBMIT_RETRYABLE_TX
        ]

    def get_parent_to_child_messages_classic(
        self, child_chain_id: int
    ) -> List[ParentToChildMessageClassic]:
        if not self.is_classic(child_chain_id):
            raise NitroStackDataError(
                "This method is only for classic transactions. Use "
                "`get_parent_to_child_messages` for nitro transactions."
            )

        return [
            ParentToChildMessageClassic(
                chain_id=child_chain_id,
                message_number=events.inbox_message_event.message_num,
            )
            for events in self.get_message_events()
        ]

    def get_eth_deposits(self, child_chain_id: int) -> List[EthDepositMessage]:
        deposits = []

        for events in self.get_message_events():
            if events.bridge_message_event.kind != InboxMessageKind.ETH_DEPOSIT:
                continue

            to, value = parse_eth_deposit_data(events.inbox_message_event.data)
            deposits.append(
                EthDepositMessage(
                    child_chain_id=child_chain_id,
                    message_number=events.bridge_message_event.message_index,
                    from_address=events.bridge_message_event.sender,
                    to=to,
                    value=value,
                )
            )

        return deposits


def get_retryable_ticket_status(
    messenger: ParentToChildMessenger, parent_tx_hash: bytes
) -> List[ParentToChildMessageStatus]:
    """
    Status of every retryable ticket created by a parent chain transaction,
    in message order. `messenger` needs access to the parent chain.

    Returns
    -------
    List[ParentToChildMessageStatus]
    """
    if messenger.parent is None:
        raise NitroStackConfigError(
            "Parent chain access is required to read retryable tickets from a parent transaction"
        )

    parent_w3 = get_w3(messenger.parent)
    receipt = parent_w3.eth.get_transaction_receipt(HexBytes(parent_tx_hash))

    messages = ParentTransactionReceipt(
        receipt, parent_w3, messenger.network
    ).get_parent_to_child_messages(messenger.network.chain_id)

    return [messenger.status(message) for message in messages]
