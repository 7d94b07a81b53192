"""
Child -> parent messages: withdrawals and arbitrary calls sent through the
ArbSys precompile and executed on the parent chain's outbox once the
rollup confirms them.

Two outbox models coexist. Messages sent before the nitro upgrade are
identified by `(batch_number, index_in_batch)` and proven with a merkle
proof looked up on the child chain. Nitro messages are identified by their
`position` in the send merkle tree and are executable once the rollup's
latest confirmed assertion includes them.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple, Union

from eth_abi import abi
from eth_typing import ChecksumAddress
from hexbytes import HexBytes
from web3 import Web3
from web3.contract import Contract
from web3.exceptions import ContractLogicError
from web3.logs import DISCARD
from web3.types import BlockData, TxParams, TxReceipt

from nitro_bridge.utils.chain import encode_contract_call, get_contract, send_transaction
from nitro_bridge.utils.config import (
    ABI_ARB_RETRYABLE_TX,
    ABI_ARB_SYS,
    ABI_CLASSIC_OUTBOX,
    ABI_NODE_INTERFACE,
    ABI_OUTBOX,
    ABI_ROLLUP,
    ARB_RETRYABLE_TX_ADDRESS,
    ARB_SYS_ADDRESS,
    NODE_INTERFACE_ADDRESS,
    OUTBOX_ENTRY_RETRY_DELAY,
)
from nitro_bridge.utils.networks import ArbitrumNetwork
from nitro_bridge.utils.providers import ChainAccess

from .access import get_w3, require_writer
from .custom_errors import (
    NitroStackConfigError,
    NitroStackDataError,
    NitroStackOutboxError,
    NitroStackStateError,
    NitroStackTimeoutError,
    NitroStackTransactionError,
)
from .types import (
    ChildToParentMessageStatus,
    ChildToParentTransactionRequest,
    MessageBatchProofInfo,
    OutboxProofResponse,
)

logger = logging.getLogger(__name__)

# rollup `Node` struct, index of `createdAtBlock`
NODE_CREATED_AT_BLOCK_INDEX = 10

_ASSERTION_TYPE = "(((bytes32[2],uint64[2]),uint8),((bytes32[2],uint64[2]),uint8),uint64)"

NODE_CREATED_TOPIC = HexBytes(
    Web3.keccak(
        text=f"NodeCreated(uint64,bytes32,bytes32,bytes32,{_ASSERTION_TYPE},bytes32,bytes32,uint256)"
    )
)
# non indexed fields: executionHash, assertion, afterInboxBatchAcc, wasmModuleRoot, inboxMaxCount
NODE_CREATED_DATA_TYPES = ["bytes32", _ASSERTION_TYPE, "bytes32", "bytes32", "uint256"]

EMPTY_HASH = HexBytes(b"\x00" * 32)

# revert reasons of the classic outbox
CLASSIC_ALREADY_SPENT = "ALREADY_SPENT"
CLASSIC_NO_OUTBOX_ENTRY = "NO_OUTBOX_ENTRY"
CLASSIC_MALFORMED_PROOF_REASONS = ("PROOF_TOO_LONG", "PATH_NOT_MINIMAL", "BAD_ROOT")

LEGACY_MISSING_BATCH = "batch doesn't exist"


@dataclass(frozen=True)
class ChildToParentMessageNitro:
    """An `L2ToL1Tx` event emitted by ArbSys."""

    caller: ChecksumAddress
    destination: ChecksumAddress
    hash: int
    position: int
    arb_block_num: int
    eth_block_num: int
    timestamp: int
    callvalue: int
    data: HexBytes

    @classmethod
    def from_event_args(cls, args) -> "ChildToParentMessageNitro":
        return cls(
            caller=Web3.to_checksum_address(args["caller"]),
            destination=Web3.to_checksum_address(args["destination"]),
            hash=args["hash"],
            position=args["position"],
            arb_block_num=args["arbBlockNum"],
            eth_block_num=args["ethBlockNum"],
            timestamp=args["timestamp"],
            callvalue=args["callvalue"],
            data=HexBytes(args["data"]),
        )


@dataclass(frozen=True)
class ChildToParentMessageClassic:
    """An `L2ToL1Transaction` event emitted by ArbSys before the nitro upgrade."""

    caller: ChecksumAddress
    destination: ChecksumAddress
    unique_id: int
    batch_number: int
    index_in_batch: int
    arb_block_num: int
    eth_block_num: int
    timestamp: int
    callvalue: int
    data: HexBytes

    @classmethod
    def from_event_args(cls, args) -> "ChildToParentMessageClassic":
        return cls(
            caller=Web3.to_checksum_address(args["caller"]),
            destination=Web3.to_checksum_address(args["destination"]),
            unique_id=args["uniqueId"],
            batch_number=args["batchNumber"],
            index_in_batch=args["indexInBatch"],
            arb_block_num=args["arbBlockNum"],
            eth_block_num=args["ethBlockNum"],
            timestamp=args["timestamp"],
            callvalue=args["callvalue"],
            data=HexBytes(args["data"]),
        )


ChildToParentMessage = Union[ChildToParentMessageNitro, ChildToParentMessageClassic]


def _to_int(value) -> int:
    if isinstance(value, str):
        return int(value, 16)

    if isinstance(value, (bytes, bytearray)):
        return int.from_bytes(value, byteorder="big")

    return int(value)


def is_arbitrum_chain(w3: Web3) -> bool:
    """Whether `w3` is connected to a chain with the ArbSys precompile."""
    arb_sys = get_contract(w3, ARB_SYS_ADDRESS, ABI_ARB_SYS)

    try:
        arb_sys.functions.arbOSVersion().call()
    except Exception as e:
        logger.debug("ArbSys.arbOSVersion call failed, not an Arbitrum chain: %s", e)
        return False

    return True


def _first_block_for_parent_block(
    w3: Web3, parent_block: int, allow_greater: bool, start: int, end: int
) -> Optional[int]:
    exact = None
    greater = None

    while start <= end:
        mid = start + (end - start) // 2
        l1_block = _to_int(w3.eth.get_block(mid)["l1BlockNumber"])

        if l1_block < parent_block:
            start = mid + 1
            continue

        end = mid - 1
        if l1_block == parent_block:
            exact = mid
        elif allow_greater:
            greater = mid

    return exact if exact is not None else greater


def get_block_range_for_parent_block(
    w3: Web3, parent_block: int, min_block: int = 0, max_block: Optional[int] = None
) -> Tuple[Optional[int], Optional[int]]:
    """
    First and last block of the Arbitrum chain `w3` whose `l1BlockNumber` is
    `parent_block`, by binary search over `[min_block, max_block]`.

    Returns `(None, None)` when no block in the range maps to `parent_block`.
    """
    if max_block is None:
        max_block = w3.eth.block_number

    first = _first_block_for_parent_block(w3, parent_block, False, min_block, max_block)
    if first is None:
        return None, None

    next_first = _first_block_for_parent_block(w3, parent_block + 1, True, first, max_block)
    if next_first is None:
        return first, max_block

    return first, next_first - 1


class ChildTransactionReceipt:
    """
    A child chain receipt and the messages it sent to the parent chain.

    Parameters
    ----------
    `receipt` : TxReceipt
    `w3` : Web3, optional
        only used for event decoding unless a batch lookup is asked for
    """

    def __init__(self, receipt: TxReceipt, w3: Optional[Web3] = None) -> None:
        self.receipt = receipt
        self.w3 = w3 or Web3()

    def _arb_sys(self) -> Contract:
        return get_contract(self.w3, ARB_SYS_ADDRESS, ABI_ARB_SYS)

    def _from_arb_sys(self, events) -> list:
        return [
            event
            for event in events
            if Web3.to_checksum_address(event["address"]) == ARB_SYS_ADDRESS
        ]

    def get_child_to_parent_events(self) -> List[ChildToParentMessage]:
        """
        Messages sent by this transaction, classic ones included.

        Returns
        -------
        List[ChildToParentMessageNitro | ChildToParentMessageClassic]
        """
        arb_sys = self._arb_sys()

        classic_events = self._from_arb_sys(
            arb_sys.events.L2ToL1Transaction().process_receipt(self.receipt, errors=DISCARD)
        )
        nitro_events = self._from_arb_sys(
            arb_sys.events.L2ToL1Tx().process_receipt(self.receipt, errors=DISCARD)
        )

        messages: List[ChildToParentMessage] = [
            ChildToParentMessageClassic.from_event_args(event["args"]) for event in classic_events
        ]
        messages.extend(
            ChildToParentMessageNitro.from_event_args(event["args"]) for event in nitro_events
        )

        return messages

    def get_redeem_scheduled_events(self) -> list:
        arb_retryable_tx = get_contract(self.w3, ARB_RETRYABLE_TX_ADDRESS, ABI_ARB_RETRYABLE_TX)

        return [
            event
            for event in arb_retryable_tx.events.RedeemScheduled().process_receipt(
                self.receipt, errors=DISCARD
            )
            if Web3.to_checksum_address(event["address"]) == ARB_RETRYABLE_TX_ADDRESS
        ]

    def get_batch_confirmations(self, child_provider: Web3) -> int:
        """Parent chain confirmations of the batch holding this transaction."""
        node_interface = get_contract(child_provider, NODE_INTERFACE_ADDRESS, ABI_NODE_INTERFACE)

        return node_interface.functions.getL1Confirmations(self.receipt["blockHash"]).call()

    def is_data_available(self, child_provider: Web3, confirmations: int = 10) -> bool:
        """
        Whether the batch holding this transaction has `confirmations`
        confirmations on the parent chain.
        """
        return self.get_batch_confirmations(child_provider) > confirmations


def select_classic_outbox(network: ArbitrumNetwork, batch_number: int) -> ChecksumAddress:
    """
    Classic outboxes were redeployed over time, each serving batches from its
    activation batch onwards. Returns the latest one activated at or before
    `batch_number`.
    """
    candidates = [
        (activation, address)
        for address, activation in network.eth_bridge.classic_outboxes.items()
        if activation <= batch_number
    ]

    if not candidates:
        raise NitroStackConfigError(
            f"Network {network.chain_id} has no classic outbox for batch {batch_number}"
        )

    return max(candidates)[1]


class ChildToParentMessenger:
    """
    Reads and executes child -> parent messages of `network`.

    Status queries need read access to both chains, `execute` needs a
    `Writer` for the parent chain and the withdrawal helpers a `Writer` for
    the child chain.

    Parameters
    ----------
    `parent` : ChainAccess
    `child` : ChainAccess
    `network` : ArbitrumNetwork
        the child chain
    `sleep` : Callable, optional
        used by the waiting operations
    """

    def __init__(
        self,
        parent: ChainAccess,
        child: ChainAccess,
        network: ArbitrumNetwork,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.parent = parent
        self.child = child
        self.network = network
        self.sleep = sleep
        self.clock = clock

    @property
    def parent_provider(self) -> Web3:
        return get_w3(self.parent)

    @property
    def child_provider(self) -> Web3:
        return get_w3(self.child)

    def _node_interface(self) -> Contract:
        return get_contract(self.child_provider, NODE_INTERFACE_ADDRESS, ABI_NODE_INTERFACE)

    # sending

    def build_withdraw_eth_request(
        self, from_address: ChecksumAddress, destination: ChecksumAddress, amount: int
    ) -> ChildToParentTransactionRequest:
        """
        Unsigned child chain transaction withdrawing `amount` wei to
        `destination` on the parent chain.
        """
        return self.build_send_tx_request(from_address, destination, b"", amount)

    def build_send_tx_request(
        self,
        from_address: ChecksumAddress,
        destination: ChecksumAddress,
        data: bytes,
        value: int = 0,
    ) -> ChildToParentTransactionRequest:
        """
        Unsigned child chain transaction calling `destination` with `data` on
        the parent chain once executed from the outbox.
        """
        if data:
            calldata = encode_contract_call(
                ABI_ARB_SYS, "sendTxToL1", [destination, bytes(HexBytes(data))]
            )
        else:
            calldata = encode_contract_call(ABI_ARB_SYS, "withdrawEth", [destination])

        tx_request: TxParams = {
            "from": from_address,
            "to": ARB_SYS_ADDRESS,
            "data": calldata,
            "value": value,
        }

        return ChildToParentTransactionRequest(tx_request=tx_request)

    def withdraw_eth(self, destination: ChecksumAddress, amount: int) -> TxReceipt:
        """
        Withdraw ETH to the parent chain. The funds can be claimed with
        `execute` once the message is confirmed, about a week later on
        mainnet.

        Parameters
        ----------
        `destination` : ChecksumAddress
        `amount` : int
            in wei

        Returns
        -------
        TxReceipt
        """
        writer = require_writer(self.child, "withdraw ETH")
        request = self.build_withdraw_eth_request(writer.address, destination, amount)

        try:
            receipt = send_transaction(writer, request.tx_request)
        except Exception as e:
            raise NitroStackTransactionError(f"`withdrawEth` transaction failed: {e}", e)

        logger.info(
            "Withdrawal of %s wei to %s sent in child tx %s",
            amount,
            destination,
            HexBytes(receipt["transactionHash"]).to_0x_hex(),
        )

        return receipt

    def send_tx_to_parent(
        self, destination: ChecksumAddress, data: bytes, value: int = 0
    ) -> TxReceipt:
        writer = require_writer(self.child, "send a message to the parent chain")
        request = self.build_send_tx_request(writer.address, destination, data, value)

        try:
            return send_transaction(writer, request.tx_request)
        except Exception as e:
            raise NitroStackTransactionError(f"`sendTxToL1` transaction failed: {e}", e)

    def get_messages(self, child_tx_hash: bytes) -> List[ChildToParentMessage]:
        receipt = self.child_provider.eth.get_transaction_receipt(HexBytes(child_tx_hash))

        return ChildTransactionReceipt(receipt, self.child_provider).get_child_to_parent_events()

    # status

    def status(self, message: ChildToParentMessage) -> ChildToParentMessageStatus:
        if isinstance(message, ChildToParentMessageClassic):
            return self.classic_status(message)

        return self.nitro_status(message)

    def execute(self, message: ChildToParentMessage) -> TxReceipt:
        """
        Execute a confirmed message on the parent chain's outbox.

        Raises `NitroStackStateError` unless the message is CONFIRMED.

        Returns
        -------
        TxReceipt
        """
        if isinstance(message, ChildToParentMessageClassic):
            return self.execute_classic(message)

        return self.execute_nitro(message)

    # classic

    def _classic_outbox(self, message: ChildToParentMessageClassic) -> Contract:
        return get_contract(
            self.parent_provider,
            select_classic_outbox(self.network, message.batch_number),
            ABI_CLASSIC_OUTBOX,
        )

    def try_get_proof(self, message: ChildToParentMessageClassic) -> Optional[MessageBatchProofInfo]:
        """
        Merkle proof of a classic message, None while its batch hasn't been
        posted.
        """
        try:
            result = (
                self._node_interface()
                .functions.legacyLookupMessageBatchProof(
                    message.batch_number, message.index_in_batch
                )
                .call()
            )
        except Exception as e:
            if LEGACY_MISSING_BATCH in str(e):
                return None
            raise

        return {
            "proof": [HexBytes(p) for p in result[0]],
            "path": result[1],
            "l2Sender": Web3.to_checksum_address(result[2]),
            "l1Dest": Web3.to_checksum_address(result[3]),
            "l2Block": result[4],
            "l1Block": result[5],
            "timestamp": result[6],
            "amount": result[7],
            "calldataForL1": HexBytes(result[8]),
        }

    def _classic_execute_call(
        self, message: ChildToParentMessageClassic, proof_info: MessageBatchProofInfo
    ):
        return self._classic_outbox(message).functions.executeTransaction(
            message.batch_number,
            proof_info["proof"],
            proof_info["path"],
            proof_info["l2Sender"],
            proof_info["l1Dest"],
            proof_info["l2Block"],
            proof_info["l1Block"],
            proof_info["timestamp"],
            proof_info["amount"],
            proof_info["calldataForL1"],
        )

    def outbox_entry_exists(self, message: ChildToParentMessageClassic) -> bool:
        return self._classic_outbox(message).functions.outboxEntryExists(
            message.batch_number
        ).call()

    def classic_status(self, message: ChildToParentMessageClassic) -> ChildToParentMessageStatus:
        """
        Status of a classic message, found by simulating its execution on the
        outbox serving its batch.

        Returns
        -------
        ChildToParentMessageStatus
        """
        proof_info = self.try_get_proof(message)

        if proof_info is None:
            return ChildToParentMessageStatus.UNCONFIRMED

        try:
            self._classic_execute_call(message, proof_info).call()
            return ChildToParentMessageStatus.CONFIRMED
        except ContractLogicError as e:
            reason = str(e)

            if CLASSIC_ALREADY_SPENT in reason:
                return ChildToParentMessageStatus.EXECUTED

            if CLASSIC_NO_OUTBOX_ENTRY in reason:
                return ChildToParentMessageStatus.UNCONFIRMED

            if any(bad in reason for bad in CLASSIC_MALFORMED_PROOF_REASONS):
                raise NitroStackOutboxError(
                    f"Outbox rejected the proof of batch {message.batch_number}: {reason}", e
                )

            # the message's own call reverted, the entry decides
            logger.debug("Classic execution simulation reverted: %s", reason)

        if self.outbox_entry_exists(message):
            return ChildToParentMessageStatus.CONFIRMED

        return ChildToParentMessageStatus.UNCONFIRMED

    def has_executed(self, message: ChildToParentMessageClassic) -> bool:
        return self.classic_status(message) == ChildToParentMessageStatus.EXECUTED

    def wait_until_outbox_entry_created(
        self,
        message: ChildToParentMessageClassic,
        retry_delay: float = OUTBOX_ENTRY_RETRY_DELAY,
        cancel: Optional[threading.Event] = None,
    ) -> ChildToParentMessageStatus:
        """
        Poll until the outbox entry of the message's batch exists. There is
        no timeout since confirmation takes about a week. Set `cancel` to
        stop waiting, which raises `NitroStackTimeoutError`.

        Returns
        -------
        ChildToParentMessageStatus
            CONFIRMED or EXECUTED
        """
        while not self.outbox_entry_exists(message):
            if cancel is not None and cancel.is_set():
                raise NitroStackTimeoutError(
                    f"Stopped waiting for the outbox entry of batch {message.batch_number}"
                )

            logger.debug("Outbox entry of batch %s not created yet", message.batch_number)
            self.sleep(retry_delay)

        status = self.classic_status(message)

        if status == ChildToParentMessageStatus.EXECUTED:
            return status

        return ChildToParentMessageStatus.CONFIRMED

    def execute_classic(self, message: ChildToParentMessageClassic) -> TxReceipt:
        writer = require_writer(self.parent, "execute a message")

        status = self.classic_status(message)
        if status != ChildToParentMessageStatus.CONFIRMED:
            raise NitroStackStateError.unexpected_status(
                "execute", ChildToParentMessageStatus.CONFIRMED, status
            )

        proof_info = self.try_get_proof(message)
        if proof_info is None:
            raise NitroStackDataError(
                f"Unexpected missing proof: {message.batch_number} {message.index_in_batch}"
            )

        try:
            txn_payload = self._classic_execute_call(message, proof_info).build_transaction(
                {"from": writer.address}
            )
            return send_transaction(writer, txn_payload)
        except Exception as e:
            raise NitroStackOutboxError.from_contract_error_info(e)

    # nitro

    def _get_node_created_block_range(self, created_at_block: int) -> Tuple[int, int]:
        """
        Parent chain blocks that can hold the `NodeCreated` event of a node
        whose `createdAtBlock` is `created_at_block`.

        A rollup settling to an Arbitrum chain records the block number of
        that chain's own parent, which spans a range of blocks here.
        """
        parent = self.parent_provider

        if not is_arbitrum_chain(parent):
            return created_at_block, created_at_block

        node_interface = get_contract(parent, NODE_INTERFACE_ADDRESS, ABI_NODE_INTERFACE)

        try:
            first, last = node_interface.functions.l2BlockRangeForL1(created_at_block).call()
            return first, last
        except Exception as e:
            logger.debug("NodeInterface.l2BlockRangeForL1 failed, searching blocks: %s", e)

        try:
            first, last = get_block_range_for_parent_block(parent, created_at_block)
        except Exception as e:
            logger.debug("Block search for parent block %s failed: %s", created_at_block, e)
            first = last = None

        if first is None or last is None:
            return created_at_block, created_at_block

        return first, last

    def _get_node_created_after_state(self, node_num: int, created_at_block: int) -> Optional[tuple]:
        from_block, to_block = self._get_node_created_block_range(created_at_block)

        logs = self.parent_provider.eth.get_logs(
            {
                "address": self.network.eth_bridge.rollup,
                "fromBlock": from_block,
                "toBlock": to_block,
                "topics": [NODE_CREATED_TOPIC, HexBytes(node_num.to_bytes(32, byteorder="big"))],
            }
        )

        if len(logs) > 1:
            raise NitroStackDataError(
                f"Expected at most one NodeCreated event for node {node_num}, found {len(logs)}"
            )

        if not logs:
            logger.warning("No NodeCreated event for node %s, defaulting to child block 0", node_num)
            return None

        try:
            decoded = abi.decode(NODE_CREATED_DATA_TYPES, bytes(HexBytes(logs[0]["data"])))
        except Exception as e:
            raise NitroStackDataError(f"Malformed NodeCreated event for node {node_num}", e)

        assertion = decoded[1]
        # afterState.globalState.bytes32Vals
        return assertion[1][0][0]

    def _get_child_block(self, block_hash: HexBytes) -> BlockData:
        if block_hash == EMPTY_HASH:
            return self.child_provider.eth.get_block(0)

        return self.child_provider.eth.get_block(block_hash)

    def get_confirmed_send_count(self) -> int:
        """
        Number of child -> parent messages covered by the rollup's latest
        confirmed assertion.
        """
        if self.network.is_bold:
            raise NitroStackConfigError(
                f"Network {self.network.chain_id} uses BoLD assertions, which are not supported"
            )

        rollup = get_contract(self.parent_provider, self.network.eth_bridge.rollup, ABI_ROLLUP)

        node_num = rollup.functions.latestConfirmed().call()
        node = rollup.functions.getNode(node_num).call()

        after_state = self._get_node_created_after_state(node_num, node[NODE_CREATED_AT_BLOCK_INDEX])

        if after_state is None:
            return _to_int(self._get_child_block(EMPTY_HASH).get("sendCount", 0))

        block_hash, send_root = (HexBytes(value) for value in after_state)

        child_block = self._get_child_block(block_hash)

        if block_hash != EMPTY_HASH and HexBytes(child_block["sendRoot"]) != send_root:
            raise NitroStackDataError(
                f"Child chain block send root doesn't match node {node_num}: "
                f"{HexBytes(child_block['sendRoot']).to_0x_hex()} {send_root.to_0x_hex()}"
            )

        return _to_int(child_block.get("sendCount", 0))

    def is_spent(self, message: ChildToParentMessageNitro) -> bool:
        outbox = get_contract(self.parent_provider, self.network.eth_bridge.outbox, ABI_OUTBOX)

        return outbox.functions.isSpent(message.position).call()

    def nitro_status(self, message: ChildToParentMessageNitro) -> ChildToParentMessageStatus:
        send_count = self.get_confirmed_send_count()

        if send_count <= message.position:
            return ChildToParentMessageStatus.UNCONFIRMED

        if self.is_spent(message):
            return ChildToParentMessageStatus.EXECUTED

        return ChildToParentMessageStatus.CONFIRMED

    def construct_outbox_proof(self, size: int, position: int) -> OutboxProofResponse:
        """
        Merkle proof of the message at `position` in a send tree of `size`
        leaves.

        This method implements `constructOutboxProof` view function in Node Interface precompile.

        Returns
        -------
        OutboxProofResponse
            {send, root, proof}
        """
        result = self._node_interface().functions.constructOutboxProof(size, position).call()

        return {
            "send": HexBytes(result[0]),
            "root": HexBytes(result[1]),
            "proof": [HexBytes(p) for p in result[2]],
        }

    def get_outbox_proof(self, message: ChildToParentMessageNitro) -> List[HexBytes]:
        send_count = self.get_confirmed_send_count()

        if send_count <= message.position:
            raise NitroStackStateError(
                "Assertion not yet confirmed, cannot get proof.",
                required=ChildToParentMessageStatus.CONFIRMED,
                actual=ChildToParentMessageStatus.UNCONFIRMED,
            )

        return self.construct_outbox_proof(send_count, message.position)["proof"]

    def execute_nitro(self, message: ChildToParentMessageNitro) -> TxReceipt:
        writer = require_writer(self.parent, "execute a message")

        status = self.nitro_status(message)
        if status != ChildToParentMessageStatus.CONFIRMED:
            raise NitroStackStateError.unexpected_status(
                "execute", ChildToParentMessageStatus.CONFIRMED, status
            )

        proof = self.get_outbox_proof(message)
        outbox = get_contract(self.parent_provider, self.network.eth_bridge.outbox, ABI_OUTBOX)

        try:
            txn_payload = outbox.functions.executeTransaction(
                proof,
                message.position,
                message.caller,
                message.destination,
                message.arb_block_num,
                message.eth_block_num,
                message.timestamp,
                message.callvalue,
                message.data,
            ).build_transaction({"from": writer.address})

            receipt = send_transaction(writer, txn_payload)
        except Exception as e:
            raise NitroStackOutboxError.from_contract_error_info(e)

        logger.info(
            "Executed message %s on the outbox in tx %s",
            message.position,
            HexBytes(receipt["transactionHash"]).to_0x_hex(),
        )

        return receipt

    def wait_until_ready_to_execute(
        self,
        message: ChildToParentMessage,
        retry_delay: float = 60,
        timeout: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ) -> ChildToParentMessageStatus:
        """
        Poll until the message is CONFIRMED or EXECUTED.

        Parameters
        ----------
        `retry_delay` : float
            seconds between status checks
        `timeout` : float, optional
            seconds to wait, unbounded by default
        `cancel` : threading.Event, optional

        Returns
        -------
        ChildToParentMessageStatus
        """
        deadline = self.clock() + timeout if timeout is not None else None

        while True:
            status = self.status(message)

            if status != ChildToParentMessageStatus.UNCONFIRMED:
                return status

            if cancel is not None and cancel.is_set():
                raise NitroStackTimeoutError("Stopped waiting for the message to be confirmed")

            if deadline is not None and self.clock() >= deadline:
                raise NitroStackTimeoutError(
                    f"Message was not confirmed within {timeout} seconds"
                )

            self.sleep(retry_delay)
