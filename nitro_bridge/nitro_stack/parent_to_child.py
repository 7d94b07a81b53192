"""
Parent -> child messages: retryable tickets and ETH deposits.

A retryable ticket is created on the child chain once the parent chain
transaction delivering it is picked up. From then on it is either redeemed
(automatically on creation, or manually), cancelled or left to expire.
"""

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from eth_typing import ChecksumAddress
from hexbytes import HexBytes
from web3 import Web3
from web3.contract import Contract
from web3.exceptions import TransactionNotFound
from web3.logs import DISCARD
from web3.types import LogReceipt, TxParams, TxReceipt

from nitro_bridge.utils.chain import encode_contract_call, get_contract, send_transaction
from nitro_bridge.utils.config import (
    ABI_ARB_RETRYABLE_TX,
    ABI_DELAYED_INBOX,
    ARB_RETRYABLE_TX_ADDRESS,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_WAIT_TIMEOUT,
    REDEEM_SCAN_INITIAL_INCREMENT,
    REDEEM_SCAN_TARGET_SECONDS,
)
from nitro_bridge.utils.networks import ArbitrumNetwork
from nitro_bridge.utils.providers import ChainAccess, Writer

from .access import get_w3, require_writer
from .custom_errors import (
    NitroStackConfigError,
    NitroStackDataError,
    NitroStackRetryableTicketError,
    NitroStackStateError,
    NitroStackTimeoutError,
    NitroStackTransactionError,
)
from .gas_estimator import GasEstimator, get_base_fee
from .message_identity import (
    calculate_classic_auto_redeem_id,
    calculate_classic_child_tx_hash,
    calculate_classic_retryable_creation_id,
    calculate_deposit_tx_id,
    calculate_submit_retryable_id,
)
from .types import (
    EthDepositStatus,
    GasOverrides,
    ParentToChildMessageStatus,
    ParentToChildTransactionRequest,
    RetryableData,
    RetryableMessageParams,
    RetryableTicketRequest,
)

logger = logging.getLogger(__name__)

TXN_SUCCESSFUL = 1

REDEEM_SCHEDULED_TOPIC = HexBytes(
    Web3.keccak(text="RedeemScheduled(bytes32,bytes32,uint64,uint64,address,uint256,uint256)")
)
LIFETIME_EXTENDED_TOPIC = HexBytes(Web3.keccak(text="LifetimeExtended(bytes32,uint256)"))


@dataclass(frozen=True)
class ParentToChildMessage:
    """
    A retryable ticket as delivered to the child chain's inbox. Its
    `retryable_creation_id` is the hash of the child chain transaction
    creating the ticket.
    """

    chain_id: int
    sender: ChecksumAddress
    message_number: int
    parent_base_fee: int
    message_data: RetryableMessageParams
    retryable_creation_id: HexBytes = field(init=False)

    def __post_init__(self) -> None:
        data = self.message_data

        object.__setattr__(
            self,
            "retryable_creation_id",
            calculate_submit_retryable_id(
                self.chain_id,
                self.sender,
                self.message_number,
                self.parent_base_fee,
                data.dest_address,
                data.l2_call_value,
                data.l1_value,
                data.max_submission_fee,
                data.excess_fee_refund_address,
                data.call_value_refund_address,
                data.gas_limit,
                data.max_fee_per_gas,
                data.data,
            ),
        )


@dataclass(frozen=True)
class ParentToChildMessageClassic:
    """A retryable ticket created before the nitro upgrade."""

    chain_id: int
    message_number: int
    retryable_creation_id: HexBytes = field(init=False)
    auto_redeem_id: HexBytes = field(init=False)
    child_tx_hash: HexBytes = field(init=False)

    def __post_init__(self) -> None:
        creation_id = calculate_classic_retryable_creation_id(
            self.chain_id, self.message_number
        )
        object.__setattr__(self, "retryable_creation_id", creation_id)
        object.__setattr__(self, "auto_redeem_id", calculate_classic_auto_redeem_id(creation_id))
        object.__setattr__(self, "child_tx_hash", calculate_classic_child_tx_hash(creation_id))


@dataclass(frozen=True)
class EthDepositMessage:
    child_chain_id: int
    message_number: int
    from_address: ChecksumAddress
    to: ChecksumAddress
    value: int
    child_tx_hash: HexBytes = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "child_tx_hash",
            calculate_deposit_tx_id(
                self.child_chain_id,
                self.message_number,
                self.from_address,
                self.to,
                self.value,
            ),
        )


@dataclass(frozen=True)
class RedeemResult:
    """`child_tx_receipt` is only set when the status is REDEEMED."""

    status: ParentToChildMessageStatus
    child_tx_receipt: Optional[TxReceipt] = None


def get_transaction_receipt(w3: Web3, tx_hash: bytes) -> Optional[TxReceipt]:
    try:
        return w3.eth.get_transaction_receipt(HexBytes(tx_hash))
    except TransactionNotFound:
        return None


def wait_for_receipt(
    w3: Web3,
    tx_hash: bytes,
    confirmations: Optional[int] = None,
    timeout: Optional[float] = None,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Optional[TxReceipt]:
    """
    Receipt of `tx_hash` once it has `confirmations` confirmations. Without
    `confirmations` and `timeout` the chain is only asked once. Returns None
    when the receipt didn't show up in time.
    """
    if not confirmations and not timeout:
        return get_transaction_receipt(w3, tx_hash)

    deadline = clock() + (timeout if timeout is not None else DEFAULT_WAIT_TIMEOUT)

    while True:
        receipt = get_transaction_receipt(w3, tx_hash)

        if receipt is not None:
            confirmed = w3.eth.block_number - receipt["blockNumber"] + 1

            if not confirmations or confirmed >= confirmations:
                return receipt

        if clock() >= deadline:
            return None

        logger.debug("Waiting for receipt of %s", HexBytes(tx_hash).to_0x_hex())
        sleep(poll_interval)


class ParentToChildMessenger:
    """
    Reads and drives retryable tickets and ETH deposits on a child chain.

    Read operations work with any `ChainAccess`, `redeem`, `cancel` and
    `keep_alive` need a `Writer` for the child chain.

    Parameters
    ----------
    `child` : ChainAccess
        access to the chain the tickets are created on
    `network` : ArbitrumNetwork
        the child chain
    `parent` : ChainAccess, optional
        access to the parent chain, needed to build creation requests
    `sleep`, `clock` : Callable, optional
        used by the waiting operations
    """

    def __init__(
        self,
        child: ChainAccess,
        network: ArbitrumNetwork,
        parent: Optional[ChainAccess] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.child = child
        self.network = network
        self.parent = parent
        self.poll_interval = poll_interval
        self.sleep = sleep
        self.clock = clock

    @property
    def child_provider(self) -> Web3:
        return get_w3(self.child)

    def _arb_retryable_tx(self) -> Contract:
        return get_contract(self.child_provider, ARB_RETRYABLE_TX_ADDRESS, ABI_ARB_RETRYABLE_TX)

    # creation

    def build_creation_request(
        self,
        request: RetryableTicketRequest,
        overrides: Optional[GasOverrides] = None,
    ) -> ParentToChildTransactionRequest:
        """
        Unsigned parent chain transaction creating a retryable ticket for
        `request`, with estimated fees.

        The ticket's id is only known once the transaction is mined, since it
        depends on the message number the inbox assigns.

        Parameters
        ----------
        `request` : RetryableTicketRequest
        `overrides` : GasOverrides, optional

        Returns
        -------
        ParentToChildTransactionRequest
            `is_valid()` re-estimates and tells whether the fees still suffice
        """
        if self.parent is None:
            raise NitroStackConfigError(
                "A parent chain provider is required to build a retryable ticket creation request"
            )

        parent_provider = get_w3(self.parent)
        estimator = GasEstimator(self.child_provider)

        estimates = estimator.estimate_all(request, get_base_fee(parent_provider), overrides)

        data = encode_contract_call(
            ABI_DELAYED_INBOX,
            "createRetryableTicket",
            [
                request.to,
                request.l2_call_value,
                estimates.max_submission_cost,
                request.excess_fee_refund_address,
                request.call_value_refund_address,
                estimates.gas_limit,
                estimates.max_fee_per_gas,
                bytes(HexBytes(request.data)),
            ],
        )

        tx_request: TxParams = {
            "from": request.from_address,
            "to": self.network.eth_bridge.inbox,
            "data": data,
            "value": estimates.deposit,
        }

        retryable_data = RetryableData(
            from_address=request.from_address,
            to=request.to,
            l2_call_value=request.l2_call_value,
            deposit=estimates.deposit,
            max_submission_cost=estimates.max_submission_cost,
            excess_fee_refund_address=request.excess_fee_refund_address,
            call_value_refund_address=request.call_value_refund_address,
            gas_limit=estimates.gas_limit,
            max_fee_per_gas=estimates.max_fee_per_gas,
            data=HexBytes(request.data),
        )

        def is_valid() -> bool:
            fresh = estimator.estimate_all(request, get_base_fee(parent_provider), overrides)

            return GasEstimator.is_valid(estimates, fresh)

        return ParentToChildTransactionRequest(
            tx_request=tx_request,
            retryable_data=retryable_data,
            is_valid=is_valid,
        )

    def create_retryable_ticket(
        self,
        request: RetryableTicketRequest,
        overrides: Optional[GasOverrides] = None,
    ) -> TxReceipt:
        """
        Build, sign and submit a retryable ticket through the parent chain's
        inbox. `parent` must be a `Writer`.

        Returns
        -------
        TxReceipt
        """
        writer = require_writer(self.parent, "create a retryable ticket")
        creation_request = self.build_creation_request(request, overrides)

        try:
            receipt = send_transaction(writer, creation_request.tx_request)
        except Exception as e:
            raise NitroStackTransactionError(
                f"`createRetryableTicket` transaction failed: {e}", e
            )

        logger.info(
            "Retryable ticket submitted in parent tx %s",
            HexBytes(receipt["transactionHash"]).to_0x_hex(),
        )

        return receipt

    def build_eth_deposit_request(
        self, from_address: ChecksumAddress, amount: int
    ) -> TxParams:
        """
        Unsigned parent chain transaction depositing `amount` wei to
        `from_address` (aliased if it is a contract) on the child chain.
        """
        return {
            "from": from_address,
            "to": self.network.eth_bridge.inbox,
            "data": encode_contract_call(ABI_DELAYED_INBOX, "depositEth", []),
            "value": amount,
        }

    def deposit_eth(self, amount: int) -> TxReceipt:
        writer = require_writer(self.parent, "deposit ETH")

        try:
            return send_transaction(
                writer, self.build_eth_deposit_request(writer.address, amount)
            )
        except Exception as e:
            raise NitroStackTransactionError(f"`depositEth` transaction failed: {e}", e)

    # status

    def get_retryable_creation_receipt(
        self,
        message: ParentToChildMessage,
        confirmations: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> Optional[TxReceipt]:
        """
        Receipt of the child chain transaction creating the ticket, None if
        it has not been created (yet).
        """
        return wait_for_receipt(
            self.child_provider,
            message.retryable_creation_id,
            confirmations,
            timeout,
            self.poll_interval,
            self.sleep,
            self.clock,
        )

    def get_redeem_scheduled_events(self, receipt: TxReceipt) -> list:
        arb_retryable_tx = self._arb_retryable_tx()

        return [
            event
            for event in arb_retryable_tx.events.RedeemScheduled().process_receipt(
                receipt, errors=DISCARD
            )
            if Web3.to_checksum_address(event["address"]) == ARB_RETRYABLE_TX_ADDRESS
        ]

    def get_auto_redeem_attempt(self, message: ParentToChildMessage) -> Optional[TxReceipt]:
        """
        Receipt of the redeem attempted when the ticket was created, if any.
        """
        creation_receipt = self.get_retryable_creation_receipt(message)

        if creation_receipt is None:
            return None

        redeem_events = self.get_redeem_scheduled_events(creation_receipt)

        if len(redeem_events) > 1:
            raise NitroStackDataError(
                f"Unexpected number of redeem events ({len(redeem_events)}) for retryable "
                f"creation tx {message.retryable_creation_id.to_0x_hex()}"
            )

        if len(redeem_events) == 1:
            return get_transaction_receipt(
                self.child_provider, redeem_events[0]["args"]["retryTxHash"]
            )

        return None

    def get_timeout(self, message: ParentToChildMessage) -> int:
        """
        Retrieves the expiry timestamp of the ticket.

        Returns
        -------
        `timestamp` : int
        """
        arb_retryable_tx = self._arb_retryable_tx()

        try:
            return arb_retryable_tx.functions.getTimeout(message.retryable_creation_id).call()
        except Exception as e:
            raise NitroStackRetryableTicketError.from_contract_error(arb_retryable_tx, e)

    def get_beneficiary(self, message: ParentToChildMessage) -> ChecksumAddress:
        """
        Address credited with the call value when the ticket expires or is
        cancelled. Also the only address allowed to cancel it.

        Returns
        -------
        ChecksumAddress
        """
        arb_retryable_tx = self._arb_retryable_tx()

        try:
            beneficiary = arb_retryable_tx.functions.getBeneficiary(
                message.retryable_creation_id
            ).call()
            return Web3.to_checksum_address(beneficiary)
        except Exception as e:
            raise NitroStackRetryableTicketError.from_contract_error(arb_retryable_tx, e)

    def retryable_exists(self, message: ParentToChildMessage) -> bool:
        current_timestamp = self.child_provider.eth.get_block("latest")["timestamp"]

        try:
            timeout = self.get_timeout(message)
        except NitroStackRetryableTicketError as e:
            if e.error_name == "NoTicketWithID":
                return False
            raise

        return current_timestamp <= timeout

    def _get_ticket_logs(
        self, topic: HexBytes, message: ParentToChildMessage, from_block: int, to_block: int
    ) -> List[LogReceipt]:
        return self.child_provider.eth.get_logs(
            {
                "address": ARB_RETRYABLE_TX_ADDRESS,
                "fromBlock": from_block,
                "toBlock": to_block,
                "topics": [topic, message.retryable_creation_id],
            }
        )

    def _find_successful_redeems(
        self, message: ParentToChildMessage, from_block: int, to_block: int
    ) -> List[TxReceipt]:
        arb_retryable_tx = self._arb_retryable_tx()
        receipts = []

        for log in self._get_ticket_logs(REDEEM_SCHEDULED_TOPIC, message, from_block, to_block):
            event = arb_retryable_tx.events.RedeemScheduled().process_log(log)
            receipt = get_transaction_receipt(self.child_provider, event["args"]["retryTxHash"])

            if receipt is not None and receipt["status"] == TXN_SUCCESSFUL:
                receipts.append(receipt)

        return receipts

    def _find_lifetime_extensions(
        self, message: ParentToChildMessage, from_block: int, to_block: int
    ) -> List[int]:
        arb_retryable_tx = self._arb_retryable_tx()

        return [
            arb_retryable_tx.events.LifetimeExtended().process_log(log)["args"]["newTimeout"]
            for log in self._get_ticket_logs(LIFETIME_EXTENDED_TOPIC, message, from_block, to_block)
        ]

    def get_successful_redeem(self, message: ParentToChildMessage) -> RedeemResult:
        """
        Status of the ticket, with the receipt of the transaction that
        redeemed it when it has been redeemed.

        Checking manual redeems requires walking the ticket's whole lifetime
        looking for `RedeemScheduled` events, so the auto-redeem and the
        ticket's existence are checked first.

        Returns
        -------
        RedeemResult
        """
        creation_receipt = self.get_retryable_creation_receipt(message)

        if creation_receipt is None:
            return RedeemResult(ParentToChildMessageStatus.NOT_YET_CREATED)

        if creation_receipt["status"] != TXN_SUCCESSFUL:
            return RedeemResult(ParentToChildMessageStatus.CREATION_FAILED)

        auto_redeem = self.get_auto_redeem_attempt(message)
        if auto_redeem is not None and auto_redeem["status"] == TXN_SUCCESSFUL:
            return RedeemResult(ParentToChildMessageStatus.REDEEMED, auto_redeem)

        if self.retryable_exists(message):
            return RedeemResult(ParentToChildMessageStatus.FUNDS_DEPOSITED_ON_CHILD)

        # the ticket is gone, it was either redeemed manually or it expired
        w3 = self.child_provider
        increment = REDEEM_SCAN_INITIAL_INCREMENT
        from_block = w3.eth.get_block(creation_receipt["blockNumber"])
        timeout = from_block["timestamp"] + self.network.retryable_lifetime_seconds
        queried_ranges: List[tuple[int, int]] = []
        max_block = w3.eth.block_number

        while from_block["number"] < max_block:
            to_block_number = min(from_block["number"] + increment, max_block)
            queried_ranges.append((from_block["number"], to_block_number))

            redeems = self._find_successful_redeems(message, from_block["number"], to_block_number)

            if len(redeems) > 1:
                raise NitroStackDataError(
                    f"Unexpected number of successful redeems. Expected only one redeem for ticket "
                    f"{message.retryable_creation_id.to_0x_hex()}, but found {len(redeems)}."
                )
            if len(redeems) == 1:
                return RedeemResult(ParentToChildMessageStatus.REDEEMED, redeems[0])

            to_block = w3.eth.get_block(to_block_number)

            if to_block["timestamp"] > timeout:
                while queried_ranges:
                    range_from, range_to = queried_ranges.pop(0)
                    new_timeouts = self._find_lifetime_extensions(message, range_from, range_to)

                    if new_timeouts:
                        timeout = max(new_timeouts)
                        break

                if to_block["timestamp"] > timeout:
                    break

                # a later keepalive can still sit in the last range
                del queried_ranges[:-1]

            processed_seconds = to_block["timestamp"] - from_block["timestamp"]
            if processed_seconds != 0:
                increment = math.ceil(increment * REDEEM_SCAN_TARGET_SECONDS / processed_seconds)

            logger.debug(
                "Scanned blocks %s-%s for redeems of %s",
                from_block["number"],
                to_block_number,
                message.retryable_creation_id.to_0x_hex(),
            )
            from_block = to_block

        return RedeemResult(ParentToChildMessageStatus.EXPIRED)

    def status(self, message: ParentToChildMessage) -> ParentToChildMessageStatus:
        return self.get_successful_redeem(message).status

    def wait_for_status(
        self,
        message: ParentToChildMessage,
        confirmations: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> RedeemResult:
        """
        Wait for the ticket to be created, then resolve its status.

        Parameters
        ----------
        `confirmations` : int, optional
        `timeout` : float, optional
            seconds to wait for the creation receipt, 15 minutes by default

        Returns
        -------
        RedeemResult
        """
        chosen_timeout = timeout if timeout is not None else DEFAULT_WAIT_TIMEOUT

        creation_receipt = self.get_retryable_creation_receipt(
            message, confirmations, chosen_timeout
        )

        if creation_receipt is None:
            raise NitroStackTimeoutError(
                "Timed out waiting to retrieve retryable creation receipt: "
                f"{message.retryable_creation_id.to_0x_hex()}."
            )

        return self.get_successful_redeem(message)

    def classic_status(self, message: ParentToChildMessageClassic) -> ParentToChildMessageStatus:
        """
        Status of a ticket created before the nitro upgrade. Those can no
        longer be redeemed, so they are either REDEEMED or EXPIRED.
        """
        creation_receipt = get_transaction_receipt(self.child_provider, message.retryable_creation_id)

        if creation_receipt is None:
            return ParentToChildMessageStatus.NOT_YET_CREATED

        if creation_receipt["status"] != TXN_SUCCESSFUL:
            return ParentToChildMessageStatus.CREATION_FAILED

        child_receipt = get_transaction_receipt(self.child_provider, message.child_tx_hash)

        if child_receipt is not None and child_receipt["status"] == TXN_SUCCESSFUL:
            return ParentToChildMessageStatus.REDEEMED

        return ParentToChildMessageStatus.EXPIRED

    def eth_deposit_status(self, deposit: EthDepositMessage) -> EthDepositStatus:
        receipt = get_transaction_receipt(self.child_provider, deposit.child_tx_hash)

        return EthDepositStatus.PENDING if receipt is None else EthDepositStatus.DEPOSITED

    def wait_for_eth_deposit(
        self,
        deposit: EthDepositMessage,
        confirmations: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> TxReceipt:
        receipt = wait_for_receipt(
            self.child_provider,
            deposit.child_tx_hash,
            confirmations,
            timeout if timeout is not None else DEFAULT_WAIT_TIMEOUT,
            self.poll_interval,
            self.sleep,
            self.clock,
        )

        if receipt is None:
            raise NitroStackTimeoutError(
                f"Timed out waiting for ETH deposit {deposit.child_tx_hash.to_0x_hex()}."
            )

        return receipt

    # lifecycle

    def _ticket_action(self, message: ParentToChildMessage, action: str) -> TxReceipt:
        writer: Writer = require_writer(self.child, f"{action} a retryable ticket")

        status = self.status(message)
        if status != ParentToChildMessageStatus.FUNDS_DEPOSITED_ON_CHILD:
            raise NitroStackStateError.unexpected_status(
                action, ParentToChildMessageStatus.FUNDS_DEPOSITED_ON_CHILD, status
            )

        arb_retryable_tx = self._arb_retryable_tx()
        prep_txn = getattr(arb_retryable_tx.functions, action)(message.retryable_creation_id)

        try:
            txn_payload = prep_txn.build_transaction({"from": writer.address})
            receipt = send_transaction(writer, txn_payload)
        except Exception as e:
            raise NitroStackRetryableTicketError.from_contract_error(arb_retryable_tx, e)

        logger.info(
            "%s of ticket %s in tx %s",
            action,
            message.retryable_creation_id.to_0x_hex(),
            HexBytes(receipt["transactionHash"]).to_0x_hex(),
        )

        return receipt

    def redeem(self, message: ParentToChildMessage) -> TxReceipt:
        """
        Manually redeem a retryable ticket in case the ticket has not redeemed automatically.
        The redeem happens via `redeem()` in ARB_RETRYABLE_TX precompile.

        Returns
        -------
        TxReceipt
        """
        return self._ticket_action(message, "redeem")

    def cancel(self, message: ParentToChildMessage) -> TxReceipt:
        """
        Cancels a retryable ticket, permanently stopping its execution and releasing associated funds.

        Returns
        -------
        TxReceipt
        """
        return self._ticket_action(message, "cancel")

    def keep_alive(self, message: ParentToChildMessage) -> TxReceipt:
        """
        Extends the lifetime of a retryable ticket by setting its expiration to the `current_timestamp + 7 days`.

        Returns
        -------
        TxReceipt
        """
        return self._ticket_action(message, "keepalive")
