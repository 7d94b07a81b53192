from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Callable, List, Mapping, Optional, TypedDict, Union

from eth_typing import ChecksumAddress
from hexbytes import HexBytes
from web3 import Web3
from web3.types import TxParams


class ParentToChildMessageStatus(Enum):
    NOT_YET_CREATED = 1
    CREATION_FAILED = 2
    FUNDS_DEPOSITED_ON_CHILD = 3
    REDEEMED = 4
    EXPIRED = 5


class EthDepositStatus(Enum):
    PENDING = 1
    DEPOSITED = 2


class ChildToParentMessageStatus(Enum):
    UNCONFIRMED = 1
    CONFIRMED = 2
    EXECUTED = 3


class InboxMessageKind(IntEnum):
    SUBMIT_RETRYABLE_TX = 9
    ETH_DEPOSIT = 12


class GatewayType(Enum):
    STANDARD = 1
    CUSTOM = 2


@dataclass(frozen=True)
class RetryableTicketRequest:
    """A retryable ticket before any fee has been estimated."""

    from_address: ChecksumAddress
    to: ChecksumAddress
    l2_call_value: int
    excess_fee_refund_address: ChecksumAddress
    call_value_refund_address: ChecksumAddress
    data: HexBytes = field(default_factory=lambda: HexBytes(b""))


@dataclass(frozen=True)
class PercentIncreaseOverride:
    base: Optional[int] = None
    percent_increase: Optional[int] = None


@dataclass(frozen=True)
class GasLimitOverride(PercentIncreaseOverride):
    min: Optional[int] = None


@dataclass(frozen=True)
class GasOverrides:
    gas_limit: GasLimitOverride = field(default_factory=GasLimitOverride)
    max_submission_fee: PercentIncreaseOverride = field(
        default_factory=PercentIncreaseOverride
    )
    max_fee_per_gas: PercentIncreaseOverride = field(
        default_factory=PercentIncreaseOverride
    )
    deposit: Optional[int] = None


@dataclass(frozen=True)
class RetryableGasEstimate:
    gas_limit: int
    max_submission_cost: int
    max_fee_per_gas: int
    deposit: int


@dataclass(frozen=True)
class RetryableMessageParams:
    """Fields of a retryable ticket as delivered to the child chain's inbox."""

    dest_address: ChecksumAddress
    l2_call_value: int
    l1_value: int
    max_submission_fee: int
    excess_fee_refund_address: ChecksumAddress
    call_value_refund_address: ChecksumAddress
    gas_limit: int
    max_fee_per_gas: int
    data: HexBytes


@dataclass(frozen=True)
class RetryableData:
    """Arguments of the `RetryableData` error thrown by the inbox during estimation."""

    from_address: ChecksumAddress
    to: ChecksumAddress
    l2_call_value: int
    deposit: int
    max_submission_cost: int
    excess_fee_refund_address: ChecksumAddress
    call_value_refund_address: ChecksumAddress
    gas_limit: int
    max_fee_per_gas: int
    data: HexBytes


@dataclass(frozen=True)
class ParentToChildTransactionRequest:
    """
    Unsigned parent chain transaction with the ticket it creates and a
    predicate telling whether its fees still cover the current chain state.
    """

    tx_request: TxParams
    retryable_data: RetryableData
    is_valid: Callable[[], bool] = field(compare=False)


@dataclass(frozen=True)
class ChildToParentTransactionRequest:
    tx_request: TxParams


class OutboxProofResponse(TypedDict):
    send: HexBytes
    root: HexBytes
    proof: List[HexBytes]


class MessageBatchProofInfo(TypedDict):
    proof: List[HexBytes]
    path: int
    l2Sender: ChecksumAddress
    l1Dest: ChecksumAddress
    l2Block: int
    l1Block: int
    timestamp: int
    amount: int
    calldataForL1: HexBytes


@dataclass(frozen=True)
class L2ForwarderParams:
    """
    Arguments of `L2ForwarderFactory.callForwarder`. The forwarder at
    `(owner, router_or_inbox, to)` bridges `l2_token` on to the grandchild.
    """

    owner: ChecksumAddress
    l2_token: ChecksumAddress
    l3_fee_token_l2_addr: ChecksumAddress
    router_or_inbox: ChecksumAddress
    to: ChecksumAddress
    gas_limit: int
    gas_price_bid: int
    max_submission_cost: int

    def as_tuple(self) -> tuple:
        return (
            self.owner,
            self.l2_token,
            self.l3_fee_token_l2_addr,
            self.router_or_inbox,
            self.to,
            self.gas_limit,
            self.gas_price_bid,
            self.max_submission_cost,
        )

    @classmethod
    def from_abi(cls, params: Mapping[str, Any]) -> "L2ForwarderParams":
        return cls(
            owner=Web3.to_checksum_address(params["owner"]),
            l2_token=Web3.to_checksum_address(params["l2Token"]),
            l3_fee_token_l2_addr=Web3.to_checksum_address(params["l3FeeTokenL2Addr"]),
            router_or_inbox=Web3.to_checksum_address(params["routerOrInbox"]),
            to=Web3.to_checksum_address(params["to"]),
            gas_limit=params["gasLimit"],
            gas_price_bid=params["gasPriceBid"],
            max_submission_cost=params["maxSubmissionCost"],
        )


@dataclass(frozen=True)
class ForwarderParams:
    """
    Parameters a relayed forwarder on the intermediate chain bridges its
    balance with. Also the salt its address is derived from.
    """

    owner: ChecksumAddress
    token: ChecksumAddress
    router: ChecksumAddress
    to: ChecksumAddress
    gas_limit: int
    gas_price: int
    relayer_payment: int = 0

    def as_tuple(self) -> tuple:
        return (
            self.owner,
            self.token,
            self.router,
            self.to,
            self.gas_limit,
            self.gas_price,
            self.relayer_payment,
        )


@dataclass(frozen=True)
class ManualRetryableGasParams:
    """
    Caller supplied gas values for the retryables of a teleport. Any value
    left unset is estimated, which is only possible through standard gateways.
    """

    l1l2_token_bridge_gas_limit: Optional[int] = None
    l2l3_token_bridge_gas_limit: Optional[int] = None
    l2_forwarder_factory_gas_limit: Optional[int] = None
    # calldata sizes of the bridge retryables, used for submission costs
    l1l2_token_bridge_retryable_size: Optional[int] = None
    l2l3_token_bridge_retryable_size: Optional[int] = None


@dataclass(frozen=True)
class TeleportGasParams:
    l2_gas_price: int
    l3_gas_price: int
    l2_forwarder_factory_gas_limit: int
    l1l2_token_bridge_gas_limit: int
    l2l3_token_bridge_gas_limit: int
    l2_forwarder_factory_max_submission_cost: int
    l1l2_token_bridge_max_submission_cost: int
    l2l3_token_bridge_max_submission_cost: int
    # fee token legs, zero while the grandchild pays fees in ETH
    l1l2_fee_token_bridge_gas_limit: int = 0
    l1l2_fee_token_bridge_max_submission_cost: int = 0

    def as_tuple(self) -> tuple:
        return (
            self.l2_gas_price,
            self.l3_gas_price,
            self.l2_forwarder_factory_gas_limit,
            self.l1l2_fee_token_bridge_gas_limit,
            self.l1l2_token_bridge_gas_limit,
            self.l2l3_token_bridge_gas_limit,
            self.l2_forwarder_factory_max_submission_cost,
            self.l1l2_fee_token_bridge_max_submission_cost,
            self.l1l2_token_bridge_max_submission_cost,
            self.l2l3_token_bridge_max_submission_cost,
        )

    @classmethod
    def from_abi(cls, params: Mapping[str, Any]) -> "TeleportGasParams":
        return cls(
            l2_gas_price=params["l2GasPriceBid"],
            l3_gas_price=params["l3GasPriceBid"],
            l2_forwarder_factory_gas_limit=params["l2ForwarderFactoryGasLimit"],
            l1l2_token_bridge_gas_limit=params["l1l2TokenBridgeGasLimit"],
            l2l3_token_bridge_gas_limit=params["l2l3TokenBridgeGasLimit"],
            l2_forwarder_factory_max_submission_cost=params["l2ForwarderFactoryMaxSubmissionCost"],
            l1l2_token_bridge_max_submission_cost=params["l1l2TokenBridgeMaxSubmissionCost"],
            l2l3_token_bridge_max_submission_cost=params["l2l3TokenBridgeMaxSubmissionCost"],
            l1l2_fee_token_bridge_gas_limit=params["l1l2FeeTokenBridgeGasLimit"],
            l1l2_fee_token_bridge_max_submission_cost=params["l1l2FeeTokenBridgeMaxSubmissionCost"],
        )


@dataclass(frozen=True)
class TeleportCosts:
    l1l2_token_bridge_cost: int
    l2_forwarder_factory_cost: int
    l2l3_token_bridge_cost: int
    relayer_payment: int = 0

    @property
    def total(self) -> int:
        return (
            self.l1l2_token_bridge_cost
            + self.l2_forwarder_factory_cost
            + self.l2l3_token_bridge_cost
            + self.relayer_payment
        )


@dataclass(frozen=True)
class TeleportStatus:
    bridge_to_child: ParentToChildMessageStatus
    forwarder_call: ParentToChildMessageStatus
    bridge_to_grandchild: ParentToChildMessageStatus
    completed: bool
    # the forwarder was emptied by another caller before the factory retryable redeemed
    l2_forwarder_factory_front_ran: bool = False


@dataclass(frozen=True)
class EthL1L3DepositStatus:
    l2_retryable: ParentToChildMessageStatus
    l3_retryable: ParentToChildMessageStatus
    completed: bool


@dataclass(frozen=True)
class TeleportRequest:
    """
    Unsigned parent chain transaction of a teleport with the values it was
    built from. `forwarder_params` is what the forwarder on the intermediate
    chain is called with.
    """

    tx_request: TxParams
    gas_params: TeleportGasParams
    costs: TeleportCosts
    forwarder_params: Union[L2ForwarderParams, ForwarderParams]
    forwarder_address: ChecksumAddress
