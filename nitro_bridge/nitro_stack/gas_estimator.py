import logging
from dataclasses import dataclass
from typing import Callable, Optional, cast

from eth_abi import abi
from hexbytes import HexBytes
from web3 import Web3
from web3.contract import Contract
from web3.types import BlockData, TxParams

from nitro_bridge.utils.chain import function_selector, get_contract, get_revert_data, percent_increase
from nitro_bridge.utils.config import (
    ABI_NODE_INTERFACE,
    DEFAULT_GAS_LIMIT_PERCENT_INCREASE,
    DEFAULT_GAS_PRICE_PERCENT_INCREASE,
    DEFAULT_SUBMISSION_FEE_PERCENT_INCREASE,
    ESTIMATION_SENDER_DEPOSIT,
    NODE_INTERFACE_ADDRESS,
)

from .custom_errors import NitroStackConfigError, NitroStackDataError, NitroStackError
from .types import (
    GasLimitOverride,
    GasOverrides,
    PercentIncreaseOverride,
    RetryableData,
    RetryableGasEstimate,
    RetryableTicketRequest,
)

logger = logging.getLogger(__name__)


RETRYABLE_DATA_SIGNATURE = (
    "RetryableData(address,address,uint256,uint256,uint256,address,address,uint256,uint256,bytes)"
)
RETRYABLE_DATA_TYPES = [
    "address",
    "address",
    "uint256",
    "uint256",
    "uint256",
    "address",
    "address",
    "uint256",
    "uint256",
    "bytes",
]


@dataclass(frozen=True)
class TicketFeeParams:
    """Fee fields handed to a transaction builder."""

    gas_limit: int
    max_fee_per_gas: int
    max_submission_cost: int


# The inbox reverts with `RetryableData` when both are 1, exposing the
# ticket a transaction would create without creating it.
ERROR_TRIGGERING_PARAMS = TicketFeeParams(gas_limit=1, max_fee_per_gas=1, max_submission_cost=1)


class RetryableDataTools:
    """Parsing of the `RetryableData` revert payload."""

    @staticmethod
    def try_parse_error(error: Exception | bytes | str) -> Optional[RetryableData]:
        """
        Returns the decoded `RetryableData` when `error` carries that revert,
        None when it is some other error. A payload with the right selector
        that can't be decoded raises `NitroStackDataError`.
        """
        if isinstance(error, Exception):
            payload = get_revert_data(error)
        else:
            payload = HexBytes(error)

        if payload[:4] != function_selector(RETRYABLE_DATA_SIGNATURE):
            return None

        try:
            decoded = abi.decode(RETRYABLE_DATA_TYPES, bytes(payload[4:]))
        except Exception as e:
            raise NitroStackDataError("Malformed `RetryableData` revert payload", e)

        return RetryableData(
            from_address=Web3.to_checksum_address(decoded[0]),
            to=Web3.to_checksum_address(decoded[1]),
            l2_call_value=decoded[2],
            deposit=decoded[3],
            max_submission_cost=decoded[4],
            excess_fee_refund_address=Web3.to_checksum_address(decoded[5]),
            call_value_refund_address=Web3.to_checksum_address(decoded[6]),
            gas_limit=decoded[7],
            max_fee_per_gas=decoded[8],
            data=HexBytes(decoded[9]),
        )


def get_base_fee(w3: Web3) -> int:
    latest_block: BlockData = w3.eth.get_block("latest")
    base_fee = latest_block.get("baseFeePerGas")

    if base_fee is None:
        raise NitroStackConfigError(
            "Latest block did not contain base fee, ensure provider is connected "
            "to a network that supports EIP 1559."
        )

    return base_fee


class GasEstimator:
    """
    Intends to assist in gas estimations for Retryable Tickets, as Arbitrum Nitro,
    requires the users to manually estimate gas for L1 submission cost and
    L2 execution cost.

    In case, user fails to submit enough L1 submission cost, it will lead to
    transaction failure.

    But, failing to submit enough L2 execution cost, disables the L2 transaction
    for auto-redeem. In such cases, users have to manually redeem the ticket.

    Every estimate can be overridden with a `base` value and padded by a
    `percent_increase`, see `GasOverrides`.

    Parameters
    ----------
    `child_provider` : Web3
        provider of the chain the ticket executes on
    """

    # 500% increase
    GAS_PRICE_PERCENT_INCREASE = DEFAULT_GAS_PRICE_PERCENT_INCREASE
    # 300% increase
    SUBMISSION_FEE_PERCENT_INCREASE = DEFAULT_SUBMISSION_FEE_PERCENT_INCREASE
    GAS_LIMIT_PERCENT_INCREASE = DEFAULT_GAS_LIMIT_PERCENT_INCREASE

    def __init__(self, child_provider: Web3) -> None:
        self.child_provider = child_provider

    def _get_node_interface(self) -> Contract:
        """
        returns Node Interface contract instance

        Returns
        -------
        web3.contract.Contract
        """
        return get_contract(self.child_provider, NODE_INTERFACE_ADDRESS, ABI_NODE_INTERFACE)

    @staticmethod
    def calculate_submission_fee(data_length: int, parent_base_fee: int) -> int:
        """
        Submission fee charged by the inbox, mirrors
        `Inbox.calculateRetryableSubmissionFee`.
        """
        return (1400 + 6 * data_length) * parent_base_fee

    def estimate_submission_fee(
        self,
        parent_base_fee: int,
        data_length: int,
        options: Optional[PercentIncreaseOverride] = None,
    ) -> int:
        """
        returns L1 submission cost padded by 300% (SUBMISSION_FEE_PERCENT_INCREASE)
        unless overridden.

        Parameters
        ----------
        `parent_base_fee` : int
        `data_length` : int
            length of the ticket's calldata in bytes
        `options` : PercentIncreaseOverride, optional

        Returns
        -------
        int
        """
        options = options or PercentIncreaseOverride()

        base = (
            options.base
            if options.base is not None
            else self.calculate_submission_fee(data_length, parent_base_fee)
        )
        increase = (
            options.percent_increase
            if options.percent_increase is not None
            else self.SUBMISSION_FEE_PERCENT_INCREASE
        )

        return percent_increase(base, increase)

    def estimate_max_fee_per_gas(
        self, options: Optional[PercentIncreaseOverride] = None
    ) -> int:
        """
        returns L2 gas price with an added buffer of 500% (GAS_PRICE_PERCENT_INCREASE) as recommended
        in Arbitrum SDK

        Returns
        -------
        int
        """
        options = options or PercentIncreaseOverride()

        base = options.base if options.base is not None else self.child_provider.eth.gas_price
        increase = (
            options.percent_increase
            if options.percent_increase is not None
            else self.GAS_PRICE_PERCENT_INCREASE
        )

        return percent_increase(base, increase)

    def estimate_retryable_ticket_gas_limit(
        self, request: RetryableTicketRequest, sender_deposit: Optional[int] = None
    ) -> int:
        """
        returns gas estimates for Retryable Ticket for L2 execution costs that is to be submitted on L1.

        Parameters
        ----------
        `request` : RetryableTicketRequest
        `sender_deposit` : int, optional
            balance assumed for the sender during simulation, 1 ether on top of
            `l2_call_value` by default

        Returns
        -------
        int
        """
        node_interface = self._get_node_interface()

        if sender_deposit is None:
            sender_deposit = ESTIMATION_SENDER_DEPOSIT + request.l2_call_value

        try:
            gas_limit = node_interface.functions.estimateRetryableTicket(
                request.from_address,
                sender_deposit,
                request.to,
                request.l2_call_value,
                request.excess_fee_refund_address,
                request.call_value_refund_address,
                HexBytes(request.data),
            ).estimate_gas(
                {"from": request.from_address},
                "latest",
            )

            return gas_limit
        except Exception as e:
            raise NitroStackError(f"Retryable ticket gas estimation failed: {e}", e)

    def estimate_all(
        self,
        request: RetryableTicketRequest,
        parent_base_fee: int,
        overrides: Optional[GasOverrides] = None,
    ) -> RetryableGasEstimate:
        """
        A wrapper function that returns all the required gas estimates i.e. L1 submission cost,
        L2 execution cost, L2 gas price and total deposits.

        Parameters
        ----------
        `request` : RetryableTicketRequest
        `parent_base_fee` : int
        `overrides` : GasOverrides, optional

        Returns
        -------
        RetryableGasEstimate
        """
        overrides = overrides or GasOverrides()
        gas_limit_options: GasLimitOverride = overrides.gas_limit

        max_fee_per_gas = self.estimate_max_fee_per_gas(overrides.max_fee_per_gas)
        max_submission_cost = self.estimate_submission_fee(
            parent_base_fee,
            len(HexBytes(request.data)),
            overrides.max_submission_fee,
        )

        base_gas_limit = (
            gas_limit_options.base
            if gas_limit_options.base is not None
            else self.estimate_retryable_ticket_gas_limit(request)
        )
        gas_limit = percent_increase(
            base_gas_limit,
            gas_limit_options.percent_increase
            if gas_limit_options.percent_increase is not None
            else self.GAS_LIMIT_PERCENT_INCREASE,
        )
        gas_limit = max(gas_limit, gas_limit_options.min or 0)

        deposit = (
            overrides.deposit
            if overrides.deposit is not None
            else gas_limit * max_fee_per_gas + max_submission_cost + request.l2_call_value
        )

        logger.debug(
            "Estimated retryable: gas_limit=%s max_fee_per_gas=%s max_submission_cost=%s deposit=%s",
            gas_limit,
            max_fee_per_gas,
            max_submission_cost,
            deposit,
        )

        return RetryableGasEstimate(
            gas_limit=gas_limit,
            max_submission_cost=max_submission_cost,
            max_fee_per_gas=max_fee_per_gas,
            deposit=deposit,
        )

    @staticmethod
    def is_valid(old: RetryableGasEstimate, new: RetryableGasEstimate) -> bool:
        """
        An earlier estimate still holds when it covers the fees of a fresh one.
        """
        return (
            old.max_fee_per_gas >= new.max_fee_per_gas
            and old.max_submission_cost >= new.max_submission_cost
        )

    def populate_function_params(
        self,
        data_func: Callable[[TicketFeeParams], TxParams],
        parent_provider: Web3,
        overrides: Optional[GasOverrides] = None,
    ) -> tuple[RetryableGasEstimate, RetryableData, TxParams]:
        """
        Estimate the fees of a transaction that creates a retryable ticket
        through some contract, e.g. a token gateway, without knowing the
        ticket in advance.

        `data_func` builds the parent chain transaction for the given fees. It
        is first called with `ERROR_TRIGGERING_PARAMS` so that the inbox
        reverts with the `RetryableData` of the ticket, which is then
        estimated and handed back to `data_func`.

        Parameters
        ----------
        `data_func` : Callable[[TicketFeeParams], TxParams]
        `parent_provider` : Web3
        `overrides` : GasOverrides, optional

        Returns
        -------
        Tuple[RetryableGasEstimate, RetryableData, TxParams]
        """
        null_tx = data_func(ERROR_TRIGGERING_PARAMS)

        try:
            parent_provider.eth.call(null_tx)
        except Exception as e:
            retryable = RetryableDataTools.try_parse_error(e)

            if retryable is None:
                raise NitroStackDataError(f"No retryable data found in error: {e}", e)
        else:
            raise NitroStackDataError(
                "Expected the transaction to revert with `RetryableData`"
            )

        request = RetryableTicketRequest(
            from_address=retryable.from_address,
            to=retryable.to,
            l2_call_value=retryable.l2_call_value,
            excess_fee_refund_address=retryable.excess_fee_refund_address,
            call_value_refund_address=retryable.call_value_refund_address,
            data=retryable.data,
        )

        estimates = self.estimate_all(request, get_base_fee(parent_provider), overrides)

        tx = data_func(
            TicketFeeParams(
                gas_limit=estimates.gas_limit,
                max_fee_per_gas=estimates.max_fee_per_gas,
                max_submission_cost=estimates.max_submission_cost,
            )
        )

        return estimates, retryable, cast(TxParams, tx)
