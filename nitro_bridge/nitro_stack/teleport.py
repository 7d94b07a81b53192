"""
Teleportation: deposits from a parent chain to a grandchild chain (L1 -> L2
-> L3) in one parent chain transaction.

Tokens travel through a forwarder contract on the intermediate chain whose
address is known before it exists, so it can be funded first. Two flavors
fund the call to the forwarder differently:

- `Erc20L1L3Bridger` goes through the `L1Teleporter` contract, which creates
  a second retryable ticket calling the forwarder factory. The forwarder
  address comes from the contracts' `l2ForwarderAddress(owner, routerOrInbox, to)`.
- `RelayedErc20L1L3Bridger` deposits straight through the gateway router and
  appends the forwarder parameters to the calldata, for an off-chain relayer
  to call the factory and collect a relayer payment. Its forwarder address is
  derived with CREATE2 from the hash of those parameters.

`EthL1L3Bridger` sends ETH with a retryable ticket whose call creates
another retryable ticket on the intermediate chain.
"""

import logging
from dataclasses import dataclass, replace
from typing import List, NamedTuple, Optional, Sequence, Tuple

from eth_abi import abi
from eth_typing import ChecksumAddress
from hexbytes import HexBytes
from web3 import Web3
from web3.constants import ADDRESS_ZERO
from web3.logs import DISCARD
from web3.types import TxData, TxParams, TxReceipt

from nitro_bridge.utils.chain import (
    decode_contract_call,
    encode_contract_call,
    get_contract,
    percent_increase,
    send_transaction,
)
from nitro_bridge.utils.config import (
    ABI_DELAYED_INBOX,
    ABI_ERC20,
    ABI_L1_GATEWAY_ROUTER,
    ABI_L1_TELEPORTER,
    ABI_L2_FORWARDER,
    ABI_L2_FORWARDER_FACTORY,
    ABI_NODE_INTERFACE,
    ABI_RELAYED_L2_FORWARDER_FACTORY,
    NODE_INTERFACE_ADDRESS,
    TELEPORT_FORWARDER_FACTORY_GAS_LIMIT,
    TELEPORT_GAS_LIMIT_PERCENT_INCREASE,
    TELEPORT_GAS_PRICE_PERCENT_INCREASE,
    TELEPORT_RELAYED_FORWARD_GAS_LIMIT,
    TELEPORT_RELAYER_PAYMENT_PERCENT_INCREASE,
)
from nitro_bridge.utils.networks import (
    ArbitrumNetwork,
    NetworkRegistry,
    Teleporter,
    TokenBridge,
)
from nitro_bridge.utils.providers import ChainAccess

from .access import check_chain_id, get_w3, require_writer
from .address_alias import apply_alias
from .custom_errors import NitroStackConfigError, NitroStackDataError, NitroStackTransactionError
from .gas_estimator import GasEstimator
from .parent_to_child import ParentToChildMessage, ParentToChildMessenger
from .parent_transaction import ParentTransactionReceipt
from .types import (
    EthL1L3DepositStatus,
    ForwarderParams,
    GasOverrides,
    GatewayType,
    L2ForwarderParams,
    ManualRetryableGasParams,
    ParentToChildMessageStatus,
    ParentToChildTransactionRequest,
    RetryableMessageParams,
    RetryableTicketRequest,
    TeleportCosts,
    TeleportGasParams,
    TeleportRequest,
    TeleportStatus,
)

logger = logging.getLogger(__name__)

FORWARDER_PARAMS_TYPE = "(address,address,address,address,uint256,uint256,uint256)"

BRIDGED_TO_L3_TOPIC = HexBytes(Web3.keccak(text="BridgedToL3(uint256,uint256)"))

# calldata of `callForwarder` without its selector, eight static words
FORWARDER_FACTORY_CALLDATA_SIZE = 8 * 32

# relayer instructions: abi encoded (ForwarderParams, chain id) followed by a tag
RELAYED_TELEPORT_TAG = HexBytes(Web3.keccak(text="RELAYED_TELEPORT_V1")[:4])
RELAYER_INSTRUCTIONS_TYPES = [FORWARDER_PARAMS_TYPE, "uint256"]
RELAYER_INSTRUCTIONS_SIZE = 8 * 32

# EIP-1167 minimal proxy creation code around the implementation address
CLONE_INIT_CODE_PREFIX = HexBytes("0x3d602d80600a3d3981f3363d3d373d3d3d363d73")
CLONE_INIT_CODE_SUFFIX = HexBytes("0x5af43d82803e903d91602b57fd5bf3")

# stands in for the not yet known forwarder while estimating the bridge legs
ESTIMATION_FORWARDER = Web3.to_checksum_address("0x" + "1f" * 20)

MAX_UINT256 = 2**256 - 1


class RetryableGasValues(NamedTuple):
    gas_limit: int
    max_submission_cost: int


@dataclass(frozen=True)
class TeleportParams:
    """Arguments of an `L1Teleporter.teleport` call."""

    l1_token: ChecksumAddress
    l1l2_router: ChecksumAddress
    l2l3_router_or_inbox: ChecksumAddress
    to: ChecksumAddress
    amount: int
    gas_params: TeleportGasParams
    # zero address while the grandchild pays fees in ETH
    l3_fee_token_l1_addr: ChecksumAddress = ADDRESS_ZERO

    def as_tuple(self) -> tuple:
        return (
            self.l1_token,
            self.l3_fee_token_l1_addr,
            self.l1l2_router,
            self.l2l3_router_or_inbox,
            self.to,
            self.amount,
            self.gas_params.as_tuple(),
        )

    @classmethod
    def from_abi(cls, params) -> "TeleportParams":
        return cls(
            l1_token=Web3.to_checksum_address(params["l1Token"]),
            l1l2_router=Web3.to_checksum_address(params["l1l2Router"]),
            l2l3_router_or_inbox=Web3.to_checksum_address(params["l2l3RouterOrInbox"]),
            to=Web3.to_checksum_address(params["to"]),
            amount=params["amount"],
            gas_params=TeleportGasParams.from_abi(params["gasParams"]),
            l3_fee_token_l1_addr=Web3.to_checksum_address(params["l3FeeTokenL1Addr"]),
        )


def forwarder_params_from_tuple(values: Sequence) -> ForwarderParams:
    return ForwarderParams(
        owner=Web3.to_checksum_address(values[0]),
        token=Web3.to_checksum_address(values[1]),
        router=Web3.to_checksum_address(values[2]),
        to=Web3.to_checksum_address(values[3]),
        gas_limit=values[4],
        gas_price=values[5],
        relayer_payment=values[6],
    )


def calculate_create2_address(
    deployer: ChecksumAddress, salt: bytes, init_code_hash: bytes
) -> ChecksumAddress:
    """
    Address of a contract deployed with CREATE2, as defined in EIP-1014.

    Parameters
    ----------
    `deployer` : ChecksumAddress
    `salt` : bytes
        32 bytes
    `init_code_hash` : bytes
        keccak256 of the creation code

    Returns
    -------
    ChecksumAddress
    """
    salt = bytes(HexBytes(salt))

    if len(salt) != 32:
        raise NitroStackDataError(f"CREATE2 salt must be 32 bytes, got {len(salt)}")

    digest = Web3.keccak(
        b"\xff" + bytes(HexBytes(deployer)) + salt + bytes(HexBytes(init_code_hash))
    )

    return Web3.to_checksum_address("0x" + digest[12:].hex())


def forwarder_init_code(implementation: ChecksumAddress) -> HexBytes:
    return HexBytes(
        CLONE_INIT_CODE_PREFIX + HexBytes(implementation) + CLONE_INIT_CODE_SUFFIX
    )


def forwarder_salt(params: ForwarderParams) -> HexBytes:
    return HexBytes(Web3.keccak(abi.encode([FORWARDER_PARAMS_TYPE], [params.as_tuple()])))


def predict_forwarder_address(
    factory: ChecksumAddress, implementation: ChecksumAddress, params: ForwarderParams
) -> ChecksumAddress:
    """
    Address of the forwarder the factory deploys for `params`, a clone of
    `implementation` salted with the hash of the parameters.
    """
    return calculate_create2_address(
        factory,
        forwarder_salt(params),
        Web3.keccak(forwarder_init_code(implementation)),
    )


def encode_relayer_instructions(params: ForwarderParams, chain_id: int) -> HexBytes:
    """
    Tail appended to a relayed deposit's calldata. Contracts ignore trailing
    calldata, so the deposit itself is unaffected.
    """
    encoded = abi.encode(RELAYER_INSTRUCTIONS_TYPES, [params.as_tuple(), chain_id])

    return HexBytes(encoded + RELAYED_TELEPORT_TAG)


def decode_relayer_instructions(calldata: bytes) -> Tuple[ForwarderParams, int]:
    """
    Forwarder parameters and intermediate chain id from the tail of a
    relayed deposit's calldata.

    Returns
    -------
    Tuple[ForwarderParams, chain_id: int]
    """
    data = HexBytes(calldata)
    tail_size = RELAYER_INSTRUCTIONS_SIZE + len(RELAYED_TELEPORT_TAG)

    if len(data) < 4 + tail_size or data[-len(RELAYED_TELEPORT_TAG):] != RELAYED_TELEPORT_TAG:
        raise NitroStackDataError("Calldata does not carry relayer instructions")

    try:
        params, chain_id = abi.decode(
            RELAYER_INSTRUCTIONS_TYPES, bytes(data[-tail_size:-len(RELAYED_TELEPORT_TAG)])
        )
    except Exception as e:
        raise NitroStackDataError("Malformed relayer instructions", e)

    return forwarder_params_from_tuple(params), chain_id


def parse_relayer_instructions(
    tx: TxData, registry: NetworkRegistry
) -> Tuple[ArbitrumNetwork, ForwarderParams]:
    """
    Relayer instructions of a relayed deposit transaction, with the network
    whose gateway router it was sent to.
    """
    to = Web3.to_checksum_address(tx["to"])

    network = next(
        (
            n
            for n in registry.all()
            if n.token_bridge is not None and n.token_bridge.parent_gateway_router == to
        ),
        None,
    )

    if network is None:
        raise NitroStackConfigError(f"No registered network has gateway router {to}")

    params, chain_id = decode_relayer_instructions(tx["input"])

    if chain_id != network.chain_id:
        raise NitroStackDataError(
            f"Relayer instructions are for chain {chain_id}, "
            f"but the deposit went to network {network.chain_id}"
        )

    return network, params


def decode_create_retryable_ticket(data: bytes, l1_value: int) -> RetryableMessageParams:
    try:
        decoded = decode_contract_call(ABI_DELAYED_INBOX, data, "createRetryableTicket")
    except ValueError as e:
        raise NitroStackDataError("Not createRetryableTicket data", e)

    return RetryableMessageParams(
        dest_address=Web3.to_checksum_address(decoded["to"]),
        l2_call_value=decoded["l2CallValue"],
        l1_value=l1_value,
        max_submission_fee=decoded["maxSubmissionCost"],
        excess_fee_refund_address=Web3.to_checksum_address(decoded["excessFeeRefundAddress"]),
        call_value_refund_address=Web3.to_checksum_address(decoded["callValueRefundAddress"]),
        gas_limit=decoded["gasLimit"],
        max_fee_per_gas=decoded["maxFeePerGas"],
        data=HexBytes(decoded["data"]),
    )


class BaseL1L3Bridger:
    """
    Shared plumbing of the L1 -> L3 bridgers.

    Parameters
    ----------
    `l1`, `l2`, `l3` : ChainAccess
        access to the parent, intermediate and grandchild chains
    `l2_network` : ArbitrumNetwork
        the intermediate chain
    `l3_network` : ArbitrumNetwork
        the grandchild chain, a child of `l2_network`
    """

    def __init__(
        self,
        l1: ChainAccess,
        l2: ChainAccess,
        l3: ChainAccess,
        l2_network: ArbitrumNetwork,
        l3_network: ArbitrumNetwork,
    ) -> None:
        if l3_network.parent_chain_id != l2_network.chain_id:
            raise NitroStackConfigError(
                f"Network {l3_network.chain_id} is not a child of network {l2_network.chain_id}"
            )

        self.l1 = l1
        self.l2 = l2
        self.l3 = l3
        self.l2_network = l2_network
        self.l3_network = l3_network
        self.l1_chain_id = l2_network.parent_chain_id

        self.gas_price_percent_increase = TELEPORT_GAS_PRICE_PERCENT_INCREASE
        self.gas_limit_percent_increase = TELEPORT_GAS_LIMIT_PERCENT_INCREASE

    @property
    def l1_provider(self) -> Web3:
        return get_w3(self.l1)

    @property
    def l2_provider(self) -> Web3:
        return get_w3(self.l2)

    @property
    def l3_provider(self) -> Web3:
        return get_w3(self.l3)

    def check_networks(self) -> None:
        """Raises `NitroStackConfigError` when a provider is on the wrong chain."""
        check_chain_id(self.l1, self.l1_chain_id)
        check_chain_id(self.l2, self.l2_network.chain_id)
        check_chain_id(self.l3, self.l3_network.chain_id)

    def _padded_gas_price(self, w3: Web3) -> int:
        return percent_increase(w3.eth.gas_price, self.gas_price_percent_increase)

    def _l2_messenger(self) -> ParentToChildMessenger:
        return ParentToChildMessenger(self.l2, self.l2_network, self.l1)

    def _l3_messenger(self) -> ParentToChildMessenger:
        return ParentToChildMessenger(self.l3, self.l3_network, self.l2)

    def _l1_messages(self, receipt: TxReceipt) -> List[ParentToChildMessage]:
        return ParentTransactionReceipt(
            receipt, self.l1_provider, self.l2_network
        ).get_parent_to_child_messages(self.l2_network.chain_id)

    def _l2_messages(self, receipt: TxReceipt) -> List[ParentToChildMessage]:
        return ParentTransactionReceipt(
            receipt, self.l2_provider, self.l3_network
        ).get_parent_to_child_messages(self.l3_network.chain_id)

    def _send_l1(self, tx_request: TxParams, action: str) -> TxReceipt:
        writer = require_writer(self.l1, action)

        try:
            receipt = send_transaction(writer, tx_request)
        except Exception as e:
            raise NitroStackTransactionError(f"Failed to {action}: {e}", e)

        logger.info(
            "Sent %s in parent tx %s", action, HexBytes(receipt["transactionHash"]).to_0x_hex()
        )

        return receipt


class Erc20L1L3Bridger(BaseL1L3Bridger):
    """
    Teleports ERC20 tokens through the `L1Teleporter` contract.

    The teleporter creates two retryable tickets on L2: the token deposit to
    the forwarder and a call to the forwarder factory, which deploys the
    forwarder and bridges the tokens on to L3.

    Gas of the token bridge legs is only estimated when both legs use the
    standard ERC20 gateway. Tokens routed through custom gateways need their
    gas limits and calldata sizes in `ManualRetryableGasParams`.
    """

    def __init__(
        self,
        l1: ChainAccess,
        l2: ChainAccess,
        l3: ChainAccess,
        l2_network: ArbitrumNetwork,
        l3_network: ArbitrumNetwork,
    ) -> None:
        super().__init__(l1, l2, l3, l2_network, l3_network)

        for network in (l2_network, l3_network):
            if network.token_bridge is None:
                raise NitroStackConfigError(
                    f"Network {network.chain_id} does not have a token bridge"
                )

    @property
    def teleporter(self) -> Teleporter:
        if self.l2_network.teleporter is None:
            raise NitroStackConfigError(
                f"Network {self.l2_network.chain_id} does not have teleporter contracts"
            )

        return self.l2_network.teleporter

    @property
    def l2_token_bridge(self) -> TokenBridge:
        return self.l2_network.token_bridge  # type: ignore[return-value]

    @property
    def l3_token_bridge(self) -> TokenBridge:
        return self.l3_network.token_bridge  # type: ignore[return-value]

    # tokens and gateways

    def get_l2_erc20_address(self, l1_token: ChecksumAddress) -> ChecksumAddress:
        router = get_contract(
            self.l1_provider, self.l2_token_bridge.parent_gateway_router, ABI_L1_GATEWAY_ROUTER
        )

        return Web3.to_checksum_address(
            router.functions.calculateL2TokenAddress(l1_token).call()
        )

    def get_l3_erc20_address(self, l1_token: ChecksumAddress) -> ChecksumAddress:
        router = get_contract(
            self.l2_provider, self.l3_token_bridge.parent_gateway_router, ABI_L1_GATEWAY_ROUTER
        )

        return Web3.to_checksum_address(
            router.functions.calculateL2TokenAddress(self.get_l2_erc20_address(l1_token)).call()
        )

    def get_l1l2_gateway_address(self, l1_token: ChecksumAddress) -> ChecksumAddress:
        router = get_contract(
            self.l1_provider, self.l2_token_bridge.parent_gateway_router, ABI_L1_GATEWAY_ROUTER
        )

        return Web3.to_checksum_address(router.functions.getGateway(l1_token).call())

    def get_l2l3_gateway_address(self, l1_token: ChecksumAddress) -> ChecksumAddress:
        router = get_contract(
            self.l2_provider, self.l3_token_bridge.parent_gateway_router, ABI_L1_GATEWAY_ROUTER
        )

        return Web3.to_checksum_address(
            router.functions.getGateway(self.get_l2_erc20_address(l1_token)).call()
        )

    def determine_type(self, l1_token: ChecksumAddress) -> Tuple[GatewayType, GatewayType]:
        """
        Gateway types of the L1 -> L2 and L2 -> L3 legs for `l1_token`.

        Returns
        -------
        Tuple[GatewayType, GatewayType]
        """
        l1l2 = (
            GatewayType.STANDARD
            if self.get_l1l2_gateway_address(l1_token) == self.l2_token_bridge.parent_erc20_gateway
            else GatewayType.CUSTOM
        )
        l2l3 = (
            GatewayType.STANDARD
            if self.get_l2l3_gateway_address(l1_token) == self.l3_token_bridge.parent_erc20_gateway
            else GatewayType.CUSTOM
        )

        return l1l2, l2l3

    # forwarder

    def l2_forwarder_address(
        self,
        owner: ChecksumAddress,
        router_or_inbox: ChecksumAddress,
        to: ChecksumAddress,
        on_l2: bool = False,
    ) -> ChecksumAddress:
        """
        Address of the forwarder for `(owner, router_or_inbox, to)`, asked
        from the L1 teleporter or, with `on_l2`, from the L2 forwarder factory.
        """
        if on_l2:
            predictor = get_contract(
                self.l2_provider, self.teleporter.l2_forwarder_factory, ABI_L2_FORWARDER_FACTORY
            )
        else:
            predictor = get_contract(
                self.l1_provider, self.teleporter.l1_teleporter, ABI_L1_TELEPORTER
            )

        return Web3.to_checksum_address(
            predictor.functions.l2ForwarderAddress(owner, router_or_inbox, to).call()
        )

    def _forwarder_of(self, params: L2ForwarderParams, on_l2: bool = False) -> ChecksumAddress:
        return self.l2_forwarder_address(params.owner, params.router_or_inbox, params.to, on_l2)

    def _default_owner(self, from_address: ChecksumAddress) -> ChecksumAddress:
        # the teleporter aliases contract senders
        if len(self.l1_provider.eth.get_code(from_address)) > 0:
            logger.warning(
                "Depositor %s is a contract, its forwarder is owned by its alias", from_address
            )
            return apply_alias(from_address)

        return from_address

    # approvals

    def _approval_spender(self, l1_token: ChecksumAddress) -> ChecksumAddress:
        return self.teleporter.l1_teleporter

    def get_approve_token_request(
        self, l1_token: ChecksumAddress, amount: Optional[int] = None
    ) -> TxParams:
        token = get_contract(self.l1_provider, l1_token, ABI_ERC20)

        data = token.encode_abi(
            "approve",
            args=[self._approval_spender(l1_token), MAX_UINT256 if amount is None else amount],
        )

        return {"to": token.address, "data": HexBytes(data), "value": 0}

    def approve_token(self, l1_token: ChecksumAddress, amount: Optional[int] = None) -> TxReceipt:
        return self._send_l1(self.get_approve_token_request(l1_token, amount), "approve token")

    def allowance(self, l1_token: ChecksumAddress, owner: ChecksumAddress) -> int:
        token = get_contract(self.l1_provider, l1_token, ABI_ERC20)

        return token.functions.allowance(owner, self._approval_spender(l1_token)).call()

    # gas

    def _token_bridge_gas_estimates(
        self,
        parent_provider: Web3,
        child_provider: Web3,
        gateway_address: ChecksumAddress,
        token: ChecksumAddress,
        from_address: ChecksumAddress,
        to: ChecksumAddress,
        amount: int,
    ) -> Tuple[int, int]:
        """
        Unpadded gas limit and calldata size of a standard gateway deposit.

        Returns
        -------
        Tuple[gas_limit: int, calldata_size: int]
        """
        gateway = get_contract(parent_provider, gateway_address, ABI_L1_GATEWAY_ROUTER)

        outbound_calldata = HexBytes(
            gateway.functions.getOutboundCalldata(token, from_address, to, amount, b"").call()
        )
        counterpart = Web3.to_checksum_address(gateway.functions.counterpartGateway().call())

        gas_limit = GasEstimator(child_provider).estimate_retryable_ticket_gas_limit(
            RetryableTicketRequest(
                from_address=gateway_address,
                to=counterpart,
                l2_call_value=0,
                excess_fee_refund_address=to,
                call_value_refund_address=apply_alias(from_address),
                data=outbound_calldata,
            )
        )

        return gas_limit, len(outbound_calldata)

    def _leg_gas_values(
        self,
        gas_limit: Optional[int],
        calldata_size: Optional[int],
        parent_gas_price: int,
        estimate,
    ) -> RetryableGasValues:
        if gas_limit is None or calldata_size is None:
            estimated_limit, estimated_size = estimate()

            if gas_limit is None:
                gas_limit = percent_increase(estimated_limit, self.gas_limit_percent_increase)
            if calldata_size is None:
                calldata_size = estimated_size

        return RetryableGasValues(
            gas_limit=gas_limit,
            max_submission_cost=GasEstimator.calculate_submission_fee(
                calldata_size, parent_gas_price
            ),
        )

    def _estimate_token_bridge_legs(
        self,
        l1_token: ChecksumAddress,
        amount: int,
        to: ChecksumAddress,
        manual: ManualRetryableGasParams,
        l1l2_from: ChecksumAddress,
    ) -> Tuple[int, int, int, RetryableGasValues, RetryableGasValues]:
        """
        Returns
        -------
        Tuple[l1_gas_price, l2_gas_price, l3_gas_price, l1l2: RetryableGasValues, l2l3: RetryableGasValues]
        """
        l1l2_type, l2l3_type = self.determine_type(l1_token)

        if GatewayType.CUSTOM in (l1l2_type, l2l3_type):
            missing = [
                name
                for name in (
                    "l1l2_token_bridge_gas_limit",
                    "l2l3_token_bridge_gas_limit",
                    "l1l2_token_bridge_retryable_size",
                    "l2l3_token_bridge_retryable_size",
                )
                if getattr(manual, name) is None
            ]

            if missing:
                raise NitroStackConfigError(
                    f"Token {l1_token} is bridged through a custom gateway, gas can't be "
                    f"estimated. Set {', '.join(missing)} in ManualRetryableGasParams."
                )

        l1_gas_price = self._padded_gas_price(self.l1_provider)
        l2_gas_price = self._padded_gas_price(self.l2_provider)
        l3_gas_price = self._padded_gas_price(self.l3_provider)

        l1l2 = self._leg_gas_values(
            manual.l1l2_token_bridge_gas_limit,
            manual.l1l2_token_bridge_retryable_size,
            l1_gas_price,
            lambda: self._token_bridge_gas_estimates(
                self.l1_provider,
                self.l2_provider,
                self.get_l1l2_gateway_address(l1_token),
                l1_token,
                l1l2_from,
                ESTIMATION_FORWARDER,
                amount,
            ),
        )

        l2l3 = self._leg_gas_values(
            manual.l2l3_token_bridge_gas_limit,
            manual.l2l3_token_bridge_retryable_size,
            l2_gas_price,
            lambda: self._token_bridge_gas_estimates(
                self.l2_provider,
                self.l3_provider,
                self.get_l2l3_gateway_address(l1_token),
                self.get_l2_erc20_address(l1_token),
                ESTIMATION_FORWARDER,
                to,
                amount,
            ),
        )

        return l1_gas_price, l2_gas_price, l3_gas_price, l1l2, l2l3

    def get_teleport_gas_params(
        self,
        l1_token: ChecksumAddress,
        amount: int,
        to: ChecksumAddress,
        manual: Optional[ManualRetryableGasParams] = None,
    ) -> TeleportGasParams:
        """
        Gas prices, limits and submission costs of the three retryables a
        teleport creates. Estimated limits are padded by 100%, gas prices by
        500%. Values set in `manual` are used as they are.

        Parameters
        ----------
        `l1_token` : ChecksumAddress
        `amount` : int
        `to` : ChecksumAddress
            recipient on L3
        `manual` : ManualRetryableGasParams, optional

        Returns
        -------
        TeleportGasParams
        """
        manual = manual or ManualRetryableGasParams()

        l1_gas_price, l2_gas_price, l3_gas_price, l1l2, l2l3 = self._estimate_token_bridge_legs(
            l1_token, amount, to, manual, self.teleporter.l1_teleporter
        )

        factory_gas_limit = (
            manual.l2_forwarder_factory_gas_limit
            if manual.l2_forwarder_factory_gas_limit is not None
            else TELEPORT_FORWARDER_FACTORY_GAS_LIMIT
        )

        return TeleportGasParams(
            l2_gas_price=l2_gas_price,
            l3_gas_price=l3_gas_price,
            l2_forwarder_factory_gas_limit=factory_gas_limit,
            l1l2_token_bridge_gas_limit=l1l2.gas_limit,
            l2l3_token_bridge_gas_limit=l2l3.gas_limit,
            l2_forwarder_factory_max_submission_cost=GasEstimator.calculate_submission_fee(
                FORWARDER_FACTORY_CALLDATA_SIZE, l1_gas_price
            ),
            l1l2_token_bridge_max_submission_cost=l1l2.max_submission_cost,
            l2l3_token_bridge_max_submission_cost=l2l3.max_submission_cost,
        )

    @staticmethod
    def calculate_costs(gas_params: TeleportGasParams) -> TeleportCosts:
        return TeleportCosts(
            l1l2_token_bridge_cost=gas_params.l1l2_token_bridge_gas_limit * gas_params.l2_gas_price
            + gas_params.l1l2_token_bridge_max_submission_cost,
            l2_forwarder_factory_cost=gas_params.l2_forwarder_factory_gas_limit
            * gas_params.l2_gas_price
            + gas_params.l2_forwarder_factory_max_submission_cost,
            l2l3_token_bridge_cost=gas_params.l2l3_token_bridge_gas_limit * gas_params.l3_gas_price
            + gas_params.l2l3_token_bridge_max_submission_cost,
        )

    # deposit

    def get_deposit_request(
        self,
        from_address: ChecksumAddress,
        l1_token: ChecksumAddress,
        amount: int,
        destination: Optional[ChecksumAddress] = None,
        gas_params: Optional[ManualRetryableGasParams] = None,
    ) -> TeleportRequest:
        """
        Unsigned `L1Teleporter.teleport` transaction. The token must be
        approved for the teleporter first, see `approve_token`.

        Parameters
        ----------
        `from_address` : ChecksumAddress
        `l1_token` : ChecksumAddress
        `amount` : int
        `destination` : ChecksumAddress, optional
            recipient on L3, `from_address` by default
        `gas_params` : ManualRetryableGasParams, optional

        Returns
        -------
        TeleportRequest
        """
        to = Web3.to_checksum_address(destination or from_address)

        teleport_gas = self.get_teleport_gas_params(l1_token, amount, to, gas_params)
        costs = self.calculate_costs(teleport_gas)

        params = TeleportParams(
            l1_token=Web3.to_checksum_address(l1_token),
            l1l2_router=self.l2_token_bridge.parent_gateway_router,
            l2l3_router_or_inbox=self.l3_token_bridge.parent_gateway_router,
            to=to,
            amount=amount,
            gas_params=teleport_gas,
        )

        # what the teleporter's factory retryable will call the forwarder factory with
        forwarder_params = L2ForwarderParams(
            owner=self._default_owner(from_address),
            l2_token=self.get_l2_erc20_address(l1_token),
            l3_fee_token_l2_addr=ADDRESS_ZERO,
            router_or_inbox=params.l2l3_router_or_inbox,
            to=to,
            gas_limit=teleport_gas.l2l3_token_bridge_gas_limit,
            gas_price_bid=teleport_gas.l3_gas_price,
            max_submission_cost=teleport_gas.l2l3_token_bridge_max_submission_cost,
        )

        tx_request: TxParams = {
            "from": from_address,
            "to": self.teleporter.l1_teleporter,
            "data": encode_contract_call(ABI_L1_TELEPORTER, "teleport", [params.as_tuple()]),
            "value": costs.total,
        }

        return TeleportRequest(
            tx_request=tx_request,
            gas_params=teleport_gas,
            costs=costs,
            forwarder_params=forwarder_params,
            forwarder_address=self._forwarder_of(forwarder_params),
        )

    def _check_allowance(self, l1_token: ChecksumAddress, owner: ChecksumAddress, amount: int) -> None:
        allowance = self.allowance(l1_token, owner)

        if allowance < amount:
            raise NitroStackConfigError(
                f"Allowance of {owner} for token {l1_token} is {allowance}, "
                f"below the deposit amount {amount}. Approve the token first."
            )

    def deposit(
        self,
        l1_token: ChecksumAddress,
        amount: int,
        destination: Optional[ChecksumAddress] = None,
        gas_params: Optional[ManualRetryableGasParams] = None,
    ) -> TxReceipt:
        writer = require_writer(self.l1, "teleport tokens")

        self._check_allowance(l1_token, writer.address, amount)
        request = self.get_deposit_request(writer.address, l1_token, amount, destination, gas_params)

        return self._send_l1(request.tx_request, "teleport")

    def get_deposit_parameters(
        self, l1_tx_hash: bytes
    ) -> Tuple[TeleportParams, L2ForwarderParams, ChecksumAddress]:
        """
        Teleport arguments, forwarder parameters and forwarder address of a
        teleport transaction.

        Returns
        -------
        Tuple[TeleportParams, L2ForwarderParams, ChecksumAddress]
        """
        tx = self.l1_provider.eth.get_transaction(HexBytes(l1_tx_hash))
        receipt = self.l1_provider.eth.get_transaction_receipt(HexBytes(l1_tx_hash))

        teleporter = get_contract(self.l1_provider, self.teleporter.l1_teleporter, ABI_L1_TELEPORTER)
        if not teleporter.events.Teleported().process_receipt(receipt, errors=DISCARD):
            raise NitroStackDataError(
                f"Transaction {HexBytes(l1_tx_hash).to_0x_hex()} is not a teleport"
            )

        try:
            decoded = decode_contract_call(ABI_L1_TELEPORTER, tx["input"], "teleport")
        except ValueError as e:
            raise NitroStackDataError("Not teleport calldata", e)

        params = TeleportParams.from_abi(decoded["params"])
        forwarder_params = self._decode_factory_message(self._l1_messages(receipt)[-1])

        return params, forwarder_params, self._forwarder_of(forwarder_params)

    @staticmethod
    def _decode_factory_message(message: ParentToChildMessage) -> L2ForwarderParams:
        try:
            decoded = decode_contract_call(
                ABI_L2_FORWARDER_FACTORY, message.message_data.data, "callForwarder"
            )
        except ValueError as e:
            raise NitroStackDataError("Not callForwarder calldata", e)

        return L2ForwarderParams.from_abi(decoded["params"])

    # status

    def _bridged_to_l3_events(self, receipt: TxReceipt, forwarder: ChecksumAddress) -> list:
        contract = get_contract(self.l2_provider, forwarder, ABI_L2_FORWARDER)

        return [
            event
            for event in contract.events.BridgedToL3().process_receipt(receipt, errors=DISCARD)
            if Web3.to_checksum_address(event["address"]) == forwarder
        ]

    def _grandchild_status(
        self, forwarder_receipt: Optional[TxReceipt], forwarder: ChecksumAddress
    ) -> ParentToChildMessageStatus:
        """
        Status of the L3 retryable created by `forwarder`, NOT_YET_CREATED
        until it has bridged.
        """
        if forwarder_receipt is None or not self._bridged_to_l3_events(forwarder_receipt, forwarder):
            return ParentToChildMessageStatus.NOT_YET_CREATED

        messages = self._l2_messages(forwarder_receipt)

        if not messages:
            raise NitroStackDataError("L2 to L3 message not found")

        return self._l3_messenger().status(messages[0])

    def get_deposit_status(self, l1_tx_hash: bytes) -> TeleportStatus:
        """
        Status of each hop of a teleport.

        Returns
        -------
        TeleportStatus
            `completed` is set once the L3 retryable is REDEEMED.
            `l2_forwarder_factory_front_ran` is set when the tokens reached
            the forwarder but it is empty while the factory retryable is
            still pending, i.e. someone called the forwarder first.
        """
        receipt = self.l1_provider.eth.get_transaction_receipt(HexBytes(l1_tx_hash))
        messages = self._l1_messages(receipt)

        if len(messages) != 2:
            raise NitroStackDataError(
                f"Expected 2 retryables in teleport transaction, found {len(messages)}"
            )

        token_message, factory_message = messages
        l2_messenger = self._l2_messenger()

        bridge_to_child = l2_messenger.status(token_message)
        factory_redeem = l2_messenger.get_successful_redeem(factory_message)

        forwarder_params = self._decode_factory_message(factory_message)
        forwarder = self._forwarder_of(forwarder_params, on_l2=True)

        bridge_to_grandchild = self._grandchild_status(
            factory_redeem.child_tx_receipt
            if factory_redeem.status == ParentToChildMessageStatus.REDEEMED
            else None,
            forwarder,
        )

        front_ran = False
        if (
            bridge_to_child == ParentToChildMessageStatus.REDEEMED
            and factory_redeem.status == ParentToChildMessageStatus.FUNDS_DEPOSITED_ON_CHILD
        ):
            token = get_contract(self.l2_provider, forwarder_params.l2_token, ABI_ERC20)
            front_ran = token.functions.balanceOf(forwarder).call() == 0

            if front_ran:
                logger.warning(
                    "Forwarder %s was emptied before its factory retryable was redeemed", forwarder
                )

        return TeleportStatus(
            bridge_to_child=bridge_to_child,
            forwarder_call=factory_redeem.status,
            bridge_to_grandchild=bridge_to_grandchild,
            completed=bridge_to_grandchild == ParentToChildMessageStatus.REDEEMED,
            l2_forwarder_factory_front_ran=front_ran,
        )

    # rescue

    def get_rescue_request(
        self,
        forwarder: ChecksumAddress,
        targets: Sequence[ChecksumAddress],
        values: Sequence[int],
        datas: Sequence[bytes],
    ) -> TxParams:
        """
        Unsigned L2 transaction in which the forwarder's owner makes the
        forwarder call `targets`, e.g. to transfer stuck tokens out.
        """
        if not len(targets) == len(values) == len(datas):
            raise NitroStackDataError("`targets`, `values` and `datas` must have the same length")

        return {
            "to": Web3.to_checksum_address(forwarder),
            "data": encode_contract_call(
                ABI_L2_FORWARDER,
                "rescue",
                [list(targets), list(values), [bytes(HexBytes(d)) for d in datas]],
            ),
            "value": sum(values),
        }

    def rescue(
        self,
        forwarder: ChecksumAddress,
        targets: Sequence[ChecksumAddress],
        values: Sequence[int],
        datas: Sequence[bytes],
    ) -> TxReceipt:
        writer = require_writer(self.l2, "rescue forwarder funds")

        owner = get_contract(self.l2_provider, forwarder, ABI_L2_FORWARDER).functions.owner().call()
        if Web3.to_checksum_address(owner) != writer.address:
            raise NitroStackConfigError(
                f"Forwarder {forwarder} is owned by {owner}, not by {writer.address}"
            )

        try:
            return send_transaction(
                writer, self.get_rescue_request(forwarder, targets, values, datas)
            )
        except Exception as e:
            raise NitroStackTransactionError(f"`rescue` transaction failed: {e}", e)


class RelayedErc20L1L3Bridger(Erc20L1L3Bridger):
    """
    Teleports ERC20 tokens with a plain gateway router deposit to the
    forwarder. The call to the forwarder factory is left to a relayer, paid
    out of the forwarder's ETH, which reads its instructions from the tail of
    the deposit calldata.

    The forwarder's owner can rescue its funds if the relay can't succeed.
    It defaults to the depositor, a contract depositor must name an owner
    able to make calls on L2.
    """

    def _approval_spender(self, l1_token: ChecksumAddress) -> ChecksumAddress:
        return self.get_l1l2_gateway_address(l1_token)

    def _resolve_owner(
        self, from_address: ChecksumAddress, owner: Optional[ChecksumAddress]
    ) -> ChecksumAddress:
        if owner is not None:
            return Web3.to_checksum_address(owner)

        if len(self.l1_provider.eth.get_code(from_address)) > 0:
            raise NitroStackConfigError(
                f"Depositor {from_address} is a contract. Set `owner` to an address able "
                "to rescue the forwarder's funds on L2."
            )

        return from_address

    def get_forwarder_implementation(self) -> ChecksumAddress:
        if self.teleporter.l2_forwarder_implementation is not None:
            return self.teleporter.l2_forwarder_implementation

        factory = get_contract(
            self.l2_provider, self.teleporter.l2_forwarder_factory, ABI_RELAYED_L2_FORWARDER_FACTORY
        )

        return Web3.to_checksum_address(factory.functions.l2ForwarderImplementation().call())

    def predict_l2_forwarder_address(self, params: ForwarderParams) -> ChecksumAddress:
        """CREATE2 address of the relayed forwarder for `params`."""
        return predict_forwarder_address(
            self.teleporter.l2_forwarder_factory, self.get_forwarder_implementation(), params
        )

    def estimate_relayer_payment(self, params: ForwarderParams, l2_gas_price: int) -> int:
        """
        Payment covering a relayer's `callForwarder` transaction, L1 calldata
        cost included, padded by 30%.
        """
        node_interface = get_contract(self.l2_provider, NODE_INTERFACE_ADDRESS, ABI_NODE_INTERFACE)

        calldata = encode_contract_call(
            ABI_RELAYED_L2_FORWARDER_FACTORY, "callForwarder", [params.as_tuple()]
        )
        gas_estimate_for_l1, _, _ = node_interface.functions.gasEstimateL1Component(
            self.teleporter.l2_forwarder_factory, False, calldata
        ).call()

        gas = gas_estimate_for_l1 + TELEPORT_RELAYED_FORWARD_GAS_LIMIT

        return percent_increase(gas * l2_gas_price, TELEPORT_RELAYER_PAYMENT_PERCENT_INCREASE)

    def get_deposit_request(  # type: ignore[override]
        self,
        from_address: ChecksumAddress,
        l1_token: ChecksumAddress,
        amount: int,
        destination: Optional[ChecksumAddress] = None,
        gas_params: Optional[ManualRetryableGasParams] = None,
        owner: Optional[ChecksumAddress] = None,
    ) -> TeleportRequest:
        """
        Unsigned `outboundTransferCustomRefund` transaction to the L1 gateway
        router with relayer instructions appended.

        The ETH the forwarder needs for the L3 retryable and the relayer
        payment rides along as extra submission cost of the L2 retryable,
        refunded to the forwarder.

        Returns
        -------
        TeleportRequest
        """
        manual = gas_params or ManualRetryableGasParams()
        to = Web3.to_checksum_address(destination or from_address)
        owner = self._resolve_owner(from_address, owner)

        _, l2_gas_price, l3_gas_price, l1l2, l2l3 = self._estimate_token_bridge_legs(
            l1_token, amount, to, manual, from_address
        )

        forwarder_params = ForwarderParams(
            owner=owner,
            token=self.get_l2_erc20_address(l1_token),
            router=self.l3_token_bridge.parent_gateway_router,
            to=to,
            gas_limit=l2l3.gas_limit,
            gas_price=l3_gas_price,
        )
        forwarder_params = replace(
            forwarder_params,
            relayer_payment=self.estimate_relayer_payment(forwarder_params, l2_gas_price),
        )
        forwarder = self.predict_l2_forwarder_address(forwarder_params)

        costs = TeleportCosts(
            l1l2_token_bridge_cost=l1l2.gas_limit * l2_gas_price + l1l2.max_submission_cost,
            l2_forwarder_factory_cost=0,
            l2l3_token_bridge_cost=l2l3.gas_limit * l3_gas_price + l2l3.max_submission_cost,
            relayer_payment=forwarder_params.relayer_payment,
        )

        max_submission_cost = (
            l1l2.max_submission_cost + costs.l2l3_token_bridge_cost + costs.relayer_payment
        )
        deposit_call = encode_contract_call(
            ABI_L1_GATEWAY_ROUTER,
            "outboundTransferCustomRefund",
            [
                l1_token,
                forwarder,
                forwarder,
                amount,
                l1l2.gas_limit,
                l2_gas_price,
                abi.encode(["uint256", "bytes"], [max_submission_cost, b""]),
            ],
        )

        tx_request: TxParams = {
            "from": from_address,
            "to": self.l2_token_bridge.parent_gateway_router,
            "data": HexBytes(
                deposit_call
                + encode_relayer_instructions(forwarder_params, self.l2_network.chain_id)
            ),
            "value": costs.total,
        }

        teleport_gas = TeleportGasParams(
            l2_gas_price=l2_gas_price,
            l3_gas_price=l3_gas_price,
            l2_forwarder_factory_gas_limit=0,
            l1l2_token_bridge_gas_limit=l1l2.gas_limit,
            l2l3_token_bridge_gas_limit=l2l3.gas_limit,
            l2_forwarder_factory_max_submission_cost=0,
            l1l2_token_bridge_max_submission_cost=l1l2.max_submission_cost,
            l2l3_token_bridge_max_submission_cost=l2l3.max_submission_cost,
        )

        return TeleportRequest(
            tx_request=tx_request,
            gas_params=teleport_gas,
            costs=costs,
            forwarder_params=forwarder_params,
            forwarder_address=forwarder,
        )

    def deposit(  # type: ignore[override]
        self,
        l1_token: ChecksumAddress,
        amount: int,
        destination: Optional[ChecksumAddress] = None,
        gas_params: Optional[ManualRetryableGasParams] = None,
        owner: Optional[ChecksumAddress] = None,
    ) -> TxReceipt:
        writer = require_writer(self.l1, "teleport tokens")

        self._check_allowance(l1_token, writer.address, amount)
        request = self.get_deposit_request(
            writer.address, l1_token, amount, destination, gas_params, owner
        )

        return self._send_l1(request.tx_request, "relayed teleport")

    def get_relayer_instructions(self, l1_tx_hash: bytes) -> ForwarderParams:
        tx = self.l1_provider.eth.get_transaction(HexBytes(l1_tx_hash))

        _, params = parse_relayer_instructions(
            tx, NetworkRegistry([self.l2_network])
        )

        return params

    def get_deposit_parameters(  # type: ignore[override]
        self, l1_tx_hash: bytes
    ) -> Tuple[ForwarderParams, ChecksumAddress]:
        params = self.get_relayer_instructions(l1_tx_hash)

        return params, self.predict_l2_forwarder_address(params)

    def build_relay_request(self, params: ForwarderParams) -> TxParams:
        return {
            "to": self.teleporter.l2_forwarder_factory,
            "data": encode_contract_call(
                ABI_RELAYED_L2_FORWARDER_FACTORY, "callForwarder", [params.as_tuple()]
            ),
            "value": 0,
        }

    def relay(self, params: ForwarderParams) -> TxReceipt:
        """
        Call the forwarder factory on L2 as the relayer, which collects the
        relayer payment.
        """
        writer = require_writer(self.l2, "relay a teleport")

        try:
            receipt = send_transaction(writer, self.build_relay_request(params))
        except Exception as e:
            raise NitroStackTransactionError(f"`callForwarder` transaction failed: {e}", e)

        logger.info(
            "Relayed teleport to %s in L2 tx %s",
            params.to,
            HexBytes(receipt["transactionHash"]).to_0x_hex(),
        )

        return receipt

    def _find_forwarder_call(
        self, forwarder: ChecksumAddress, from_block: int
    ) -> Optional[TxReceipt]:
        logs = self.l2_provider.eth.get_logs(
            {
                "address": forwarder,
                "fromBlock": from_block,
                "toBlock": "latest",
                "topics": [BRIDGED_TO_L3_TOPIC],
            }
        )

        if not logs:
            return None

        return self.l2_provider.eth.get_transaction_receipt(logs[0]["transactionHash"])

    def get_deposit_status(self, l1_tx_hash: bytes) -> TeleportStatus:
        receipt = self.l1_provider.eth.get_transaction_receipt(HexBytes(l1_tx_hash))
        messages = self._l1_messages(receipt)

        if len(messages) != 1:
            raise NitroStackDataError(
                f"Expected 1 retryable in relayed teleport transaction, found {len(messages)}"
            )

        bridge_redeem = self._l2_messenger().get_successful_redeem(messages[0])

        if bridge_redeem.status != ParentToChildMessageStatus.REDEEMED:
            return TeleportStatus(
                bridge_to_child=bridge_redeem.status,
                forwarder_call=ParentToChildMessageStatus.NOT_YET_CREATED,
                bridge_to_grandchild=ParentToChildMessageStatus.NOT_YET_CREATED,
                completed=False,
            )

        params = self.get_relayer_instructions(l1_tx_hash)
        forwarder = self.predict_l2_forwarder_address(params)
        forwarder_receipt = self._find_forwarder_call(
            forwarder,
            bridge_redeem.child_tx_receipt["blockNumber"],  # type: ignore[index]
        )

        forwarder_call = (
            ParentToChildMessageStatus.NOT_YET_CREATED
            if forwarder_receipt is None
            else ParentToChildMessageStatus.REDEEMED
        )
        bridge_to_grandchild = self._grandchild_status(forwarder_receipt, forwarder)

        return TeleportStatus(
            bridge_to_child=bridge_redeem.status,
            forwarder_call=forwarder_call,
            bridge_to_grandchild=bridge_to_grandchild,
            completed=bridge_to_grandchild == ParentToChildMessageStatus.REDEEMED,
        )


class EthL1L3Bridger(BaseL1L3Bridger):
    """
    Sends ETH from L1 to L3 with a retryable ticket on L2 whose call creates
    the L3 retryable ticket through the L3 inbox.
    """

    def get_deposit_request(
        self,
        from_address: ChecksumAddress,
        amount: int,
        destination: Optional[ChecksumAddress] = None,
        l2_refund_address: Optional[ChecksumAddress] = None,
        l2_overrides: Optional[GasOverrides] = None,
        l3_overrides: Optional[GasOverrides] = None,
    ) -> ParentToChildTransactionRequest:
        """
        Unsigned L1 transaction of the double retryable. The L3 ticket is
        built first, with the L2 alias of `from_address` as its sender, and
        becomes the call of the L2 ticket.

        Parameters
        ----------
        `from_address` : ChecksumAddress
        `amount` : int
            wei to arrive on L3
        `destination` : ChecksumAddress, optional
            `from_address` by default
        `l2_refund_address` : ChecksumAddress, optional
            receives the L2 ticket's refunds, `from_address` by default
        `l2_overrides`, `l3_overrides` : GasOverrides, optional

        Returns
        -------
        ParentToChildTransactionRequest
        """
        to = Web3.to_checksum_address(destination or from_address)
        l2_refund = Web3.to_checksum_address(l2_refund_address or from_address)

        l3_request = self._l3_messenger().build_creation_request(
            RetryableTicketRequest(
                from_address=apply_alias(from_address),
                to=to,
                l2_call_value=amount,
                excess_fee_refund_address=to,
                call_value_refund_address=to,
            ),
            l3_overrides,
        )

        return self._l2_messenger().build_creation_request(
            RetryableTicketRequest(
                from_address=from_address,
                to=l3_request.tx_request["to"],
                l2_call_value=l3_request.tx_request["value"],
                excess_fee_refund_address=l2_refund,
                call_value_refund_address=l2_refund,
                data=HexBytes(l3_request.tx_request["data"]),
            ),
            l2_overrides,
        )

    def deposit(
        self,
        amount: int,
        destination: Optional[ChecksumAddress] = None,
        l2_refund_address: Optional[ChecksumAddress] = None,
        l2_overrides: Optional[GasOverrides] = None,
        l3_overrides: Optional[GasOverrides] = None,
    ) -> TxReceipt:
        writer = require_writer(self.l1, "deposit ETH to L3")

        request = self.get_deposit_request(
            writer.address, amount, destination, l2_refund_address, l2_overrides, l3_overrides
        )

        return self._send_l1(request.tx_request, "ETH deposit to L3")

    def get_deposit_parameters(
        self, l1_tx_hash: bytes
    ) -> Tuple[RetryableMessageParams, RetryableMessageParams]:
        """
        Both tickets of a double retryable, decoded from the L1 calldata.

        Returns
        -------
        Tuple[l1l2: RetryableMessageParams, l2l3: RetryableMessageParams]
        """
        tx = self.l1_provider.eth.get_transaction(HexBytes(l1_tx_hash))

        l1l2 = decode_create_retryable_ticket(tx["input"], tx["value"])
        l2l3 = decode_create_retryable_ticket(l1l2.data, l1l2.l2_call_value)

        return l1l2, l2l3

    def get_deposit_status(self, l1_tx_hash: bytes) -> EthL1L3DepositStatus:
        """
        The L3 ticket only exists once the L2 ticket is REDEEMED.

        Returns
        -------
        EthL1L3DepositStatus
        """
        receipt = self.l1_provider.eth.get_transaction_receipt(HexBytes(l1_tx_hash))
        messages = self._l1_messages(receipt)

        if not messages:
            raise NitroStackDataError("L1 to L2 message not found")

        l2_redeem = self._l2_messenger().get_successful_redeem(messages[0])

        if l2_redeem.status != ParentToChildMessageStatus.REDEEMED:
            return EthL1L3DepositStatus(
                l2_retryable=l2_redeem.status,
                l3_retryable=ParentToChildMessageStatus.NOT_YET_CREATED,
                completed=False,
            )

        l3_messages = self._l2_messages(l2_redeem.child_tx_receipt)  # type: ignore[arg-type]

        if not l3_messages:
            raise NitroStackDataError("L2 to L3 message not found")

        l3_status = self._l3_messenger().status(l3_messages[0])

        return EthL1L3DepositStatus(
            l2_retryable=l2_redeem.status,
            l3_retryable=l3_status,
            completed=l3_status == ParentToChildMessageStatus.REDEEMED,
        )
