"""Unit tests for L1 -> L3 teleportation."""

from unittest.mock import Mock, patch

import pytest
from eth_abi import abi
from hexbytes import HexBytes
from web3 import Web3
from web3.constants import ADDRESS_ZERO

from nitro_bridge.nitro_stack.address_alias import apply_alias
from nitro_bridge.nitro_stack.custom_errors import NitroStackConfigError, NitroStackDataError
from nitro_bridge.nitro_stack.parent_to_child import ParentToChildMessenger, RedeemResult
from nitro_bridge.nitro_stack.teleport import (
    BRIDGED_TO_L3_TOPIC,
    EthL1L3Bridger,
    Erc20L1L3Bridger,
    RelayedErc20L1L3Bridger,
    TeleportParams,
    calculate_create2_address,
    decode_relayer_instructions,
    encode_relayer_instructions,
    forwarder_init_code,
    forwarder_params_from_tuple,
    parse_relayer_instructions,
    predict_forwarder_address,
)
from nitro_bridge.nitro_stack.types import (
    ForwarderParams,
    GatewayType,
    L2ForwarderParams,
    ManualRetryableGasParams,
    ParentToChildMessageStatus,
    TeleportGasParams,
)
from nitro_bridge.utils.chain import decode_contract_call, encode_contract_call
from nitro_bridge.utils.config import (
    ABI_DELAYED_INBOX,
    ABI_L1_GATEWAY_ROUTER,
    ABI_L1_TELEPORTER,
    ABI_L2_FORWARDER,
    ABI_L2_FORWARDER_FACTORY,
    ABI_RELAYED_L2_FORWARDER_FACTORY,
)
from nitro_bridge.utils.networks import (
    ARBITRUM_ONE,
    ARBITRUM_SEPOLIA,
    ArbitrumNetwork,
    EthBridge,
    NetworkRegistry,
    TokenBridge,
)
from nitro_bridge.utils.providers import Reader

from vectors import WALLET

L1_TOKEN = Web3.to_checksum_address("0x" + "aa" * 20)
L2_TOKEN = Web3.to_checksum_address("0x" + "bb" * 20)
IMPLEMENTATION = Web3.to_checksum_address("0x" + "cc" * 20)
RECIPIENT = Web3.to_checksum_address("0x" + "dd" * 20)
FORWARDER = Web3.to_checksum_address("0x" + "ee" * 20)

L3_NETWORK = ArbitrumNetwork(
    chain_id=333333,
    name="Test L3",
    parent_chain_id=ARBITRUM_SEPOLIA.chain_id,
    confirm_period_blocks=20,
    eth_bridge=EthBridge(
        bridge="0x" + "01" * 20,
        inbox="0x" + "02" * 20,
        sequencer_inbox="0x" + "03" * 20,
        outbox="0x" + "04" * 20,
        rollup="0x" + "05" * 20,
    ),
    token_bridge=TokenBridge(
        parent_gateway_router="0x" + "11" * 20,
        child_gateway_router="0x" + "12" * 20,
        parent_erc20_gateway="0x" + "13" * 20,
        child_erc20_gateway="0x" + "14" * 20,
        parent_custom_gateway="0x" + "15" * 20,
        child_custom_gateway="0x" + "16" * 20,
        parent_weth_gateway="0x" + "17" * 20,
        child_weth_gateway="0x" + "18" * 20,
        parent_weth="0x" + "19" * 20,
        child_weth="0x" + "1a" * 20,
    ),
)

MANUAL_GAS = ManualRetryableGasParams(
    l1l2_token_bridge_gas_limit=100_000,
    l2l3_token_bridge_gas_limit=200_000,
    l1l2_token_bridge_retryable_size=500,
    l2l3_token_bridge_retryable_size=600,
)

FORWARDER_PARAMS = ForwarderParams(
    owner=WALLET,
    token=L2_TOKEN,
    router=L3_NETWORK.token_bridge.parent_gateway_router,
    to=RECIPIENT,
    gas_limit=200_000,
    gas_price=180,
    relayer_payment=777,
)

L2_FORWARDER_PARAMS = L2ForwarderParams(
    owner=WALLET,
    l2_token=L2_TOKEN,
    l3_fee_token_l2_addr=ADDRESS_ZERO,
    router_or_inbox=L3_NETWORK.token_bridge.parent_gateway_router,
    to=RECIPIENT,
    gas_limit=200_000,
    gas_price_bid=180,
    max_submission_cost=5_000,
)


def _chain(gas_price: int = 0, code: bytes = b"") -> Reader:
    w3 = Mock()
    w3.eth.gas_price = gas_price
    w3.eth.get_code.return_value = code
    return Reader(w3)


def _bridger(cls, l1_code: bytes = b""):
    return cls(
        _chain(10, l1_code), _chain(20), _chain(30), ARBITRUM_SEPOLIA, L3_NETWORK
    )


def _bridged_to_l3_log(address: str, log_index: int = 0) -> dict:
    return {
        "address": address,
        "topics": [BRIDGED_TO_L3_TOPIC],
        "data": HexBytes(abi.encode(["uint256", "uint256"], [10**18, 5_000])),
        "blockNumber": 5,
        "blockHash": HexBytes(b"\x05" * 32),
        "transactionHash": HexBytes(b"\x06" * 32),
        "transactionIndex": 0,
        "logIndex": log_index,
        "removed": False,
    }


@pytest.fixture
def token_lookups():
    """Token and gateway lookups that would otherwise hit the routers."""
    with patch.object(
        Erc20L1L3Bridger, "determine_type", return_value=(GatewayType.STANDARD, GatewayType.STANDARD)
    ) as determine_type, patch.object(
        Erc20L1L3Bridger, "get_l2_erc20_address", return_value=L2_TOKEN
    ), patch.object(
        Erc20L1L3Bridger, "l2_forwarder_address", return_value=FORWARDER
    ), patch.object(
        RelayedErc20L1L3Bridger, "get_forwarder_implementation", return_value=IMPLEMENTATION
    ):
        yield determine_type


@pytest.fixture
def factory_message():
    """The factory retryable of a teleport, decoded without touching L2."""
    with patch.object(
        Erc20L1L3Bridger, "_decode_factory_message", return_value=L2_FORWARDER_PARAMS
    ), patch.object(
        Erc20L1L3Bridger, "l2_forwarder_address", return_value=FORWARDER
    ) as l2_forwarder_address:
        yield l2_forwarder_address


class TestForwarderAddress:
    @pytest.mark.parametrize(
        "deployer, salt, expected",
        [
            (
                "0x0000000000000000000000000000000000000000",
                "0x" + "00" * 32,
                "0x4D1A2e2bB4F88F0250f26Ffff098B0b30B26BF38",
            ),
            (
                "0xdeadbeef00000000000000000000000000000000",
                "0x" + "00" * 32,
                "0xB928f69Bb1D91Cd65274e3c79d8986362984fDA3",
            ),
            (
                "0xdeadbeef00000000000000000000000000000000",
                "0x000000000000000000000000feed000000000000000000000000000000000000",
                "0xD04116cDd17beBE565EB2422F2497E06cC1C9833",
            ),
        ],
    )
    def test_create2_address(self, deployer, salt, expected):
        address = calculate_create2_address(deployer, HexBytes(salt), Web3.keccak(b"\x00"))

        assert address == expected

    def test_salt_must_be_32_bytes(self):
        with pytest.raises(NitroStackDataError):
            calculate_create2_address(WALLET, b"\x00" * 31, Web3.keccak(b"\x00"))

    def test_clone_init_code(self):
        init_code = forwarder_init_code(IMPLEMENTATION)

        assert len(init_code) == 55
        assert init_code[20:40] == HexBytes(IMPLEMENTATION)

    def test_every_parameter_moves_the_address(self):
        factory = ARBITRUM_SEPOLIA.teleporter.l2_forwarder_factory
        base = predict_forwarder_address(factory, IMPLEMENTATION, FORWARDER_PARAMS)

        for changed in (
            ForwarderParams(RECIPIENT, L2_TOKEN, FORWARDER_PARAMS.router, RECIPIENT, 200_000, 180, 777),
            ForwarderParams(WALLET, L2_TOKEN, FORWARDER_PARAMS.router, RECIPIENT, 200_001, 180, 777),
            ForwarderParams(WALLET, L2_TOKEN, FORWARDER_PARAMS.router, RECIPIENT, 200_000, 180, 0),
        ):
            assert predict_forwarder_address(factory, IMPLEMENTATION, changed) != base


class TestRelayerInstructions:
    def test_round_trip_after_calldata(self):
        calldata = HexBytes(b"\x12\x34\x56\x78" + b"\x00" * 64) + encode_relayer_instructions(
            FORWARDER_PARAMS, ARBITRUM_SEPOLIA.chain_id
        )

        params, chain_id = decode_relayer_instructions(calldata)

        assert params == FORWARDER_PARAMS
        assert chain_id == ARBITRUM_SEPOLIA.chain_id

    def test_missing_tag(self):
        calldata = HexBytes(b"\x12\x34\x56\x78") + encode_relayer_instructions(
            FORWARDER_PARAMS, ARBITRUM_SEPOLIA.chain_id
        )[:-4] + HexBytes(b"\x00" * 4)

        with pytest.raises(NitroStackDataError):
            decode_relayer_instructions(calldata)

    def test_short_calldata(self):
        with pytest.raises(NitroStackDataError):
            decode_relayer_instructions(b"\x12\x34\x56\x78")

    def test_parse_from_transaction(self):
        tx = {
            "to": ARBITRUM_SEPOLIA.token_bridge.parent_gateway_router,
            "input": HexBytes(b"\x12\x34\x56\x78")
            + encode_relayer_instructions(FORWARDER_PARAMS, ARBITRUM_SEPOLIA.chain_id),
        }

        network, params = parse_relayer_instructions(
            tx, NetworkRegistry([ARBITRUM_ONE, ARBITRUM_SEPOLIA])
        )

        assert network == ARBITRUM_SEPOLIA
        assert params == FORWARDER_PARAMS

    def test_parse_unknown_router(self):
        tx = {
            "to": RECIPIENT,
            "input": encode_relayer_instructions(FORWARDER_PARAMS, ARBITRUM_SEPOLIA.chain_id),
        }

        with pytest.raises(NitroStackConfigError):
            parse_relayer_instructions(tx, NetworkRegistry([ARBITRUM_SEPOLIA]))

    def test_parse_chain_mismatch(self):
        tx = {
            "to": ARBITRUM_SEPOLIA.token_bridge.parent_gateway_router,
            "input": HexBytes(b"\x12\x34\x56\x78")
            + encode_relayer_instructions(FORWARDER_PARAMS, ARBITRUM_ONE.chain_id),
        }

        with pytest.raises(NitroStackDataError):
            parse_relayer_instructions(tx, NetworkRegistry([ARBITRUM_SEPOLIA]))


class TestErc20Bridger:
    """Test suite for teleports through the L1 teleporter."""

    def test_networks_must_be_parent_and_child(self):
        with pytest.raises(NitroStackConfigError):
            Erc20L1L3Bridger(_chain(), _chain(), _chain(), ARBITRUM_ONE, L3_NETWORK)

    def test_networks_need_token_bridges(self):
        without_bridge = ArbitrumNetwork(
            chain_id=L3_NETWORK.chain_id,
            name="No token bridge",
            parent_chain_id=ARBITRUM_SEPOLIA.chain_id,
            confirm_period_blocks=20,
            eth_bridge=L3_NETWORK.eth_bridge,
        )

        with pytest.raises(NitroStackConfigError):
            Erc20L1L3Bridger(_chain(), _chain(), _chain(), ARBITRUM_SEPOLIA, without_bridge)

    def test_custom_gateway_needs_manual_gas(self, token_lookups):
        token_lookups.return_value = (GatewayType.STANDARD, GatewayType.CUSTOM)
        bridger = _bridger(Erc20L1L3Bridger)

        with pytest.raises(NitroStackConfigError, match="l2l3_token_bridge_gas_limit"):
            bridger.get_teleport_gas_params(
                L1_TOKEN, 10, RECIPIENT, ManualRetryableGasParams(l1l2_token_bridge_gas_limit=1)
            )

    def test_manual_gas_params(self, token_lookups):
        token_lookups.return_value = (GatewayType.CUSTOM, GatewayType.CUSTOM)
        bridger = _bridger(Erc20L1L3Bridger)

        gas_params = bridger.get_teleport_gas_params(L1_TOKEN, 10, RECIPIENT, MANUAL_GAS)

        assert gas_params == TeleportGasParams(
            l2_gas_price=120,
            l3_gas_price=180,
            l2_forwarder_factory_gas_limit=1_000_000,
            l1l2_token_bridge_gas_limit=100_000,
            l2l3_token_bridge_gas_limit=200_000,
            l2_forwarder_factory_max_submission_cost=(1400 + 6 * 256) * 60,
            l1l2_token_bridge_max_submission_cost=(1400 + 6 * 500) * 60,
            l2l3_token_bridge_max_submission_cost=(1400 + 6 * 600) * 120,
        )

    def test_estimated_gas_limits_are_padded(self, token_lookups):
        bridger = _bridger(Erc20L1L3Bridger)

        with patch.object(
            Erc20L1L3Bridger, "_token_bridge_gas_estimates", return_value=(50_000, 300)
        ), patch.object(
            Erc20L1L3Bridger, "get_l1l2_gateway_address", return_value=RECIPIENT
        ), patch.object(
            Erc20L1L3Bridger, "get_l2l3_gateway_address", return_value=RECIPIENT
        ):
            gas_params = bridger.get_teleport_gas_params(L1_TOKEN, 10, RECIPIENT)

        assert gas_params.l1l2_token_bridge_gas_limit == 100_000
        assert gas_params.l2l3_token_bridge_gas_limit == 100_000
        assert gas_params.l1l2_token_bridge_max_submission_cost == (1400 + 6 * 300) * 60
        assert gas_params.l2l3_token_bridge_max_submission_cost == (1400 + 6 * 300) * 120

    def test_calculate_costs(self):
        costs = Erc20L1L3Bridger.calculate_costs(
            TeleportGasParams(
                l2_gas_price=2,
                l3_gas_price=3,
                l2_forwarder_factory_gas_limit=10,
                l1l2_token_bridge_gas_limit=20,
                l2l3_token_bridge_gas_limit=30,
                l2_forwarder_factory_max_submission_cost=1,
                l1l2_token_bridge_max_submission_cost=2,
                l2l3_token_bridge_max_submission_cost=3,
            )
        )

        assert costs.l1l2_token_bridge_cost == 42
        assert costs.l2_forwarder_factory_cost == 21
        assert costs.l2l3_token_bridge_cost == 93
        assert costs.total == 156

    def test_deposit_request(self, token_lookups):
        bridger = _bridger(Erc20L1L3Bridger)

        request = bridger.get_deposit_request(WALLET, L1_TOKEN, 10**18, RECIPIENT, MANUAL_GAS)

        assert request.tx_request["to"] == ARBITRUM_SEPOLIA.teleporter.l1_teleporter
        assert request.tx_request["value"] == request.costs.total

        decoded = decode_contract_call(ABI_L1_TELEPORTER, request.tx_request["data"], "teleport")
        params = TeleportParams.from_abi(decoded["params"])
        assert params.l1_token == L1_TOKEN
        assert params.l3_fee_token_l1_addr == ADDRESS_ZERO
        assert params.l1l2_router == ARBITRUM_SEPOLIA.token_bridge.parent_gateway_router
        assert params.l2l3_router_or_inbox == L3_NETWORK.token_bridge.parent_gateway_router
        assert params.to == RECIPIENT
        assert params.amount == 10**18
        assert params.gas_params == request.gas_params

        assert request.forwarder_params == L2ForwarderParams(
            owner=WALLET,
            l2_token=L2_TOKEN,
            l3_fee_token_l2_addr=ADDRESS_ZERO,
            router_or_inbox=L3_NETWORK.token_bridge.parent_gateway_router,
            to=RECIPIENT,
            gas_limit=200_000,
            gas_price_bid=180,
            max_submission_cost=(1400 + 6 * 600) * 120,
        )
        assert request.forwarder_address == FORWARDER

    def test_teleport_calldata_layout(self, token_lookups):
        request = _bridger(Erc20L1L3Bridger).get_deposit_request(
            WALLET, L1_TOKEN, 1, RECIPIENT, MANUAL_GAS
        )

        # selector, six static words of params, ten words of gas params
        assert request.tx_request["data"][:4] == HexBytes("0x63c2f61e")
        assert len(request.tx_request["data"]) == 4 + 16 * 32

    def test_forwarder_address_from_teleporter(self):
        bridger = _bridger(Erc20L1L3Bridger)
        predictor = bridger.l1_provider.eth.contract.return_value
        predictor.functions.l2ForwarderAddress.return_value.call.return_value = FORWARDER.lower()

        address = bridger.l2_forwarder_address(WALLET, L2_TOKEN, RECIPIENT)

        assert address == FORWARDER
        predictor.functions.l2ForwarderAddress.assert_called_once_with(WALLET, L2_TOKEN, RECIPIENT)
        assert (
            bridger.l1_provider.eth.contract.call_args.kwargs["address"]
            == ARBITRUM_SEPOLIA.teleporter.l1_teleporter
        )
        bridger.l2_provider.eth.contract.assert_not_called()

    def test_forwarder_address_from_factory(self):
        bridger = _bridger(Erc20L1L3Bridger)
        predictor = bridger.l2_provider.eth.contract.return_value
        predictor.functions.l2ForwarderAddress.return_value.call.return_value = FORWARDER

        address = bridger.l2_forwarder_address(WALLET, L2_TOKEN, RECIPIENT, on_l2=True)

        assert address == FORWARDER
        assert (
            bridger.l2_provider.eth.contract.call_args.kwargs["address"]
            == ARBITRUM_SEPOLIA.teleporter.l2_forwarder_factory
        )
        bridger.l1_provider.eth.contract.assert_not_called()

    def test_decode_factory_message(self):
        message = Mock()
        message.message_data.data = encode_contract_call(
            ABI_L2_FORWARDER_FACTORY, "callForwarder", [L2_FORWARDER_PARAMS.as_tuple()]
        )

        assert Erc20L1L3Bridger._decode_factory_message(message) == L2_FORWARDER_PARAMS
        assert len(message.message_data.data) == 4 + 8 * 32

    def test_decode_factory_message_of_other_calldata(self):
        message = Mock()
        message.message_data.data = encode_contract_call(
            ABI_RELAYED_L2_FORWARDER_FACTORY, "callForwarder", [FORWARDER_PARAMS.as_tuple()]
        )

        with pytest.raises(NitroStackDataError, match="callForwarder"):
            Erc20L1L3Bridger._decode_factory_message(message)

    def test_contract_depositor_forwarder_owned_by_alias(self, token_lookups):
        bridger = _bridger(Erc20L1L3Bridger, l1_code=b"\x60\x80")

        request = bridger.get_deposit_request(WALLET, L1_TOKEN, 1, RECIPIENT, MANUAL_GAS)

        assert request.forwarder_params.owner == apply_alias(WALLET)

    def test_deposit_requires_allowance(self, writer, token_lookups):
        bridger = Erc20L1L3Bridger(writer, _chain(), _chain(), ARBITRUM_SEPOLIA, L3_NETWORK)

        with patch.object(Erc20L1L3Bridger, "allowance", return_value=5):
            with pytest.raises(NitroStackConfigError, match="Approve"):
                bridger.deposit(L1_TOKEN, 10, gas_params=MANUAL_GAS)

    def test_deposit_status_until_forwarder_bridges(self, factory_message):
        bridger = _bridger(Erc20L1L3Bridger)
        redeemed = RedeemResult(ParentToChildMessageStatus.REDEEMED, {"blockNumber": 5})

        with patch.object(Erc20L1L3Bridger, "_l1_messages", return_value=[Mock(), Mock()]), patch.object(
            ParentToChildMessenger, "status", return_value=ParentToChildMessageStatus.REDEEMED
        ), patch.object(
            ParentToChildMessenger, "get_successful_redeem", return_value=redeemed
        ), patch.object(Erc20L1L3Bridger, "_bridged_to_l3_events", return_value=[]):
            status = bridger.get_deposit_status(b"\x01" * 32)

        assert status.bridge_to_child == ParentToChildMessageStatus.REDEEMED
        assert status.forwarder_call == ParentToChildMessageStatus.REDEEMED
        assert status.bridge_to_grandchild == ParentToChildMessageStatus.NOT_YET_CREATED
        assert not status.completed
        assert not status.l2_forwarder_factory_front_ran
        assert factory_message.call_args.args[-1] is True

    def test_deposit_status_completed(self, factory_message):
        bridger = _bridger(Erc20L1L3Bridger)
        redeemed = RedeemResult(ParentToChildMessageStatus.REDEEMED, {"blockNumber": 5})

        with patch.object(Erc20L1L3Bridger, "_l1_messages", return_value=[Mock(), Mock()]), patch.object(
            ParentToChildMessenger, "status", return_value=ParentToChildMessageStatus.REDEEMED
        ), patch.object(
            ParentToChildMessenger, "get_successful_redeem", return_value=redeemed
        ), patch.object(
            Erc20L1L3Bridger, "_bridged_to_l3_events", return_value=[Mock()]
        ), patch.object(Erc20L1L3Bridger, "_l2_messages", return_value=[Mock()]):
            status = bridger.get_deposit_status(b"\x01" * 32)

        assert status.bridge_to_grandchild == ParentToChildMessageStatus.REDEEMED
        assert status.completed

    def test_deposit_status_missing_l3_message(self):
        bridger = _bridger(Erc20L1L3Bridger)

        with patch.object(Erc20L1L3Bridger, "_bridged_to_l3_events", return_value=[Mock()]), patch.object(
            Erc20L1L3Bridger, "_l2_messages", return_value=[]
        ):
            with pytest.raises(NitroStackDataError, match="L2 to L3"):
                bridger._grandchild_status({"logs": []}, FORWARDER)

    @pytest.mark.parametrize("balance, front_ran", [(0, True), (10**18, False)])
    def test_deposit_status_front_ran(self, factory_message, balance, front_ran):
        bridger = _bridger(Erc20L1L3Bridger)
        token = bridger.l2_provider.eth.contract.return_value
        token.functions.balanceOf.return_value.call.return_value = balance
        pending = RedeemResult(ParentToChildMessageStatus.FUNDS_DEPOSITED_ON_CHILD)

        with patch.object(Erc20L1L3Bridger, "_l1_messages", return_value=[Mock(), Mock()]), patch.object(
            ParentToChildMessenger, "status", return_value=ParentToChildMessageStatus.REDEEMED
        ), patch.object(ParentToChildMessenger, "get_successful_redeem", return_value=pending):
            status = bridger.get_deposit_status(b"\x01" * 32)

        assert status.l2_forwarder_factory_front_ran is front_ran
        assert status.forwarder_call == ParentToChildMessageStatus.FUNDS_DEPOSITED_ON_CHILD
        assert status.bridge_to_grandchild == ParentToChildMessageStatus.NOT_YET_CREATED
        token.functions.balanceOf.assert_called_once_with(FORWARDER)
        assert bridger.l2_provider.eth.contract.call_args.kwargs["address"] == L2_TOKEN

    def test_front_run_needs_tokens_on_l2(self, factory_message):
        bridger = _bridger(Erc20L1L3Bridger)
        pending = RedeemResult(ParentToChildMessageStatus.FUNDS_DEPOSITED_ON_CHILD)

        with patch.object(Erc20L1L3Bridger, "_l1_messages", return_value=[Mock(), Mock()]), patch.object(
            ParentToChildMessenger,
            "status",
            return_value=ParentToChildMessageStatus.FUNDS_DEPOSITED_ON_CHILD,
        ), patch.object(ParentToChildMessenger, "get_successful_redeem", return_value=pending):
            status = bridger.get_deposit_status(b"\x01" * 32)

        assert not status.l2_forwarder_factory_front_ran
        bridger.l2_provider.eth.contract.assert_not_called()

    def test_bridged_to_l3_events_of_forwarder_only(self):
        bridger = _bridger(Erc20L1L3Bridger)
        bridger.l2_provider.eth.contract = Web3().eth.contract
        receipt = {"logs": [_bridged_to_l3_log(RECIPIENT, 0), _bridged_to_l3_log(FORWARDER, 1)]}

        events = bridger._bridged_to_l3_events(receipt, FORWARDER)

        assert len(events) == 1
        assert events[0]["address"] == FORWARDER
        assert events[0]["args"]["tokenAmount"] == 10**18

    def test_other_forwarder_does_not_finish_the_hop(self):
        bridger = _bridger(Erc20L1L3Bridger)
        bridger.l2_provider.eth.contract = Web3().eth.contract
        receipt = {"logs": [_bridged_to_l3_log(RECIPIENT)]}

        with patch.object(Erc20L1L3Bridger, "_l2_messages") as l2_messages:
            status = bridger._grandchild_status(receipt, FORWARDER)

        assert status == ParentToChildMessageStatus.NOT_YET_CREATED
        l2_messages.assert_not_called()

    def test_deposit_status_needs_two_retryables(self):
        bridger = _bridger(Erc20L1L3Bridger)

        with patch.object(Erc20L1L3Bridger, "_l1_messages", return_value=[Mock()]):
            with pytest.raises(NitroStackDataError):
                bridger.get_deposit_status(b"\x01" * 32)

    def test_rescue_request(self):
        bridger = _bridger(Erc20L1L3Bridger)

        request = bridger.get_rescue_request(
            RECIPIENT, [L1_TOKEN, L2_TOKEN], [1, 2], [b"\x01", HexBytes("0x02")]
        )

        assert request["value"] == 3
        decoded = decode_contract_call(ABI_L2_FORWARDER, request["data"], "rescue")
        assert [Web3.to_checksum_address(t) for t in decoded["targets"]] == [L1_TOKEN, L2_TOKEN]
        assert list(decoded["values"]) == [1, 2]
        assert list(decoded["datas"]) == [b"\x01", b"\x02"]

    def test_rescue_request_length_mismatch(self):
        with pytest.raises(NitroStackDataError):
            _bridger(Erc20L1L3Bridger).get_rescue_request(RECIPIENT, [L1_TOKEN], [1, 2], [b""])


class TestRelayedErc20Bridger:
    """Test suite for teleports finished by a relayer."""

    def test_contract_depositor_must_name_owner(self, token_lookups):
        bridger = _bridger(RelayedErc20L1L3Bridger, l1_code=b"\x60\x80")

        with pytest.raises(NitroStackConfigError, match="owner"):
            bridger.get_deposit_request(WALLET, L1_TOKEN, 1, RECIPIENT, MANUAL_GAS)

    def test_deposit_request_carries_instructions(self, token_lookups):
        bridger = _bridger(RelayedErc20L1L3Bridger)

        with patch.object(RelayedErc20L1L3Bridger, "estimate_relayer_payment", return_value=777):
            request = bridger.get_deposit_request(
                WALLET, L1_TOKEN, 10**18, RECIPIENT, MANUAL_GAS
            )

        assert request.tx_request["to"] == ARBITRUM_SEPOLIA.token_bridge.parent_gateway_router
        assert request.costs.l2_forwarder_factory_cost == 0
        assert request.costs.relayer_payment == 777
        assert request.tx_request["value"] == (
            100_000 * 120 + (1400 + 6 * 500) * 60 + 200_000 * 180 + (1400 + 6 * 600) * 120 + 777
        )

        params, chain_id = decode_relayer_instructions(request.tx_request["data"])
        assert params == request.forwarder_params
        assert params.relayer_payment == 777
        assert chain_id == ARBITRUM_SEPOLIA.chain_id
        assert request.forwarder_address == predict_forwarder_address(
            ARBITRUM_SEPOLIA.teleporter.l2_forwarder_factory, IMPLEMENTATION, params
        )

        tail = encode_relayer_instructions(params, chain_id)
        decoded = decode_contract_call(
            ABI_L1_GATEWAY_ROUTER,
            request.tx_request["data"][: -len(tail)],
            "outboundTransferCustomRefund",
        )
        assert decoded["_refundTo"] == request.forwarder_address
        assert decoded["_to"] == request.forwarder_address
        assert decoded["_amount"] == 10**18

    def test_explicit_owner(self, token_lookups):
        bridger = _bridger(RelayedErc20L1L3Bridger, l1_code=b"\x60\x80")

        with patch.object(RelayedErc20L1L3Bridger, "estimate_relayer_payment", return_value=1):
            request = bridger.get_deposit_request(
                WALLET, L1_TOKEN, 1, RECIPIENT, MANUAL_GAS, owner=RECIPIENT
            )

        assert request.forwarder_params.owner == RECIPIENT

    def test_relay_request(self):
        request = _bridger(RelayedErc20L1L3Bridger).build_relay_request(FORWARDER_PARAMS)

        assert request["to"] == ARBITRUM_SEPOLIA.teleporter.l2_forwarder_factory
        decoded = decode_contract_call(
            ABI_RELAYED_L2_FORWARDER_FACTORY, request["data"], "callForwarder"
        )
        assert forwarder_params_from_tuple(list(decoded["params"].values())) == FORWARDER_PARAMS

    def test_status_before_bridge_redeemed(self):
        bridger = _bridger(RelayedErc20L1L3Bridger)
        pending = RedeemResult(ParentToChildMessageStatus.FUNDS_DEPOSITED_ON_CHILD)

        with patch.object(RelayedErc20L1L3Bridger, "_l1_messages", return_value=[Mock()]), patch.object(
            ParentToChildMessenger, "get_successful_redeem", return_value=pending
        ):
            status = bridger.get_deposit_status(b"\x01" * 32)

        assert status.bridge_to_child == ParentToChildMessageStatus.FUNDS_DEPOSITED_ON_CHILD
        assert status.forwarder_call == ParentToChildMessageStatus.NOT_YET_CREATED
        assert status.bridge_to_grandchild == ParentToChildMessageStatus.NOT_YET_CREATED
        assert not status.completed

    def test_status_waiting_for_relayer(self):
        bridger = _bridger(RelayedErc20L1L3Bridger)
        redeemed = RedeemResult(ParentToChildMessageStatus.REDEEMED, {"blockNumber": 5})

        with patch.object(RelayedErc20L1L3Bridger, "_l1_messages", return_value=[Mock()]), patch.object(
            ParentToChildMessenger, "get_successful_redeem", return_value=redeemed
        ), patch.object(
            RelayedErc20L1L3Bridger, "get_relayer_instructions", return_value=FORWARDER_PARAMS
        ), patch.object(
            RelayedErc20L1L3Bridger, "get_forwarder_implementation", return_value=IMPLEMENTATION
        ), patch.object(
            RelayedErc20L1L3Bridger, "_find_forwarder_call", return_value=None
        ) as find_forwarder_call:
            status = bridger.get_deposit_status(b"\x01" * 32)

        assert status.bridge_to_child == ParentToChildMessageStatus.REDEEMED
        assert status.forwarder_call == ParentToChildMessageStatus.NOT_YET_CREATED
        assert not status.completed
        assert find_forwarder_call.call_args.args[1] == 5


class TestEthBridger:
    """Test suite for ETH sent to L3 with a double retryable."""

    def test_deposit_parameters(self):
        bridger = _bridger(EthL1L3Bridger)

        inner = encode_contract_call(
            ABI_DELAYED_INBOX,
            "createRetryableTicket",
            [RECIPIENT, 10**18, 500, RECIPIENT, RECIPIENT, 30_000, 180, b""],
        )
        outer = encode_contract_call(
            ABI_DELAYED_INBOX,
            "createRetryableTicket",
            [L3_NETWORK.eth_bridge.inbox, 2 * 10**18, 700, WALLET, WALLET, 90_000, 120, inner],
        )
        bridger.l1_provider.eth.get_transaction.return_value = {"input": outer, "value": 3 * 10**18}

        l1l2, l2l3 = bridger.get_deposit_parameters(b"\x01" * 32)

        assert l1l2.dest_address == L3_NETWORK.eth_bridge.inbox
        assert l1l2.l1_value == 3 * 10**18
        assert l1l2.data == inner
        assert l2l3.dest_address == RECIPIENT
        assert l2l3.l1_value == 2 * 10**18
        assert l2l3.l2_call_value == 10**18
        assert l2l3.gas_limit == 30_000

    def test_deposit_parameters_of_other_calldata(self):
        bridger = _bridger(EthL1L3Bridger)
        bridger.l1_provider.eth.get_transaction.return_value = {"input": b"\x01\x02", "value": 0}

        with pytest.raises(NitroStackDataError):
            bridger.get_deposit_parameters(b"\x01" * 32)

    def test_status_before_l2_redeemed(self):
        bridger = _bridger(EthL1L3Bridger)
        pending = RedeemResult(ParentToChildMessageStatus.FUNDS_DEPOSITED_ON_CHILD)

        with patch.object(EthL1L3Bridger, "_l1_messages", return_value=[Mock()]), patch.object(
            ParentToChildMessenger, "get_successful_redeem", return_value=pending
        ):
            status = bridger.get_deposit_status(b"\x01" * 32)

        assert status.l2_retryable == ParentToChildMessageStatus.FUNDS_DEPOSITED_ON_CHILD
        assert status.l3_retryable == ParentToChildMessageStatus.NOT_YET_CREATED
        assert not status.completed

    def test_status_completed(self):
        bridger = _bridger(EthL1L3Bridger)
        redeemed = RedeemResult(ParentToChildMessageStatus.REDEEMED, {"blockNumber": 5})

        with patch.object(EthL1L3Bridger, "_l1_messages", return_value=[Mock()]), patch.object(
            ParentToChildMessenger, "get_successful_redeem", return_value=redeemed
        ), patch.object(EthL1L3Bridger, "_l2_messages", return_value=[Mock()]), patch.object(
            ParentToChildMessenger, "status", return_value=ParentToChildMessageStatus.REDEEMED
        ):
            status = bridger.get_deposit_status(b"\x01" * 32)

        assert status.l3_retryable == ParentToChildMessageStatus.REDEEMED
        assert status.completed

    def test_status_missing_l3_message(self):
        bridger = _bridger(EthL1L3Bridger)
        redeemed = RedeemResult(ParentToChildMessageStatus.REDEEMED, {"blockNumber": 5})

        with patch.object(EthL1L3Bridger, "_l1_messages", return_value=[Mock()]), patch.object(
            ParentToChildMessenger, "get_successful_redeem", return_value=redeemed
        ), patch.object(EthL1L3Bridger, "_l2_messages", return_value=[]):
            with pytest.raises(NitroStackDataError, match="L2 to L3"):
                bridger.get_deposit_status(b"\x01" * 32)

    def test_status_missing_l1_message(self):
        bridger = _bridger(EthL1L3Bridger)

        with patch.object(EthL1L3Bridger, "_l1_messages", return_value=[]):
            with pytest.raises(NitroStackDataError):
                bridger.get_deposit_status(b"\x01" * 32)
