from unittest.mock import Mock

import pytest
from web3 import Web3

from nitro_bridge.nitro_stack.parent_to_child import ParentToChildMessage
from nitro_bridge.nitro_stack.types import RetryableMessageParams
from nitro_bridge.utils.providers import Reader, Writer

from vectors import (
    KNOWN_TICKET_BASE_FEE,
    KNOWN_TICKET_CALLDATA,
    KNOWN_TICKET_MESSAGE_NUMBER,
    KNOWN_TICKET_SENDER,
    WALLET,
)


@pytest.fixture
def known_ticket_params():
    return RetryableMessageParams(
        dest_address=Web3.to_checksum_address("0x6c411aD3E74De3E7Bd422b94A27770f5B86C623B"),
        l2_call_value=0x0853A0D2313C0000,
        l1_value=0x0854E8AB1802CA80,
        max_submission_fee=0x01270F6740D880,
        excess_fee_refund_address=WALLET,
        call_value_refund_address=WALLET,
        gas_limit=0x01D566,
        max_fee_per_gas=0x11E1A300,
        data=KNOWN_TICKET_CALLDATA,
    )


@pytest.fixture
def known_message(known_ticket_params):
    return ParentToChildMessage(
        chain_id=42161,
        sender=KNOWN_TICKET_SENDER,
        message_number=KNOWN_TICKET_MESSAGE_NUMBER,
        parent_base_fee=KNOWN_TICKET_BASE_FEE,
        message_data=known_ticket_params,
    )


@pytest.fixture
def mock_w3():
    """Web3 stand-in, chain calls are configured per test."""
    return Mock()


@pytest.fixture
def reader(mock_w3):
    return Reader(mock_w3)


@pytest.fixture
def writer():
    account = Mock()
    account.address = WALLET
    return Writer(Mock(), account)
