"""
Ids of the child chain transactions created by parent chain messages.

The child chain derives them from the delivered message alone, so they can be
computed from the parent chain's logs before the child chain has seen them.
"""

from typing import List

import rlp
from eth_typing import ChecksumAddress
from hexbytes import HexBytes
from web3 import Web3
from web3.constants import ADDRESS_ZERO

from .custom_errors import NitroStackDataError

SUBMIT_RETRYABLE_TX_TYPE = b"\x69"
DEPOSIT_TX_TYPE = b"\x64"

# classic (pre-nitro) retryables flag their message number with the top bit
CLASSIC_RETRYABLE_BIT = 1 << 255


def format_number(value: int) -> bytes:
    """Big endian bytes of `value` without leading zeros, `b""` for zero."""
    if value < 0:
        raise NitroStackDataError(f"Can't encode negative value `{value}`")

    return value.to_bytes((value.bit_length() + 7) // 8, byteorder="big")


def _pad32(value: int) -> bytes:
    return value.to_bytes(32, byteorder="big")


def format_address(address: str) -> bytes:
    if not Web3.is_address(address):
        raise NitroStackDataError(f"Invalid address `{address}`")

    return bytes(HexBytes(Web3.to_checksum_address(address)))


def calculate_submit_retryable_id(
    chain_id: int,
    from_address: ChecksumAddress,
    message_number: int,
    parent_base_fee: int,
    dest_address: ChecksumAddress,
    l2_call_value: int,
    l1_value: int,
    max_submission_fee: int,
    excess_fee_refund_address: ChecksumAddress,
    call_value_refund_address: ChecksumAddress,
    gas_limit: int,
    max_fee_per_gas: int,
    data: bytes,
) -> HexBytes:
    """
    Child chain transaction hash of a retryable ticket submission.

    Parameters
    ----------
    `chain_id` : int
        child chain id
    `from_address` : ChecksumAddress
        sender as seen on the child chain, i.e. already aliased for contracts
    `message_number` : int
        inbox message number assigned on the parent chain
    `parent_base_fee` : int
        base fee of the parent block the message was delivered in
    `dest_address` : ChecksumAddress
        zero address for contract creation
    `l2_call_value`, `l1_value`, `max_submission_fee` : int
    `excess_fee_refund_address`, `call_value_refund_address` : ChecksumAddress
    `gas_limit`, `max_fee_per_gas` : int
    `data` : bytes

    Returns
    -------
    `retryable_creation_id` : HexBytes
    """
    dest = (
        b""
        if Web3.to_checksum_address(dest_address) == ADDRESS_ZERO
        else format_address(dest_address)
    )

    fields: List[bytes] = [
        format_number(chain_id),
        _pad32(message_number),
        format_address(from_address),
        format_number(parent_base_fee),
        format_number(l1_value),
        format_number(max_fee_per_gas),
        format_number(gas_limit),
        dest,
        format_number(l2_call_value),
        format_address(call_value_refund_address),
        format_number(max_submission_fee),
        format_address(excess_fee_refund_address),
        bytes(HexBytes(data)),
    ]

    typed_txn = SUBMIT_RETRYABLE_TX_TYPE + rlp.encode(fields)

    return HexBytes(Web3.keccak(typed_txn))


def calculate_deposit_tx_id(
    chain_id: int,
    message_number: int,
    from_address: ChecksumAddress,
    to_address: ChecksumAddress,
    value: int,
) -> HexBytes:
    """
    Child chain transaction hash of an ETH deposit.

    Returns
    -------
    `deposit_tx_id` : HexBytes
    """
    fields: List[bytes] = [
        format_number(chain_id),
        _pad32(message_number),
        format_address(from_address),
        format_address(to_address),
        format_number(value),
    ]

    typed_txn = DEPOSIT_TX_TYPE + rlp.encode(fields)

    return HexBytes(Web3.keccak(typed_txn))


def calculate_classic_retryable_creation_id(
    chain_id: int, message_number: int
) -> HexBytes:
    return HexBytes(
        Web3.keccak(_pad32(chain_id) + _pad32(message_number | CLASSIC_RETRYABLE_BIT))
    )


def calculate_classic_auto_redeem_id(retryable_creation_id: bytes) -> HexBytes:
    return HexBytes(Web3.keccak(bytes(HexBytes(retryable_creation_id)) + _pad32(1)))


def calculate_classic_child_tx_hash(retryable_creation_id: bytes) -> HexBytes:
    return HexBytes(Web3.keccak(bytes(HexBytes(retryable_creation_id)) + _pad32(0)))
