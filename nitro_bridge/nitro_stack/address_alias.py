"""
Address aliasing between a parent chain and its child chain.

A contract on the parent chain that sends a message to the child chain shows up
there as `address + 0x1111000000000000000000000000000000001111` (mod 2**160).
EOA senders are not aliased.
"""

from eth_typing import ChecksumAddress
from eth_utils.address import is_address, to_checksum_address

from nitro_bridge.utils.config import ADDRESS_ALIAS_OFFSET

from .custom_errors import NitroStackDataError

ADDRESS_SPACE = 2**160


def _to_int(address: str) -> int:
    if not isinstance(address, str) or not is_address(address):
        raise NitroStackDataError(f"Invalid address `{address}`")

    return int(address, 16)


def _from_int(value: int) -> ChecksumAddress:
    return to_checksum_address("0x" + value.to_bytes(20, byteorder="big").hex())


def apply_alias(address: str) -> ChecksumAddress:
    """
    Child chain alias of a parent chain contract address.

    Parameters
    ----------
    `address` : str
        hex address, lowercase or correctly checksummed

    Returns
    -------
    ChecksumAddress
    """
    return _from_int((_to_int(address) + ADDRESS_ALIAS_OFFSET) % ADDRESS_SPACE)


def undo_alias(address: str) -> ChecksumAddress:
    """
    Parent chain address behind a child chain alias.

    Parameters
    ----------
    `address` : str

    Returns
    -------
    ChecksumAddress
    """
    return _from_int((_to_int(address) - ADDRESS_ALIAS_OFFSET) % ADDRESS_SPACE)
