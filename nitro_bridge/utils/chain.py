import json
import logging
import os
from functools import lru_cache
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Type, cast

from eth_typing import ABIComponent, ChecksumAddress
from hexbytes import HexBytes
from web3 import Web3
from web3.contract import Contract
from web3.exceptions import ContractCustomError
from web3.types import TxParams, TxReceipt

from .config import BUFFER, MULTIPLIER
from .providers import Writer

logger = logging.getLogger(__name__)


def add_gas_buffer(
    gas_estimate: int, multiplier: Optional[float] = None, buffer: Optional[int] = None
) -> int:
    """
    Pad a gas estimate as `gas_estimate * multiplier + buffer`, defaulting to
    the `MULTIPLIER` and `BUFFER` from config.
    """
    factor = MULTIPLIER if multiplier is None else multiplier
    extra = BUFFER if buffer is None else buffer

    if factor < 1.0:
        raise ValueError(f"Gas multiplier {factor} would shrink the estimate")
    if extra < 0:
        raise ValueError(f"Gas buffer {extra} is negative")

    return int(gas_estimate * factor) + extra


def percent_increase(value: int, increase: int) -> int:
    """
    Integer percentage padding, `value + value * increase // 100`.
    """
    if increase < 0:
        raise ValueError("`increase` must be non-negative")

    return value + value * increase // 100


def get_abi(path: str) -> List[dict]:
    if not os.path.isfile(path):
        raise FileNotFoundError(f"No ABI file at {path}")

    with open(path) as abi_file:
        return json.load(abi_file)


def get_contract(w3: Web3, address: ChecksumAddress, abi_path: str) -> Contract:
    return w3.eth.contract(address=Web3.to_checksum_address(address), abi=get_abi(abi_path))


@lru_cache(maxsize=None)
def get_interface(abi_path: str) -> Type[Contract]:
    """
    Contract factory without provider or address, for encoding and decoding
    calldata offline.
    """
    return Web3().eth.contract(abi=get_abi(abi_path))


def encode_contract_call(abi_path: str, fn_name: str, args: Sequence[Any]) -> HexBytes:
    return HexBytes(get_interface(abi_path).encode_abi(fn_name, args=list(args)))


def decode_contract_call(abi_path: str, data: bytes, fn_name: str) -> Dict[str, Any]:
    """
    Decode calldata of `fn_name` into its named arguments, structs coming
    back as dicts keyed by component name.

    Raises `ValueError` when `data` is a call to any other function.
    """
    data = HexBytes(data)

    try:
        func, decoded = get_interface(abi_path).decode_function_input(data)
    except Exception as e:
        raise ValueError(
            f"Calldata `{HexBytes(data[:4]).to_0x_hex()}` is not a call to `{fn_name}`: {e}"
        ) from e

    if func.fn_name != fn_name:
        raise ValueError(f"Calldata is a call to `{func.fn_name}`, expected `{fn_name}`")

    return dict(decoded)


def function_selector(signature: str) -> HexBytes:
    return HexBytes(Web3.keccak(text=signature)[:4])


def get_revert_data(error: Exception) -> HexBytes:
    """
    Extract raw revert bytes from a web3 contract error.
    """
    data = getattr(error, "data", None)

    if isinstance(data, dict):
        data = data.get("data")

    if data is None and error.args:
        data = error.args[0]

    if isinstance(data, (bytes, bytearray)):
        return HexBytes(data)

    if isinstance(data, str) and data.startswith("0x"):
        return HexBytes(data)

    return HexBytes(b"")


def send_transaction(writer: Writer, tx: TxParams) -> TxReceipt:
    """
    Fill in the missing fields of `tx`, sign it with the writer's account and
    wait for the receipt.

    Parameters
    ----------
    `writer` : Writer
    `tx` : TxParams
        Needs `to` (unless deploying), `data` and `value` where applicable.

    Returns
    -------
    TxReceipt
    """
    w3 = writer.w3
    account = writer.account

    payload = cast(dict, dict(tx))
    payload["from"] = account.address

    if "nonce" not in payload:
        payload["nonce"] = w3.eth.get_transaction_count(account.address)

    if "chainId" not in payload:
        payload["chainId"] = w3.eth.chain_id

    if "gas" not in payload:
        payload["gas"] = add_gas_buffer(w3.eth.estimate_gas(cast(TxParams, payload)))

    if "gasPrice" not in payload and "maxFeePerGas" not in payload:
        payload["gasPrice"] = w3.eth.gas_price

    signed_txn = account.sign_transaction(payload)
    txn_hash = w3.eth.send_raw_transaction(signed_txn.raw_transaction)

    logger.info("Sent transaction %s on chain %s", HexBytes(txn_hash).to_0x_hex(), payload["chainId"])

    return w3.eth.wait_for_transaction_receipt(txn_hash)


class ContractErrorInfo(NamedTuple):
    """A custom error from a contract ABI that matched some revert data."""

    name: str
    signature: str
    inputs: Sequence[ABIComponent]
    selector: str


def _error_signature(entry: Dict[str, Any]) -> Optional[str]:
    name = entry.get("name")

    if entry.get("type") != "error" or name is None:
        return None

    types = ",".join(component["type"] for component in entry.get("inputs", []))

    return f"{name}({types})"


def get_contract_error_info(
    contract: Contract, error: Exception
) -> Optional[ContractErrorInfo]:
    """
    Look up which custom error of `contract` a revert corresponds to.

    Parameters
    ----------
    `contract` : Contract
        Contract whose ABI lists the candidate errors.
    `error` : Exception
        Whatever the call raised; only `ContractCustomError` can match.

    Returns
    -------
    Optional[ContractErrorInfo]
        `None` when the revert selector is not in the ABI.
    """
    if not isinstance(error, ContractCustomError):
        return None

    revert_selector = HexBytes(get_revert_data(error)[:4])
    logger.debug("Contract custom error selector %s", revert_selector.to_0x_hex())

    for entry in contract.abi:
        signature = _error_signature(cast(Dict[str, Any], entry))

        if signature is None or function_selector(signature) != revert_selector:
            continue

        return ContractErrorInfo(
            name=signature.split("(", 1)[0],
            signature=signature,
            inputs=entry.get("inputs", []),
            selector=revert_selector.to_0x_hex(),
        )

    return None
