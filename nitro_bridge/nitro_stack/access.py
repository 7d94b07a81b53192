from web3 import Web3

from nitro_bridge.utils.providers import ChainAccess, Reader, Writer

from .custom_errors import NitroStackConfigError


def get_w3(access: ChainAccess) -> Web3:
    if isinstance(access, (Reader, Writer)) and access.w3 is not None:
        return access.w3

    raise NitroStackConfigError(
        f"`{type(access).__name__}` is missing a provider. Connect it to a chain first."
    )


def require_writer(access: ChainAccess, action: str) -> Writer:
    """
    Returns `access` when it is able to sign transactions, raises
    `NitroStackConfigError` naming `action` otherwise.
    """
    if not isinstance(access, Writer):
        raise NitroStackConfigError(
            f"A `Writer` is required to {action}, got `{type(access).__name__}`."
        )

    get_w3(access)

    return access


def check_chain_id(access: ChainAccess, expected: int) -> None:
    actual = get_w3(access).eth.chain_id

    if actual != expected:
        raise NitroStackConfigError(
            f"Provider is connected to chain {actual}, expected chain {expected}."
        )
