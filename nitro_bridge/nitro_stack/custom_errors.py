from typing import Any, Optional
from hexbytes import HexBytes
from web3.contract import Contract
from web3.exceptions import ContractCustomError

from nitro_bridge.utils.chain import function_selector, get_contract_error_info, get_revert_data


class NitroStackError(Exception):
    """Base Exception for Nitro Stack operations."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.original_error = original_error


class NitroStackConfigError(NitroStackError):
    """
    Raised when a precondition of the caller's setup is missing, e.g. an
    unknown chain id or a read-only provider passed to a write operation.
    """


class NitroStackStateError(NitroStackError):
    """Raised when a message is not in the status an operation requires."""

    def __init__(
        self,
        message: str,
        required: Any = None,
        actual: Any = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message, original_error)
        self.required = required
        self.actual = actual

    @classmethod
    def unexpected_status(cls, action: str, required: Any, actual: Any):
        return cls(
            f"Message must be in status `{required.name}` to {action}, "
            f"but it is `{actual.name}`.",
            required=required,
            actual=actual,
        )


class NitroStackTimeoutError(NitroStackError):
    """Raised when a polling loop runs out of time."""


class NitroStackDataError(NitroStackError):
    """
    Raised when chain data can't be parsed or doesn't line up, e.g. paired
    events with different counts or a malformed revert payload.
    """


class NitroStackTransactionError(NitroStackError):
    """Raised when signing, sending or mining a transaction fails."""


class NitroStackRetryableTicketError(NitroStackError):
    """
    Raised when an ArbRetryableTx precompile call reverts with one of its
    custom errors. `error_name` holds the decoded error, e.g. `NoTicketWithID`
    for a ticket that was redeemed, expired or never created.
    """

    def __init__(
        self,
        message: str,
        error_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message, original_error)
        self.error_name = error_name

    @classmethod
    def from_contract_error(cls, contract: Contract, error: Exception) -> NitroStackError:
        error_info = get_contract_error_info(contract, error)

        if error_info is None:
            return NitroStackTransactionError(str(error), original_error=error)

        return cls(
            f"ArbRetryableTx reverted with `{error_info.signature}`",
            error_name=error_info.name,
            original_error=error,
        )


# Outbox reverts with errors from nitro-contracts src/libraries/Error.sol that
# its ABI doesn't declare.
OUTBOX_ERRORS = {
    function_selector(signature): signature
    for signature in (
        "ProofTooLong(uint256)",
        "PathNotMinimal(uint256,uint256)",
        "UnknownRoot(bytes32)",
        "AlreadySpent(uint256)",
    )
}


class NitroStackOutboxError(NitroStackError):
    """Raised when an Outbox call such as `executeTransaction` reverts."""

    @classmethod
    def from_contract_error_info(cls, error: Exception) -> NitroStackError:
        if not isinstance(error, ContractCustomError):
            return NitroStackTransactionError(str(error), original_error=error)

        signature = OUTBOX_ERRORS.get(HexBytes(get_revert_data(error)[:4]))

        if signature is None:
            return NitroStackTransactionError(str(error), original_error=error)

        return cls(f"Outbox reverted with `{signature}`", original_error=error)
