# stableswap/core/exceptions.py

from enum import IntEnum
from typing import Any, Optional, Sequence


class StableSwapClientError(Exception):
    """Base class for custom exceptions in this package."""
    pass


class NetworkError(StableSwapClientError):
    """RPC endpoint unreachable or returned a malformed/errored response. Not retried."""
    pass


class SubmissionError(StableSwapClientError):
    """
    The cluster rejected a transaction, or it landed with an error.

    `instruction_index` is the position of the failing instruction in the
    submitted transaction, when the cluster reported one.
    """

    def __init__(
            self,
            label: str,
            message: str,
            code: Optional[int] = None,
            signature: Optional[str] = None,
            instruction_index: Optional[int] = None,
    ):
        self.label = label
        self.detail = message
        self.code = code
        self.signature = signature
        self.instruction_index = instruction_index
        super().__init__(f"{label}: {message}")


class ConfirmationTimeout(StableSwapClientError):
    """A sent transaction did not reach the required commitment in time."""

    def __init__(self, label: str, signature: str, commitment: str, attempts: int):
        self.label = label
        self.signature = signature
        self.commitment = commitment
        self.attempts = attempts
        super().__init__(
            f"{label}: transaction {signature} not '{commitment}' after {attempts} status checks"
        )


class FundingTimeout(StableSwapClientError):
    """Airdropped balance was not observed within the poll budget."""

    def __init__(self, address: Any, requested: int, observed: Optional[int], attempts: int):
        self.address = address
        self.requested = requested
        self.observed = observed
        self.attempts = attempts
        super().__init__(
            f"Funding {address} with {requested} lamports timed out after {attempts} polls "
            f"(last observed balance: {observed})"
        )


class RetryExhausted(StableSwapClientError):
    """Raised by poll_until when the predicate never held."""

    def __init__(self, label: str, attempts: int, last_value: Any):
        self.label = label
        self.attempts = attempts
        self.last_value = last_value
        super().__init__(f"{label}: condition not met after {attempts} attempts")


class NoValidNonce(StableSwapClientError):
    """No nonce in 0..255 produced an off-curve program address."""
    pass


class InvalidSeeds(StableSwapClientError):
    """Seeds plus nonce hash to a point on the ed25519 curve."""
    pass


class DeployError(StableSwapClientError):
    """Program upload failed; there is no partial-deploy recovery."""
    pass


class DecodeError(StableSwapClientError):
    """Account data has the wrong owner, size or layout."""
    pass


class AccountNotFound(StableSwapClientError):
    pass


class AlreadyInitialized(SubmissionError):
    """The target stable swap account already holds state."""
    pass


class SlippageExceeded(SubmissionError):
    """The program rejected the instruction because output fell below the requested minimum."""
    pass


class BootstrapStepError(StableSwapClientError):
    """First failing step of a pool bootstrap. Earlier steps are not rolled back."""

    def __init__(self, step: str, cause: BaseException, completed_steps: Optional[list] = None):
        self.step = step
        self.cause = cause
        self.completed_steps = list(completed_steps or [])
        super().__init__(f"Bootstrap step '{step}' failed: {type(cause).__name__}: {cause}")


class SwapErrorCode(IntEnum):
    """Custom error codes returned by the stable swap program."""
    ALREADY_IN_USE = 0
    INVALID_PROGRAM_ADDRESS = 1
    INVALID_OWNER = 2
    EXPECTED_MINT = 3
    EXPECTED_ACCOUNT = 4
    EMPTY_POOL = 5
    INVALID_SUPPLY = 6
    INVALID_DELEGATE = 7
    INVALID_INPUT = 8
    INCORRECT_SWAP_ACCOUNT = 9
    INCORRECT_POOL_MINT = 10
    CALCULATION_FAILURE = 11
    INVALID_INSTRUCTION = 12
    REPEATED_MINT = 13
    EXCEEDED_SLIPPAGE = 14
    INVALID_BOOTSTRAP = 15


SWAP_ERROR_MESSAGES = {
    SwapErrorCode.ALREADY_IN_USE: "Swap account already in use",
    SwapErrorCode.INVALID_PROGRAM_ADDRESS: "Invalid program address generated from nonce and key",
    SwapErrorCode.INVALID_OWNER: "Input account owner is not the program address",
    SwapErrorCode.EXPECTED_MINT: "Deserialized account is not an SPL Token mint",
    SwapErrorCode.EXPECTED_ACCOUNT: "Deserialized account is not an SPL Token account",
    SwapErrorCode.EMPTY_POOL: "Pool token supply is 0",
    SwapErrorCode.INVALID_SUPPLY: "Pool token mint has a non-zero supply",
    SwapErrorCode.INVALID_DELEGATE: "Token account has a delegate",
    SwapErrorCode.INVALID_INPUT: "InvalidInput",
    SwapErrorCode.INCORRECT_SWAP_ACCOUNT: "Address of the provided swap token account is incorrect",
    SwapErrorCode.INCORRECT_POOL_MINT: "Address of the provided pool token mint is incorrect",
    SwapErrorCode.CALCULATION_FAILURE: "CalculationFailure",
    SwapErrorCode.INVALID_INSTRUCTION: "Invalid instruction",
    SwapErrorCode.REPEATED_MINT: "Swap input token accounts have the same mint",
    SwapErrorCode.EXCEEDED_SLIPPAGE: "Swap instruction exceeds desired slippage limit",
    SwapErrorCode.INVALID_BOOTSTRAP: "Initial deposit requires all tokens",
}


def error_for_program_code(
        error: SubmissionError,
        instructions: Sequence[Any] = (),
        program_id: Any = None,
) -> SubmissionError:
    """
    Translates a stable swap program error carried by a SubmissionError into its
    typed exception.

    Custom codes are per program, so the error is translated only when the
    failing instruction (by `error.instruction_index`) was addressed to
    `program_id`. Anything else is returned unchanged.
    """
    if error.code is None or program_id is None or error.instruction_index is None:
        return error
    if not 0 <= error.instruction_index < len(instructions):
        return error
    if instructions[error.instruction_index].program_id != program_id:
        return error
    try:
        code = SwapErrorCode(error.code)
    except ValueError:
        return error

    detail = f"{error.detail}: {SWAP_ERROR_MESSAGES[code]}"
    typed = {
        SwapErrorCode.EXCEEDED_SLIPPAGE: SlippageExceeded,
        SwapErrorCode.ALREADY_IN_USE: AlreadyInitialized,
    }.get(code)
    if typed is None:
        return error
    return typed(error.label, detail, code=error.code, signature=error.signature,
                 instruction_index=error.instruction_index)
