# stableswap/core/transactions.py

from dataclasses import dataclass
from typing import List, Optional, Sequence

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction
from solders.transaction_status import TransactionStatus

from .. import config
from ..utils.logger import get_logger
from ..utils.retry import poll_until
from .client import SolanaClient, extract_custom_error_code, extract_instruction_index, normalize_commitment
from .exceptions import ConfirmationTimeout, RetryExhausted, SubmissionError, error_for_program_code
from .pda import ProgramDerivedAddress

logger = get_logger(__name__)

_CONFIRMATION_RANK = {"processed": 0, "confirmed": 1, "finalized": 2}


@dataclass(frozen=True)
class SubmitPolicy:
    """Commitment and confirmation budget shared by every submitted transaction."""
    commitment: str = "single"
    preflight_commitment: Optional[str] = None  # defaults to `commitment`
    skip_preflight: bool = False
    confirm_max_attempts: int = 60
    confirm_interval_seconds: float = 0.5


DEFAULT_POLICY = SubmitPolicy(
    commitment=config.COMMITMENT,
    skip_preflight=config.SKIP_PREFLIGHT,
    confirm_max_attempts=config.CONFIRM_MAX_ATTEMPTS,
    confirm_interval_seconds=config.CONFIRM_POLL_INTERVAL_SECONDS,
)


def _confirmation_rank(status: TransactionStatus) -> int:
    if status.confirmation_status is None:
        # Nodes report rooted transactions with confirmations=None
        return _CONFIRMATION_RANK["finalized"] if status.confirmations is None else 0
    name = str(status.confirmation_status).split(".")[-1].lower()
    return _CONFIRMATION_RANK[name]


def _ordered_signers(signers: Sequence[Keypair]) -> List[Keypair]:
    """Payer first, duplicates dropped. Program derived addresses cannot sign."""
    if not signers:
        raise ValueError("Transaction needs at least one signer (the fee payer)")
    ordered: List[Keypair] = []
    seen = set()
    for signer in signers:
        if isinstance(signer, ProgramDerivedAddress):
            raise TypeError(f"Program derived address {signer} has no private key and cannot sign")
        if not isinstance(signer, Keypair):
            raise TypeError(f"Signers must be Keypair instances, got {type(signer).__name__}")
        if signer.pubkey() in seen:
            continue
        seen.add(signer.pubkey())
        ordered.append(signer)
    return ordered


async def confirm_transaction(
        label: str,
        client: SolanaClient,
        signature: Signature,
        policy: SubmitPolicy = DEFAULT_POLICY,
) -> TransactionStatus:
    """Polls the signature status until it reaches the policy commitment or fails on chain."""
    target = _CONFIRMATION_RANK[normalize_commitment(policy.commitment)]

    def settled(status: Optional[TransactionStatus]) -> bool:
        if status is None:
            return False
        if status.err is not None:
            return True
        return _confirmation_rank(status) >= target

    try:
        status = await poll_until(
            lambda: client.get_signature_status(signature),
            settled,
            max_attempts=policy.confirm_max_attempts,
            interval_seconds=policy.confirm_interval_seconds,
            label=f"{label} confirmation",
        )
    except RetryExhausted as e:
        raise ConfirmationTimeout(label, str(signature), policy.commitment, e.attempts) from e

    if status.err is not None:
        raise SubmissionError(
            label,
            f"transaction {signature} failed on chain: {status.err}",
            code=extract_custom_error_code(status.err),
            signature=str(signature),
            instruction_index=extract_instruction_index(status.err),
        )
    return status


async def send_and_confirm_transaction(
        label: str,
        client: SolanaClient,
        instructions: Sequence[Instruction],
        signers: Sequence[Keypair],
        policy: SubmitPolicy = DEFAULT_POLICY,
        program_id: Optional[Pubkey] = None,
) -> str:
    """
    Builds, signs, sends and confirms one atomic transaction. The first signer pays.

    This is the only path onto the ledger, so the commitment level and the
    confirmation budget live in `policy` and nowhere else. When `program_id` is
    given, custom errors raised by its instructions come back typed
    (SlippageExceeded, AlreadyInitialized); every other rejection is a plain
    SubmissionError. NetworkError is not retried here.
    """
    signers_to_use = _ordered_signers(signers)
    payer = signers_to_use[0]

    logger.info(f"Sending {label} transaction")
    try:
        blockhash = await client.get_latest_blockhash()
        message = MessageV0.try_compile(
            payer=payer.pubkey(),
            instructions=list(instructions),
            address_lookup_table_accounts=[],
            recent_blockhash=blockhash,
        )
        tx = VersionedTransaction(message, signers_to_use)
        signature = await client.send_transaction(
            tx,
            label=label,
            skip_preflight=policy.skip_preflight,
            preflight_commitment=normalize_commitment(policy.preflight_commitment or policy.commitment),
        )
        logger.debug(f"{label}: sent {signature}, confirming @ {policy.commitment}")
        await confirm_transaction(label, client, signature, policy)
    except SubmissionError as e:
        typed = error_for_program_code(e, instructions, program_id)
        if typed is e:
            raise
        raise typed from e

    logger.info(f"{label}: TxSig: {signature}")
    return str(signature)
