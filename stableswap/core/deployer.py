# stableswap/core/deployer.py

import asyncio
import math

from borsh_construct import CStruct, U32, U64
from construct import Bytes, this
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import CreateAccountParams, create_account

from .. import config
from ..utils.logger import get_logger
from .client import SolanaClient
from .exceptions import ConfirmationTimeout, DeployError, SubmissionError
from .funding import new_account_with_lamports
from .pubkeys import SolanaProgramAddresses
from .transactions import DEFAULT_POLICY, SubmitPolicy, send_and_confirm_transaction

logger = get_logger(__name__)

# Packet size (1232) minus room for signatures and the rest of the message
CHUNK_SIZE = 1232 - 300

LOADER_WRITE = 0
LOADER_FINALIZE = 1

# bincode: u32 enum tag, u32 offset, u64 length prefix, raw bytes
WRITE_LAYOUT = CStruct(
    "instruction" / U32,
    "offset" / U32,
    "length" / U64,
    "bytes" / Bytes(this.length),
)
FINALIZE_LAYOUT = CStruct(
    "instruction" / U32,
)


def min_num_signatures(data_length: int) -> int:
    """Signatures paid for a full load: two per transaction, chunks plus create and finalize."""
    return 2 * (math.ceil(data_length / CHUNK_SIZE) + 1 + 1)


def required_deploy_balance(data_length: int, fee_per_signature: int, rent_exempt_balance: int) -> int:
    return fee_per_signature * min_num_signatures(data_length) + rent_exempt_balance


def load_program_binary(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def write_instruction(loader_id: Pubkey, program: Pubkey, offset: int, chunk: bytes) -> Instruction:
    data = WRITE_LAYOUT.build({
        "instruction": LOADER_WRITE,
        "offset": offset,
        "length": len(chunk),
        "bytes": chunk,
    })
    return Instruction(
        program_id=loader_id,
        data=data,
        accounts=[AccountMeta(pubkey=program, is_signer=True, is_writable=True)],
    )


def finalize_instruction(loader_id: Pubkey, program: Pubkey) -> Instruction:
    return Instruction(
        program_id=loader_id,
        data=FINALIZE_LAYOUT.build({"instruction": LOADER_FINALIZE}),
        accounts=[
            AccountMeta(pubkey=program, is_signer=True, is_writable=True),
            AccountMeta(pubkey=SolanaProgramAddresses.RENT_SYSVAR_PUBKEY, is_signer=False, is_writable=False),
        ],
    )


async def _write_chunk(
        client: SolanaClient,
        payer: Keypair,
        program: Keypair,
        loader_id: Pubkey,
        offset: int,
        chunk: bytes,
        max_retries: int,
        policy: SubmitPolicy,
) -> None:
    ix = write_instruction(loader_id, program.pubkey(), offset, chunk)
    for attempt in range(1, max_retries + 1):
        try:
            await send_and_confirm_transaction(
                f"loaderWrite@{offset}", client, [ix], [payer, program], policy
            )
            return
        except (SubmissionError, ConfirmationTimeout) as e:
            logger.warning(f"Chunk at offset {offset} failed (attempt {attempt}/{max_retries}): {e}")
            if attempt < max_retries:
                await asyncio.sleep(policy.confirm_interval_seconds)
                continue
            raise DeployError(f"Chunk at offset {offset} failed after {max_retries} attempts") from e


async def deploy_program(
        client: SolanaClient,
        binary: bytes,
        loader_id: Pubkey = SolanaProgramAddresses.BPF_LOADER_ID,
        chunk_max_retries: int = config.DEPLOY_CHUNK_MAX_RETRIES,
        fund_margin_lamports: int = config.DEPLOY_FUND_MARGIN_LAMPORTS,
        policy: SubmitPolicy = DEFAULT_POLICY,
) -> Pubkey:
    """
    Uploads a compiled program to the loader and returns its address.

    A temporary payer is funded for the computed deploy cost plus a margin.
    Failures abort the deploy; a half-written program account is left behind.
    """
    if not binary:
        raise ValueError("Program binary is empty")

    fee_per_signature = await client.get_fee_per_signature()
    rent_exempt = await client.get_minimum_balance_for_rent_exemption(len(binary))
    balance_needed = required_deploy_balance(len(binary), fee_per_signature, rent_exempt)
    logger.info(
        f"Deploying {len(binary)} byte program: {balance_needed} lamports needed "
        f"({fee_per_signature}/signature, {rent_exempt} rent exempt)"
    )

    payer = await new_account_with_lamports(client, balance_needed + fund_margin_lamports)
    program = Keypair()

    create_ix = create_account(
        CreateAccountParams(
            from_pubkey=payer.pubkey(),
            to_pubkey=program.pubkey(),
            lamports=max(1, rent_exempt),
            space=len(binary),
            owner=loader_id,
        )
    )
    await send_and_confirm_transaction("createProgramAccount", client, [create_ix], [payer, program], policy)

    for offset in range(0, len(binary), CHUNK_SIZE):
        await _write_chunk(
            client, payer, program, loader_id, offset, binary[offset:offset + CHUNK_SIZE],
            chunk_max_retries, policy,
        )

    try:
        await send_and_confirm_transaction(
            "loaderFinalize", client, [finalize_instruction(loader_id, program.pubkey())], [payer, program], policy
        )
    except (SubmissionError, ConfirmationTimeout) as e:
        raise DeployError(f"Finalizing program {program.pubkey()} failed: {e}") from e

    logger.info(f"Program deployed at {program.pubkey()}")
    return program.pubkey()
